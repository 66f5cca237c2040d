"""
Cell encoder: raw page units -> classified, scored, deduplicated cells.

Pipeline per encode call:
- normalize units (hyphenation, bbox repair)
- classify and score each unit
- collapse repeats within the dedup window into shared dictionary entries
- run NumGuard (advisory)
- trim to the token budget, prune the dictionary, check integrity
"""

from .artifacts import read_document_json, serialize_document, write_document_json
from .config import EncoderConfig, EncoderPreset, HyphenationMode, ImportanceTuning
from .module import DOCUMENT_VERSION, Encoder, EncoderBuilder
from .tokens import TokenizerKind, estimate_tokens

__all__ = [
    "DOCUMENT_VERSION",
    "Encoder",
    "EncoderBuilder",
    "EncoderConfig",
    "EncoderPreset",
    "HyphenationMode",
    "ImportanceTuning",
    "TokenizerKind",
    "estimate_tokens",
    "read_document_json",
    "serialize_document",
    "write_document_json",
]
