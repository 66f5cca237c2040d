"""
Canonical, authoritative encoding contracts.

These models are the schema boundary between ingestion, encoding, chunking
and export. Stage code should consume/produce these contract objects (not
ad-hoc dicts).
"""

from .chunking import ChunkRecord
from .document import CellRecord, CellType, CodeHash, Document, Header, PageInfo, hash_payload
from .errors import ConfigurationError, DcfError, EncodingFailure, UnsupportedInput
from .metrics import Metrics
from .numguard import NumGuardAlert, NumGuardIssue, Severity
from .raw import BBox, RawPage, RawUnit

__all__ = [
    "BBox",
    "RawUnit",
    "RawPage",
    "PageInfo",
    "CellType",
    "CellRecord",
    "CodeHash",
    "Header",
    "Document",
    "hash_payload",
    "NumGuardIssue",
    "Severity",
    "NumGuardAlert",
    "Metrics",
    "ChunkRecord",
    "DcfError",
    "UnsupportedInput",
    "ConfigurationError",
    "EncodingFailure",
]
