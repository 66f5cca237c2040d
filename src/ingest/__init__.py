"""
Ingestion adapters (input file -> raw pages of positioned text units).

Adapters only extract: they do no classification, scoring or text
normalization. Geometry is expressed in page pixels, top-left origin.
"""

from .contracts import IngestConfig, IngestFormat
from .module import engine_for, ingest_path, ingest_text

__all__ = ["IngestConfig", "IngestFormat", "engine_for", "ingest_path", "ingest_text"]
