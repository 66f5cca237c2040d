"""
JSONL dataset export: one documents, pages and cells stream per run.
"""

from .jsonl import ExportCounts, ExportWriters, JsonlWriter, export_document, open_export_dir
from .records import CellRecord, DocumentRecord, PageRecord, fmt_export_cell_id, fmt_page_id

__all__ = [
    "CellRecord",
    "DocumentRecord",
    "ExportCounts",
    "ExportWriters",
    "JsonlWriter",
    "PageRecord",
    "export_document",
    "fmt_export_cell_id",
    "fmt_page_id",
    "open_export_dir",
]
