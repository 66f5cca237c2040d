"""
Retrieval chunking over encoded documents (cell-count or token windows).
"""

from .chunker import Chunker, cell_windows, chunk_text, token_windows
from .config import ChunkConfig, ChunkMode

__all__ = ["ChunkConfig", "ChunkMode", "Chunker", "cell_windows", "chunk_text", "token_windows"]
