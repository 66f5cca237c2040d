from .base import IngestEngine
from .html_engine import HtmlEngine
from .pypdfium2_engine import Pypdfium2Engine
from .tesseract_cli import TesseractCliEngine
from .text_engine import TextEngine

__all__ = ["HtmlEngine", "IngestEngine", "Pypdfium2Engine", "TesseractCliEngine", "TextEngine"]
