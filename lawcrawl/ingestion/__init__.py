from .base import (
    CONTENT_FETCH_FAILED,
    CONTENT_NOT_AVAILABLE,
    BaseParser,
    Chapter,
    PageRecord,
    Part,
    Record,
    Section,
    Title,
    extract_content,
)
from .nested import NestedParser
from .tabular import TabularParser

__all__ = [
    "CONTENT_FETCH_FAILED",
    "CONTENT_NOT_AVAILABLE",
    "BaseParser",
    "Chapter",
    "NestedParser",
    "PageRecord",
    "Part",
    "Record",
    "Section",
    "TabularParser",
    "Title",
    "extract_content",
]
