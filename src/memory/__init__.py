"""Memory module: extraction of memories from conversation and the memory bank."""

from src.memory.bank import MemoryBank
from src.memory.contracts import MemoryStore
from src.memory.extractor import (
    MemoryExtractor,
    explicit_memory,
    extract_memory_request,
    is_memory_request,
)
from src.memory.models import ExtractedMemory, MemoryBankDocument, MemoryCategory, MemoryEntry

__all__ = [
    "ExtractedMemory",
    "MemoryBank",
    "MemoryBankDocument",
    "MemoryCategory",
    "MemoryEntry",
    "MemoryExtractor",
    "MemoryStore",
    "explicit_memory",
    "extract_memory_request",
    "is_memory_request",
]
