"""
Natural key resolution and surrogate key allocation modules.
"""

from .key_resolver import NaturalKeyResolver
from .surrogate_key_allocator import SurrogateKeyAllocator, DatabaseSequenceAllocator

__all__ = [
    "NaturalKeyResolver",
    "SurrogateKeyAllocator",
    "DatabaseSequenceAllocator"
]
