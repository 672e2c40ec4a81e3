"""
Resolvers Module - Duplicate detection over extracted transactions.
"""

from .duplicate_resolver import (
    DuplicateDetectionReport,
    DuplicateGroup,
    DuplicateResolver,
    FinalTransaction,
    ResolutionResult,
    generate_fingerprint,
    resolve_duplicates
)

__all__ = [
    'DuplicateDetectionReport',
    'DuplicateGroup',
    'DuplicateResolver',
    'FinalTransaction',
    'ResolutionResult',
    'generate_fingerprint',
    'resolve_duplicates',
]
