"""
Extractors Module - Line normalization, transaction parsing and lookups.
"""

from .normalizer import (
    LogicalLine,
    normalize
)

from .regex_extractor import (
    DraftTransaction,
    ExtractionResult,
    RejectedLine,
    RejectionReason,
    TransactionExtractor,
    extract_transactions
)

from .financial_rules import (
    TransactionType,
    LabelKind,
    LabelRule,
    LabelVocabulary,
    format_amount_display
)

from .metadata_extractor import (
    AccountInfo,
    StatementMetadata,
    extract_account_info,
    extract_issuer,
    extract_statement_metadata
)

__all__ = [
    'LogicalLine',
    'normalize',
    'DraftTransaction',
    'ExtractionResult',
    'RejectedLine',
    'RejectionReason',
    'TransactionExtractor',
    'extract_transactions',
    'TransactionType',
    'LabelKind',
    'LabelRule',
    'LabelVocabulary',
    'format_amount_display',
    'AccountInfo',
    'StatementMetadata',
    'extract_account_info',
    'extract_issuer',
    'extract_statement_metadata',
]
