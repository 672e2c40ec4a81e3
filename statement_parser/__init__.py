"""
Statement Parser - recovers ordered, deduplicated transactions from the text
of bank statement PDFs.
"""

from .config import Config, config
from .extractors import (
    DraftTransaction,
    LogicalLine,
    TransactionExtractor,
    TransactionType,
    normalize
)
from .resolvers import (
    DuplicateDetectionReport,
    DuplicateResolver,
    FinalTransaction
)
from .main import StatementProcessor, StatementResult, process_statement_text

__version__ = Config.VERSION

__all__ = [
    'Config',
    'config',
    'DraftTransaction',
    'LogicalLine',
    'TransactionExtractor',
    'TransactionType',
    'normalize',
    'DuplicateDetectionReport',
    'DuplicateResolver',
    'FinalTransaction',
    'StatementProcessor',
    'StatementResult',
    'process_statement_text',
]
