"""
Bank Statement Parser - Main Pipeline
Orchestrates normalization, transaction extraction, duplicate resolution and
statement lookups for a single document.
"""

import argparse
import json
import sys
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Optional

from .config import config
from .extractors.metadata_extractor import (
    AccountInfo,
    StatementMetadata,
    extract_account_info,
    extract_issuer,
    extract_statement_metadata
)
from .extractors.normalizer import LogicalLine, normalize
from .extractors.regex_extractor import RejectedLine, TransactionExtractor
from .loaders.pdf_loader import PDFLoadError, load_pdf, load_pdf_bytes
from .logging_config import get_logger, setup_logging
from .resolvers.duplicate_resolver import (
    DuplicateDetectionReport,
    DuplicateResolver,
    FinalTransaction
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class StatementSummary:
    """Period and balance figures computed from non-duplicate transactions."""
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    opening_balance: Optional[Decimal] = None
    closing_balance: Optional[Decimal] = None
    total_credits: Decimal = Decimal("0.00")
    total_debits: Decimal = Decimal("0.00")
    total_fees: Decimal = Decimal("0.00")

    def to_dict(self) -> dict:
        return {
            "period_start": self.period_start.isoformat() if self.period_start else None,
            "period_end": self.period_end.isoformat() if self.period_end else None,
            "opening_balance": float(self.opening_balance) if self.opening_balance is not None else None,
            "closing_balance": float(self.closing_balance) if self.closing_balance is not None else None,
            "total_credits": float(self.total_credits),
            "total_debits": float(self.total_debits),
            "total_fees": float(self.total_fees),
        }


@dataclass
class StatementResult:
    """Everything extracted from one statement."""
    issuer: str
    metadata: StatementMetadata
    summary: StatementSummary
    transactions: list[FinalTransaction]
    duplicate_report: DuplicateDetectionReport
    account_info: AccountInfo = field(default_factory=AccountInfo)
    lines: list[LogicalLine] = field(default_factory=list)
    rejected: list[RejectedLine] = field(default_factory=list)
    stats: dict = field(default_factory=dict)

    def to_dict(self, debug: bool = False) -> dict:
        data = {
            "issuer": self.issuer,
            "period_start": self.summary.period_start.isoformat() if self.summary.period_start else None,
            "period_end": self.summary.period_end.isoformat() if self.summary.period_end else None,
            "metadata": self.metadata.to_dict(),
            "account_info": self.account_info.to_dict(),
            "summary": self.summary.to_dict(),
            "transactions": [transaction.to_dict() for transaction in self.transactions],
            "duplicate_report": self.duplicate_report.to_dict(),
        }
        if debug:
            data["debug"] = {
                "normalized_lines_count": len(self.lines),
                "normalized_lines_preview": [line.text for line in self.lines[:10]],
                "rejected_lines": [
                    {"text": rejected.text, "reason": rejected.reason.value, "page_number": rejected.page_number}
                    for rejected in self.rejected
                ],
                "stats": self.stats,
            }
        return data


def summarize_transactions(
    transactions: list[FinalTransaction],
    opening_balance: Optional[Decimal] = None,
    closing_balance: Optional[Decimal] = None
) -> StatementSummary:
    """
    Compute period and totals, skipping duplicates.

    Balances printed on the statement are used when given; otherwise the
    first and last transaction balances in document order.
    """
    unique = [final.draft for final in transactions if not final.is_duplicate]
    if not unique:
        return StatementSummary(opening_balance=opening_balance, closing_balance=closing_balance)

    dates = [transaction.date for transaction in unique]
    return StatementSummary(
        period_start=min(dates),
        period_end=max(dates),
        opening_balance=unique[0].balance if opening_balance is None else opening_balance,
        closing_balance=unique[-1].balance if closing_balance is None else closing_balance,
        total_credits=sum((t.amount for t in unique if t.amount > 0), Decimal("0.00")),
        total_debits=sum((t.amount for t in unique if t.amount < 0), Decimal("0.00")),
        total_fees=sum((t.fee for t in unique if t.fee is not None), Decimal("0.00")),
    )


class StatementProcessor:
    """Runs the full parsing pipeline for one statement at a time."""

    def __init__(
        self,
        extractor: Optional[TransactionExtractor] = None,
        resolver: Optional[DuplicateResolver] = None
    ):
        self.extractor = extractor or TransactionExtractor()
        self.resolver = resolver or DuplicateResolver()

    def process_text(self, text: str, page_count: Optional[int] = None) -> StatementResult:
        """
        Process raw statement text.

        Args:
            text: Raw document text, pages separated by form feeds
            page_count: Page count reported by the document decoder

        Returns:
            StatementResult
        """
        logger.info("Step 1: Normalizing statement text")
        lines = normalize(text or "", self.extractor.section_marker)
        logger.info(f"{len(lines)} logical lines after normalization")

        logger.info("Step 2: Extracting transactions")
        extraction = self.extractor.extract_with_report(lines)

        logger.info("Step 3: Resolving duplicates")
        resolution = self.resolver.resolve(extraction.transactions)

        logger.info("Step 4: Looking up issuer, statement metadata and account details")
        issuer = extract_issuer(lines)
        metadata = extract_statement_metadata(lines, page_count)
        unique = [final.draft for final in resolution.unique]
        account_info = extract_account_info(lines, unique, self.extractor.section_marker)

        if not resolution.finals:
            logger.warning("No transactions found. Check if the statement contains a transaction section in the expected format.")

        return StatementResult(
            issuer=issuer,
            metadata=metadata,
            summary=summarize_transactions(
                resolution.finals,
                account_info.opening_balance,
                account_info.closing_balance
            ),
            transactions=resolution.finals,
            duplicate_report=resolution.report,
            account_info=account_info,
            lines=lines,
            rejected=extraction.rejected,
            stats=extraction.stats,
        )

    def process_pdf_bytes(self, data: bytes, source: str = "<upload>") -> StatementResult:
        """
        Process an in-memory PDF.

        Raises:
            PDFLoadError: If the PDF cannot be read
        """
        document = load_pdf_bytes(data, source)
        return self.process_text(document.text, document.page_count)

    def process_pdf(self, pdf_path: str) -> StatementResult:
        """
        Process a PDF file on disk.

        Raises:
            PDFLoadError: If the PDF cannot be read
        """
        document = load_pdf(pdf_path)
        return self.process_text(document.text, document.page_count)


def process_statement_text(text: str, page_count: Optional[int] = None) -> StatementResult:
    """
    Convenience function to process raw statement text.

    Args:
        text: Raw statement text
        page_count: Optional page count from the decoder

    Returns:
        StatementResult
    """
    return StatementProcessor().process_text(text, page_count)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="statement-parser",
        description="Extract transactions from a bank statement PDF or text file"
    )
    parser.add_argument("input", help="Statement file (.pdf, or a text file)")
    parser.add_argument("-o", "--output", help="Write JSON here instead of stdout (relative names go to OUTPUT_DIR)")
    parser.add_argument("--debug", action="store_true", help="Include normalized lines and rejected lines")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Command line entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(log_level=args.log_level, log_file="statement_parser.log")

    input_path = Path(args.input)
    if not input_path.exists():
        logger.error(f"Input file not found: {input_path}")
        return 1

    processor = StatementProcessor()
    try:
        if input_path.suffix.lower() == ".pdf":
            result = processor.process_pdf(str(input_path))
        else:
            result = processor.process_text(input_path.read_text(encoding="utf-8"))
    except PDFLoadError as e:
        logger.error(f"Cannot read statement: {e}")
        return 1
    except UnicodeDecodeError as e:
        logger.error(f"Statement text is not UTF-8: {input_path} ({e.reason} at byte {e.start})")
        return 1
    except OSError as e:
        logger.error(f"Cannot read statement file {input_path}: {e}")
        return 1

    payload = json.dumps(result.to_dict(debug=args.debug), indent=2)

    if args.output:
        output_path = Path(args.output)
        if not output_path.is_absolute() and output_path.parent == Path("."):
            output_path = config.get_output_path(output_path.name)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(payload, encoding="utf-8")
        except OSError as e:
            logger.error(f"Cannot write result to {output_path}: {e}")
            return 1
        logger.info(f"Result saved to: {output_path}")
    else:
        sys.stdout.write(payload + "\n")

    logger.info(
        f"Processed {result.duplicate_report.total_transactions} transactions "
        f"({result.duplicate_report.duplicate_count} duplicates)"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
