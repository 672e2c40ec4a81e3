"""
Regex Extractor Module
Parses normalized statement lines into structured transactions using regex
patterns. Locates the transaction section, merges wrapped descriptions and
decides which monetary token is the amount, the fee and the running balance.
"""

import re
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Iterable, NamedTuple, Optional, Sequence, Union

from ..config import config
from .financial_rules import (
    FEES_CATEGORY,
    LabelVocabulary,
    TransactionType,
    derive_transaction_type,
    format_amount_display,
    is_boilerplate,
    is_fee_candidate,
)
from .normalizer import LogicalLine

logger = logging.getLogger(__name__)

# DD/MM/YYYY at the start of a line, also D/M/YYYY and two-digit years
DATE_ANCHOR_PATTERN = re.compile(
    r'^(?P<date>\d{1,2}/\d{1,2}/(?:\d{4}|\d{2}))(?!\d)\s*(?P<rest>.*)$'
)

# Optional sign, digits optionally space-grouped in threes, exactly two decimals
# e.g. "200.00", "-6.00", "-1 000.00"
MONEY_PATTERN = re.compile(
    r'(?<![\d.])[-+]?(?:\d{1,3}(?:\s\d{3})+|\d+)\.\d{2}(?!\d)'
)

NOISE_PATTERN = re.compile(
    r'Includes VAT|\bPage\s*\d+\s*(?:of|/)\s*\d+\b',
    re.IGNORECASE
)

DATE_FORMATS = ('%d/%m/%Y', '%d/%m/%y')

DEFAULT_DESCRIPTION = "Transaction"


@dataclass(frozen=True)
class DraftTransaction:
    """A transaction recognized in the statement, before duplicate resolution."""
    date: date
    description: str
    raw_description: str
    amount: Decimal
    balance: Decimal
    transaction_type: TransactionType
    fee: Optional[Decimal] = None
    category: Optional[str] = None
    source_page_number: Optional[int] = None
    currency: str = field(default_factory=lambda: config.DEFAULT_CURRENCY)

    def to_dict(self) -> dict:
        """Convert transaction to dictionary."""
        return {
            "date": self.date.isoformat(),
            "description": self.description,
            "raw_description": self.raw_description,
            "amount": float(self.amount),
            "amount_display": format_amount_display(self.amount),
            "balance": float(self.balance),
            "fee": float(self.fee) if self.fee is not None else None,
            "category": self.category,
            "type": self.transaction_type.value,
            "currency": self.currency,
            "source_page_number": self.source_page_number,
        }

    def __repr__(self) -> str:
        return (
            f"DraftTransaction(date={self.date}, desc={self.description[:30]}..., "
            f"amount={format_amount_display(self.amount)}, balance={self.balance})"
        )


class RejectionReason(Enum):
    EMPTY = "empty"
    INCOMPLETE = "incomplete"
    BOILERPLATE = "boilerplate"
    BAD_DATE = "bad_date"


class RejectedLine(NamedTuple):
    """A date-anchored line that did not yield a transaction."""
    text: str
    reason: RejectionReason
    page_number: Optional[int] = None


ParsedRecord = Union[DraftTransaction, RejectedLine]


class SectionMode(Enum):
    SEARCHING = "searching"
    IN_SECTION = "in_section"


class SectionState(NamedTuple):
    mode: SectionMode = SectionMode.SEARCHING
    header_confirmed: bool = False


@dataclass
class ExtractionResult:
    """Transactions plus everything that was skipped, for diagnostics."""
    transactions: list[DraftTransaction]
    rejected: list[RejectedLine]
    stats: dict


def parse_amount(token: str) -> Decimal:
    """
    Parse a monetary token to Decimal.
    Handles spaces between thousands groups ("1 000.00").

    Raises:
        ValueError: If amount cannot be parsed
    """
    clean = re.sub(r'\s', '', token)
    try:
        return Decimal(clean)
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount format: {token}") from e


def parse_date(value: str) -> Optional[date]:
    """Parse DD/MM/YYYY, D/M/YYYY and two-digit-year variants."""
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def find_monetary_tokens(text: str) -> list[re.Match]:
    return list(MONEY_PATTERN.finditer(text))


def is_noise_line(text: str) -> bool:
    """VAT disclaimers and "Page X of Y" footers."""
    return bool(NOISE_PATTERN.search(text))


def is_column_header(text: str) -> bool:
    lowered = text.lower()
    return "date" in lowered and ("description" in lowered or "money" in lowered)


class TransactionExtractor:
    """
    Extracts transactions from normalized statement lines.

    The extractor only holds configuration; every call to ``extract`` keeps
    its state in locals, so one instance can serve concurrent documents.
    """

    def __init__(
        self,
        vocabulary: Optional[LabelVocabulary] = None,
        section_marker: Optional[str] = None,
        require_section_marker: Optional[bool] = None,
        max_continuation_lines: Optional[int] = None,
        fee_min_magnitude: Optional[Decimal] = None,
        fee_max_magnitude: Optional[Decimal] = None,
    ):
        self.vocabulary = vocabulary or LabelVocabulary()
        self.section_marker = section_marker or config.SECTION_MARKER
        self.require_section_marker = (
            config.REQUIRE_SECTION_MARKER if require_section_marker is None else require_section_marker
        )
        self.max_continuation_lines = (
            config.MAX_CONTINUATION_LINES if max_continuation_lines is None else max_continuation_lines
        )
        self.fee_min_magnitude = (
            config.FEE_MIN_MAGNITUDE if fee_min_magnitude is None else fee_min_magnitude
        )
        self.fee_max_magnitude = (
            config.FEE_MAX_MAGNITUDE if fee_max_magnitude is None else fee_max_magnitude
        )

    def extract(self, lines: Iterable[Union[LogicalLine, str]]) -> list[DraftTransaction]:
        """
        Extract all transactions from statement lines.

        Args:
            lines: Normalized lines, or plain strings

        Returns:
            List of DraftTransaction objects in document order
        """
        return self.extract_with_report(lines).transactions

    def extract_with_report(self, lines: Iterable[Union[LogicalLine, str]]) -> ExtractionResult:
        """Extract transactions and report rejected lines and statistics."""
        lines = [self._as_line(line) for line in lines]
        stats = {
            "lines_processed": 0,
            "noise_lines_skipped": 0,
            "multi_line_merges": 0,
            "transactions_found": 0,
            "lines_rejected": 0,
        }
        transactions: list[DraftTransaction] = []
        rejected: list[RejectedLine] = []
        state = SectionState()

        if not lines:
            logger.warning("No lines provided for extraction")
            return ExtractionResult(transactions, rejected, stats)

        cursor = 0
        while cursor < len(lines):
            line = lines[cursor]
            cursor += 1
            stats["lines_processed"] += 1

            text = line.text.strip()
            if not text:
                continue

            state, structural = self._advance(state, text)
            if structural:
                continue

            anchor = DATE_ANCHOR_PATTERN.match(text)
            if not anchor:
                if is_noise_line(text):
                    stats["noise_lines_skipped"] += 1
                    logger.debug(f"Skipping noise line: {text[:50]}")
                continue

            if state.mode is SectionMode.SEARCHING:
                if self.require_section_marker:
                    logger.debug(f"Skipping dated line outside transaction section: {text[:50]}")
                    continue
                logger.debug("Dated line before section marker, assuming transaction section")
                state = SectionState(SectionMode.IN_SECTION, True)
            elif not state.header_confirmed:
                logger.debug("No column header found, proceeding from first dated line")
                state = state._replace(header_confirmed=True)

            consumed, rest = self.merge_continuation(lines, cursor, anchor.group("rest"))
            if consumed:
                stats["multi_line_merges"] += consumed
            cursor += consumed

            record = self.parse_record(anchor.group("date"), rest, line.page_number)
            if isinstance(record, RejectedLine):
                rejected.append(record)
                stats["lines_rejected"] += 1
                logger.debug(f"Rejected ({record.reason.value}): {record.text[:60]}")
                continue

            transactions.append(record)
            stats["transactions_found"] += 1
            logger.debug(f"Parsed: {record}")

        logger.info(
            f"Extraction complete: {stats['transactions_found']} transactions found, "
            f"{stats['multi_line_merges']} continuation lines merged, "
            f"{stats['lines_rejected']} dated lines rejected"
        )
        if state.mode is SectionMode.SEARCHING:
            logger.warning(f"Transaction section marker '{self.section_marker}' not found")
        elif not transactions:
            logger.warning(f"No transactions found in {len(lines)} lines")

        return ExtractionResult(transactions, rejected, stats)

    def _advance(self, state: SectionState, text: str) -> tuple[SectionState, bool]:
        """
        Section state transition for one line.

        Returns:
            tuple: (new_state, consumed) where consumed means the line was the
            section marker or column header and carries no transaction.
        """
        if self.section_marker.lower() in text.lower():
            logger.debug(f"Entering transaction section: {text[:50]}")
            return SectionState(SectionMode.IN_SECTION, is_column_header(text)), True

        if (state.mode is SectionMode.IN_SECTION and not state.header_confirmed
                and is_column_header(text) and not DATE_ANCHOR_PATTERN.match(text)):
            return state._replace(header_confirmed=True), True

        return state, False

    def _is_boundary(self, text: str) -> bool:
        """Lines that end a lookahead merge."""
        return (
            not text
            or bool(DATE_ANCHOR_PATTERN.match(text))
            or is_noise_line(text)
            or is_column_header(text)
            or self.section_marker.lower() in text.lower()
        )

    def merge_continuation(
        self,
        lines: Sequence[LogicalLine],
        start: int,
        text: str
    ) -> tuple[int, str]:
        """
        Fold wrapped description lines into ``text`` until it holds an amount
        and a balance.

        Args:
            lines: All lines of the document
            start: Index of the first line after the anchor
            text: Anchor text after the date

        Returns:
            tuple: (number of following lines consumed, merged text)
        """
        consumed = 0
        merged = text.strip()

        while (len(find_monetary_tokens(merged)) < 2
               and consumed < self.max_continuation_lines
               and start + consumed < len(lines)):
            next_text = lines[start + consumed].text.strip()
            if self._is_boundary(next_text):
                break
            merged = f"{merged} {next_text}".strip()
            consumed += 1

        return consumed, merged

    def parse_record(
        self,
        date_text: str,
        rest: str,
        page_number: Optional[int] = None
    ) -> ParsedRecord:
        """
        Turn one (possibly merged) dated record into a transaction.

        The last monetary token is the balance and the first is the amount.
        Any token in between is a fee only if it passes the fee heuristic.
        """
        full_text = f"{date_text} {rest}".strip()
        if not rest:
            return RejectedLine(full_text, RejectionReason.EMPTY, page_number)

        tokens = find_monetary_tokens(rest)
        if len(tokens) < 2:
            return RejectedLine(full_text, RejectionReason.INCOMPLETE, page_number)

        raw_description = rest[:tokens[0].start()].strip()
        if is_boilerplate(raw_description):
            return RejectedLine(full_text, RejectionReason.BOILERPLATE, page_number)

        parsed_date = parse_date(date_text)
        if parsed_date is None:
            return RejectedLine(full_text, RejectionReason.BAD_DATE, page_number)

        try:
            values = [parse_amount(token.group()) for token in tokens]
        except ValueError as e:
            logger.warning(f"{e} in line: {full_text[:60]}")
            return RejectedLine(full_text, RejectionReason.INCOMPLETE, page_number)

        balance = values[-1]
        amount = values[0]
        fee = None
        for candidate in values[1:-1]:
            if is_fee_candidate(candidate, self.fee_min_magnitude, self.fee_max_magnitude):
                fee = abs(candidate)
                break

        description, category = self.vocabulary.clean_description(raw_description)

        # A two-token "Fees" line is the fee itself, not a fee on a principal
        if len(values) == 2 and category == FEES_CATEGORY and amount < 0:
            fee = abs(amount)

        return DraftTransaction(
            date=parsed_date,
            description=description or DEFAULT_DESCRIPTION,
            raw_description=raw_description,
            amount=amount,
            balance=balance,
            transaction_type=derive_transaction_type(amount, raw_description),
            fee=fee,
            category=category,
            source_page_number=page_number,
        )

    @staticmethod
    def _as_line(line: Union[LogicalLine, str]) -> LogicalLine:
        if isinstance(line, LogicalLine):
            return line
        return LogicalLine(str(line))


def extract_transactions(lines: Iterable[Union[LogicalLine, str]]) -> list[DraftTransaction]:
    """
    Convenience function to extract transactions from normalized lines.

    Args:
        lines: Normalized statement lines

    Returns:
        List of DraftTransaction objects
    """
    extractor = TransactionExtractor()
    return extractor.extract(lines)
