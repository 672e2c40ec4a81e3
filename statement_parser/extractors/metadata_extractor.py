"""
Metadata Extractor Module
Keyword/regex lookups for the statement issuer, statement metadata and
account details.
These run over the normalized lines and never merge or disambiguate.
"""

import re
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Sequence, Union

from ..config import config
from .normalizer import LogicalLine
from .regex_extractor import DraftTransaction

logger = logging.getLogger(__name__)

HEADER_LINE_COUNT = 50
FOOTER_LINE_COUNT = 20
MAX_PAGES = 1000

UNKNOWN_ISSUER = "Unknown"

# Checked in order; more specific names come before their abbreviations
ISSUER_PATTERNS: tuple[tuple[re.Pattern, str], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), name)
    for pattern, name in (
        (r'\bCapitec\s+Bank\b', "Capitec Bank"),
        (r'\bCapitec\b', "Capitec Bank"),
        (r'\bStandard\s+Bank\b', "Standard Bank"),
        (r'\bFirst\s+National\s+Bank\b', "First National Bank"),
        (r'\bFNB\b', "First National Bank"),
        (r'\bNedbank\b', "Nedbank"),
        (r'\bAbsa\s+Bank\b', "Absa Bank"),
        (r'\bAbsa\b', "Absa Bank"),
        (r'\bAfrican\s+Bank\b', "African Bank"),
        (r'\bInvestec\b', "Investec"),
        (r'\bDiscovery\s+Bank\b', "Discovery Bank"),
        (r'\bTyme\s+Bank\b', "Tyme Bank"),
        (r'\bBank\s+of\s+America\b', "Bank of America"),
        (r'\bChase\b', "Chase"),
        (r'\bWells\s+Fargo\b', "Wells Fargo"),
        (r'\bCitibank\b', "Citibank"),
        (r'\bAmerican\s+Express\b', "American Express"),
        (r'\bAmex\b', "American Express"),
    )
)

STATEMENT_KEYWORDS = ("statement", "account", "transaction", "balance")
GENERIC_ISSUER_PATTERN = re.compile(r'\b([A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+)*)\s+Bank\b')

_DATE_LABEL = r'(?:Statement\s+Date|Generated\s+Date|Date\s+Generated|Date)\s*:?\s*'
STATEMENT_DATE_PATTERNS = (
    re.compile(_DATE_LABEL + r'(\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4})', re.IGNORECASE),
    re.compile(_DATE_LABEL + r'(\d{1,2}\s+[A-Za-z]{3,9}\s+\d{4})', re.IGNORECASE),
    re.compile(_DATE_LABEL + r'(\d{4}[/\-]\d{1,2}[/\-]\d{1,2})', re.IGNORECASE),
)
STATEMENT_DATE_FORMATS = (
    '%d/%m/%Y', '%d/%m/%y', '%d-%m-%Y', '%d-%m-%y',
    '%Y-%m-%d', '%Y/%m/%d',
    '%d %b %Y', '%d %B %Y',
)

STATEMENT_NUMBER_PATTERNS = (
    re.compile(r'(?:Statement\s+(?:Number|No\.?|#)|Stmt\s+(?:No\.?|Number|#))\s*:?\s*([A-Z0-9\-]+)', re.IGNORECASE),
    re.compile(r'Ref(?:erence|\.)?\s*:?\s*([A-Z0-9\-]{3,})', re.IGNORECASE),
)
STATEMENT_NUMBER_SHAPE = re.compile(r'^(?=.*\d)[A-Z0-9\-]{3,20}$', re.IGNORECASE)

TOTAL_PAGES_PATTERNS = (
    re.compile(r'Page\s+\d+\s+of\s+(\d+)', re.IGNORECASE),
    re.compile(r'Page\s+\d+\s*/\s*(\d+)', re.IGNORECASE),
    re.compile(r'\d+\s+of\s+(\d+)\s+pages?', re.IGNORECASE),
)


@dataclass(frozen=True)
class StatementMetadata:
    """Statement-level facts found outside the transaction listing."""
    statement_date: Optional[date] = None
    statement_number: Optional[str] = None
    total_pages: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "statement_date": self.statement_date.isoformat() if self.statement_date else None,
            "statement_number": self.statement_number,
            "total_pages": self.total_pages,
        }


def _texts(lines: Iterable[Union[LogicalLine, str]]) -> list[str]:
    return [line.text if isinstance(line, LogicalLine) else str(line) for line in lines]


def extract_issuer(lines: Iterable[Union[LogicalLine, str]]) -> str:
    """
    Identify the issuing bank from the statement header.

    Args:
        lines: Normalized statement lines

    Returns:
        Bank name, or "Unknown"
    """
    header_text = " ".join(_texts(lines)[:HEADER_LINE_COUNT])

    for pattern, name in ISSUER_PATTERNS:
        if pattern.search(header_text):
            logger.debug(f"Issuer matched: {name}")
            return name

    lowered = header_text.lower()
    if any(keyword in lowered for keyword in STATEMENT_KEYWORDS):
        match = GENERIC_ISSUER_PATTERN.search(header_text)
        if match:
            candidate = match.group(1).strip()
            if 2 < len(candidate) < 50:
                return f"{candidate} Bank"

    logger.debug("Issuer not recognized")
    return UNKNOWN_ISSUER


def _parse_statement_date(value: str) -> Optional[date]:
    for fmt in STATEMENT_DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def _find_statement_date(texts: tuple[str, ...]) -> Optional[date]:
    for text in texts:
        for pattern in STATEMENT_DATE_PATTERNS:
            match = pattern.search(text)
            if not match:
                continue
            parsed = _parse_statement_date(match.group(1).strip())
            if parsed:
                return parsed
    return None


def _find_statement_number(texts: tuple[str, ...]) -> Optional[str]:
    for text in texts:
        for pattern in STATEMENT_NUMBER_PATTERNS:
            match = pattern.search(text)
            if match and STATEMENT_NUMBER_SHAPE.match(match.group(1).strip()):
                return match.group(1).strip()
    return None


def _find_total_pages(texts: tuple[str, ...]) -> Optional[int]:
    for text in texts:
        for pattern in TOTAL_PAGES_PATTERNS:
            match = pattern.search(text)
            if match:
                pages = int(match.group(1))
                if 0 < pages <= MAX_PAGES:
                    return pages
    return None


def extract_statement_metadata(
    lines: Iterable[Union[LogicalLine, str]],
    page_count: Optional[int] = None
) -> StatementMetadata:
    """
    Look up statement date, statement number and page count.

    The decoder's page count is authoritative; "Page X of Y" text is only a
    fallback when it is not available.

    Args:
        lines: Normalized statement lines
        page_count: Page count reported by the document decoder

    Returns:
        StatementMetadata
    """
    texts = _texts(lines)
    header_text = " ".join(texts[:HEADER_LINE_COUNT])
    footer_text = " ".join(texts[-FOOTER_LINE_COUNT:])
    all_text = " ".join(texts)

    total_pages = page_count if page_count else _find_total_pages((footer_text, all_text))

    return StatementMetadata(
        statement_date=_find_statement_date((header_text, footer_text)),
        statement_number=_find_statement_number((header_text, footer_text)),
        total_pages=total_pages,
    )


# Account details sit in the statement header
ACCOUNT_HEADER_LINE_COUNT = 100

ACCOUNT_NUMBER_PATTERNS = (
    re.compile(r'Account\s+(?:Number|No\.?|#)\s*:?\s*([\d\s*\-]+)', re.IGNORECASE),
    re.compile(r'Account\s*:?\s*([\d\s*\-]{4,})', re.IGNORECASE),
    re.compile(r'\bAcc\s*:?\s*([\d\s*\-]{4,})', re.IGNORECASE),
)

# Longest first so "Savings Account" wins over "Savings"
ACCOUNT_TYPES = (
    "Transaction Account", "Checking Account", "Savings Account",
    "Current Account", "Deposit Account", "Credit Card",
    "Checking", "Savings", "Current", "Deposit", "Credit",
)
ACCOUNT_TYPE_PATTERNS = tuple(
    (re.compile(r'\b' + re.escape(name) + r'\b', re.IGNORECASE), name)
    for name in ACCOUNT_TYPES
)

# Statement amounts: optional sign, space or comma grouped thousands, two decimals
_BALANCE_VALUE = r'\s*:?\s*(-?\d{1,3}(?:[ ,]\d{3})+\.\d{2}|-?\d+\.\d{2})'
OPENING_BALANCE_PATTERNS = (
    re.compile(r'(?:Opening|Beginning|Starting)\s+Balance' + _BALANCE_VALUE, re.IGNORECASE),
    re.compile(r'Balance\s+at\s+Start' + _BALANCE_VALUE, re.IGNORECASE),
)
CLOSING_BALANCE_PATTERNS = (
    re.compile(r'(?:Closing|Ending|Final)\s+Balance' + _BALANCE_VALUE, re.IGNORECASE),
    re.compile(r'Balance\s+at\s+End' + _BALANCE_VALUE, re.IGNORECASE),
    re.compile(r'New\s+Balance' + _BALANCE_VALUE, re.IGNORECASE),
)

ADDRESS_LINE_PATTERNS = (
    re.compile(r'^\d+\s+[A-Z]'),
    re.compile(r'^\d+\s+\d+'),
    re.compile(r'\b(?:STREET|ST|ROAD|RD|AVENUE|AVE|DRIVE|DR|LANE|LN|BOULEVARD|BLVD|CIRCLE|CIR|COURT|CT)\b', re.IGNORECASE),
    re.compile(r'\b(?:CITY|TOWN|PARK|ZONE|AREA|EKURHULENI|STELLENBOSCH)\b', re.IGNORECASE),
)
TITLED_NAME_PATTERN = re.compile(r'^(?:MR|MRS|MS|DR|PROF)\.?\s+[A-Z][A-Z\s]{2,60}$', re.IGNORECASE)
UPPERCASE_NAME_PATTERN = re.compile(r'^[A-Z][A-Z\s]{2,50}$')
LABELLED_NAME_PATTERN = re.compile(
    r'\b(?:Account\s+Holder|Account\s+Name|Holder|Name)\s*:\s*([A-Z][a-zA-Z\s]+)',
    re.IGNORECASE
)
TRANSACTION_WORDS = ("fee", "payment", "notification", "category", "money in", "money out", "balance")
_AMOUNT = re.compile(r'\d+\.\d{2}')

INTEREST_EARNED_DESCRIPTION = "interest received"


@dataclass(frozen=True)
class AccountInfo:
    """Account holder details and headline balances."""
    account_number: Optional[str] = None
    account_holder_name: Optional[str] = None
    account_type: Optional[str] = None
    opening_balance: Optional[Decimal] = None
    closing_balance: Optional[Decimal] = None
    interest_earned: Optional[Decimal] = None
    interest_charged: Optional[Decimal] = None

    def to_dict(self) -> dict:
        def as_float(value: Optional[Decimal]) -> Optional[float]:
            return float(value) if value is not None else None

        return {
            "account_number": self.account_number,
            "account_holder_name": self.account_holder_name,
            "account_type": self.account_type,
            "opening_balance": as_float(self.opening_balance),
            "closing_balance": as_float(self.closing_balance),
            "interest_earned": as_float(self.interest_earned),
            "interest_charged": as_float(self.interest_charged),
        }


def _header_before_section(texts: list[str], section_marker: str) -> list[str]:
    """Lines above the transaction listing, where the account block lives."""
    header = texts[:ACCOUNT_HEADER_LINE_COUNT]
    marker = section_marker.lower()
    for index, text in enumerate(header):
        if marker in text.lower():
            return header[:index]
    return header


def _looks_like_transaction(text: str) -> bool:
    lowered = text.lower()
    return any(word in lowered for word in TRANSACTION_WORDS) or bool(_AMOUNT.search(text))


def _find_account_number(texts: list[str]) -> Optional[str]:
    for text in texts:
        for pattern in ACCOUNT_NUMBER_PATTERNS:
            match = pattern.search(text)
            if not match:
                continue
            number = match.group(1).strip()
            if len(number) >= 4 and any(ch.isdigit() for ch in number):
                return number
    return None


def _find_account_holder(texts: list[str]) -> Optional[str]:
    """
    The holder's name is printed directly above the postal address. Failing
    that, look for a titled name ("MR J SMITH") or a labelled one
    ("Account Holder: J Smith").
    """
    for current, following in zip(texts, texts[1:]):
        name = current.strip()
        if not any(pattern.search(following.strip()) for pattern in ADDRESS_LINE_PATTERNS):
            continue
        if _looks_like_transaction(name):
            continue
        if TITLED_NAME_PATTERN.match(name) or UPPERCASE_NAME_PATTERN.match(name):
            return name

    candidates = [text.strip() for text in texts if not _looks_like_transaction(text)]

    for text in candidates:
        if TITLED_NAME_PATTERN.match(text) and 2 <= len(text.split()) <= 6:
            return text

    for text in candidates:
        match = LABELLED_NAME_PATTERN.search(text)
        if match and 3 <= len(match.group(1).strip()) <= 100:
            return match.group(1).strip()

    return None


def _find_account_type(texts: list[str]) -> Optional[str]:
    header_text = " ".join(texts)
    for pattern, name in ACCOUNT_TYPE_PATTERNS:
        if pattern.search(header_text):
            return name
    return None


def _find_balance(header_text: str, patterns: tuple[re.Pattern, ...]) -> Optional[Decimal]:
    for pattern in patterns:
        match = pattern.search(header_text)
        if not match:
            continue
        try:
            return Decimal(re.sub(r'[\s,]', '', match.group(1)))
        except InvalidOperation:
            logger.debug(f"Unreadable balance value: {match.group(1)}")
    return None


def extract_account_info(
    lines: Iterable[Union[LogicalLine, str]],
    transactions: Sequence[DraftTransaction] = (),
    section_marker: Optional[str] = None
) -> AccountInfo:
    """
    Look up account number, holder, type and headline balances.

    Balances printed in the header win; otherwise the first and last
    transaction balances are used. Interest earned sums positive
    "Interest Received" lines; interest charged is the total of fees.

    Args:
        lines: Normalized statement lines
        transactions: Non-duplicate transactions in document order
        section_marker: Phrase introducing the transaction listing

    Returns:
        AccountInfo
    """
    texts = _texts(lines)
    header = _header_before_section(texts, section_marker or config.SECTION_MARKER)
    balance_text = " ".join(texts[:ACCOUNT_HEADER_LINE_COUNT])

    holder = _find_account_holder(header)
    if holder is None:
        # The statement number often carries the holder's identifier
        holder = _find_statement_number((" ".join(header),))

    opening = _find_balance(balance_text, OPENING_BALANCE_PATTERNS)
    closing = _find_balance(balance_text, CLOSING_BALANCE_PATTERNS)
    if opening is None and transactions:
        opening = transactions[0].balance
    if closing is None and transactions:
        closing = transactions[-1].balance

    interest = [
        t.amount for t in transactions
        if INTEREST_EARNED_DESCRIPTION in t.description.lower() and t.amount > 0
    ]
    fees = [t.fee for t in transactions if t.fee is not None]

    info = AccountInfo(
        account_number=_find_account_number(header),
        account_holder_name=holder,
        account_type=_find_account_type(header),
        opening_balance=opening,
        closing_balance=closing,
        interest_earned=sum(interest, Decimal("0.00")) if interest else None,
        interest_charged=sum(fees, Decimal("0.00")),
    )
    logger.debug(f"Account info: {info}")
    return info
