"""
Financial Rules Module
Defines the category label vocabulary, boilerplate blacklist, fee heuristic
and transaction type derivation used by the transaction extractor.
"""

import re
from decimal import Decimal
from enum import Enum
from typing import NamedTuple, Optional
import logging

logger = logging.getLogger(__name__)


class TransactionType(Enum):
    """Transaction type enumeration."""
    CREDIT = "Credit"
    DEBIT = "Debit"
    TRANSFER = "Transfer"
    UNKNOWN = "Unknown"


class LabelKind(Enum):
    """How a trailing label is treated once stripped from a description."""
    CATEGORY = "category"  # the label names the transaction category
    SUFFIX = "suffix"      # layout residue, stripped but not a category


class LabelRule(NamedTuple):
    label: str
    kind: LabelKind


# Labels the statement layout appends straight after the description.
DEFAULT_LABELS: tuple[LabelRule, ...] = (
    LabelRule("Other Income", LabelKind.CATEGORY),
    LabelRule("Transfer", LabelKind.CATEGORY),
    LabelRule("Sweep Transfer", LabelKind.CATEGORY),
    LabelRule("Fees", LabelKind.CATEGORY),
    LabelRule("Rental Income", LabelKind.CATEGORY),
    LabelRule("Digital Payments", LabelKind.CATEGORY),
    LabelRule("Furniture & Appliances", LabelKind.CATEGORY),
    LabelRule("Cellphone", LabelKind.CATEGORY),
    LabelRule("Digital Subscriptions", LabelKind.CATEGORY),
    LabelRule("Interest", LabelKind.CATEGORY),
    LabelRule("Furniture &", LabelKind.SUFFIX),
    LabelRule("New York Us", LabelKind.SUFFIX),
    LabelRule("New York", LabelKind.SUFFIX),
    LabelRule("New", LabelKind.SUFFIX),
)

# Banners that superficially parse like transactions but are not.
BOILERPLATE_PHRASES: tuple[str, ...] = (
    "Page of",
    "Fee Summary",
    "Available Balance",
    "Tax Invoice",
    "VAT Registration",
    "Spending Summary",
    "Interest, Rewards and Fees",
)

TRANSFER_KEYWORDS: tuple[str, ...] = ("transfer", "sweep")

FEES_CATEGORY = "Fees"

# A description that ends in a detached amount, e.g. "Cellphone-8.00"
_TRAILING_AMOUNT = re.compile(r'\s*-\d+\.\d{2}$|\s*-$')


def _at_word_start(text: str, start: int) -> bool:
    """
    True if a label found at ``start`` begins a word. Labels are often glued
    to the description ("MadiopeOther Income"), so a capital following a
    non-capital also counts, while "Renew" does not end in "New".
    """
    if start <= 0:
        return start == 0
    previous, first = text[start - 1], text[start]
    if not previous.isalnum():
        return True
    return first.isupper() and not previous.isupper()


class LabelVocabulary:
    """
    Ordered label table, sorted longest-first once at construction so that
    "Sweep Transfer" wins over "Transfer" and "New York Us" over "New".
    """

    def __init__(self, rules: tuple[LabelRule, ...] = DEFAULT_LABELS):
        # sorted() is stable: equal-length labels keep their configured order
        self.rules: tuple[LabelRule, ...] = tuple(
            sorted(rules, key=lambda rule: len(rule.label), reverse=True)
        )
        self.categories: tuple[str, ...] = tuple(
            rule.label for rule in self.rules if rule.kind is LabelKind.CATEGORY
        )

    def match_suffix(self, text: str) -> Optional[LabelRule]:
        """Return the longest label that ``text`` ends with, if any."""
        lowered = text.lower()
        for rule in self.rules:
            start = len(text) - len(rule.label)
            if lowered.endswith(rule.label.lower()) and _at_word_start(text, start):
                return rule
        return None

    def strip_suffix(self, text: str) -> tuple[str, Optional[LabelRule]]:
        """Remove one trailing label from ``text``."""
        rule = self.match_suffix(text)
        if rule is None:
            return text, None
        return text[:len(text) - len(rule.label)].rstrip(), rule

    def find_category(self, text: str) -> Optional[str]:
        """Longest category label contained anywhere in ``text``."""
        lowered = text.lower()
        for label in self.categories:
            if label.lower() in lowered:
                return label
        return None

    def clean_description(self, raw_description: str) -> tuple[str, Optional[str]]:
        """
        Strip trailing labels from a raw description.

        One label is stripped, then any detached trailing amount, then
        stripping is applied once more for a label exposed by the first cut.

        Returns:
            tuple: (description, category)
        """
        description, first = self.strip_suffix(raw_description.strip())
        category = first.label if first and first.kind is LabelKind.CATEGORY else None

        if first is not None:
            description = _TRAILING_AMOUNT.sub("", description).rstrip()
            description, second = self.strip_suffix(description)
            if category is None and second is not None and second.kind is LabelKind.CATEGORY:
                category = second.label

        if category is None:
            category = self.find_category(raw_description)

        return description.strip(), category


def is_boilerplate(raw_description: str) -> bool:
    """Check if pre-amount text is a known non-transaction banner."""
    lowered = raw_description.lower()
    return any(phrase.lower() in lowered for phrase in BOILERPLATE_PHRASES)


def is_fee_candidate(
    value: Decimal,
    min_magnitude: Decimal = Decimal("0.01"),
    max_magnitude: Decimal = Decimal("100.00")
) -> bool:
    """
    Fees are always negative and small; both bounds are exclusive.

    Args:
        value: Signed token value
        min_magnitude: Rounding-noise floor
        max_magnitude: Upper bound on a plausible fee

    Returns:
        True if the token should be read as a fee
    """
    return value < 0 and min_magnitude < abs(value) < max_magnitude


def derive_transaction_type(amount: Decimal, raw_description: str) -> TransactionType:
    """
    Derive transaction type from amount sign and description keywords.

    Credit transactions: positive
    Transfer: negative with a transfer/sweep keyword
    Debit transactions: negative otherwise
    """
    if amount > 0:
        return TransactionType.CREDIT
    if amount < 0:
        lowered = raw_description.lower()
        if any(keyword in lowered for keyword in TRANSFER_KEYWORDS):
            return TransactionType.TRANSFER
        return TransactionType.DEBIT

    logger.debug(f"Zero amount for '{raw_description[:40]}', type unknown")
    return TransactionType.UNKNOWN


def format_amount_display(amount: Decimal) -> str:
    """
    Format amount for display with explicit sign.

    Positive amounts: +1600.00
    Negative amounts: -250.00
    """
    if amount >= 0:
        return f"+{amount:.2f}"
    else:
        return f"{amount:.2f}"  # Negative sign already included
