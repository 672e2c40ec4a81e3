"""
Shared fixtures for the statement parser tests.
"""

from datetime import date
from decimal import Decimal

import pytest

from statement_parser.extractors.financial_rules import TransactionType
from statement_parser.extractors.regex_extractor import DraftTransaction

PAGE_ONE = [
    "Capitec Bank",
    "Main Account Statement",
    "Statement Date: 05/01/2026",
    "Statement Number: STMT-20260105",
    "Transaction History",
    "Date Description Category Money In Money Out Fee* Balance",
    "01/11/2025 Payment Received: M Madiope Other Income 200.00 238.04",
    "01/11/2025 Banking App External Payment: King Rental Income -195.00 -2.00 41.04",
    "01/11/2025 Live Better Interest Sweep Transfer -0.16 40.88",
    "03/11/2025 Monthly Account Admin Fee Fees -7.50 33.38",
    "Includes VAT at 15%",
    "Page 1 of 2",
]

PAGE_TWO = [
    "04/11/2025 Card Purchase: Takealot Online",
    "Cape Town Furniture & Appliances -1 000.00 -966.62",
    "05/11/2025 Fee Summary 12.00 -978.62",
    "02/12/2025 Insf. Funds Distrokid Musician New",
    "01/11/2025 Payment Received: M Madiope Other Income 200.00 238.04",
    "Page 2 of 2",
]

SAMPLE_STATEMENT = "\n".join(PAGE_ONE) + "\f" + "\n".join(PAGE_TWO)


@pytest.fixture
def sample_statement() -> str:
    """Two-page statement text with a wrapped line, noise and one duplicate."""
    return SAMPLE_STATEMENT


@pytest.fixture
def make_draft():
    """Factory for draft transactions with sensible defaults."""
    def _make(**overrides) -> DraftTransaction:
        values = {
            "date": date(2025, 11, 1),
            "description": "Payment Received: M Madiope",
            "raw_description": "Payment Received: M Madiope Other Income",
            "amount": Decimal("200.00"),
            "balance": Decimal("238.04"),
            "transaction_type": TransactionType.CREDIT,
            "fee": None,
            "category": "Other Income",
        }
        values.update(overrides)
        return DraftTransaction(**values)
    return _make


@pytest.fixture
def sample_pages() -> tuple[list[str], list[str]]:
    """The sample statement's lines, one list per page."""
    return PAGE_ONE, PAGE_TWO
