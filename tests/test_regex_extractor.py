from datetime import date
from decimal import Decimal

import pytest

from statement_parser.extractors.financial_rules import (
    LabelKind,
    LabelRule,
    LabelVocabulary,
    TransactionType,
)
from statement_parser.extractors.normalizer import LogicalLine, normalize
from statement_parser.extractors.regex_extractor import (
    RejectedLine,
    RejectionReason,
    TransactionExtractor,
    extract_transactions,
    parse_date,
)


def extract_one(line: str):
    transactions = extract_transactions(["Transaction History", line])
    assert len(transactions) == 1
    return transactions[0]


def test_credit_with_category():
    """Money In line: amount then balance, trailing category stripped."""
    txn = extract_one("01/11/2025 Payment Received: M Madiope Other Income 200.00 238.04")

    assert txn.date == date(2025, 11, 1)
    assert txn.description == "Payment Received: M Madiope"
    assert txn.category == "Other Income"
    assert txn.amount == Decimal("200.00")
    assert txn.fee is None
    assert txn.balance == Decimal("238.04")
    assert txn.transaction_type is TransactionType.CREDIT


def test_debit_with_fee():
    txn = extract_one(
        "16/12/2025 Banking App External PayShap Payment: King Digital Payments -100.00 -6.00 43.56"
    )

    assert txn.amount == Decimal("-100.00")
    assert txn.fee == Decimal("6.00")
    assert txn.balance == Decimal("43.56")
    assert txn.category == "Digital Payments"
    assert txn.description == "Banking App External PayShap Payment: King"
    assert txn.transaction_type is TransactionType.DEBIT


def test_space_grouped_thousands():
    txn = extract_one(
        "08/12/2025 Rana General Trading P Witbank (Card 7938) Furniture & Appliances -1 000.00 520.06"
    )

    assert txn.amount == Decimal("-1000.00")
    assert txn.balance == Decimal("520.06")
    assert txn.description == "Rana General Trading P Witbank (Card 7938)"
    assert txn.category == "Furniture & Appliances"


def test_line_without_amounts_is_dropped():
    transactions = extract_transactions([
        "Transaction History",
        "02/12/2025 Insf. Funds Distrokid Musician New",
    ])

    assert transactions == []


def test_line_with_only_a_balance_is_incomplete():
    result = TransactionExtractor().extract_with_report([
        "Transaction History",
        "02/12/2025 Opening Balance 238.04",
    ])

    assert result.transactions == []
    assert result.rejected[0].reason is RejectionReason.INCOMPLETE


@pytest.mark.parametrize("second_token, expected_fee", [
    ("-100.00", None),
    ("-99.99", Decimal("99.99")),
    ("-0.01", None),
    ("-0.02", Decimal("0.02")),
    ("5.00", None),
])
def test_fee_threshold_boundary(second_token, expected_fee):
    """Fee bounds are exclusive: -100.00 and -0.01 are secondary amounts."""
    txn = extract_one(f"10/12/2025 Banking App External Payment: King Digital Payments -150.00 {second_token} 43.56")

    assert txn.amount == Decimal("-150.00")
    assert txn.fee == expected_fee
    assert txn.balance == Decimal("43.56")


def test_fee_threshold_is_configurable():
    extractor = TransactionExtractor(fee_max_magnitude=Decimal("200.00"))

    transactions = extractor.extract([
        "10/12/2025 Banking App External Payment: King -500.00 -150.00 43.56",
    ])

    assert transactions[0].fee == Decimal("150.00")


def test_fee_only_line():
    """A two-token line categorized as Fees is the fee itself."""
    txn = extract_one("03/11/2025 Monthly Account Admin Fee Fees -7.50 33.38")

    assert txn.category == "Fees"
    assert txn.amount == Decimal("-7.50")
    assert txn.fee == Decimal("7.50")
    assert txn.description == "Monthly Account Admin Fee"
    assert txn.transaction_type is TransactionType.DEBIT


def test_transfer_keyword_makes_transfer():
    txn = extract_one("01/11/2025 Live Better Interest Sweep Transfer -0.16 91.50")

    assert txn.transaction_type is TransactionType.TRANSFER
    assert txn.category == "Sweep Transfer"
    assert txn.amount == Decimal("-0.16")


def test_positive_transfer_is_credit():
    txn = extract_one("01/11/2025 Transfer From Savings Transfer 50.00 91.50")

    assert txn.transaction_type is TransactionType.CREDIT


def test_zero_amount_is_unknown():
    txn = extract_one("01/11/2025 Card Reversal 0.00 91.50")

    assert txn.transaction_type is TransactionType.UNKNOWN


def test_label_glued_to_description():
    txn = extract_one("01/11/2025 Payment Received: M MadiopeOther Income 200.00 238.04")

    assert txn.description == "Payment Received: M Madiope"
    assert txn.category == "Other Income"


def test_suffix_label_needs_word_start():
    txn = extract_one("01/11/2025 Magazine Renew -45.00 193.04")

    assert txn.description == "Magazine Renew"


def test_second_label_is_stripped_once():
    txn = extract_one("01/11/2025 Netflix.com Los Gatos New York Us Digital Subscriptions -99.00 139.04")

    assert txn.description == "Netflix.com Los Gatos"
    assert txn.category == "Digital Subscriptions"


def test_category_found_inside_description():
    txn = extract_one("01/11/2025 Interest Received 0.45 91.95")

    assert txn.category == "Interest"
    assert txn.description == "Interest Received"


def test_custom_vocabulary_is_sorted_longest_first():
    vocabulary = LabelVocabulary((
        LabelRule("Food", LabelKind.CATEGORY),
        LabelRule("Fast Food", LabelKind.CATEGORY),
    ))
    extractor = TransactionExtractor(vocabulary=vocabulary)

    transactions = extractor.extract(["01/11/2025 Burger Place Fast Food -80.00 120.00"])

    assert vocabulary.rules[0].label == "Fast Food"
    assert transactions[0].category == "Fast Food"
    assert transactions[0].description == "Burger Place"


@pytest.mark.parametrize("line", [
    "05/11/2025 Fee Summary 12.00 45.00",
    "05/11/2025 Available Balance 238.04 238.04",
    "05/11/2025 VAT Registration No 4123 15.00 45.00",
    "05/11/2025 Interest, Rewards and Fees 1.20 45.00",
])
def test_boilerplate_is_rejected(line):
    result = TransactionExtractor().extract_with_report(["Transaction History", line])

    assert result.transactions == []
    assert result.rejected[0].reason is RejectionReason.BOILERPLATE


def test_unparseable_date_is_dropped_without_error():
    result = TransactionExtractor().extract_with_report([
        "Transaction History",
        "31/02/2025 Impossible Date -10.00 20.00",
        "01/03/2025 Next One -10.00 10.00",
    ])

    assert [t.description for t in result.transactions] == ["Next One"]
    assert result.rejected == [
        RejectedLine("31/02/2025 Impossible Date -10.00 20.00", RejectionReason.BAD_DATE, None)
    ]


@pytest.mark.parametrize("value, expected", [
    ("01/11/2025", date(2025, 11, 1)),
    ("1/2/2025", date(2025, 2, 1)),
    ("05/01/26", date(2026, 1, 5)),
    ("5/1/26", date(2026, 1, 5)),
    ("32/01/2025", None),
])
def test_parse_date_formats(value, expected):
    assert parse_date(value) == expected


def test_wrapped_description_is_merged():
    lines = [
        "Transaction History",
        "04/11/2025 Card Purchase: Takealot Online",
        "Cape Town Furniture & Appliances -1 000.00 -966.62",
        "05/11/2025 Coffee Shop -35.00 -1 001.62",
    ]

    result = TransactionExtractor().extract_with_report(lines)

    first, second = result.transactions
    assert first.description == "Card Purchase: Takealot Online Cape Town"
    assert first.amount == Decimal("-1000.00")
    assert first.balance == Decimal("-966.62")
    assert second.balance == Decimal("-1001.62")
    assert result.stats["multi_line_merges"] == 1


def test_merge_stops_at_dated_and_noise_lines():
    extractor = TransactionExtractor()
    lines = [
        LogicalLine("04/11/2025 Card Purchase"),
        LogicalLine("Includes VAT at 15%"),
        LogicalLine("Takealot -100.00 20.00"),
    ]

    assert extractor.merge_continuation(lines, 1, "Card Purchase") == (0, "Card Purchase")

    lines[1] = LogicalLine("05/11/2025 Next -1.00 19.00")
    assert extractor.merge_continuation(lines, 1, "Card Purchase") == (0, "Card Purchase")


def test_merge_is_capped():
    extractor = TransactionExtractor(max_continuation_lines=2)
    lines = [LogicalLine(f"part {i}") for i in range(5)]

    consumed, merged = extractor.merge_continuation(lines, 0, "Start")

    assert consumed == 2
    assert merged == "Start part 0 part 1"


def test_merge_does_not_run_once_amounts_are_present():
    extractor = TransactionExtractor()
    lines = [LogicalLine("Extra words")]

    assert extractor.merge_continuation(lines, 0, "Payment 1.00 2.00") == (0, "Payment 1.00 2.00")


def test_noise_inside_section_keeps_section_open():
    lines = [
        "Transaction History",
        "Date Description Money In Money Out Balance",
        "01/11/2025 First Payment 10.00 20.00",
        "Includes VAT at 15%",
        "Generated 05/01/2026 Page 1 of 2",
        "02/11/2025 Second Payment 10.00 30.00",
    ]

    result = TransactionExtractor().extract_with_report(lines)

    assert [t.description for t in result.transactions] == ["First Payment", "Second Payment"]
    assert result.stats["noise_lines_skipped"] == 2


def test_missing_header_is_tolerated():
    transactions = extract_transactions([
        "Transaction History",
        "Some banner text",
        "01/11/2025 First Payment 10.00 20.00",
    ])

    assert len(transactions) == 1


def test_dated_lines_before_marker_are_used_by_default():
    transactions = extract_transactions(["01/11/2025 First Payment 10.00 20.00"])

    assert len(transactions) == 1


def test_marker_can_be_required():
    extractor = TransactionExtractor(require_section_marker=True)
    lines = [
        "Statement 01/11/2025",
        "01/10/2025 Previous Period Payment 10.00 20.00",
        "Transaction History",
        "01/11/2025 First Payment 10.00 30.00",
    ]

    transactions = extractor.extract(lines)

    assert [t.description for t in transactions] == ["First Payment"]


def test_no_lines_means_no_transactions():
    assert extract_transactions([]) == []
    assert extract_transactions(["Capitec Bank", "Nothing to see"]) == []


def test_page_number_is_carried(sample_statement):
    transactions = TransactionExtractor().extract(normalize(sample_statement))

    assert [t.source_page_number for t in transactions] == [1, 1, 1, 1, 2, 2]


def test_emission_follows_document_order(sample_statement):
    transactions = TransactionExtractor().extract(normalize(sample_statement))

    assert [t.description for t in transactions] == [
        "Payment Received: M Madiope",
        "Banking App External Payment: King",
        "Live Better",
        "Monthly Account Admin Fee",
        "Card Purchase: Takealot Online Cape Town",
        "Payment Received: M Madiope",
    ]


def test_balance_is_last_monetary_token(sample_statement):
    """The running balance is always the last amount on its line."""
    transactions = TransactionExtractor().extract(normalize(sample_statement))

    assert [t.balance for t in transactions] == [
        Decimal(value) for value in ("238.04", "41.04", "40.88", "33.38", "-966.62", "238.04")
    ]


def test_extractor_instance_is_reusable(sample_statement):
    extractor = TransactionExtractor()
    lines = normalize(sample_statement)

    assert extractor.extract(lines) == extractor.extract(lines)
