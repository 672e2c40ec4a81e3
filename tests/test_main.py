import json
from datetime import date
from decimal import Decimal

from statement_parser.extractors.financial_rules import TransactionType
from statement_parser.main import (
    StatementProcessor,
    main,
    process_statement_text,
    summarize_transactions,
)


def test_pipeline_on_sample(sample_statement):
    result = process_statement_text(sample_statement, page_count=2)

    assert result.issuer == "Capitec Bank"
    assert result.metadata.total_pages == 2
    assert len(result.transactions) == 6
    assert [f.is_duplicate for f in result.transactions] == [False] * 5 + [True]

    sweep = result.transactions[2].draft
    assert sweep.transaction_type is TransactionType.TRANSFER
    assert sweep.amount == Decimal("-0.16")

    merged = result.transactions[4].draft
    assert merged.amount == Decimal("-1000.00")
    assert merged.source_page_number == 2


def test_duplicate_report_on_sample(sample_statement):
    result = process_statement_text(sample_statement)

    report = result.duplicate_report
    assert report.total_transactions == 6
    assert report.unique_transactions == 5
    (group,) = report.duplicate_groups
    assert group.original is result.transactions[0]
    assert group.duplicates == (result.transactions[5],)


def test_rejections_are_reported(sample_statement):
    result = process_statement_text(sample_statement)

    reasons = [(r.reason.value, r.page_number) for r in result.rejected]
    assert reasons == [("boilerplate", 2), ("incomplete", 2)]


def test_summary_skips_duplicates(sample_statement):
    summary = process_statement_text(sample_statement).summary

    assert summary.period_start == date(2025, 11, 1)
    assert summary.period_end == date(2025, 11, 4)
    assert summary.opening_balance == Decimal("238.04")
    assert summary.closing_balance == Decimal("-966.62")
    assert summary.total_credits == Decimal("200.00")
    assert summary.total_debits == Decimal("-1202.66")
    assert summary.total_fees == Decimal("9.50")


def test_summary_of_nothing():
    summary = summarize_transactions([])

    assert summary.period_start is None
    assert summary.total_credits == Decimal("0.00")


def test_empty_text_is_not_an_error():
    result = StatementProcessor().process_text("")

    assert result.transactions == []
    assert result.issuer == "Unknown"
    assert result.duplicate_report.total_transactions == 0


def test_to_dict_shape(sample_statement):
    data = process_statement_text(sample_statement).to_dict()

    assert data["issuer"] == "Capitec Bank"
    assert data["period_start"] == "2025-11-01"
    assert data["period_end"] == "2025-11-04"
    assert data["metadata"]["statement_number"] == "STMT-20260105"
    assert "debug" not in data

    first = data["transactions"][0]
    assert first["amount"] == 200.0
    assert first["amount_display"] == "+200.00"
    assert first["type"] == "Credit"
    assert first["currency"] == "ZAR"
    assert len(first["fingerprint"]) == 16
    assert data["transactions"][5]["original_fingerprint"] == first["fingerprint"]


def test_to_dict_debug(sample_statement):
    data = process_statement_text(sample_statement).to_dict(debug=True)

    debug = data["debug"]
    assert debug["normalized_lines_preview"][0] == "Capitec Bank"
    assert debug["stats"]["transactions_found"] == 6
    assert debug["rejected_lines"][0]["reason"] == "boilerplate"
    json.dumps(data)


def test_cli_writes_json_to_stdout(tmp_path, monkeypatch, capsys, sample_statement):
    monkeypatch.chdir(tmp_path)
    statement = tmp_path / "statement.txt"
    statement.write_text(sample_statement, encoding="utf-8")

    exit_code = main([str(statement)])

    assert exit_code == 0
    data = json.loads(capsys.readouterr().out)
    assert data["duplicate_report"]["duplicate_count"] == 1


def test_cli_writes_output_file(tmp_path, monkeypatch, sample_statement):
    monkeypatch.chdir(tmp_path)
    statement = tmp_path / "statement.txt"
    statement.write_text(sample_statement, encoding="utf-8")
    output = tmp_path / "out" / "result.json"

    exit_code = main([str(statement), "--output", str(output), "--debug"])

    assert exit_code == 0
    data = json.loads(output.read_text(encoding="utf-8"))
    assert len(data["transactions"]) == 6
    assert "debug" in data


def test_cli_missing_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    assert main([str(tmp_path / "missing.pdf")]) == 1


def test_cli_unreadable_pdf(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    bogus = tmp_path / "statement.pdf"
    bogus.write_bytes(b"not a pdf at all")

    assert main([str(bogus)]) == 1


def test_header_balances_drive_the_summary():
    text = "\n".join([
        "Capitec Bank",
        "Savings Account",
        "Opening Balance: 1 238.04",
        "Closing Balance: 1 230.00",
        "Transaction History",
        "01/11/2025 Interest Received 0.45 1 238.49",
        "02/11/2025 Monthly Account Admin Fee Fees -7.50 1 230.99",
    ])

    result = process_statement_text(text)

    assert result.summary.opening_balance == Decimal("1238.04")
    assert result.summary.closing_balance == Decimal("1230.00")
    assert result.account_info.account_type == "Savings Account"
    assert result.account_info.interest_earned == Decimal("0.45")
    assert result.account_info.interest_charged == Decimal("7.50")


def test_account_info_in_output(sample_statement):
    data = process_statement_text(sample_statement).to_dict()

    account = data["account_info"]
    assert account["account_holder_name"] == "STMT-20260105"
    assert account["opening_balance"] == 238.04
    assert account["closing_balance"] == -966.62
    assert account["interest_charged"] == 9.5


def test_cli_rejects_non_utf8_text(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    statement = tmp_path / "statement.txt"
    statement.write_bytes(b"Transaction History\n01/11/2025 Caf\xe9 Purchase -10.00 20.00\n")

    assert main([str(statement)]) == 1


def test_cli_unwritable_output(tmp_path, monkeypatch, sample_statement):
    monkeypatch.chdir(tmp_path)
    statement = tmp_path / "statement.txt"
    statement.write_text(sample_statement, encoding="utf-8")
    blocker = tmp_path / "taken"
    blocker.write_text("a file, not a directory", encoding="utf-8")

    assert main([str(statement), "--output", str(blocker / "result.json")]) == 1
