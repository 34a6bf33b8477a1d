"""Report tables, their three renderings, formula escaping, and the download endpoint."""

import csv
import io
from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook

from welfund.services.reports import main as reports_main
from welfund.services.reports.generator import (
    ReportRenderer,
    balances_table,
    contributions_table,
    disbursements_table,
    expenses_table,
    report_filename,
    spreadsheet_safe,
)


def _contribution(member_id, amount, name="Jane Wanjiku"):
    return {
        "member_id": member_id,
        "member_name": name,
        "tns_number": None,
        "amount": Decimal(amount),
        "contribution_date": date(2024, 3, 1),
        "contribution_type": "monthly_contribution",
        "status": "confirmed",
    }


def test_contributions_summary():
    table = contributions_table(
        [_contribution("m1", "100"), _contribution("m1", "300"), _contribution("m2", "200", "Ann")],
        start_date=date(2024, 1, 1),
    )
    summary = dict(table.summary)
    assert summary["Total Contributions:"] == Decimal("600")
    assert summary["Number of Contributors:"] == 2
    assert summary["Average per Member:"] == Decimal("300.00")
    assert summary["Total Records:"] == 3
    assert table.period == "Period: 2024-01-01 to All"
    assert table.rows[0][0] == "N/A"


def test_empty_reports_have_zero_averages():
    assert dict(contributions_table([]).summary)["Average per Member:"] == Decimal("0.00")
    assert dict(disbursements_table([]).summary)["Average per Recipient:"] == Decimal("0.00")


def test_balances_summary_counts_negative_members():
    rows = [
        {"member_id": "a", "member_name": "A", "tns_number": "TNS000001", "current_balance": Decimal("-20"),
         "total_contributions": Decimal("10"), "total_disbursements": Decimal("30")},
        {"member_id": "b", "member_name": "B", "tns_number": "TNS000002", "current_balance": Decimal("50"),
         "total_contributions": Decimal("50"), "total_disbursements": Decimal("0")},
    ]
    summary = dict(balances_table(rows).summary)
    assert summary["Total Current Balance:"] == Decimal("30")
    assert summary["Members with Negative Balance:"] == 1
    assert summary["Total Members:"] == 2


def _expense(amount, month_year, category="Bank charges"):
    year, month = map(int, month_year.split("-"))
    return {
        "amount": Decimal(amount),
        "expense_date": date(year, month, 5),
        "expense_category": category,
        "description": None,
        "month_year": month_year,
    }


def test_expenses_summary_and_monthly_breakdown():
    table = expenses_table(
        [_expense("100", "2024-02"), _expense("40", "2024-03", "Stationery"), _expense("60", "2024-02")]
    )
    summary = dict(table.summary)
    assert summary["Total Expenses:"] == Decimal("200")
    assert summary["Number of Categories:"] == 2
    assert summary["Average per Entry:"] == Decimal("66.67")
    heading, headers, rows = table.sections[0]
    assert heading == "MONTHLY BREAKDOWN"
    assert rows == [["2024-02", Decimal("160")], ["2024-03", Decimal("40")]]


def test_expenses_csv_includes_breakdown():
    table = expenses_table([_expense("100", "2024-02")])
    rows = list(csv.reader(io.StringIO(ReportRenderer("Test Welfare").render_csv(table).decode("utf-8-sig"))))
    assert ["MONTHLY BREAKDOWN"] in rows
    assert ["2024-02", "100"] in rows
    assert ReportRenderer().render_pdf(table).startswith(b"%PDF")


@pytest.fixture
def table():
    return contributions_table([_contribution("m1", "100"), _contribution("m2", "250")])


def test_csv_layout(table):
    rows = list(csv.reader(io.StringIO(ReportRenderer("Test Welfare").render_csv(table).decode("utf-8-sig"))))
    assert rows[0] == ["Test Welfare"]
    assert rows[1] == ["Contributions Report"]
    assert ["TNS Number", "Member Name", "Amount (KES)", "Date", "Type", "Status"] in rows
    assert ["Total Contributions:", "350"] in rows


def test_excel_layout(table):
    wb = load_workbook(io.BytesIO(ReportRenderer("Test Welfare").render_excel(table)))
    ws = wb["Contributions"]
    assert ws["A1"].value == "Test Welfare"
    values = [[cell.value for cell in row] for row in ws.iter_rows()]
    header_index = values.index(["TNS Number", "Member Name", "Amount (KES)", "Date", "Type", "Status"])
    assert values[header_index + 1][1] == "Jane Wanjiku"
    assert ["SUMMARY", None, None, None, None, None] in values


@pytest.fixture
def hostile_table():
    return contributions_table([_contribution("m1", "100", name='=HYPERLINK("http://x") X')])


def test_csv_neutralises_formula_cells(hostile_table):
    rows = list(csv.reader(io.StringIO(ReportRenderer().render_csv(hostile_table).decode("utf-8-sig"))))
    names = [row[1] for row in rows if len(row) == 6 and row[0] == "N/A"]
    assert names == ['\'=HYPERLINK("http://x") X']


def test_excel_stores_formula_like_names_as_text(hostile_table):
    ws = load_workbook(io.BytesIO(ReportRenderer().render_excel(hostile_table)))["Contributions"]
    cell = next(row[1] for row in ws.iter_rows() if row[0].value == "N/A")
    assert cell.data_type == "s"
    assert cell.value == '\'=HYPERLINK("http://x") X'


@pytest.mark.parametrize("text", ["+254700", "-2+3", "@SUM(A1)", "\tcmd", "\rcmd"])
def test_formula_prefixes_are_quoted(text):
    assert spreadsheet_safe(text) == "'" + text


def test_plain_values_pass_through():
    assert spreadsheet_safe("Jane Wanjiku") == "Jane Wanjiku"
    assert spreadsheet_safe(Decimal("-20")) == Decimal("-20")


def test_pdf_is_rendered(table):
    content = ReportRenderer().render_pdf(table)
    assert content.startswith(b"%PDF")


def test_unknown_format_rejected(table):
    with pytest.raises(ValueError):
        ReportRenderer().render(table, "docx")


def test_report_filename():
    assert report_filename("balances", "xlsx", date(2024, 9, 16)) == "balances_2024-09-16.xlsx"


@pytest.fixture
def client(ledger, approved_member):
    ledger.create_staff("auditor@welfund.test", "Otieno Auditor", "Auditor")
    ledger.create_staff("sec@welfund.test", "Sally Secretary", "Secretary")
    ledger.record_contribution(approved_member.id, 1000, "monthly_contribution")
    ledger.record_disbursement(approved_member.id, 400, reason="Medical")
    ledger.record_expense(150, "Bank charges", expense_date=date(2024, 3, 2))
    return TestClient(reports_main.app)


AUDITOR = {"x-api-key": "test-key", "x-staff-email": "auditor@welfund.test"}


@pytest.mark.parametrize("report", ["contributions", "disbursements", "balances", "expenses"])
@pytest.mark.parametrize("fmt,media_type", [("csv", "text/csv"), ("pdf", "application/pdf")])
def test_download(client, report, fmt, media_type):
    resp = client.get(f"/reports/{report}.{fmt}", headers=AUDITOR)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith(media_type)
    assert f'filename="{report}_' in resp.headers["content-disposition"]


def test_balances_download_reflects_ledger(client):
    resp = client.get("/reports/balances.xlsx", headers=AUDITOR)
    ws = load_workbook(io.BytesIO(resp.content))["Balances"]
    values = [[cell.value for cell in row] for row in ws.iter_rows()]
    member_row = next(row for row in values if row[1] == "Jane Wanjiku")
    assert Decimal(str(member_row[2])) == Decimal("600")


def test_secretary_cannot_download_reports(client):
    resp = client.get("/reports/balances.csv", headers={"x-api-key": "test-key", "x-staff-email": "sec@welfund.test"})
    assert resp.status_code == 403


def test_bad_requests(client):
    assert client.get("/reports/audit_trail.csv", headers=AUDITOR).status_code == 404
    assert client.get("/reports/balances.docx", headers=AUDITOR).status_code == 400
    resp = client.get(
        "/reports/contributions.csv",
        params={"start_date": "2024-02-01", "end_date": "2024-01-01"},
        headers=AUDITOR,
    )
    assert resp.status_code == 400


def test_downloaded_csv_escapes_registered_names(client, ledger):
    member = ledger.register_member('=HYPERLINK("http://x")', "X", "x@example.org", "0700000009")
    ledger.approve_member(member.id)
    ledger.record_contribution(member.id, 10, "others")

    resp = client.get("/reports/contributions.csv", headers=AUDITOR)

    cells = [cell for row in csv.reader(io.StringIO(resp.content.decode("utf-8-sig"))) for cell in row]
    assert '\'=HYPERLINK("http://x") X' in cells
    assert not any(cell.startswith("=") for cell in cells)
