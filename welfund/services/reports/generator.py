"""Contribution, disbursement, balance and expense reports rendered to CSV, Excel and PDF.

Every report is first built as a `ReportTable` (title block, header row, data
rows, summary block, optional extra blocks); the renderers only lay that table out
in their format.
"""

import csv
import io
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from welfund.common.config import settings


REPORTS = ("contributions", "disbursements", "balances", "expenses")
FORMATS = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "pdf": "application/pdf",
}

CENT = Decimal("0.01")

# Leading characters a spreadsheet treats as the start of a formula.
FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


def spreadsheet_safe(value):
    """Quote member-supplied text so CSV and Excel show it instead of evaluating it."""

    if isinstance(value, str) and value.startswith(FORMULA_PREFIXES):
        return "'" + value
    return value


def _safe_row(values) -> list:
    return [spreadsheet_safe(value) for value in values]


@dataclass
class ReportTable:
    """Format-independent content of one report."""

    title: str
    sheet_name: str
    headers: list[str]
    rows: list[list] = field(default_factory=list)
    summary: list[tuple[str, object]] = field(default_factory=list)
    period: str | None = None
    generated_at: datetime = field(default_factory=datetime.now)
    # (heading, column headers, rows) blocks laid out after the summary.
    sections: list[tuple[str, list[str], list[list]]] = field(default_factory=list)


def _period(start_date: date | None, end_date: date | None) -> str | None:
    if not start_date and not end_date:
        return None
    return f"Period: {start_date or 'All'} to {end_date or 'All'}"


def _average(total: Decimal, count: int) -> Decimal:
    return (total / count).quantize(CENT) if count else Decimal("0.00")


def _fmt_date(value) -> str:
    if isinstance(value, (date, datetime)):
        return value.strftime("%d %b %Y")
    return str(value or "")


def contributions_table(rows: list[dict], start_date: date | None = None, end_date: date | None = None) -> ReportTable:
    total = sum((row["amount"] for row in rows), Decimal("0"))
    contributors = len({row["member_id"] for row in rows})
    return ReportTable(
        title="Contributions Report",
        sheet_name="Contributions",
        headers=["TNS Number", "Member Name", "Amount (KES)", "Date", "Type", "Status"],
        rows=[
            [
                row.get("tns_number") or "N/A",
                row["member_name"],
                row["amount"],
                _fmt_date(row["contribution_date"]),
                row["contribution_type"],
                row["status"],
            ]
            for row in rows
        ],
        summary=[
            ("Total Contributions:", total),
            ("Number of Contributors:", contributors),
            ("Average per Member:", _average(total, contributors)),
            ("Total Records:", len(rows)),
        ],
        period=_period(start_date, end_date),
    )


def disbursements_table(rows: list[dict], start_date: date | None = None, end_date: date | None = None) -> ReportTable:
    total = sum((row["amount"] for row in rows), Decimal("0"))
    recipients = len({row["member_id"] for row in rows})
    return ReportTable(
        title="Disbursements Report",
        sheet_name="Disbursements",
        headers=["TNS Number", "Member Name", "Amount (KES)", "Date", "Reason", "Status"],
        rows=[
            [
                row.get("tns_number") or "N/A",
                row["member_name"],
                row["amount"],
                _fmt_date(row["disbursement_date"]),
                row.get("reason") or "N/A",
                row["status"],
            ]
            for row in rows
        ],
        summary=[
            ("Total Disbursements:", total),
            ("Number of Recipients:", recipients),
            ("Average per Recipient:", _average(total, recipients)),
            ("Total Records:", len(rows)),
        ],
        period=_period(start_date, end_date),
    )


def balances_table(rows: list[dict]) -> ReportTable:
    return ReportTable(
        title="Member Balances Report",
        sheet_name="Balances",
        headers=[
            "TNS Number",
            "Member Name",
            "Current Balance (KES)",
            "Total Contributions (KES)",
            "Total Disbursements (KES)",
        ],
        rows=[
            [
                row.get("tns_number") or "N/A",
                row["member_name"],
                row["current_balance"],
                row["total_contributions"],
                row["total_disbursements"],
            ]
            for row in rows
        ],
        summary=[
            ("Total Current Balance:", sum((r["current_balance"] for r in rows), Decimal("0"))),
            ("Total All Contributions:", sum((r["total_contributions"] for r in rows), Decimal("0"))),
            ("Total All Disbursements:", sum((r["total_disbursements"] for r in rows), Decimal("0"))),
            ("Members with Negative Balance:", sum(1 for r in rows if r["current_balance"] < 0)),
            ("Total Members:", len(rows)),
        ],
    )


def expenses_table(rows: list[dict], start_date: date | None = None, end_date: date | None = None) -> ReportTable:
    total = sum((row["amount"] for row in rows), Decimal("0"))
    by_month: dict[str, Decimal] = {}
    for row in rows:
        by_month[row["month_year"]] = by_month.get(row["month_year"], Decimal("0")) + row["amount"]
    return ReportTable(
        title="Monthly Expenses Report",
        sheet_name="Expenses",
        headers=["Amount (KES)", "Date", "Category", "Description", "Month-Year"],
        rows=[
            [
                row["amount"],
                _fmt_date(row["expense_date"]),
                row["expense_category"],
                row.get("description") or "N/A",
                row["month_year"],
            ]
            for row in rows
        ],
        summary=[
            ("Total Expenses:", total),
            ("Number of Categories:", len({row["expense_category"] for row in rows})),
            ("Average per Entry:", _average(total, len(rows))),
            ("Total Records:", len(rows)),
        ],
        period=_period(start_date, end_date),
        sections=[
            (
                "MONTHLY BREAKDOWN",
                ["Month-Year", "Amount (KES)"],
                [[month, amount] for month, amount in sorted(by_month.items())],
            )
        ],
    )


class ReportRenderer:
    """Lays out a `ReportTable` under the organisation's title block."""

    def __init__(self, organisation_name: str | None = None) -> None:
        self.organisation_name = organisation_name or settings.organisation_name

    def _title_lines(self, table: ReportTable) -> list[str]:
        lines = [
            self.organisation_name,
            table.title,
            f"Generated on: {table.generated_at.strftime('%d %b %Y %H:%M')}",
        ]
        if table.period:
            lines.append(table.period)
        return lines

    def render(self, table: ReportTable, fmt: str) -> bytes:
        if fmt == "csv":
            return self.render_csv(table)
        if fmt == "xlsx":
            return self.render_excel(table)
        if fmt == "pdf":
            return self.render_pdf(table)
        raise ValueError(f"unsupported format {fmt}")

    def render_csv(self, table: ReportTable) -> bytes:
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        for line in self._title_lines(table):
            writer.writerow(_safe_row([line]))
        writer.writerow([])
        writer.writerow(table.headers)
        writer.writerows(_safe_row(row) for row in table.rows)
        writer.writerow([])
        writer.writerow(["SUMMARY"])
        writer.writerows(_safe_row([label, value]) for label, value in table.summary)
        for heading, headers, rows in table.sections:
            writer.writerow([])
            writer.writerow([heading])
            writer.writerow(headers)
            writer.writerows(_safe_row(row) for row in rows)
        # utf-8-sig so spreadsheet apps detect the encoding.
        return buffer.getvalue().encode("utf-8-sig")

    def render_excel(self, table: ReportTable) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = table.sheet_name

        title_lines = self._title_lines(table)
        for line in title_lines:
            ws.append(_safe_row([line]))
        ws["A1"].font = Font(bold=True, size=16)
        ws["A2"].font = Font(bold=True, size=14)
        ws.append([])

        ws.append(table.headers)
        header_row = ws.max_row
        for cell in ws[header_row]:
            cell.font = Font(bold=True)
            cell.fill = PatternFill(start_color="D3D3D3", end_color="D3D3D3", fill_type="solid")
        for row in table.rows:
            ws.append(_safe_row(row))

        ws.append([])
        ws.append(["SUMMARY"])
        ws.cell(row=ws.max_row, column=1).font = Font(bold=True)
        for label, value in table.summary:
            ws.append(_safe_row([label, value]))

        for heading, headers, rows in table.sections:
            ws.append([])
            ws.append([heading])
            ws.cell(row=ws.max_row, column=1).font = Font(bold=True)
            ws.append(headers)
            for row in rows:
                ws.append(_safe_row(row))

        self._auto_adjust_column_width(ws, first_row=header_row)
        wb.properties.title = table.title
        wb.properties.creator = self.organisation_name

        output = io.BytesIO()
        wb.save(output)
        return output.getvalue()

    def _auto_adjust_column_width(self, ws, first_row: int) -> None:
        """Size columns to their widest value, ignoring the merged-looking title block."""

        for column in ws.iter_cols(min_row=first_row):
            values = [len(str(cell.value)) for cell in column if cell.value is not None]
            width = max([10, *values]) + 2
            ws.column_dimensions[get_column_letter(column[0].column)].width = min(width, 50)

    def render_pdf(self, table: ReportTable) -> bytes:
        output = io.BytesIO()
        doc = SimpleDocTemplate(
            output,
            pagesize=A4,
            leftMargin=1.5 * cm,
            rightMargin=1.5 * cm,
            topMargin=1.5 * cm,
            bottomMargin=1.5 * cm,
            title=table.title,
        )
        styles = getSampleStyleSheet()
        lines = self._title_lines(table)
        story = [
            Paragraph(lines[0], styles["Title"]),
            Paragraph(lines[1], styles["Heading2"]),
        ]
        story.extend(Paragraph(line, styles["Normal"]) for line in lines[2:])
        story.append(Spacer(1, 0.5 * cm))

        story.append(self._pdf_grid(table.headers, table.rows))
        story.append(Spacer(1, 0.5 * cm))
        story.append(Paragraph("SUMMARY", styles["Heading3"]))
        for label, value in table.summary:
            story.append(Paragraph(f"{label} {self._pdf_cell(value)}", styles["Normal"]))

        for heading, headers, rows in table.sections:
            story.append(Spacer(1, 0.5 * cm))
            story.append(Paragraph(heading, styles["Heading3"]))
            story.append(self._pdf_grid(headers, rows))

        doc.build(story)
        return output.getvalue()

    def _pdf_grid(self, headers: list[str], rows: list[list]) -> Table:
        body = [headers] + [[self._pdf_cell(value) for value in row] for row in rows]
        grid = Table(body, repeatRows=1)
        grid.setStyle(
            TableStyle(
                [
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, -1), 8),
                    ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                    ("LINEBELOW", (0, 0), (-1, 0), 0.75, colors.black),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.whitesmoke]),
                ]
            )
        )
        return grid

    @staticmethod
    def _pdf_cell(value) -> str:
        if isinstance(value, Decimal):
            return f"KES {value:,.2f}"
        text = str(value)
        return text if len(text) <= 28 else text[:25] + "..."


def report_filename(report: str, fmt: str, today: date | None = None) -> str:
    return f"{report}_{(today or date.today()).isoformat()}.{fmt}"
