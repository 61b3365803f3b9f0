"""Workbook export of a business-case projection.

Sheets: Summary (six headline metrics), Monthly, Annual, Quarterly.
"""
import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

import openpyxl
from openpyxl.styles import Font, PatternFill
from openpyxl.worksheet.worksheet import Worksheet

from ..config.models import BusinessData
from ..projection.metrics import annual_summary, calculate_business_metrics, quarterly_summary
from ..schemas.projection import FinancialMetrics

logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color="FF4472C4", end_color="FF4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFFFF", bold=True)

# (header, MonthlyRecord attribute)
MONTHLY_COLUMNS: List[Tuple[str, str]] = [
    ("Month", "month"),
    ("Date", "date"),
    ("Sales Volume", "sales_volume"),
    ("Unit Price", "unit_price"),
    ("Revenue", "revenue"),
    ("COGS", "cogs"),
    ("Gross Profit", "gross_profit"),
    ("Sales & Marketing", "sales_marketing"),
    ("Total CAC", "total_cac"),
    ("R&D", "rd"),
    ("G&A", "ga"),
    ("Total OpEx", "total_opex"),
    ("EBITDA", "ebitda"),
    ("CAPEX", "capex"),
    ("Net Cash Flow", "net_cash_flow"),
]

COST_SAVINGS_COLUMNS: List[Tuple[str, str]] = [
    ("Baseline Costs", "baseline_costs"),
    ("Cost Savings", "cost_savings"),
    ("Efficiency Gains", "efficiency_gains"),
    ("Total Benefits", "total_benefits"),
]

ANNUAL_COLUMNS: List[Tuple[str, str]] = [
    ("Year", "year"),
    ("Sales Volume", "sales_volume"),
    ("Revenue", "revenue"),
    ("COGS", "cogs"),
    ("Gross Profit", "gross_profit"),
    ("Total OpEx", "total_opex"),
    ("EBITDA", "ebitda"),
    ("CAPEX", "capex"),
    ("Net Cash Flow", "net_cash_flow"),
    ("Cumulative Cash Flow", "cumulative_cash_flow"),
]

QUARTERLY_COLUMNS: List[Tuple[str, str]] = [
    ("Quarter", "label"),
    ("Revenue", "revenue"),
    ("Total OpEx", "total_opex"),
    ("EBITDA", "ebitda"),
    ("Net Cash Flow", "net_cash_flow"),
]


def _write_header(ws: Worksheet, row: int, headers: Sequence[str]) -> None:
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=row, column=col, value=header)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT


def _write_table(ws: Worksheet, rows: Sequence[Any], columns: List[Tuple[str, str]]) -> None:
    _write_header(ws, 1, [header for header, _ in columns])
    for row_idx, item in enumerate(rows, 2):
        for col, (_, attr) in enumerate(columns, 1):
            ws.cell(row=row_idx, column=col, value=getattr(item, attr))
    ws.freeze_panes = "A2"


def _autofit(ws: Worksheet) -> None:
    for col in ws.columns:
        max_length = max(len(str(cell.value or "")) for cell in col)
        ws.column_dimensions[col[0].column_letter].width = min(max_length + 2, 30)


def summary_rows(metrics: FinancialMetrics) -> List[Tuple[str, Any]]:
    """The six executive-summary figures, in report order."""
    return [
        ("Total Revenue", round(metrics.total_revenue, 2)),
        ("Net Profit", round(metrics.net_profit, 2)),
        ("NPV", round(metrics.npv, 2)),
        ("Payback Period (months)", metrics.payback_period),
        ("Total Investment Required", round(metrics.total_investment_required, 2)),
        ("Break-even Month", metrics.break_even_month if metrics.break_even_reached else "Not reached"),
    ]


def export_business_case(
    data: BusinessData,
    output_path: Union[str, Path],
    metrics: Optional[FinancialMetrics] = None,
) -> str:
    """Write the projection of *data* to an .xlsx workbook and return its path."""
    metrics = metrics or calculate_business_metrics(data)
    records = metrics.monthly_data

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Summary"

    ws["A1"] = data.meta.title or "Business Case"
    ws["A1"].font = Font(size=14, bold=True)
    ws["A2"] = (
        f"Currency: {data.meta.currency} | Periods: {len(records)} | "
        f"Model: {data.meta.business_model or 'unspecified'}"
    )
    _write_header(ws, 4, ["Metric", "Value"])
    for row_idx, (label, value) in enumerate(summary_rows(metrics), 5):
        ws.cell(row=row_idx, column=1, value=label)
        ws.cell(row=row_idx, column=2, value=value)
    _autofit(ws)

    columns = list(MONTHLY_COLUMNS)
    if data.is_cost_savings():
        columns.extend(COST_SAVINGS_COLUMNS)

    for title, rows, cols in (
        ("Monthly", records, columns),
        ("Annual", annual_summary(records), ANNUAL_COLUMNS),
        ("Quarterly", quarterly_summary(records), QUARTERLY_COLUMNS),
    ):
        sheet = wb.create_sheet(title)
        _write_table(sheet, rows, cols)
        _autofit(sheet)

    output_path = str(output_path)
    wb.save(output_path)
    logger.info(f"Exported business case workbook to {output_path}")
    return output_path
