"""CLI interface for the bizcase engine."""
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml

from ..config.market import MarketData
from ..config.models import BusinessData
from ..config.settings import MAX_PERIODS, Settings
from ..errors import BizcaseError, ImportFormatError
from ..excel.writer import export_business_case
from ..formatting import format_currency
from ..market.merge import merge_market_data, validate_market_data
from ..market.template import render_market_template
from ..projection.engine import generate_monthly_data
from ..projection.metrics import calculate_business_metrics
from ..projection.sensitivity import run_sensitivity
from ..schemas.transfer import TransferOptions
from ..store.state import parse_json
from ..sync.sourced import CrossToolService
from ..validation.validator import validate_business_case

app = typer.Typer(help="bizcase - business case projections and market analysis tools")

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
logger = logging.getLogger(__name__)

_config: Dict[str, Any] = {}


def _load_config(config_path: Optional[str] = None) -> dict:
    """Load configuration from YAML or JSON file."""
    if config_path is None:
        return {}
    path = Path(config_path)
    with open(path, encoding="utf-8") as f:
        if path.suffix in ('.yaml', '.yml'):
            return yaml.safe_load(f) or {}
        return json.load(f)


def _read_json(path: str, label: str) -> Dict[str, Any]:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ImportFormatError(f"Cannot read {label} file {path}: {e}") from e
    return parse_json(text, label)


def _load_business(path: str) -> BusinessData:
    raw = _read_json(path, "business case")
    try:
        return BusinessData.model_validate(raw)
    except ValueError as e:
        raise ImportFormatError(f"Business case does not match the schema: {e}") from e


def _load_market(path: str) -> MarketData:
    raw = _read_json(path, "market analysis")
    try:
        return MarketData.model_validate(raw)
    except ValueError as e:
        raise ImportFormatError(f"Market analysis does not match the schema: {e}") from e


def _write_json(data: Any, out: Optional[str]) -> None:
    text = json.dumps(data, ensure_ascii=False, indent=2)
    if out:
        Path(out).write_text(text, encoding="utf-8")
        typer.echo(f"Written to {out}")
    else:
        typer.echo(text)


def _fail(e: BizcaseError) -> None:
    typer.echo(f"Error: {e}", err=True)
    raise typer.Exit(code=1)


def _projection_options() -> Dict[str, Any]:
    projection = _config.get("projection", {}) or {}
    options: Dict[str, Any] = {"max_periods": int(projection.get("max_periods", MAX_PERIODS))}
    start = projection.get("default_start_date")
    if start:
        options["start_date"] = start if isinstance(start, date) else date.fromisoformat(str(start))
    return options


def _options_for(data: BusinessData) -> Dict[str, Any]:
    """Projection options from config; the document's own start date wins."""
    options = _projection_options()
    if data.meta.start_date:
        options.pop("start_date", None)
    return options


def _project(data: BusinessData):
    records = generate_monthly_data(data, **_options_for(data))
    return calculate_business_metrics(data, records)


@app.callback()
def main_callback(
    config: Optional[str] = typer.Option(None, help="Path to config YAML/JSON"),
    log_level: Optional[str] = typer.Option(None, help="Log level (DEBUG, INFO, WARNING)"),
):
    """Configure logging and load the optional config file."""
    _config.clear()
    _config.update(_load_config(config))
    level = log_level or _config.get("log_level") or Settings.from_env().log_level
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)


@app.command("project")
def cli_project(
    input_file: str = typer.Argument(..., help="Business case JSON"),
    as_json: bool = typer.Option(False, "--json", help="Print metrics and monthly rows as JSON"),
):
    """Print the monthly projection and summary metrics."""
    try:
        data = _load_business(input_file)
    except BizcaseError as e:
        _fail(e)
    metrics = _project(data)

    if as_json:
        _write_json(metrics.to_dict(), None)
        return

    currency = data.meta.currency
    typer.echo(f"{'Month':>5}  {'Date':<10}  {'Revenue':>14}  {'EBITDA':>14}  {'Net Cash Flow':>14}")
    for r in metrics.monthly_data:
        typer.echo(
            f"{r.month:>5}  {r.date.isoformat():<10}  {format_currency(r.revenue, currency):>14}  "
            f"{format_currency(r.ebitda, currency):>14}  {format_currency(r.net_cash_flow, currency):>14}"
        )
    typer.echo("")
    typer.echo(f"Total revenue:        {format_currency(metrics.total_revenue, currency)}")
    typer.echo(f"Net profit:           {format_currency(metrics.net_profit, currency)}")
    typer.echo(f"NPV:                  {format_currency(metrics.npv, currency)}")
    typer.echo(f"Payback period:       {metrics.payback_period} months")
    typer.echo(f"Investment required:  {format_currency(metrics.total_investment_required, currency)}")
    break_even = metrics.break_even_month if metrics.break_even_reached else f"not reached ({metrics.break_even_month})"
    typer.echo(f"Break-even month:     {break_even}")


@app.command("validate")
def cli_validate(
    input_file: str = typer.Argument(..., help="Business case or market analysis JSON"),
    market: bool = typer.Option(False, "--market", help="Validate as a market analysis"),
):
    """Report validation findings; exits 1 when there are errors."""
    try:
        findings = validate_market_data(_load_market(input_file)) if market else \
            validate_business_case(_load_business(input_file))
    except BizcaseError as e:
        _fail(e)

    for label, items in (("ERROR", findings.errors), ("WARNING", findings.warnings),
                         ("SUGGESTION", findings.suggestions)):
        for item in items:
            typer.echo(f"{label}: {item}")
    typer.echo("Valid" if findings.is_valid else "Invalid")
    if not findings.is_valid:
        raise typer.Exit(code=1)


@app.command("merge")
def cli_merge(
    existing: str = typer.Argument(..., help="Existing market analysis JSON"),
    incoming: str = typer.Argument(..., help="Partial market analysis JSON to import"),
    out: Optional[str] = typer.Option(None, "--out", help="Output file (default: stdout)"),
):
    """Merge a partial market document into an existing one, module by module."""
    try:
        merged = merge_market_data(_read_json(existing, "market analysis"),
                                   _read_json(incoming, "market module"))
    except BizcaseError as e:
        _fail(e)
    except ValueError as e:
        _fail(ImportFormatError(f"Merged market analysis does not match the schema: {e}"))
    _write_json(merged.model_dump(mode="json", exclude_unset=True), out)


@app.command("template")
def cli_template(
    module: List[str] = typer.Option([], "--module", "-m", help="Module id; repeat for several (default: all)"),
    out: Optional[str] = typer.Option(None, "--out", help="Output file (default: stdout)"),
):
    """Emit a market-analysis template for the selected modules."""
    try:
        text = render_market_template(module)
    except BizcaseError as e:
        _fail(e)
    if out:
        Path(out).write_text(text, encoding="utf-8")
        typer.echo(f"Written to {out}")
    else:
        typer.echo(text)


@app.command("transfer")
def cli_transfer(
    market_file: str = typer.Argument(..., help="Market analysis JSON"),
    business_file: str = typer.Argument(..., help="Business case JSON"),
    segment: str = typer.Option(..., "--segment", help="Target customer segment id"),
    out: Optional[str] = typer.Option(None, "--out", help="Output file for the updated business case"),
):
    """Transfer the market-derived volume onto a business segment."""
    try:
        market = _load_market(market_file)
        business = _load_business(business_file)
    except BizcaseError as e:
        _fail(e)

    service = CrossToolService(alignment_threshold=Settings.from_env().alignment_threshold)
    updated, result = service.apply_transfer(business, market, segment, options=TransferOptions())
    typer.echo(result.message)
    if updated is None:
        raise typer.Exit(code=1)
    _write_json(updated.model_dump(mode="json", exclude_none=True), out)


@app.command("export")
def cli_export(
    input_file: str = typer.Argument(..., help="Business case JSON"),
    out: str = typer.Option("business_case.xlsx", "--out", help="Output .xlsx path"),
):
    """Export the projection to an Excel workbook."""
    try:
        data = _load_business(input_file)
    except BizcaseError as e:
        _fail(e)
    path = export_business_case(data, out, metrics=_project(data))
    typer.echo(f"Written to {path}")


@app.command("sensitivity")
def cli_sensitivity(
    input_file: str = typer.Argument(..., help="Business case JSON"),
    driver: str = typer.Option(..., "--driver", help="Driver key"),
    values: Optional[str] = typer.Option(None, help="Comma-separated values (default: driver range)"),
):
    """Recompute headline metrics across a driver's range."""
    try:
        data = _load_business(input_file)
    except BizcaseError as e:
        _fail(e)
    try:
        parsed = [float(v) for v in values.split(",")] if values else None
    except ValueError:
        typer.echo(f"Error: --values must be comma-separated numbers, got '{values}'", err=True)
        raise typer.Exit(code=1)
    points = run_sensitivity(data, driver, parsed, **_options_for(data))
    if not points:
        typer.echo(f"No sensitivity results for driver '{driver}'", err=True)
        raise typer.Exit(code=1)

    currency = data.meta.currency
    typer.echo(f"{'Value':>12}  {'Revenue':>14}  {'NPV':>14}  {'Break-even':>10}")
    for p in points:
        typer.echo(
            f"{p.value:>12g}  {format_currency(p.metrics.total_revenue, currency):>14}  "
            f"{format_currency(p.metrics.npv, currency):>14}  {p.metrics.break_even_month:>10}"
        )


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
