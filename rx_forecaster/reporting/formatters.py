"""
ASCII terminal formatters for the CLI reporting commands.

Every formatter takes in-memory report models and returns a plain
multi-line string for ``typer.echo()``. No colour and no third-party table
libraries.

Priority blocks
---------------
``format_forecast_report()`` prints one block per priority bucket (HIGH,
MEDIUM, LOW) in aggregator order, followed by the market insight lines::

  [HIGH]
    Item                 Class           Stock  Demand  Action          Urg.      Conf
    --------------------------------------------------------------------------------
    Amoxicillin 500mg    Antibiotics         5      48  urgent_restock  critical  76.0
"""

from __future__ import annotations

from rx_forecaster.models.forecast import (
    ForecastReport,
    ForecastResult,
    QuickSeasonalInsights,
    QuickSummary,
)
from rx_forecaster.models.seasonal import SeasonalProfile


def _result_header() -> str:
    return (
        f"    {'Item':<20}  {'Class':<14}  {'Stock':>6}  {'Demand':>6}  "
        f"{'Action':<15} {'Urg.':<9} {'Conf':>5}"
    )


def _result_row(r: ForecastResult) -> str:
    return (
        f"    {r.item_name[:20]:<20}  {r.therapeutic_class[:14]:<14}  "
        f"{r.current_stock:>6}  {r.total_predicted_demand:>6}  "
        f"{r.action.value:<15} {r.urgency.value:<9} {r.confidence_score:>5.1f}"
    )


def format_forecast_report(report: ForecastReport, show_risks: bool = False) -> str:
    """Render a ``ForecastReport`` as priority blocks plus insights.

    Args:
        report: Aggregated forecast for one owner.
        show_risks: Append each result's risk factors under its row.

    Returns:
        Multi-line string.
    """
    lines: list[str] = []
    lines.append("")
    lines.append("=== Demand Forecast ===")
    lines.append(f"  Owner:    {report.owner_id}")
    lines.append(f"  Horizon:  {report.horizon_days} days")
    lines.append(f"  As of:    {report.as_of.isoformat()}  (season: {report.season})")
    lines.append(f"  Items:    {len(report.results)}")

    if not report.results:
        lines.append("")
        lines.append("  (no stocked items; import stock with 'import-csv' first)")
        return "\n".join(lines)

    blocks = (
        ("HIGH", report.buckets.high),
        ("MEDIUM", report.buckets.medium),
        ("LOW", report.buckets.low),
    )
    for label, results in blocks:
        if not results:
            continue
        lines.append("")
        lines.append(f"  [{label}]")
        header = _result_header()
        lines.append(header)
        lines.append("    " + "-" * (len(header) - 4))
        for r in results:
            lines.append(_result_row(r))
            if show_risks:
                for risk in r.risk_factors:
                    lines.append(f"        ! {risk}")

    lines.append("")
    lines.append("  Insights:")
    for insight in report.market_insights:
        lines.append(f"    - {insight}")
    return "\n".join(lines)


def format_quick_summary(summary: QuickSummary, owner_id: str) -> str:
    """Render the dashboard summary."""
    lines = [
        "",
        "=== 30-Day Summary ===",
        f"  Owner:                  {owner_id}",
        f"  Total predicted demand: {summary.total_predicted_demand}",
        f"  Urgent restocks:        {summary.urgent_restock_count}",
        f"  High-confidence items:  {summary.high_confidence_count}",
    ]
    if summary.top_forecasts:
        lines.append("")
        lines.append(f"    {'Item':<24}  {'Demand':>6}  Action")
        for top in summary.top_forecasts:
            lines.append(
                f"    {top.item_name[:24]:<24}  {top.predicted_demand:>6}  {top.action.value}"
            )
    return "\n".join(lines)


def format_quick_seasonal_insights(insights: QuickSeasonalInsights, owner_id: str) -> str:
    lines = [
        "",
        "=== Seasonal Alerts ===",
        f"  Owner:                  {owner_id}",
        f"  Critical alerts:        {insights.critical_alerts}",
        f"  High-demand items:      {insights.high_demand_items}",
        f"  Mean seasonal factor:   x{insights.mean_seasonal_factor:.2f}",
    ]
    if insights.top_recommendations:
        lines.append("  Restock first:")
        for name in insights.top_recommendations:
            lines.append(f"    - {name}")
    return "\n".join(lines)


def format_profile(profile: SeasonalProfile) -> str:
    """Render a seasonal profile's months, multipliers and weather rules."""
    lines = ["", f"=== Seasonal Profile: {profile.name} ==="]
    for band in profile.seasons:
        months = ", ".join(str(m) for m in band.months)
        lines.append("")
        lines.append(f"  [{band.name.upper()}]  months: {months}")
        for cls, mult in sorted(band.multipliers.items()):
            lines.append(f"    {cls:<16} x{mult:.2f}")
        impact = profile.weather.get(band.name)
        if impact is not None:
            lines.append(
                f"    weather: temp {impact.temperature_impact:+.1f}  "
                f"humidity {impact.humidity_impact:+.1f}  "
                f"rain {impact.rainfall_impact:+.1f}"
            )
    if profile.weather_rules:
        lines.append("")
        lines.append("  Weather-sensitive classes:")
        for cls in sorted(profile.weather_rules):
            lines.append(f"    {cls}")
    return "\n".join(lines)
