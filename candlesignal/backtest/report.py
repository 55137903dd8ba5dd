"""Backtest report artifacts — JSON results and a standalone HTML summary."""

import html
import json
import logging
import pathlib
from datetime import datetime, timezone

from candlesignal.backtest.engine import BacktestReport


logger = logging.getLogger("candlesignal")

RESULTS_FILENAME = "backtest-results.json"
REPORT_FILENAME = "backtest-report.html"

_METRICS = (
    ("total_signals", "Total signals", ""),
    ("total_trades", "Total trades", ""),
    ("wins", "Wins", "win"),
    ("losses", "Losses", "loss"),
    ("invalid", "Invalid", ""),
    ("win_rate", "Win rate (%)", "win"),
    ("avg_price_change_pct", "Avg price change (%)", ""),
    ("max_consecutive_losses", "Max consecutive losses", "loss"),
)


def render_html_report(report: BacktestReport, generated_at: datetime | None = None) -> str:
    """Render *report* as a self-contained HTML page."""
    generated_at = generated_at or datetime.now(timezone.utc)
    summary = report.summary
    period = report.period.to_dict()

    metrics = "\n".join(
        f'      <div class="metric">'
        f'<div class="metric-value {css}">{html.escape(str(summary[key]))}</div>'
        f'<div class="metric-label">{label}</div></div>'
        for key, label, css in _METRICS
    )

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>Candlestick Signal Backtest Report</title>
  <style>
    body {{ font-family: sans-serif; margin: 20px; background: #f5f5f5; }}
    .container {{ max-width: 800px; margin: 0 auto; background: white; padding: 20px; border-radius: 8px; }}
    .metric {{ display: inline-block; margin: 10px; padding: 15px; background: #f8f9fa; border-radius: 5px; text-align: center; min-width: 120px; }}
    .metric-value {{ font-size: 24px; font-weight: bold; color: #007bff; }}
    .metric-label {{ font-size: 14px; color: #666; }}
    .win {{ color: #28a745; }}
    .loss {{ color: #dc3545; }}
    .period {{ margin-top: 20px; padding: 10px; background: #e9ecef; border-radius: 5px; }}
  </style>
</head>
<body>
  <div class="container">
    <h1>Candlestick Signal Backtest Report</h1>
    <div>
{metrics}
    </div>
    <div class="period">
      <h3>Backtest period</h3>
      <p><strong>Start:</strong> {html.escape(str(period["start"]))}</p>
      <p><strong>End:</strong> {html.escape(str(period["end"]))}</p>
      <p><strong>Duration:</strong> {html.escape(period["duration"])}</p>
    </div>
    <p>Generated at {generated_at.isoformat()}</p>
  </div>
</body>
</html>
"""


def save_backtest_results(
    report: BacktestReport,
    output_dir: str | pathlib.Path = "artifacts",
) -> tuple[pathlib.Path, pathlib.Path]:
    """Write the JSON results and HTML report into *output_dir*.

    Returns ``(json_path, html_path)``.
    """
    out = pathlib.Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    json_path = out / RESULTS_FILENAME
    json_path.write_text(json.dumps(report.to_dict(), indent=2), encoding="utf-8")

    html_path = out / REPORT_FILENAME
    html_path.write_text(render_html_report(report), encoding="utf-8")

    logger.info("Backtest results saved to %s and %s", json_path, html_path)
    return json_path, html_path
