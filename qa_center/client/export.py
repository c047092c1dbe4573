"""CSV export of the daily usage series."""
import csv
import io
from typing import Iterable
from urllib.parse import quote


CSV_HEADER = ["Date", "Evaluations", "Tokens", "Duration (sec)", "Cost", "Price"]


def daily_usage_to_csv(rows: Iterable[dict]) -> str:
    """Serialize ``dailyUsage`` rows as returned by ``GET /api/billing/usage``."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for row in rows:
        writer.writerow([
            row["date"],
            row.get("evaluationCount", 0),
            row.get("totalTokens", 0),
            row.get("totalDuration", 0),
            f"{float(row.get('totalCost', 0)):.4f}",
            f"{float(row.get('totalPrice', 0)):.4f}",
        ])
    return buffer.getvalue()


def csv_data_uri(csv_text: str) -> str:
    return "data:text/csv;charset=utf-8," + quote(csv_text, safe=";,/?:@&=+$!*'()#")


def usage_report_filename(start_date: str, end_date: str) -> str:
    return f"usage-report-{start_date}-to-{end_date}.csv"
