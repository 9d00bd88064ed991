"""
CSV export of a comparison summary.
"""
import csv
import io
from typing import List, Dict

from procureflow.services.comparison.summary import ComparisonSummary

CSV_HEADERS = [
    "MR Line ID",
    "Description",
    "Selected Supplier ID",
    "Selected Supplier Name",
    "Unit Price",
    "Total Price",
    "Savings vs Best",
]


def export_filename(summary: ComparisonSummary) -> str:
    return f"{summary.rfq_number}-comparison.csv"


def summary_to_csv(summary: ComparisonSummary) -> str:
    """
    Render the summary as CSV.

    Every value is quoted and embedded quotes are doubled (RFC 4180).
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\r\n")
    writer.writerow(CSV_HEADERS)
    for line in summary.selections:
        writer.writerow([
            line.line_item_id,
            line.line_description,
            line.supplier_id,
            line.supplier_name,
            f"{line.unit_price:.2f}",
            f"{line.total_price:.2f}",
            f"{line.savings:.2f}",
        ])
    return buffer.getvalue()


def parse_summary_csv(content: str) -> List[Dict[str, str]]:
    """Parse an exported comparison CSV back into row dicts keyed by header."""
    reader = csv.DictReader(io.StringIO(content, newline=""))
    missing = [h for h in CSV_HEADERS if h not in (reader.fieldnames or [])]
    if missing:
        raise ValueError(f"Not a comparison export, missing column(s): {', '.join(missing)}")
    return list(reader)
