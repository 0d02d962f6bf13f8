"""
CSV template offered to administrators.

The header row is a fixed contract external users build their exports
against; do not reorder or rename columns.
"""

import csv
import io

TEMPLATE_HEADERS = [
    "first_name",
    "last_name",
    "email",
    "total_giving",
    "first_gift_date",
    "last_gift_date",
    "largest_gift",
    "gift_count",
]

TEMPLATE_EXAMPLE_ROWS = [
    ["John", "Doe", "john@example.com", "250.00", "2023-01-15", "2023-12-01", "100.00", "3"],
]

TEMPLATE_FILENAME = "donor_template.csv"


def render_template() -> str:
    """Return the template as CSV text with "\\n" line endings."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(TEMPLATE_HEADERS)
    writer.writerows(TEMPLATE_EXAMPLE_ROWS)
    return buffer.getvalue()
