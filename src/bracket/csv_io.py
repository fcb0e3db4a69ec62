"""
CSV import/export of competitor slots.
"""
import csv
import io
from typing import List, Optional, Sequence

CSV_FIELDS = ['seed', 'name']


def competitors_to_csv(slots: Sequence[Optional[str]]) -> str:
    """One row per slot; byes are written with an empty name."""
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_FIELDS, lineterminator='\n')
    writer.writeheader()
    for index, name in enumerate(slots):
        writer.writerow({'seed': index + 1, 'name': name or ''})
    return output.getvalue()


def competitors_from_csv(text: str) -> List[str]:
    """
    Read competitor names from CSV text.

    Uses the 'name' column when there is a header with one, otherwise the
    first column of every row. Blank names are skipped; seed order is kept.
    """
    rows = list(csv.reader(io.StringIO(text)))
    if not rows:
        return []

    header = [cell.strip().lower() for cell in rows[0]]
    if 'name' in header:
        column = header.index('name')
        rows = rows[1:]
    else:
        column = 0

    names = []
    for row in rows:
        if len(row) > column and row[column].strip():
            names.append(row[column].strip())
    return names
