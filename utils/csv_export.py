from __future__ import annotations

import csv
import io
from datetime import datetime, timezone
from typing import Any, Iterable, List, Sequence


def rows_to_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    # Every field quoted, matching the dashboard's historical exports.
    buf = io.StringIO()
    w = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    w.writerow(list(headers))
    for row in rows:
        w.writerow(["" if v is None else v for v in row])
    return buf.getvalue()


def export_filename(prefix: str, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"{prefix}-{now.strftime('%Y-%m-%d')}.csv"


def us_date(dt: datetime | None) -> str:
    # en-US short date as the dashboard renders it: M/D/YYYY
    if dt is None:
        return "N/A"
    return f"{dt.month}/{dt.day}/{dt.year}"


def or_na(values: List[Any]) -> List[Any]:
    return [v if v not in (None, "") else "N/A" for v in values]
