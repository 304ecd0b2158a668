"""Small aggregation helpers used by the feature pages."""
from __future__ import annotations

from collections import OrderedDict
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping

# Fee figures shown when a student record carries no fee data.
DEFAULT_FEES = {"total": 5000, "paid": 2000, "pending": 3000}


def percentage(part: float, whole: float, *, digits: int = 1) -> float:
    if not whole:
        return 0.0
    return round(float(part) * 100.0 / float(whole), digits)


def attendance_percentage(summary: Mapping[str, Any] | None) -> float:
    """Present days over all recorded days (present + absent + leave)."""
    summary = summary or {}
    present = int(summary.get("present") or 0)
    total = present + int(summary.get("absent") or 0) + int(summary.get("leave") or 0)
    return percentage(present, total)


def group_daily_by_month(daily: Iterable[Mapping[str, Any]]) -> Dict[str, Dict[str, int]]:
    """Count daily statuses per YYYY-MM, in order of first appearance.

    Entries with unparsable dates are skipped.
    """
    months: "OrderedDict[str, Dict[str, int]]" = OrderedDict()
    for entry in daily or []:
        try:
            day = date.fromisoformat(str(entry.get("date", "")))
        except ValueError:
            continue
        bucket = months.setdefault(f"{day.year:04d}-{day.month:02d}", {"present": 0, "absent": 0, "leave": 0})
        status = str(entry.get("status", "")).strip().lower()
        if status in bucket:
            bucket[status] += 1
    return dict(months)


def fee_summary(fees: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Normalise fee data to totals.

    Accepts either the ledger shape (`pending`/`paid` lists of
    `{amount}` entries) or the summary shape (`total`/`paid`/`pending` numbers).
    """
    if not fees:
        data = dict(DEFAULT_FEES)
    elif isinstance(fees.get("paid"), list) or isinstance(fees.get("pending"), list):
        paid = sum(float(x.get("amount") or 0) for x in fees.get("paid") or [])
        pending = sum(float(x.get("amount") or 0) for x in fees.get("pending") or [])
        data = {"total": paid + pending, "paid": paid, "pending": pending}
    else:
        paid = float(fees.get("paid") or 0)
        pending = float(fees.get("pending") or 0)
        total = float(fees.get("total") or (paid + pending))
        data = {"total": total, "paid": paid, "pending": pending}
    data["paid_percentage"] = percentage(data["paid"], data["total"])
    return data


def result_averages(results: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Average of the numeric score columns per subject."""
    rows = []
    for row in results or []:
        scores = [float(row[k]) for k in ("mid_term", "final", "assignment") if isinstance(row.get(k), (int, float))]
        avg = round(sum(scores) / len(scores), 1) if scores else 0.0
        rows.append({"subject": row.get("subject", ""), "average": avg})
    return rows


__all__ = [
    "DEFAULT_FEES",
    "percentage",
    "attendance_percentage",
    "group_daily_by_month",
    "fee_summary",
    "result_averages",
]
