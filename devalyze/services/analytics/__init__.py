from typing import Any

from mongoengine.queryset import QuerySet

from devalyze.models.qr_code import QRCode
from devalyze.models.short_link import ShortLink
from devalyze.models.user import User


DAY_FORMAT = "%Y-%m-%d"


def _daily_counts(queryset: QuerySet, history_field: str) -> dict[str, int]:
    """Count history events per UTC day (`YYYY-MM-DD`) across every document in `queryset`."""
    pipeline = [
        {"$unwind": f"${history_field}"},
        {"$group": {
            "_id": {"$dateToString": {"format": DAY_FORMAT, "date": f"${history_field}.timestamp"}},
            "count": {"$sum": 1},
        }},
        {"$sort": {"_id": 1}},
    ]
    return {row["_id"]: row["count"] for row in queryset.aggregate(pipeline) if row["_id"]}


def series(user: User) -> list[dict[str, Any]]:
    """Clicks and scans per day for everything `user` owns, ascending by date."""
    clicks = _daily_counts(ShortLink.objects(owner=user), "click_history")
    scans = _daily_counts(QRCode.objects(owner=user), "scan_history")
    return [
        {"date": day, "clicks": clicks.get(day, 0), "scans": scans.get(day, 0)}
        for day in sorted(set(clicks) | set(scans))
    ]
