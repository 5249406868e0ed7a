"""
Moderation queue.

Two kinds of entries share the queue:

- ``StoredReport``: a document in ``reports`` with its own lifecycle
  (pending -> resolved).
- ``SynthesizedReport``: computed at read time from a review, user or booking
  that looks suspicious. It has no persisted state; its id is
  ``<source>-<sourceId>``.

Resolving a synthesized entry writes ``reports/<source>-<sourceId>`` (with
``originalId``), so resolving it again updates that record and the source no
longer shows up as a synthesized entry.
"""
from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

from google.cloud import firestore

from config.settings import settings
from models.statuses import ReportStatus, is_pending_report
from repos.activity_repo import ActivityRepository
from repos.report_repo import ReportRepository
from repos.user_repo import UserRepository
from utils.csv_export import rows_to_csv, us_date
from utils.ids import synthesized_report_id
from utils.timestamps import parse_timestamp
from utils.weights import parse_weight

log = logging.getLogger("kolekkita.moderation")

SOURCE_REVIEW = "review"
SOURCE_USER = "user"
SOURCE_BOOKING = "booking"
SYNTHESIZED_SOURCES = (SOURCE_REVIEW, SOURCE_USER, SOURCE_BOOKING)

PRIORITY_ORDER = {"High": 3, "Medium": 2, "Low": 1}

# Days covered by each time-period filter.
TIME_PERIOD_DAYS = {"daily": 30, "weekly": 84, "monthly": 365, "yearly": 5 * 365}

ACTION_SETTINGS = {
    "user_suspended": "suspensionDuration",
    "warning_issued": "warningLevel",
    "content_removed": "contentType",
    "account_banned": "banReason",
}
ACTION_TYPES = frozenset(ACTION_SETTINGS) | {"dismissed"}

_SPAMMY_REVIEW = re.compile(r"spam|fake|bot|test", re.IGNORECASE)
_SPAMMY_NAME = re.compile(r"test|fake|spam", re.IGNORECASE)


class ReportNotFound(LookupError):
    def __init__(self, report_id: str):
        super().__init__("report_not_found")
        self.report_id = report_id


@dataclass
class StoredReport:
    id: str
    type: str
    category: str
    description: str
    reported_by: str
    priority: str
    date: Optional[datetime]
    status: str
    reported_user: Optional[str] = None
    reported_user_id: Optional[str] = None
    reporter_id: Optional[str] = None
    evidence_files: List[Any] = field(default_factory=list)
    action_taken: Optional[str] = None
    original_id: Optional[str] = None
    kind: str = "stored"


@dataclass
class SynthesizedReport:
    id: str
    source: str
    source_id: str
    type: str
    category: str
    description: str
    reported_by: str
    priority: str
    date: Optional[datetime]
    status: str = ReportStatus.PENDING.value
    kind: str = "synthesized"


QueueEntry = Union[StoredReport, SynthesizedReport]


def entry_to_dict(entry: QueueEntry) -> Dict[str, Any]:
    d = asdict(entry)
    d["date"] = entry.date.isoformat() if entry.date else None
    return d


# -------- Heuristics --------

def is_flagged_review(review: Dict[str, Any]) -> bool:
    rating = review.get("rating")
    comment = review.get("comment") or ""
    low = isinstance(rating, (int, float)) and not isinstance(rating, bool) and rating <= 2
    return low or (bool(comment) and len(comment) < 10) or bool(comment and _SPAMMY_REVIEW.search(comment))


def is_suspicious_user(user: Dict[str, Any]) -> bool:
    email = user.get("email") or ""
    name = user.get("name") or ""
    return len(email) < 5 or len(name) < 2 or bool(_SPAMMY_NAME.search(name))


def is_problematic_booking(booking: Dict[str, Any]) -> bool:
    return (
        parse_weight(booking.get("price")) == 0
        or booking.get("status") == "cancelled"
        or not booking.get("pickupLocation")
        or not booking.get("dropoffLocation")
    )


# -------- Entry builders --------

def stored_entry(report: Dict[str, Any]) -> StoredReport:
    return StoredReport(
        id=report["id"],
        type=report.get("reportType") or report.get("type") or "Content Violation",
        category=report.get("category") or "General",
        description=report.get("reportReason") or report.get("description") or "No description provided",
        reported_by=report.get("reporterName") or report.get("reportedBy") or "System",
        priority=report.get("priority") or "Medium",
        date=parse_timestamp(report.get("createdAt") or report.get("timestamp")),
        status=report.get("status") or ReportStatus.PENDING.value,
        reported_user=report.get("reportedUserName"),
        reported_user_id=report.get("reportedUserId"),
        reporter_id=report.get("reporterId"),
        evidence_files=list(report.get("evidenceFiles") or []),
        action_taken=report.get("actionTaken"),
        original_id=report.get("originalId"),
    )


def review_entry(review: Dict[str, Any]) -> SynthesizedReport:
    rating = review.get("rating")
    comment = review.get("comment") or ""
    very_low = isinstance(rating, (int, float)) and rating <= 1
    snippet = f': "{comment[:50]}..."' if comment else ""
    return SynthesizedReport(
        id=synthesized_report_id(SOURCE_REVIEW, review["id"]),
        source=SOURCE_REVIEW,
        source_id=review["id"],
        type="Inappropriate Content",
        category="Review",
        description=f"{'Very low rating' if very_low else 'Low rating'} review ({rating}/5 stars){snippet}",
        reported_by="System Detection",
        priority="High" if very_low else "Medium",
        date=parse_timestamp(review.get("createdAt")),
    )


def user_entry(user: Dict[str, Any]) -> SynthesizedReport:
    return SynthesizedReport(
        id=synthesized_report_id(SOURCE_USER, user["id"]),
        source=SOURCE_USER,
        source_id=user["id"],
        type="Suspicious Account",
        category="User",
        description=(
            "Account with incomplete or suspicious profile: "
            f"{user.get('name') or 'No name'} ({user.get('email') or 'No email'})"
        ),
        reported_by="System Validation",
        priority="Medium",
        date=parse_timestamp(user.get("createdAt")),
    )


def booking_entry(booking: Dict[str, Any]) -> SynthesizedReport:
    cancelled = booking.get("status") == "cancelled"
    return SynthesizedReport(
        id=synthesized_report_id(SOURCE_BOOKING, booking["id"]),
        source=SOURCE_BOOKING,
        source_id=booking["id"],
        type="Booking Issue",
        category="Transaction",
        description=(
            f"{'Cancelled booking' if cancelled else 'Incomplete booking data'} - "
            f"{booking.get('pickupLocation') or 'Unknown pickup'} to {booking.get('dropoffLocation') or 'Unknown dropoff'}"
        ),
        reported_by="System Monitor",
        priority="Low" if cancelled else "Medium",
        date=parse_timestamp(booking.get("createdAt")),
    )


def within_period(value: Any, period: Optional[str], now: datetime) -> bool:
    # Unreadable dates stay in the queue rather than being treated as "now".
    days = TIME_PERIOD_DAYS.get(period or "")
    if days is None:
        return True
    dt = parse_timestamp(value)
    return dt is None or dt >= now - timedelta(days=days)


def sort_queue(entries: List[QueueEntry]) -> List[QueueEntry]:
    def key(e: QueueEntry):
        ts = e.date.timestamp() if e.date else float("-inf")
        return (PRIORITY_ORDER.get(e.priority, 0), ts)

    return sorted(entries, key=key, reverse=True)


def build_queue(
    reports: List[Dict[str, Any]],
    reviews: List[Dict[str, Any]],
    users: List[Dict[str, Any]],
    bookings: List[Dict[str, Any]],
    period: Optional[str] = None,
    now: Optional[datetime] = None,
    max_users: Optional[int] = None,
    max_bookings: Optional[int] = None,
) -> List[QueueEntry]:
    now = now or datetime.now(timezone.utc)
    max_users = settings.MODERATION_MAX_SUSPICIOUS_USERS if max_users is None else max_users
    max_bookings = settings.MODERATION_MAX_PROBLEM_BOOKINGS if max_bookings is None else max_bookings

    def recent(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [it for it in items if within_period(it.get("createdAt") or it.get("timestamp"), period, now)]

    stored = [stored_entry(r) for r in recent(reports)]
    handled = {s.original_id for s in stored if s.original_id} | {s.id for s in stored}

    def unhandled(entries: List[SynthesizedReport]) -> List[SynthesizedReport]:
        return [s for s in entries if s.id not in handled]

    # Caps count only sources that are still open.
    synthesized: List[SynthesizedReport] = unhandled([review_entry(r) for r in recent(reviews) if is_flagged_review(r)])
    synthesized += unhandled([user_entry(u) for u in recent(users) if is_suspicious_user(u)])[:max_users]
    synthesized += unhandled([booking_entry(b) for b in recent(bookings) if is_problematic_booking(b)])[:max_bookings]

    return sort_queue([*stored, *synthesized])


def filter_queue(entries: List[QueueEntry], status: str = "pending", search: str = "") -> List[QueueEntry]:
    if status == "pending":
        entries = [e for e in entries if is_pending_report(e.status)]
    elif status == "resolved":
        entries = [e for e in entries if e.status == ReportStatus.RESOLVED.value]
    needle = (search or "").strip().lower()
    if needle:
        entries = [
            e for e in entries
            if any(needle in (v or "").lower() for v in (e.id, e.type, e.category, e.description, e.reported_by))
        ]
    return entries


EXPORT_HEADERS = ["Report ID", "Type", "Category", "Description", "Reported By", "Status", "Date Reported", "Action Taken"]


def export_csv(entries: List[QueueEntry]) -> str:
    rows = []
    for e in entries:
        action = getattr(e, "action_taken", None) or "Pending"
        rows.append([e.id, e.type, e.category, e.description, e.reported_by, e.status, us_date(e.date), action])
    return rows_to_csv(EXPORT_HEADERS, rows)


def action_settings(action_type: str, value: Optional[str]) -> Dict[str, Optional[str]]:
    out: Dict[str, Optional[str]] = {name: None for name in ACTION_SETTINGS.values()}
    setting = ACTION_SETTINGS.get(action_type)
    if setting:
        out[setting] = value
    return out


class ModerationService:
    def __init__(
        self,
        reports: Optional[ReportRepository] = None,
        users: Optional[UserRepository] = None,
        activity: Optional[ActivityRepository] = None,
    ):
        self.reports = reports or ReportRepository()
        self.users = users or UserRepository()
        self.activity = activity or ActivityRepository()

    def queue(
        self,
        period: Optional[str] = None,
        status: str = "pending",
        search: str = "",
        now: Optional[datetime] = None,
    ) -> List[QueueEntry]:
        entries = build_queue(
            self.reports.list_all(),
            self.activity.list_reviews(),
            self.users.list_all(),
            self.activity.list_bookings(),
            period=period,
            now=now,
        )
        return filter_queue(entries, status=status, search=search)

    def resolve(
        self,
        report_id: str,
        action_type: str,
        actor_id: str,
        action_notes: str = "",
        setting_value: Optional[str] = None,
    ) -> Dict[str, Any]:
        report_id = (report_id or "").strip()
        if not report_id:
            raise ValueError("report_id_required")
        if action_type not in ACTION_TYPES:
            raise ValueError("invalid_action_type")

        patch: Dict[str, Any] = {
            "status": ReportStatus.RESOLVED.value,
            "actionTaken": action_type,
            "actionNotes": action_notes or "",
            "resolvedBy": actor_id or "admin",
            "resolvedAt": firestore.SERVER_TIMESTAMP,
            "actionSettings": action_settings(action_type, setting_value),
        }

        if self.reports.get(report_id) is not None:
            self.reports.update(report_id, patch)
            kind = "stored"
        else:
            entry = self._find_synthesized(report_id)
            self.reports.upsert(
                report_id,
                {
                    "originalId": entry.id,
                    "source": entry.source,
                    "sourceId": entry.source_id,
                    "type": entry.type,
                    "category": entry.category,
                    "description": entry.description,
                    "reportedBy": entry.reported_by,
                    "priority": entry.priority,
                    "createdAt": entry.date or firestore.SERVER_TIMESTAMP,
                    **patch,
                },
            )
            kind = "synthesized"

        log.info(
            "moderation_report_resolved",
            extra={"extra": {"event": "moderation_report_resolved", "report_id": report_id, "kind": kind, "action": action_type}},
        )
        return {"ok": True, "report_id": report_id, "kind": kind, "status": ReportStatus.RESOLVED.value}

    def _find_synthesized(self, report_id: str) -> SynthesizedReport:
        source = report_id.split("-", 1)[0]
        if source not in SYNTHESIZED_SOURCES:
            raise ReportNotFound(report_id)
        entries = build_queue([], self.activity.list_reviews(), self.users.list_all(), self.activity.list_bookings())
        for e in entries:
            if e.id == report_id:
                return e
        raise ReportNotFound(report_id)
