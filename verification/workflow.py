"""
Verification decisions.

Transitions are unrestricted: any of pending/approved/rejected
can move to any other (re-approve after rejection, revoke after approval).
Each successful decision sends exactly one notification to the submitter.
The status write is durable on its own; a failed notification is logged and
reported in the result, never rolled back.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from google.cloud import firestore

from models.statuses import VERIFICATION_UNDER_REVIEW, VerificationStatus, verification_status_of
from notifications.service import NotificationService
from repos.verification_repo import VerificationRepository
from utils.csv_export import or_na, rows_to_csv, us_date
from utils.timestamps import parse_timestamp

log = logging.getLogger("kolekkita.verification")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

DECISION_STATUSES = frozenset(s.value for s in VerificationStatus)

# Free transition table: every (from, to) pair is allowed. Unlisted stored
# statuses such as under_review are valid sources too.
TRANSITIONS = {src: DECISION_STATUSES for src in DECISION_STATUSES}

SHOP_NAME_FIELDS = ("shopName", "businessName", "junkShopName", "name")

SEARCH_FIELDS = (
    "shopName",
    "businessLicense",
    "address",
    "phoneNumber",
    "userRole",
    "documentType",
    "userId",
    "rejectionReason",
)


class VerificationNotFound(LookupError):
    def __init__(self, verification_id: str):
        super().__init__("verification_not_found")
        self.verification_id = verification_id


def submitter_of(doc: Dict[str, Any]) -> str:
    return str(doc.get("userId") or doc.get("submittedBy") or "")


def shop_name_of(doc: Dict[str, Any]) -> Optional[str]:
    for f in SHOP_NAME_FIELDS:
        v = doc.get(f)
        if v:
            return str(v)
    return None


def normalize(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Map mobile-app field names onto the ones the dashboard reads."""
    out = dict(doc)
    out["userId"] = submitter_of(doc)
    out["createdAt"] = doc.get("createdAt") or doc.get("submissionTimestamp")
    out["status"] = verification_status_of(doc)
    out["shopName"] = shop_name_of(doc)
    return out


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current or VerificationStatus.PENDING.value, DECISION_STATUSES)


class VerificationWorkflow:
    def __init__(
        self,
        repo: Optional[VerificationRepository] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.repo = repo or VerificationRepository()
        self.notifications = notifications or NotificationService()

    def decide(
        self,
        verification_id: str,
        new_status: str,
        actor_id: str,
        admin_notes: Optional[str] = None,
        rejection_reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        verification_id = (verification_id or "").strip()
        if not verification_id:
            raise ValueError("verification_id_required")
        if new_status not in DECISION_STATUSES:
            raise ValueError("invalid_verification_status")
        reason = (rejection_reason or "").strip()
        if new_status == VerificationStatus.REJECTED.value and not reason:
            raise ValueError("rejection_reason_required")

        doc = self.repo.get(verification_id)
        if doc is None:
            raise VerificationNotFound(verification_id)

        previous = verification_status_of(doc)
        if not can_transition(previous, new_status):
            raise ValueError("transition_not_allowed")

        actor = actor_id or "admin"
        notes = (admin_notes or "").strip() or f"Verification {new_status} by admin"
        patch: Dict[str, Any] = {
            "status": new_status,
            "adminNotes": notes,
            "rejectionReason": reason if new_status == VerificationStatus.REJECTED.value else None,
            "resolvedBy": actor,
            "resolvedAt": firestore.SERVER_TIMESTAMP,
            "updatedAt": firestore.SERVER_TIMESTAMP,
        }
        self.repo.update(verification_id, patch)
        log.info(
            "verification_decided",
            extra={"extra": {"event": "verification_decided", "verification_id": verification_id, "from": previous, "to": new_status, "actor": actor}},
        )

        result: Dict[str, Any] = {
            "ok": True,
            "verification_id": verification_id,
            "previous_status": previous,
            "status": new_status,
            "notified": False,
            "notification_id": None,
        }

        user_id = submitter_of(doc)
        if not user_id:
            log.warning(
                "verification_notify_skipped",
                extra={"extra": {"event": "verification_notify_skipped", "verification_id": verification_id, "reason": "no_submitter"}},
            )
            result["notification_error"] = "no_submitter"
            return result

        try:
            result["notification_id"] = self.notifications.send_verification_decision(
                user_id, verification_id, new_status, shop_name_of(doc), reason or None
            )
            result["notified"] = True
        except Exception as e:
            log.error(
                "verification_notify_failed",
                extra={"extra": {"event": "verification_notify_failed", "verification_id": verification_id, "error_type": type(e).__name__, "message": str(e)}},
                exc_info=True,
            )
            result["notification_error"] = str(e) or type(e).__name__
        return result

    def list(self, status: str = "all", search: str = "") -> List[Dict[str, Any]]:
        items = [normalize(d) for d in self.repo.list_all()]
        items.sort(key=lambda d: parse_timestamp(d.get("createdAt")) or _EPOCH, reverse=True)
        return filter_verifications(items, status, search)

    def counts(self) -> Dict[str, int]:
        return count_statuses(self.repo.list_all())


def filter_verifications(items: List[Dict[str, Any]], status: str = "all", search: str = "") -> List[Dict[str, Any]]:
    if status and status != "all":
        items = [d for d in items if verification_status_of(d) == status]
    needle = (search or "").strip().lower()
    if needle:
        items = [d for d in items if any(needle in str(d.get(f) or "").lower() for f in SEARCH_FIELDS)]
    return items


def count_statuses(docs: List[Dict[str, Any]]) -> Dict[str, int]:
    out = {"all": len(docs), "pending": 0, "approved": 0, "rejected": 0, VERIFICATION_UNDER_REVIEW: 0}
    for d in docs:
        s = verification_status_of(d)
        if s in out:
            out[s] += 1
    return out


EXPORT_HEADERS = [
    "Verification ID",
    "User ID",
    "Document Type",
    "Status",
    "User Role",
    "Submission Date",
    "Reviewed By",
    "Review Date",
    "Rejection Reason",
    "Admin Notes",
]


def export_rows(items: List[Dict[str, Any]]) -> List[List[Any]]:
    rows = []
    for d in items:
        submitted = parse_timestamp((d.get("metadata") or {}).get("submissionTimestamp")) or parse_timestamp(
            d.get("submissionTimestamp")
        ) or parse_timestamp(d.get("createdAt"))
        reviewed = parse_timestamp(d.get("resolvedAt") or d.get("reviewedAt"))
        rows.append(
            or_na(
                [
                    d.get("id"),
                    d.get("userId"),
                    d.get("documentType"),
                    verification_status_of(d),
                    d.get("userRole"),
                    us_date(submitted),
                    d.get("resolvedBy") or d.get("reviewedBy"),
                    us_date(reviewed),
                    d.get("rejectionReason"),
                    d.get("adminNotes"),
                ]
            )
        )
    return rows


def export_csv(items: List[Dict[str, Any]]) -> str:
    return rows_to_csv(EXPORT_HEADERS, export_rows(items))
