from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from google.cloud import firestore
from google.cloud.firestore import Client
from google.cloud.firestore_v1.base_query import FieldFilter

from config.settings import settings
from storage.firestore_client import get_firestore_client
from models.schema import COL_NOTIFICATIONS


class NotificationRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def create(self, data: Dict[str, Any]) -> str:
        ref = self.db.collection(COL_NOTIFICATIONS).document()
        ref.set(data, merge=False)
        return ref.id

    def create_many(self, docs: Iterable[Dict[str, Any]], batch_size: Optional[int] = None) -> int:
        """
        Write docs through batched writes of at most ``batch_size`` operations.

        Chunks commit in order and are not rolled back: if a later commit
        raises, the earlier chunks stay written and the error propagates.
        """
        size = max(1, int(batch_size or settings.FIRESTORE_BATCH_SIZE))
        col = self.db.collection(COL_NOTIFICATIONS)
        written = 0
        pending = 0
        batch = self.db.batch()
        for data in docs:
            batch.set(col.document(), data)
            pending += 1
            if pending >= size:
                batch.commit()
                written += pending
                pending = 0
                batch = self.db.batch()
        if pending:
            batch.commit()
            written += pending
        return written

    def list(
        self,
        user_id: Optional[str] = None,
        notification_type: Optional[str] = None,
        is_read: Optional[bool] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        q = self.db.collection(COL_NOTIFICATIONS)
        if user_id:
            q = q.where(filter=FieldFilter("userId", "==", user_id))
        if notification_type:
            q = q.where(filter=FieldFilter("type", "==", notification_type))
        if is_read is not None:
            q = q.where(filter=FieldFilter("isRead", "==", is_read))
        q = q.order_by("createdAt", direction=firestore.Query.DESCENDING)
        if limit:
            q = q.limit(int(limit))
        out = []
        for s in q.stream():
            d = s.to_dict() or {}
            d["id"] = s.id
            out.append(d)
        return out

    def mark_read(self, notification_id: str) -> None:
        # update() fails with NotFound for a missing doc, unlike set(merge=True).
        self.db.collection(COL_NOTIFICATIONS).document(notification_id).update(
            {"isRead": True, "readAt": firestore.SERVER_TIMESTAMP}
        )

    def delete(self, notification_id: str) -> None:
        self.db.collection(COL_NOTIFICATIONS).document(notification_id).delete()
