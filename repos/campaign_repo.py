from __future__ import annotations

from typing import Any, Dict, List, Optional

from google.cloud import firestore
from google.cloud.firestore import Client

from storage.firestore_client import get_firestore_client
from models.schema import COL_NOTIFICATION_CAMPAIGNS


class CampaignRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def create(self, data: Dict[str, Any]) -> str:
        ref = self.db.collection(COL_NOTIFICATION_CAMPAIGNS).document()
        ref.set(
            {**data, "createdAt": firestore.SERVER_TIMESTAMP, "updatedAt": firestore.SERVER_TIMESTAMP},
            merge=False,
        )
        return ref.id

    def update_status(self, campaign_id: str, status: str, sent_count: Optional[int] = None) -> None:
        patch: Dict[str, Any] = {"status": status, "updatedAt": firestore.SERVER_TIMESTAMP}
        if sent_count is not None:
            patch["actualSentCount"] = int(sent_count)
        self.db.collection(COL_NOTIFICATION_CAMPAIGNS).document(campaign_id).update(patch)

    def get(self, campaign_id: str) -> Optional[Dict[str, Any]]:
        snap = self.db.collection(COL_NOTIFICATION_CAMPAIGNS).document(campaign_id).get()
        if not snap.exists:
            return None
        d = snap.to_dict() or {}
        d["id"] = campaign_id
        return d

    def list(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        q = self.db.collection(COL_NOTIFICATION_CAMPAIGNS).order_by(
            "createdAt", direction=firestore.Query.DESCENDING
        )
        if limit:
            q = q.limit(int(limit))
        out = []
        for s in q.stream():
            d = s.to_dict() or {}
            d["id"] = s.id
            out.append(d)
        return out
