from __future__ import annotations

from typing import Any, Dict, List, Optional

from google.cloud.firestore import Client

from storage.firestore_client import get_firestore_client
from models.schema import COL_VERIFICATIONS


class VerificationRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def get(self, verification_id: str) -> Optional[Dict[str, Any]]:
        snap = self.db.collection(COL_VERIFICATIONS).document(verification_id).get()
        if not snap.exists:
            return None
        d = snap.to_dict() or {}
        d["id"] = verification_id
        return d

    def list_all(self) -> List[Dict[str, Any]]:
        # Mobile submissions may carry only submissionTimestamp, so no order_by here
        # (Firestore drops docs missing the ordered field); callers sort.
        out = []
        for s in self.db.collection(COL_VERIFICATIONS).stream():
            d = s.to_dict() or {}
            d["id"] = s.id
            out.append(d)
        return out

    def update(self, verification_id: str, data: Dict[str, Any]) -> None:
        self.db.collection(COL_VERIFICATIONS).document(verification_id).update(data)
