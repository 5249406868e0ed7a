from __future__ import annotations

from typing import Any, Dict, List, Optional

from google.cloud.firestore import Client

from storage.firestore_client import get_firestore_client
from models.schema import COL_BOOKINGS, COL_REVIEWS, COL_SETTINGS, DOC_MUNICIPALITIES


class ActivityRepository:
    """Read-only access to marketplace activity: bookings, reviews, municipality list."""

    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def _stream(self, collection: str) -> List[Dict[str, Any]]:
        out = []
        for s in self.db.collection(collection).stream():
            d = s.to_dict() or {}
            d["id"] = s.id
            out.append(d)
        return out

    def list_bookings(self) -> List[Dict[str, Any]]:
        return self._stream(COL_BOOKINGS)

    def list_reviews(self) -> List[Dict[str, Any]]:
        return self._stream(COL_REVIEWS)

    def municipalities(self) -> List[str]:
        snap = self.db.collection(COL_SETTINGS).document(DOC_MUNICIPALITIES).get()
        if not snap.exists:
            return []
        names = (snap.to_dict() or {}).get("list") or []
        return [str(n) for n in names if n]
