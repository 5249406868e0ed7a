from __future__ import annotations

from typing import Any, Dict, List, Optional

from google.cloud import firestore
from google.cloud.firestore import Client
from google.cloud.firestore_v1.base_query import FieldFilter

from storage.firestore_client import get_firestore_client
from models.schema import COL_USERS


def _with_id(snap) -> Dict[str, Any]:
    d = snap.to_dict() or {}
    d["id"] = snap.id
    return d


class UserRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        snap = self.db.collection(COL_USERS).document(user_id).get()
        if not snap.exists:
            return None
        return _with_id(snap)

    def list_all(self) -> List[Dict[str, Any]]:
        return [_with_id(s) for s in self.db.collection(COL_USERS).stream()]

    def list_where(self, field: str, op: str, value: Any) -> List[Dict[str, Any]]:
        q = self.db.collection(COL_USERS).where(filter=FieldFilter(field, op, value))
        return [_with_id(s) for s in q.stream()]

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        wanted = (email or "").strip().lower()
        if not wanted:
            return None
        q = self.db.collection(COL_USERS).where(filter=FieldFilter("email", "==", wanted)).limit(1)
        for s in q.stream():
            return _with_id(s)
        # Older profiles may store the address with its original casing.
        for s in self.db.collection(COL_USERS).stream():
            if str((s.to_dict() or {}).get("email") or "").strip().lower() == wanted:
                return _with_id(s)
        return None

    def set(self, user_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        self.db.collection(COL_USERS).document(user_id).set(data, merge=merge)

    def update(self, user_id: str, data: Dict[str, Any]) -> None:
        self.db.collection(COL_USERS).document(user_id).set(
            {**data, "updatedAt": firestore.SERVER_TIMESTAMP}, merge=True
        )

    def delete(self, user_id: str) -> None:
        self.db.collection(COL_USERS).document(user_id).delete()

    # -------- Device tokens --------
    def save_fcm_token(self, user_id: str, token: str) -> None:
        self.db.collection(COL_USERS).document(user_id).set(
            {"fcmToken": token, "fcmTokenUpdatedAt": firestore.SERVER_TIMESTAMP, "notificationsEnabled": True},
            merge=True,
        )

    def clear_fcm_token(self, user_id: str) -> None:
        self.db.collection(COL_USERS).document(user_id).update(
            {"fcmToken": firestore.DELETE_FIELD, "notificationsEnabled": False}
        )
