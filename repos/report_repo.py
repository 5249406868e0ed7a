from __future__ import annotations

from typing import Any, Dict, List, Optional

from google.cloud.firestore import Client

from storage.firestore_client import get_firestore_client
from models.schema import COL_REPORTS


class ReportRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def get(self, report_id: str) -> Optional[Dict[str, Any]]:
        snap = self.db.collection(COL_REPORTS).document(report_id).get()
        if not snap.exists:
            return None
        d = snap.to_dict() or {}
        d["id"] = report_id
        return d

    def list_all(self) -> List[Dict[str, Any]]:
        out = []
        for s in self.db.collection(COL_REPORTS).stream():
            d = s.to_dict() or {}
            d["id"] = s.id
            out.append(d)
        return out

    def update(self, report_id: str, data: Dict[str, Any]) -> None:
        self.db.collection(COL_REPORTS).document(report_id).update(data)

    def upsert(self, report_id: str, data: Dict[str, Any]) -> None:
        self.db.collection(COL_REPORTS).document(report_id).set(data, merge=True)
