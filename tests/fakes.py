"""In-memory stand-ins for Firestore, FCM and Firebase Auth used across tests."""
from __future__ import annotations

import copy
import itertools
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from google.api_core.exceptions import NotFound
from google.cloud import firestore

from push.fcm_client import is_invalid_token_error

_ids = itertools.count(1)


def _resolve(value: Any, now: datetime) -> Any:
    if value is firestore.SERVER_TIMESTAMP:
        return now
    if isinstance(value, dict):
        return {k: _resolve(v, now) for k, v in value.items() if v is not firestore.DELETE_FIELD}
    return value


def _merge(dst: Dict[str, Any], src: Dict[str, Any], now: datetime) -> None:
    for k, v in src.items():
        if v is firestore.DELETE_FIELD:
            dst.pop(k, None)
        elif isinstance(v, dict) and isinstance(dst.get(k), dict):
            _merge(dst[k], v, now)
        else:
            dst[k] = _resolve(v, now)


class FakeSnapshot:
    def __init__(self, doc_id: str, data: Optional[Dict[str, Any]]):
        self.id = doc_id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._data)


class FakeDocRef:
    def __init__(self, db: "FakeFirestore", collection: str, doc_id: str):
        self._db = db
        self._collection = collection
        self.id = doc_id

    @property
    def _store(self) -> Dict[str, Dict[str, Any]]:
        return self._db.data.setdefault(self._collection, {})

    def get(self, timeout: Optional[float] = None) -> FakeSnapshot:
        return FakeSnapshot(self.id, self._store.get(self.id))

    def set(self, data: Dict[str, Any], merge: bool = False) -> None:
        if merge and self.id in self._store:
            _merge(self._store[self.id], data, self._db.now)
        else:
            self._store[self.id] = _resolve(copy.deepcopy(data), self._db.now)

    def update(self, data: Dict[str, Any]) -> None:
        if self.id not in self._store:
            raise NotFound(f"No document to update: {self._collection}/{self.id}")
        _merge(self._store[self.id], data, self._db.now)

    def delete(self) -> None:
        self._store.pop(self.id, None)


_OPS = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a is not None and a < b,
    "<=": lambda a, b: a is not None and a <= b,
    ">": lambda a, b: a is not None and a > b,
    ">=": lambda a, b: a is not None and a >= b,
    "in": lambda a, b: a in b,
    "array_contains": lambda a, b: isinstance(a, list) and b in a,
}


class FakeQuery:
    def __init__(self, db: "FakeFirestore", collection: str):
        self._db = db
        self._collection = collection
        self._filters: List[Any] = []
        self._order: List[tuple] = []
        self._limit: Optional[int] = None

    def _copy(self) -> "FakeQuery":
        q = FakeQuery(self._db, self._collection)
        q._filters = list(self._filters)
        q._order = list(self._order)
        q._limit = self._limit
        return q

    def where(self, filter=None):
        q = self._copy()
        q._filters.append(filter)
        return q

    def order_by(self, field: str, direction: str = "ASCENDING"):
        q = self._copy()
        q._order.append((field, direction))
        return q

    def limit(self, n: int):
        q = self._copy()
        q._limit = n
        return q

    def stream(self):
        self._db.reads += 1
        items = list(self._db.data.get(self._collection, {}).items())
        for f in self._filters:
            items = [(k, d) for k, d in items if f.field_path in d and _OPS[f.op_string](d.get(f.field_path), f.value)]
        for field, direction in reversed(self._order):
            # Documents without the ordered field are left out, as in Firestore.
            items = [(k, d) for k, d in items if field in d]
            items.sort(key=lambda kd: kd[1][field], reverse=direction == firestore.Query.DESCENDING)
        if self._limit is not None:
            items = items[: self._limit]
        return [FakeSnapshot(k, copy.deepcopy(d)) for k, d in items]


class FakeCollection(FakeQuery):
    def document(self, doc_id: Optional[str] = None) -> FakeDocRef:
        return FakeDocRef(self._db, self._collection, doc_id or f"auto{next(_ids)}")


class FakeBatch:
    def __init__(self, db: "FakeFirestore"):
        self._db = db
        self._ops: List[tuple] = []

    def set(self, ref: FakeDocRef, data: Dict[str, Any], merge: bool = False) -> None:
        self._ops.append((ref, data, merge))

    def commit(self) -> None:
        self._db.commits += 1
        if self._db.fail_commit_at is not None and self._db.commits == self._db.fail_commit_at:
            raise RuntimeError("batch commit failed")
        for ref, data, merge in self._ops:
            ref.set(data, merge=merge)


class FakeFirestore:
    def __init__(self, data: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None, now: Optional[datetime] = None):
        self.data: Dict[str, Dict[str, Dict[str, Any]]] = copy.deepcopy(data or {})
        self.now = now or datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)
        self.commits = 0
        self.reads = 0
        self.fail_commit_at: Optional[int] = None

    def collection(self, name: str) -> FakeCollection:
        return FakeCollection(self, name)

    def batch(self) -> FakeBatch:
        return FakeBatch(self)

    def docs(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self.data.get(name, {})


class FakeFcm:
    """Records sends; tokens listed in ``errors`` raise (single) or fail (multicast)."""

    def __init__(self, errors: Optional[Dict[str, Exception]] = None):
        self.errors = errors or {}
        self.sent: List[Dict[str, Any]] = []
        self.multicasts: List[Dict[str, Any]] = []

    def send(self, token: str, title: str, body: str, data: Dict[str, str]) -> str:
        if token in self.errors:
            raise self.errors[token]
        self.sent.append({"token": token, "title": title, "body": body, "data": data})
        return f"msg-{len(self.sent)}"

    def send_multicast(self, tokens: List[str], title: str, body: str, data: Dict[str, str]) -> Dict[str, Any]:
        self.multicasts.append({"tokens": list(tokens), "title": title, "body": body, "data": data})
        failed = [t for t in tokens if t in self.errors]
        return {
            "success_count": len(tokens) - len(failed),
            "failure_count": len(failed),
            "failed_tokens": failed,
            "invalid_tokens": [t for t in failed if is_invalid_token_error(self.errors[t])],
        }


class FakeIdentity:
    def __init__(self):
        self.created: List[Dict[str, str]] = []
        self.deleted: List[str] = []

    def create_user(self, email: str, password: str, display_name: str) -> str:
        uid = f"uid{len(self.created) + 1}"
        self.created.append({"uid": uid, "email": email, "name": display_name})
        return uid

    def delete_user(self, uid: str) -> None:
        self.deleted.append(uid)
