from __future__ import annotations

import json
import time
from typing import Any


def new_batch_id() -> str:
    # Millisecond wall clock, shared by every notification written in one batch.
    return str(int(time.time() * 1000))


def campaign_operation_id(title: str, notification_type: str, idempotency_token: Any) -> str:
    # Same shape as the dashboard's legacy key: "<title>-<type>-<json token>".
    token = json.dumps(idempotency_token if idempotency_token is not None else "")
    return f"{title}-{notification_type}-{token}"


def synthesized_report_id(source: str, source_id: str) -> str:
    return f"{source}-{source_id}"
