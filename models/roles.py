"""
Canonical user roles.

Stored profiles carry a free-form ``role`` string and two legacy spellings
are in circulation ("junkshop", "customer"). Every role comparison goes
through ``canonical_role`` so the aliases live in exactly one table.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class Role(str, Enum):
    ADMIN = "admin"
    MAIN_ADMIN = "main_admin"
    COLLECTOR = "collector"
    JUNK_SHOP = "junk_shop_owner"
    RESIDENT = "resident"


ROLE_ALIASES: Dict[str, Role] = {
    "junkshop": Role.JUNK_SHOP,
    "customer": Role.RESIDENT,
}

ADMIN_ROLES = frozenset({Role.ADMIN, Role.MAIN_ADMIN})

# Breakdown bucket names as persisted in campaign userBreakdown maps.
BUCKET_ADMINS = "admins"
BUCKET_JUNK_SHOPS = "junkShops"
BUCKET_COLLECTORS = "collectors"
BUCKET_RESIDENTS = "residents"

_BUCKETS = {
    Role.ADMIN: BUCKET_ADMINS,
    Role.MAIN_ADMIN: BUCKET_ADMINS,
    Role.JUNK_SHOP: BUCKET_JUNK_SHOPS,
    Role.COLLECTOR: BUCKET_COLLECTORS,
    Role.RESIDENT: BUCKET_RESIDENTS,
}

# Push "userTypeFilter" values accepted from the dashboard.
USER_TYPE_FILTERS: Dict[str, Optional[Role]] = {
    "all": None,
    "resident": Role.RESIDENT,
    "collector": Role.COLLECTOR,
    "junkshop": Role.JUNK_SHOP,
}


def canonical_role(raw: Any) -> Optional[Role]:
    v = str(raw or "").strip().lower()
    if not v:
        return None
    if v in ROLE_ALIASES:
        return ROLE_ALIASES[v]
    try:
        return Role(v)
    except ValueError:
        return None


def is_admin_role(raw: Any) -> bool:
    return canonical_role(raw) in ADMIN_ROLES


def role_bucket(raw: Any) -> Optional[str]:
    role = canonical_role(raw)
    if role is None:
        return None
    return _BUCKETS[role]
