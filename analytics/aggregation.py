"""
Read-only statistics over already-fetched users/bookings/verifications.

Every function is pure: it rescans the collections it is given and persists
nothing. Weights parse as floats with unreadable values counted as 0.
Timestamps go through ``parse_timestamp``; series functions drop records with
an unreadable timestamp unless ``fallback_to_now`` asks for the legacy
behaviour of substituting the current time.
"""
from __future__ import annotations

import re
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from models.roles import (
    BUCKET_ADMINS,
    BUCKET_COLLECTORS,
    BUCKET_JUNK_SHOPS,
    BUCKET_RESIDENTS,
    Role,
    canonical_role,
    is_admin_role,
    role_bucket,
)
from models.statuses import VERIFICATION_UNDER_REVIEW, verification_status_of
from utils.timestamps import parse_timestamp, timestamp_or_now
from utils.weights import parse_weight, percentage

# Fixed material vocabulary. A material name anywhere in the junk type wins
# over a container or generic word, so "glass bottles" is Glass and
# "scrap plastic" is Plastic. Within a tier, earlier categories win.
MATERIAL_CATEGORIES: "OrderedDict[str, Tuple[str, ...]]" = OrderedDict(
    [
        ("Paper", ("paper", "cardboard", "carton", "newspaper", "magazine", "book")),
        ("Metal", ("metal", "iron", "steel", "aluminum", "aluminium", "copper", "brass")),
        ("Electronic", ("electronic", "electronics", "e-waste", "ewaste", "appliance", "battery", "batteries", "computer", "phone", "smartphone")),
        ("Plastic", ("plastic", "hdpe")),
        ("Glass", ("glass",)),
    ]
)

GENERIC_MATERIAL_WORDS: "OrderedDict[str, Tuple[str, ...]]" = OrderedDict(
    [
        ("Metal", ("scrap", "can")),
        ("Electronic", ("wire", "cable")),
        ("Plastic", ("bottle", "container")),
        ("Glass", ("jar",)),
    ]
)


def _keyword_pattern(keywords: Tuple[str, ...]) -> "re.Pattern[str]":
    # Whole words, plural allowed: "wire" matches "wires" but not "wireless".
    return re.compile(r"\b(?:" + "|".join(re.escape(k) for k in keywords) + r")(?:s|es)?\b")


_MATERIAL_TIERS = [
    [(c, _keyword_pattern(k)) for c, k in MATERIAL_CATEGORIES.items()],
    [(c, _keyword_pattern(k)) for c, k in GENERIC_MATERIAL_WORDS.items()],
]

DIMENSIONS = ("month", "municipality", "material", "role")
TIME_VIEWS = ("daily", "weekly", "monthly", "yearly")

_MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def _when(value: Any, fallback_to_now: bool, now: datetime) -> Optional[datetime]:
    if fallback_to_now:
        return timestamp_or_now(value, now)
    return parse_timestamp(value)


def _capitalize(s: str) -> str:
    return s[:1].upper() + s[1:] if s else s


# -------- Weights and materials --------

def weight_summary(bookings: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    total = 0.0
    valid = 0
    count = 0
    for b in bookings:
        count += 1
        w = parse_weight(b.get("estimatedWeight"))
        total += w
        if w > 0:
            valid += 1
    return {"totalWeight": total, "validWeightCount": valid, "bookingCount": count}


def classify_material(junk_type: Any) -> Optional[str]:
    t = str(junk_type or "").strip().lower()
    if not t:
        return None
    for tier in _MATERIAL_TIERS:
        for category, pattern in tier:
            if pattern.search(t):
                return category
    return None


def category_breakdown(bookings: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Weight per fixed category. Unmatched junk types fall out of the category
    totals but stay in ``totalWeight``; ``unclassifiedWeight`` exposes the gap
    and percentages are of ``totalWeight``, so they need not sum to 100.
    """
    weights = {c: 0.0 for c in MATERIAL_CATEGORIES}
    counts = {c: 0 for c in MATERIAL_CATEGORIES}
    total = 0.0
    unclassified = 0.0
    for b in bookings:
        w = parse_weight(b.get("estimatedWeight"))
        total += w
        category = classify_material(b.get("junkType"))
        if category is None:
            unclassified += w
            continue
        weights[category] += w
        counts[category] += 1
    categories = [
        {"name": c, "weight": weights[c], "count": counts[c], "percentage": percentage(weights[c], total)}
        for c in MATERIAL_CATEGORIES
    ]
    return {"categories": categories, "totalWeight": total, "unclassifiedWeight": unclassified}


def _booking_materials(b: Dict[str, Any]) -> List[Tuple[str, float]]:
    out = []
    junk_type = b.get("junkType")
    if junk_type:
        w = parse_weight(b.get("estimatedWeight"))
        if w > 0:
            out.append((_capitalize(str(junk_type)), w))
    for waste in b.get("wasteTypes") or []:
        if not isinstance(waste, dict):
            continue
        category = waste.get("category") or waste.get("type") or "Other"
        w = parse_weight(waste.get("estimatedWeight") or waste.get("weight"))
        if w > 0:
            out.append((str(category), w))
    return out


def material_distribution(bookings: Iterable[Dict[str, Any]]) -> Dict[str, float]:
    materials: Dict[str, float] = {}
    for b in bookings:
        for name, w in _booking_materials(b):
            materials[name] = materials.get(name, 0.0) + w
    return materials


# -------- Time buckets --------

def monthly_collection(
    bookings: Iterable[Dict[str, Any]], year: Optional[int] = None, now: Optional[datetime] = None
) -> List[float]:
    now = _now(now)
    year = year or now.year
    monthly = [0.0] * 12
    for b in bookings:
        when = parse_timestamp(b.get("createdAt")) or parse_timestamp(b.get("collectedAt"))
        if when is None or when.year != year:
            continue
        w = parse_weight(b.get("estimatedWeight"))
        if w > 0:
            monthly[when.month - 1] += w
    return monthly


def _month_start(year: int, month: int) -> datetime:
    return datetime(year, month, 1, tzinfo=timezone.utc)


def _shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    idx = year * 12 + (month - 1) + delta
    return idx // 12, idx % 12 + 1


def time_series(
    users: List[Dict[str, Any]],
    bookings: List[Dict[str, Any]],
    view: str = "monthly",
    now: Optional[datetime] = None,
    fallback_to_now: bool = False,
) -> List[Dict[str, Any]]:
    now = _now(now)
    if view not in TIME_VIEWS:
        raise ValueError("invalid_time_view")

    user_dates = [d for d in (_when(u.get("createdAt"), fallback_to_now, now) for u in users) if d]
    booking_dates = [d for d in (_when(b.get("createdAt"), fallback_to_now, now) for b in bookings) if d]

    def count(dates: List[datetime], pred) -> int:
        return sum(1 for d in dates if pred(d))

    data: List[Dict[str, Any]] = []
    if view == "daily":
        for i in range(29, -1, -1):
            day = (now - timedelta(days=i)).date()
            data.append({
                "period": f"{_MONTH_ABBR[day.month - 1]} {day.day}",
                "date": day.isoformat(),
                "users": count(user_dates, lambda d, day=day: d.date() == day),
                "bookings": count(booking_dates, lambda d, day=day: d.date() == day),
            })
    elif view == "weekly":
        # Trailing 7-day windows ending at now, W12 being the current one.
        for i in range(11, -1, -1):
            end = now - timedelta(days=7 * i)
            start = end - timedelta(days=7)
            data.append({
                "period": f"W{12 - i}",
                "weekStart": f"{_MONTH_ABBR[start.month - 1]} {start.day}",
                "users": count(user_dates, lambda d, s=start, e=end: s < d <= e),
                "bookings": count(booking_dates, lambda d, s=start, e=end: s < d <= e),
            })
    elif view == "yearly":
        for i in range(4, -1, -1):
            year = now.year - i
            data.append({
                "period": str(year),
                "users": count(user_dates, lambda d, y=year: d.year == y),
                "bookings": count(booking_dates, lambda d, y=year: d.year == y),
            })
    else:
        for i in range(11, -1, -1):
            y, m = _shift_month(now.year, now.month, -i)
            label = f"{_MONTH_ABBR[m - 1]} 1"
            data.append({
                "period": label,
                "monthLabel": label,
                "monthStart": _month_start(y, m).date().isoformat(),
                "users": count(user_dates, lambda d, y=y, m=m: d.year == y and d.month == m),
                "bookings": count(booking_dates, lambda d, y=y, m=m: d.year == y and d.month == m),
            })
    return data


def user_growth(users: Iterable[Dict[str, Any]], months: int = 6) -> List[Dict[str, Any]]:
    monthly: Dict[str, Dict[str, int]] = {}
    for u in users:
        when = parse_timestamp(u.get("createdAt"))
        if when is None:
            continue
        key = f"{when.year}-{when.month:02d}"
        row = monthly.setdefault(key, {"total": 0, "collectors": 0, "junkShops": 0})
        row["total"] += 1
        role = canonical_role(u.get("role"))
        if role is Role.COLLECTOR:
            row["collectors"] += 1
        elif role is Role.JUNK_SHOP:
            row["junkShops"] += 1

    out = []
    for key in sorted(monthly)[-months:]:
        y, m = (int(p) for p in key.split("-"))
        row = monthly[key]
        out.append({
            "month": f"{_MONTH_ABBR[m - 1]} 1",
            "monthStart": _month_start(y, m).date().isoformat(),
            "sortKey": key,
            "users": row["total"],
            "collectors": row["collectors"],
            "junkShops": row["junkShops"],
        })
    return out


def _growth(recent: int, previous: int) -> float:
    if previous > 0:
        return (recent - previous) / previous * 100.0
    return 100.0 if recent > 0 else 0.0


def growth_trends(
    users: List[Dict[str, Any]],
    bookings: List[Dict[str, Any]],
    now: Optional[datetime] = None,
    fallback_to_now: bool = False,
) -> Dict[str, Any]:
    now = _now(now)
    d30 = now - timedelta(days=30)
    d60 = now - timedelta(days=60)

    def windows(items: List[Dict[str, Any]]) -> Tuple[int, int]:
        recent = previous = 0
        for it in items:
            when = _when(it.get("createdAt"), fallback_to_now, now)
            if when is None:
                continue
            if when > d30:
                recent += 1
            elif d60 < when <= d30:
                previous += 1
        return recent, previous

    ru, pu = windows(users)
    rb, pb = windows(bookings)
    return {
        "userGrowth": _growth(ru, pu),
        "bookingGrowth": _growth(rb, pb),
        "recentUsers": ru,
        "recentBookings": rb,
    }


# -------- Roles and places --------

def role_breakdown(users: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    out = {"total": 0, BUCKET_ADMINS: 0, BUCKET_JUNK_SHOPS: 0, BUCKET_COLLECTORS: 0, BUCKET_RESIDENTS: 0, "unknown": 0}
    for u in users:
        out["total"] += 1
        bucket = role_bucket(u.get("role"))
        out[bucket or "unknown"] += 1
    return out


def _municipality_of(doc: Dict[str, Any]) -> str:
    return str(doc.get("municipality") or doc.get("city") or "")


def municipality_activity(
    users: Iterable[Dict[str, Any]], municipalities: Iterable[str] = ()
) -> List[Dict[str, Any]]:
    def empty() -> Dict[str, int]:
        return {"users": 0, "residents": 0, "collectors": 0, "junkshops": 0}

    stats: Dict[str, Dict[str, int]] = {m: empty() for m in municipalities}
    for u in users:
        if is_admin_role(u.get("role")):
            continue
        name = _municipality_of(u)
        if not name:
            continue
        row = stats.setdefault(name, empty())
        row["users"] += 1
        role = canonical_role(u.get("role"))
        if role is Role.RESIDENT:
            row["residents"] += 1
        elif role is Role.COLLECTOR:
            row["collectors"] += 1
        elif role is Role.JUNK_SHOP:
            row["junkshops"] += 1
    return [{"name": name, **row} for name, row in sorted(stats.items(), key=lambda kv: kv[0].lower())]


def popular_materials_by_municipality(
    bookings: Iterable[Dict[str, Any]], municipalities: Iterable[str] = ()
) -> List[Dict[str, Any]]:
    per: Dict[str, Dict[str, float]] = {m: {} for m in municipalities}
    for b in bookings:
        name = _municipality_of(b)
        if not name:
            continue
        materials = per.setdefault(name, {})
        for material, w in _booking_materials(b):
            materials[material] = materials.get(material, 0.0) + w

    rows = []
    for name, materials in per.items():
        ranked = sorted(materials.items(), key=lambda kv: kv[1], reverse=True)
        rows.append({
            "municipality": name,
            "topMaterial": ranked[0][0] if ranked else "No data",
            "weight": ranked[0][1] if ranked else 0.0,
            "totalWeight": sum(materials.values()),
        })

    with_data = sorted((r for r in rows if r["totalWeight"] > 0), key=lambda r: r["totalWeight"], reverse=True)
    without = sorted((r for r in rows if r["totalWeight"] <= 0), key=lambda r: r["municipality"].lower())
    return with_data + without


# -------- Totals --------

def total_stats(users: List[Dict[str, Any]], bookings: List[Dict[str, Any]]) -> Dict[str, Any]:
    summary = weight_summary(bookings)
    completed = sum(1 for b in bookings if b.get("status") == "completed")
    pending = sum(1 for b in bookings if b.get("status") == "pending")
    return {
        "totalUsers": len(users),
        "totalBookings": len(bookings),
        "completedBookings": completed,
        "pendingBookings": pending,
        "totalWeight": round(summary["totalWeight"], 2),
    }


def verification_counts(verifications: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    out = {"pending": 0, "approved": 0, "rejected": 0, VERIFICATION_UNDER_REVIEW: 0}
    for v in verifications:
        s = verification_status_of(v)
        if s in out:
            out[s] += 1
    return out


def aggregate(
    bookings: List[Dict[str, Any]],
    users: List[Dict[str, Any]],
    dimension: str,
    municipalities: Iterable[str] = (),
    year: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Any:
    if dimension == "month":
        return monthly_collection(bookings, year=year, now=now)
    if dimension == "municipality":
        return {
            "activity": municipality_activity(users, municipalities),
            "popularMaterials": popular_materials_by_municipality(bookings, municipalities),
        }
    if dimension == "material":
        return {
            **category_breakdown(bookings),
            "materials": material_distribution(bookings),
        }
    if dimension == "role":
        return role_breakdown(users)
    raise ValueError("invalid_dimension")
