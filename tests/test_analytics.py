from datetime import datetime, timezone

import pytest

from analytics import aggregation
from analytics.service import AnalyticsService
from repos.activity_repo import ActivityRepository
from repos.user_repo import UserRepository
from repos.verification_repo import VerificationRepository
from tests.fakes import FakeFirestore

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def test_weight_total_and_valid_count():
    bookings = [{"estimatedWeight": "10"}, {"estimatedWeight": None}, {"estimatedWeight": "5.5"}]
    summary = aggregation.weight_summary(bookings)
    assert summary["totalWeight"] == 15.5
    assert summary["validWeightCount"] == 2


def test_material_classification():
    assert aggregation.classify_material("plastic bottles") == "Plastic"
    assert aggregation.classify_material("Old Newspapers") == "Paper"
    assert aggregation.classify_material("unknown-stuff") is None


def test_material_name_beats_container_word():
    assert aggregation.classify_material("glass bottles") == "Glass"
    assert aggregation.classify_material("scrap plastic") == "Plastic"
    assert aggregation.classify_material("scrap") == "Metal"
    assert aggregation.classify_material("copper wires") == "Metal"
    assert aggregation.classify_material("old wires") == "Electronic"
    assert aggregation.classify_material("wireless mouse") is None


def test_unmatched_types_count_in_total_only():
    bookings = [
        {"junkType": "plastic bottles", "estimatedWeight": "6"},
        {"junkType": "unknown-stuff", "estimatedWeight": "4"},
    ]
    result = aggregation.category_breakdown(bookings)
    by_name = {c["name"]: c for c in result["categories"]}
    assert by_name["Plastic"]["weight"] == 6.0
    assert by_name["Plastic"]["percentage"] == 60
    assert sum(c["weight"] for c in result["categories"]) == 6.0
    assert result["totalWeight"] == 10.0
    assert result["unclassifiedWeight"] == 4.0


def test_junk_shop_aliases_share_a_bucket():
    users = [{"role": "junkshop"}, {"role": "junk_shop_owner"}, {"role": "customer"}, {"role": "???"}]
    counts = aggregation.role_breakdown(users)
    assert counts["junkShops"] == 2
    assert counts["residents"] == 1
    assert counts["unknown"] == 1


def test_bad_timestamps_are_excluded_unless_asked():
    users = [{"createdAt": "2024-06-01T00:00:00Z"}, {"createdAt": "garbage"}]
    strict = aggregation.time_series(users, [], view="monthly", now=NOW)
    lossy = aggregation.time_series(users, [], view="monthly", now=NOW, fallback_to_now=True)
    assert len(strict) == 12
    assert strict[-1]["users"] == 1
    assert lossy[-1]["users"] == 2


def test_weekly_windows_end_at_now():
    bookings = [{"createdAt": NOW}, {"createdAt": datetime(2024, 6, 10, tzinfo=timezone.utc)}]
    series = aggregation.time_series([], bookings, view="weekly", now=NOW)
    assert series[-1]["period"] == "W12"
    assert series[-1]["bookings"] == 2


def test_invalid_view_and_dimension():
    with pytest.raises(ValueError):
        aggregation.time_series([], [], view="hourly", now=NOW)
    with pytest.raises(ValueError):
        aggregation.aggregate([], [], "planet")


def test_monthly_collection_for_year():
    bookings = [
        {"createdAt": "2024-02-03T00:00:00Z", "estimatedWeight": "3"},
        {"createdAt": "2023-02-03T00:00:00Z", "estimatedWeight": "7"},
        {"createdAt": "bad", "estimatedWeight": "9"},
    ]
    monthly = aggregation.aggregate(bookings, [], "month", now=NOW)
    assert monthly[1] == 3.0
    assert sum(monthly) == 3.0


def test_municipality_activity_seeds_known_names():
    users = [
        {"role": "collector", "municipality": "Naga"},
        {"role": "admin", "municipality": "Naga"},
        {"role": "customer", "city": "Pili"},
    ]
    rows = aggregation.municipality_activity(users, ["Calabanga"])
    assert [r["name"] for r in rows] == ["Calabanga", "Naga", "Pili"]
    assert rows[1]["users"] == 1 and rows[1]["collectors"] == 1
    assert rows[2]["residents"] == 1


def test_growth_trends():
    users = [{"createdAt": "2024-06-10T00:00:00Z"}, {"createdAt": "2024-05-01T00:00:00Z"}]
    trends = aggregation.growth_trends(users, [], now=NOW)
    assert trends["recentUsers"] == 1
    assert trends["userGrowth"] == 0.0
    assert trends["bookingGrowth"] == 0.0


def test_service_overview_reads_collections():
    db = FakeFirestore(
        {
            "users": {"u1": {"role": "collector", "createdAt": "2024-06-01T00:00:00Z"}},
            "bookings": {"b1": {"estimatedWeight": "2.346", "status": "completed"}},
            "verifications": {"v1": {}, "v2": {"status": "approved"}},
        }
    )
    svc = AnalyticsService(UserRepository(db), ActivityRepository(db), VerificationRepository(db))
    overview = svc.overview(now=NOW)
    assert overview["totals"]["totalWeight"] == 2.35
    assert overview["totals"]["completedBookings"] == 1
    assert overview["verifications"]["pending"] == 1
    assert overview["roles"]["collectors"] == 1


def test_service_municipality_dimension_uses_settings_list():
    db = FakeFirestore({"settings": {"municipalities": {"list": ["Naga", "Pili"]}}})
    svc = AnalyticsService(UserRepository(db), ActivityRepository(db), VerificationRepository(db))
    data = svc.dimension("municipality")
    assert [r["name"] for r in data["activity"]] == ["Naga", "Pili"]
