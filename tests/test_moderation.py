from datetime import datetime, timezone

import pytest

from moderation.queue import (
    ModerationService,
    ReportNotFound,
    StoredReport,
    SynthesizedReport,
    build_queue,
    export_csv,
    filter_queue,
    is_flagged_review,
    is_problematic_booking,
    is_suspicious_user,
)
from repos.activity_repo import ActivityRepository
from repos.report_repo import ReportRepository
from repos.user_repo import UserRepository
from tests.fakes import FakeFirestore

NOW = datetime(2024, 6, 15, tzinfo=timezone.utc)

GOOD_BOOKING = {"price": 120, "status": "completed", "pickupLocation": "Naga", "dropoffLocation": "Pili"}


def seeded():
    return FakeFirestore(
        {
            "reports": {
                "rep1": {"reportType": "Harassment", "priority": "Low", "status": "pending", "createdAt": "2024-06-01T00:00:00Z"},
            },
            "reviews": {
                "r1": {"rating": 1, "comment": "they never showed up at all", "createdAt": "2024-06-02T00:00:00Z"},
                "r2": {"rating": 5, "comment": "great pickup, on time"},
            },
            "users": {
                "u1": {"name": "test account", "email": "x@example.com"},
                "u2": {"name": "Maria Santos", "email": "maria@example.com"},
            },
            "bookings": {
                "b1": {**GOOD_BOOKING, "status": "cancelled"},
                "b2": GOOD_BOOKING,
            },
        }
    )


def make(db):
    return ModerationService(ReportRepository(db), UserRepository(db), ActivityRepository(db))


def test_heuristics():
    assert is_flagged_review({"rating": 2})
    assert is_flagged_review({"rating": 5, "comment": "meh"})
    assert is_flagged_review({"rating": 4, "comment": "this is a fake review"})
    assert not is_flagged_review({"rating": 4, "comment": "solid service overall"})
    assert is_suspicious_user({"name": "Al", "email": "a@b"})
    assert is_suspicious_user({"name": "J", "email": "jj@example.com"})
    assert not is_suspicious_user({"name": "Maria", "email": "maria@example.com"})
    assert is_problematic_booking({**GOOD_BOOKING, "price": 0})
    assert is_problematic_booking({**GOOD_BOOKING, "dropoffLocation": ""})
    assert not is_problematic_booking(GOOD_BOOKING)


def test_queue_mixes_stored_and_synthesized_sorted_by_priority():
    entries = make(seeded()).queue()
    assert [e.id for e in entries] == ["review-r1", "user-u1", "rep1", "booking-b1"]
    assert isinstance(entries[0], SynthesizedReport) and entries[0].priority == "High"
    assert isinstance(entries[2], StoredReport)


def test_synthesized_caps():
    users = [{"id": f"u{i}", "name": "spam bot", "email": "s@example.com"} for i in range(8)]
    bookings = [{"id": f"b{i}", "status": "cancelled"} for i in range(6)]
    entries = build_queue([], [], users, bookings, now=NOW)
    assert sum(1 for e in entries if e.kind == "synthesized" and e.source == "user") == 5
    assert sum(1 for e in entries if e.kind == "synthesized" and e.source == "booking") == 3


def test_resolved_sources_do_not_use_up_the_cap():
    users = [{"id": f"u{i}", "name": "spam bot", "email": "s@example.com"} for i in range(8)]
    reports = [
        {"id": f"user-u{i}", "originalId": f"user-u{i}", "status": "resolved"}
        for i in range(5)
    ]
    entries = build_queue(reports, [], users, [], now=NOW)
    open_users = {e.id for e in entries if e.kind == "synthesized"}
    assert open_users == {"user-u5", "user-u6", "user-u7"}


def test_time_period_filter_keeps_undated_items():
    reviews = [
        {"id": "old", "rating": 1, "createdAt": "2020-01-01T00:00:00Z"},
        {"id": "new", "rating": 1, "createdAt": "2024-06-10T00:00:00Z"},
        {"id": "undated", "rating": 1},
    ]
    entries = build_queue([], reviews, [], [], period="daily", now=NOW)
    assert {e.id for e in entries} == {"review-new", "review-undated"}


def test_resolve_stored_report_in_place():
    db = seeded()
    result = make(db).resolve("rep1", "user_suspended", "admin1", "two strikes", setting_value="7d")
    doc = db.docs("reports")["rep1"]
    assert result["kind"] == "stored"
    assert doc["status"] == "resolved"
    assert doc["actionSettings"] == {
        "suspensionDuration": "7d",
        "warningLevel": None,
        "contentType": None,
        "banReason": None,
    }


def test_resolving_synthesized_entry_persists_one_record():
    db = seeded()
    svc = make(db)
    svc.resolve("review-r1", "content_removed", "admin1", setting_value="review")
    svc.resolve("review-r1", "dismissed", "admin1")

    reports = db.docs("reports")
    assert len(reports) == 2
    record = reports["review-r1"]
    assert record["originalId"] == "review-r1"
    assert record["source"] == "review"
    assert record["actionTaken"] == "dismissed"

    pending_ids = [e.id for e in svc.queue()]
    assert "review-r1" not in pending_ids
    all_ids = [e.id for e in svc.queue(status="all")]
    assert all_ids.count("review-r1") == 1


def test_resolve_rejects_unknown_and_bad_action():
    svc = make(seeded())
    with pytest.raises(ReportNotFound):
        svc.resolve("nothing-here", "dismissed", "admin1")
    with pytest.raises(ReportNotFound):
        svc.resolve("review-r2", "dismissed", "admin1")
    with pytest.raises(ValueError):
        svc.resolve("rep1", "vaporize", "admin1")


def test_search_and_export():
    entries = make(seeded()).queue(status="all")
    found = filter_queue(entries, status="all", search="harass")
    assert [e.id for e in found] == ["rep1"]
    lines = export_csv(found).splitlines()
    assert lines[0].startswith('"Report ID"')
    assert lines[1].startswith('"rep1","Harassment"')
    assert lines[1].endswith('"Pending"')
