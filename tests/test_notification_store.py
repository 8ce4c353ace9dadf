"""Tests for NotificationStore: creation gating, ledger operations, preferences."""
import threading
from datetime import date, timedelta

import pytest

from payday_notify.core.errors import InvalidPreferencesError, NotificationNotFoundError
from payday_notify.services.notification_store import NotificationStore
from payday_notify.services.payloads import (
    GoalMilestoneEvent,
    MissedContributionEvent,
    PartnerActivityEvent,
    PaydayReminderEvent,
    StreakAchievementEvent,
)
from payday_notify.services.types import NotificationType, Priority


@pytest.fixture
def store(repository, clock) -> NotificationStore:
    return NotificationStore(repository, default_timezone="Europe/London", clock=clock)


def _milestone(user_id: str = "u1") -> GoalMilestoneEvent:
    return GoalMilestoneEvent(
        user_id=user_id,
        goal_id="g1",
        goal_name="Holiday",
        milestone_type="percentage",
        milestone_value=50,
        current_amount=500,
        target_amount=1000,
        currency="GBP",
    )


def _streak(user_id: str = "u1", count: int = 3) -> StreakAchievementEvent:
    return StreakAchievementEvent(user_id=user_id, streak_type="monthly", streak_count=count)


def _payday(user_id: str = "u1", on: date = date(2025, 1, 31)) -> PaydayReminderEvent:
    return PaydayReminderEvent(
        user_id=user_id,
        payday="last-friday",
        next_payday=on,
        expected_contribution=1234.5,
        currency="GBP",
        partnership_id="p1",
    )


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------


def test_create_renders_payday_reminder(store, clock) -> None:
    n = store.create(_payday())
    assert n is not None
    assert n.type == NotificationType.PAYDAY_REMINDER
    assert n.priority == Priority.HIGH
    assert n.title == "💰 Payday Reminder"
    assert n.message == "It's payday! Don't forget to contribute £1,234.50 to your shared expenses."
    assert n.partnership_id == "p1"
    assert n.action_url == "/money-hub"
    assert n.read is False
    assert n.created_at == clock.now
    assert n.expires_at.date() == date(2025, 2, 1)
    assert n.id.startswith("payday_u1_")


def test_create_with_disabled_category_writes_nothing(store) -> None:
    store.update_preferences("u1", {"goal_milestones": False})
    before = store.unread_count("u1")
    assert store.create(_milestone()) is None
    assert store.unread_count("u1") == before
    assert [n for n in store.list("u1") if n.type == NotificationType.GOAL_MILESTONE] == []


def test_disabling_category_later_keeps_existing_records(store) -> None:
    created = store.create(_milestone())
    store.update_preferences("u1", {"goal_milestones": False})
    assert [n.id for n in store.list("u1")] == [created.id]
    assert store.unread_count("u1") == 1


def test_other_categories_unaffected_by_disabled_one(store) -> None:
    store.update_preferences("u1", {"goal_milestones": False})
    assert store.create(_streak()) is not None


def test_duplicate_payday_reminder_collapses(store, clock) -> None:
    first = store.create(_payday())
    clock.advance(minutes=5)
    assert store.create(_payday()) is None
    assert [n.id for n in store.list("u1")] == [first.id]


def test_missed_contribution_is_one_per_month(store, clock) -> None:
    event = MissedContributionEvent(
        user_id="u1", expected_amount=500, actual_amount=200, currency="GBP", month="2025-01"
    )
    n = store.create(event)
    assert n.id == "missed_u1_2025-01"
    assert n.message == "You're £300.00 short on your expected contribution for 2025-01."
    clock.advance(days=1)
    assert store.create(event) is None


def test_partner_activity_goes_to_recipient(store) -> None:
    n = store.create(
        PartnerActivityEvent(
            user_id="alice",
            partner_id="bob",
            partner_name="Bob",
            activity_type="expense_added",
            currency="GBP",
            partnership_id="p1",
            amount=42,
            entity_name="Groceries",
            entity_id="e9",
        )
    )
    assert n.user_id == "alice"
    assert n.message == "Bob added a new expense: Groceries (£42.00)"
    assert n.related_entity_id == "e9"
    assert store.list("bob") == []


def test_distinct_events_at_one_instant_are_all_kept(store) -> None:
    # One contribution crossing the 50% and 75% milestones
    half = store.create(_milestone())
    three_quarters = store.create(
        GoalMilestoneEvent(
            user_id="u1", goal_id="g1", goal_name="Holiday", milestone_type="percentage",
            milestone_value=75, current_amount=750, target_amount=1000, currency="GBP",
        )
    )
    assert half is not None and three_quarters is not None
    assert half.id != three_quarters.id
    assert half.id.startswith("milestone_u1_g1_")
    assert store.create(_streak()) is not None
    assert store.create(_streak()) is not None
    assert store.unread_count("u1") == 4


# ---------------------------------------------------------------------------
# list / read / delete
# ---------------------------------------------------------------------------


def test_list_newest_first_and_limited(store, clock) -> None:
    ids = []
    for i in range(5):
        ids.append(store.create(_streak(count=i + 1)).id)
        clock.advance(seconds=1)
    listed = [n.id for n in store.list("u1")]
    assert listed == list(reversed(ids))
    assert [n.id for n in store.list("u1", limit=2)] == list(reversed(ids))[:2]


def test_list_unread_only(store, clock) -> None:
    a = store.create(_streak(count=1))
    clock.advance(seconds=1)
    b = store.create(_streak(count=2))
    store.mark_read(a.id)
    assert [n.id for n in store.list("u1", unread_only=True)] == [b.id]


def test_mark_read_is_monotonic(store, clock) -> None:
    n = store.create(_streak())
    read = store.mark_read(n.id)
    assert read.read is True
    first_read_at = read.read_at
    clock.advance(hours=1)
    again = store.mark_read(n.id)
    assert again.read is True
    assert again.read_at == first_read_at
    assert store.unread_count("u1") == 0


def test_mark_read_unknown_id_raises(store) -> None:
    with pytest.raises(NotificationNotFoundError):
        store.mark_read("nope")


def test_mark_all_read_counts_only_unread(store, clock) -> None:
    for i in range(3):
        store.create(_streak(count=i + 1))
        clock.advance(seconds=1)
    store.create(_streak(user_id="u2"))
    first = store.list("u1")[-1]
    store.mark_read(first.id)
    assert store.mark_all_read("u1") == 2
    assert store.unread_count("u1") == 0
    assert store.unread_count("u2") == 1
    assert store.mark_all_read("u1") == 0


def test_delete(store) -> None:
    n = store.create(_streak())
    assert store.delete(n.id) is True
    assert store.delete(n.id) is False
    assert store.list("u1") == []
    with pytest.raises(NotificationNotFoundError):
        store.get(n.id)


def test_returned_records_are_copies(store) -> None:
    n = store.create(_streak())
    n.read = True
    assert store.unread_count("u1") == 1


# ---------------------------------------------------------------------------
# preferences
# ---------------------------------------------------------------------------


def test_default_preferences_on_first_touch(store, repository) -> None:
    assert repository.get_preferences("u1") is None
    prefs = store.get_preferences("u1")
    assert prefs.payday_reminders and prefs.streak_achievements
    assert prefs.push_notifications and prefs.email_notifications and prefs.in_app_notifications
    assert prefs.quiet_hours.enabled is False
    assert (prefs.quiet_hours.start_time, prefs.quiet_hours.end_time) == ("22:00", "08:00")
    assert prefs.quiet_hours.timezone == "Europe/London"
    assert repository.get_preferences("u1") is not None


def test_update_preferences_merges_quiet_hours(store, clock) -> None:
    store.update_preferences("u1", {"quiet_hours": {"start_time": "21:30"}})
    clock.advance(minutes=1)
    prefs = store.update_preferences("u1", {"quiet_hours": {"enabled": True}, "email_notifications": False})
    assert prefs.quiet_hours.enabled is True
    assert prefs.quiet_hours.start_time == "21:30"
    assert prefs.quiet_hours.end_time == "08:00"
    assert prefs.email_notifications is False
    assert prefs.partner_activity is True
    assert prefs.updated_at == clock.now
    assert store.get_preferences("u1") == prefs


@pytest.mark.parametrize(
    "partial",
    [
        {"not_a_field": True},
        {"user_id": "someone-else"},
        {"quiet_hours": {"start_time": "25:00"}},
        {"frequency": "yearly"},
    ],
)
def test_update_preferences_rejects_bad_input(store, partial) -> None:
    before = store.get_preferences("u1")
    with pytest.raises(InvalidPreferencesError):
        store.update_preferences("u1", partial)
    assert store.get_preferences("u1") == before


def test_preference_load_failure_falls_back_to_defaults(store, repository, monkeypatch) -> None:
    def boom(user_id):
        raise RuntimeError("db down")

    monkeypatch.setattr(repository, "get_preferences", boom)
    prefs = store.get_preferences("u1")
    assert prefs.payday_reminders is True
    assert store.create(_streak()) is not None


def test_expiry_is_a_day_after_payday(store) -> None:
    n = store.create(_payday(on=date(2025, 3, 28)))
    assert n.expires_at - n.scheduled_for == timedelta(hours=24)


# ---------------------------------------------------------------------------
# concurrency
# ---------------------------------------------------------------------------


def test_concurrent_creates_and_mark_all_read(store) -> None:
    start = threading.Barrier(9)
    marked = []

    def create_many():
        start.wait()
        for i in range(25):
            store.create(_streak(count=i + 1))

    def mark_all():
        start.wait()
        for _ in range(10):
            marked.append(store.mark_all_read("u1"))

    threads = [threading.Thread(target=create_many) for _ in range(8)]
    threads.append(threading.Thread(target=mark_all))
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store.list("u1", limit=1000)) == 200
    assert store.unread_count("u1") == 200 - sum(marked)
    assert store.mark_all_read("u1") == 200 - sum(marked)
    assert store.unread_count("u1") == 0
