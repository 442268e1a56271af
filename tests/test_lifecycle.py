from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace
from zoneinfo import ZoneInfo

from services.lifecycle import (
    STATUS_ACTIVE,
    STATUS_BROKEN,
    STATUS_COMPLETED,
    STATUS_DUE,
    evaluate_commitment,
    evaluate_goal,
    evaluate_project,
    evaluate_target,
    is_older_than_or_equal_to_two_days,
    is_project_active_on,
    is_recurrence_day,
    weekday_index,
)

T0 = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


def _commitment(**overrides):
    fields = {"status": STATUS_ACTIVE, "created_at": T0, "due_date": None}
    fields.update(overrides)
    return SimpleNamespace(**fields)


def _project(**overrides):
    fields = {
        "completion_criteria_type": "manual",
        "completion_criteria_value": None,
        "progress_value": 0.0,
        "deadline": None,
        "completed_at": None,
        "created_at": T0,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def _target(**overrides):
    fields = {
        "completion_mode": "manual",
        "target_minutes": None,
        "progress_minutes": 0.0,
        "deadline": date(2025, 3, 31),
        "completed_at": None,
        "created_at": T0,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def _template(**overrides):
    fields = {
        "is_active": True,
        "recurring_days": [],
        "recurring_end_date": None,
        "project_id": None,
        "stop_on_project_completion": True,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


# ------------------------------------------------------------------
# Commitments
# ------------------------------------------------------------------
def test_commitment_in_grace_period_is_editable_but_cannot_complete_or_break() -> None:
    state = evaluate_commitment(_commitment(), T0 + timedelta(hours=1))

    assert state.status == STATUS_ACTIVE
    assert state.can_edit and state.can_delete
    assert not state.can_break
    assert not state.can_complete


def test_commitment_grace_boundary_is_inclusive() -> None:
    state = evaluate_commitment(_commitment(), T0 + timedelta(hours=2))
    assert state.can_edit
    assert not state.can_break


def test_commitment_after_grace_can_only_be_broken() -> None:
    state = evaluate_commitment(_commitment(), T0 + timedelta(hours=3))

    assert not state.can_edit and not state.can_delete
    assert state.can_break
    assert not state.can_complete
    assert "Completion unlocks in 30 day(s)" in state.reason


def test_commitment_can_complete_after_unlock_period() -> None:
    state = evaluate_commitment(_commitment(), T0 + timedelta(days=31))

    assert state.can_complete
    assert state.can_break
    assert not state.can_edit


def test_commitment_with_due_date_never_completes_after_grace() -> None:
    commitment = _commitment(due_date=date(2025, 3, 20))
    for offset in (timedelta(hours=3), timedelta(days=10), timedelta(days=31), timedelta(days=400)):
        state = evaluate_commitment(commitment, T0 + offset)
        assert not state.can_complete
        assert state.can_break


def test_terminal_commitments_allow_nothing() -> None:
    for status in (STATUS_COMPLETED, STATUS_BROKEN):
        state = evaluate_commitment(_commitment(status=status), T0 + timedelta(days=31))
        assert state.status == status
        assert not (state.can_edit or state.can_delete or state.can_break or state.can_complete)


def test_commitment_accepts_naive_utc_created_at() -> None:
    commitment = _commitment(created_at=T0.replace(tzinfo=None))
    now = T0.astimezone(ZoneInfo("Asia/Kolkata")) + timedelta(hours=3)
    assert evaluate_commitment(commitment, now).can_break


# ------------------------------------------------------------------
# Two-day edit lock
# ------------------------------------------------------------------
def test_two_day_lock_uses_calendar_days_not_elapsed_hours() -> None:
    created = datetime(2025, 3, 10, 23, 50, tzinfo=timezone.utc)

    assert not is_older_than_or_equal_to_two_days(created, datetime(2025, 3, 11, 23, 59, tzinfo=timezone.utc))
    assert is_older_than_or_equal_to_two_days(created, datetime(2025, 3, 12, 0, 10, tzinfo=timezone.utc))


def test_two_day_lock_uses_local_midnight_of_now() -> None:
    tz = ZoneInfo("America/New_York")
    # 03:00 UTC on the 11th is the evening of the 10th in New York
    created = datetime(2025, 3, 11, 3, 0)

    assert not is_older_than_or_equal_to_two_days(created, datetime(2025, 3, 11, 23, 0, tzinfo=tz))
    assert is_older_than_or_equal_to_two_days(created, datetime(2025, 3, 12, 0, 30, tzinfo=tz))


def test_two_day_lock_is_monotonic() -> None:
    created = T0
    locked_seen = False
    for hour in range(24 * 6):
        locked = is_older_than_or_equal_to_two_days(created, T0 + timedelta(hours=hour))
        if locked_seen:
            assert locked
        locked_seen = locked_seen or locked
    assert locked_seen


# ------------------------------------------------------------------
# Projects, targets, goals
# ------------------------------------------------------------------
def test_manual_project_status_follows_completion_and_deadline() -> None:
    now = T0 + timedelta(days=1)
    assert evaluate_project(_project(), now).status == STATUS_ACTIVE
    assert evaluate_project(_project(deadline=date(2025, 3, 10)), now).status == STATUS_DUE
    assert evaluate_project(_project(deadline=date(2025, 3, 11)), now).status == STATUS_ACTIVE
    done = _project(deadline=date(2025, 3, 1), completed_at=T0)
    assert evaluate_project(done, now).status == STATUS_COMPLETED


def test_automatic_project_completes_when_progress_reaches_target() -> None:
    project = _project(completion_criteria_type="task_count", completion_criteria_value=3)

    assert evaluate_project(project, T0, progress=2).status == STATUS_ACTIVE
    assert evaluate_project(project, T0, progress=3).status == STATUS_COMPLETED
    state = evaluate_project(project, T0, progress=3)
    assert not state.can_complete and not state.can_reopen


def test_automatic_completion_is_sticky_once_completed_at_is_set() -> None:
    project = _project(
        completion_criteria_type="duration_minutes",
        completion_criteria_value=120,
        progress_value=10,
        completed_at=T0,
    )
    assert evaluate_project(project, T0 + timedelta(days=40)).status == STATUS_COMPLETED


def test_completed_project_is_locked_for_edits_but_deletable() -> None:
    state = evaluate_project(_project(completed_at=T0), T0 + timedelta(minutes=5))

    assert not state.can_edit
    assert state.can_delete
    assert state.can_reopen
    assert state.reason == "Completed projects are locked for edits."


def test_old_project_is_locked_for_edits_but_can_still_be_completed() -> None:
    state = evaluate_project(_project(), T0 + timedelta(days=2))

    assert not state.can_edit
    assert state.can_complete
    assert state.reason == "Projects are locked for edits 2 days after creation."


def test_focus_minutes_target_status() -> None:
    target = _target(completion_mode="focus_minutes", target_minutes=120)

    assert evaluate_target(target, T0, progress=119).status == STATUS_ACTIVE
    assert evaluate_target(target, T0, progress=125).status == STATUS_COMPLETED
    assert evaluate_target(target, datetime(2025, 4, 1, tzinfo=timezone.utc), progress=10).status == STATUS_DUE


def test_goal_lifecycle() -> None:
    goal = SimpleNamespace(created_at=T0, completed_at=None)
    assert evaluate_goal(goal, T0).can_edit
    assert not evaluate_goal(goal, T0 + timedelta(days=3)).can_edit
    assert evaluate_goal(goal, T0 + timedelta(days=3)).can_complete

    goal.completed_at = T0
    state = evaluate_goal(goal, T0)
    assert state.status == STATUS_COMPLETED
    assert state.can_reopen and not state.can_edit


# ------------------------------------------------------------------
# Recurrence
# ------------------------------------------------------------------
def test_weekday_index_starts_on_sunday() -> None:
    assert weekday_index(date(2025, 3, 9)) == 0
    assert weekday_index(date(2025, 3, 10)) == 1
    assert weekday_index(date(2025, 3, 15)) == 6


def test_recurrence_day_rules() -> None:
    monday, tuesday = date(2025, 3, 10), date(2025, 3, 11)

    assert is_recurrence_day(_template(), tuesday)
    assert is_recurrence_day(_template(recurring_days=[1]), monday)
    assert not is_recurrence_day(_template(recurring_days=[1]), tuesday)
    assert not is_recurrence_day(_template(is_active=False), monday)
    assert is_recurrence_day(_template(recurring_end_date=monday), monday)
    assert not is_recurrence_day(_template(recurring_end_date=monday), tuesday)


def test_recurrence_stops_with_completed_project_only_when_flagged() -> None:
    monday = date(2025, 3, 10)
    linked = _template(project_id="p1")

    assert is_recurrence_day(linked, monday, STATUS_ACTIVE)
    assert not is_recurrence_day(linked, monday, STATUS_COMPLETED)
    assert is_recurrence_day(_template(project_id="p1", stop_on_project_completion=False), monday, STATUS_COMPLETED)


def test_project_active_days_and_start_date() -> None:
    project = SimpleNamespace(start_date=date(2025, 3, 10), active_days=[1, 3])

    assert is_project_active_on(project, date(2025, 3, 10))
    assert not is_project_active_on(project, date(2025, 3, 11))
    assert not is_project_active_on(project, date(2025, 3, 3))
    assert is_project_active_on(SimpleNamespace(start_date=None, active_days=[]), date(2025, 3, 11))
