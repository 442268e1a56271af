from datetime import timedelta

import pytest

from errors import ValidationError
from models.task import Task
from services.automation_service import AutomationService
from services.project_service import ProjectService
from services.task_service import TaskService

from conftest import NOW, USER_ID

TODAY = NOW.date()  # Monday
WEEK_END = TODAY + timedelta(days=6)


def _template(db, **overrides):
    data = {"text": "Stand-up notes", "total_poms": 1, "tags": ["work"]}
    data.update(overrides)
    return AutomationService.create_template(db, USER_ID, data, NOW)


def _instances(db):
    return db.query(Task).filter(Task.template_id.isnot(None)).order_by(Task.due_date.asc()).all()


def test_template_is_hidden_from_task_lists(db) -> None:
    template = _template(db)

    assert template.is_recurring
    assert TaskService.get_all(db, USER_ID, NOW) == []
    assert TaskService.get_by_id(db, USER_ID, template.id) is None
    assert AutomationService.get_templates(db, USER_ID) == [template]


def test_sync_generates_only_on_recurring_weekdays(db) -> None:
    _template(db, recurring_days=[3, 1])  # Wednesday, Monday

    created = AutomationService.sync(db, USER_ID, TODAY, WEEK_END, NOW)

    assert [t.due_date for t in created] == [TODAY, TODAY + timedelta(days=2)]
    assert all(t.tags == ["work"] and t.completed_poms == 0 for t in created)


def test_generation_is_idempotent(db) -> None:
    _template(db)

    first = AutomationService.sync(db, USER_ID, TODAY, WEEK_END, NOW)
    second = AutomationService.sync(db, USER_ID, TODAY, WEEK_END, NOW)

    assert len(first) == 7
    assert second == []
    assert len(_instances(db)) == 7


def test_generation_respects_first_day_and_end_date(db) -> None:
    _template(db, due_date=TODAY + timedelta(days=1), recurring_end_date=TODAY + timedelta(days=3))

    created = AutomationService.sync(db, USER_ID, TODAY, WEEK_END, NOW)
    assert [t.due_date for t in created] == [TODAY + timedelta(days=d) for d in (1, 2, 3)]


def test_paused_template_generates_nothing(db) -> None:
    template = _template(db)
    AutomationService.set_active(db, USER_ID, template.id, False)

    assert AutomationService.generate_for_day(db, USER_ID, TODAY, NOW) == []

    AutomationService.set_active(db, USER_ID, template.id, True)
    assert len(AutomationService.generate_for_day(db, USER_ID, TODAY, NOW)) == 1


def test_completed_project_stops_linked_templates(db) -> None:
    project = ProjectService.create(db, USER_ID, {"name": "Thesis"}, NOW)
    _template(db, text="Stops", project_id=project.id)
    _template(db, text="Keeps going", project_id=project.id, stop_on_project_completion=False)
    ProjectService.set_completion(db, USER_ID, project.id, True, NOW)

    created = AutomationService.generate_for_day(db, USER_ID, TODAY, NOW)
    assert [t.text for t in created] == ["Keeps going"]


def test_project_active_days_limit_generation(db) -> None:
    project = ProjectService.create(db, USER_ID, {"name": "Gym", "active_days": [1, 5]}, NOW)
    _template(db, project_id=project.id)

    created = AutomationService.sync(db, USER_ID, TODAY, WEEK_END, NOW)
    assert [t.due_date for t in created] == [TODAY, TODAY + timedelta(days=4)]


def test_update_template_affects_future_instances_only(db) -> None:
    template = _template(db)
    AutomationService.generate_for_day(db, USER_ID, TODAY, NOW)

    AutomationService.update_template(db, USER_ID, template.id, {"text": " Retro ", "recurring_days": [2]})
    created = AutomationService.sync(db, USER_ID, TODAY, WEEK_END, NOW)

    assert [(t.text, t.due_date) for t in created] == [("Retro", TODAY + timedelta(days=1))]
    assert _instances(db)[0].text == "Stand-up notes"


@pytest.mark.parametrize("days", [[7], [-1], [1, 1], ["mon"]])
def test_invalid_recurring_days_are_rejected(db, days) -> None:
    with pytest.raises(ValidationError):
        _template(db, recurring_days=days)


def test_sync_range_validation(db) -> None:
    with pytest.raises(ValidationError):
        AutomationService.sync(db, USER_ID, TODAY, TODAY - timedelta(days=1), NOW)
    with pytest.raises(ValidationError):
        AutomationService.sync(db, USER_ID, TODAY, TODAY + timedelta(days=62), NOW)


def test_delete_template_removes_future_unstarted_instances(db) -> None:
    template = _template(db)
    AutomationService.sync(db, USER_ID, TODAY, TODAY + timedelta(days=3), NOW)
    started = [t for t in _instances(db) if t.due_date == TODAY + timedelta(days=2)][0]
    TaskService.update(db, USER_ID, started.id, {"completed_poms": 1}, NOW)

    assert AutomationService.delete_template(db, USER_ID, template.id, NOW)

    remaining = [t.due_date for t in _instances(db)]
    assert remaining == [TODAY, TODAY + timedelta(days=2)]
    assert AutomationService.get_templates(db, USER_ID) == []
