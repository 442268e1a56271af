import copy
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from services.lifecycle import STATUS_ACTIVE, STATUS_COMPLETED
from services.progress_service import (
    UNTAGGED,
    ProgressService,
    category_breakdown,
    compute_project_progress,
    compute_target_progress,
    count_completed_tasks,
    is_task_complete,
    safe_minutes,
    sum_project_minutes,
    sum_tagged_minutes,
)

T0 = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


def _task(task_id, project_id=None, tags=None, total_poms=1, completed_poms=0, completed_at=None, is_recurring=False):
    return SimpleNamespace(
        id=task_id,
        project_id=project_id,
        tags=tags or [],
        total_poms=total_poms,
        completed_poms=completed_poms,
        completed_at=completed_at,
        is_recurring=is_recurring,
    )


def _entry(entry_id, task_id, minutes, ended_at=T0):
    return SimpleNamespace(id=entry_id, task_id=task_id, duration_minutes=minutes, ended_at=ended_at)


def _project(criteria="task_count", value=3, project_id="p1"):
    return SimpleNamespace(
        id=project_id,
        completion_criteria_type=criteria,
        completion_criteria_value=value,
        progress_value=0.0,
        deadline=None,
        completed_at=None,
        status=STATUS_ACTIVE,
        created_at=T0,
    )


def _target(tags, minutes=120):
    return SimpleNamespace(
        id="t1",
        completion_mode="focus_minutes",
        tags=tags,
        target_minutes=minutes,
        progress_minutes=0.0,
        deadline=(T0 + timedelta(days=30)).date(),
        completed_at=None,
        status=STATUS_ACTIVE,
        created_at=T0,
    )


def test_safe_minutes_treats_bad_values_as_zero() -> None:
    assert safe_minutes(25) == 25.0
    assert safe_minutes("12.5") == 12.5
    for bad in (None, "abc", -5, float("nan"), float("inf"), object()):
        assert safe_minutes(bad) == 0.0


def test_task_completion_rules() -> None:
    assert is_task_complete(_task("a", total_poms=2, completed_poms=2))
    assert not is_task_complete(_task("a", total_poms=2, completed_poms=1))
    assert not is_task_complete(_task("s", total_poms=-1, completed_poms=5))
    assert is_task_complete(_task("s", total_poms=-1, completed_at=T0))


def test_task_count_scenario_completes_once_at_three_of_three() -> None:
    project = _project()
    tasks = [
        _task("a", "p1", completed_poms=1),
        _task("b", "p1", completed_poms=1),
        _task("c", "p1", completed_poms=0),
    ]

    ProgressService.apply_project_progress(project, tasks, [], T0)
    assert project.progress_value == 2
    assert project.status == STATUS_ACTIVE
    assert project.completed_at is None

    tasks[2].completed_poms = 1
    first_completion = T0 + timedelta(hours=1)
    assert ProgressService.apply_project_progress(project, tasks, [], first_completion)
    assert project.progress_value == 3
    assert project.status == STATUS_COMPLETED
    assert project.completed_at == first_completion

    ProgressService.apply_project_progress(project, tasks, [], first_completion + timedelta(days=1))
    assert project.completed_at == first_completion


def test_task_count_counts_each_task_once() -> None:
    done = _task("a", "p1", completed_poms=1)
    history = [_entry(str(i), "a", 25) for i in range(4)]

    assert count_completed_tasks("p1", [done, done]) == 1
    assert compute_project_progress(_project(), [done], history).value == 1


def test_focus_minutes_target_scenario() -> None:
    target = _target(["Coding"])
    tasks = [_task("t1", tags=[" coding "]), _task("t2", tags=["CODING", "python"])]
    history = [_entry("h1", "t1", 30), _entry("h2", "t2", 50), _entry("h3", "t1", 45)]

    result = compute_target_progress(target, tasks, history)
    assert result.value == 125
    assert result.entry_ids == ["h1", "h2", "h3"]

    ProgressService.apply_target_progress(target, tasks, history, T0)
    assert target.progress_minutes == 125
    assert target.status == STATUS_COMPLETED
    assert target.completed_at == T0


def test_entry_matching_several_target_tags_counts_once() -> None:
    tasks = [_task("t2", tags=["coding", "python"])]
    history = [_entry("h2", "t2", 50)]

    assert sum_tagged_minutes(["Coding", "PYTHON"], history, tasks).value == 50


def test_orphaned_and_malformed_entries_are_excluded() -> None:
    tasks = [_task("a", "p1", tags=["coding"])]
    history = [
        _entry("ok", "a", 25),
        _entry("orphan", "deleted-task", 25),
        _entry("no-task", None, 25),
        _entry("bad", "a", "garbage"),
        _entry("negative", "a", -10),
    ]

    result = sum_project_minutes("p1", history, tasks)
    assert result.value == 25
    assert "orphan" not in result.entry_ids and "no-task" not in result.entry_ids
    assert sum_tagged_minutes(["coding"], history, tasks).value == 25


def test_recurring_templates_do_not_contribute() -> None:
    tasks = [_task("tpl", "p1", tags=["coding"], completed_poms=1, is_recurring=True)]
    history = [_entry("h", "tpl", 25)]

    assert sum_project_minutes("p1", history, tasks).value == 0
    assert count_completed_tasks("p1", tasks) == 0


def test_aggregation_is_idempotent_and_does_not_mutate_inputs() -> None:
    tasks = [_task("a", "p1", tags=["x"]), _task("b", "p1", tags=["y"])]
    history = [_entry("1", "a", 25), _entry("2", "b", 15.5)]
    snapshot = copy.deepcopy((tasks, history))

    first = sum_project_minutes("p1", history, tasks)
    second = sum_project_minutes("p1", history, tasks)

    assert first == second
    assert category_breakdown(history, tasks) == category_breakdown(history, tasks)
    assert [vars(t) for t in tasks] == [vars(t) for t in snapshot[0]]
    assert [vars(h) for h in history] == [vars(h) for h in snapshot[1]]


def test_aggregation_is_additive_over_disjoint_history() -> None:
    tasks = [_task("a", "p1", tags=["coding"]), _task("b", "p1", tags=["coding"])]
    history = [_entry(str(i), "a" if i % 2 else "b", 10 + i) for i in range(10)]
    left, right = history[:4], history[4:]

    total = sum_project_minutes("p1", history, tasks).value
    assert total == sum_project_minutes("p1", left, tasks).value + sum_project_minutes("p1", right, tasks).value

    tagged = sum_tagged_minutes(["coding"], history, tasks).value
    assert tagged == sum_tagged_minutes(["coding"], left, tasks).value + sum_tagged_minutes(["coding"], right, tasks).value


def test_new_entry_only_moves_its_own_project() -> None:
    tasks = [
        _task("a", "p1", completed_poms=0),
        _task("b", "p2", completed_poms=1),
        _task("c", "p2", completed_poms=0),
    ]
    history = [_entry("1", "a", 25), _entry("2", "b", 25)]
    durations = _project(criteria="duration_minutes", value=600)
    other = _project(criteria="task_count", value=5, project_id="p2")

    before_own = compute_project_progress(durations, tasks, history).value
    before_other = compute_project_progress(other, tasks, history).value

    history = history + [_entry("3", "a", 40)]
    assert compute_project_progress(other, tasks, history).value == before_other == 1
    assert compute_project_progress(durations, tasks, history).value == before_own + 40


def test_target_counts_only_entries_between_start_and_deadline() -> None:
    target = _target(["coding"])
    target.start_date = T0.date()
    tasks = [_task("t1", tags=["coding"])]
    history = [
        _entry("before", "t1", 60, ended_at=T0 - timedelta(days=1)),
        _entry("first-day", "t1", 30, ended_at=T0),
        _entry("deadline-day", "t1", 20, ended_at=T0 + timedelta(days=30)),
        _entry("after", "t1", 90, ended_at=T0 + timedelta(days=31)),
    ]

    result = compute_target_progress(target, tasks, history, T0)
    assert result.entry_ids == ["first-day", "deadline-day"]
    assert result.value == 50
    # Without a clock there is no local day to compare against
    assert compute_target_progress(target, tasks, history).value == 200


def test_manual_project_progress_is_not_computed() -> None:
    project = _project(criteria="manual", value=None)
    tasks = [_task("a", "p1", completed_poms=1)]
    assert compute_project_progress(project, tasks, []).value == 0
    ProgressService.apply_project_progress(project, tasks, [], T0)
    assert project.status == STATUS_ACTIVE


def test_category_breakdown_counts_every_tag_and_buckets_untagged() -> None:
    tasks = [
        _task("a", tags=["Coding", "python"]),
        _task("b", tags=["reading"]),
        _task("c"),
    ]
    history = [
        _entry("1", "a", 30),
        _entry("2", "b", 40),
        _entry("3", "c", 10),
        _entry("4", "gone", 5),
    ]

    breakdown = category_breakdown(history, tasks)
    assert breakdown == {"reading": 40.0, "coding": 30.0, "python": 30.0, UNTAGGED: 15.0}
    assert list(breakdown) == ["reading", "coding", "python", UNTAGGED]
