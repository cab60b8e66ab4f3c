from datetime import date, datetime, timedelta

import pytest

from enums import ProjectStatus, TaskPriority, TaskStatus
from errors import Forbidden, NotFound, ValidationFailed
from extensions import db
from models import Project, Task
from services import project_service, task_service


@pytest.fixture
def owner(ctx, factory):
    return factory.user("Owner")


class TestProjects:
    def test_create_defaults_to_active(self, owner):
        project = project_service.create_project(owner, {"name": "  Launch  "})
        assert project.name == "Launch"
        assert project.status is ProjectStatus.ACTIVE
        assert project.user_id == owner.id
        assert project.progress == 0

    def test_create_requires_name(self, owner):
        with pytest.raises(ValidationFailed) as exc:
            project_service.create_project(owner, {"name": "", "status": "paused"})
        assert set(exc.value.errors) == {"name", "status"}
        assert Project.query.count() == 0

    def test_end_date_cannot_precede_start(self, owner):
        with pytest.raises(ValidationFailed) as exc:
            project_service.create_project(
                owner, {"name": "P", "start_date": "2025-05-10", "end_date": "2025-05-01"}
            )
        assert "end_date" in exc.value.errors

        project = project_service.create_project(owner, {"name": "P", "start_date": "2025-05-10"})
        with pytest.raises(ValidationFailed):
            project_service.update_project(owner, project.id, {"end_date": "2025-05-01"})

    def test_partial_update(self, owner):
        project = project_service.create_project(owner, {"name": "P", "description": "old"})
        updated = project_service.update_project(owner, project.id, {"status": "archived"})
        assert updated.status is ProjectStatus.ARCHIVED
        assert updated.name == "P"
        assert updated.description == "old"

    def test_delete_cascades(self, owner, factory):
        project = factory.project(owner)
        factory.task(project)
        project_service.delete_project(owner, project.id)
        assert Project.query.count() == 0
        assert Task.query.count() == 0
        with pytest.raises(NotFound):
            project_service.project_details(owner, project.id)

    def test_progress_follows_completed_tasks(self, owner):
        project = project_service.create_project(owner, {"name": "Progress"})
        assert project_service.project_details(owner, project.id).progress == 0

        tasks = [
            task_service.create_task(owner, {"project_id": project.id, "title": f"T{n}"})
            for n in range(4)
        ]
        task_service.complete_task(owner, tasks[0].id)
        assert project_service.project_details(owner, project.id).progress == 25

        task_service.complete_task(owner, tasks[1].id)
        task_service.update_task(owner, tasks[2].id, {"status": "completed"})
        assert project_service.project_details(owner, project.id).progress == 75

    def test_list_is_scoped_newest_first_with_counts(self, owner, factory):
        factory.project(owner, name="First", created_at=datetime(2025, 1, 1))
        second = factory.project(owner, name="Second", created_at=datetime(2025, 2, 1))
        factory.project(owner, name="Tie", created_at=datetime(2025, 2, 1))
        factory.project(factory.user(), name="Someone else's")
        factory.task(second, status=TaskStatus.COMPLETED)
        factory.task(second, status=TaskStatus.PENDING)
        factory.task(second, status=TaskStatus.IN_PROGRESS)

        page = project_service.list_projects(owner, per_page=10)
        assert [p.name for p in page.items] == ["Second", "Tie", "First"]
        assert page.total == 3

        by_name = {p.name: p for p in page.items}
        assert by_name["Second"].tasks_count == 3
        assert by_name["Second"].completed_tasks_count == 1
        assert by_name["Second"].pending_tasks_count == 1
        assert by_name["Second"].in_progress_tasks_count == 1
        assert by_name["First"].tasks_count == 0

    def test_pagination(self, owner, factory):
        for n in range(3):
            factory.project(owner, name=f"P{n}")
        page = project_service.list_projects(owner, page=2, per_page=2)
        assert page.page == 2
        assert page.pages == 2
        assert len(page.items) == 1

    def test_project_stats(self, owner, factory):
        project = factory.project(owner)
        factory.task(project, status=TaskStatus.PENDING, due_in=-1)
        factory.task(project, status=TaskStatus.IN_PROGRESS)
        factory.task(project, status=TaskStatus.COMPLETED, due_in=-3)
        factory.task(project, status=TaskStatus.CANCELLED)

        assert project_service.project_stats(project) == {
            "total_tasks": 4,
            "pending_tasks": 1,
            "in_progress_tasks": 1,
            "completed_tasks": 1,
            "overdue_tasks": 1,
        }

    def test_project_tasks_newest_first(self, owner, factory):
        project = factory.project(owner)
        old = factory.task(project, created_at=datetime(2025, 1, 1))
        new = factory.task(project, created_at=datetime(2025, 3, 1))
        tasks = project_service.project_tasks(owner, project.id)
        assert [t.id for t in tasks] == [new.id, old.id]

        with pytest.raises(Forbidden):
            project_service.project_tasks(factory.user(), project.id)

    def test_user_project_stats(self, owner, factory):
        factory.project(owner, status=ProjectStatus.ACTIVE)
        factory.project(owner, status=ProjectStatus.ACTIVE)
        factory.project(owner, status=ProjectStatus.COMPLETED)
        factory.project(factory.user(), status=ProjectStatus.ACTIVE)
        assert project_service.user_project_stats(owner) == {
            "total": 3, "active": 2, "completed": 1, "archived": 0,
        }


class TestTaskWrites:
    def test_create_requires_title_and_existing_project(self, owner):
        with pytest.raises(ValidationFailed) as exc:
            task_service.create_task(owner, {"project_id": 404, "title": " "})
        assert set(exc.value.errors) == {"project_id", "title"}

        with pytest.raises(ValidationFailed) as exc:
            task_service.create_task(owner, {"title": "No project"})
        assert "project_id" in exc.value.errors

    def test_foreign_project_is_refused_before_field_errors(self, owner, factory):
        foreign = factory.project(factory.user())
        with pytest.raises(Forbidden):
            task_service.create_task(owner, {"project_id": foreign.id})
        with pytest.raises(Forbidden):
            task_service.create_task(owner, {"project_id": str(foreign.id), "title": ""})
        assert Task.query.count() == 0

    def test_create_loads_relations(self, owner, factory):
        project = factory.project(owner)
        helper = factory.user()
        task = task_service.create_task(owner, {
            "project_id": project.id,
            "title": "Write docs",
            "priority": "high",
            "due_date": "2030-01-31",
            "assigned_to": helper.id,
        })
        assert task.project.id == project.id
        assert task.assigned_user.id == helper.id
        assert task.priority is TaskPriority.HIGH
        assert task.status is TaskStatus.PENDING
        assert task.completed_at is None

    def test_create_as_completed_stamps_completed_at(self, owner, factory):
        project = factory.project(owner)
        task = task_service.create_task(
            owner, {"project_id": project.id, "title": "Done", "status": "completed"}
        )
        assert task.completed_at is not None

    def test_client_cannot_write_completed_at(self, owner, factory):
        task = factory.task(factory.project(owner))
        updated = task_service.update_task(owner, task.id, {"completed_at": "2025-01-01T00:00:00"})
        assert updated.completed_at is None

    def test_unknown_assignee_is_invalid(self, owner, factory):
        task = factory.task(factory.project(owner))
        with pytest.raises(ValidationFailed) as exc:
            task_service.assign_task(owner, task.id, 9999)
        assert "assigned_to" in exc.value.errors

    def test_assign_and_unassign(self, owner, factory):
        task = factory.task(factory.project(owner))
        helper = factory.user()
        assert task_service.assign_task(owner, task.id, helper.id).assigned_to == helper.id
        assert task_service.assign_task(owner, task.id, None).assigned_user is None

    def test_overdue_task_completed(self, owner, factory):
        project = factory.project(owner)
        task = task_service.create_task(owner, {
            "project_id": project.id,
            "title": "Late",
            "due_date": (date.today() - timedelta(days=1)).isoformat(),
        })
        assert task.is_overdue is True
        assert task.days_until_due < 0

        task = task_service.update_task_status(owner, task.id, "completed")
        assert task.is_overdue is False
        assert task.completed_at is not None

    def test_reopening_clears_completed_at(self, owner, factory):
        task = factory.task(factory.project(owner), status=TaskStatus.COMPLETED)
        assert task.completed_at is not None
        task = task_service.update_task(owner, task.id, {"status": "in_progress"})
        assert task.completed_at is None

    def test_repeated_update_is_idempotent(self, owner, factory):
        task = factory.task(factory.project(owner))
        data = {"title": "Same", "status": "completed", "priority": "low"}

        first = task_service.update_task(owner, task.id, data)
        stamp = first.completed_at
        second = task_service.update_task(owner, task.id, data)

        assert second.completed_at == stamp
        assert second.status is TaskStatus.COMPLETED
        assert second.title == "Same"
        assert second.priority is TaskPriority.LOW

    def test_update_without_status_keeps_completion(self, owner, factory):
        task = factory.task(factory.project(owner), status=TaskStatus.COMPLETED)
        stamp = task.completed_at
        task = task_service.update_task(owner, task.id, {"title": "Renamed"})
        assert task.completed_at == stamp

    def test_invalid_status_change(self, owner, factory):
        task = factory.task(factory.project(owner))
        with pytest.raises(ValidationFailed):
            task_service.update_task_status(owner, task.id, "done")
        with pytest.raises(ValidationFailed):
            task_service.update_task_status(owner, task.id, None)

    def test_bulk_status(self, owner, factory):
        project = factory.project(owner)
        a = factory.task(project)
        b = factory.task(project, status=TaskStatus.COMPLETED)
        stamp = b.completed_at

        tasks = task_service.bulk_update_status(owner, [a.id, b.id], "completed")
        assert [t.status for t in tasks] == [TaskStatus.COMPLETED, TaskStatus.COMPLETED]
        assert all(t.completed_at is not None for t in tasks)
        assert tasks[1].completed_at == stamp

        tasks = task_service.bulk_update_status(owner, [a.id, b.id], "cancelled")
        assert all(t.completed_at is None for t in tasks)

    def test_bulk_status_is_all_or_nothing(self, owner, factory):
        mine = factory.task(factory.project(owner))
        theirs = factory.task(factory.project(factory.user()))
        with pytest.raises(Forbidden):
            task_service.bulk_update_status(owner, [mine.id, theirs.id], "completed")
        db.session.expire_all()
        assert db.session.get(Task, mine.id).status is TaskStatus.PENDING

    def test_delete(self, owner, factory):
        task = factory.task(factory.project(owner))
        task_service.delete_task(owner, task.id)
        assert Task.query.count() == 0
        with pytest.raises(NotFound):
            task_service.get_task(owner, task.id)


class TestTaskQueries:
    @pytest.fixture
    def board(self, owner, factory):
        project = factory.project(owner)
        other = factory.project(factory.user())
        return {
            "late": factory.task(project, title="Late report", due_in=-2),
            "later": factory.task(project, title="Later", due_in=-5, status=TaskStatus.IN_PROGRESS),
            "late_done": factory.task(project, title="Late done", due_in=-1, status=TaskStatus.COMPLETED),
            "today": factory.task(project, title="Today", due_in=0, priority=TaskPriority.HIGH),
            "week": factory.task(project, title="Week", due_in=7),
            "far": factory.task(project, title="Far", due_in=8, priority=TaskPriority.HIGH,
                                description="Quarterly REPORT draft"),
            "cancelled": factory.task(project, title="Dropped", due_in=1, status=TaskStatus.CANCELLED,
                                      priority=TaskPriority.HIGH),
            "foreign": factory.task(other, title="Foreign report", due_in=-2),
        }

    def ids(self, tasks):
        return [t.id for t in tasks]

    def test_overdue_soonest_first(self, owner, board):
        assert self.ids(task_service.overdue_tasks(owner)) == [board["later"].id, board["late"].id]

    def test_due_soon_window(self, owner, board):
        assert self.ids(task_service.tasks_due_soon(owner)) == [board["today"].id, board["week"].id]
        assert self.ids(task_service.tasks_due_soon(owner, days=8)) == [
            board["today"].id, board["week"].id, board["far"].id,
        ]
        assert self.ids(task_service.tasks_due_soon(owner, days=0)) == [board["today"].id]

    def test_high_priority_excludes_final(self, owner, board):
        assert set(self.ids(task_service.high_priority_tasks(owner))) == {
            board["today"].id, board["far"].id,
        }

    def test_search_title_or_description_case_insensitive(self, owner, board):
        found = self.ids(task_service.search_tasks(owner, "report"))
        assert set(found) == {board["late"].id, board["far"].id}

    def test_search_treats_wildcards_literally(self, owner, factory):
        project = factory.project(owner)
        hit = factory.task(project, title="Reach 100% coverage")
        factory.task(project, title="Reach 1000 users")
        assert self.ids(task_service.search_tasks(owner, "100%")) == [hit.id]

    def test_list_tasks_scoped_with_relations(self, owner, board):
        page = task_service.list_tasks(owner, per_page=50)
        assert page.total == 7
        assert board["foreign"].id not in self.ids(page.items)
        assert all(t.project.user_id == owner.id for t in page.items)

    def test_list_tasks_tie_break_by_id(self, owner, factory):
        project = factory.project(owner)
        same = datetime(2025, 4, 1)
        a = factory.task(project, created_at=same)
        b = factory.task(project, created_at=same)
        newest = factory.task(project, created_at=datetime(2025, 5, 1))
        page = task_service.list_tasks(owner)
        assert self.ids(page.items) == [newest.id, a.id, b.id]

    def test_user_task_stats(self, owner, board):
        stats = task_service.user_task_stats(owner)
        assert stats == {
            "total": 7,
            "pending": 4,
            "in_progress": 1,
            "completed": 1,
            "cancelled": 1,
            "overdue": 2,
            "due_soon": 2,
            "high_priority": 3,
        }
        statuses = stats["pending"] + stats["in_progress"] + stats["completed"] + stats["cancelled"]
        assert statuses == stats["total"]


def test_assigned_and_owned_stats_overlap(ctx, factory):
    alice, bob = factory.user("Alice"), factory.user("Bob")
    task = factory.task(factory.project(alice), assigned_to=bob.id, due_in=-1)

    assigned = task_service.assigned_task_stats(bob)
    assert assigned == {"total": 1, "pending": 1, "in_progress": 0, "completed": 0, "overdue": 1}
    assert task_service.user_task_stats(alice)["total"] == 1
    assert task_service.user_task_stats(bob)["total"] == 0
    assert [t.id for t in task_service.assigned_tasks(bob)] == [task.id]
    assert task_service.assigned_tasks(alice) == []
