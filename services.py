"""Business logic for projects and tasks.

Every method takes the acting user first. Listings are limited to what the
user owns (``owned_by``) except ``assigned_tasks``/``assigned_task_stats``,
which follow assignment across projects. Writes validate, authorize, commit
once and hand back the entity re-loaded with its relations.
"""
import logging
from contextlib import contextmanager

from flask import current_app
from sqlalchemy import case, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from authorization import authorize_project, authorize_task, authorize_tasks, owned_by
from enums import ProjectStatus, TaskPriority, TaskStatus
from errors import ValidationFailed
from extensions import db
from models import (
    Project,
    Task,
    apply_status_transition,
    due_soon_filter,
    not_final,
    overdue_filter,
)
from validation import validate_project, validate_status, validate_task

logger = logging.getLogger(__name__)

TASK_RELATIONS = (selectinload(Task.project), selectinload(Task.assigned_user))
PROJECT_DETAIL_RELATIONS = (
    selectinload(Project.user),
    selectinload(Project.tasks).selectinload(Task.assigned_user),
)


def _recent(model):
    return (model.created_at.desc(), model.id.asc())


def _by_due_date():
    return (Task.due_date.asc(), Task.id.asc())


@contextmanager
def unit_of_work(action):
    """Commit once on success, roll everything back on a database error."""
    try:
        yield
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Rolled back %s", action)
        raise


class ProjectService:
    def list_projects(self, user, page=1, per_page=None):
        per_page = per_page or current_app.config["PROJECTS_PER_PAGE"]
        query = db.select(Project).where(owned_by(user, Project)).order_by(*_recent(Project))
        pagination = db.paginate(
            query,
            page=page,
            per_page=per_page,
            max_per_page=current_app.config["MAX_PER_PAGE"],
            error_out=False,
        )
        self.annotate_task_counts(pagination.items)
        return pagination

    def annotate_task_counts(self, projects):
        """Attach per-status task counts to each project in one grouped query."""
        if not projects:
            return projects

        def count_of(status):
            return func.sum(case((Task.status == status, 1), else_=0))

        rows = db.session.execute(
            db.select(
                Task.project_id,
                func.count(Task.id),
                count_of(TaskStatus.COMPLETED),
                count_of(TaskStatus.PENDING),
                count_of(TaskStatus.IN_PROGRESS),
            )
            .where(Task.project_id.in_([p.id for p in projects]))
            .group_by(Task.project_id)
        ).all()
        counts = {row[0]: row[1:] for row in rows}

        for project in projects:
            total, completed, pending, in_progress = counts.get(project.id, (0, 0, 0, 0))
            project.tasks_count = total
            project.completed_tasks_count = int(completed or 0)
            project.pending_tasks_count = int(pending or 0)
            project.in_progress_tasks_count = int(in_progress or 0)
        return projects

    def project_details(self, user, project_id):
        return authorize_project(user, project_id, options=PROJECT_DETAIL_RELATIONS)

    def project_stats(self, project):
        base = Task.query.filter(Task.project_id == project.id)
        return {
            "total_tasks": base.count(),
            "pending_tasks": base.filter(Task.status == TaskStatus.PENDING).count(),
            "in_progress_tasks": base.filter(Task.status == TaskStatus.IN_PROGRESS).count(),
            "completed_tasks": base.filter(Task.status == TaskStatus.COMPLETED).count(),
            "overdue_tasks": base.filter(overdue_filter()).count(),
        }

    def project_tasks(self, user, project_id):
        authorize_project(user, project_id)
        return (
            Task.query.options(selectinload(Task.assigned_user))
            .filter(Task.project_id == project_id)
            .order_by(*_recent(Task))
            .all()
        )

    def user_project_stats(self, user):
        base = Project.query.filter(owned_by(user, Project))
        return {
            "total": base.count(),
            "active": base.filter(Project.status == ProjectStatus.ACTIVE).count(),
            "completed": base.filter(Project.status == ProjectStatus.COMPLETED).count(),
            "archived": base.filter(Project.status == ProjectStatus.ARCHIVED).count(),
        }

    def create_project(self, user, data):
        fields = validate_project(data)
        project = Project(user_id=user.id, **fields)
        with unit_of_work("project create"):
            db.session.add(project)
        logger.info("User %s created project %s", user.id, project.id)
        return self._fresh(project.id)

    def update_project(self, user, project_id, data):
        project = authorize_project(user, project_id)
        fields = validate_project(data, partial=True)

        start = fields.get("start_date", project.start_date)
        end = fields.get("end_date", project.end_date)
        if start and end and end < start:
            raise ValidationFailed(
                {"end_date": "The end date must be a date after or equal to start date."}
            )

        with unit_of_work("project update"):
            for key, value in fields.items():
                setattr(project, key, value)
        logger.info("User %s updated project %s", user.id, project_id)
        return self._fresh(project_id)

    def delete_project(self, user, project_id):
        project = authorize_project(user, project_id)
        with unit_of_work("project delete"):
            db.session.delete(project)
        logger.info("User %s deleted project %s", user.id, project_id)

    def _fresh(self, project_id):
        return db.session.execute(
            db.select(Project)
            .options(*PROJECT_DETAIL_RELATIONS)
            .where(Project.id == project_id)
            .execution_options(populate_existing=True)
        ).scalar_one()


class TaskService:
    def _owned(self, user):
        return Task.query.options(*TASK_RELATIONS).filter(owned_by(user))

    def list_tasks(self, user, page=1, per_page=None):
        per_page = per_page or current_app.config["TASKS_PER_PAGE"]
        query = (
            db.select(Task)
            .options(*TASK_RELATIONS)
            .where(owned_by(user))
            .order_by(*_recent(Task))
        )
        return db.paginate(
            query,
            page=page,
            per_page=per_page,
            max_per_page=current_app.config["MAX_PER_PAGE"],
            error_out=False,
        )

    def assigned_tasks(self, user):
        return (
            Task.query.options(*TASK_RELATIONS)
            .filter(Task.assigned_to == user.id)
            .order_by(*_recent(Task))
            .all()
        )

    def overdue_tasks(self, user):
        return self._owned(user).filter(overdue_filter()).order_by(*_by_due_date()).all()

    def tasks_due_soon(self, user, days=7):
        return self._owned(user).filter(due_soon_filter(days)).order_by(*_by_due_date()).all()

    def high_priority_tasks(self, user):
        return (
            self._owned(user)
            .filter(Task.priority == TaskPriority.HIGH, not_final())
            .order_by(*_recent(Task))
            .all()
        )

    def user_task_stats(self, user, due_soon_days=7):
        base = Task.query.filter(owned_by(user))
        return {
            "total": base.count(),
            "pending": base.filter(Task.status == TaskStatus.PENDING).count(),
            "in_progress": base.filter(Task.status == TaskStatus.IN_PROGRESS).count(),
            "completed": base.filter(Task.status == TaskStatus.COMPLETED).count(),
            "cancelled": base.filter(Task.status == TaskStatus.CANCELLED).count(),
            "overdue": base.filter(overdue_filter()).count(),
            "due_soon": base.filter(due_soon_filter(due_soon_days)).count(),
            "high_priority": base.filter(Task.priority == TaskPriority.HIGH).count(),
        }

    def assigned_task_stats(self, user):
        base = Task.query.filter(Task.assigned_to == user.id)
        return {
            "total": base.count(),
            "pending": base.filter(Task.status == TaskStatus.PENDING).count(),
            "in_progress": base.filter(Task.status == TaskStatus.IN_PROGRESS).count(),
            "completed": base.filter(Task.status == TaskStatus.COMPLETED).count(),
            "overdue": base.filter(overdue_filter()).count(),
        }

    def search_tasks(self, user, query):
        term = (query or "").strip()
        escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        return (
            self._owned(user)
            .filter(
                or_(
                    Task.title.ilike(pattern, escape="\\"),
                    Task.description.ilike(pattern, escape="\\"),
                )
            )
            .order_by(*_recent(Task))
            .all()
        )

    def get_task(self, user, task_id):
        return authorize_task(user, task_id, options=TASK_RELATIONS)

    def create_task(self, user, data):
        fields = validate_task(data, owner=user)

        status = fields.pop("status", TaskStatus.PENDING)
        task = Task(**fields)
        apply_status_transition(task, status)
        with unit_of_work("task create"):
            db.session.add(task)
        logger.info("User %s created task %s in project %s", user.id, task.id, task.project_id)
        return self._fresh(task.id)

    def update_task(self, user, task_id, data):
        task = authorize_task(user, task_id)
        fields = validate_task(data, partial=True, owner=user)

        status = fields.pop("status", None)
        with unit_of_work("task update"):
            for key, value in fields.items():
                setattr(task, key, value)
            if status is not None:
                apply_status_transition(task, status)
        logger.info("User %s updated task %s", user.id, task_id)
        return self._fresh(task_id)

    def delete_task(self, user, task_id):
        task = authorize_task(user, task_id)
        with unit_of_work("task delete"):
            db.session.delete(task)
        logger.info("User %s deleted task %s", user.id, task_id)

    def assign_task(self, user, task_id, assignee_id):
        """Assign the task to ``assignee_id``, or unassign it with None."""
        task = authorize_task(user, task_id)
        fields = validate_task({"assigned_to": assignee_id}, partial=True)
        with unit_of_work("task assign"):
            task.assigned_to = fields["assigned_to"]
        logger.info("User %s assigned task %s to %s", user.id, task_id, fields["assigned_to"])
        return self._fresh(task_id)

    def update_task_status(self, user, task_id, status):
        task = authorize_task(user, task_id)
        status = validate_status({"status": status})
        with unit_of_work("task status"):
            apply_status_transition(task, status)
        return self._fresh(task_id)

    def complete_task(self, user, task_id):
        return self.update_task_status(user, task_id, TaskStatus.COMPLETED)

    def bulk_update_status(self, user, task_ids, status):
        """Move several tasks to ``status`` in one commit.

        Every id is authorized before any task changes, so one foreign or
        missing id leaves all of them untouched.
        """
        tasks = authorize_tasks(user, task_ids)
        status = validate_status({"status": status})
        with unit_of_work("bulk task status"):
            for task in tasks:
                apply_status_transition(task, status)
        logger.info("User %s moved %d tasks to %s", user.id, len(tasks), TaskStatus(status).value)
        return (
            Task.query.options(*TASK_RELATIONS)
            .filter(Task.id.in_(task_ids))
            .order_by(Task.id)
            .populate_existing()
            .all()
        )

    def _fresh(self, task_id):
        return db.session.execute(
            db.select(Task)
            .options(*TASK_RELATIONS)
            .where(Task.id == task_id)
            .execution_options(populate_existing=True)
        ).scalar_one()


project_service = ProjectService()
task_service = TaskService()
