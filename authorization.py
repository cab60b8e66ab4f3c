"""Ownership checks for projects and tasks.

A project belongs to ``project.user_id``; a task belongs to the owner of its
project. Ids that do not exist raise NotFound, existing resources owned by
someone else raise Forbidden. The owner id is looked up on its own before the
entity is loaded, so a denied request never touches the resource itself.
"""
import logging

from flask_login import current_user

from errors import Forbidden, NotFound
from extensions import db
from models import Project, Task

logger = logging.getLogger(__name__)


def owned_by(user, model=Task):
    """Filter clause limiting ``model`` rows to the ones ``user`` owns."""
    if model is Project:
        return Project.user_id == user.id
    if model is Task:
        return Task.project.has(Project.user_id == user.id)
    raise TypeError(f"No ownership rule for {model.__name__}")


def _owner_of_project(project_id):
    return db.session.execute(
        db.select(Project.user_id).where(Project.id == project_id)
    ).first()


def _owner_of_task(task_id):
    return db.session.execute(
        db.select(Project.user_id)
        .join(Task, Task.project_id == Project.id)
        .where(Task.id == task_id)
    ).first()


def _check(user, row, kind, ident):
    if row is None:
        raise NotFound(f"{kind} not found.")
    if row.user_id != user.id:
        logger.warning("User %s denied access to %s %s", user.id, kind.lower(), ident)
        raise Forbidden()


def authorize_project(user, project_id, options=()):
    """Return the project if ``user`` owns it, loading ``options`` eagerly."""
    _check(user, _owner_of_project(project_id), "Project", project_id)
    return db.session.execute(
        db.select(Project).options(*options).where(Project.id == project_id)
    ).scalar_one()


def deny_foreign_project(user, project_id):
    """Raise Forbidden when ``project_id`` exists and someone else owns it.

    A missing id passes through; reporting it is left to validation.
    """
    row = _owner_of_project(project_id)
    if row is not None:
        _check(user, row, "Project", project_id)


def authorize_task(user, task_id, options=()):
    """Return the task if ``user`` owns its project."""
    _check(user, _owner_of_task(task_id), "Task", task_id)
    return db.session.execute(
        db.select(Task).options(*options).where(Task.id == task_id)
    ).scalar_one()


def authorize_tasks(user, task_ids):
    """Authorize every id up front; nothing is returned unless all pass."""
    for task_id in task_ids:
        _check(user, _owner_of_task(task_id), "Task", task_id)
    return (
        db.session.execute(db.select(Task).where(Task.id.in_(task_ids)).order_by(Task.id))
        .scalars()
        .all()
    )


def current_actor():
    """The logged-in User behind Flask-Login's proxy."""
    return current_user._get_current_object()
