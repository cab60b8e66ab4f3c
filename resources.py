"""JSON shapes for users, projects and tasks.

Related entities are rendered only when the query already loaded them and
aggregate counts only when they were annotated. Columns left out of a narrowed
query come back as ``None`` and never trigger a lazy load. An entity already
being rendered further up the tree is not rendered again.
"""
from sqlalchemy import inspect as sa_inspect

from models import days_until, task_is_overdue


def iso_date(d):
    return d.isoformat() if d is not None else None


def iso_utc(d):
    """ISO-8601 string for a naive UTC datetime, or None."""
    if d is None:
        return None
    return d.replace(microsecond=0).isoformat() + "Z"


def _loaded(obj, attr):
    return attr not in sa_inspect(obj).unloaded


def _get(obj, attr):
    state = sa_inspect(obj)
    # Expired columns reload from the row; deferred ones stay out.
    if attr in state.unloaded and attr not in state.expired_attributes:
        return None
    return getattr(obj, attr)


def _related(obj, attr, path):
    """The loaded relation value, or None when unloaded or already on the path."""
    if not _loaded(obj, attr):
        return None
    value = getattr(obj, attr)
    if value is None:
        return None
    if isinstance(value, list):
        return [v for v in value if _key(v) not in path]
    return None if _key(value) in path else value


def _key(obj):
    return (type(obj).__name__, sa_inspect(obj).identity or id(obj))


def _put(out, key, value):
    if value is not None:
        out[key] = value


def _enum(value, **extra):
    if value is None:
        return None
    shaped = {"value": value.value, "label": value.label}
    shaped.update(extra)
    return shaped


def user_resource(user, _path=()):
    path = _path + (_key(user),)
    role = _get(user, "role")
    out = {
        "id": user.id,
        "name": _get(user, "name"),
        "email": _get(user, "email"),
    }
    _put(out, "role", _enum(role))
    out["email_verified_at"] = iso_utc(_get(user, "email_verified_at"))
    out["created_at"] = iso_utc(_get(user, "created_at"))
    out["updated_at"] = iso_utc(_get(user, "updated_at"))

    projects = _related(user, "projects", path)
    if projects is not None:
        out["projects"] = [project_resource(p, path) for p in projects]
    assigned = _related(user, "assigned_tasks", path)
    if assigned is not None:
        out["assigned_tasks"] = [task_resource(t, path) for t in assigned]
    return out


def project_resource(project, _path=()):
    path = _path + (_key(project),)
    status = _get(project, "status")
    out = {
        "id": project.id,
        "user_id": _get(project, "user_id"),
        "name": _get(project, "name"),
        "description": _get(project, "description"),
    }
    _put(out, "status", _enum(status, color=status.color) if status is not None else None)
    out["start_date"] = iso_date(_get(project, "start_date"))
    out["end_date"] = iso_date(_get(project, "end_date"))
    out["created_at"] = iso_utc(_get(project, "created_at"))
    out["updated_at"] = iso_utc(_get(project, "updated_at"))

    if _loaded(project, "tasks"):
        out["progress"] = project.progress

    owner = _related(project, "user", path)
    if owner is not None:
        out["user"] = user_resource(owner, path)
    tasks = _related(project, "tasks", path)
    if tasks is not None:
        out["tasks"] = [task_resource(t, path) for t in tasks]

    for field in (
        "tasks_count",
        "completed_tasks_count",
        "pending_tasks_count",
        "in_progress_tasks_count",
    ):
        _put(out, field, getattr(project, field, None))
    return out


def task_resource(task, _path=()):
    path = _path + (_key(task),)
    priority = _get(task, "priority")
    status = _get(task, "status")
    due_date = _get(task, "due_date")
    out = {
        "id": task.id,
        "project_id": _get(task, "project_id"),
        "assigned_to": _get(task, "assigned_to"),
        "title": _get(task, "title"),
        "description": _get(task, "description"),
    }
    if priority is not None:
        out["priority"] = _enum(priority, color=priority.color, weight=priority.weight)
    if status is not None:
        out["status"] = _enum(status, color=status.color, is_final=status.is_final())
    out["due_date"] = iso_date(due_date)
    out["completed_at"] = iso_utc(_get(task, "completed_at"))
    out["created_at"] = iso_utc(_get(task, "created_at"))
    out["updated_at"] = iso_utc(_get(task, "updated_at"))

    # Derived from whatever is loaded; an unloaded status counts as not final.
    out["is_overdue"] = task_is_overdue(due_date, status)
    out["days_until_due"] = days_until(due_date)

    project = _related(task, "project", path)
    if project is not None:
        out["project"] = project_resource(project, path)
    assignee = _related(task, "assigned_user", path)
    if assignee is not None:
        out["assigned_user"] = user_resource(assignee, path)
    return out


def paginated(pagination, shape):
    return {
        "data": [shape(item) for item in pagination.items],
        "meta": {
            "current_page": pagination.page,
            "last_page": pagination.pages,
            "per_page": pagination.per_page,
            "total": pagination.total,
        },
    }


def collection(items, shape):
    return [shape(item) for item in items]
