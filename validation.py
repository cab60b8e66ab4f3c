"""Validation utilities.

Each ``validate_*`` function takes the raw request payload and returns a dict
of cleaned values ready to be set on a model. All field problems are gathered
and raised together as one ValidationFailed.
"""
import re
from datetime import date

from authorization import deny_foreign_project
from enums import ProjectStatus, TaskPriority, TaskStatus
from errors import ValidationFailed
from extensions import db
from models import Project, User

EMAIL_REGEX = r'^[\w\.-]+@[\w\.-]+\.\w+$'  # basic email pattern
MAX_NAME_LENGTH = 255


class _Cleaner:
    def __init__(self, data, partial=False):
        if data is not None and not isinstance(data, dict):
            raise ValidationFailed({"payload": "The request body must be a JSON object."})
        self.data = data or {}
        self.partial = partial
        self.cleaned = {}
        self.errors = {}

    def present(self, field):
        return field in self.data

    def skip(self, field):
        """True when a partial update leaves ``field`` out."""
        return self.partial and not self.present(field)

    def raw(self, field):
        value = self.data.get(field)
        if isinstance(value, str):
            value = value.strip()
            if value == "":
                return None
        return value

    def required_string(self, field, label, max_length=MAX_NAME_LENGTH):
        if self.skip(field):
            return
        value = self.raw(field)
        if value is None:
            self.errors[field] = f"The {label} field is required."
        elif not isinstance(value, str):
            self.errors[field] = f"The {label} must be a string."
        elif len(value) > max_length:
            self.errors[field] = f"The {label} may not be greater than {max_length} characters."
        else:
            self.cleaned[field] = value

    def optional_string(self, field, label):
        if not self.present(field):
            return
        value = self.raw(field)
        if value is not None and not isinstance(value, str):
            self.errors[field] = f"The {label} must be a string."
        else:
            self.cleaned[field] = value

    def optional_date(self, field, label):
        if not self.present(field):
            return
        value = self.raw(field)
        if value is None:
            self.cleaned[field] = None
            return
        try:
            self.cleaned[field] = date.fromisoformat(value)
        except (TypeError, ValueError):
            self.errors[field] = f"The {label} is not a valid date."

    def choice(self, field, label, enum_cls):
        if not self.present(field):
            return
        value = self.raw(field)
        if value is None:
            return
        try:
            self.cleaned[field] = enum_cls(value)
        except ValueError:
            self.errors[field] = f"The selected {label} is invalid."

    def optional_user(self, field, label):
        if not self.present(field):
            return
        value = self.raw(field)
        if value is None:
            self.cleaned[field] = None
            return
        user_id = _as_int(value)
        if user_id is None or db.session.get(User, user_id) is None:
            self.errors[field] = f"The selected {label} is invalid."
        else:
            self.cleaned[field] = user_id

    def finish(self):
        if self.errors:
            raise ValidationFailed(self.errors)
        return self.cleaned


def _project_exists(project_id):
    return db.session.execute(
        db.select(Project.id).where(Project.id == project_id)
    ).first() is not None


def _as_int(value):
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    # Wider values do not fit an INTEGER column.
    return number if -2**63 <= number < 2**63 else None


def validate_registration(data):
    form = _Cleaner(data)
    form.required_string("name", "name", max_length=100)
    form.required_string("email", "email", max_length=120)
    form.required_string("password", "password", max_length=200)

    email = form.cleaned.get("email")
    if email and not re.match(EMAIL_REGEX, email):
        form.errors["email"] = "Invalid email format."
    elif email and User.query.filter_by(email=email).first():
        form.errors["email"] = "Email already registered."

    password = form.cleaned.get("password")
    if password and len(password) < 6:
        form.errors["password"] = "Password must be at least 6 characters long."

    return form.finish()


def validate_project(data, partial=False):
    form = _Cleaner(data, partial=partial)
    form.required_string("name", "name")
    form.optional_string("description", "description")
    form.choice("status", "status", ProjectStatus)
    form.optional_date("start_date", "start date")
    form.optional_date("end_date", "end date")

    start, end = form.cleaned.get("start_date"), form.cleaned.get("end_date")
    if start and end and end < start:
        form.errors["end_date"] = "The end date must be a date after or equal to start date."

    return form.finish()


def validate_task(data, partial=False, owner=None):
    """Clean a task payload.

    With ``owner`` given, a ``project_id`` naming someone else's project
    raises Forbidden before any other field is looked at.
    """
    form = _Cleaner(data, partial=partial)
    project_id = _as_int(form.raw("project_id"))
    if owner is not None and project_id is not None:
        deny_foreign_project(owner, project_id)

    form.required_string("title", "title")
    form.optional_string("description", "description")
    form.choice("priority", "priority", TaskPriority)
    form.choice("status", "status", TaskStatus)
    form.optional_date("due_date", "due date")
    form.optional_user("assigned_to", "assignee")

    if not form.skip("project_id"):
        if form.raw("project_id") is None:
            form.errors["project_id"] = "The project field is required."
        elif project_id is None or not _project_exists(project_id):
            form.errors["project_id"] = "The selected project is invalid."
        else:
            form.cleaned["project_id"] = project_id

    # completed_at is derived from status and never accepted from clients.
    return form.finish()


def validate_status(data):
    form = _Cleaner(data)
    if form.raw("status") is None:
        form.errors["status"] = "The status field is required."
    form.choice("status", "status", TaskStatus)
    return form.finish()["status"]


def validate_task_ids(data):
    form = _Cleaner(data)
    ids = form.data.get("task_ids")
    if not isinstance(ids, list) or not ids:
        form.errors["task_ids"] = "The task ids field must be a non-empty list."
    else:
        parsed = [_as_int(i) for i in ids]
        if any(i is None for i in parsed):
            form.errors["task_ids"] = "The task ids must be integers."
        else:
            form.cleaned["task_ids"] = sorted(set(parsed))
    return form.finish()["task_ids"]
