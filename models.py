from datetime import date, datetime, timedelta, timezone

from flask_login import UserMixin
from sqlalchemy import and_

from enums import ProjectStatus, TaskPriority, TaskStatus, UserRole
from extensions import db


def utcnow():
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def enum_column(enum_cls, default):
    return db.Column(
        db.Enum(
            enum_cls,
            native_enum=False,
            validate_strings=True,
            length=20,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
        default=default,
        server_default=default.value,
        index=True,
    )


class TimestampMixin:
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class User(UserMixin, TimestampMixin, db.Model):                     # Model for storing user data
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password = db.Column(db.String(200), nullable=False)
    role = enum_column(UserRole, UserRole.USER)
    email_verified_at = db.Column(db.DateTime, nullable=True)

    projects = db.relationship("Project", back_populates="user", cascade="all, delete-orphan")
    # No delete cascade: removing a user nulls assigned_to on their tasks.
    assigned_tasks = db.relationship("Task", back_populates="assigned_user")

    def __repr__(self):
        return f"<User {self.email}>"


class Project(TimestampMixin, db.Model):
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = enum_column(ProjectStatus, ProjectStatus.ACTIVE)
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)

    user = db.relationship("User", back_populates="projects")
    tasks = db.relationship(
        "Task",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Task.id",
    )

    # Aggregate annotations, only set by ProjectService.annotate_task_counts().
    tasks_count = None
    completed_tasks_count = None
    pending_tasks_count = None
    in_progress_tasks_count = None

    @property
    def progress(self):
        completed = sum(1 for task in self.tasks if task.status == TaskStatus.COMPLETED)
        return compute_progress(completed, len(self.tasks))

    def __repr__(self):
        return f"<Project {self.id} {self.name}>"


class Task(TimestampMixin, db.Model):                                 # Model for storing the details of task added
    __tablename__ = "tasks"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    assigned_to = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    priority = enum_column(TaskPriority, TaskPriority.MEDIUM)
    status = enum_column(TaskStatus, TaskStatus.PENDING)   # pending by default
    due_date = db.Column(db.Date, nullable=True, index=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    project = db.relationship("Project", back_populates="tasks")
    assigned_user = db.relationship("User", back_populates="assigned_tasks")

    @property
    def is_overdue(self):
        return task_is_overdue(self.due_date, self.status)

    @property
    def days_until_due(self):
        return days_until(self.due_date)

    def __repr__(self):
        return f"<Task {self.id} {self.title}>"


# ---------- Derived values ----------

def compute_progress(completed, total):
    """Whole-number completion percentage; 0 for an empty project."""
    if not total:
        return 0
    return int(round(100 * completed / total))


def task_is_overdue(due_date, status, today=None):
    if due_date is None:
        return False
    today = today or date.today()
    if status is not None and TaskStatus(status).is_final():
        return False
    return due_date < today


def days_until(due_date, today=None):
    if due_date is None:
        return None
    today = today or date.today()
    return (due_date - today).days


# ---------- Write rules ----------

def apply_status_transition(task, status):
    """Set ``task.status`` and keep ``completed_at`` in step with it.

    Every write path that touches status goes through here: completed_at is
    stamped the first time a task becomes completed and cleared as soon as it
    leaves that state. Re-saving a completed task keeps the original stamp.
    """
    status = TaskStatus(status)
    task.status = status
    if status == TaskStatus.COMPLETED:
        if task.completed_at is None:
            task.completed_at = utcnow()
    else:
        task.completed_at = None
    return task


# ---------- Query filters ----------

def not_final():
    return Task.status.notin_(TaskStatus.final_statuses())


def overdue_filter(today=None):
    today = today or date.today()
    return and_(Task.due_date.isnot(None), Task.due_date < today, not_final())


def due_soon_filter(days=7, today=None):
    today = today or date.today()
    return and_(
        Task.due_date.between(today, today + timedelta(days=days)),
        not_final(),
    )
