"""Closed value sets for users, projects and tasks.

The ``value`` of every member is stored in the database, so renaming or
removing a member needs a data migration.
"""
import enum


class ChoiceEnum(str, enum.Enum):
    """Base for string enums that carry display metadata."""

    @classmethod
    def values(cls):
        return [member.value for member in cls]

    @classmethod
    def choices(cls):
        """(value, label) pairs for client dropdowns."""
        return [{"value": member.value, "label": member.label} for member in cls]

    @property
    def label(self):
        return self._meta()["label"]

    @property
    def color(self):
        return self._meta()["color"]

    def _meta(self):
        return _META[type(self)][self]

    def __str__(self):
        return self.value


class UserRole(ChoiceEnum):
    ADMIN = "admin"
    USER = "user"


class ProjectStatus(ChoiceEnum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class TaskStatus(ChoiceEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def is_final(self):
        return self in (TaskStatus.COMPLETED, TaskStatus.CANCELLED)

    @classmethod
    def final_statuses(cls):
        return [member for member in cls if member.is_final()]


class TaskPriority(ChoiceEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def weight(self):
        """Numeric importance, higher is more important."""
        return self._meta()["weight"]


_META = {
    UserRole: {
        UserRole.ADMIN: {"label": "Administrator", "color": None},
        UserRole.USER: {"label": "User", "color": None},
    },
    ProjectStatus: {
        ProjectStatus.ACTIVE: {"label": "Active", "color": "green"},
        ProjectStatus.COMPLETED: {"label": "Completed", "color": "blue"},
        ProjectStatus.ARCHIVED: {"label": "Archived", "color": "gray"},
    },
    TaskStatus: {
        TaskStatus.PENDING: {"label": "Pending", "color": "yellow"},
        TaskStatus.IN_PROGRESS: {"label": "In Progress", "color": "blue"},
        TaskStatus.COMPLETED: {"label": "Completed", "color": "green"},
        TaskStatus.CANCELLED: {"label": "Cancelled", "color": "red"},
    },
    TaskPriority: {
        TaskPriority.LOW: {"label": "Low", "color": "gray", "weight": 1},
        TaskPriority.MEDIUM: {"label": "Medium", "color": "yellow", "weight": 2},
        TaskPriority.HIGH: {"label": "High", "color": "red", "weight": 3},
    },
}
