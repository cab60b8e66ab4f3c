import itertools
from datetime import date, timedelta

import pytest

from app import create_app
from config import TestConfig
from enums import ProjectStatus, TaskPriority, TaskStatus, UserRole
from extensions import bcrypt, db
from models import Project, Task, User, apply_status_transition

PASSWORD = "secret123"


class Factory:
    """Creates rows in the current app context's session."""

    def __init__(self):
        self._seq = itertools.count(1)

    def user(self, name=None, role=UserRole.USER):
        n = next(self._seq)
        user = User(
            name=name or f"User {n}",
            email=f"user{n}@example.com",
            password=bcrypt.generate_password_hash(PASSWORD).decode("utf-8"),
            role=role,
        )
        db.session.add(user)
        db.session.commit()
        return user

    def project(self, owner, name=None, status=ProjectStatus.ACTIVE, **fields):
        project = Project(
            user_id=owner.id,
            name=name or f"Project {next(self._seq)}",
            status=status,
            **fields,
        )
        db.session.add(project)
        db.session.commit()
        return project

    def task(self, project, title=None, status=TaskStatus.PENDING,
             priority=TaskPriority.MEDIUM, due_in=None, **fields):
        task = Task(
            project_id=project.id,
            title=title or f"Task {next(self._seq)}",
            priority=priority,
            due_date=date.today() + timedelta(days=due_in) if due_in is not None else None,
            **fields,
        )
        apply_status_transition(task, status)
        db.session.add(task)
        db.session.commit()
        return task


@pytest.fixture
def app():
    return create_app(TestConfig)


@pytest.fixture
def ctx(app):
    """Push an app context for tests that call services directly."""
    with app.app_context():
        yield


@pytest.fixture
def factory():
    return Factory()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login():
    def _login(client, email, password=PASSWORD):
        response = client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.get_json()
        return response
    return _login
