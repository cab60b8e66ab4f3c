from datetime import date, timedelta

import click
from flask.cli import with_appcontext

from enums import ProjectStatus, TaskPriority, TaskStatus, UserRole
from extensions import bcrypt, db
from models import Project, Task, User, apply_status_transition, utcnow

DEFAULT_PASSWORD = "password"


def _user(name, email, role=UserRole.USER):
    return User(
        name=name,
        email=email,
        role=role,
        password=bcrypt.generate_password_hash(DEFAULT_PASSWORD).decode("utf-8"),
        email_verified_at=utcnow(),
    )


def _task(project, title, status, priority=TaskPriority.MEDIUM, due_in=None, assignee=None):
    task = Task(
        project=project,
        title=title,
        priority=priority,
        due_date=date.today() + timedelta(days=due_in) if due_in is not None else None,
        assigned_user=assignee,
    )
    apply_status_transition(task, status)
    return task


def seed():
    """Fill an empty database with two login accounts and sample work."""
    if User.query.count():
        return False

    admin = _user("Admin User", "admin@example.com", UserRole.ADMIN)
    user = _user("John Doe", "user@example.com")
    helpers = [_user(f"Team Member {n}", f"member{n}@example.com") for n in range(1, 4)]
    people = [admin, user] + helpers

    today = date.today()
    admin_projects = [
        Project(user=admin, name=name, status=ProjectStatus.ACTIVE, start_date=today - timedelta(days=30))
        for name in ("Website Redesign", "Mobile App Launch", "Data Migration")
    ]
    admin_projects.append(
        Project(
            user=admin,
            name="Quarterly Report",
            status=ProjectStatus.COMPLETED,
            start_date=today - timedelta(days=120),
            end_date=today - timedelta(days=30),
        )
    )
    user_projects = [
        Project(user=user, name=name, status=ProjectStatus.ACTIVE, start_date=today - timedelta(days=10))
        for name in ("Onboarding Portal", "Internal Wiki")
    ]
    user_projects.append(Project(user=user, name="Legacy Cleanup", status=ProjectStatus.ARCHIVED))

    statuses = list(TaskStatus)
    priorities = list(TaskPriority)
    for index, project in enumerate(admin_projects + user_projects):
        for n in range(4):
            _task(
                project,
                f"{project.name} task {n + 1}",
                statuses[(index + n) % len(statuses)],
                priorities[(index + n) % len(priorities)],
                due_in=(n * 5) - 3,
                assignee=people[(index + n) % len(people)],
            )

    # Scenarios the dashboard should always show.
    _task(admin_projects[0], "Critical Bug Fix - System Downtime", TaskStatus.PENDING,
          TaskPriority.HIGH, due_in=-2, assignee=user)
    _task(admin_projects[0], "Review Documentation Updates", TaskStatus.PENDING)
    _task(user_projects[0], "Implement User Authentication", TaskStatus.IN_PROGRESS,
          due_in=3, assignee=user)

    db.session.add_all(people)
    db.session.commit()
    return True


@click.command("seed")
@with_appcontext
def seed_command():
    """Seed the database with development data."""
    if not seed():
        click.echo("Database already has users, nothing seeded.")
        return
    click.echo(f"Users: {User.query.count()}")
    click.echo(f"Projects: {Project.query.count()}")
    click.echo(f"Tasks: {Task.query.count()}")
    click.echo(f"Login with admin@example.com or user@example.com / {DEFAULT_PASSWORD}")
