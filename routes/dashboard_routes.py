from flask import Blueprint, current_app, jsonify
from flask_login import login_required

from authorization import current_actor
from resources import collection, project_resource, task_resource
from services import project_service, task_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/dashboard")


@dashboard_bp.route("/", endpoint="dashboard")
@login_required
def dashboard():
    user = current_actor()
    config = current_app.config

    # =======================
    # STATS
    # =======================
    stats = {
        "projects": project_service.user_project_stats(user),
        "tasks": task_service.user_task_stats(user, due_soon_days=config["DUE_SOON_DAYS"]),
        "assigned_tasks": task_service.assigned_task_stats(user),
    }

    # =======================
    # RECENT ACTIVITY
    # =======================
    recent_projects = project_service.list_projects(
        user, per_page=config["DASHBOARD_RECENT_PROJECTS"]
    ).items
    recent_tasks = task_service.list_tasks(user, per_page=config["DASHBOARD_RECENT_TASKS"]).items
    overdue = task_service.overdue_tasks(user)
    due_soon = task_service.tasks_due_soon(user, days=config["DUE_SOON_DAYS"])

    return jsonify({
        "stats": stats,
        "recent_projects": collection(recent_projects, project_resource),
        "recent_tasks": collection(recent_tasks, task_resource),
        "overdue_tasks": collection(overdue, task_resource),
        "tasks_due_soon": collection(due_soon, task_resource),
    })
