from flask import Blueprint, jsonify
from flask_login import login_required

from enums import ProjectStatus, TaskPriority, TaskStatus
from models import User

options_bp = Blueprint("options", __name__, url_prefix="/options")


@options_bp.route("/")
@login_required
def index():
    """Choices a client needs to build project and task forms."""
    users = User.query.with_entities(User.id, User.name, User.email).order_by(User.name).all()
    return jsonify({
        "project_statuses": ProjectStatus.choices(),
        "task_statuses": TaskStatus.choices(),
        "task_priorities": TaskPriority.choices(),
        "users": [{"id": u.id, "name": u.name, "email": u.email} for u in users],
    })
