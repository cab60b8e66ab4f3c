from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from authorization import current_actor
from resources import collection, paginated, task_resource
from services import task_service
from validation import validate_task_ids

tasks_bp = Blueprint("tasks", __name__, url_prefix="/tasks")


def _payload():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@tasks_bp.route("/", methods=["GET"])
@login_required
def index():
    pagination = task_service.list_tasks(
        current_actor(),
        page=request.args.get("page", 1, type=int),
        per_page=request.args.get("per_page", type=int),
    )
    return jsonify(paginated(pagination, task_resource))


@tasks_bp.route("/", methods=["POST"])
@login_required
def store():
    task = task_service.create_task(current_actor(), _payload())
    return jsonify(task_resource(task)), 201


@tasks_bp.route("/assigned")
@login_required
def assigned():
    return jsonify(collection(task_service.assigned_tasks(current_actor()), task_resource))


@tasks_bp.route("/overdue")
@login_required
def overdue():
    return jsonify(collection(task_service.overdue_tasks(current_actor()), task_resource))


@tasks_bp.route("/due-soon")
@login_required
def due_soon():
    config = current_app.config
    days = request.args.get("days", config["DUE_SOON_DAYS"], type=int)
    days = min(max(days, 0), config["MAX_DUE_SOON_DAYS"])
    tasks = task_service.tasks_due_soon(current_actor(), days=days)
    return jsonify(collection(tasks, task_resource))


@tasks_bp.route("/high-priority")
@login_required
def high_priority():
    return jsonify(collection(task_service.high_priority_tasks(current_actor()), task_resource))


@tasks_bp.route("/search")
@login_required
def search():
    tasks = task_service.search_tasks(current_actor(), request.args.get("q", ""))
    return jsonify(collection(tasks, task_resource))


@tasks_bp.route("/bulk-status", methods=["POST"])
@login_required
def bulk_status():
    data = _payload()
    task_ids = validate_task_ids(data)
    tasks = task_service.bulk_update_status(current_actor(), task_ids, data.get("status"))
    return jsonify(collection(tasks, task_resource))


@tasks_bp.route("/<int:task_id>", methods=["GET"])
@login_required
def show(task_id):
    return jsonify(task_resource(task_service.get_task(current_actor(), task_id)))


@tasks_bp.route("/<int:task_id>", methods=["PUT", "PATCH"])
@login_required
def update(task_id):
    task = task_service.update_task(current_actor(), task_id, _payload())
    return jsonify(task_resource(task))


@tasks_bp.route("/<int:task_id>", methods=["DELETE"])
@login_required
def destroy(task_id):
    task_service.delete_task(current_actor(), task_id)
    return jsonify({"message": "Task deleted successfully."})


@tasks_bp.route("/<int:task_id>/assign", methods=["POST"])
@login_required
def assign(task_id):
    task = task_service.assign_task(current_actor(), task_id, _payload().get("assigned_to"))
    return jsonify(task_resource(task))


@tasks_bp.route("/<int:task_id>/status", methods=["POST"])
@login_required
def change_status(task_id):
    task = task_service.update_task_status(current_actor(), task_id, _payload().get("status"))
    return jsonify(task_resource(task))


@tasks_bp.route("/<int:task_id>/complete", methods=["POST"])
@login_required
def complete(task_id):
    return jsonify(task_resource(task_service.complete_task(current_actor(), task_id)))
