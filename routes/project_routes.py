from flask import Blueprint, jsonify, request
from flask_login import login_required

from authorization import current_actor
from resources import collection, paginated, project_resource, task_resource
from services import project_service

projects_bp = Blueprint("projects", __name__, url_prefix="/projects")


@projects_bp.route("/", methods=["GET"])
@login_required
def index():
    pagination = project_service.list_projects(
        current_actor(),
        page=request.args.get("page", 1, type=int),
        per_page=request.args.get("per_page", type=int),
    )
    return jsonify(paginated(pagination, project_resource))


@projects_bp.route("/", methods=["POST"])
@login_required
def store():
    project = project_service.create_project(current_actor(), request.get_json(silent=True))
    return jsonify(project_resource(project)), 201


@projects_bp.route("/<int:project_id>", methods=["GET"])
@login_required
def show(project_id):
    project = project_service.project_details(current_actor(), project_id)
    return jsonify({
        "project": project_resource(project),
        "stats": project_service.project_stats(project),
    })


@projects_bp.route("/<int:project_id>", methods=["PUT", "PATCH"])
@login_required
def update(project_id):
    project = project_service.update_project(
        current_actor(), project_id, request.get_json(silent=True)
    )
    return jsonify(project_resource(project))


@projects_bp.route("/<int:project_id>", methods=["DELETE"])
@login_required
def destroy(project_id):
    project_service.delete_project(current_actor(), project_id)
    return jsonify({"message": "Project deleted successfully."})


@projects_bp.route("/<int:project_id>/tasks", methods=["GET"])
@login_required
def tasks(project_id):
    project_tasks = project_service.project_tasks(current_actor(), project_id)
    return jsonify(collection(project_tasks, task_resource))
