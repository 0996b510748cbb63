"""
Task blueprint.

Endpoints (all under /api/v1):
    POST  /tasks                  create (manager)
    GET   /tasks                  role-scoped list (?status, limit, offset)
    GET   /tasks/<id>             single task
    POST  /tasks/<id>/assign      (re)assign, body {assigned_to}
    PATCH /tasks/<id>/status      body {status}
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

import inframind.services.task_service as task_service
from inframind.blueprints import current_actor, json_body, page_args, paginated

task_bp = Blueprint("tasks", __name__, url_prefix="/api/v1/tasks")


def _clock():
    return current_app.extensions.get("clock")


@task_bp.route("", methods=["POST"])
def create_task():
    data = json_body()
    task = task_service.create_task(
        current_actor(),
        title=data.get("title"),
        description=data.get("description", ""),
        assigned_to=data.get("assigned_to"),
        clock=_clock(),
    )
    return jsonify(task.to_dict()), 201


@task_bp.route("", methods=["GET"])
def list_tasks():
    limit, offset = page_args()
    items, total = task_service.list_tasks(
        current_actor(),
        status=request.args.get("status") or None,
        limit=limit,
        offset=offset,
    )
    return jsonify(paginated(items, total, limit, offset)), 200


@task_bp.route("/<task_id>", methods=["GET"])
def get_task(task_id):
    return jsonify(task_service.get_task(task_id, current_actor()).to_dict()), 200


@task_bp.route("/<task_id>/assign", methods=["POST"])
def assign_task(task_id):
    data = json_body()
    task = task_service.assign_task(task_id, current_actor(), data.get("assigned_to"), clock=_clock())
    return jsonify(task.to_dict()), 200


@task_bp.route("/<task_id>/status", methods=["PATCH"])
def update_task_status(task_id):
    data = json_body()
    task = task_service.update_task_status(task_id, current_actor(), data.get("status"), clock=_clock())
    return jsonify(task.to_dict()), 200
