"""
Report blueprint.

Endpoints (all under /api/v1):
    POST /reports           publish from an APPROVED analysis, body {analysis_id, summary}
    GET  /reports           OWNER → all, MANAGER → own
    GET  /reports/<id>      single report with its analysis
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

import inframind.services.report_service as report_service
from inframind.blueprints import current_actor, json_body, page_args, paginated

report_bp = Blueprint("reports", __name__, url_prefix="/api/v1/reports")


@report_bp.route("", methods=["POST"])
def create_report():
    data = json_body()
    report = report_service.create_report(
        data.get("analysis_id"),
        current_actor(),
        data.get("summary"),
        clock=current_app.extensions.get("clock"),
    )
    return jsonify(report.to_dict()), 201


@report_bp.route("", methods=["GET"])
def list_reports():
    limit, offset = page_args()
    items, total = report_service.list_reports(current_actor(), limit=limit, offset=offset)
    return jsonify(paginated(items, total, limit, offset)), 200


@report_bp.route("/<report_id>", methods=["GET"])
def get_report(report_id):
    report = report_service.get_report(report_id, current_actor())
    return jsonify(report.to_dict(include_analysis=True)), 200
