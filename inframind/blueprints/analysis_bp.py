"""
Analysis blueprint — HTTP surface of the analysis lifecycle engine.

Endpoints (all under /api/v1):
    POST  /analyses                              create a DRAFT analysis on a task
    GET   /analyses                              role-scoped list (?status, limit, offset)
    GET   /analyses/<id>                         single analysis, ETag = version
    PATCH /analyses/<id>                         replace content
    POST  /analyses/<id>/submit                  DRAFT → SUBMITTED
    POST  /analyses/<id>/review                  SUBMITTED → APPROVED | REJECTED
    POST  /analyses/<id>/reopen                  REJECTED → DRAFT
    GET   /analyses/<id>/history                 status history
    GET   /analyses/<id>/revisions               content revisions
    GET   /analyses/<id>/report-eligibility      can a report be generated?
    POST  /analyses/<id>/hypotheses/suggest      provider-backed suggestions

Mutations carry the version last read (body ``version`` or ``If-Match``).
The service layer owns all business rules and commits; failures are
rendered by the app-wide handlers in ``inframind.utils.errors``.
"""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request

from inframind.blueprints import current_actor, json_body, page_args, paginated, version_token
from inframind.services.analysis_lifecycle import AnalysisStateMachine, get_available_events
from inframind.services.hypothesis_suggestions import suggest_hypotheses
from inframind.utils.errors import E, api_error

logger = logging.getLogger(__name__)

analysis_bp = Blueprint("analyses", __name__, url_prefix="/api/v1/analyses")


def _machine() -> AnalysisStateMachine:
    return AnalysisStateMachine(clock=current_app.extensions.get("clock"))


def _respond(analysis, status=200):
    body = analysis.to_dict()
    body["available_events"] = get_available_events(analysis)
    resp = jsonify(body)
    resp.headers["ETag"] = f'"{analysis.version}"'
    return resp, status


# ═════════════════════════════════════════════════════════════════════════
# Create & read
# ═════════════════════════════════════════════════════════════════════════


@analysis_bp.route("", methods=["POST"])
def create_analysis():
    data = json_body()
    analysis = _machine().create(current_actor(), data.get("task_id"), data.get("analysis_type"))
    return _respond(analysis, 201)


@analysis_bp.route("", methods=["GET"])
def list_analyses():
    limit, offset = page_args()
    items, total = _machine().list_analyses(
        current_actor(),
        status=request.args.get("status") or None,
        limit=limit,
        offset=offset,
    )
    return jsonify(paginated(items, total, limit, offset)), 200


@analysis_bp.route("/<analysis_id>", methods=["GET"])
def get_analysis(analysis_id):
    return _respond(_machine().get(analysis_id, current_actor()))


@analysis_bp.route("/<analysis_id>/history", methods=["GET"])
def analysis_history(analysis_id):
    entries = _machine().get_history(analysis_id, current_actor())
    return jsonify({"items": [e.to_dict() for e in entries], "total": len(entries)}), 200


@analysis_bp.route("/<analysis_id>/revisions", methods=["GET"])
def analysis_revisions(analysis_id):
    entries = _machine().get_revisions(analysis_id, current_actor())
    return jsonify({"items": [e.to_dict() for e in entries], "total": len(entries)}), 200


@analysis_bp.route("/<analysis_id>/report-eligibility", methods=["GET"])
def report_eligibility(analysis_id):
    actor = current_actor()
    machine = _machine()
    analysis = machine.get(analysis_id, actor)
    return jsonify({
        "analysis_id": analysis.id,
        "status": analysis.status.value,
        "can_generate_report": machine.can_generate_report(analysis.id, actor.role),
    }), 200


# ═════════════════════════════════════════════════════════════════════════
# Mutations
# ═════════════════════════════════════════════════════════════════════════


@analysis_bp.route("/<analysis_id>", methods=["PATCH"])
def update_analysis(analysis_id):
    data = json_body()
    analysis = _machine().update_content(
        analysis_id,
        current_actor(),
        version_token(data),
        symptoms=data.get("symptoms", []),
        signals=data.get("signals", []),
        hypotheses=data.get("hypotheses", []),
        readiness_score=data.get("readiness_score"),
    )
    return _respond(analysis)


@analysis_bp.route("/<analysis_id>/submit", methods=["POST"])
def submit_analysis(analysis_id):
    data = json_body()
    analysis = _machine().submit(analysis_id, current_actor(), version_token(data))
    return _respond(analysis)


@analysis_bp.route("/<analysis_id>/review", methods=["POST"])
def review_analysis(analysis_id):
    data = json_body()
    analysis = _machine().review(
        analysis_id,
        current_actor(),
        version_token(data),
        data.get("decision"),
        data.get("feedback"),
    )
    return _respond(analysis)


@analysis_bp.route("/<analysis_id>/reopen", methods=["POST"])
def reopen_analysis(analysis_id):
    data = json_body()
    analysis = _machine().reopen(analysis_id, current_actor(), version_token(data))
    return _respond(analysis)


@analysis_bp.route("/<analysis_id>/hypotheses/suggest", methods=["POST"])
def suggest(analysis_id):
    provider = current_app.extensions.get("hypothesis_provider")
    if provider is None:
        return api_error(E.UNAVAILABLE, "No hypothesis suggestion provider is configured")
    suggestions = suggest_hypotheses(analysis_id, current_actor(), provider)
    return jsonify({"analysis_id": analysis_id, "suggestions": suggestions}), 200
