"""
Report Service — executive reports published from approved analyses.

Only a MANAGER may publish, and only from an APPROVED analysis (ReportGate).
Reports are read-only once created; several may exist per analysis.

Visibility:
    OWNER   → every report
    MANAGER → reports they generated
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from inframind.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from inframind.models import db
from inframind.models.audit import write_audit
from inframind.models.auth import Role
from inframind.models.report import Report
from inframind.services.analysis_store import AnalysisStore, commit_or_raise
from inframind.services.capability import Action, Actor, check_capability
from inframind.services.report_gate import check_report_allowed

logger = logging.getLogger(__name__)

MAX_SUMMARY_LENGTH = 5000


def create_report(analysis_id: str, actor: Actor, summary, clock=None) -> Report:
    """
    Publish a report for an APPROVED analysis.

    Raises:
        ForbiddenError: role lacks generate_report.
        NotFoundError: analysis does not exist.
        InvalidStateError: analysis is not APPROVED.
        ValidationError: summary blank or too long.
    """
    check_capability(actor, Action.GENERATE_REPORT)
    analysis = AnalysisStore(db.session).get(analysis_id)
    check_report_allowed(analysis, actor)

    if not isinstance(summary, str) or not summary.strip():
        raise ValidationError("Report summary is required", details={"summary": "is required"})
    summary = summary.strip()
    if len(summary) > MAX_SUMMARY_LENGTH:
        raise ValidationError(
            "Report summary too long",
            details={"summary": f"must be at most {MAX_SUMMARY_LENGTH} characters"},
        )

    now = (clock or (lambda: datetime.now(timezone.utc)))()
    report = Report(
        analysis_id=analysis.id,
        summary=summary,
        generated_by=actor.user_id,
        created_at=now,
    )
    db.session.add(report)
    db.session.flush()
    write_audit(
        entity_type="report",
        entity_id=report.id,
        action="report.create",
        actor=actor.user_id,
        diff={"analysis_id": analysis.id},
        timestamp=now,
    )
    commit_or_raise(db.session)
    logger.info("Report %s generated for analysis %s by %s", report.id, analysis.id, actor.user_id)
    return report


def get_report(report_id: str, actor: Actor) -> Report:
    check_capability(actor, Action.VIEW_REPORT)
    report = db.session.get(Report, report_id)
    if report is None:
        raise NotFoundError(resource="Report", resource_id=report_id)
    if actor.role != Role.OWNER and report.generated_by != actor.user_id:
        raise ForbiddenError(actor.user_id, Action.VIEW_REPORT.value,
                             "you can only view reports you generated")
    return report


def list_reports(actor: Actor, *, limit: int = 50, offset: int = 0):
    """Newest first. Returns (items, total)."""
    check_capability(actor, Action.VIEW_REPORT)
    q = Report.query
    if actor.role != Role.OWNER:
        q = q.filter(Report.generated_by == actor.user_id)
    total = q.count()
    items = q.order_by(Report.created_at.desc(), Report.id.asc()).offset(offset).limit(limit).all()
    return items, total
