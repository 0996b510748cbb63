"""
InfraMind Analysis Platform
Analysis domain model.

Models:
    - Analysis: root-cause analysis moving through the review workflow.
    - StatusHistoryEntry: immutable, append-only log of status transitions.
    - RevisionEntry: immutable, append-only snapshots of analysis content.

Constants:
    - ANALYSIS_TRANSITIONS: event → {"from": [...], "to": ...}
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy.orm import validates

from inframind.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


# ── Enumerations ─────────────────────────────────────────────────────────────

class AnalysisStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AnalysisType(str, Enum):
    LATENCY = "LATENCY"
    SECURITY = "SECURITY"
    OUTAGE = "OUTAGE"
    CAPACITY = "CAPACITY"


class AnalysisEvent(str, Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    REOPEN = "reopen"


# APPROVED has no outgoing events (terminal).
ANALYSIS_TRANSITIONS = {
    AnalysisEvent.SUBMIT: {"from": [AnalysisStatus.DRAFT], "to": AnalysisStatus.SUBMITTED},
    AnalysisEvent.APPROVE: {"from": [AnalysisStatus.SUBMITTED], "to": AnalysisStatus.APPROVED},
    AnalysisEvent.REJECT: {"from": [AnalysisStatus.SUBMITTED], "to": AnalysisStatus.REJECTED},
    AnalysisEvent.REOPEN: {"from": [AnalysisStatus.REJECTED], "to": AnalysisStatus.DRAFT},
}

EDITABLE_STATUSES = frozenset({AnalysisStatus.DRAFT, AnalysisStatus.REJECTED})


# ═════════════════════════════════════════════════════════════════════════════
# Analysis
# ═════════════════════════════════════════════════════════════════════════════

class Analysis(db.Model):
    """
    Structured incident investigation authored by one employee.

    Business rules:
    - task_id, owner_id and analysis_type are fixed at creation.
    - status only changes through AnalysisStateMachine.
    - version is the optimistic concurrency token; SQLAlchemy bumps it on
      every UPDATE and refuses a flush whose WHERE version no longer matches.
    """

    __tablename__ = "analyses"
    __table_args__ = (
        db.Index("idx_analyses_task", "task_id"),
        db.Index("idx_analyses_owner", "owner_id"),
        db.Index("idx_analyses_status", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    task_id = db.Column(
        db.String(36),
        db.ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    owner_id = db.Column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    analysis_type = db.Column(
        db.Enum(AnalysisType, native_enum=False, length=20),
        nullable=False,
    )
    status = db.Column(
        db.Enum(AnalysisStatus, native_enum=False, length=20),
        nullable=False,
        default=AnalysisStatus.DRAFT,
    )

    # Content
    symptoms = db.Column(db.JSON, nullable=False, default=list)
    signals = db.Column(db.JSON, nullable=False, default=list)
    hypotheses = db.Column(
        db.JSON, nullable=False, default=list,
        comment="[{text, confidence 0-100, evidence: [str]}]",
    )
    readiness_score = db.Column(db.Integer, nullable=False, default=0)
    feedback = db.Column(db.Text, nullable=True, comment="Reviewer rationale; required on reject")
    revision_count = db.Column(db.Integer, nullable=False, default=0)

    version = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    __mapper_args__ = {"version_id_col": version}

    @validates("status")
    def _coerce_status(self, key, value):
        return AnalysisStatus(value)

    @validates("analysis_type")
    def _coerce_type(self, key, value):
        return AnalysisType(value)

    @property
    def is_editable(self) -> bool:
        return self.status in EDITABLE_STATUSES

    def content_snapshot(self) -> dict:
        return {
            "symptoms": list(self.symptoms or []),
            "signals": list(self.signals or []),
            "hypotheses": [dict(h) for h in (self.hypotheses or [])],
            "readiness_score": self.readiness_score,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "owner_id": self.owner_id,
            "analysis_type": self.analysis_type.value if self.analysis_type else None,
            "status": self.status.value if self.status else None,
            "symptoms": self.symptoms or [],
            "signals": self.signals or [],
            "hypotheses": self.hypotheses or [],
            "readiness_score": self.readiness_score,
            "feedback": self.feedback,
            "revision_count": self.revision_count,
            "version": self.version,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Analysis {self.id}: {self.status} v{self.version}>"


# ═════════════════════════════════════════════════════════════════════════════
# Append-only logs
# ═════════════════════════════════════════════════════════════════════════════

class StatusHistoryEntry(db.Model):
    """
    One row per status transition.  Never updated or deleted.
    """

    __tablename__ = "analysis_status_history"
    __table_args__ = (
        db.Index("idx_status_history_analysis", "analysis_id", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    analysis_id = db.Column(
        db.String(36),
        db.ForeignKey("analyses.id", ondelete="CASCADE"),
        nullable=False,
    )
    from_status = db.Column(db.String(20), nullable=True)
    to_status = db.Column(db.String(20), nullable=False)
    event = db.Column(db.String(20), nullable=False, comment="submit | approve | reject | reopen")
    actor_id = db.Column(db.String(36), nullable=False)
    actor_role = db.Column(db.String(20), nullable=False)
    note = db.Column(db.Text, nullable=True)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "analysis_id": self.analysis_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "event": self.event,
            "actor_id": self.actor_id,
            "actor_role": self.actor_role,
            "note": self.note,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<StatusHistoryEntry {self.analysis_id}: {self.from_status}→{self.to_status}>"


class RevisionEntry(db.Model):
    """
    Snapshot of analysis content taken at every content write.
    Never updated or deleted.
    """

    __tablename__ = "analysis_revisions"
    __table_args__ = (
        db.UniqueConstraint("analysis_id", "revision_number", name="uq_revision_analysis_number"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    analysis_id = db.Column(
        db.String(36),
        db.ForeignKey("analyses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    revision_number = db.Column(db.Integer, nullable=False)
    symptoms = db.Column(db.JSON, nullable=False, default=list)
    signals = db.Column(db.JSON, nullable=False, default=list)
    hypotheses = db.Column(db.JSON, nullable=False, default=list)
    readiness_score = db.Column(db.Integer, nullable=False)
    actor_id = db.Column(db.String(36), nullable=False)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "analysis_id": self.analysis_id,
            "revision_number": self.revision_number,
            "symptoms": self.symptoms or [],
            "signals": self.signals or [],
            "hypotheses": self.hypotheses or [],
            "readiness_score": self.readiness_score,
            "actor_id": self.actor_id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<RevisionEntry {self.analysis_id} #{self.revision_number}>"
