"""
Status history and revision log for analyses.

Both logs are append-only: the helpers here only ever ``session.add`` a new
row.  Callers write them inside the same transaction as the status or
content change they describe, so a change that cannot be logged is never
committed.
"""

from __future__ import annotations

from datetime import datetime

from inframind.models import db
from inframind.models.analysis import (
    Analysis,
    AnalysisEvent,
    AnalysisStatus,
    RevisionEntry,
    StatusHistoryEntry,
)


def record_transition(
    analysis: Analysis,
    *,
    from_status: AnalysisStatus,
    to_status: AnalysisStatus,
    event: AnalysisEvent,
    actor,
    timestamp: datetime,
    note: str | None = None,
    session=None,
) -> StatusHistoryEntry:
    """Append one StatusHistoryEntry for a transition of *analysis*."""
    entry = StatusHistoryEntry(
        analysis_id=analysis.id,
        from_status=AnalysisStatus(from_status).value,
        to_status=AnalysisStatus(to_status).value,
        event=AnalysisEvent(event).value,
        actor_id=actor.user_id,
        actor_role=actor.role.value,
        note=note,
        timestamp=timestamp,
    )
    (session or db.session).add(entry)
    return entry


def record_revision(analysis: Analysis, *, actor_id: str, timestamp: datetime,
                    session=None) -> RevisionEntry:
    """
    Append a content snapshot of *analysis* as it stands now.

    Bumps ``analysis.revision_count`` and uses it as the revision number.
    """
    analysis.revision_count = (analysis.revision_count or 0) + 1
    snapshot = analysis.content_snapshot()
    entry = RevisionEntry(
        analysis_id=analysis.id,
        revision_number=analysis.revision_count,
        symptoms=snapshot["symptoms"],
        signals=snapshot["signals"],
        hypotheses=snapshot["hypotheses"],
        readiness_score=snapshot["readiness_score"],
        actor_id=actor_id,
        timestamp=timestamp,
    )
    (session or db.session).add(entry)
    return entry


def list_history(analysis_id: str, session=None) -> list[StatusHistoryEntry]:
    """Status transitions for *analysis_id*, oldest first."""
    session = session or db.session
    return (
        session.query(StatusHistoryEntry)
        .filter_by(analysis_id=analysis_id)
        .order_by(StatusHistoryEntry.timestamp.asc(), StatusHistoryEntry.id.asc())
        .all()
    )


def list_revisions(analysis_id: str, session=None) -> list[RevisionEntry]:
    """Content revisions for *analysis_id*, oldest first."""
    session = session or db.session
    return (
        session.query(RevisionEntry)
        .filter_by(analysis_id=analysis_id)
        .order_by(RevisionEntry.revision_number.asc())
        .all()
    )


def count_history(analysis_id: str, session=None) -> int:
    session = session or db.session
    return session.query(StatusHistoryEntry).filter_by(analysis_id=analysis_id).count()


def count_revisions(analysis_id: str, session=None) -> int:
    session = session or db.session
    return session.query(RevisionEntry).filter_by(analysis_id=analysis_id).count()
