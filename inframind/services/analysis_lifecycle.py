"""
Analysis Lifecycle Service

Manages analysis status transitions with:
  - Capability checks (RoleCapability table) before anything else
  - Ownership checks for author-only operations
  - Optimistic concurrency (caller presents the version it last read)
  - Transition validation (ANALYSIS_TRANSITIONS)
  - Content guards (readiness threshold, reviewer feedback)
  - Status history, revision log and audit row committed atomically
    with the change they describe

States: DRAFT → SUBMITTED → APPROVED (terminal)
                          ↘ REJECTED → DRAFT (reopen, explicit or on next edit)

Usage:
    from inframind.services.analysis_lifecycle import AnalysisStateMachine

    machine = AnalysisStateMachine(AnalysisStore(db.session))
    analysis = machine.submit(analysis_id, actor, expected_version=3)
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable

from inframind.core.exceptions import ForbiddenError, InvalidStateError, ValidationError
from inframind.models.analysis import (
    ANALYSIS_TRANSITIONS,
    Analysis,
    AnalysisEvent,
    AnalysisStatus,
    AnalysisType,
)
from inframind.models.audit import write_audit
from inframind.models.auth import Role
from inframind.services import history, readiness, report_gate
from inframind.services.analysis_store import AnalysisStore
from inframind.services.capability import Action, Actor, check_capability

logger = logging.getLogger(__name__)


REVIEW_DECISIONS = {
    "APPROVE": AnalysisEvent.APPROVE,
    "REJECT": AnalysisEvent.REJECT,
}

MAX_FEEDBACK_LENGTH = 2000

# Event → capability the actor's role must hold
_EVENT_ACTION = {
    AnalysisEvent.SUBMIT: Action.SUBMIT_ANALYSIS,
    AnalysisEvent.APPROVE: Action.REVIEW_ANALYSIS,
    AnalysisEvent.REJECT: Action.REVIEW_ANALYSIS,
    AnalysisEvent.REOPEN: Action.EDIT_ANALYSIS,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_transition(analysis: Analysis, event: AnalysisEvent) -> dict:
    """
    Validate whether an event is legal for the analysis' current status.

    Returns:
        {"valid": bool, "from": str, "to": str|None, "reason": str|None}
    """
    event = AnalysisEvent(event)
    rule = ANALYSIS_TRANSITIONS[event]
    current = analysis.status
    if current not in rule["from"]:
        return {"valid": False, "from": current.value, "to": rule["to"].value,
                "reason": f"Cannot '{event.value}' from status '{current.value}'"}
    return {"valid": True, "from": current.value, "to": rule["to"].value, "reason": None}


def get_available_events(analysis: Analysis) -> list[str]:
    """Events that are legal from the analysis' current status."""
    return [
        event.value
        for event, rule in ANALYSIS_TRANSITIONS.items()
        if analysis.status in rule["from"]
    ]


class AnalysisStateMachine:
    """
    Role-aware state machine over a single analysis record.

    Collaborators are injected: ``store`` (AnalysisStore or a compatible
    fake) and ``clock`` (zero-arg callable returning an aware datetime).
    """

    def __init__(self, store: AnalysisStore | None = None,
                 clock: Callable[[], datetime] | None = None):
        self.store = store or AnalysisStore()
        self.clock = clock or _utcnow

    # ═════════════════════════════════════════════════════════════════════
    # Creation & reads
    # ═════════════════════════════════════════════════════════════════════

    def create(self, actor: Actor, task_id: str, analysis_type) -> Analysis:
        """Open a DRAFT analysis on a task the actor is assigned to (or created)."""
        check_capability(actor, Action.CREATE_ANALYSIS)
        task = self.store.get_task(task_id)
        if actor.user_id not in (task.assigned_to, task.created_by):
            raise ForbiddenError(actor.user_id, Action.CREATE_ANALYSIS.value,
                                 "task is not assigned to you")
        try:
            analysis_type = AnalysisType(analysis_type)
        except ValueError:
            allowed = ", ".join(t.value for t in AnalysisType)
            raise ValidationError(
                "Invalid analysis_type",
                details={"analysis_type": f"must be one of: {allowed}"},
            ) from None

        now = self.clock()
        analysis = Analysis(
            id=str(uuid.uuid4()),
            task_id=task.id,
            owner_id=actor.user_id,
            analysis_type=analysis_type,
            status=AnalysisStatus.DRAFT,
            symptoms=[],
            signals=[],
            hypotheses=[],
            readiness_score=0,
            revision_count=0,
            created_at=now,
            updated_at=now,
        )
        self.store.add(analysis)
        write_audit(
            entity_type="analysis",
            entity_id=analysis.id,
            action="analysis.create",
            actor=actor.user_id,
            diff={"task_id": task.id, "analysis_type": analysis_type.value},
            timestamp=now,
            session=self.store.session,
        )
        self.store.commit()
        logger.info("Analysis created: %s for task %s by %s", analysis.id, task.id, actor.user_id)
        return analysis

    def get(self, analysis_id: str, actor: Actor) -> Analysis:
        """Fetch one analysis, applying role-scoped visibility."""
        if actor.role == Role.OWNER:
            raise ForbiddenError(actor.user_id, "view_analysis", "owners only see published reports")
        analysis = self.store.get(analysis_id)
        if actor.role == Role.EMPLOYEE and analysis.owner_id != actor.user_id:
            raise ForbiddenError(actor.user_id, "view_analysis", "you can only view your own analyses")
        return analysis

    def list_analyses(self, actor: Actor, *, status=None, limit: int = 50, offset: int = 0):
        """
        Role-scoped listing: EMPLOYEE → own, MANAGER → all, OWNER → none.

        Returns:
            (items, total)
        """
        if status is not None:
            try:
                status = AnalysisStatus(status)
            except ValueError:
                allowed = ", ".join(s.value for s in AnalysisStatus)
                raise ValidationError(
                    "Invalid status filter",
                    details={"status": f"must be one of: {allowed}"},
                ) from None
        if actor.role == Role.OWNER:
            return [], 0
        owner_id = actor.user_id if actor.role == Role.EMPLOYEE else None
        return self.store.query_analyses(owner_id=owner_id, status=status,
                                         limit=limit, offset=offset)

    def get_history(self, analysis_id: str, actor: Actor):
        analysis = self.get(analysis_id, actor)
        return history.list_history(analysis.id, session=self.store.session)

    def get_revisions(self, analysis_id: str, actor: Actor):
        analysis = self.get(analysis_id, actor)
        return history.list_revisions(analysis.id, session=self.store.session)

    def can_generate_report(self, analysis_id: str, actor_role) -> bool:
        """True iff the analysis is APPROVED and *actor_role* is MANAGER."""
        analysis = self.store.get(analysis_id)
        return report_gate.can_generate_report(analysis.status, actor_role)

    # ═════════════════════════════════════════════════════════════════════
    # Mutations
    # ═════════════════════════════════════════════════════════════════════

    def update_content(
        self,
        analysis_id: str,
        actor: Actor,
        expected_version: int,
        *,
        symptoms,
        signals,
        hypotheses,
        readiness_score,
    ) -> Analysis:
        """
        Replace the analysis content.  Allowed in DRAFT or REJECTED only.

        Writes one RevisionEntry.  A REJECTED analysis moves back to DRAFT
        and that move is written to the status history as a reopen.

        Raises:
            ForbiddenError, NotFoundError, ConflictError, ValidationError,
            InvalidStateError
        """
        analysis = self._load_for_write(analysis_id, actor, Action.EDIT_ANALYSIS,
                                        expected_version, owner_only=True)
        content = readiness.validate_content(
            symptoms=symptoms,
            signals=signals,
            hypotheses=hypotheses,
            readiness_score=readiness_score,
        )
        if not analysis.is_editable:
            raise InvalidStateError(
                "Analysis", analysis.id, Action.EDIT_ANALYSIS.value, analysis.status.value,
                "content is frozen during review and after approval",
            )

        now = self.clock()
        old = analysis.content_snapshot()
        analysis.symptoms = content["symptoms"]
        analysis.signals = content["signals"]
        analysis.hypotheses = content["hypotheses"]
        analysis.readiness_score = content["readiness_score"]
        analysis.updated_at = now

        if analysis.status == AnalysisStatus.REJECTED:
            self._apply(analysis, AnalysisEvent.REOPEN, actor, now,
                        note="reopened by content edit")

        revision = history.record_revision(analysis, actor_id=actor.user_id, timestamp=now,
                                           session=self.store.session)
        write_audit(
            entity_type="analysis",
            entity_id=analysis.id,
            action="analysis.update_content",
            actor=actor.user_id,
            diff={
                "readiness_score": {"old": old["readiness_score"], "new": analysis.readiness_score},
                "symptoms": {"old": len(old["symptoms"]), "new": len(analysis.symptoms)},
                "signals": {"old": len(old["signals"]), "new": len(analysis.signals)},
                "hypotheses": {"old": len(old["hypotheses"]), "new": len(analysis.hypotheses)},
                "revision_number": revision.revision_number,
            },
            timestamp=now,
            session=self.store.session,
        )
        self.store.commit()
        logger.info("Analysis %s content updated (revision %d) by %s",
                    analysis.id, revision.revision_number, actor.user_id)
        return analysis

    def submit(self, analysis_id: str, actor: Actor, expected_version: int) -> Analysis:
        """
        DRAFT → SUBMITTED.  Owner only; readiness score must reach the
        submission threshold.
        """
        analysis = self._load_for_write(analysis_id, actor, Action.SUBMIT_ANALYSIS,
                                        expected_version, owner_only=True)
        self._require_transition(analysis, AnalysisEvent.SUBMIT)
        readiness.check_submission_ready(analysis.readiness_score)

        now = self.clock()
        self._apply(analysis, AnalysisEvent.SUBMIT, actor, now)
        self.store.commit()
        return analysis

    def review(
        self,
        analysis_id: str,
        actor: Actor,
        expected_version: int,
        decision: str,
        feedback: str | None = None,
    ) -> Analysis:
        """
        SUBMITTED → APPROVED | REJECTED.  Managers only; REJECT needs feedback.
        """
        analysis = self._load_for_write(analysis_id, actor, Action.REVIEW_ANALYSIS,
                                        expected_version)

        event = REVIEW_DECISIONS.get(decision) if isinstance(decision, str) else None
        if event is None:
            raise ValidationError(
                "Invalid review decision",
                details={"decision": "must be one of: APPROVE, REJECT"},
            )
        if feedback is not None and not isinstance(feedback, str):
            raise ValidationError("Invalid feedback", details={"feedback": "must be a string"})
        if feedback is not None and len(feedback) > MAX_FEEDBACK_LENGTH:
            raise ValidationError(
                "Invalid feedback",
                details={"feedback": f"must be at most {MAX_FEEDBACK_LENGTH} characters"},
            )

        self._require_transition(analysis, event)
        feedback = (feedback or "").strip() or None
        if event == AnalysisEvent.REJECT and not feedback:
            raise ValidationError(
                "Feedback is required when rejecting an analysis",
                details={"feedback": "is required when decision is REJECT"},
            )

        now = self.clock()
        if feedback is not None:
            analysis.feedback = feedback
        self._apply(analysis, event, actor, now, note=feedback)
        self.store.commit()
        return analysis

    def reopen(self, analysis_id: str, actor: Actor, expected_version: int) -> Analysis:
        """REJECTED → DRAFT without touching content.  Owner only."""
        analysis = self._load_for_write(analysis_id, actor, Action.EDIT_ANALYSIS,
                                        expected_version, owner_only=True)
        self._require_transition(analysis, AnalysisEvent.REOPEN)
        now = self.clock()
        self._apply(analysis, AnalysisEvent.REOPEN, actor, now)
        self.store.commit()
        return analysis

    # ═════════════════════════════════════════════════════════════════════
    # Internals
    # ═════════════════════════════════════════════════════════════════════

    def _load_for_write(self, analysis_id: str, actor: Actor, action: Action,
                        expected_version, *, owner_only: bool = False) -> Analysis:
        """Capability → load → ownership → version, in that order."""
        check_capability(actor, action)
        analysis = self.store.get(analysis_id)
        if owner_only and analysis.owner_id != actor.user_id:
            raise ForbiddenError(actor.user_id, action.value, "only the analysis owner may do this")
        if not isinstance(expected_version, int) or isinstance(expected_version, bool):
            raise ValidationError(
                "A version token is required",
                details={"version": "must be the integer version last read"},
            )
        self.store.check_version(analysis, expected_version)
        return analysis

    @staticmethod
    def _require_transition(analysis: Analysis, event: AnalysisEvent) -> None:
        validation = validate_transition(analysis, event)
        if not validation["valid"]:
            raise InvalidStateError("Analysis", analysis.id, event.value,
                                    analysis.status.value, validation["reason"])

    def _apply(self, analysis: Analysis, event: AnalysisEvent, actor: Actor,
               now: datetime, note: str | None = None) -> None:
        """Move *analysis* along *event* and log the move; caller commits."""
        check_capability(actor, _EVENT_ACTION[event])
        self._require_transition(analysis, event)

        previous = analysis.status
        analysis.status = ANALYSIS_TRANSITIONS[event]["to"]
        analysis.updated_at = now

        history.record_transition(
            analysis,
            from_status=previous,
            to_status=analysis.status,
            event=event,
            actor=actor,
            timestamp=now,
            note=note,
            session=self.store.session,
        )
        diff = {"status": {"old": previous.value, "new": analysis.status.value}}
        if event == AnalysisEvent.SUBMIT:
            diff["readiness_score"] = analysis.readiness_score
        elif note:
            diff["note"] = note
        write_audit(
            entity_type="analysis",
            entity_id=analysis.id,
            action=f"analysis.{event.value}",
            actor=actor.user_id,
            diff=diff,
            timestamp=now,
            session=self.store.session,
        )
        logger.info("Analysis %s %s: %s → %s by %s (%s)",
                    analysis.id, event.value, previous.value, analysis.status.value,
                    actor.user_id, actor.role.value)
