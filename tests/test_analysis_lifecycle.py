"""
Tests: analysis lifecycle state machine.

Runs against the real SQLAlchemy store (in-memory SQLite) with a fixed
clock.  Covers:
    - creation rules
    - update_content / submit / review / reopen happy paths
    - check ordering (capability → ownership → version → input → state)
    - the end-to-end scenarios for approve and reject
"""

import pytest

from inframind.core.exceptions import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from inframind.models import db as _db
from inframind.models.analysis import ANALYSIS_TRANSITIONS, AnalysisEvent, AnalysisStatus
from inframind.models.audit import AuditLog
from inframind.models.auth import Role, User
from inframind.services import history
from inframind.services.analysis_lifecycle import (
    MAX_FEEDBACK_LENGTH,
    get_available_events,
    validate_transition,
)
from inframind.services.capability import Actor


# ── Helpers ──────────────────────────────────────────────────────────────────


def _actor(user: User) -> Actor:
    return Actor(user_id=user.id, role=user.role)


def _content(readiness_score=82, **overrides):
    body = {
        "symptoms": ["p99 latency above 2s", "error rate 3%"],
        "signals": ["db connection pool saturated"],
        "hypotheses": [
            {"text": "Connection pool too small", "confidence": 70,
             "evidence": ["pool wait time 800ms"]},
        ],
        "readiness_score": readiness_score,
    }
    body.update(overrides)
    return body


def _draft(machine, employee, task, readiness_score=82):
    """DRAFT analysis with content written once."""
    analysis = machine.create(_actor(employee), task.id, "LATENCY")
    return machine.update_content(analysis.id, _actor(employee), analysis.version,
                                  **_content(readiness_score))


def _submitted(machine, employee, task):
    analysis = _draft(machine, employee, task)
    return machine.submit(analysis.id, _actor(employee), analysis.version)


def _rejected(machine, employee, manager, task, feedback="needs more evidence"):
    analysis = _submitted(machine, employee, task)
    return machine.review(analysis.id, _actor(manager), analysis.version, "REJECT", feedback)


def _approved(machine, employee, manager, task):
    analysis = _submitted(machine, employee, task)
    return machine.review(analysis.id, _actor(manager), analysis.version, "APPROVE")


# ═══════════════════════════════════════════════════════════════════════════════
# Creation
# ═══════════════════════════════════════════════════════════════════════════════


class TestCreate:

    def test_create_draft(self, machine, employee, task):
        analysis = machine.create(_actor(employee), task.id, "OUTAGE")
        assert analysis.status == AnalysisStatus.DRAFT
        assert analysis.owner_id == employee.id
        assert analysis.readiness_score == 0
        assert analysis.symptoms == [] and analysis.hypotheses == []
        assert analysis.version == 1
        assert history.count_history(analysis.id) == 0
        assert history.count_revisions(analysis.id) == 0

    def test_create_writes_audit_row(self, machine, employee, task):
        analysis = machine.create(_actor(employee), task.id, "OUTAGE")
        row = AuditLog.query.filter_by(entity_id=analysis.id).one()
        assert row.action == "analysis.create"
        assert row.diff["task_id"] == task.id

    def test_owner_role_cannot_create(self, machine, owner, task):
        with pytest.raises(ForbiddenError):
            machine.create(_actor(owner), task.id, "LATENCY")

    def test_unassigned_employee_cannot_create(self, machine, other_employee, task):
        with pytest.raises(ForbiddenError):
            machine.create(_actor(other_employee), task.id, "LATENCY")

    def test_missing_task(self, machine, employee):
        with pytest.raises(NotFoundError):
            machine.create(_actor(employee), "no-such-task", "LATENCY")

    @pytest.mark.parametrize("task_id", [None, "", "   "])
    def test_task_id_required(self, machine, employee, task_id):
        with pytest.raises(ValidationError) as exc:
            machine.create(_actor(employee), task_id, "LATENCY")
        assert exc.value.details == {"task_id": "is required"}

    @pytest.mark.parametrize("task_id", [["a", "b"], {"id": "a"}, 42])
    def test_task_id_must_be_string(self, machine, employee, task_id):
        with pytest.raises(ValidationError) as exc:
            machine.create(_actor(employee), task_id, "LATENCY")
        assert "task_id" in exc.value.details

    def test_unknown_type(self, machine, employee, task):
        with pytest.raises(ValidationError) as exc:
            machine.create(_actor(employee), task.id, "NETWORK")
        assert "analysis_type" in exc.value.details

    def test_task_creator_may_open_analysis(self, machine, manager, task):
        analysis = machine.create(_actor(manager), task.id, "CAPACITY")
        assert analysis.owner_id == manager.id


# ═══════════════════════════════════════════════════════════════════════════════
# update_content
# ═══════════════════════════════════════════════════════════════════════════════


class TestUpdateContent:

    def test_writes_content_and_one_revision(self, machine, employee, task):
        analysis = machine.create(_actor(employee), task.id, "LATENCY")
        updated = machine.update_content(analysis.id, _actor(employee), 1,
                                         **_content(60, symptoms=["spike", "  "]))
        assert updated.symptoms == ["spike"]
        assert updated.readiness_score == 60
        assert updated.revision_count == 1
        assert updated.version == 2
        assert history.count_revisions(analysis.id) == 1
        assert history.count_history(analysis.id) == 0

    def test_revision_snapshots_content(self, machine, employee, task):
        analysis = _draft(machine, employee, task, readiness_score=40)
        machine.update_content(analysis.id, _actor(employee), analysis.version, **_content(90))
        revisions = history.list_revisions(analysis.id)
        assert [r.revision_number for r in revisions] == [1, 2]
        assert [r.readiness_score for r in revisions] == [40, 90]
        assert revisions[0].actor_id == employee.id

    def test_non_owner_forbidden(self, machine, employee, other_employee, task):
        analysis = machine.create(_actor(employee), task.id, "LATENCY")
        with pytest.raises(ForbiddenError):
            machine.update_content(analysis.id, _actor(other_employee), 1, **_content())

    def test_owner_role_forbidden(self, machine, employee, owner, task):
        analysis = machine.create(_actor(employee), task.id, "LATENCY")
        with pytest.raises(ForbiddenError):
            machine.update_content(analysis.id, _actor(owner), 1, **_content())

    def test_invalid_input_rejected_with_field_map(self, machine, employee, task):
        analysis = machine.create(_actor(employee), task.id, "LATENCY")
        with pytest.raises(ValidationError) as exc:
            machine.update_content(analysis.id, _actor(employee), 1, **_content(150))
        assert "readiness_score" in exc.value.details
        assert history.count_revisions(analysis.id) == 0

    def test_submitted_is_frozen(self, machine, employee, task):
        analysis = _submitted(machine, employee, task)
        with pytest.raises(InvalidStateError) as exc:
            machine.update_content(analysis.id, _actor(employee), analysis.version, **_content())
        assert exc.value.current_status == "SUBMITTED"

    def test_approved_is_frozen(self, machine, employee, manager, task):
        analysis = _approved(machine, employee, manager, task)
        with pytest.raises(InvalidStateError):
            machine.update_content(analysis.id, _actor(employee), analysis.version, **_content())

    def test_edit_on_rejected_returns_to_draft(self, machine, employee, manager, task):
        analysis = _rejected(machine, employee, manager, task)
        before = history.count_history(analysis.id)
        updated = machine.update_content(analysis.id, _actor(employee), analysis.version,
                                         **_content(88))
        assert updated.status == AnalysisStatus.DRAFT
        assert history.count_history(analysis.id) == before + 1
        last = history.list_history(analysis.id)[-1]
        assert (last.from_status, last.to_status, last.event) == ("REJECTED", "DRAFT", "reopen")


# ═══════════════════════════════════════════════════════════════════════════════
# submit
# ═══════════════════════════════════════════════════════════════════════════════


class TestSubmit:

    def test_submit_at_threshold(self, machine, employee, task):
        analysis = _draft(machine, employee, task, readiness_score=75)
        submitted = machine.submit(analysis.id, _actor(employee), analysis.version)
        assert submitted.status == AnalysisStatus.SUBMITTED
        entries = history.list_history(analysis.id)
        assert len(entries) == 1
        assert entries[0].actor_id == employee.id
        assert entries[0].actor_role == "EMPLOYEE"

    def test_submit_below_threshold_fails(self, machine, employee, task):
        analysis = _draft(machine, employee, task, readiness_score=74)
        with pytest.raises(ValidationError) as exc:
            machine.submit(analysis.id, _actor(employee), analysis.version)
        assert "readiness_score" in exc.value.details
        assert machine.store.get(analysis.id).status == AnalysisStatus.DRAFT

    def test_submit_writes_no_revision(self, machine, employee, task):
        analysis = _draft(machine, employee, task)
        machine.submit(analysis.id, _actor(employee), analysis.version)
        assert history.count_revisions(analysis.id) == 1

    def test_non_owner_forbidden_before_readiness(self, machine, employee, manager, task):
        analysis = _draft(machine, employee, task, readiness_score=10)
        # ownership is checked first, so the low score is never revealed
        with pytest.raises(ForbiddenError):
            machine.submit(analysis.id, _actor(manager), analysis.version)

    def test_owner_role_forbidden(self, machine, employee, owner, task):
        analysis = _draft(machine, employee, task)
        with pytest.raises(ForbiddenError):
            machine.submit(analysis.id, _actor(owner), analysis.version)

    def test_resubmit_is_invalid_state(self, machine, employee, task):
        analysis = _submitted(machine, employee, task)
        with pytest.raises(InvalidStateError):
            machine.submit(analysis.id, _actor(employee), analysis.version)

    def test_missing_version_token(self, machine, employee, task):
        analysis = _draft(machine, employee, task)
        with pytest.raises(ValidationError) as exc:
            machine.submit(analysis.id, _actor(employee), None)
        assert "version" in exc.value.details

    def test_missing_analysis(self, machine, employee):
        with pytest.raises(NotFoundError):
            machine.submit("missing", _actor(employee), 1)


# ═══════════════════════════════════════════════════════════════════════════════
# review
# ═══════════════════════════════════════════════════════════════════════════════


class TestReview:

    def test_approve(self, machine, employee, manager, task):
        analysis = _approved(machine, employee, manager, task)
        assert analysis.status == AnalysisStatus.APPROVED
        last = history.list_history(analysis.id)[-1]
        assert (last.event, last.actor_id, last.actor_role) == ("approve", manager.id, "MANAGER")

    def test_approve_with_feedback_keeps_it(self, machine, employee, manager, task):
        analysis = _submitted(machine, employee, task)
        approved = machine.review(analysis.id, _actor(manager), analysis.version,
                                  "APPROVE", "Solid work")
        assert approved.feedback == "Solid work"

    def test_reject_requires_feedback(self, machine, employee, manager, task):
        analysis = _submitted(machine, employee, task)
        for feedback in (None, "", "   "):
            with pytest.raises(ValidationError) as exc:
                machine.review(analysis.id, _actor(manager), analysis.version, "REJECT", feedback)
            assert "feedback" in exc.value.details
        assert machine.store.get(analysis.id).status == AnalysisStatus.SUBMITTED

    def test_reject_stores_feedback_and_note(self, machine, employee, manager, task):
        analysis = _rejected(machine, employee, manager, task, "needs more evidence")
        assert analysis.status == AnalysisStatus.REJECTED
        assert analysis.feedback == "needs more evidence"
        assert history.list_history(analysis.id)[-1].note == "needs more evidence"

    def test_employee_cannot_review(self, machine, employee, task):
        analysis = _submitted(machine, employee, task)
        with pytest.raises(ForbiddenError):
            machine.review(analysis.id, _actor(employee), analysis.version, "APPROVE")

    def test_owner_cannot_review(self, machine, employee, owner, task):
        analysis = _submitted(machine, employee, task)
        with pytest.raises(ForbiddenError):
            machine.review(analysis.id, _actor(owner), analysis.version, "APPROVE")

    def test_review_draft_is_invalid_state(self, machine, employee, manager, task):
        analysis = _draft(machine, employee, task)
        with pytest.raises(InvalidStateError):
            machine.review(analysis.id, _actor(manager), analysis.version, "APPROVE")

    def test_review_approved_is_invalid_state(self, machine, employee, manager, task):
        analysis = _approved(machine, employee, manager, task)
        with pytest.raises(InvalidStateError):
            machine.review(analysis.id, _actor(manager), analysis.version, "REJECT", "late")

    @pytest.mark.parametrize("decision", ["approve", "MAYBE", "", None, 1])
    def test_unknown_decision(self, machine, employee, manager, task, decision):
        analysis = _submitted(machine, employee, task)
        with pytest.raises(ValidationError) as exc:
            machine.review(analysis.id, _actor(manager), analysis.version, decision)
        assert "decision" in exc.value.details

    def test_feedback_length_capped(self, machine, employee, manager, task):
        analysis = _submitted(machine, employee, task)
        with pytest.raises(ValidationError):
            machine.review(analysis.id, _actor(manager), analysis.version,
                           "REJECT", "x" * (MAX_FEEDBACK_LENGTH + 1))


# ═══════════════════════════════════════════════════════════════════════════════
# reopen
# ═══════════════════════════════════════════════════════════════════════════════


class TestReopen:

    def test_reopen_rejected(self, machine, employee, manager, task):
        analysis = _rejected(machine, employee, manager, task)
        revisions_before = history.count_revisions(analysis.id)
        reopened = machine.reopen(analysis.id, _actor(employee), analysis.version)
        assert reopened.status == AnalysisStatus.DRAFT
        assert history.count_revisions(analysis.id) == revisions_before
        assert history.list_history(analysis.id)[-1].event == "reopen"

    def test_reopen_draft_is_invalid_state(self, machine, employee, task):
        analysis = _draft(machine, employee, task)
        with pytest.raises(InvalidStateError):
            machine.reopen(analysis.id, _actor(employee), analysis.version)

    def test_reopen_by_manager_forbidden(self, machine, employee, manager, task):
        analysis = _rejected(machine, employee, manager, task)
        with pytest.raises(ForbiddenError):
            machine.reopen(analysis.id, _actor(manager), analysis.version)


# ═══════════════════════════════════════════════════════════════════════════════
# Transition table helpers
# ═══════════════════════════════════════════════════════════════════════════════


class TestTransitionTable:

    def test_available_events_by_status(self, machine, employee, manager, task):
        analysis = _draft(machine, employee, task)
        assert get_available_events(analysis) == ["submit"]
        analysis = machine.submit(analysis.id, _actor(employee), analysis.version)
        assert sorted(get_available_events(analysis)) == ["approve", "reject"]
        analysis = machine.review(analysis.id, _actor(manager), analysis.version, "REJECT", "why")
        assert get_available_events(analysis) == ["reopen"]

    def test_every_event_has_a_rule(self):
        assert set(ANALYSIS_TRANSITIONS) == set(AnalysisEvent)

    def test_approved_is_terminal(self, machine, employee, manager, task):
        analysis = _approved(machine, employee, manager, task)
        assert get_available_events(analysis) == []

    def test_validate_transition_reason(self, machine, employee, task):
        analysis = _draft(machine, employee, task)
        result = validate_transition(analysis, "approve")
        assert result["valid"] is False
        assert result["from"] == "DRAFT"
        assert "approve" in result["reason"]

    def test_undeclared_status_cannot_be_assigned(self, machine, employee, task):
        analysis = _draft(machine, employee, task)
        with pytest.raises(ValueError):
            analysis.status = "ARCHIVED"


# ═══════════════════════════════════════════════════════════════════════════════
# Reads
# ═══════════════════════════════════════════════════════════════════════════════


class TestReads:

    def test_employee_sees_only_own(self, machine, employee, other_employee, manager, task):
        analysis = _draft(machine, employee, task)
        with pytest.raises(ForbiddenError):
            machine.get(analysis.id, _actor(other_employee))
        items, total = machine.list_analyses(_actor(other_employee))
        assert (items, total) == ([], 0)

    def test_manager_sees_all(self, machine, employee, manager, task):
        _draft(machine, employee, task)
        items, total = machine.list_analyses(_actor(manager))
        assert total == 1

    def test_owner_sees_nothing(self, machine, employee, owner, task):
        analysis = _draft(machine, employee, task)
        with pytest.raises(ForbiddenError):
            machine.get(analysis.id, _actor(owner))
        assert machine.list_analyses(_actor(owner)) == ([], 0)

    def test_status_filter(self, machine, employee, manager, task):
        _submitted(machine, employee, task)
        _draft(machine, employee, task)
        items, total = machine.list_analyses(_actor(manager), status="SUBMITTED")
        assert total == 1
        assert items[0].status == AnalysisStatus.SUBMITTED

    def test_bad_status_filter(self, machine, manager):
        with pytest.raises(ValidationError):
            machine.list_analyses(_actor(manager), status="PENDING")

    def test_history_visibility_follows_get(self, machine, employee, other_employee, task):
        analysis = _submitted(machine, employee, task)
        assert len(machine.get_history(analysis.id, _actor(employee))) == 1
        with pytest.raises(ForbiddenError):
            machine.get_revisions(analysis.id, _actor(other_employee))


# ═══════════════════════════════════════════════════════════════════════════════
# Scenarios
# ═══════════════════════════════════════════════════════════════════════════════


class TestScenarios:

    def test_submit_then_approve(self, machine, employee, manager, task):
        analysis = _draft(machine, employee, task, readiness_score=82)
        analysis = machine.submit(analysis.id, _actor(employee), analysis.version)
        assert analysis.status == AnalysisStatus.SUBMITTED
        assert history.count_history(analysis.id) == 1

        analysis = machine.review(analysis.id, _actor(manager), analysis.version, "APPROVE")
        assert analysis.status == AnalysisStatus.APPROVED
        assert history.count_history(analysis.id) == 2
        assert machine.can_generate_report(analysis.id, Role.MANAGER) is True
        assert machine.can_generate_report(analysis.id, Role.OWNER) is False

    def test_low_readiness_blocks_submit(self, machine, employee, task):
        analysis = _draft(machine, employee, task, readiness_score=65)
        with pytest.raises(ValidationError):
            machine.submit(analysis.id, _actor(employee), analysis.version)
        assert machine.store.get(analysis.id).status == AnalysisStatus.DRAFT
        assert history.count_history(analysis.id) == 0

    def test_reject_then_edit_returns_to_draft(self, machine, employee, manager, task):
        analysis = _submitted(machine, employee, task)
        with pytest.raises(ValidationError):
            machine.review(analysis.id, _actor(manager), analysis.version, "REJECT", "")

        analysis = machine.review(analysis.id, _actor(manager), analysis.version,
                                  "REJECT", "needs more evidence")
        assert analysis.status == AnalysisStatus.REJECTED
        assert analysis.feedback == "needs more evidence"

        analysis = machine.update_content(analysis.id, _actor(employee), analysis.version,
                                          **_content(90))
        assert analysis.status == AnalysisStatus.DRAFT

    def test_every_transition_audited(self, machine, employee, manager, task):
        analysis = _approved(machine, employee, manager, task)
        actions = [row.action for row in
                   AuditLog.query.filter_by(entity_id=analysis.id).order_by(AuditLog.id).all()]
        assert actions == [
            "analysis.create", "analysis.update_content",
            "analysis.submit", "analysis.approve",
        ]

    def test_history_counts_never_decrease(self, machine, employee, manager, task):
        analysis = _draft(machine, employee, task)
        counts = []
        analysis = machine.submit(analysis.id, _actor(employee), analysis.version)
        counts.append(history.count_history(analysis.id))
        analysis = machine.review(analysis.id, _actor(manager), analysis.version, "REJECT", "why")
        counts.append(history.count_history(analysis.id))
        with pytest.raises(InvalidStateError):
            machine.submit(analysis.id, _actor(employee), analysis.version)
        counts.append(history.count_history(analysis.id))
        analysis = machine.reopen(analysis.id, _actor(employee), analysis.version)
        counts.append(history.count_history(analysis.id))
        assert counts == [1, 2, 2, 3]
        _db.session.rollback()
        assert history.count_history(analysis.id) == 3
