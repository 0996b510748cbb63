"""
InfraMind Analysis Platform
Audit domain model.

Models:
    - AuditLog: immutable, append-only audit trail for platform events.

The analysis-specific status history and revision logs live in
``inframind.models.analysis``; this table is the cross-entity trail
("who did what to which record") shared by tasks, analyses and reports.
"""

import json
from datetime import datetime, timezone

from inframind.models import db

# ── Constants ────────────────────────────────────────────────────────────────

AUDIT_ENTITY_TYPES = {"analysis", "task", "report"}

AUDIT_ACTIONS = {
    # Analysis lifecycle
    "analysis.create",
    "analysis.update_content",
    "analysis.submit",
    "analysis.approve",
    "analysis.reject",
    "analysis.reopen",
    # Tasks
    "task.create",
    "task.assign",
    "task.status_change",
    # Reports
    "report.create",
}


class AuditLog(db.Model):
    """
    One row per action.  ``diff_json`` carries an old→new snapshot
    for the fields that changed.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("idx_audit_entity", "entity_type", "entity_id"),
        db.Index("idx_audit_actor", "actor"),
        db.Index("idx_audit_action", "action"),
        db.Index("idx_audit_ts", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)

    entity_type = db.Column(
        db.String(30), nullable=False,
        comment="analysis | task | report",
    )
    entity_id = db.Column(db.String(36), nullable=False)

    action = db.Column(
        db.String(60), nullable=False,
        comment="analysis.submit | task.assign | report.create | …",
    )
    actor = db.Column(db.String(36), nullable=False, default="system")

    diff_json = db.Column(db.Text, default="{}")

    timestamp = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # ── Helpers ──────────────────────────────────────────────────────────

    @property
    def diff(self) -> dict:
        """Deserialise *diff_json* to a Python dict."""
        try:
            return json.loads(self.diff_json or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "actor": self.actor,
            "diff": self.diff,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<AuditLog {self.id}: {self.action} on {self.entity_type}/{self.entity_id}>"


# ── Convenience writer ───────────────────────────────────────────────────────

def write_audit(
    *,
    entity_type: str,
    entity_id: str,
    action: str,
    actor: str = "system",
    diff: dict | None = None,
    timestamp: datetime | None = None,
    session=None,
) -> AuditLog:
    """
    Append a single audit row.  Only adds to the session; callers keep
    transaction control so the row commits or rolls back with the change
    it describes.
    """
    if entity_type not in AUDIT_ENTITY_TYPES:
        raise ValueError(f"Unknown audit entity_type: {entity_type}")
    if action not in AUDIT_ACTIONS:
        raise ValueError(f"Unknown audit action: {action}")

    log = AuditLog(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        actor=actor,
        diff_json=json.dumps(diff or {}, default=str),
    )
    if timestamp is not None:
        log.timestamp = timestamp
    (session or db.session).add(log)
    return log
