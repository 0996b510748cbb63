"""
InfraMind Analysis Platform
Executive report model.

Models:
    - Report: summary published from an APPROVED analysis by a manager.
"""

import uuid
from datetime import datetime, timezone

from inframind.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


class Report(db.Model):
    """
    Read-only downstream artifact of an approved analysis.

    Several reports may exist for one analysis; generation is not idempotent.
    """

    __tablename__ = "reports"
    __table_args__ = (
        db.Index("idx_reports_generated_by", "generated_by"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    analysis_id = db.Column(
        db.String(36),
        db.ForeignKey("analyses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    summary = db.Column(db.Text, nullable=False)
    generated_by = db.Column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    analysis = db.relationship("Analysis", lazy="joined")

    def to_dict(self, include_analysis=False):
        d = {
            "id": self.id,
            "analysis_id": self.analysis_id,
            "summary": self.summary,
            "generated_by": self.generated_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if self.analysis is not None:
            d["analysis_type"] = self.analysis.analysis_type.value
            d["owner_id"] = self.analysis.owner_id
        if include_analysis and self.analysis is not None:
            d["analysis"] = self.analysis.to_dict()
        return d

    def __repr__(self):
        return f"<Report {self.id} for analysis {self.analysis_id}>"
