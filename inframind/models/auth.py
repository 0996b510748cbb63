"""
InfraMind Analysis Platform
Identity model.

Models:
    - User: platform identity carrying exactly one role.

Credential issuance (passwords, sign-up, sessions) lives outside this
service; rows here exist so tasks, analyses and reports can reference
their authors.
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


class Role(str, Enum):
    """Closed set of platform roles."""
    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    OWNER = "OWNER"


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    email = db.Column(db.String(200), nullable=False, unique=True)
    full_name = db.Column(db.String(200))
    role = db.Column(
        db.Enum(Role, native_enum=False, length=20),
        nullable=False,
        default=Role.EMPLOYEE,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    @validates("role")
    def _coerce_role(self, key, value):
        return Role(value)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role.value if self.role else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User {self.id}: {self.email} ({self.role})>"
