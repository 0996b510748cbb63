"""
Analysis persistence collaborator.

Wraps a SQLAlchemy session with the primitives the lifecycle engine needs:

    get(analysis_id)                → Analysis (fresh from the DB, version loaded)
    check_version(analysis, token)  → raises ConflictError on mismatch
    add(obj) / commit() / rollback()

``commit`` is the compare-and-swap: ``Analysis.version`` is the mapper's
version_id_col, so the UPDATE carries ``WHERE version = :loaded`` and a
concurrent writer that committed first makes it match zero rows.

Database failures are translated here, once:

    StaleDataError   → ConflictError   (lost the optimistic race)
    IntegrityError   → ConflictError   (duplicate / constraint violation)
    DBAPIError       → PersistenceError (connection loss, lock timeout, …)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from inframind.core.exceptions import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from inframind.models import db
from inframind.models.analysis import Analysis, AnalysisStatus
from inframind.models.auth import User
from inframind.models.task import Task

logger = logging.getLogger(__name__)


def require_id(value, field: str) -> str:
    """Return *value* if it is a non-empty string id; raise ValidationError otherwise."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"Invalid {field}", details={field: "is required"})
    if not isinstance(value, str):
        raise ValidationError(f"Invalid {field}", details={field: "must be a string id"})
    return value


class AnalysisStore:
    """SQLAlchemy-backed store; one instance per unit of work."""

    def __init__(self, session=None):
        self.session = session or db.session

    # ── Reads ────────────────────────────────────────────────────────────

    @contextmanager
    def _reading(self):
        try:
            yield
        except DBAPIError as exc:
            logger.exception("Database error while reading")
            raise PersistenceError(f"Database unavailable: {exc.__class__.__name__}") from exc

    def get(self, analysis_id: str) -> Analysis:
        """Load the analysis as currently committed; raise NotFoundError if absent."""
        require_id(analysis_id, "analysis_id")
        with self._reading():
            analysis = self.session.get(Analysis, analysis_id, populate_existing=True)
        if analysis is None:
            raise NotFoundError(resource="Analysis", resource_id=analysis_id)
        return analysis

    def get_task(self, task_id: str) -> Task:
        require_id(task_id, "task_id")
        with self._reading():
            task = self.session.get(Task, task_id)
        if task is None:
            raise NotFoundError(resource="Task", resource_id=task_id)
        return task

    def get_user(self, user_id: str) -> User:
        require_id(user_id, "user_id")
        with self._reading():
            user = self.session.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="User", resource_id=user_id)
        return user

    def query_analyses(
        self,
        *,
        owner_id: str | None = None,
        status: AnalysisStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Analysis], int]:
        """Return (page, total) ordered newest first."""
        q = self.session.query(Analysis)
        if owner_id is not None:
            q = q.filter(Analysis.owner_id == owner_id)
        if status is not None:
            q = q.filter(Analysis.status == status)
        with self._reading():
            total = q.count()
            items = (
                q.order_by(Analysis.created_at.desc(), Analysis.id.asc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        return items, total

    # ── Optimistic concurrency ───────────────────────────────────────────

    @staticmethod
    def check_version(analysis: Analysis, expected_version: int) -> None:
        """Raise ConflictError if the caller's token is not the stored version."""
        if expected_version != analysis.version:
            logger.warning(
                "Version conflict on analysis %s: presented=%s current=%s",
                analysis.id, expected_version, analysis.version,
            )
            raise ConflictError("Analysis", "version", expected_version, analysis.version)

    # ── Writes ───────────────────────────────────────────────────────────

    def add(self, obj) -> None:
        self.session.add(obj)

    def rollback(self) -> None:
        self.session.rollback()

    def commit(self) -> None:
        """Flush and commit everything added since the last commit, atomically."""
        commit_or_raise(self.session)


def commit_or_raise(session) -> None:
    """Commit *session*, translating database failures into platform errors.

    The session is rolled back before any exception leaves this function.
    """
    try:
        session.commit()
    except StaleDataError as exc:
        session.rollback()
        logger.warning("Optimistic lock lost on commit: %s", exc)
        raise ConflictError("Analysis", "version") from exc
    except IntegrityError as exc:
        session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        raise ConflictError("Record", "constraint", str(exc.orig)) from exc
    except DBAPIError as exc:
        session.rollback()
        logger.exception("Database error on commit")
        raise PersistenceError(f"Database unavailable: {exc.__class__.__name__}") from exc
    except Exception:
        session.rollback()
        raise
