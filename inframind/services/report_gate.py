"""Report gate: may this role publish a report for this analysis?"""

from __future__ import annotations

from inframind.core.exceptions import InvalidStateError
from inframind.models.analysis import Analysis, AnalysisStatus
from inframind.models.auth import Role
from inframind.services.capability import Action, Actor, check_capability, has_capability


def can_generate_report(status: AnalysisStatus | str, role: Role | str) -> bool:
    """Pure predicate: APPROVED analysis and a role holding generate_report."""
    try:
        status = AnalysisStatus(status)
    except ValueError:
        return False
    return status == AnalysisStatus.APPROVED and has_capability(role, Action.GENERATE_REPORT)


def check_report_allowed(analysis: Analysis, actor: Actor) -> None:
    """
    Raise unless *actor* may publish a report for *analysis*.

    Raises:
        ForbiddenError: role lacks generate_report (checked first).
        InvalidStateError: analysis is not APPROVED.
    """
    check_capability(actor, Action.GENERATE_REPORT)
    if analysis.status != AnalysisStatus.APPROVED:
        raise InvalidStateError(
            "Analysis", analysis.id, Action.GENERATE_REPORT.value, analysis.status.value,
            "reports can only be generated from APPROVED analyses",
        )
