"""
Hypothesis suggestions for an analysis in progress.

A suggestion provider is any callable ``provider(context) -> list[dict]``.
Its output is untrusted: after light normalisation it runs through the same
``validate_hypotheses`` used for author input.  Nothing is persisted here;
the author accepts suggestions by writing them back with ``update_content``.
"""

from __future__ import annotations

import logging
from typing import Callable

from inframind.core.exceptions import ForbiddenError, InvalidStateError, ValidationError
from inframind.services.analysis_store import AnalysisStore
from inframind.services.capability import Action, Actor, check_capability
from inframind.services.readiness import validate_hypotheses

logger = logging.getLogger(__name__)

SuggestionProvider = Callable[[dict], list]


def build_context(analysis) -> dict:
    return {
        "analysis_id": analysis.id,
        "analysis_type": analysis.analysis_type.value,
        "symptoms": list(analysis.symptoms or []),
        "signals": list(analysis.signals or []),
    }


def normalize_candidates(raw) -> list:
    """Drop non-object candidates and blank evidence strings."""
    if not isinstance(raw, list):
        raise ValidationError("Suggestion provider returned an invalid payload",
                              details={"suggestions": "must be a list"})
    cleaned = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        candidate = dict(item)
        evidence = candidate.get("evidence", [])
        if isinstance(evidence, list):
            candidate["evidence"] = [e for e in evidence if not (isinstance(e, str) and not e.strip())]
        cleaned.append(candidate)
    return cleaned


def suggest_hypotheses(analysis_id: str, actor: Actor, provider: SuggestionProvider,
                       store: AnalysisStore | None = None) -> list[dict]:
    """
    Ask *provider* for candidate hypotheses on an editable analysis.

    Raises:
        ForbiddenError: role lacks edit_analysis, or actor is not the owner.
        NotFoundError: analysis does not exist.
        InvalidStateError: analysis is not DRAFT or REJECTED.
        ValidationError: provider output fails hypothesis validation.
    """
    check_capability(actor, Action.EDIT_ANALYSIS)
    store = store or AnalysisStore()
    analysis = store.get(analysis_id)
    if analysis.owner_id != actor.user_id:
        raise ForbiddenError(actor.user_id, "suggest_hypotheses", "only the analysis owner may do this")
    if not analysis.is_editable:
        raise InvalidStateError("Analysis", analysis.id, "suggest_hypotheses",
                                analysis.status.value, "analysis is not editable")

    raw = provider(build_context(analysis))
    suggestions = validate_hypotheses(normalize_candidates(raw), field="suggestions")
    logger.info("Provider returned %d hypothesis suggestion(s) for analysis %s",
                len(suggestions), analysis.id)
    return suggestions
