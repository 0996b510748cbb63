"""
Readiness scoring and analysis content validation.

The readiness score is the author's own 0–100 estimate of how complete an
analysis is.  Submission is gated at SUBMISSION_THRESHOLD.  Content shape
checks live here too so that hand-written hypotheses and machine-suggested
ones go through exactly the same rules.

All checks collect field-level messages and raise a single ValidationError
whose ``details`` map field → message (e.g. ``hypotheses[1].confidence``).
"""

from __future__ import annotations

from inframind.core.exceptions import ValidationError

MIN_SCORE = 0
MAX_SCORE = 100
SUBMISSION_THRESHOLD = 75

MAX_LIST_ITEMS = 100
MAX_ITEM_LENGTH = 1000
MAX_HYPOTHESES = 50
MAX_HYPOTHESIS_TEXT = 2000
MAX_EVIDENCE_ITEMS = 20


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


# ── Score ────────────────────────────────────────────────────────────────────

def score_error(value) -> str | None:
    """Return an error message for *value*, or None when it is a valid score."""
    if not _is_int(value):
        return "must be an integer"
    if value < MIN_SCORE or value > MAX_SCORE:
        return f"must be between {MIN_SCORE} and {MAX_SCORE}"
    return None


def validate_score(value, field: str = "readiness_score") -> int:
    """Return *value* if it is an integer in [0, 100]; raise otherwise."""
    err = score_error(value)
    if err:
        raise ValidationError(f"Invalid {field}: {err}", details={field: err})
    return value


def meets_threshold(score: int) -> bool:
    return score >= SUBMISSION_THRESHOLD


def check_submission_ready(score: int) -> None:
    """Raise ValidationError unless *score* clears the submission threshold."""
    if not meets_threshold(score):
        msg = f"must be at least {SUBMISSION_THRESHOLD} to submit (current: {score})"
        raise ValidationError(f"Readiness score {msg}", details={"readiness_score": msg})


# ── Content shape ────────────────────────────────────────────────────────────

def _check_string_list(field: str, value, errors: dict) -> list[str]:
    if not isinstance(value, list):
        errors[field] = "must be a list of strings"
        return []
    if len(value) > MAX_LIST_ITEMS:
        errors[field] = f"must contain at most {MAX_LIST_ITEMS} items"
        return []
    cleaned = []
    for i, item in enumerate(value):
        if not isinstance(item, str):
            errors[f"{field}[{i}]"] = "must be a string"
            continue
        if len(item) > MAX_ITEM_LENGTH:
            errors[f"{field}[{i}]"] = f"must be at most {MAX_ITEM_LENGTH} characters"
            continue
        item = item.strip()
        if item:
            cleaned.append(item)
    return cleaned


def _check_hypotheses(value, errors: dict, field: str = "hypotheses") -> list[dict]:
    if not isinstance(value, list):
        errors[field] = "must be a list"
        return []
    if len(value) > MAX_HYPOTHESES:
        errors[field] = f"must contain at most {MAX_HYPOTHESES} items"
        return []

    cleaned = []
    for i, item in enumerate(value):
        prefix = f"{field}[{i}]"
        if not isinstance(item, dict):
            errors[prefix] = "must be an object with text, confidence and evidence"
            continue

        text = item.get("text")
        if not isinstance(text, str) or not text.strip():
            errors[f"{prefix}.text"] = "is required"
        elif len(text) > MAX_HYPOTHESIS_TEXT:
            errors[f"{prefix}.text"] = f"must be at most {MAX_HYPOTHESIS_TEXT} characters"

        confidence = item.get("confidence")
        err = score_error(confidence)
        if err:
            errors[f"{prefix}.confidence"] = err

        evidence = item.get("evidence", [])
        if not isinstance(evidence, list) or not all(isinstance(e, str) for e in evidence):
            errors[f"{prefix}.evidence"] = "must be a list of strings"
        elif len(evidence) > MAX_EVIDENCE_ITEMS:
            errors[f"{prefix}.evidence"] = f"must contain at most {MAX_EVIDENCE_ITEMS} items"

        if not any(k.startswith(prefix + ".") for k in errors):
            cleaned.append({
                "text": text.strip(),
                "confidence": confidence,
                "evidence": [e.strip() for e in evidence if e.strip()],
            })
    return cleaned


def validate_hypotheses(value, field: str = "hypotheses") -> list[dict]:
    """Validate a hypotheses list on its own; return the normalised list."""
    errors: dict[str, str] = {}
    cleaned = _check_hypotheses(value, errors, field)
    if errors:
        raise ValidationError("Invalid hypotheses", details=errors)
    return cleaned


def validate_content(*, symptoms, signals, hypotheses, readiness_score) -> dict:
    """
    Validate a full content write.

    Returns:
        {"symptoms", "signals", "hypotheses", "readiness_score"} normalised:
        blank symptom/signal entries dropped, strings stripped.

    Raises:
        ValidationError: with every failing field in ``details``.
    """
    errors: dict[str, str] = {}
    clean_symptoms = _check_string_list("symptoms", symptoms, errors)
    clean_signals = _check_string_list("signals", signals, errors)
    clean_hypotheses = _check_hypotheses(hypotheses, errors)
    err = score_error(readiness_score)
    if err:
        errors["readiness_score"] = err

    if errors:
        raise ValidationError("Analysis content failed validation", details=errors)

    return {
        "symptoms": clean_symptoms,
        "signals": clean_signals,
        "hypotheses": clean_hypotheses,
        "readiness_score": readiness_score,
    }
