"""
Tests: readiness score bounds, submission threshold and content validation.
"""

import pytest

from inframind.core.exceptions import ValidationError
from inframind.services.readiness import (
    MAX_HYPOTHESES,
    MAX_ITEM_LENGTH,
    SUBMISSION_THRESHOLD,
    check_submission_ready,
    meets_threshold,
    validate_content,
    validate_hypotheses,
    validate_score,
)


def _valid(**overrides):
    body = {
        "symptoms": ["p99 above 2s"],
        "signals": ["pool saturated"],
        "hypotheses": [{"text": "Pool too small", "confidence": 60, "evidence": ["wait 800ms"]}],
        "readiness_score": 80,
    }
    body.update(overrides)
    return body


# ═══════════════════════════════════════════════════════════════════════════════
# Score
# ═══════════════════════════════════════════════════════════════════════════════


class TestScore:

    @pytest.mark.parametrize("value", [0, 1, 74, 75, 100])
    def test_in_range_accepted(self, value):
        assert validate_score(value) == value

    @pytest.mark.parametrize("value", [-1, 101, 150])
    def test_out_of_range_rejected(self, value):
        with pytest.raises(ValidationError) as exc:
            validate_score(value)
        assert "readiness_score" in exc.value.details

    @pytest.mark.parametrize("value", [None, "80", 80.0, True])
    def test_non_integer_rejected(self, value):
        with pytest.raises(ValidationError):
            validate_score(value)

    def test_threshold_is_75(self):
        assert SUBMISSION_THRESHOLD == 75
        assert meets_threshold(75) is True
        assert meets_threshold(74) is False

    def test_check_submission_ready_below_threshold(self):
        with pytest.raises(ValidationError) as exc:
            check_submission_ready(65)
        assert "75" in exc.value.details["readiness_score"]

    def test_check_submission_ready_at_threshold(self):
        check_submission_ready(75)


# ═══════════════════════════════════════════════════════════════════════════════
# Content
# ═══════════════════════════════════════════════════════════════════════════════


class TestValidateContent:

    def test_valid_content_normalised(self):
        out = validate_content(**_valid(symptoms=["  spike  ", "", "   "]))
        assert out["symptoms"] == ["spike"]
        assert out["readiness_score"] == 80

    def test_all_errors_collected(self):
        with pytest.raises(ValidationError) as exc:
            validate_content(**_valid(symptoms="nope", signals=[1], readiness_score=101))
        details = exc.value.details
        assert details["symptoms"] == "must be a list of strings"
        assert details["signals[0]"] == "must be a string"
        assert "readiness_score" in details

    def test_item_length_capped(self):
        with pytest.raises(ValidationError) as exc:
            validate_content(**_valid(signals=["x" * (MAX_ITEM_LENGTH + 1)]))
        assert "signals[0]" in exc.value.details

    def test_hypothesis_confidence_out_of_range(self):
        hyps = [
            {"text": "ok", "confidence": 50, "evidence": []},
            {"text": "bad", "confidence": 120, "evidence": []},
        ]
        with pytest.raises(ValidationError) as exc:
            validate_content(**_valid(hypotheses=hyps))
        assert list(exc.value.details) == ["hypotheses[1].confidence"]

    def test_hypothesis_blank_text(self):
        with pytest.raises(ValidationError) as exc:
            validate_hypotheses([{"text": "  ", "confidence": 10, "evidence": []}])
        assert "hypotheses[0].text" in exc.value.details

    def test_hypothesis_evidence_must_be_strings(self):
        with pytest.raises(ValidationError) as exc:
            validate_hypotheses([{"text": "t", "confidence": 10, "evidence": [1, 2]}])
        assert "hypotheses[0].evidence" in exc.value.details

    def test_hypothesis_not_an_object(self):
        with pytest.raises(ValidationError) as exc:
            validate_hypotheses(["just text"])
        assert "hypotheses[0]" in exc.value.details

    def test_too_many_hypotheses(self):
        hyps = [{"text": f"h{i}", "confidence": 1, "evidence": []} for i in range(MAX_HYPOTHESES + 1)]
        with pytest.raises(ValidationError) as exc:
            validate_hypotheses(hyps)
        assert "hypotheses" in exc.value.details

    def test_hypotheses_evidence_defaults_to_empty(self):
        out = validate_hypotheses([{"text": " t ", "confidence": 0}])
        assert out == [{"text": "t", "confidence": 0, "evidence": []}]

    def test_custom_field_name_in_errors(self):
        with pytest.raises(ValidationError) as exc:
            validate_hypotheses([{"text": "t", "confidence": -5}], field="suggestions")
        assert "suggestions[0].confidence" in exc.value.details
