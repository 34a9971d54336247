"""Score clamping and result schema tests"""

import math

import pytest

from core.schemas import ContentImprovement, ImprovementChange, QualityAnalysis, QualityIssue, ScoreDelta
from core.scoring import clamp_score, estimate_improved_score, passes_threshold


class TestClampScore:

    @pytest.mark.parametrize("raw, expected", [
        (150, 100.0),
        (-20, 0.0),
        (73.5, 73.5),
        ("88", 88.0),
        ("not a number", 0.0),
        (None, 0.0),
        (True, 0.0),
        (math.nan, 0.0),
    ])
    def test_clamp(self, raw, expected):
        assert clamp_score(raw) == expected

    def test_threshold_is_inclusive(self):
        assert passes_threshold(70)
        assert not passes_threshold(69.9)

    def test_estimated_improvement_is_capped(self):
        assert estimate_improved_score(60) == 80
        assert estimate_improved_score(95) == 100


class TestQualityAnalysis:

    def test_passed_is_derived_from_score(self):
        analysis = QualityAnalysis.model_validate({"score": 40, "passed": True})
        assert analysis.passed is False

        analysis = QualityAnalysis.model_validate({"score": 70, "passed": False})
        assert analysis.passed is True

    def test_scores_are_clamped(self):
        analysis = QualityAnalysis.model_validate({
            "score": 140,
            "humanLikeScore": -5,
            "seoScore": "55",
        })
        assert analysis.score == 100
        assert analysis.human_like_score == 0
        assert analysis.seo_score == 55
        assert analysis.passed is True

    def test_missing_fields_default(self):
        analysis = QualityAnalysis.model_validate({})
        assert analysis.score == 0
        assert analysis.passed is False
        assert analysis.issues == []
        assert analysis.suggestions == []
        assert analysis.ai_generated is False

    def test_ai_generated_only_for_literal_true(self):
        assert QualityAnalysis.model_validate({"aiGenerated": True}).ai_generated is True
        assert QualityAnalysis.model_validate({"aiGenerated": "true"}).ai_generated is False
        assert QualityAnalysis.model_validate({"aiGenerated": 1}).ai_generated is False

    def test_malformed_issues_are_coerced(self):
        analysis = QualityAnalysis.model_validate({
            "issues": [
                {"type": "seo", "severity": "CRITICAL", "message": "No H2"},
                "Title too short",
                42,
            ],
            "suggestions": "not a list",
        })
        assert len(analysis.issues) == 2
        assert analysis.issues[0].severity == "medium"
        assert analysis.issues[1].message == "Title too short"
        assert analysis.suggestions == []

    def test_issue_instances_are_kept(self):
        issue = QualityIssue(type="error", severity="high", message="Broken")
        analysis = QualityAnalysis(score=50, issues=[issue, {"message": "From a dict"}])
        assert [i.message for i in analysis.issues] == ["Broken", "From a dict"]
        assert analysis.issues[0].type == "error"

    def test_assignment_is_validated(self):
        analysis = QualityAnalysis(score=80)
        assert analysis.passed is True

        analysis.score = 10
        assert analysis.passed is False

        analysis.score = 250
        assert analysis.score == 100
        assert analysis.passed is True

        analysis.passed = False
        assert analysis.passed is True

    def test_dump_uses_camel_case(self):
        dumped = QualityAnalysis(score=80, ai_generated=True).model_dump(by_alias=True)
        assert "humanLikeScore" in dumped
        assert "seoScore" in dumped
        assert dumped["aiGenerated"] is True


class TestImprovementSchemas:

    def test_score_delta_derives_improvement(self):
        delta = ScoreDelta(before=55, after=130, improvement=3)
        assert delta.after == 100
        assert delta.improvement == 45

        delta.after = 60
        assert delta.improvement == 5

    def test_unknown_change_type_defaults_to_replaced(self):
        change = ImprovementChange.model_validate({"type": "rewrote", "improved": "x"})
        assert change.type == "replaced"

    def test_improvement_requires_text(self):
        with pytest.raises(Exception):
            ContentImprovement.model_validate({"score": {"before": 1, "after": 2}})

    def test_issue_defaults(self):
        issue = QualityIssue()
        assert issue.type == "general"
        assert issue.severity == "medium"
