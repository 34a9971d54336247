"""Prompt construction tests"""

from core.prompts import ANALYZE, IMPROVE, PROMPT_CONTENT_LIMIT, build_analysis_prompt, build_improvement_prompt, strip_html
from core.schemas import AnalysisContext


def test_task_profiles():
    assert (ANALYZE.temperature, ANALYZE.max_tokens) == (0.3, 2000)
    assert (IMPROVE.temperature, IMPROVE.max_tokens) == (0.7, 4000)


def test_strip_html():
    assert strip_html("<p>Merhaba <b>dünya</b></p>").split() == ["Merhaba", "dünya"]


def test_analysis_prompt_strips_and_truncates():
    content = "<p>" + "a" * (PROMPT_CONTENT_LIMIT + 500) + "</p>"
    prompt = build_analysis_prompt(content, "Başlık", AnalysisContext(category="Rehber", keywords=["villa", "bodrum"]))

    assert "<p>" not in prompt
    assert "a" * PROMPT_CONTENT_LIMIT + "..." in prompt
    assert "a" * (PROMPT_CONTENT_LIMIT + 1) not in prompt
    assert "Keywords: villa, bodrum" in prompt
    assert "Category: Rehber" in prompt


def test_analysis_prompt_defaults():
    prompt = build_analysis_prompt("Metin", "Başlık")
    assert "Category: General" in prompt
    assert "Keywords: None" in prompt
    assert "Turkish" in prompt


def test_improvement_prompt_lists_issues(analysis):
    prompt = build_improvement_prompt("<p>Metin</p>", "Başlık", analysis, language="English")

    assert "Current quality score: 62/100" in prompt
    assert "- Meta description is missing: Add a meta description" in prompt
    assert "<p>Metin</p>" in prompt
    assert "English" in prompt
