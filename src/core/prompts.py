import re
from dataclasses import dataclass
from typing import Optional

from core.schemas import AnalysisContext, QualityAnalysis

PROMPT_CONTENT_LIMIT = 4000

_TAG_RE = re.compile(r"<[^>]*>")


@dataclass(frozen=True)
class TaskProfile:
    """
    Declarative definition of one provider operation.
    """
    name: str
    system_prompt: str
    temperature: float
    max_tokens: int
    json_output: bool = True


ANALYZE = TaskProfile(
    name="analyze",
    system_prompt=(
        "You are a content quality analyst for a real-estate publication. "
        "Respond with valid JSON only."
    ),
    temperature=0.3,
    max_tokens=2000,
)

IMPROVE = TaskProfile(
    name="improve",
    system_prompt=(
        "You are a senior editor for a real-estate publication. "
        "Respond with valid JSON only, no commentary."
    ),
    temperature=0.7,
    max_tokens=4000,
)


def strip_html(content: str) -> str:
    return _TAG_RE.sub(" ", content or "").strip()


def _truncate(text: str, limit: int = PROMPT_CONTENT_LIMIT) -> str:
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def build_analysis_prompt(
    content: str,
    title: str,
    context: Optional[AnalysisContext] = None,
    language: str = "Turkish",
) -> str:
    context = context or AnalysisContext()
    keywords = ", ".join(context.keywords) if context.keywords else "None"
    return f"""Analyze the following {language} blog post and produce a detailed quality report.

Title: {title}
Category: {context.category or "General"}
Keywords: {keywords}

Content:
{_truncate(strip_html(content))}

Criteria:
1. SEO compliance (keyword usage, metadata, structure) - score 0-100
2. Readability (sentence length, word choice, flow) - score 0-100
3. Content quality (information value, depth, originality) - score 0-100
4. Whether it reads as AI-written (generic phrases, repetition, placeholders) - true/false
5. Human-like writing (naturalness, personality, originality) - score 0-100
6. Structure and format (headings, paragraphs, lists) - score 0-100

Write messages and suggestions in {language}.
Return JSON only:
{{
  "score": 0-100,
  "passed": true/false,
  "issues": [
    {{
      "type": "ai-pattern|seo|readability|structure|engagement|uniqueness",
      "severity": "low|medium|high",
      "message": "What is wrong",
      "suggestion": "How to fix it"
    }}
  ],
  "suggestions": ["Suggestion 1", "Suggestion 2"],
  "aiGenerated": true/false,
  "humanLikeScore": 0-100,
  "seoScore": 0-100
}}"""


def build_improvement_prompt(
    content: str,
    title: str,
    analysis: QualityAnalysis,
    language: str = "Turkish",
) -> str:
    issues = "\n".join(
        f"- {issue.message}: {issue.suggestion}" for issue in analysis.issues
    ) or "- None reported"
    suggestions = "\n".join(analysis.suggestions) or "None"
    return f"""Improve the following {language} blog post using the analysis results.

Title: {title}
Original content:
{_truncate(content)}

Current quality score: {analysis.score:.0f}/100
Issues found:
{issues}

Suggestions:
{suggestions}

Tasks:
1. Replace generic phrases with specific, original wording
2. Replace repeated words with synonyms
3. Vary sentence structure (mix short and long sentences)
4. Use a warmer, more natural tone
5. Make the text flow and read easily
6. Improve SEO by using keywords naturally

Rules:
- Keep the meaning and the information value
- Keep existing HTML tags
- Use correct {language} characters
- Stay close to the original length

Return JSON only:
{{
  "improved": "the full improved content",
  "score": 0-100,
  "changes": [
    {{"type": "replaced|added|removed", "improved": "new wording", "reason": "why"}}
  ]
}}"""
