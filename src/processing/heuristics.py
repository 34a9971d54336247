"""
Offline content quality heuristics.

Everything here is deterministic and free of network access. The evaluator
is used directly by the audit tooling and as the last-resort fallback of the
orchestrator when FALLBACK_MODE is "heuristic".
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from core.schemas import QualityAnalysis, QualityIssue
from core.scoring import clamp_score

_TAG_RE = re.compile(r"<[^>]*>")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_VOWEL_RE = re.compile(r"[aeıioöuü]", re.IGNORECASE)
_OPEN_TAG_RE = re.compile(r"<\/?([a-z][a-z0-9]*)[^>]*>", re.IGNORECASE)
_EMPTY_TAG_RE = re.compile(r"<(p|div|span|h[1-6])[^>]*>\s*<\/\1>", re.IGNORECASE)
_IMG_RE = re.compile(r"<img[^>]*>", re.IGNORECASE)
_IMG_ALT_RE = re.compile(r"<img[^>]*alt=[\"'][^\"']+[\"'][^>]*>", re.IGNORECASE)
_IMG_SRC_RE = re.compile(r"\bsrc=", re.IGNORECASE)
_LINK_RE = re.compile(r"<a[^>]*href=[\"'][^\"']*[\"'][^>]*>", re.IGNORECASE)
_H2_RE = re.compile(r"<h2[^>]*>", re.IGNORECASE)
_H3_RE = re.compile(r"<h3[^>]*>", re.IGNORECASE)

_VOID_TAGS = {"br", "hr", "img", "input", "meta", "link"}

# (pattern, kind, confidence)
_GENERIC_PHRASES = [
    (r"bu yazıda|bu makalede|bu içerikte|in this article", "generic-phrase", 0.6),
    (r"günümüzde|son yıllarda|günümüz dünyasında|in today's world", "generic-phrase", 0.5),
    (r"hayalinizdeki|düşlediğiniz|arzuladığınız|of your dreams", "generic-phrase", 0.7),
    (r"tatil cenneti|eşsiz fırsat|kaçırılmayacak|once in a lifetime", "generic-phrase", 0.8),
    (r"in conclusion|sonuç olarak|özetlemek gerekirse", "conclusion", 0.9),
    (r"furthermore|ayrıca|bunun yanı sıra", "transition", 0.4),
    (r"yorumlarınızı bekliyoruz|düşünceleriniz neler|görüşlerinizi paylaşın", "generic-phrase", 0.8),
]

_PLACEHOLDERS = [
    (r"\[image[^\]]*\]", 0.95),
    (r"\(image[^\)]*\)", 0.95),
    (r"\[alt text\]|\[görsel açıklaması\]", 0.9),
    (r"image idea|görsel fikri", 0.9),
]


@dataclass(frozen=True)
class AIPattern:
    pattern: str
    type: str
    confidence: float
    location: Optional[int] = None


@dataclass
class ReadabilityScore:
    score: float
    grade_level: str
    issues: List[str] = field(default_factory=list)


@dataclass
class SEOReport:
    score: float
    passed: bool
    issues: List[QualityIssue] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    keyword_density: float = 0.0
    meta_description_length: int = 0
    title_length: int = 0


@dataclass
class HTMLValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    fixed_html: Optional[str] = None


@dataclass
class DuplicateReport:
    is_duplicate: bool
    similarity: float
    similar_articles: List[Dict[str, Any]] = field(default_factory=list)


def _plain_text(content: str) -> str:
    return _TAG_RE.sub(" ", content or "").strip()


def _words(text: str) -> List[str]:
    return [w for w in text.split() if w]


def _keyword_list(raw: Any) -> List[str]:
    """Keywords may arrive as a list or as one comma-separated string."""
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = raw.split(",")
    elif not isinstance(raw, (list, tuple, set)):
        raw = [raw]
    return [str(k).strip() for k in raw if k is not None and str(k).strip()]


def detect_ai_patterns(content: str) -> List[AIPattern]:
    """
    Finds phrases and structures typical of machine-written copy.
    """
    lowered = (content or "").lower()
    patterns: List[AIPattern] = []

    for expression, kind, confidence in _GENERIC_PHRASES:
        for match in re.finditer(expression, lowered):
            patterns.append(AIPattern(match.group(0), kind, confidence, match.start()))

    for expression, confidence in _PLACEHOLDERS:
        for match in re.finditer(expression, lowered):
            patterns.append(AIPattern(match.group(0), "placeholder", confidence, match.start()))

    sentences = [s for s in _SENTENCE_SPLIT_RE.split(content or "") if len(s.strip()) > 10]
    counts: Dict[str, int] = {}
    for sentence in sentences:
        key = sentence.strip().lower()[:50]
        counts[key] = counts.get(key, 0) + 1
    for sentence, count in counts.items():
        if count > 2:
            patterns.append(AIPattern(sentence, "repetitive", min(0.9, count * 0.3)))

    return patterns


def ai_probability(patterns: Sequence[AIPattern]) -> float:
    if not patterns:
        return 0.0
    return min(1.0, sum(p.confidence for p in patterns) / len(patterns))


def calculate_readability(content: str) -> ReadabilityScore:
    """
    Flesch reading ease with syllables counted by Turkish vowels.
    """
    text = _plain_text(content)
    sentences = [s for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]
    words = _words(text)

    if not sentences or not words:
        return ReadabilityScore(score=0, grade_level="Very difficult", issues=["Content is empty or too short"])

    syllables = sum(max(1, len(_VOWEL_RE.findall(word))) for word in words)
    avg_sentence_length = len(words) / len(sentences)
    avg_syllables = syllables / len(words)

    raw = 206.835 - (1.015 * avg_sentence_length) - (84.6 * avg_syllables)
    score = clamp_score(round(raw))

    issues: List[str] = []
    if score < 30:
        grade = "Very difficult"
        issues.append("Sentences are too long or words too complex")
    elif score < 50:
        grade = "Difficult"
        issues.append("Consider shorter sentences and simpler words")
    elif score < 70:
        grade = "Standard"
    elif score < 90:
        grade = "Easy"
    else:
        grade = "Very easy"

    if avg_sentence_length > 20:
        issues.append("Average sentence length exceeds 20 words")
    if avg_syllables > 3:
        issues.append("Words are too complex, prefer simpler alternatives")

    return ReadabilityScore(score=score, grade_level=grade, issues=issues)


def check_seo_compliance(
    content: str,
    title: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> SEOReport:
    metadata = metadata or {}
    description = str(metadata.get("description") or "")
    keywords = _keyword_list(metadata.get("keywords"))

    issues: List[QualityIssue] = []
    suggestions: List[str] = []
    score = 50.0

    text = _plain_text(content).lower()
    title = title or ""
    word_count = len(_words(text))

    title_length = len(title)
    if title_length < 30:
        issues.append(QualityIssue(
            type="seo", severity="medium",
            message="Title is too short (under 30 characters)",
            suggestion="Keep the title between 30 and 60 characters",
        ))
        suggestions.append("Keep the title between 30 and 60 characters")
    elif title_length > 60:
        issues.append(QualityIssue(
            type="seo", severity="low",
            message="Title is too long (over 60 characters)",
            suggestion="Shorten the title below 60 characters",
        ))
    else:
        score += 10

    description_length = len(description)
    if description_length == 0:
        issues.append(QualityIssue(
            type="seo", severity="high",
            message="Meta description is missing",
            suggestion="Add a 120-155 character meta description",
        ))
        suggestions.append("Add a meta description (120-155 characters)")
    elif description_length < 120:
        issues.append(QualityIssue(
            type="seo", severity="medium",
            message="Meta description is too short",
            suggestion="Extend the meta description to 120-155 characters",
        ))
    elif description_length > 155:
        issues.append(QualityIssue(
            type="seo", severity="low",
            message="Meta description is too long",
            suggestion="Trim the meta description below 155 characters",
        ))
    else:
        score += 10

    keyword_density = 0.0
    if keywords:
        if any(k.lower() in title.lower() for k in keywords):
            score += 10
        found = sum(1 for k in keywords if k.lower() in text)
        keyword_density = found / len(keywords) * 100
        if keyword_density < 50:
            issues.append(QualityIssue(
                type="seo", severity="medium",
                message="Keywords are underused in the content",
                suggestion="Work the keywords into the content naturally",
            ))
        else:
            score += 10

    h2_count = len(_H2_RE.findall(content or ""))
    if h2_count == 0:
        issues.append(QualityIssue(
            type="seo", severity="high",
            message="No H2 headings",
            suggestion="Add at least 2-3 H2 headings",
        ))
        suggestions.append("Add H2 headings")
    elif 2 <= h2_count <= 8:
        score += 5
    if _H3_RE.search(content or ""):
        score += 5

    if 300 <= word_count <= 2000:
        score += 10
    elif word_count < 300:
        issues.append(QualityIssue(
            type="seo", severity="high",
            message="Content is too short (under 300 words)",
            suggestion="Expand the content to at least 300 words",
        ))
        suggestions.append("Expand the content to at least 300 words")

    images = _IMG_RE.findall(content or "")
    if images:
        with_alt = len(_IMG_ALT_RE.findall(content or ""))
        if with_alt == len(images):
            score += 5
        else:
            issues.append(QualityIssue(
                type="seo", severity="medium",
                message=f"{len(images) - with_alt} image(s) missing alt text",
                suggestion="Add alt text to every image",
            ))

    if _LINK_RE.search(content or ""):
        score += 5
    else:
        suggestions.append("Add internal links")

    score = clamp_score(score)
    return SEOReport(
        score=score,
        passed=score >= 70,
        issues=issues,
        suggestions=suggestions,
        keyword_density=keyword_density,
        meta_description_length=description_length,
        title_length=title_length,
    )


def calculate_engagement(content: str, word_count: int) -> float:
    content = content or ""
    score = 50.0
    if "?" in content:
        score += 10
    if re.search(r"<ul[^>]*>|<ol[^>]*>", content, re.IGNORECASE):
        score += 10
    if _IMG_RE.search(content):
        score += 10
    if re.search(r"<blockquote[^>]*>", content, re.IGNORECASE):
        score += 5
    if re.search(r"<table[^>]*>", content, re.IGNORECASE):
        score += 5
    if 800 <= word_count <= 2000:
        score += 10
    elif 300 <= word_count < 800:
        score += 5
    if _LINK_RE.search(content):
        score += 5
    return clamp_score(score)


def validate_html_structure(content: str) -> HTMLValidationResult:
    content = content or ""
    errors: List[str] = []
    warnings: List[str] = []
    open_tags: List[str] = []

    for match in _OPEN_TAG_RE.finditer(content):
        tag = match.group(1).lower()
        if match.group(0).startswith("</"):
            if tag in open_tags:
                # remove the most recent matching opener
                del open_tags[len(open_tags) - 1 - open_tags[::-1].index(tag)]
            else:
                warnings.append(f"Closing tag without opener: </{tag}>")
        elif tag not in _VOID_TAGS and not match.group(0).endswith("/>"):
            open_tags.append(tag)

    fixed = None
    if open_tags:
        errors.append(f"Unclosed tags: {', '.join(open_tags)}")
        fixed = content + "".join(f"</{tag}>" for tag in reversed(open_tags))

    broken_images = [img for img in _IMG_RE.findall(content) if not _IMG_SRC_RE.search(img)]
    if broken_images:
        errors.append(f"{len(broken_images)} image tag(s) without src")

    empty = _EMPTY_TAG_RE.findall(content)
    if empty:
        warnings.append(f"{len(empty)} empty tag(s)")

    return HTMLValidationResult(is_valid=not errors, errors=errors, warnings=warnings, fixed_html=fixed)


def detect_duplicate_content(content: str, existing: Sequence[Dict[str, Any]]) -> DuplicateReport:
    """
    Jaccard similarity of word sets against other articles.
    """
    words = {w for w in _words(_plain_text(content).lower()) if len(w) > 2}
    similar = []
    for article in existing:
        other = {w for w in _words(_plain_text(article.get("content", "")).lower()) if len(w) > 2}
        union = words | other
        similarity = len(words & other) / len(union) if union else 0.0
        if similarity > 0.3:
            similar.append({
                "id": article.get("id"),
                "title": article.get("title", ""),
                "slug": article.get("slug", ""),
                "similarity": similarity,
            })

    similar.sort(key=lambda a: a["similarity"], reverse=True)
    top = similar[0]["similarity"] if similar else 0.0
    return DuplicateReport(is_duplicate=top > 0.7, similarity=top, similar_articles=similar[:5])


def evaluate_quality(
    content: str,
    title: str,
    metadata: Optional[Dict[str, Any]] = None,
    existing: Optional[Sequence[Dict[str, Any]]] = None,
) -> QualityAnalysis:
    """
    Scores content without any provider. Weighted blend of readability,
    SEO, engagement, uniqueness and AI-pattern likelihood.
    """
    text = _plain_text(content)
    word_count = len(_words(text))

    readability = calculate_readability(content)
    seo = check_seo_compliance(content, title, metadata)
    engagement = calculate_engagement(content, word_count)
    if existing:
        uniqueness = 100.0 if detect_duplicate_content(content, existing).similarity == 0 else 50.0
    else:
        uniqueness = 100.0
    patterns = detect_ai_patterns(content)
    probability = ai_probability(patterns)

    issues: List[QualityIssue] = []
    suggestions: List[str] = []

    if word_count == 0:
        issues.append(QualityIssue(
            type="structure", severity="high",
            message="Content is empty",
            suggestion="Write the article body before publishing",
        ))

    confident = [p for p in patterns if p.confidence > 0.7]
    if confident:
        issues.append(QualityIssue(
            type="ai-pattern", severity="high",
            message=f"{len(confident)} high-confidence AI pattern(s) detected",
            suggestion="Rewrite in a more natural, original voice",
        ))

    if readability.score < 30:
        issues.append(QualityIssue(
            type="readability", severity="high",
            message="Content is hard to read",
            suggestion="Use shorter sentences and simpler words",
        ))
        suggestions.append("Shorten sentences and simplify complex words")

    if seo.score < 50:
        issues.append(QualityIssue(
            type="seo", severity="medium",
            message="SEO optimisation is insufficient",
            suggestion=", ".join(seo.suggestions),
        ))
        suggestions.extend(seo.suggestions)

    if engagement < 50:
        issues.append(QualityIssue(
            type="engagement", severity="medium",
            message="Content is not engaging enough",
            suggestion="Add images, lists, questions and examples",
        ))
        suggestions.append("Add images, lists and interactive elements")

    html = validate_html_structure(content)
    if not html.is_valid:
        issues.append(QualityIssue(
            type="html-structure", severity="high",
            message="HTML structure has problems",
            suggestion="Fix the broken HTML tags",
        ))

    overall = (
        readability.score * 0.25
        + seo.score * 0.30
        + engagement * 0.20
        + uniqueness * 0.15
        + (1 - probability) * 100 * 0.10
    )
    if word_count == 0:
        overall = min(overall, seo.score * 0.30)

    return QualityAnalysis(
        score=round(overall),
        issues=issues,
        suggestions=list(dict.fromkeys(suggestions)),
        ai_generated=probability > 0.7,
        human_like_score=round((1 - probability) * 100),
        seo_score=seo.score,
    )


def static_fallback_analysis(reason: str = "") -> QualityAnalysis:
    """
    Degraded result returned when no provider could analyze the content.
    """
    message = "Quality analysis could not be completed"
    if reason:
        message = f"{message}: {reason}"
    return QualityAnalysis(
        score=50,
        issues=[QualityIssue(
            type="error",
            severity="medium",
            message=message,
            suggestion="Review the content manually",
        )],
        suggestions=["Review and improve the content"],
        ai_generated=False,
        human_like_score=50,
        seo_score=50,
    )
