"""
Viral DNA heuristics

Pure keyword and metric heuristics used around the daily cycle:
- Shock / warmth trigger detection over title + transcript
- Shareability and shock-to-warmth ratio derived from them
- Linear recency decay
- Canonical short-form / long-form classification
- Clone-readiness score computed at ingestion time
- Overall score blended from LLM scores and shareability

Score range: 0-100
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone

from viral_studio.models import ContentType


SHOCK_TRIGGERS = (
    "unexpected", "scream", "surprise", "wow", "fail", "caught",
    "shock", "sudden", "reaction", "gasp", "omg", "unbelievable",
)
WARMTH_TRIGGERS = (
    "baby", "dog", "cat", "puppy", "kitten", "laughing", "hug", "smile",
    "crying", "family", "kindness", "love", "cute", "adorable", "heartwarming",
)

POLITICAL_KEYWORDS = (
    "trump", "biden", "tariff", "politics", "political", "election", "vote",
    "campaign", "republican", "democrat", "congress", "senate", "president",
    "government", "policy", "liberal", "conservative", "reagan",
)
AD_KEYWORDS = ("commercial", "ad", "advertisement", "promo", "super bowl", "brand")
SPOKEN_KEYWORDS = (
    "explains", "reacts", "reveals", "says", "talks", "discusses", "shares",
    "advice", "tips", "how to", "tutorial", "review", "breakdown",
)
VISUAL_KEYWORDS = ("funny", "emotional", "creative", "viral", "trending", "best")

SHORT_FORM_MAX_SECONDS = 60


@dataclass(frozen=True)
class EmotionalSignals:
    shock: int
    warmth: int
    shareability: int
    shock_warmth_ratio: float

    @property
    def shock_warmth_signal(self) -> float:
        """Ratio when it is non-zero, otherwise the raw shock score."""
        return self.shock_warmth_ratio or float(self.shock)


def transcript_text(trend) -> str | None:
    """Spoken text of a trend: the transcript, or the hook when none was captured."""
    return trend.transcript or trend.hook_text


def _combined_text(title: str | None, transcript: str | None) -> str:
    return f"{(title or '').lower()} {(transcript or '').lower()}"


def count_triggers(text: str, triggers: tuple[str, ...]) -> int:
    """Number of distinct triggers that occur in text."""
    return sum(1 for trigger in triggers if trigger in text)


def shock_score_for(matches: int) -> int:
    return min(70 + matches * 10, 100) if matches > 0 else 0


def warmth_score_for(matches: int) -> int:
    return min(60 + matches * 15, 100) if matches > 0 else 0


def compute_emotional_signals(title: str | None, transcript: str | None) -> EmotionalSignals:
    """Shock, warmth, shareability and their ratio for a piece of content."""
    text = _combined_text(title, transcript)
    shock = shock_score_for(count_triggers(text, SHOCK_TRIGGERS))
    warmth = warmth_score_for(count_triggers(text, WARMTH_TRIGGERS))
    shareability = round(shock * 0.6 + warmth * 0.4)
    ratio = round(shock / warmth, 2) if warmth > 0 else float(shock)
    return EmotionalSignals(
        shock=shock,
        warmth=warmth,
        shareability=shareability,
        shock_warmth_ratio=ratio,
    )


def recency_factor(
    captured_at: datetime | None,
    now: datetime | None = None,
    *,
    window_hours: float = 168,
) -> float:
    """Linear decay from 1.0 at capture time to 0.0 after window_hours."""
    if captured_at is None or window_hours <= 0:
        return 0.0
    now = now or datetime.now(timezone.utc)
    if captured_at.tzinfo is None:
        captured_at = captured_at.replace(tzinfo=timezone.utc)
    hours_old = max((now - captured_at).total_seconds() / 3600, 0.0)
    return max(0.0, 1.0 - hours_old / window_hours)


def classify_content_type(duration_seconds: int | None, hint: ContentType | str | None = None) -> ContentType:
    """Canonical content track for a video.

    An explicit short_form/long_form hint wins; otherwise anything longer
    than a minute is long-form.
    """
    if isinstance(hint, ContentType):
        return hint
    if hint:
        try:
            return ContentType(str(hint).strip().lower())
        except ValueError:
            pass
    if (duration_seconds or 0) > SHORT_FORM_MAX_SECONDS:
        return ContentType.long_form
    return ContentType.short_form


def overall_score(
    *,
    clone: float,
    virality: float,
    product_fit: float,
    commercial_dna: float,
    shareability: float,
) -> int:
    return round(
        clone * 0.25
        + virality * 0.25
        + product_fit * 0.15
        + commercial_dna * 0.15
        + shareability * 0.20
    )


@dataclass(frozen=True)
class CloneReadiness:
    ready: bool
    score: int
    spoken: bool
    language: str
    is_ad: bool

    @property
    def category(self) -> str:
        return "VIRAL_AD" if self.is_ad else "GENERAL"


_ASCII_LETTER = re.compile(r"[a-zA-Z]")
_NON_ASCII = re.compile(r"[^\x00-\x7F]")


def calculate_clone_readiness(title: str | None, duration_seconds: int | None) -> CloneReadiness:
    """How easily a trending video can be recreated with simple resources."""
    text = (title or "").lower()

    if any(kw in text for kw in POLITICAL_KEYWORDS):
        return CloneReadiness(ready=False, score=0, spoken=False, language="unknown", is_ad=False)

    score = 0
    is_ad = any(kw in text for kw in AD_KEYWORDS)
    if is_ad:
        score += 40

    has_english = bool(_ASCII_LETTER.search(text))
    has_non_english = bool(_NON_ASCII.search(text))
    if has_english and not has_non_english:
        language = "english"
        score += 30
    elif has_english:
        language = "mixed"
        score += 10
    else:
        language = "non-english"
        score -= 30

    spoken = any(kw in text for kw in SPOKEN_KEYWORDS)
    if spoken:
        score += 20

    duration = duration_seconds or 60
    if duration < 70:
        score += 20
    elif duration < 90:
        score += 10

    if any(kw in text for kw in VISUAL_KEYWORDS):
        score += 15

    return CloneReadiness(
        ready=score >= 60,
        score=min(100, max(0, score)),
        spoken=spoken,
        language=language,
        is_ad=is_ad,
    )
