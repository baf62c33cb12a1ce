"""
Multi-track candidate selector: filters, scores and truncates trending
videos into the short-form and long-form production tracks.

Short-form: viral UGC / Super Bowl style ads, ranked by virality,
shareability and the shock/warmth signal.
Long-form: educational / motivational / informational value videos,
ranked by informational value, transformation and emotional depth.
Both tracks add the same linear recency bonus.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Mapping

from viral_studio.models import AdType, ContentType
from viral_studio.schemas import Candidate
from viral_studio.services.virality import (
    EmotionalSignals,
    classify_content_type,
    compute_emotional_signals,
    recency_factor,
)
from viral_studio.settings import CycleConfig


SHORT_FORM_AD_TYPES = frozenset({AdType.ugc, AdType.superbowl, AdType.commercial})
LONG_FORM_AD_TYPES = frozenset({AdType.educational, AdType.motivational, AdType.informational})

# Ad type assumed when the scorer did not classify one
SHORT_FORM_DEFAULT_AD_TYPE = AdType.commercial
LONG_FORM_DEFAULT_AD_TYPE = AdType.educational


@dataclass
class ScoredItem:
    """A candidate admitted to a track, with its composite score."""
    item: Candidate
    track: ContentType
    score: float
    signals: EmotionalSignals
    factors: dict[str, float] = field(default_factory=dict)

    @property
    def ad_type(self) -> AdType:
        if self.item.scores.ad_type is not None:
            return self.item.scores.ad_type
        if self.track == ContentType.long_form:
            return LONG_FORM_DEFAULT_AD_TYPE
        return SHORT_FORM_DEFAULT_AD_TYPE

    @property
    def sort_key(self) -> tuple:
        return (-self.score, -self.item.views, self.item.source_url)


@dataclass
class TrackSelection:
    track: ContentType
    eligible: int
    items: list[ScoredItem] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.items)


def content_type_of(candidate: Candidate) -> ContentType:
    return classify_content_type(candidate.duration_seconds, candidate.scores.content_type)


def is_short_form_eligible(candidate: Candidate, cfg: CycleConfig) -> bool:
    scores = candidate.scores
    ad_type = scores.ad_type or SHORT_FORM_DEFAULT_AD_TYPE
    return (
        content_type_of(candidate) == ContentType.short_form
        and 0 < candidate.duration_seconds <= cfg.short_form_max_duration
        and ad_type in SHORT_FORM_AD_TYPES
        and scores.commercial_fit >= cfg.short_form_min_commercial_fit
        and scores.clone_feasibility >= cfg.short_form_min_clone_feasibility
    )


def is_long_form_eligible(candidate: Candidate, cfg: CycleConfig) -> bool:
    scores = candidate.scores
    ad_type = scores.ad_type or LONG_FORM_DEFAULT_AD_TYPE
    return (
        content_type_of(candidate) == ContentType.long_form
        and cfg.long_form_min_duration <= candidate.duration_seconds <= cfg.long_form_max_duration
        and ad_type in LONG_FORM_AD_TYPES
        and (
            scores.informational_value >= cfg.long_form_min_value
            or scores.transformation >= cfg.long_form_min_value
        )
    )


def short_form_score(
    candidate: Candidate,
    signals: EmotionalSignals,
    recency: float,
    weights: Mapping[str, float],
) -> tuple[float, dict[str, float]]:
    factors = {
        "virality": candidate.scores.virality,
        "shareability": float(signals.shareability),
        "shock_warmth": signals.shock_warmth_signal,
        "recency": recency * 100,
    }
    score = sum(factors[name] * weights.get(name, 0.0) for name in factors)
    return score, factors


def long_form_score(
    candidate: Candidate,
    recency: float,
    weights: Mapping[str, float],
) -> tuple[float, dict[str, float]]:
    scores = candidate.scores
    factors = {
        "informational": scores.informational_value,
        "transformation": scores.transformation,
        "emotional_depth": scores.emotional_depth,
        "recency": recency * 100,
    }
    score = sum(factors[name] * weights.get(name, 0.0) for name in factors)
    return score, factors


def rank_items(items: list[ScoredItem]) -> list[ScoredItem]:
    """Best first; ties broken by views, then URL for a stable order."""
    return sorted(items, key=lambda s: s.sort_key)


def select_track(
    candidates: Iterable[Candidate],
    track: ContentType,
    cfg: CycleConfig,
    *,
    now: datetime | None = None,
) -> TrackSelection:
    """Filter, score, rank and truncate candidates for one track."""
    now = now or datetime.now(timezone.utc)
    scored: list[ScoredItem] = []

    for candidate in candidates:
        if track == ContentType.short_form and not is_short_form_eligible(candidate, cfg):
            continue
        if track == ContentType.long_form and not is_long_form_eligible(candidate, cfg):
            continue

        signals = compute_emotional_signals(candidate.title, candidate.transcript)
        recency = recency_factor(candidate.captured_at, now, window_hours=cfg.recency_window_hours)
        if track == ContentType.short_form:
            score, factors = short_form_score(candidate, signals, recency, cfg.short_form_weights)
        else:
            score, factors = long_form_score(candidate, recency, cfg.long_form_weights)

        scored.append(ScoredItem(
            item=candidate,
            track=track,
            score=score,
            signals=signals,
            factors=factors,
        ))

    cap = cfg.short_form_cap if track == ContentType.short_form else cfg.long_form_cap
    ranked = rank_items(scored)
    return TrackSelection(track=track, eligible=len(scored), items=ranked[:max(cap, 0)])


def select_tracks(
    candidates: list[Candidate],
    cfg: CycleConfig,
    *,
    now: datetime | None = None,
) -> tuple[TrackSelection, TrackSelection]:
    """Run both track selections independently over the same candidate set."""
    now = now or datetime.now(timezone.utc)
    short = select_track(candidates, ContentType.short_form, cfg, now=now)
    long = select_track(candidates, ContentType.long_form, cfg, now=now)
    return short, long


def top_debug(selection: TrackSelection, n: int = 5) -> list[dict]:
    """Return top-N items with score factors for logs/report."""
    result = []
    for si in selection.items[:n]:
        result.append({
            "source_url": si.item.source_url,
            "score": round(si.score, 2),
            "factors": {k: round(v, 2) for k, v in si.factors.items()},
        })
    return result
