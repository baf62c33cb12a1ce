"""
LLM scoring of captured trends.

The model rates commercial DNA, virality and content type; shock, warmth
and shareability are computed locally from the text so they stay
deterministic. The blended result is stored in viral_scores.
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from viral_studio.models import AdType, Trend, ViralScore
from viral_studio.schemas import LLMScorePayload
from viral_studio.services.virality import (
    classify_content_type,
    compute_emotional_signals,
    overall_score,
    transcript_text,
)
from viral_studio.settings import Settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a viral content analysis expert. Always return valid JSON only."

SCORING_PROMPT = """Rate the viral potential and commercial DNA of this video for cloning and adapting into a short brand ad.

Video details:
Title: {title}
Platform: {platform}
Views: {views}
Likes: {likes}
Comments: {comments}
Category: {category}
Is advertisement: {is_ad}
Duration: {duration}s
Hook: {hook}
Transcript: {transcript}

Commercial DNA criteria:
- direct-to-camera testimonial or UGC style, not cinematic
- simple setup: 1-2 actors, one clear benefit
- emotion or transformation (before/after, problem/solution)
- clear hook within the first 3 seconds

Content type:
- category: "short_form" (<=60s) or "long_form" (>60s)
- ad_type: "ugc", "superbowl", "educational", "motivational" or "informational"

Return ONLY valid JSON with numbers from 0 to 100:
{{
  "clone_score": <number>,
  "virality_score": <number>,
  "product_fit_score": <number>,
  "commercial_dna_score": <number>,
  "emotional_depth": <number>,
  "informational_value": <number>,
  "transformation_score": <number>,
  "category": "<short_form|long_form>",
  "ad_type": "<ugc|superbowl|educational|motivational|informational>",
  "reasoning": "<brief explanation>"
}}"""


class ScoringError(Exception):
    """The scoring gateway failed or returned something unusable."""


def build_prompt(trend: Trend) -> str:
    return SCORING_PROMPT.format(
        title=trend.title or "",
        platform=trend.platform,
        views=trend.views or 0,
        likes=trend.likes or 0,
        comments=trend.comments or 0,
        category=trend.category or "unknown",
        is_ad="Yes" if trend.is_ad else "No",
        duration=trend.duration_seconds or "Unknown",
        hook=trend.hook_text or "Not available",
        transcript=trend.transcript or "Not available",
    )


class ScoringProvider(ABC):
    """Turns a trend into a validated LLM score payload."""

    @abstractmethod
    async def score(self, trend: Trend) -> LLMScorePayload:
        ...


class GatewayScoringProvider(ScoringProvider):
    """OpenAI-compatible chat-completions gateway."""

    def __init__(
        self,
        url: str,
        api_key: str | None,
        model: str,
        *,
        timeout: float = 60,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "GatewayScoringProvider":
        return cls(
            settings.llm_gateway_url,
            settings.llm_api_key,
            settings.llm_model,
            timeout=settings.llm_timeout_sec,
        )

    async def score(self, trend: Trend) -> LLMScorePayload:
        if not self.api_key:
            raise ScoringError("LLM api key is not configured")

        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(trend)},
            ],
            "response_format": {"type": "json_object"},
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(self.url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise ScoringError(f"scoring request failed: {e}") from e

        if not response.is_success:
            raise ScoringError(f"scoring failed: {response.status_code}")

        try:
            content = response.json()["choices"][0]["message"]["content"] or "{}"
            return LLMScorePayload.model_validate(json.loads(content))
        except (KeyError, IndexError, TypeError, ValueError, ValidationError) as e:
            raise ScoringError(f"unparseable scoring response: {e}") from e


def score_flags(commercial_dna: float, overall: float, shareability: float) -> dict[str, bool]:
    return {
        "auto_approve": commercial_dna > 75 and overall > 70,
        "is_share_magnet": shareability > 80,
        "super_bowl_ready": overall > 75 and shareability > 75,
    }


async def score_trend(
    session: AsyncSession,
    trend_id: int,
    provider: ScoringProvider,
) -> dict[str, Any] | None:
    """Score one trend and upsert its viral_scores row.

    Returns None when the trend does not exist; ScoringError propagates.
    """
    trend = await session.get(Trend, trend_id)
    if trend is None:
        return None

    payload = await provider.score(trend)
    signals = compute_emotional_signals(trend.title, transcript_text(trend))
    overall = overall_score(
        clone=payload.clone_score,
        virality=payload.virality_score,
        product_fit=payload.product_fit_score,
        commercial_dna=payload.commercial_dna_score,
        shareability=signals.shareability,
    )
    category = payload.category or classify_content_type(trend.duration_seconds)
    ad_type = payload.ad_type or AdType.ugc

    result = await session.execute(select(ViralScore).where(ViralScore.trend_id == trend_id))
    row = result.scalar_one_or_none()
    if row is None:
        row = ViralScore(trend_id=trend_id)
        session.add(row)

    row.clone_score = payload.clone_score
    row.virality_score = payload.virality_score
    row.product_fit_score = payload.product_fit_score
    row.commercial_dna_score = payload.commercial_dna_score
    row.emotional_depth = payload.emotional_depth
    row.informational_value = payload.informational_value
    row.transformation_score = payload.transformation_score
    row.shock_score = signals.shock
    row.warmth_score = signals.warmth
    row.shareability_score = signals.shareability
    row.shock_warmth_ratio = signals.shock_warmth_ratio
    row.overall_score = overall
    row.category = category.value
    row.ad_type = ad_type.value
    row.ai_reasoning = payload.reasoning
    await session.commit()

    logger.info(
        f"[trend_scorer] Trend {trend_id}: dna={payload.commercial_dna_score:.0f} "
        f"overall={overall} share={signals.shareability}"
    )
    return {
        "trend_id": trend_id,
        "scores": {
            "clone_score": payload.clone_score,
            "virality_score": payload.virality_score,
            "product_fit_score": payload.product_fit_score,
            "commercial_dna_score": payload.commercial_dna_score,
            "emotional_depth": payload.emotional_depth,
            "informational_value": payload.informational_value,
            "transformation_score": payload.transformation_score,
            "shock_score": signals.shock,
            "warmth_score": signals.warmth,
            "shareability_score": signals.shareability,
            "shock_warmth_ratio": signals.shock_warmth_ratio,
            "overall_score": overall,
        },
        "category": category.value,
        "ad_type": ad_type.value,
        "reasoning": payload.reasoning,
        **score_flags(payload.commercial_dna_score, overall, signals.shareability),
    }
