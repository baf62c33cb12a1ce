"""
Per-organization fan-out of the selected videos.

Every (organization, video) pair is one unit of work: balance check,
credit charge, job + schedule creation, processed-source marker. The
writes of a pair land together or not at all, and a failing pair never
stops the others.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from viral_studio.models import ContentType
from viral_studio.schemas import OrganizationRef, OrganizationSummary, SkippedPairing
from viral_studio.services.credits import charge_description, required_credits
from viral_studio.services.post_schedule import compute_post_schedule
from viral_studio.services.selector import ScoredItem
from viral_studio.services.stores import CycleStore, DuplicateSourceError, NewJob
from viral_studio.settings import CycleConfig

logger = logging.getLogger(__name__)

CONTENT_LABELS = {
    ContentType.short_form: "short-form viral ad",
    ContentType.long_form: "long-form value video",
}


class PairStatus(str, Enum):
    created = "created"
    skipped = "skipped"
    failed = "failed"


@dataclass
class PairResult:
    org_id: int
    source_url: str
    content_type: ContentType
    status: PairStatus
    reason: str = ""
    job_id: int | None = None

    @property
    def created(self) -> bool:
        return self.status == PairStatus.created


class _ChargeRejected(Exception):
    pass


async def process_pair(
    store: CycleStore,
    cfg: CycleConfig,
    org: OrganizationRef,
    brand_id: int | None,
    selected: ScoredItem,
    *,
    now: datetime | None = None,
) -> PairResult:
    """Create one video job for one organization, or say why not."""
    now = now or datetime.now(timezone.utc)
    candidate = selected.item
    content_type = selected.track
    result = PairResult(
        org_id=org.id,
        source_url=candidate.source_url,
        content_type=content_type,
        status=PairStatus.created,
    )

    cost = required_credits(cfg)
    try:
        balance = await store.get_credit_balance(org.id)
    except Exception as e:
        logger.exception(f"[fan_out] Balance read failed for org {org.id}")
        result.status, result.reason = PairStatus.failed, f"balance_read_error: {e}"
        return result

    if balance < cost:
        logger.info(
            f"[fan_out] Org {org.id} has {balance} credits, needs {cost}; "
            f"skipping {candidate.source_url}"
        )
        result.status, result.reason = PairStatus.skipped, "insufficient_credits"
        return result

    description = charge_description(
        CONTENT_LABELS[content_type], candidate.platform, candidate.title or "Untitled"
    )
    try:
        async with store.pairing():
            if not await store.charge_credits(org.id, cost, description):
                raise _ChargeRejected()

            schedule = compute_post_schedule(content_type, cfg, now=now)
            job_id = await store.create_job(NewJob(
                org_id=org.id,
                brand_id=brand_id,
                candidate=candidate,
                content_type=content_type,
                platforms=cfg.target_platforms,
                schedule=tuple(schedule),
            ))
            await store.record_processed_source(
                org_id=org.id,
                candidate=candidate,
                job_id=job_id,
                scheduled_time=schedule[0].scheduled_time if schedule else None,
            )
    except _ChargeRejected:
        result.status, result.reason = PairStatus.skipped, "charge_rejected"
        return result
    except DuplicateSourceError:
        logger.info(f"[fan_out] {candidate.source_url} already processed for org {org.id}")
        result.status, result.reason = PairStatus.skipped, "already_processed"
        return result
    except Exception as e:
        logger.exception(f"[fan_out] Pair failed org={org.id} url={candidate.source_url}")
        result.status, result.reason = PairStatus.failed, str(e) or type(e).__name__
        return result

    result.job_id = job_id
    logger.info(
        f"[fan_out] Created {content_type.value} job {job_id} for org {org.id} "
        f"from {candidate.source_url} (charged {cost})"
    )
    return result


@dataclass
class OrgFanOut:
    summary: OrganizationSummary
    results: list[PairResult] = field(default_factory=list)

    @property
    def skipped(self) -> list[SkippedPairing]:
        return [
            SkippedPairing(
                org_id=r.org_id,
                source_url=r.source_url,
                status=r.status.value,
                reason=r.reason,
            )
            for r in self.results
            if not r.created
        ]


async def fan_out_for_org(
    store: CycleStore,
    cfg: CycleConfig,
    org: OrganizationRef,
    pool: list[ScoredItem],
    *,
    now: datetime | None = None,
) -> OrgFanOut:
    """Offer every pooled video to one organization."""
    summary = OrganizationSummary(org_id=org.id, name=org.name)
    out = OrgFanOut(summary=summary)

    try:
        brand_id = await store.resolve_brand_id(org.id)
    except Exception:
        logger.exception(f"[fan_out] Brand lookup failed for org {org.id}, continuing without brand")
        brand_id = None

    for selected in pool:
        result = await process_pair(store, cfg, org, brand_id, selected, now=now)
        out.results.append(result)
        if result.status == PairStatus.created:
            summary.jobs_created += 1
            if result.content_type == ContentType.long_form:
                summary.long_form_created += 1
            else:
                summary.short_form_created += 1
        elif result.status == PairStatus.skipped:
            summary.skipped += 1
        else:
            summary.failed += 1

    return out
