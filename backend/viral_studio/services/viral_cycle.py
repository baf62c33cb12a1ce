"""
Daily viral cycle.

fetch candidates -> pick short-form / long-form tracks -> drop sources
already processed -> fan out to every autopilot organization -> report.

Only the upstream fetches can fail the run. Everything after them
degrades to partial success with counters in the RunReport.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from viral_studio.schemas import RunReport, SelectedVideo
from viral_studio.services.dedupe import split_processed, unique_by_url
from viral_studio.services.fan_out import PairStatus, fan_out_for_org
from viral_studio.services.report_mailer import NullNotifier, ReportNotifier, build_notifier
from viral_studio.services.selector import ScoredItem, select_tracks, top_debug
from viral_studio.services.stores import CycleStore, SqlCycleStore
from viral_studio.settings import CycleConfig, Settings

logger = logging.getLogger(__name__)


class CycleFetchError(Exception):
    """Candidate or organization fetch failed; nothing was written."""


def _selected_video(si: ScoredItem) -> SelectedVideo:
    c = si.item
    return SelectedVideo(
        source_url=c.source_url,
        title=c.title,
        platform=c.platform,
        content_type=si.track,
        ad_type=si.ad_type,
        score=round(si.score, 2),
        duration_seconds=c.duration_seconds,
    )


class DailyViralCycle:
    """One run of the cycle over injected collaborators."""

    def __init__(
        self,
        store: CycleStore,
        cfg: CycleConfig,
        notifier: ReportNotifier | None = None,
    ):
        self.store = store
        self.cfg = cfg
        self.notifier = notifier or NullNotifier()

    async def run(self, *, now: datetime | None = None) -> RunReport:
        now = now or datetime.now(timezone.utc)
        logger.info("[viral_cycle] Starting daily viral cycle")

        try:
            candidates = await self.store.fetch_candidates(self.cfg, now)
        except Exception as e:
            logger.exception("[viral_cycle] Candidate fetch failed")
            raise CycleFetchError(f"candidate fetch failed: {e}") from e

        candidates = unique_by_url(candidates)
        if not candidates:
            return await self._finish(RunReport(
                message="No trending videos found", started_at=now,
            ))

        short, long = select_tracks(candidates, self.cfg, now=now)
        logger.info(
            f"[viral_cycle] Evaluated {len(candidates)} trends: "
            f"{short.eligible} short-form eligible, {long.eligible} long-form eligible"
        )
        logger.debug(f"[viral_cycle] Top short-form: {top_debug(short)}")
        logger.debug(f"[viral_cycle] Top long-form: {top_debug(long)}")

        report = RunReport(
            message="",
            trends_evaluated=len(candidates),
            short_form_selected=len(short),
            long_form_selected=len(long),
            total_selected=len(short) + len(long),
            started_at=now,
        )

        pool = unique_by_url(short.items + long.items, key=lambda si: si.item.source_url)
        report.selected = [_selected_video(si) for si in pool]
        if not pool:
            report.message = "No qualifying candidates found"
            return await self._finish(report)

        try:
            processed = await self.store.fetch_processed_urls([si.item.source_url for si in pool])
        except Exception as e:
            logger.exception("[viral_cycle] Processed-source lookup failed")
            raise CycleFetchError(f"processed-source lookup failed: {e}") from e

        fresh, duplicates = split_processed(pool, processed, key=lambda si: si.item.source_url)
        report.new_trends = len(fresh)
        report.duplicates_skipped = len(duplicates)
        report.duplicate_urls = [si.item.source_url for si in duplicates]
        if duplicates:
            logger.info(f"[viral_cycle] Skipping {len(duplicates)} already processed sources")
        if not fresh:
            report.message = "All selected trends were already processed"
            return await self._finish(report)

        try:
            orgs = await self.store.fetch_autopilot_organizations()
        except Exception as e:
            logger.exception("[viral_cycle] Organization fetch failed")
            raise CycleFetchError(f"organization fetch failed: {e}") from e

        if not orgs:
            report.message = "No organizations with autopilot enabled"
            return await self._finish(report)

        selected_by_url = {video.source_url: video for video in report.selected}
        for org in orgs:
            out = await fan_out_for_org(self.store, self.cfg, org, fresh, now=now)
            report.organizations.append(out.summary)
            report.skipped.extend(out.skipped)
            for result in out.results:
                if result.status == PairStatus.created:
                    selected_by_url[result.source_url].jobs_created += 1
                elif result.status == PairStatus.skipped:
                    report.pairings_skipped += 1
                elif result.status == PairStatus.failed:
                    report.pairings_failed += 1
            report.videos_created += out.summary.jobs_created
            report.short_form_created += out.summary.short_form_created
            report.long_form_created += out.summary.long_form_created
            logger.info(
                f"[viral_cycle] Org {org.id} ({org.name}): {out.summary.jobs_created} created, "
                f"{out.summary.skipped} skipped, {out.summary.failed} failed"
            )

        report.organizations_processed = len(orgs)
        report.message = (
            f"Daily viral cycle complete: {report.short_form_created} short-form + "
            f"{report.long_form_created} long-form videos"
        )
        await self.store.commit()
        return await self._finish(report)

    async def _finish(self, report: RunReport) -> RunReport:
        report.finished_at = datetime.now(timezone.utc)
        logger.info(
            f"[viral_cycle] {report.message}. Processed {report.videos_created} videos "
            f"({report.short_form_created} short + {report.long_form_created} long), "
            f"skipped {report.duplicates_skipped} duplicates, "
            f"{report.pairings_skipped} pairings skipped, {report.pairings_failed} failed"
        )
        try:
            await self.notifier.send_report(report)
        except Exception:
            logger.exception("[viral_cycle] Report notification failed")
        return report


async def run_daily_viral_cycle(
    session: AsyncSession,
    settings: Settings,
    *,
    notifier: ReportNotifier | None = None,
    now: datetime | None = None,
) -> RunReport:
    """Wire the SQL store and notifier from settings and run once."""
    cycle = DailyViralCycle(
        SqlCycleStore(session),
        settings.cycle_config(),
        notifier or build_notifier(settings),
    )
    return await cycle.run(now=now)
