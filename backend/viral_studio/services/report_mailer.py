"""
Daily run report delivery.

The report goes out as a plain-text email through the Resend HTTP API.
Delivery is best effort: a failed send is logged and never changes the
outcome of the run.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone

import httpx

from viral_studio.models import ContentType
from viral_studio.schemas import RunReport
from viral_studio.settings import CycleConfig, Settings

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
RULE = "-" * 40
MAX_LISTED_DUPLICATES = 5


def _hour_label(hour: int) -> str:
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12}{suffix}"


def _hours_label(hours) -> str:
    return ", ".join(_hour_label(h) for h in sorted(hours))


def format_report_text(report: RunReport, cfg: CycleConfig | None = None) -> str:
    """Plain-text body of the daily report email."""
    cfg = cfg or CycleConfig()
    day = (report.finished_at or datetime.now(timezone.utc)).strftime("%A, %B %d, %Y")
    platforms = ", ".join(cfg.target_platforms)

    lines = [
        f"Daily Viral Studio Report - {day}",
        "",
        "Production summary:",
        RULE,
        f"  Evaluated: {report.trends_evaluated} viral videos",
        f"  Short-form pool: {report.short_form_selected}",
        f"  Long-form pool: {report.long_form_selected}",
        f"  Videos created: {report.videos_created} total",
        f"    -> {report.short_form_created} short-form ads",
        f"    -> {report.long_form_created} long-form value videos",
        f"  Skipped (duplicates): {report.duplicates_skipped}",
        f"  Organizations: {report.organizations_processed}",
    ]
    if report.pairings_skipped or report.pairings_failed:
        lines.append(
            f"  Pairings skipped: {report.pairings_skipped}, failed: {report.pairings_failed}"
        )
    lines.append("")

    created = [v for v in report.selected if v.jobs_created]
    short = [v for v in created if v.content_type == ContentType.short_form]
    long = [v for v in created if v.content_type == ContentType.long_form]

    if report.short_form_created and short:
        lines += [f"Short-form ads ({len(short)}):", RULE]
        for video in short:
            ad_type = video.ad_type.value if video.ad_type else "commercial"
            lines += [
                f"  {video.title}",
                f"     Type: {ad_type} | Score: {video.score:.1f}",
                f"     Scheduled: {_hours_label(cfg.short_form_post_hours)}",
                f"     Platforms: {platforms}",
                "",
            ]

    if report.long_form_created and long:
        lines += [f"Long-form videos ({len(long)}):", RULE]
        for video in long:
            ad_type = video.ad_type.value if video.ad_type else "educational"
            minutes, seconds = divmod(video.duration_seconds or 0, 60)
            lines += [
                f"  {video.title}",
                f"     Type: {ad_type} | Score: {video.score:.1f}",
                f"     Duration: {minutes}m {seconds}s",
                f"     Scheduled: {_hours_label(cfg.long_form_post_hours)}",
                "",
            ]

    if report.duplicate_urls:
        lines += [f"Skipped (already processed): {len(report.duplicate_urls)}", RULE]
        for url in report.duplicate_urls[:MAX_LISTED_DUPLICATES]:
            lines.append(f"  * {url[:60]}")
        extra = len(report.duplicate_urls) - MAX_LISTED_DUPLICATES
        if extra > 0:
            lines.append(f"  ... and {extra} more")
        lines.append("")

    if report.skipped:
        lines += ["Pairings not created:", RULE]
        for item in report.skipped[:10]:
            lines.append(f"  org {item.org_id}: {item.status} ({item.reason}) {item.source_url[:60]}")
        lines.append("")

    lines += [RULE, "Credits are charged per created job."]
    return "\n".join(lines) + "\n"


class ReportNotifier(ABC):
    @abstractmethod
    async def send_report(self, report: RunReport) -> bool:
        """Deliver the report; True when it was accepted."""


class NullNotifier(ReportNotifier):
    """Used when no mail credentials are configured."""

    async def send_report(self, report: RunReport) -> bool:
        logger.debug("[report] Notifier disabled, report not sent")
        return False


class ResendReportMailer(ReportNotifier):
    """Send the report email through Resend."""

    def __init__(
        self,
        api_key: str | None,
        sender: str,
        recipient: str | None,
        *,
        cfg: CycleConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10,
    ):
        self.api_key = api_key
        self.sender = sender
        self.recipient = recipient
        self.cfg = cfg or CycleConfig()
        self._transport = transport
        self.timeout = timeout
        self.enabled = bool(api_key and recipient)

        if not self.enabled:
            logger.warning("Report mailer disabled: missing api key or recipient")

    def build_payload(self, report: RunReport) -> dict:
        day = (report.finished_at or datetime.now(timezone.utc)).strftime("%A, %B %d, %Y")
        return {
            "from": self.sender,
            "to": [self.recipient],
            "subject": f"Daily Viral Studio Report - {day}",
            "text": format_report_text(report, self.cfg),
        }

    async def send_report(self, report: RunReport) -> bool:
        if not self.enabled:
            logger.debug("Report mailer disabled, skipping report")
            return False

        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(RESEND_API_URL, json=self.build_payload(report), headers=headers)
                if response.is_success:
                    logger.info(f"[report] Daily report sent to {self.recipient}")
                    return True
                logger.error(f"[report] Resend API error: {response.status_code} - {response.text}")
                return False
        except httpx.HTTPError as e:
            logger.error(f"[report] Failed to send daily report: {e}")
            return False


def build_notifier(settings: Settings) -> ReportNotifier:
    if settings.resend_api_key and settings.report_recipient:
        return ResendReportMailer(
            settings.resend_api_key,
            settings.report_sender,
            settings.report_recipient,
            cfg=settings.cycle_config(),
        )
    return NullNotifier()
