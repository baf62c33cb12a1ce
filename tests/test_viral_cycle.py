"""End-to-end tests for the daily viral cycle over an in-memory store."""

import asyncio

import pytest

from viral_studio.services.report_mailer import ReportNotifier
from viral_studio.services.viral_cycle import CycleFetchError, DailyViralCycle


class RecordingNotifier(ReportNotifier):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.reports = []

    async def send_report(self, report):
        self.reports.append(report)
        if self.fail:
            raise RuntimeError("smtp down")
        return True


def _run(store, cfg, now, notifier=None):
    return asyncio.run(DailyViralCycle(store, cfg, notifier).run(now=now))


class TestEarlyExits:
    def test_no_candidates(self, store_factory, cfg, now):
        report = _run(store_factory(), cfg, now)
        assert report.videos_created == 0
        assert report.trends_evaluated == 0
        assert report.message == "No trending videos found"

    def test_no_qualifying_candidates(self, store_factory, make_candidate, cfg, now):
        store = store_factory(candidates=[make_candidate("mid", duration=120)])
        report = _run(store, cfg, now)
        assert report.trends_evaluated == 1
        assert report.total_selected == 0
        assert report.processed == 0
        assert report.message == "No qualifying candidates found"

    def test_no_autopilot_organizations(self, store_factory, org, short_candidate, cfg, now):
        store = store_factory(
            candidates=[short_candidate("u1")],
            organizations=[org(1, autopilot=False)],
            balances={1: 1000},
        )
        report = _run(store, cfg, now)
        assert report.new_trends == 1
        assert report.organizations_processed == 0
        assert report.videos_created == 0
        assert store.jobs == []

    def test_all_duplicates(self, store_factory, org, short_candidate, cfg, now):
        store = store_factory(candidates=[short_candidate("u1")], organizations=[org(1)])
        store.processed.add((99, "u1"))
        report = _run(store, cfg, now)
        assert report.duplicates_skipped == 1
        assert report.duplicate_urls == ["u1"]
        assert report.new_trends == 0
        assert report.videos_created == 0


class TestFetchFailures:
    def test_candidate_fetch_failure_is_fatal(self, store_factory, cfg, now):
        store = store_factory()
        store.fail_candidates = True
        with pytest.raises(CycleFetchError):
            _run(store, cfg, now)

    def test_organization_fetch_failure_is_fatal(self, store_factory, short_candidate, cfg, now):
        store = store_factory(candidates=[short_candidate("u1")])
        store.fail_organizations = True
        with pytest.raises(CycleFetchError):
            _run(store, cfg, now)
        assert store.charges == []


class TestScenarios:
    def test_ten_candidates_select_four_plus_two(self, store_factory, org, short_candidate, long_candidate, make_candidate, cfg, now):
        shorts = [
            short_candidate(f"s{i}", duration=30 + i * 5, scores={"virality": 90 - i * 10})
            for i in range(6)
        ]
        longs = [
            long_candidate(f"l{i}", duration=400 + i * 200, scores={"informational_value": 90 - i * 10})
            for i in range(3)
        ]
        ineligible = make_candidate("mid", duration=120, commercial_fit=90, clone_feasibility=90)
        store = store_factory(
            candidates=shorts + longs + [ineligible],
            organizations=[org(1)],
            balances={1: 10_000},
        )

        report = _run(store, cfg, now)

        assert report.trends_evaluated == 10
        assert report.short_form_selected == 4
        assert report.long_form_selected == 2
        assert report.total_selected == 6
        assert report.videos_created == 6
        assert report.short_form_created == 4
        assert report.long_form_created == 2
        created = {job.candidate.source_url for job in store.jobs}
        assert created == {"s0", "s1", "s2", "s3", "l0", "l1"}

    def test_funded_and_unfunded_organization(self, store_factory, org, short_candidate, cfg, now):
        store = store_factory(
            candidates=[short_candidate("u1")],
            organizations=[org(1), org(2)],
            balances={1: 1000, 2: 0},
        )

        report = _run(store, cfg, now)

        assert report.videos_created == 1
        assert report.processed == 1
        assert report.pairings_skipped == 1
        assert report.organizations_processed == 2
        assert len(report.skipped) == 1
        assert report.skipped[0].org_id == 2
        assert report.skipped[0].reason == "insufficient_credits"
        assert [job.org_id for job in store.jobs] == [1]
        assert store.balances == {1: 840, 2: 0}

    def test_second_run_skips_processed_source(self, store_factory, org, short_candidate, cfg, now):
        store = store_factory(
            candidates=[short_candidate("u1")],
            organizations=[org(1)],
            balances={1: 1000},
        )

        first = _run(store, cfg, now)
        second = _run(store, cfg, now)

        assert first.videos_created == 1
        assert second.duplicates_skipped >= 1
        assert second.videos_created == 0
        assert len(store.jobs) == 1
        assert store.balances[1] == 840

    def test_duplicate_input_urls_count_once(self, store_factory, org, short_candidate, cfg, now):
        store = store_factory(
            candidates=[short_candidate("u1"), short_candidate("u1")],
            organizations=[org(1)],
            balances={1: 1000},
        )
        report = _run(store, cfg, now)
        assert report.trends_evaluated == 1
        assert report.videos_created == 1

    def test_failed_pair_is_counted(self, store_factory, org, short_candidate, cfg, now):
        store = store_factory(
            candidates=[short_candidate("u1"), short_candidate("u2")],
            organizations=[org(1)],
            balances={1: 1000},
        )
        store.fail_create_for = {"u1"}
        report = _run(store, cfg, now)
        assert report.videos_created == 1
        assert report.pairings_failed == 1
        assert report.skipped[0].status == "failed"
        assert {v.source_url: v.jobs_created for v in report.selected} == {"u1": 0, "u2": 1}


class TestNotification:
    def test_report_is_sent(self, store_factory, org, short_candidate, cfg, now):
        notifier = RecordingNotifier()
        store = store_factory(candidates=[short_candidate("u1")], organizations=[org(1)], balances={1: 1000})
        report = _run(store, cfg, now, notifier)
        assert notifier.reports == [report]
        assert report.finished_at is not None

    def test_notification_failure_does_not_change_report(self, store_factory, org, short_candidate, cfg, now):
        ok_store = store_factory(candidates=[short_candidate("u1")], organizations=[org(1)], balances={1: 1000})
        bad_store = store_factory(candidates=[short_candidate("u1")], organizations=[org(1)], balances={1: 1000})

        ok = _run(ok_store, cfg, now, RecordingNotifier())
        bad = _run(bad_store, cfg, now, RecordingNotifier(fail=True))

        assert bad.model_dump(exclude={"started_at", "finished_at"}) == ok.model_dump(
            exclude={"started_at", "finished_at"}
        )
