"""Tests for the per-(organization, video) unit of work."""

import asyncio

from viral_studio.models import ContentType
from viral_studio.services.fan_out import PairStatus, fan_out_for_org, process_pair
from viral_studio.services.selector import select_track


def _scored(candidate, track, cfg, now):
    return select_track([candidate], track, cfg, now=now).items[0]


class TestProcessPair:
    def test_creates_job_and_charges(self, store_factory, org, short_candidate, cfg, now):
        store = store_factory(balances={1: 1000})
        item = _scored(short_candidate("u1", title="Cat wins"), ContentType.short_form, cfg, now)

        result = asyncio.run(process_pair(store, cfg, org(1), None, item, now=now))

        assert result.status == PairStatus.created
        assert result.job_id == 1
        assert store.balances[1] == 840
        assert store.charges == [
            (1, 160, "Daily viral cycle [short-form viral ad]: tiktok - Cat wins")
        ]
        job = store.jobs[0]
        assert job.content_type == ContentType.short_form
        assert [p.scheduled_time.hour for p in job.schedule] == [9, 12, 15, 18]
        assert (1, "u1") in store.processed

    def test_long_form_label(self, store_factory, org, long_candidate, cfg, now):
        store = store_factory(balances={1: 1000})
        item = _scored(long_candidate("l1", title="Habits"), ContentType.long_form, cfg, now)

        asyncio.run(process_pair(store, cfg, org(1), 7, item, now=now))

        assert store.charges[0][2] == "Daily viral cycle [long-form value video]: youtube - Habits"
        assert store.jobs[0].brand_id == 7
        assert [p.scheduled_time.hour for p in store.jobs[0].schedule] == [8, 8, 20, 20]

    def test_insufficient_credits_skips_without_charge(self, store_factory, org, short_candidate, cfg, now):
        store = store_factory(balances={1: 159})
        item = _scored(short_candidate("u1"), ContentType.short_form, cfg, now)

        result = asyncio.run(process_pair(store, cfg, org(1), None, item, now=now))

        assert result.status == PairStatus.skipped
        assert result.reason == "insufficient_credits"
        assert store.balances[1] == 159
        assert store.charges == []
        assert store.jobs == []

    def test_lost_charge_race_is_skipped(self, store_factory, org, short_candidate, cfg, now):
        store = store_factory(balances={1: 1000})

        async def reject(org_id, cost, description):
            return False

        store.charge_credits = reject
        item = _scored(short_candidate("u1"), ContentType.short_form, cfg, now)

        result = asyncio.run(process_pair(store, cfg, org(1), None, item, now=now))

        assert result.status == PairStatus.skipped
        assert result.reason == "charge_rejected"
        assert store.jobs == []

    def test_job_failure_rolls_back_charge(self, store_factory, org, short_candidate, cfg, now):
        store = store_factory(balances={1: 1000})
        store.fail_create_for = {"u1"}
        item = _scored(short_candidate("u1"), ContentType.short_form, cfg, now)

        result = asyncio.run(process_pair(store, cfg, org(1), None, item, now=now))

        assert result.status == PairStatus.failed
        assert "job insert failed" in result.reason
        assert store.balances[1] == 1000
        assert store.charges == []
        assert store.processed == set()

    def test_already_processed_is_skipped_and_rolled_back(self, store_factory, org, short_candidate, cfg, now):
        store = store_factory(balances={1: 1000})
        store.processed.add((1, "u1"))
        item = _scored(short_candidate("u1"), ContentType.short_form, cfg, now)

        result = asyncio.run(process_pair(store, cfg, org(1), None, item, now=now))

        assert result.status == PairStatus.skipped
        assert result.reason == "already_processed"
        assert store.balances[1] == 1000
        assert store.jobs == []


class TestFanOutForOrg:
    def test_partial_failure_does_not_stop_other_pairs(self, store_factory, org, short_candidate, long_candidate, cfg, now):
        store = store_factory(balances={1: 1000})
        store.brands[1] = 3
        store.fail_create_for = {"u2"}
        pool = [
            _scored(short_candidate("u1"), ContentType.short_form, cfg, now),
            _scored(short_candidate("u2"), ContentType.short_form, cfg, now),
            _scored(long_candidate("l1"), ContentType.long_form, cfg, now),
        ]

        out = asyncio.run(fan_out_for_org(store, cfg, org(1), pool, now=now))

        assert out.summary.jobs_created == 2
        assert out.summary.short_form_created == 1
        assert out.summary.long_form_created == 1
        assert out.summary.failed == 1
        assert [s.source_url for s in out.skipped] == ["u2"]
        assert all(job.brand_id == 3 for job in store.jobs)
        assert store.balances[1] == 1000 - 2 * 160

    def test_balance_runs_out_mid_pool(self, store_factory, org, short_candidate, cfg, now):
        store = store_factory(balances={1: 350})
        pool = [_scored(short_candidate(f"u{i}"), ContentType.short_form, cfg, now) for i in range(3)]

        out = asyncio.run(fan_out_for_org(store, cfg, org(1), pool, now=now))

        assert out.summary.jobs_created == 2
        assert out.summary.skipped == 1
        assert out.skipped[0].reason == "insufficient_credits"
        assert store.balances[1] == 30

    def test_brand_lookup_failure_continues_without_brand(self, store_factory, org, short_candidate, cfg, now):
        store = store_factory(balances={1: 1000})

        async def broken(org_id):
            raise ConnectionError("brands unavailable")

        store.resolve_brand_id = broken
        pool = [_scored(short_candidate("u1"), ContentType.short_form, cfg, now)]

        out = asyncio.run(fan_out_for_org(store, cfg, org(1), pool, now=now))

        assert out.summary.jobs_created == 1
        assert store.jobs[0].brand_id is None
