"""Unit tests for GridStats merge and the per-account aggregator."""

import itertools
from functools import reduce

from src.gg_common.enums import Tier
from src.gg_run.domain.models import GridStats, WorkUnit
from src.gg_run.domain.stats import AccountStatsAccumulator, StatsAggregator, merge_stats

A = GridStats(9, 1, top3=2, top10=5, top20=7, not_found=2, groups_checked=1)
B = GridStats(25, 3, top3=10, top10=20, top20=22, not_found=3, groups_checked=1)
C = GridStats(5, 1, top3=0, top10=1, top20=1, not_found=4, groups_checked=1)


class TestMerge:
    def test_field_wise_sum(self) -> None:
        merged = merge_stats(A, B)
        assert merged.points_checked == 34
        assert merged.keywords_checked == 4
        assert merged.top3 == 12
        assert merged.not_found == 5
        assert merged.groups_checked == 2

    def test_identity(self) -> None:
        assert merge_stats(A, GridStats()) == A

    def test_commutative(self) -> None:
        assert merge_stats(A, B) == merge_stats(B, A)

    def test_associative(self) -> None:
        assert merge_stats(merge_stats(A, B), C) == merge_stats(A, merge_stats(B, C))

    def test_order_independent(self) -> None:
        orders = itertools.permutations([A, B, C])
        results = {reduce(merge_stats, order, GridStats()) for order in orders}
        assert len(results) == 1

    def test_payload_keys(self) -> None:
        assert set(A.to_payload()) == {
            "points_checked",
            "keywords_checked",
            "top3",
            "top10",
            "top20",
            "not_found",
            "groups_checked",
        }


class TestAccumulator:
    def test_keyed_by_account(self) -> None:
        acc = AccountStatsAccumulator()
        acc.add("acct-1", A)
        acc.add("acct-2", B)
        acc.add("acct-1", C)

        assert len(acc) == 2
        assert acc.get("acct-1") == merge_stats(A, C)
        assert acc.get("acct-2") == B
        assert "acct-3" not in acc


class TestStatsAggregator:
    async def test_failure_keeps_existing_totals(
        self, stats_collector, make_group, now
    ) -> None:
        aggregator = StatsAggregator(stats_collector)
        unit = WorkUnit(Tier.GROUP, "acct-1", make_group(points=5), ["kw-1"])

        assert await aggregator.record_success(unit, now) is True
        first = aggregator.accumulator.get("acct-1")

        stats_collector.compute.side_effect = RuntimeError("gg_checks unavailable")
        assert await aggregator.record_success(unit, now) is False

        assert aggregator.accumulator.get("acct-1") == first
        assert first.points_checked == 5

    async def test_passes_unit_scope_to_collector(
        self, stats_collector, make_group, now
    ) -> None:
        group = make_group()
        unit = WorkUnit(Tier.CUSTOM_UNIT, "acct-1", group, ["kw-7"], unit_id="kw-7")

        await StatsAggregator(stats_collector).record_success(unit, now)

        stats_collector.compute.assert_awaited_once_with("acct-1", group, ["kw-7"], now)

    async def test_uses_the_accumulator_it_was_given(
        self, stats_collector, make_group, now
    ) -> None:
        acc = AccountStatsAccumulator()
        aggregator = StatsAggregator(stats_collector, acc)

        await aggregator.record_success(WorkUnit(Tier.GROUP, "acct-1", make_group(), ["kw-1"]), now)

        assert aggregator.accumulator is acc
        assert "acct-1" in acc
