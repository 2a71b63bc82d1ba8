"""Tests for the adaptive error backoff."""

import asyncio

import pytest
from hypothesis import given
from hypothesis import strategies as st

from invokeloop.core.backoff import Backoff
from tests.conftest import FakeClock, SleepRecorder


def make_backoff(clock: FakeClock | None = None) -> tuple[Backoff, SleepRecorder, FakeClock]:
    clock = clock or FakeClock()
    sleeps = SleepRecorder()
    return Backoff(clock=clock, sleep=sleeps), sleeps, clock


class TestEscalation:
    async def test_first_three_failures_are_free(self):
        backoff, sleeps, _ = make_backoff()
        for _ in range(3):
            await backoff.failure()

        assert sleeps.delays == []
        assert backoff.failcount == 3
        assert backoff.failwait == 0

    async def test_fourth_failure_sleeps_50ms(self):
        backoff, sleeps, _ = make_backoff()
        for _ in range(4):
            await backoff.failure()

        assert sleeps.delays == [pytest.approx(0.05)]
        assert backoff.failwait == pytest.approx(0.05)

    async def test_fifth_failure_doubles_to_100ms(self):
        backoff, sleeps, _ = make_backoff()
        for _ in range(5):
            await backoff.failure()

        assert sleeps.delays == [pytest.approx(0.05), pytest.approx(0.1)]

    async def test_delay_keeps_doubling(self):
        backoff, sleeps, _ = make_backoff()
        for _ in range(8):
            await backoff.failure()

        assert sleeps.delays == [pytest.approx(d) for d in (0.05, 0.1, 0.2, 0.4, 0.8)]

    async def test_records_last_failure_time(self):
        backoff, _, clock = make_backoff()
        assert backoff.faillast is None

        await backoff.failure()
        assert backoff.faillast == clock.now


class TestDecay:
    async def test_quiet_period_halves_wait_and_resets_count(self):
        backoff, sleeps, clock = make_backoff()
        for _ in range(4):
            await backoff.failure()
        assert backoff.failcount == 4
        assert backoff.failwait == pytest.approx(0.05)

        clock.advance(3 * 0.05 + 1.0 + 0.001)
        await backoff.failure()

        assert backoff.failwait == pytest.approx(0.025)
        assert backoff.failcount == 1
        assert len(sleeps.delays) == 1

    async def test_gap_below_threshold_does_not_decay(self):
        backoff, sleeps, clock = make_backoff()
        for _ in range(4):
            await backoff.failure()

        clock.advance(1.0)
        await backoff.failure()

        assert backoff.failcount == 5
        assert backoff.failwait == pytest.approx(0.1)
        assert sleeps.delays[-1] == pytest.approx(0.1)

    async def test_quiet_period_without_penalty_restarts_free_allowance(self):
        backoff, sleeps, clock = make_backoff()
        for _ in range(3):
            await backoff.failure()

        clock.advance(1.5)
        for _ in range(3):
            await backoff.failure()

        assert sleeps.delays == []
        assert backoff.failcount == 3


class TestBackoffProperties:
    @given(burst=st.integers(min_value=1, max_value=12))
    def test_burst_sleeps_only_after_three_failures(self, burst):
        backoff, sleeps, _ = make_backoff()

        async def fail_burst():
            for _ in range(burst):
                await backoff.failure()

        asyncio.run(fail_burst())

        assert len(sleeps.delays) == max(0, burst - 3)
        for earlier, later in zip(sleeps.delays, sleeps.delays[1:]):
            assert later == pytest.approx(earlier * 2)

    @given(gaps=st.lists(st.floats(min_value=0, max_value=30), min_size=1, max_size=20))
    def test_state_stays_non_negative(self, gaps):
        backoff, _, clock = make_backoff()

        async def fail_with_gaps():
            for gap in gaps:
                clock.advance(gap)
                await backoff.failure()
                assert backoff.failcount >= 1
                assert backoff.failwait >= 0

        asyncio.run(fail_with_gaps())
