"""Tests for survey.engine -- run aggregation, event ordering, and the engine lock."""

import asyncio
import unittest

from fakes import FakeClock, FakeSession

from survey.engine import RunAggregator, SpeedTestEngine, SpeedTestError, run_speed_test
from survey.sampler import SampleResult


class StubSampler:
    """Returns preset rates per phase, one per call, without any I/O."""

    def __init__(self, download, upload):
        self.rates = {"download": list(download), "upload": list(upload)}
        self.on_progress = None
        self.calls = []

    async def sample(self, phase, run=0):
        self.calls.append((phase, run))
        rate = self.rates[phase].pop(0) if self.rates[phase] else 0.0
        return SampleResult(phase=phase, speed_mbps=rate)


def _engine(clock, session=None, **kwargs):
    session = session or FakeSession(clock, step=0.5)
    return SpeedTestEngine(
        duration_seconds=5.0,
        session_factory=lambda: session,
        clock=clock,
        **kwargs,
    ), session


class TestRunAggregator(unittest.IsolatedAsyncioTestCase):
    async def test_single_run_is_plain_result(self):
        agg = RunAggregator(StubSampler([40.0], [10.0]))
        result = await agg.run(1)
        self.assertEqual(result.download_mbps, 40.0)
        self.assertEqual(result.upload_mbps, 10.0)
        self.assertEqual(result.run, 1)
        self.assertEqual(result.total_runs, 1)
        self.assertTrue(result.is_summary)

    async def test_trimmed_mean_across_runs(self):
        agg = RunAggregator(StubSampler([10.0, 50.0, 20.0], [5.0, 100.0, 5.0]))
        result = await agg.run(3)
        self.assertAlmostEqual(result.download_mbps, 20.0)
        self.assertAlmostEqual(result.upload_mbps, 5.0)

    async def test_two_runs_are_averaged(self):
        agg = RunAggregator(StubSampler([2.0, 8.0], [1.0, 3.0]))
        result = await agg.run(2)
        self.assertAlmostEqual(result.download_mbps, 5.0)
        self.assertAlmostEqual(result.upload_mbps, 2.0)

    async def test_phases_alternate_download_first(self):
        sampler = StubSampler([1, 2], [3, 4])
        await RunAggregator(sampler).run(2)
        self.assertEqual(
            sampler.calls,
            [("download", 0), ("upload", 0), ("download", 1), ("upload", 1)],
        )

    async def test_run_count_clamped(self):
        for requested, expected in ((0, 1), (-3, 1), (None, 1), (10, 5), (3, 3)):
            sampler = StubSampler([], [])
            result = await RunAggregator(sampler).run(requested)
            self.assertEqual(result.total_runs, expected)
            self.assertEqual(len(sampler.calls), expected * 2)

    async def test_starting_event_per_phase(self):
        progress = []
        runs = []
        agg = RunAggregator(StubSampler([10.0], [5.0]), progress.append, runs.append)
        await agg.run(1)

        self.assertEqual([e.phase for e in progress], ["download", "upload"])
        for e in progress:
            self.assertEqual((e.progress, e.current_speed, e.run), (0.0, 0.0, 0))
        self.assertEqual(len(runs), 1)
        self.assertEqual((runs[0].download_mbps, runs[0].upload_mbps), (10.0, 5.0))
        self.assertEqual((runs[0].run, runs[0].total_runs), (0, 1))

    async def test_listener_errors_ignored(self):
        def _boom(event):
            raise ValueError("bad listener")

        agg = RunAggregator(StubSampler([10.0], [5.0]), _boom, _boom)
        with self.assertLogs("survey.engine", level="ERROR"):
            result = await agg.run(1)
        self.assertEqual(result.download_mbps, 10.0)


class TestSpeedTestEngine(unittest.IsolatedAsyncioTestCase):
    async def test_event_ordering(self):
        clock = FakeClock()
        engine, _ = _engine(clock)
        log = []
        async with engine:
            result = await engine.run_speed_test(
                runs=2,
                on_progress=lambda e: log.append(("progress", e)),
                on_run_complete=lambda r: log.append(("run", r)),
            )

        run_events = [i for i, (kind, _) in enumerate(log) if kind == "run"]
        self.assertEqual(len(run_events), 2)
        # 2 runs x 2 phases x (1 starting + 10 sampled) progress events
        self.assertEqual(len(log), 2 * 2 * 11 + 2)

        # run_complete comes after every progress event of its run
        for index in run_events:
            _, run_result = log[index]
            before = [e for kind, e in log[:index] if kind == "progress" and e.run == run_result.run]
            after = [e for kind, e in log[index:] if kind == "progress" and e.run == run_result.run]
            self.assertEqual(len(before), 22)
            self.assertEqual(after, [])
            self.assertLess(run_result.run, run_result.total_runs)

        # progress never goes backwards inside one phase
        phases = {}
        for kind, e in log:
            if kind == "progress":
                phases.setdefault((e.run, e.phase), []).append(e.progress)
        for values in phases.values():
            self.assertEqual(values, sorted(values))
            self.assertEqual(values[0], 0.0)

        self.assertEqual(result.run, 2)
        self.assertEqual(result.total_runs, 2)
        self.assertAlmostEqual(result.download_mbps, 20.0)

    async def test_session_closed_on_exit(self):
        clock = FakeClock()
        engine, session = _engine(clock)
        async with engine:
            await engine.run_speed_test(runs=1)
        self.assertTrue(session.closed)

    async def test_transport_unavailable(self):
        def _factory():
            raise OSError("no network")

        engine = SpeedTestEngine(session_factory=_factory, clock=FakeClock())
        events = []
        with self.assertLogs("survey.engine", level="ERROR"):
            with self.assertRaises(SpeedTestError) as ctx:
                await engine.run_speed_test(runs=2, on_progress=events.append)
        self.assertIn("transport unavailable", str(ctx.exception))
        self.assertIn("no network", str(ctx.exception))
        self.assertEqual(events, [])

    async def test_transient_failures_do_not_fail_test(self):
        clock = FakeClock()
        session = FakeSession(clock, step=0.5, fail_on=set(range(0, 40, 2)))
        engine, _ = _engine(clock, session=session)
        async with engine:
            result = await engine.run_speed_test(runs=1)
        self.assertGreater(result.download_mbps, 0.0)
        self.assertGreater(result.upload_mbps, 0.0)

    async def test_cancel_raises_and_keeps_partial_events(self):
        clock = FakeClock()
        engine, _ = _engine(clock)
        runs = []

        def _on_progress(event):
            if event.phase == "upload" and event.run == 1:
                engine.cancel()

        async with engine:
            with self.assertRaises(SpeedTestError) as ctx:
                await engine.run_speed_test(runs=3, on_progress=_on_progress, on_run_complete=runs.append)
        self.assertIn("cancelled", str(ctx.exception))
        self.assertEqual([r.run for r in runs], [0])

    async def test_cancel_does_not_leak_into_next_test(self):
        clock = FakeClock()
        engine, _ = _engine(clock)
        async with engine:
            engine.cancel()
            result = await engine.run_speed_test(runs=1)
        self.assertGreater(result.download_mbps, 0.0)

    async def test_one_test_at_a_time(self):
        clock = FakeClock()
        engine, _ = _engine(clock)
        log = []

        async def _tagged(tag):
            return await engine.run_speed_test(
                runs=1, on_progress=lambda e: log.append(tag),
            )

        async with engine:
            first = asyncio.create_task(_tagged("a"))
            await asyncio.sleep(0)
            self.assertTrue(engine.busy)
            second = asyncio.create_task(_tagged("b"))
            await asyncio.gather(first, second)

        self.assertFalse(engine.busy)
        split = log.index("b")
        self.assertTrue(all(tag == "a" for tag in log[:split]))
        self.assertTrue(all(tag == "b" for tag in log[split:]))


class TestRunSpeedTestHelper(unittest.IsolatedAsyncioTestCase):
    async def test_one_shot(self):
        clock = FakeClock()
        session = FakeSession(clock, step=1.0, body_size=625_000)
        result = await run_speed_test(
            runs=1,
            session_factory=lambda: session,
            clock=clock,
            duration_seconds=5.0,
        )
        self.assertAlmostEqual(result.download_mbps, 5 * 625_000 * 8 / 5.0 / 1_000_000)
        self.assertTrue(session.closed)


if __name__ == "__main__":
    unittest.main()
