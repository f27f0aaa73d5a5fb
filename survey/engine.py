"""
Multi-run speed test orchestration.

:class:`RunAggregator` drives the sampler through ``download -> upload``
for each run and reduces the per-run rates with a trimmed mean.
:class:`SpeedTestEngine` owns the long-lived HTTP session and a lock so
only one speed test runs at a time: concurrent tests would share the same
link and measure each other.

Usage::

    async with SpeedTestEngine() as engine:
        result = await engine.run_speed_test(runs=3, on_progress=print)
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional

import aiohttp

from .constants import (
    COMMON_HEADERS,
    DOWNLOAD_URL,
    PHASE_DOWNLOAD,
    PHASE_DURATION,
    PHASE_UPLOAD,
    REQUEST_TIMEOUT,
    UPLOAD_URL,
)
from .models import SpeedTestProgress, SpeedTestResult
from .sampler import ThroughputSampler
from .stats import clamp_runs, trimmed_mean

logger = logging.getLogger(__name__)

ProgressListener = Callable[[SpeedTestProgress], None]
RunListener = Callable[[SpeedTestResult], None]


class SpeedTestError(RuntimeError):
    """The whole speed test failed; the message is meant for the user."""


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------

class RunAggregator:
    """
    Sequential ``download -> upload`` runs reduced to one summary result.

    Phases never overlap.  Each phase is announced with a zero-progress
    event, then the sampler streams its own progress, then a per-run result
    is pushed once both directions finished.
    """

    def __init__(
        self,
        sampler: ThroughputSampler,
        on_progress: Optional[ProgressListener] = None,
        on_run_complete: Optional[RunListener] = None,
    ) -> None:
        self.sampler = sampler
        self.on_progress = on_progress
        self.on_run_complete = on_run_complete
        self.download_rates: List[float] = []
        self.upload_rates: List[float] = []

    async def _phase(self, phase: str, run: int) -> float:
        self._emit(self.on_progress, SpeedTestProgress(phase=phase, run=run))
        self.sampler.on_progress = self.on_progress
        sample = await self.sampler.sample(phase, run)
        if sample.cancelled:
            raise SpeedTestError("speed test cancelled")
        return sample.speed_mbps

    async def run(self, runs: Optional[int] = None) -> SpeedTestResult:
        total_runs = clamp_runs(runs)
        self.download_rates = []
        self.upload_rates = []

        for run in range(total_runs):
            logger.info("run %d/%d started", run + 1, total_runs)
            download = await self._phase(PHASE_DOWNLOAD, run)
            self.download_rates.append(download)

            upload = await self._phase(PHASE_UPLOAD, run)
            self.upload_rates.append(upload)

            self._emit(self.on_run_complete, SpeedTestResult(
                download_mbps=download,
                upload_mbps=upload,
                run=run,
                total_runs=total_runs,
            ))

        summary = SpeedTestResult(
            download_mbps=trimmed_mean(self.download_rates),
            upload_mbps=trimmed_mean(self.upload_rates),
            run=total_runs,
            total_runs=total_runs,
        )
        logger.info(
            "speed test finished: %.2f down / %.2f up Mbps over %d run(s)",
            summary.download_mbps, summary.upload_mbps, total_runs,
        )
        return summary

    @staticmethod
    def _emit(listener, event) -> None:  # noqa: ANN001
        if listener is None:
            return
        try:
            listener(event)
        except Exception:  # noqa: BLE001 -- fire-and-forget
            logger.exception("speed test listener failed")


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class SpeedTestEngine:
    """
    Owner of the shared HTTP session.

    ``run_speed_test`` holds the engine lock for its full duration, so
    overlapping calls queue up instead of competing for bandwidth.  Keep one
    engine per process.
    """

    def __init__(
        self,
        duration_seconds: float = PHASE_DURATION,
        download_url: str = DOWNLOAD_URL,
        upload_url: str = UPLOAD_URL,
        request_timeout: float = REQUEST_TIMEOUT,
        session_factory: Optional[Callable[[], aiohttp.ClientSession]] = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.duration_seconds = duration_seconds
        self.download_url = download_url
        self.upload_url = upload_url
        self.request_timeout = request_timeout
        self.clock = clock
        self._session_factory = session_factory or self._default_session
        self._session: Optional[aiohttp.ClientSession] = None
        self._lock = asyncio.Lock()
        self._cancel = asyncio.Event()

    # -- Context manager ----------------------------------------------------

    async def __aenter__(self) -> SpeedTestEngine:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.close()

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    # -- Transport ----------------------------------------------------------

    def _default_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            headers=COMMON_HEADERS,
            timeout=aiohttp.ClientTimeout(total=self.request_timeout),
        )

    def _acquire_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            try:
                self._session = self._session_factory()
            except (aiohttp.ClientError, OSError, RuntimeError, ValueError) as exc:
                logger.error("transport unavailable: %s", exc)
                raise SpeedTestError(f"transport unavailable: {exc}") from exc
        return self._session

    # -- Public API ---------------------------------------------------------

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def cancel(self) -> None:
        """Stop the running test at its next request boundary."""
        self._cancel.set()

    async def run_speed_test(
        self,
        runs: Optional[int] = None,
        on_progress: Optional[ProgressListener] = None,
        on_run_complete: Optional[RunListener] = None,
    ) -> SpeedTestResult:
        """
        Run ``runs`` (clamped to 1..5) download/upload cycles.

        Returns the summary result (``run == total_runs``).  Raises
        :class:`SpeedTestError` when no transport can be obtained or the test
        is cancelled; events already delivered are the only partial record.
        """
        async with self._lock:
            self._cancel.clear()
            session = self._acquire_session()
            sampler = ThroughputSampler(
                session,
                duration_seconds=self.duration_seconds,
                download_url=self.download_url,
                upload_url=self.upload_url,
                clock=self.clock,
                cancel_event=self._cancel,
            )
            aggregator = RunAggregator(sampler, on_progress, on_run_complete)
            return await aggregator.run(runs)


async def run_speed_test(
    runs: Optional[int] = None,
    on_progress: Optional[ProgressListener] = None,
    on_run_complete: Optional[RunListener] = None,
    **engine_options,
) -> SpeedTestResult:
    """One-shot helper: build an engine, run a test, close the session."""
    async with SpeedTestEngine(**engine_options) as engine:
        return await engine.run_speed_test(runs, on_progress, on_run_complete)
