"""
Time-boxed throughput sampler.

One phase is a tight, sequential request loop against a bandwidth-test
endpoint: GETs of a fixed-size payload for download, POSTs of a zero-filled
buffer for upload.  The loop runs until the wall-clock deadline passes and
the rate is total bytes over true elapsed time.  Individual request failures
are absorbed; the deadline bounds the number of attempts.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import aiohttp

from .constants import (
    DOWNLOAD_PAYLOAD_SIZE,
    DOWNLOAD_URL,
    PHASE_DOWNLOAD,
    PHASE_DURATION,
    PHASE_UPLOAD,
    SETTLE_SECONDS,
    UPLOAD_PAYLOAD_SIZE,
    UPLOAD_URL,
)
from .models import SpeedTestProgress
from .stats import calculate_rate_mbps

logger = logging.getLogger(__name__)

# Per-request failures that cost one attempt but never abort a phase.
TRANSIENT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class SampleResult:
    """Outcome of one download or upload phase."""

    phase: str
    bytes_total: int = 0
    duration_ms: float = 0.0
    speed_mbps: float = 0.0
    requests: int = 0
    failures: int = 0
    cancelled: bool = False

    def calculate(self) -> None:
        """Derive speed from total bytes and wall-clock duration."""
        self.speed_mbps = calculate_rate_mbps(self.bytes_total, self.duration_ms / 1000)

    def to_dict(self) -> dict:
        return {
            "phase": self.phase,
            "bytes_total": self.bytes_total,
            "duration_ms": round(self.duration_ms, 2),
            "speed_mbps": round(self.speed_mbps, 2),
            "requests": self.requests,
            "failures": self.failures,
        }


# ---------------------------------------------------------------------------
# Sampler
# ---------------------------------------------------------------------------

class ThroughputSampler:
    """
    Sequential request-loop sampler for a single phase.

    ``on_progress`` receives a :class:`SpeedTestProgress` after every request
    attempt, successful or not.  ``clock`` must be monotonic; it is
    injectable so tests can drive the deadline without sleeping.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        duration_seconds: float = PHASE_DURATION,
        download_url: str = DOWNLOAD_URL,
        upload_url: str = UPLOAD_URL,
        clock: Callable[[], float] = time.perf_counter,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        self.session = session
        self.duration_seconds = duration_seconds
        self.download_url = download_url
        self.upload_url = upload_url
        self.clock = clock
        self.cancel_event = cancel_event
        self.on_progress: Optional[Callable[[SpeedTestProgress], None]] = None
        self._upload_payload = bytes(UPLOAD_PAYLOAD_SIZE)

    # -- Requests -----------------------------------------------------------

    async def _download_once(self) -> int:
        url = f"{self.download_url}?bytes={DOWNLOAD_PAYLOAD_SIZE}"
        async with self.session.get(url) as resp:
            resp.raise_for_status()
            body = await resp.read()
        return len(body)

    async def _upload_once(self) -> int:
        async with self.session.post(self.upload_url, data=self._upload_payload) as resp:
            resp.raise_for_status()
            await resp.read()
        return len(self._upload_payload)

    # -- Loop ---------------------------------------------------------------

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    async def sample(self, phase: str, run: int = 0) -> SampleResult:
        """Run one phase until the deadline and return its overall rate."""
        if phase == PHASE_DOWNLOAD:
            request = self._download_once
        elif phase == PHASE_UPLOAD:
            request = self._upload_once
        else:
            raise ValueError(f"Unknown phase: {phase}")

        result = SampleResult(phase=phase)
        total_bytes = 0
        start = self.clock()

        while self.clock() - start < self.duration_seconds:
            if self._cancelled():
                result.cancelled = True
                break

            result.requests += 1
            try:
                total_bytes += await request()
            except TRANSIENT_ERRORS as exc:
                result.failures += 1
                logger.debug("%s request failed (run %d): %s", phase, run, exc)

            elapsed = self.clock() - start
            speed = calculate_rate_mbps(total_bytes, elapsed) if elapsed > SETTLE_SECONDS else 0.0
            self._emit(SpeedTestProgress(
                phase=phase,
                progress=min(elapsed / self.duration_seconds, 1.0),
                current_speed=speed,
                run=run,
            ))

        # a cancel during the last in-flight request still counts
        if self._cancelled():
            result.cancelled = True

        result.duration_ms = (self.clock() - start) * 1000
        result.bytes_total = total_bytes
        result.calculate()

        logger.info(
            "%s run %d: %.2f Mbps (%d bytes, %d requests, %d failed)",
            phase, run, result.speed_mbps, total_bytes, result.requests, result.failures,
        )
        return result

    def _emit(self, event: SpeedTestProgress) -> None:
        if self.on_progress is None:
            return
        try:
            self.on_progress(event)
        except Exception:  # noqa: BLE001 -- listeners must not break a phase
            logger.exception("progress listener failed")
