"""Cache and session warm-up for a prioritized list of channels."""

from __future__ import annotations

import asyncio
from typing import Iterable

import structlog

from channelgate.application.use_cases.session_coordinator import SessionCoordinator
from channelgate.application.use_cases.stream_resolution import (
    StreamResolutionUseCase,
)
from channelgate.domain.entities.stream import PreloadReport
from channelgate.infrastructure.common.rate_limiter import SpacingRateLimiter

log = structlog.get_logger(__name__)


class PreloadOrchestrator:
    """Best-effort warm-up of URL cache and upstream sessions.

    Phase 1 resolves every channel concurrently.  Phase 2 initializes the
    sessions one after another, in list order, paced by *limiter*: session
    init is the expensive, rate-limited upstream call.

    Per-channel errors are logged and reported, never raised.
    """

    def __init__(
        self,
        *,
        resolver: StreamResolutionUseCase,
        sessions: SessionCoordinator,
        limiter: SpacingRateLimiter | None = None,
    ) -> None:
        self._resolver = resolver
        self._sessions = sessions
        self._limiter = limiter or SpacingRateLimiter(0.5)

    async def preload(self, channel_ids: Iterable[str]) -> PreloadReport:
        ids = tuple(dict.fromkeys(channel_ids))
        if not ids:
            return PreloadReport()

        log.info("preload_started", channels=len(ids))

        # Phase 1: concurrent URL resolution
        outcomes = await asyncio.gather(
            *(self._resolver.resolve_stream_url(cid) for cid in ids),
            return_exceptions=True,
        )
        resolved: list[str] = []
        resolve_failed: list[str] = []
        for cid, outcome in zip(ids, outcomes):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                log.warning(
                    "preload_resolve_failed", channel_id=cid, error=str(outcome)
                )
                resolve_failed.append(cid)
            else:
                resolved.append(cid)

        # Phase 2: sequential, paced session warm-up
        succeeded: list[str] = []
        failed: list[str] = []
        for cid in ids:
            async with self._limiter:
                try:
                    await self._sessions.initialize_session(cid)
                except Exception as e:
                    log.warning(
                        "preload_session_failed", channel_id=cid, error=str(e)
                    )
                    failed.append(cid)
                    continue
            succeeded.append(cid)

        report = PreloadReport(
            requested=ids,
            resolved=tuple(resolved),
            succeeded=tuple(succeeded),
            failed=tuple(failed),
            resolve_failed=tuple(resolve_failed),
        )
        log.info(
            "preload_completed",
            succeeded=report.success_count,
            total=report.total,
            failed=list(report.failed),
        )
        return report
