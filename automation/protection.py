"""
Coupon protection: re-check registered codes on a fixed interval and report per watcher.

Watchers (chat or user ids) register codes in a ProtectionRegistry. Each cycle
checks every unique code once through the shared session, keeping the browser
open between cycles, and fans the results back out to the watchers that own them.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from automation.session import BrowserSession
from automation.vouchers import VoucherResult, check_coupons
from shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_INTERVAL_SECONDS = 180

NotifyCallback = Callable[[str, list[VoucherResult]], Union[None, Awaitable[None]]]


class ProtectionRegistry:
    """Watcher id -> insertion-ordered set of protected codes."""

    def __init__(self) -> None:
        self._codes: dict[str, dict[str, None]] = {}

    def add(self, watcher: Any, codes: Iterable[str]) -> int:
        """Register codes for a watcher; returns the watcher's total."""
        watcher_codes = self._codes.setdefault(str(watcher), {})
        for code in codes:
            code = code.strip()
            if code:
                watcher_codes[code] = None
        if not watcher_codes:
            del self._codes[str(watcher)]
            return 0
        return len(watcher_codes)

    def release(self, watcher: Any, code: str) -> bool:
        watcher_codes = self._codes.get(str(watcher))
        if not watcher_codes or code not in watcher_codes:
            return False
        del watcher_codes[code]
        if not watcher_codes:
            del self._codes[str(watcher)]
        return True

    def clear(self, watcher: Any) -> bool:
        return self._codes.pop(str(watcher), None) is not None

    def clear_all(self) -> None:
        self._codes.clear()

    def codes_for(self, watcher: Any) -> list[str]:
        return list(self._codes.get(str(watcher), {}))

    def watchers(self) -> list[str]:
        return list(self._codes)

    def all_codes(self) -> list[str]:
        """Unique codes across all watchers, first-seen order."""
        seen: dict[str, None] = {}
        for watcher_codes in self._codes.values():
            for code in watcher_codes:
                seen.setdefault(code, None)
        return list(seen)

    def __len__(self) -> int:
        return len(self._codes)

    def __bool__(self) -> bool:
        return bool(self._codes)


async def run_protection_cycle(
    session: BrowserSession,
    registry: ProtectionRegistry,
    notify: Optional[NotifyCallback] = None,
) -> dict[str, list[VoucherResult]]:
    """
    Check every protected code once and return results grouped by watcher.

    Errors in the batch are logged and yield {}; a failing notify call is
    logged and the remaining watchers are still notified.
    """
    codes = registry.all_codes()
    if not codes:
        return {}

    logger.info("protection.cycle_start", code_count=len(codes), watcher_count=len(registry))
    try:
        results = await check_coupons(session, codes, close_browser=False, detailed=True)
    except Exception as e:
        logger.error("protection.cycle_failed", error=str(e), error_type=type(e).__name__)
        return {}

    by_code = {result.code: result for result in results}
    per_watcher: dict[str, list[VoucherResult]] = {}
    for watcher in registry.watchers():
        watcher_results = [by_code[c] for c in registry.codes_for(watcher) if c in by_code]
        if not watcher_results:
            continue
        per_watcher[watcher] = watcher_results
        if notify is None:
            continue
        try:
            outcome = notify(watcher, watcher_results)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.error(
                "protection.notify_failed",
                watcher=watcher,
                error=str(e),
                error_type=type(e).__name__,
            )

    logger.info("protection.cycle_complete", watcher_count=len(per_watcher))
    return per_watcher


class ProtectionScheduler:
    """
    Runs protection cycles on a fixed interval until the registry empties or stop() is called.

    The first cycle runs as soon as the scheduler starts.
    """

    def __init__(
        self,
        session: BrowserSession,
        registry: ProtectionRegistry,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        notify: Optional[NotifyCallback] = None,
    ) -> None:
        self.session = session
        self.registry = registry
        self.interval_seconds = interval_seconds
        self.notify = notify
        self.cycles_run = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Start the loop in a background task; returns the existing task if already running."""
        if self.running:
            return self._task  # type: ignore[return-value]
        logger.info("protection.scheduler_start", interval_seconds=self.interval_seconds)
        self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def run(self, max_cycles: Optional[int] = None) -> None:
        """Run cycles in the current task; stops early when the registry is empty."""
        while self.registry:
            await run_protection_cycle(self.session, self.registry, self.notify)
            self.cycles_run += 1
            if max_cycles is not None and self.cycles_run >= max_cycles:
                break
            await asyncio.sleep(self.interval_seconds)
            if not self.registry:
                break
        logger.info("protection.scheduler_idle", cycles_run=self.cycles_run)

    async def stop(self) -> None:
        if self._task is None:
            return
        task = self._task
        self._task = None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("protection.scheduler_stopped", cycles_run=self.cycles_run)
