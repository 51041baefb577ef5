"""In-memory guard against duplicate deliveries of the same event to the same subscription.

Entries live only in process memory: a restart forgets them and a retried
request may then be delivered again. Admission and the periodic sweep both run
on the event loop without awaiting in between, so no lock is needed.
"""

from __future__ import annotations

import asyncio
import logging
import time

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 300.0
DEFAULT_SWEEP_INTERVAL_SECONDS = 30.0


class DedupCache:
  """Time-windowed idempotency guard keyed by (subscription id, notification id)."""

  def __init__(self, *, window_seconds: float = DEFAULT_WINDOW_SECONDS, sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS) -> None:
    self._window_seconds = window_seconds
    self._sweep_interval_seconds = sweep_interval_seconds
    self._entries: dict[tuple[str, str], float] = {}
    self._sweep_task: asyncio.Task[None] | None = None

  @property
  def window_seconds(self) -> float:
    return self._window_seconds

  def __len__(self) -> int:
    return len(self._entries)

  def admit(self, subscription_id: str, notification_id: str, now: float | None = None) -> bool:
    """Return True the first time a pair is seen within the window, False for repeats."""
    current = time.monotonic() if now is None else now
    entry_key = (subscription_id, notification_id)
    admitted_at = self._entries.get(entry_key)

    # Entries past the window are expired even if the sweep has not reached them yet.
    if admitted_at is not None and current - admitted_at <= self._window_seconds:
      return False

    self._entries[entry_key] = current
    return True

  def sweep(self, now: float | None = None) -> int:
    """Drop entries older than the window and return how many were removed."""
    current = time.monotonic() if now is None else now
    expired = [entry_key for entry_key, admitted_at in self._entries.items() if current - admitted_at > self._window_seconds]
    for entry_key in expired:
      del self._entries[entry_key]

    if expired:
      logger.debug("Dedup sweep removed=%d remaining=%d", len(expired), len(self._entries))

    return len(expired)

  def clear(self) -> None:
    self._entries.clear()

  async def _sweep_loop(self) -> None:
    while True:
      await asyncio.sleep(self._sweep_interval_seconds)
      self.sweep()

  def start(self) -> None:
    """Schedule the periodic sweep on the running loop."""
    if self._sweep_task is not None and not self._sweep_task.done():
      return

    loop = asyncio.get_running_loop()
    self._sweep_task = loop.create_task(self._sweep_loop())
    self._sweep_task.add_done_callback(self._log_task_error)
    logger.info("Dedup sweeper started window_seconds=%s interval_seconds=%s", self._window_seconds, self._sweep_interval_seconds)

  async def stop(self) -> None:
    """Cancel the periodic sweep and wait for it to finish."""
    task = self._sweep_task
    self._sweep_task = None
    if task is None:
      return

    task.cancel()
    try:
      await task
    except asyncio.CancelledError:
      pass
    logger.info("Dedup sweeper stopped.")

  @staticmethod
  def _log_task_error(task: asyncio.Task[None]) -> None:
    """Log sweeper crashes so a dead sweeper does not go unnoticed."""
    if task.cancelled():
      return

    exc = task.exception()
    if exc is not None:
      logger.error("Dedup sweeper failed: %s", exc, exc_info=exc)
