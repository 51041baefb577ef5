from __future__ import annotations

import asyncio

import pytest

from pushrelay.notifications.dedup import DedupCache


def test_first_admission_wins_and_repeat_is_rejected():
  cache = DedupCache(window_seconds=300)

  assert cache.admit("sub-1", "evt-1", now=100.0) is True
  assert cache.admit("sub-1", "evt-1", now=399.0) is False


def test_pairs_are_independent():
  cache = DedupCache(window_seconds=300)

  assert cache.admit("sub-1", "evt-1", now=0.0)
  assert cache.admit("sub-2", "evt-1", now=0.0)
  assert cache.admit("sub-1", "evt-2", now=0.0)
  assert len(cache) == 3


def test_expired_entry_is_readmitted_before_sweep():
  cache = DedupCache(window_seconds=300)
  cache.admit("sub-1", "evt-1", now=0.0)

  assert cache.admit("sub-1", "evt-1", now=301.0) is True
  # The timestamp is replaced, so the window restarts from the readmission.
  assert cache.admit("sub-1", "evt-1", now=500.0) is False


def test_sweep_removes_only_expired_entries():
  cache = DedupCache(window_seconds=300)
  cache.admit("sub-1", "old", now=0.0)
  cache.admit("sub-1", "new", now=250.0)

  assert cache.sweep(now=400.0) == 1
  assert len(cache) == 1
  assert cache.admit("sub-1", "new", now=400.0) is False
  assert cache.admit("sub-1", "old", now=400.0) is True


def test_clear_forgets_everything():
  cache = DedupCache()
  cache.admit("sub-1", "evt-1")
  cache.clear()

  assert len(cache) == 0
  assert cache.admit("sub-1", "evt-1") is True


@pytest.mark.anyio
async def test_background_sweeper_runs_and_stops():
  cache = DedupCache(window_seconds=0.01, sweep_interval_seconds=0.01)
  cache.admit("sub-1", "evt-1")

  cache.start()
  cache.start()
  await asyncio.sleep(0.1)
  await cache.stop()

  assert len(cache) == 0


@pytest.mark.anyio
async def test_stop_without_start_is_noop():
  await DedupCache().stop()
