"""Tiled work distribution and per-frame barriers for render workers."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import ClassVar


@dataclass(frozen=True)
class RenderTile:
    """Half-open pixel rectangle [xmin, xmax) x [ymin, ymax)."""

    SIZE: ClassVar[int] = 64

    xmin: int
    ymin: int
    xmax: int
    ymax: int


@dataclass
class _Phase:
    arrived: set[int] = field(default_factory=set)
    generation: int = 0


class Synchronizer:
    """Hands out tiles to workers and keeps workers in step between sample frames."""

    POLL_INTERVAL = 0.05

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self.tiles: list[RenderTile] = []
        self._current = 0
        self._workers = 0
        self._pre = _Phase()
        self._post = _Phase()
        self._running = False

    def init(self, width: int, height: int, workers: int) -> None:
        """Split a ``width`` x ``height`` image into tiles for ``workers`` workers."""
        if workers < 1:
            raise ValueError("at least one worker is required")
        size = RenderTile.SIZE
        with self._cond:
            self.tiles = [
                RenderTile(x, y, min(width, x + size), min(height, y + size))
                for y in range(0, height, size)
                for x in range(0, width, size)
            ]
            self._current = 0
            self._workers = workers
            self._pre = _Phase()
            self._post = _Phase()
            self._running = True
            self._cond.notify_all()

    @property
    def running(self) -> bool:
        return self._running

    def abort(self) -> None:
        with self._cond:
            self._running = False
            self._cond.notify_all()

    def resume(self) -> None:
        with self._cond:
            self._running = True

    def reset_tiles(self) -> None:
        with self._cond:
            self._current = 0

    def next_tile(self) -> RenderTile | None:
        """The next unclaimed tile, or None once all have been handed out."""
        with self._cond:
            if self._current < len(self.tiles):
                tile = self.tiles[self._current]
                self._current += 1
                return tile
            return None

    def tile_count(self) -> int:
        return len(self.tiles)

    def _sync(self, phase: _Phase, worker_id: int) -> bool:
        if not 0 <= worker_id < self._workers:
            raise IndexError(f"worker {worker_id} out of range")
        with self._cond:
            generation = phase.generation
            phase.arrived.add(worker_id)
            if len(phase.arrived) == self._workers:
                phase.arrived.clear()
                phase.generation += 1
                self._cond.notify_all()
                return True
            while phase.generation == generation:
                if not self._running:
                    phase.arrived.discard(worker_id)
                    return False
                self._cond.wait(self.POLL_INTERVAL)
            return True

    def pre_render_sync(self, worker_id: int) -> bool:
        """Wait until every worker is ready to start a frame; False if aborted meanwhile."""
        return self._sync(self._pre, worker_id)

    def post_render_sync(self, worker_id: int) -> bool:
        """Wait until every worker has finished a frame; False if aborted meanwhile."""
        return self._sync(self._post, worker_id)