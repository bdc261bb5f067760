"""
Scheduler
=========

Virtual-clock task scheduler for the session's deferred actions and
fixed-rate intervals.

Tasks are tagged with the session generation they were scheduled under.
Bumping the generation and calling cancel_stale() discards every task that
belonged to an abandoned level.
"""

from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass, field
from typing import Callable, List, Optional


@dataclass(order=True)
class ScheduledTask:
    """A pending one-shot or repeating task."""
    due: int
    seq: int
    callback: Callable[[], None] = field(compare=False)
    interval: Optional[int] = field(default=None, compare=False)
    generation: Optional[int] = field(default=None, compare=False)
    cancelled: bool = field(default=False, compare=False)

    @property
    def repeating(self) -> bool:
        return self.interval is not None


class TaskScheduler:
    """
    Runs callbacks when simulated time reaches their due time.

    Time only moves through advance(), so nothing here ever blocks.
    Tasks due at the same time fire in the order they were scheduled.
    """

    def __init__(self):
        self._now: int = 0
        self._queue: List[ScheduledTask] = []
        self._counter = itertools.count()

    @property
    def now(self) -> int:
        """Current simulated time in milliseconds."""
        return self._now

    @property
    def pending(self) -> int:
        """Number of live (not cancelled) tasks."""
        return sum(1 for task in self._queue if not task.cancelled)

    def call_later(
        self,
        delay: int,
        callback: Callable[[], None],
        generation: Optional[int] = None
    ) -> ScheduledTask:
        """Schedule a one-shot callback `delay` ms from now."""
        task = ScheduledTask(
            due=self._now + max(0, delay),
            seq=next(self._counter),
            callback=callback,
            generation=generation
        )
        heapq.heappush(self._queue, task)
        return task

    def call_every(
        self,
        interval: int,
        callback: Callable[[], None],
        generation: Optional[int] = None
    ) -> ScheduledTask:
        """Schedule a repeating callback, first firing `interval` ms from now."""
        interval = max(1, interval)
        task = ScheduledTask(
            due=self._now + interval,
            seq=next(self._counter),
            callback=callback,
            interval=interval,
            generation=generation
        )
        heapq.heappush(self._queue, task)
        return task

    def cancel(self, task: Optional[ScheduledTask]) -> None:
        """Cancel a task. Cancelling twice or passing None is harmless."""
        if task is not None:
            task.cancelled = True

    def cancel_stale(self, current_generation: int) -> int:
        """
        Cancel every task tagged with a generation other than the current one.

        Untagged tasks are kept.

        Returns:
            Number of tasks cancelled.
        """
        cancelled = 0
        for task in self._queue:
            if task.cancelled or task.generation is None:
                continue
            if task.generation != current_generation:
                task.cancelled = True
                cancelled += 1
        self._compact()
        return cancelled

    def cancel_all(self) -> None:
        for task in self._queue:
            task.cancelled = True
        self._queue.clear()

    def advance(self, ms: int) -> int:
        """
        Move simulated time forward, firing due tasks in time order.

        Callbacks may schedule or cancel other tasks; a task scheduled for
        a time inside the window still fires during this call.

        Returns:
            Number of callbacks run.
        """
        target = self._now + max(0, ms)
        fired = 0
        while self._queue and self._queue[0].due <= target:
            task = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            self._now = task.due
            if task.repeating:
                task.due += task.interval
                task.seq = next(self._counter)
                heapq.heappush(self._queue, task)
            task.callback()
            fired += 1
        self._now = target
        return fired

    def _compact(self) -> None:
        self._queue = [task for task in self._queue if not task.cancelled]
        heapq.heapify(self._queue)
