"""Per-task asyncio instrumentation: schedule delay and poll time.

Wrap a connection's coroutine before handing it to the event loop:

    task = asyncio.create_task(instrument(conn.run(), "quic_conn", metrics))

Each step of the coroutine (one ``send``/``throw`` between suspensions) is a
poll. For every poll the wrapper records:

    - schedule delay: from the awaited future completing (or the coroutine
      yielding control with a bare ``yield``) to the step starting
    - poll duration: how long the step ran
    - total poll time, in whole microseconds, as a counter

Results, exceptions and cancellation pass through unchanged.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Coroutine, Generator, TypeVar

from quicmetrics.contract import QuicMetrics

T = TypeVar("T")


class InstrumentedCoroutine:
    """Awaitable that drives ``coro`` and times each of its steps."""

    def __init__(self, coro: Coroutine[Any, Any, T], task_name: str, metrics: QuicMetrics) -> None:
        self._coro = coro
        self._schedule_delay = metrics.runtime_task_schedule_delay_histogram(task_name)
        self._poll_duration = metrics.runtime_task_poll_duration_histogram(task_name)
        self._poll_micros = metrics.runtime_task_total_poll_time_micros(task_name)
        self._woken_at = time.perf_counter()

    def _on_wake(self, _future: Any) -> None:
        self._woken_at = time.perf_counter()

    def _record_poll(self, started: float) -> None:
        elapsed = time.perf_counter() - started
        self._poll_duration.observe(elapsed)
        self._poll_micros.inc(int(elapsed * 1_000_000))

    def __await__(self) -> Generator[Any, Any, T]:
        coro = self._coro
        to_send: Any = None
        to_throw: BaseException | None = None

        while True:
            started = time.perf_counter()
            self._schedule_delay.observe(max(started - self._woken_at, 0.0))
            try:
                if to_throw is not None:
                    yielded = coro.throw(to_throw)
                else:
                    yielded = coro.send(to_send)
            except StopIteration as stop:
                self._record_poll(started)
                return stop.value
            except BaseException:
                self._record_poll(started)
                raise
            self._record_poll(started)

            if asyncio.isfuture(yielded):
                yielded.add_done_callback(self._on_wake)
            else:
                # Bare yield: the step is rescheduled immediately.
                self._woken_at = time.perf_counter()

            try:
                to_send = yield yielded
                to_throw = None
            except GeneratorExit:
                coro.close()
                raise
            except BaseException as exc:
                to_send = None
                to_throw = exc


def instrument(
    coro: Coroutine[Any, Any, T], task_name: str, metrics: QuicMetrics
) -> Coroutine[Any, Any, T]:
    """Coroutine form of ``InstrumentedCoroutine``, for ``asyncio.create_task``.

    The wrapper is built on call, so the wait between task creation and its
    first step counts as schedule delay.
    """
    wrapped = InstrumentedCoroutine(coro, task_name, metrics)

    async def _run() -> T:
        return await wrapped

    return _run()
