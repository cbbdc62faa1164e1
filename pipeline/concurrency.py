"""Bounded concurrent fan-out for independent pipeline inputs.

Both pipelines fetch a handful of independent inputs (events, catalog,
discoveries; or every acquisition adapter) and only combine them once all have
resolved. ``fan_out`` runs each callable on its own worker thread and waits at
most ``timeout`` seconds overall. Failures and timeouts come back as
``TaskOutcome.error`` so the caller decides which ones are fatal.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class TaskOutcome:
    name: str
    value: Any = None
    error: BaseException | None = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def timed_out(self) -> bool:
        return isinstance(self.error, TimeoutError)


def fan_out(
    tasks: Mapping[str, Callable[[], Any]],
    *,
    timeout: float,
    max_workers: int | None = None,
) -> dict[str, TaskOutcome]:
    """Run ``tasks`` concurrently and return one outcome per task name.

    Outcomes keep the order of ``tasks``. A task still running at the deadline
    is reported with a ``TimeoutError``; its thread is abandoned, not joined.
    """
    if not tasks:
        return {}

    workers = max_workers or len(tasks)
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fan-out")
    started = time.monotonic()
    deadline = started + max(0.0, float(timeout))
    futures: dict[str, Future[Any]] = {}
    outcomes: dict[str, TaskOutcome] = {}
    try:
        for name, func in tasks.items():
            futures[name] = executor.submit(func)

        for name, future in futures.items():
            remaining = max(0.0, deadline - time.monotonic())
            try:
                value = future.result(timeout=remaining)
            except TimeoutError:
                future.cancel()
                outcomes[name] = TaskOutcome(
                    name=name,
                    error=TimeoutError(f"{name} did not finish within {timeout:.1f}s"),
                    elapsed_ms=_elapsed_ms(started),
                )
            except Exception as exc:  # noqa: BLE001 - surfaced to the caller as an outcome
                outcomes[name] = TaskOutcome(name=name, error=exc, elapsed_ms=_elapsed_ms(started))
            else:
                outcomes[name] = TaskOutcome(name=name, value=value, elapsed_ms=_elapsed_ms(started))
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
    return outcomes


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000.0, 2)
