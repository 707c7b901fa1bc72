"""Stream stage plumbing for the tree builder.

A stage is a function from an iterable to an iterator. ``pipeline`` chains
stages in order. With ``concurrent=True`` every stage runs in its own daemon
thread and hands items to the next stage through a bounded queue; the items
and their order are the same either way.
"""

from __future__ import annotations

import queue
import threading
from typing import Any, Callable, Iterable, Iterator, Optional, TypeVar

T = TypeVar("T")
U = TypeVar("U")

Stage = Callable[[Iterable[Any]], Iterator[Any]]

QUEUE_BOUND = 16

_DONE = object()


class _Failure:
    """Carries an exception raised inside a stage thread over to the consumer."""

    def __init__(self, exc: Exception):
        self.exc = exc


def per_item(fn: Callable[[T], Optional[U]]) -> Stage:
    """Lift a one-item transform into a stage."""

    def stage(items: Iterable[T]) -> Iterator[Optional[U]]:
        for item in items:
            yield fn(item)

    stage.__name__ = getattr(fn, "__name__", "stage")
    return stage


def threaded(items: Iterator[T], bound: int=QUEUE_BOUND, name: str="stage") -> Iterator[T]:
    """Drain ``items`` on a worker thread; the producer blocks once ``bound`` items are waiting."""
    q: queue.Queue = queue.Queue(maxsize=bound)

    def produce() -> None:
        try:
            for item in items:
                q.put(item)
        except Exception as exc:
            q.put(_Failure(exc))
            return

        q.put(_DONE)

    threading.Thread(target=produce, name=f"kettle-{name}", daemon=True).start()

    return _consume(q)


def _consume(q: queue.Queue) -> Iterator[Any]:
    while True:
        item = q.get()

        if item is _DONE:
            return
        if isinstance(item, _Failure):
            raise item.exc

        yield item


def pipeline(source: Iterable[Any], *stages: Stage, concurrent: bool=False, bound: int=QUEUE_BOUND) -> Iterator[Any]:
    stream: Iterator[Any] = iter(source)

    for stage in stages:
        stream = stage(stream)

        if concurrent:
            stream = threaded(stream, bound=bound, name=getattr(stage, "__name__", "stage"))

    return stream
