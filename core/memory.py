"""Memory reclamation and footprint sampling.

The harness never implements reclamation itself. It asks the
interpreter for a full collection (``gc.collect()``) and then sleeps
briefly so finalizers and allocator bookkeeping settle before a
baseline is read.

Footprint sampling:
    :class:`RssProbe` (the default) reads the resident set size of the
    process through :mod:`psutil`, i.e. pages the allocator holds from
    the OS (allocated minus released). Reading it costs one system call
    and adds nothing to individual allocations, so timings taken between
    two reads are not affected. It is process-wide and page-granular:
    small deltas can read as zero, and anything else allocating between
    two reads shows up in the delta.

    :class:`TracemallocProbe` is opt-in. It counts bytes allocated
    through the Python allocator exactly, but traces every allocation
    while active, which slows the parse loop several times over. Use it
    for memory attribution, not for timing.

    One sample after one reclamation pass is the baseline. Samples
    are not retried or averaged.

Example:
    >>> probe = RssProbe()
    >>> probe.start()
    >>> probe.current_bytes() > 0
    True
    >>> probe.stop()
    >>> probe = TracemallocProbe()
    >>> probe.start()
    >>> before = probe.current_bytes()
    >>> blob = bytearray(1 << 20)
    >>> probe.current_bytes() - before >= 1 << 20
    True
    >>> probe.stop()
"""

import gc
import logging
import time
import tracemalloc as _tracemalloc
from typing import Protocol

import psutil

logger: logging.Logger = logging.getLogger(__name__)


def stabilize(settle_seconds: float = 0.1) -> None:
    """Request a full collection and pause for ``settle_seconds``."""
    collected: int = gc.collect()
    logger.debug(
        "Reclamation pass collected %d objects, settling %.3fs",
        collected,
        settle_seconds,
    )
    if settle_seconds > 0:
        time.sleep(settle_seconds)


def gen0_collections() -> int:
    """Generation-0 collection count since interpreter start."""
    return gc.get_stats()[0]["collections"]


class MemoryProbe(Protocol):
    """Source of process-wide allocated-bytes readings."""

    def start(self) -> None: ...

    def current_bytes(self) -> int: ...

    def stop(self) -> None: ...


class RssProbe:
    """:class:`MemoryProbe` reading process RSS through :mod:`psutil`.

    ``start`` and ``stop`` do nothing; no tracing is switched on.
    """

    __slots__ = ("_process",)

    def __init__(self) -> None:
        self._process: psutil.Process = psutil.Process()

    def start(self) -> None:
        pass

    def current_bytes(self) -> int:
        return self._process.memory_info().rss

    def stop(self) -> None:
        pass


class TracemallocProbe:
    """:class:`MemoryProbe` backed by :mod:`tracemalloc`.

    Opt-in only: tracing slows every allocation while it is active.

    Leaves tracing running if it was already active when
    :meth:`start` was called, so nested use does not cut off an
    outer trace.
    """

    __slots__ = ("_owns_trace",)

    def __init__(self) -> None:
        self._owns_trace: bool = False

    def start(self) -> None:
        if not _tracemalloc.is_tracing():
            _tracemalloc.start()
            self._owns_trace = True

    def current_bytes(self) -> int:
        current, _peak = _tracemalloc.get_traced_memory()
        return current

    def stop(self) -> None:
        if self._owns_trace:
            _tracemalloc.stop()
            self._owns_trace = False
