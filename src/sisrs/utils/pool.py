# src/sisrs/utils/pool.py
from __future__ import annotations

import subprocess
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Mapping, Tuple

from sisrs.errors import StageFailed
from sisrs.utils.logger import get_logger

LOG = get_logger("pool")

WorkUnit = Callable[[], None]


def _clamp(n: int, lo: int, hi: int) -> int:
    return max(lo, min(n, hi))


def run_units(stage: str, units: Mapping[str, WorkUnit], processors: int) -> None:
    """
    Run independent work units on a bounded thread pool and block until all of
    them finished (success or failure).

    Units are keyed by a label (usually the taxon name). Each unit shells out to
    external tools, so threads are enough to keep `processors` jobs in flight.
    A failing unit does not cancel its siblings; artifacts already written stay
    on disk. After the barrier, a subprocess failure becomes StageFailed for the
    first failing unit in label order; any other exception is re-raised as is.
    """
    if not units:
        LOG.info("[%s] no work units", stage)
        return

    width = _clamp(processors, 1, len(units))
    LOG.info("[%s] %d work unit(s) on %d worker(s)", stage, len(units), width)

    failures: Dict[str, BaseException] = {}
    with ThreadPoolExecutor(max_workers=width) as ex:
        futures = {ex.submit(fn): label for label, fn in units.items()}
        for fut in as_completed(futures):
            label = futures[fut]
            exc = fut.exception()
            if exc is None:
                LOG.debug("[%s] unit %s done", stage, label)
                continue
            LOG.error("[%s] unit %s failed: %s", stage, label, exc)
            failures[label] = exc

    if not failures:
        return

    ordered: List[Tuple[str, BaseException]] = sorted(failures.items())
    label, exc = ordered[0]
    if len(ordered) > 1:
        LOG.error("[%s] %d unit(s) failed: %s", stage, len(ordered), ", ".join(k for k, _ in ordered))
    if isinstance(exc, subprocess.CalledProcessError):
        raise StageFailed(stage, exc.returncode, unit=label) from exc
    raise exc
