"""Row-band sweep execution for per-cell stage kernels."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from functools import partial
import logging
from typing import Any, Callable

import numpy as np


logger = logging.getLogger(__name__)


class SweepExecutor:
    """Run a stage kernel over the whole grid, one row band per work item.

    Kernels take their frozen inputs positionally plus a ``rows`` keyword and
    return either one band array or a tuple of band arrays. Bands are stitched
    into new output buffers, so inputs are never written. ``run`` returns only
    after every band has finished.
    """

    def __init__(self, workers: int = 1, *, min_band_rows: int = 16) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        if min_band_rows < 1:
            raise ValueError("min_band_rows must be >= 1")
        self.workers = int(workers)
        self.min_band_rows = int(min_band_rows)
        self._pool: ThreadPoolExecutor | None = None
        if self.workers > 1:
            self._pool = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="erosion_sweep")
            logger.debug("Started sweep pool with %d workers", self.workers)

    def bands(self, height: int) -> list[slice]:
        count = max(1, min(self.workers, height // self.min_band_rows))
        edges = np.linspace(0, height, count + 1).round().astype(int)
        return [slice(int(a), int(b)) for a, b in zip(edges[:-1], edges[1:]) if b > a]

    def run(self, kernel: Callable[..., Any], height: int, *args: Any) -> Any:
        bands = self.bands(height)
        tasks = [partial(kernel, *args, rows=band) for band in bands]
        if self._pool is None or len(tasks) == 1:
            parts = [task() for task in tasks]
        else:
            futures = [self._pool.submit(task) for task in tasks]
            parts = [future.result() for future in futures]

        if isinstance(parts[0], tuple):
            return tuple(np.concatenate(group, axis=0) for group in zip(*parts))
        return np.concatenate(parts, axis=0)

    def close(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def __enter__(self) -> "SweepExecutor":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
