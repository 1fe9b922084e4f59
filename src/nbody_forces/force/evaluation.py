"""
Parallel evaluation and sequential reduction of work batches.

Evaluation is a bounded parallel-for: the batch is partitioned into
contiguous chunks, each chunk is handed to one worker, and every worker
writes only its own slice of the output arrays. The coordinating thread
waits for all chunks before returning. Reduction then scatters the forces
into per-body velocity deltas on the coordinating thread alone.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import NamedTuple, Optional

import numpy as np

from ..kernel import gravitational_forces
from ..types import DEFAULT_CHUNK_DIVISOR
from .batching import WorkBatch, partition

logger = logging.getLogger(__name__)


class ForcePairs(NamedTuple):
    """Kernel output, row k belonging to work item k."""

    force1: np.ndarray
    force2: np.ndarray


class ParallelEvaluator:
    """
    Evaluates work batches across a thread pool.

    The executor is created on first use and reused across ticks until
    close() is called. The evaluator can be used as a context manager.

    Example:
        with ParallelEvaluator(max_workers=4) as evaluator:
            forces = evaluator.evaluate(batch, gravitational_constant=1.0)
    """

    def __init__(
        self,
        max_workers: Optional[int] = None,
        chunk_divisor: int = DEFAULT_CHUNK_DIVISOR,
    ) -> None:
        """
        Initialize evaluator.

        Args:
            max_workers: Worker threads (None = executor default)
            chunk_divisor: Batches are split into roughly this many chunks
        """
        self._max_workers = max_workers
        self._chunk_divisor = chunk_divisor
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def max_workers(self) -> Optional[int]:
        return self._max_workers

    @property
    def chunk_divisor(self) -> int:
        return self._chunk_divisor

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_workers, thread_name_prefix="nbody-eval"
            )
        return self._executor

    def evaluate(self, batch: WorkBatch, gravitational_constant: float) -> ForcePairs:
        """
        Apply the force kernel to every item of a batch.

        Blocks until every chunk has finished. If a chunk raises, the
        exception propagates once all chunks have completed.

        Returns:
            ForcePairs with one row per work item
        """
        count = len(batch)
        force1 = np.zeros((count, 3), dtype=np.float64)
        force2 = np.zeros((count, 3), dtype=np.float64)
        chunks = partition(count, self._chunk_divisor)
        if not chunks:
            return ForcePairs(force1, force2)

        source_position = batch.source_position
        source_mass = batch.source_mass
        target_position = batch.target_position
        target_mass = batch.target_mass

        def run_chunk(chunk: slice) -> None:
            f1, f2 = gravitational_forces(
                source_position[chunk],
                source_mass[chunk],
                target_position[chunk],
                target_mass[chunk],
                gravitational_constant,
            )
            force1[chunk] = f1
            force2[chunk] = f2

        executor = self._get_executor()
        futures = [executor.submit(run_chunk, chunk) for chunk in chunks]
        wait(futures)
        for future in futures:
            future.result()

        logger.debug("Evaluated %d work items in %d chunks", count, len(chunks))
        return ForcePairs(force1, force2)

    def close(self) -> None:
        """Shut down the worker pool."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> ParallelEvaluator:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def reduce_pairwise(batch: WorkBatch, forces: ForcePairs, body_count: int) -> np.ndarray:
    """
    Accumulate both forces of every pair into per-body deltas.

    Returns:
        (body_count, 3) velocity deltas
    """
    deltas = np.zeros((body_count, 3), dtype=np.float64)
    np.add.at(deltas, batch.source_index, forces.force1)
    np.add.at(deltas, batch.target_index, forces.force2)
    return deltas


def reduce_one_sided(batch: WorkBatch, forces: ForcePairs, body_count: int) -> np.ndarray:
    """
    Accumulate only the source-side force of every item.

    Used for aggregate targets, which have no state of their own to update.

    Returns:
        (body_count, 3) velocity deltas
    """
    deltas = np.zeros((body_count, 3), dtype=np.float64)
    np.add.at(deltas, batch.source_index, forces.force1)
    return deltas


__all__ = [
    "ForcePairs",
    "ParallelEvaluator",
    "reduce_pairwise",
    "reduce_one_sided",
]
