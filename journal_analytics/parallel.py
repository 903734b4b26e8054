"""
Trial Runner

Splits simulation trials into fixed-size chunks with independent random
streams and runs them serially or on a process pool.

Each chunk's generator is spawned from one SeedSequence, so a run depends
only on (inputs, config, seed): worker count and completion order never
change the result. Results are handed back in chunk order.
"""

import logging
import threading
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

import numpy as np

from .config import ParallelConfig
from .errors import SimulationCancelled

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class CancellationToken:
    """
    Cooperative stop signal for long simulations.

    The runner checks it between chunks, so a cancelled run stops within one
    chunk of trials. Safe to cancel from another thread.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True)
class TrialChunk:
    """A slice of trials with its own random stream."""
    chunk_index: int
    n_trials: int
    seed: np.random.SeedSequence

    def rng(self) -> np.random.Generator:
        return np.random.default_rng(self.seed)


def base_seed_sequence(seed: Optional[int] = None,
                       rng: Optional[np.random.Generator] = None) -> np.random.SeedSequence:
    """
    Root seed for a run.

    An explicit generator wins over an integer seed; with neither, fresh OS
    entropy is used.
    """
    if rng is not None:
        return np.random.SeedSequence(int(rng.integers(0, 2**63 - 1)))
    return np.random.SeedSequence(seed)


def plan_chunks(num_trials: int, chunk_size: int,
                seed_sequence: np.random.SeedSequence) -> List[TrialChunk]:
    """Divide num_trials into chunks of at most chunk_size, one child seed each."""
    n_chunks = -(-num_trials // chunk_size)
    children = seed_sequence.spawn(n_chunks)
    chunks = []
    remaining = num_trials
    for i, child in enumerate(children):
        size = min(chunk_size, remaining)
        chunks.append(TrialChunk(chunk_index=i, n_trials=size, seed=child))
        remaining -= size
    return chunks


def _check_cancel(cancel: Optional[CancellationToken], completed: int, total: int) -> None:
    if cancel is not None and cancel.cancelled:
        logger.info("Simulation cancelled after %d/%d trials", completed, total)
        raise SimulationCancelled(f"cancelled after {completed} of {total} trials")


def run_chunks(
    worker: Callable[[Any, TrialChunk], Any],
    payload: Any,
    chunks: List[TrialChunk],
    parallel: ParallelConfig,
    progress: Optional[ProgressCallback] = None,
    cancel: Optional[CancellationToken] = None
) -> List[Any]:
    """
    Run `worker(payload, chunk)` for every chunk.

    Worker processes are used when the total trial count reaches the
    parallel threshold and more than one worker is configured. The worker
    must be a module-level function so it can be pickled.

    Args:
        worker: Function simulating one chunk
        payload: Read-only inputs shared by all chunks
        chunks: From plan_chunks()
        parallel: Threshold and worker settings
        progress: Called with (completed_trials, total_trials) after each chunk
        cancel: Checked before each chunk is started or collected

    Returns:
        Worker results ordered by chunk_index
    """
    total = sum(c.n_trials for c in chunks)
    workers = min(parallel.workers, len(chunks))
    use_pool = total >= parallel.threshold and workers > 1

    logger.debug(
        "Running %d trials in %d chunks (%s)",
        total, len(chunks), f"{workers} processes" if use_pool else "serial"
    )

    results: List[Any] = [None] * len(chunks)
    completed = 0

    if not use_pool:
        for chunk in chunks:
            _check_cancel(cancel, completed, total)
            results[chunk.chunk_index] = worker(payload, chunk)
            completed += chunk.n_trials
            if progress is not None:
                progress(completed, total)
        return results

    with ProcessPoolExecutor(max_workers=workers) as pool:
        futures = {pool.submit(worker, payload, chunk): chunk for chunk in chunks}
        try:
            for future in as_completed(futures):
                _check_cancel(cancel, completed, total)
                chunk = futures[future]
                results[chunk.chunk_index] = future.result()
                completed += chunk.n_trials
                if progress is not None:
                    progress(completed, total)
        except BaseException:
            for future in futures:
                future.cancel()
            raise

    return results
