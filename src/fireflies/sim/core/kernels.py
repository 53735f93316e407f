from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, List


class KernelRunner:
    """Runs a per-agent kernel over the whole population.

    ``dispatch`` is a full barrier: it returns only after every invocation
    finished, and re-raises the first exception a kernel raised.
    """

    def __init__(self, workers: int = 1):
        self._workers = max(1, int(workers))
        self._executor: ThreadPoolExecutor | None = None
        if self._workers > 1:
            self._executor = ThreadPoolExecutor(max_workers=self._workers, thread_name_prefix="kernel")

    @property
    def workers(self) -> int:
        return self._workers

    def dispatch(self, kernel: Callable[[int], None], count: int) -> None:
        if self._executor is None or count < 2:
            for index in range(count):
                kernel(index)
            return

        def run_chunk(bounds: tuple[int, int]) -> None:
            for index in range(bounds[0], bounds[1]):
                kernel(index)

        futures = [self._executor.submit(run_chunk, bounds) for bounds in _chunk_bounds(count, self._workers)]
        wait(futures)
        for future in futures:
            future.result()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None


def _chunk_bounds(count: int, chunks: int) -> List[tuple[int, int]]:
    chunks = max(1, min(chunks, count))
    size, extra = divmod(count, chunks)
    bounds = []
    start = 0
    for chunk in range(chunks):
        end = start + size + (1 if chunk < extra else 0)
        bounds.append((start, end))
        start = end
    return bounds
