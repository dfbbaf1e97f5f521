"""Task submission for background work (listing fills, thumbnails, uploads)."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable


class TaskRunner:
    """submit() returns a Future; cancel() on it is best effort."""

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        raise NotImplementedError

    def shutdown(self, wait: bool = True) -> None:
        pass


class ThreadPoolTaskRunner(TaskRunner):
    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="alipanprovider",
        )

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        return self._executor.submit(fn, *args, **kwargs)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


class ThreadPerTaskRunner(TaskRunner):
    """
    Run every task on its own daemon thread.

    For tasks that block on a caller (upload drains wait for the writer to
    close its handle) and must not occupy a bounded pool.
    """

    def __init__(self, name: str = "alipanprovider-task") -> None:
        self._name = name
        self._lock = threading.Lock()
        self._threads: set[threading.Thread] = set()

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        future: Future = Future()

        def run() -> None:
            try:
                if future.set_running_or_notify_cancel():
                    try:
                        future.set_result(fn(*args, **kwargs))
                    except BaseException as exc:
                        future.set_exception(exc)
            finally:
                with self._lock:
                    self._threads.discard(threading.current_thread())

        thread = threading.Thread(target=run, name=self._name, daemon=True)
        with self._lock:
            self._threads.add(thread)
        thread.start()
        return future

    def shutdown(self, wait: bool = True) -> None:
        if not wait:
            return
        with self._lock:
            threads = list(self._threads)
        for thread in threads:
            thread.join()


class InlineTaskRunner(TaskRunner):
    """Run every task immediately on the submitting thread."""

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        future: Future = Future()
        future.set_running_or_notify_cancel()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as exc:
            future.set_exception(exc)
        return future


class DeferredTaskRunner(TaskRunner):
    """Queue tasks until run_pending() is called."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: list[tuple[Future, Callable[..., Any], tuple, dict]] = []

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        future: Future = Future()
        with self._lock:
            self._pending.append((future, fn, args, kwargs))
        return future

    def run_pending(self) -> int:
        """Run queued tasks (including ones queued while running). Returns the count."""
        ran = 0
        while True:
            with self._lock:
                if not self._pending:
                    return ran
                future, fn, args, kwargs = self._pending.pop(0)

            if not future.set_running_or_notify_cancel():
                continue
            try:
                future.set_result(fn(*args, **kwargs))
            except BaseException as exc:
                future.set_exception(exc)
            ran += 1
