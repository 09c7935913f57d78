"""Platform readings for a child process: elapsed time, resident memory, termination."""
from __future__ import annotations

import time

import psutil


class ProcessMonitor:
    """Interface the load-test supervisor polls.

    Implementations raise :class:`ProcessLookupError` when ``pid`` no longer
    refers to a running process.
    """

    def elapsed_time(self, pid: int) -> float:  # pragma: no cover - interface
        """Wall-clock seconds since the process started."""
        raise NotImplementedError

    def resident_memory(self, pid: int) -> int:  # pragma: no cover - interface
        """Resident set size in bytes."""
        raise NotImplementedError

    def terminate(self, pid: int) -> None:  # pragma: no cover - interface
        """Forcibly stop the process."""
        raise NotImplementedError


class PsutilProcessMonitor(ProcessMonitor):
    def __init__(self) -> None:
        self._processes: dict[int, psutil.Process] = {}

    def elapsed_time(self, pid: int) -> float:
        process = self._process(pid)
        try:
            return max(0.0, time.time() - process.create_time())
        except psutil.NoSuchProcess as exc:
            raise ProcessLookupError(pid) from exc

    def resident_memory(self, pid: int) -> int:
        process = self._process(pid)
        try:
            return int(process.memory_info().rss)
        except psutil.NoSuchProcess as exc:
            raise ProcessLookupError(pid) from exc

    def terminate(self, pid: int) -> None:
        process = self._process(pid)
        try:
            process.kill()
        except psutil.NoSuchProcess as exc:
            raise ProcessLookupError(pid) from exc
        except psutil.AccessDenied as exc:
            raise PermissionError(f"Not allowed to kill process {pid}") from exc
        finally:
            self._processes.pop(pid, None)

    def _process(self, pid: int) -> psutil.Process:
        # Cached so create_time() stays tied to the process we first saw.
        process = self._processes.get(pid)
        if process is None:
            try:
                process = psutil.Process(pid)
            except psutil.NoSuchProcess as exc:
                raise ProcessLookupError(pid) from exc
            self._processes[pid] = process
        return process
