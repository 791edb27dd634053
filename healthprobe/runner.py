from __future__ import annotations

import logging
import threading

from healthprobe.checks.command_check import run_command, split_command
from healthprobe.checks.results import CheckResult
from healthprobe.state import HealthCheckResult, ResultStore, now_rfc3339

logger = logging.getLogger(__name__)


class _PendingRun:
    """Publication state shared by one run's worker thread and its timeout wait."""

    def __init__(self, store: ResultStore, command_line: str, timestamp: str) -> None:
        self._store = store
        self._command_line = command_line
        self._timestamp = timestamp
        self._lock = threading.Lock()
        self.timed_out = False
        self.done = threading.Event()

    def _publish(self, success: bool) -> None:
        self._store.store(
            HealthCheckResult(
                success=success,
                command=self._command_line,
                timestamp=self._timestamp,
            )
        )

    def complete(self, res: CheckResult) -> None:
        with self._lock:
            if res.ok and not self.timed_out:
                logger.debug(
                    'Health check with command "%s", result: OK (%dms)',
                    self._command_line,
                    res.latency_ms,
                )
                self._publish(True)
            else:
                logger.debug(
                    'Health check with command "%s", result: KO (%s, %dms)',
                    self._command_line,
                    "timeout" if res.ok else res.error,
                    res.latency_ms,
                )
                self._publish(False)
        self.done.set()

    def expire(self) -> None:
        with self._lock:
            self.timed_out = True
            self._publish(False)


class CheckRunner:
    def __init__(self, store: ResultStore) -> None:
        self.store = store
        self._lock = threading.Lock()

    def _execute(self, run: _PendingRun, args: list[str]) -> None:
        run.complete(run_command(args))

    def run_once(self, command_line: str, timeout_s: float) -> None:
        with self._lock:
            args = split_command(command_line)
            run = _PendingRun(self.store, command_line, now_rfc3339())

            # Daemon worker: an abandoned child must not keep the process alive.
            worker = threading.Thread(
                target=self._execute,
                args=(run, args),
                name="healthcheck-command",
                daemon=True,
            )
            worker.start()

            if run.done.wait(timeout_s):
                logger.debug("Command %s had results", command_line)
            else:
                logger.debug("Command %s reached timeout", command_line)
                run.expire()
