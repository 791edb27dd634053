from __future__ import annotations

import subprocess
import time

from healthprobe.checks.results import CheckResult


def split_command(command_line: str) -> list[str]:
    # Plain whitespace split, no shell quoting.
    return command_line.split()


def run_command(args: list[str]) -> CheckResult:
    start = time.perf_counter()
    if not args:
        return CheckResult(ok=False, latency_ms=0, error="empty command")
    try:
        proc = subprocess.run(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        latency_ms = int((time.perf_counter() - start) * 1000)
        return CheckResult(
            ok=proc.returncode == 0,
            latency_ms=latency_ms,
            exit_code=proc.returncode,
            error=None if proc.returncode == 0 else f"exit status {proc.returncode}",
        )
    except OSError as e:
        latency_ms = int((time.perf_counter() - start) * 1000)
        return CheckResult(ok=False, latency_ms=latency_ms, error=str(e))
