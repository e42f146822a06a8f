"""Background job table: tracking, reaping, listing and signalling jobs."""

from __future__ import annotations

import errno
import os
import sys
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

__all__ = [
    "JobStatus",
    "Job",
    "JobNotFoundError",
    "InvalidSignalError",
    "PingError",
    "JobTable",
]


class JobStatus(Enum):
    RUNNING = "Running"
    STOPPED = "Stopped"


@dataclass(eq=False)
class Job:
    """One background or stopped process."""

    pid: int
    job_id: int
    command: str
    status: JobStatus = JobStatus.RUNNING


class JobNotFoundError(LookupError):
    """No job (or no process) with the given pid."""


class InvalidSignalError(ValueError):
    """The signal number is not valid."""


class PingError(OSError):
    """Sending a signal failed for another reason."""


class JobTable:
    """The shell's background jobs, newest first."""

    def __init__(self, out: TextIO | None = None) -> None:
        self._out = out
        self._jobs: list[Job] = []
        self._next_id = 1

    @property
    def out(self) -> TextIO:
        return self._out if self._out is not None else sys.stdout

    def _print(self, text: str) -> None:
        self.out.write(text + "\n")
        self.out.flush()

    def add(self, pid: int, command: str, status: JobStatus = JobStatus.RUNNING) -> int:
        """Record a job, announce it and return its job id."""
        job = Job(pid, self._next_id, command, status)
        self._next_id += 1
        self._jobs.insert(0, job)
        self._print(f"[{job.job_id}] {pid}")
        return job.job_id

    def check(self) -> None:
        """Reap finished jobs without blocking and update stopped ones."""
        for job in list(self._jobs):
            try:
                pid, status = os.waitpid(job.pid, os.WNOHANG | os.WUNTRACED)
            except OSError:
                self._jobs.remove(job)
                continue
            if pid != job.pid:
                continue
            if os.WIFEXITED(status):
                how = "normally" if os.WEXITSTATUS(status) == 0 else "abnormally"
                self._print(f"{job.command} with pid {job.pid} exited {how}")
                self._jobs.remove(job)
            elif os.WIFSIGNALED(status):
                self._jobs.remove(job)
            elif os.WIFSTOPPED(status):
                job.status = JobStatus.STOPPED
            elif os.WIFCONTINUED(status):
                job.status = JobStatus.RUNNING

    def activities(self) -> list[Job]:
        """Jobs sorted by command text."""
        return sorted(self._jobs, key=lambda job: job.command)

    def list_activities(self) -> None:
        """Print each job as '[pid] command: Running|Stopped'."""
        for job in self.activities():
            self._print(f"[{job.pid}] {job.command}: {job.status.value}")

    def find_by_pid(self, pid: int) -> Job | None:
        return next((job for job in self._jobs if job.pid == pid), None)

    def find_by_id(self, job_id: int) -> Job | None:
        return next((job for job in self._jobs if job.job_id == job_id), None)

    def remove(self, pid: int) -> None:
        """Forget the job with this pid; JobNotFoundError if there is none."""
        job = self.find_by_pid(pid)
        if job is None:
            raise JobNotFoundError(pid)
        self._jobs.remove(job)

    def ping(self, pid: int, signum: int) -> None:
        """Send a signal to a tracked job."""
        if self.find_by_pid(pid) is None:
            raise JobNotFoundError(pid)
        try:
            os.kill(pid, signum)
        except ProcessLookupError as exc:
            raise JobNotFoundError(pid) from exc
        except (ValueError, OverflowError) as exc:
            raise InvalidSignalError(signum) from exc
        except OSError as exc:
            if exc.errno == errno.EINVAL:
                raise InvalidSignalError(signum) from exc
            raise PingError(exc.errno, exc.strerror) from exc

    def clear(self) -> None:
        self._jobs.clear()

    def __iter__(self) -> Iterator[Job]:
        return iter(list(self._jobs))

    def __len__(self) -> int:
        return len(self._jobs)