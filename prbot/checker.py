"""Canonical form checkers.

A checker takes the raw bytes of a file and reports whether they are already
in canonical form, together with the canonical bytes. Invalid input raises
``FormatSyntaxError``. Checkers are synchronous; the worker pool runs them in
an executor.
"""

from __future__ import annotations

import shlex
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Sequence

from prbot.exceptions import CheckerUnavailableError, FormatSyntaxError


@dataclass(frozen=True)
class CheckResult:
    is_canonical: bool
    canonical: bytes


class CanonicalFormChecker(ABC):
    """Interface for canonical form checkers."""

    @abstractmethod
    def canonicalize(self, source: bytes) -> bytes:
        """Return the canonical bytes of ``source`` or raise FormatSyntaxError."""
        ...

    def check(self, source: bytes) -> CheckResult:
        canonical = self.canonicalize(source)
        return CheckResult(is_canonical=canonical == source, canonical=canonical)


class CommandChecker(CanonicalFormChecker):
    """Runs a formatter that reads stdin and writes the canonical form to stdout.

    A non-zero exit status is treated as a syntax error; stderr becomes the
    error detail.
    """

    def __init__(self, command: Sequence[str], timeout: float = 60.0):
        if not command:
            raise CheckerUnavailableError("Formatter command is empty")
        if shutil.which(command[0]) is None:
            raise CheckerUnavailableError(f"Formatter executable not found: {command[0]}")
        self.command: List[str] = list(command)
        self.timeout = timeout

    @classmethod
    def from_string(cls, command_line: str, timeout: float = 60.0) -> CommandChecker:
        return cls(shlex.split(command_line), timeout=timeout)

    def canonicalize(self, source: bytes) -> bytes:
        proc = subprocess.run(
            self.command,
            input=source,
            capture_output=True,
            timeout=self.timeout,
            check=False,
        )
        if proc.returncode != 0:
            detail = proc.stderr.decode("utf-8", errors="replace").strip()
            raise FormatSyntaxError(detail or f"{self.command[0]} exited with status {proc.returncode}")
        return proc.stdout
