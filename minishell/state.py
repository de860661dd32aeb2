"""Mutable state shared by every part of the shell."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Protocol


class Segment(Protocol):
    """A parsed pipeline segment that may hold open file descriptors."""

    def close(self) -> None:
        """Release any resources held by the segment."""


@dataclass
class ShellState:
    """Everything the shell keeps between one prompt line and the next."""

    env: list[str] = field(default_factory=list)
    exit_code: int = 0
    error: bool = False
    prompt: bool = True
    pwd: str | None = None
    rep_prompt: str | None = None
    segments: list[Segment] = field(default_factory=list)
    in_exec: bool = False
    in_here_doc: bool = False
    flag_quote: int = 0

    def display_error(self, exit_code: int, message: str | None, error: bool) -> None:
        """Print ``message`` to stderr and record ``exit_code``.

        When ``error`` is true the current line is marked as failed, which
        stops it from being executed.
        """
        text = message if message is not None else "Unknown error"
        sys.stderr.write(text + "\n")
        sys.stderr.flush()
        if error:
            self.error = True
        self.exit_code = exit_code

    def release_segments(self) -> None:
        """Close every parsed segment, forget them and clear the error flag."""
        self.error = False
        for segment in self.segments:
            segment.close()
        self.segments = []