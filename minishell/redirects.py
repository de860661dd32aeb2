"""Opening the files named by ``<``, ``>`` and ``>>`` redirections."""

from __future__ import annotations

import errno
import os
from collections.abc import Iterable

from .executor import build_error_message
from .parsing import Command
from .state import ShellState


def _close(fd: int | None) -> None:
    if fd is not None:
        try:
            os.close(fd)
        except OSError:
            pass


def open_input(state: ShellState, command: Command, target: str) -> None:
    """Open ``target`` as the command's standard input.

    When a here-document supplies the input the file is only checked for
    existence. A missing or unreadable file marks the command as failed.
    """
    if command.stdin is not None and not command.here_doc:
        _close(command.stdin)
        command.stdin = None
    if not os.path.exists(target):
        command.redirect_error = True
        state.display_error(2, build_error_message(target, errno.ENOENT), False)
        return
    if command.here_doc:
        return
    try:
        command.stdin = os.open(target, os.O_RDONLY)
    except OSError as exc:
        command.redirect_error = True
        state.display_error(2, build_error_message(target, exc.errno), False)


def open_output(state: ShellState, command: Command, redirect: str) -> None:
    """Open the file of a ``>`` or ``>>`` redirection as standard output.

    Any output opened earlier is closed first, which also happens for a
    ``<<`` redirection handed here.
    """
    _close(command.stdout)
    command.stdout = None
    if redirect.startswith(">>"):
        target = redirect[2:]
        flags = os.O_RDWR | os.O_CREAT | os.O_APPEND
    elif redirect.startswith(">"):
        target = redirect[1:]
        flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC
    else:
        return
    try:
        command.stdout = os.open(target, flags, 0o644)
    except OSError as exc:
        state.display_error(1, build_error_message(target, exc.errno), False)
        command.redirect_error = True


def apply_redirects(state: ShellState, commands: Iterable[Command]) -> None:
    """Open the files of every redirection of every command, in order."""
    for command in commands:
        for redirect in command.redirects:
            if redirect.startswith("<") and not redirect.startswith("<<"):
                open_input(state, command, redirect[1:])
            else:
                open_output(state, command, redirect)