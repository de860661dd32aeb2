"""Running parsed commands: built-ins in the shell, others in child processes."""

from __future__ import annotations

import errno
import os
import stat
import sys
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from .builtins import execute_built_in
from .parsing import Command
from .state import ShellState


def build_error_message(path: str, err: int | None) -> str | None:
    """Return the message shown when ``path`` could not be run or opened.

    ``err`` is the errno of the failure. For a permission error on a file
    that is in fact executable there is no message of its own and None is
    returned.
    """
    if err in (errno.ENOENT, errno.EFAULT):
        return f"minishell: {path}: No such file or directory"
    if err == errno.ENOEXEC:
        return f"{path}: Invalid executable format"
    if err == errno.EACCES:
        if not os.access(path, os.X_OK):
            return f"minishell: {path}: Permission denied"
        return None
    return f"{path}: command not found"


def _handle_execution_error(state: ShellState, path: str, err: int | None) -> None:
    message = build_error_message(path, err)
    if message is None and err:
        message = os.strerror(err)
    if err == errno.ENOEXEC:
        state.display_error(0, message, True)
    elif err == errno.EACCES:
        state.display_error(126, message, True)
    else:
        state.display_error(127, message, True)


def _env_path(env: Sequence[str]) -> str | None:
    for entry in env:
        if entry.startswith("PATH="):
            return entry[len("PATH="):]
    return None


def find_path(env: Sequence[str], cmd: str) -> str:
    """Return the first existing file for ``cmd`` along PATH, else ``cmd``."""
    if not env:
        return cmd
    search = _env_path(env)
    if search is None:
        return cmd
    relative = cmd.startswith("./") or cmd.startswith("../")
    for directory in filter(None, search.split(":")):
        candidate = cmd if relative else f"{directory}/{cmd}"
        if os.path.exists(candidate):
            return candidate
    return cmd


def check_dir(path: str) -> None:
    """Raise IsADirectoryError if ``path`` is an explicit path to a directory.

    Only paths that start with ``./`` or ``/`` are refused.
    """
    try:
        mode = os.stat(path).st_mode
    except OSError:
        return
    if stat.S_ISDIR(mode) and (path.startswith("./") or path.startswith("/")):
        raise IsADirectoryError(f"minishell: {path}: Is a directory")


def _text_stdout() -> object:
    return open(1, "w", encoding="utf-8", errors="surrogateescape", closefd=False)


@contextmanager
def redirected(command: Command) -> Iterator[None]:
    """Point standard input and output at the command's descriptors.

    The command's descriptors are handed over and closed; the original
    streams are restored on leaving the block.
    """
    sys.stdout.flush()
    saved_in = saved_out = None
    old_stdout = None
    if command.stdin is not None:
        saved_in = os.dup(0)
        os.dup2(command.stdin, 0)
        os.close(command.stdin)
        command.stdin = None
    if command.stdout is not None:
        saved_out = os.dup(1)
        os.dup2(command.stdout, 1)
        os.close(command.stdout)
        command.stdout = None
        old_stdout = sys.stdout
        sys.stdout = _text_stdout()
    try:
        yield
    finally:
        if saved_out is not None:
            sys.stdout.flush()
            sys.stdout = old_stdout
            os.dup2(saved_out, 1)
            os.close(saved_out)
        if saved_in is not None:
            os.dup2(saved_in, 0)
            os.close(saved_in)


def _exec_env(env: Sequence[str]) -> dict[str, str]:
    result = {}
    for entry in env:
        name, sep, value = entry.partition("=")
        if sep and name:
            result[name] = value
    return result


def execute(state: ShellState, args: Sequence[str]) -> None:
    """Replace the process with the program named by ``args[0]``.

    Returns only when the program cannot be started, after reporting why.
    """
    path = find_path(state.env, args[0])
    try:
        check_dir(path)
    except IsADirectoryError as exc:
        state.display_error(126, str(exc), True)
        return
    if "/" not in path:
        _handle_execution_error(state, path, 0)
        return
    try:
        os.execve(path, list(args), _exec_env(state.env))
    except OSError as exc:
        _handle_execution_error(state, path, exc.errno)


def execute_single_built_in(state: ShellState, command: Command) -> None:
    """Run a lone built-in in the shell itself, with its redirections."""
    if command.redirect_error:
        return
    with redirected(command):
        execute_built_in(state, command.args, command.redirect_error)


def _execute_command(state: ShellState, command: Command) -> int:
    if not command.redirect_error:
        if command.built_in:
            execute_built_in(state, command.args, command.redirect_error)
            return 0
        if command.args:
            execute(state, command.args)
    return state.exit_code


def _run_child(
    state: ShellState,
    command: Command,
    following: Command | None,
    read_fd: int,
    write_fd: int,
) -> None:
    code = 1
    try:
        if command.stdin is not None:
            os.dup2(command.stdin, 0)
            os.close(command.stdin)
        os.close(read_fd)
        if command.stdout is not None:
            os.dup2(command.stdout, 1)
            os.close(command.stdout)
        elif following is not None and following.args:
            os.dup2(write_fd, 1)
        os.close(write_fd)
        sys.stdout = _text_stdout()
        code = _execute_command(state, command)
    finally:
        try:
            sys.stdout.flush()
            sys.stderr.flush()
        finally:
            os._exit(code)


def _close_fd(fd: int | None) -> None:
    if fd is not None:
        try:
            os.close(fd)
        except OSError:
            pass


def execute_commands(state: ShellState, commands: Sequence[Command]) -> None:
    """Run every command in its own child process, joined by pipes.

    The exit status of the shell becomes that of the last command.
    """
    pids = []
    for index, command in enumerate(commands):
        following = commands[index + 1] if index + 1 < len(commands) else None
        if following is None and command.redirect_error:
            state.exit_code = 1
        read_fd, write_fd = os.pipe()
        state.in_exec = True
        sys.stdout.flush()
        sys.stderr.flush()
        pid = os.fork()
        if pid == 0:
            _run_child(state, command, following, read_fd, write_fd)
        pids.append(pid)
        if following is not None and following.args and following.stdin is None:
            following.stdin = os.dup(read_fd)
        _close_fd(command.stdin)
        command.stdin = None
        _close_fd(command.stdout)
        command.stdout = None
        os.close(read_fd)
        os.close(write_fd)
    status = 0
    for pid in pids:
        _, status = os.waitpid(pid, 0)
    state.in_exec = False
    if os.WIFEXITED(status):
        state.exit_code = os.WEXITSTATUS(status)


def run_commands(state: ShellState, commands: Sequence[Command]) -> None:
    """Run a parsed line: a lone built-in in place, anything else forked."""
    if not commands:
        return
    first = commands[0]
    if first.built_in and len(commands) == 1:
        execute_single_built_in(state, first)
    else:
        execute_commands(state, commands)