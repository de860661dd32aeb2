"""Commands the shell runs itself instead of starting a program."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable, Sequence

from .environment import get_env_var_name, lookup_env, remove_env_var, sorted_env, update_env
from .state import ShellState

BUILT_INS = frozenset({"export", "env", "echo", "unset", "cd", "pwd", "exit"})

_DIGITS = "0123456789"


def _write(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


def _is_alpha(c: str) -> bool:
    return c.isascii() and c.isalpha()


def skip_echo_flags(args: Sequence[str]) -> tuple[int, bool]:
    """Skip the leading ``-n`` style options of ``echo``.

    Returns the index of the first argument to print and whether a
    newline-suppressing option was seen.
    """
    no_newline = False
    for index, arg in enumerate(args[1:], start=1):
        if not arg.startswith("-") or len(arg) == 1 or set(arg[1:]) != {"n"}:
            return index, no_newline
        no_newline = True
    return len(args), no_newline


def execute_echo(state: ShellState, args: Sequence[str]) -> None:
    """Print the arguments separated by spaces."""
    if len(args) < 2:
        _write("\n")
        return
    start, no_newline = skip_echo_flags(args)
    text = " ".join(args[start:])
    _write(text if no_newline else text + "\n")
    state.exit_code = 0


def execute_env(state: ShellState) -> None:
    """Print every variable that has a value."""
    _write("".join(f"{entry}\n" for entry in state.env if "=" in entry))


def execute_exit(state: ShellState, args: Sequence[str]) -> None:
    """Stop the prompt loop, taking the exit status from the argument."""
    _write("exit\n")
    arg = args[1] if len(args) > 1 else ""
    if arg:
        body = arg[1:] if arg[0] in "+-" else arg
        if any(c not in _DIGITS for c in body):
            state.display_error(
                2, f"minishell: exit: {arg}: numeric argument required", True
            )
        elif body:
            if len(args) > 2:
                state.display_error(1, "minishell: exit: too many arguments", True)
                return
            state.exit_code = int(arg) % 256
    state.prompt = False


def check_export_conditions(name: str) -> bool:
    """Return True if the part of ``name`` before ``=`` is a valid identifier."""
    if not name or not (_is_alpha(name[0]) or name[0] == "_"):
        return False
    identifier = get_env_var_name(name)
    return all(_is_alpha(c) or c in _DIGITS or c == "_" for c in identifier[1:])


def format_export(env: Iterable[str]) -> list[str]:
    """Return the ``declare -x`` lines that ``export`` prints, in sorted order."""
    lines = []
    for entry in sorted_env(env):
        name, sep, value = entry.partition("=")
        if name == "_":
            continue
        lines.append(f'declare -x {name}="{value}"' if sep else f"declare -x {name}")
    return lines


def execute_export(state: ShellState, args: Sequence[str]) -> None:
    """List the environment, or set each valid argument in it."""
    if len(args) < 2:
        _write("".join(f"{line}\n" for line in format_export(state.env)))
        return
    for arg in args[1:]:
        if check_export_conditions(arg):
            update_env(state.env, arg)
        else:
            state.display_error(
                1, f"minishell: `{args[1]}=': not a valid identifier", True
            )


def execute_pwd() -> None:
    """Print the current working directory."""
    try:
        cwd = os.getcwd()
    except OSError as exc:
        sys.stderr.write(f"getcwd: : {exc.strerror}\n")
        sys.stderr.flush()
        return
    _write(cwd + "\n")


def execute_unset(state: ShellState, args: Sequence[str]) -> None:
    """Remove each named variable from the environment."""
    for name in args[1:]:
        remove_env_var(state.env, name)


def _execute_cd_error(state: ShellState, path: str) -> None:
    state.display_error(1, f"minishell: cd: {path}: No such file or directory", True)


def _execute_cd(state: ShellState, args: Sequence[str]) -> None:
    path = args[1] if len(args) > 1 else lookup_env(state.env, "HOME")
    if path is None:
        state.display_error(1, "minishell: cd: HOME not set", True)
        return
    try:
        os.chdir(path)
    except OSError:
        _execute_cd_error(state, path)
        return
    cwd = os.getcwd()
    state.pwd = cwd
    update_env(state.env, f"PWD={cwd}")
    state.exit_code = 0


def is_built_in(name: str | None) -> bool:
    """Return True if ``name`` is a command the shell runs itself."""
    return name in BUILT_INS


def execute_built_in(state: ShellState, args: Sequence[str], redirect_error: bool) -> None:
    """Run the built-in named by ``args[0]``."""
    if redirect_error:
        state.exit_code = 1
        return
    name = args[0] if args else ""
    if name == "cd":
        _execute_cd(state, args)
    elif name == "echo":
        execute_echo(state, args)
    elif name == "env":
        execute_env(state)
    elif name == "pwd":
        execute_pwd()
    elif name == "unset":
        execute_unset(state, args)
    elif name == "export":
        execute_export(state, args)
    elif name == "exit":
        execute_exit(state, args)


def mark_built_ins(commands: Iterable) -> None:
    """Flag each command that names a built-in.

    Marking stops at the first command without words.
    """
    for command in commands:
        command.built_in = False
        if not command.args:
            break
        command.built_in = is_built_in(command.args[0])