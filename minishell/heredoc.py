"""Reading here-documents for ``<<`` redirections."""

from __future__ import annotations

import os
import sys
import tempfile
from collections.abc import Iterable
from typing import TextIO

from .parsing import UNCLOSED_QUOTES, Command, Parser
from .state import ShellState

NEWLINE_SYNTAX_ERROR = "minishell: syntax error near unexpected token `newline'"


def remove_quotes(text: str) -> str:
    """Drop the first and the last character of ``text``."""
    return text[1:-1]


def is_delimiter(line: str, delimiter: str) -> bool:
    """Return True if ``line`` ends the here-document.

    The trailing character of the line (its newline) is left out of the
    comparison, so a line that is a prefix of the delimiter matches too.
    """
    count = len(delimiter) if len(line) == 1 else len(line) - 1
    return line[:count] == delimiter[:count]


def expand_here_doc_line(parser: Parser, line: str, delimiter: str) -> str:
    """Expand ``$`` variables in a line unless the delimiter was quoted."""
    expand = parser.state.flag_quote == 0 and not delimiter.startswith(("'", '"'))
    parts = []
    i = 0
    while i < len(line):
        if expand and line[i] == "$":
            value, i = parser.expand_var(line, i)
            parts.append(value)
        else:
            parts.append(line[i])
            i += 1
    return "".join(parts)


def _warn_eof(delimiter: str) -> None:
    sys.stdout.write(
        "\nWarning: heredoc at line 1 delimited by end-of-file "
        f'(wanted: "{delimiter}")\n'
    )
    sys.stdout.flush()


def read_here_doc(
    state: ShellState, parser: Parser, command: Command, stream: TextIO
) -> str:
    """Read lines from ``stream`` up to the command's first delimiter.

    Returns the collected text. Nothing is kept when the command has more
    than one here-document.
    """
    delimiter = command.here[0]
    if delimiter and delimiter[0] in ("'", '"') and delimiter[-1] == delimiter[0]:
        delimiter = remove_quotes(delimiter)
    if command.redirects and len(command.redirects[0]) == 2:
        state.display_error(2, NEWLINE_SYNTAX_ERROR, False)
        return ""
    if state.flag_quote == 1:
        state.display_error(2, UNCLOSED_QUOTES, True)
        return ""
    keep = len(command.here) == 1
    body = []
    state.in_here_doc = True
    try:
        while True:
            sys.stderr.write("> ")
            sys.stderr.flush()
            line = stream.readline()
            if not line:
                _warn_eof(delimiter)
                break
            if is_delimiter(line, delimiter):
                break
            if keep:
                body.append(expand_here_doc_line(parser, line, delimiter))
    finally:
        state.in_here_doc = False
    return "".join(body)


def _body_fd(body: str) -> int:
    with tempfile.TemporaryFile() as handle:
        handle.write(body.encode("utf-8", "surrogateescape"))
        handle.flush()
        handle.seek(0)
        fd = os.dup(handle.fileno())
    os.lseek(fd, 0, os.SEEK_SET)
    return fd


def collect_here_docs(
    state: ShellState, parser: Parser, commands: Iterable[Command], stream: TextIO
) -> None:
    """Read the here-documents of every command.

    A command whose last input redirection is a here-document gets a
    readable descriptor holding the text as its standard input.
    """
    for command in commands:
        for redirect in command.redirects:
            if redirect.startswith("<<"):
                command.here.append(redirect[2:])
                command.here_doc = True
            elif redirect.startswith("<"):
                command.here_doc = False
        if not command.here:
            continue
        body = read_here_doc(state, parser, command, stream)
        if command.here_doc:
            command.stdin = _body_fd(body)