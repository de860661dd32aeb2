"""Splitting a prompt line into pipeline segments, words and redirections."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .environment import lookup_env
from .state import ShellState

PIPE_SYNTAX_ERROR = "minishell: syntax error near unexpected token `||'"
UNCLOSED_QUOTES = "Syntax error: doesn't handle unclosed quotes"

_BLANKS = (" ", "\t")
_QUOTES = ('"', "'")
_REDIRECT_CHARS = ("<", ">")
_SEGMENT_SEPARATOR = "\x01"


def _char_at(text: str, index: int) -> str:
    """Return the character at ``index``, or ``""`` past either end."""
    return text[index] if 0 <= index < len(text) else ""


@dataclass
class Command:
    """One segment of a pipeline: its words, redirections and open streams."""

    args: list[str] = field(default_factory=list)
    redirects: list[str] = field(default_factory=list)
    here: list[str] = field(default_factory=list)
    here_doc: bool = False
    redirect_error: bool = False
    stdin: int | None = None
    stdout: int | None = None
    built_in: bool = False

    def close(self) -> None:
        """Close the input and output descriptors the command holds."""
        for name in ("stdin", "stdout"):
            fd = getattr(self, name)
            if fd is not None:
                try:
                    os.close(fd)
                except OSError:
                    pass
                setattr(self, name, None)


def check_pipe(prompt: str) -> bool:
    """Return True if two pipes follow each other outside quotes.

    Blanks between the pipes do not separate them. An unclosed quote ends
    the search with False.
    """
    index = 0
    last = ""
    length = len(prompt)
    while index < length:
        char = prompt[index]
        if char in _QUOTES:
            closing = prompt.find(char, index + 1)
            if closing == -1:
                return False
            index = closing + 1
            last = ""
        elif char in _BLANKS:
            index += 1
        elif last == "|" and char == "|":
            return True
        else:
            last = char
            index += 1
    return False


def has_pipe_syntax_error(prompt: str) -> bool:
    """Return True if the line starts or ends with a pipe or holds an empty one."""
    if not prompt:
        return False
    if prompt.lstrip(" \t").startswith("|"):
        return True
    if prompt.rstrip(" \t").endswith("|"):
        return True
    return check_pipe(prompt)


def replace_pipe(line: str, search: str, replace: str) -> str:
    """Replace ``search`` with ``replace`` everywhere outside quotes."""
    out = []
    quote = ""
    for char in line:
        if not quote and char in _QUOTES:
            quote = char
        elif quote and char == quote:
            quote = ""
        elif not quote and char == search:
            char = replace
        out.append(char)
    return "".join(out)


def split_segments(line: str) -> list[str]:
    """Split ``line`` at unquoted pipes and trim blanks from each part."""
    marked = replace_pipe(line, "|", _SEGMENT_SEPARATOR)
    return [
        part.strip(" \t") for part in marked.split(_SEGMENT_SEPARATOR) if part
    ]


def end_word(c: str, quoted: bool) -> bool:
    """Return True if ``c`` ends an unquoted word."""
    return c in ("<", ">", "\t", " ") and not quoted


def end_var(c: str) -> bool:
    """Return True if ``c`` cannot be part of a variable name."""
    if c == "?":
        return True
    return not (c.isascii() and (c.isalnum() or c == "_"))


def check_red_pos(segment: str, pos: int) -> int:
    """Return how many characters the redirection at ``pos`` spans."""
    i = 1
    if _char_at(segment, pos) == _char_at(segment, pos + 1):
        i += 1
    while _char_at(segment, pos + i) in _BLANKS:
        i += 1
    quote = ""
    while (char := _char_at(segment, pos + i)) and char not in _REDIRECT_CHARS:
        if not quote and char in _QUOTES:
            quote = char
        elif quote and char == quote:
            return i + 1
        if not quote and char in _BLANKS:
            return i
        i += 1
    return i


def parse_redirection(segment: str, pos: int) -> tuple[str, int]:
    """Read the redirection at ``pos``.

    Returns the operator joined to its target, with quotes and unquoted
    spaces removed, and the position just after it.
    """
    length = check_red_pos(segment, pos)
    quote = ""
    chars = []
    for char in segment[pos:pos + length]:
        if not quote and char in _QUOTES:
            quote = char
        elif quote and char == quote:
            quote = ""
        elif not quote and char == " ":
            continue
        else:
            chars.append(char)
    return "".join(chars), pos + length


def quote_flag(segment: str, pos: int) -> int:
    """Count the quotes around the redirection target at ``pos``.

    One is counted if the target opens with a quote and one if the segment
    ends with one; 1 therefore means an unbalanced quote.
    """
    j = pos + 1
    if _char_at(segment, j) in _REDIRECT_CHARS:
        j += 1
    while _char_at(segment, j) == " ":
        j += 1
    flag = 0
    if _char_at(segment, j) in _QUOTES:
        flag += 1
    if _char_at(segment, len(segment) - 1) in _QUOTES:
        flag += 1
    return flag


class Parser:
    """Turns prompt lines into commands, expanding variables on the way."""

    def __init__(self, state: ShellState) -> None:
        self.state = state

    def expand_var(self, text: str, pos: int) -> tuple[str, int]:
        """Expand the ``$`` at ``pos``.

        Returns the expansion and the position of the first character not
        consumed.
        """
        state = self.state
        i = pos + 1
        char = _char_at(text, i)
        if char == "#":
            state.display_error(127, "0: command not found", True)
        if (char and char in "0123456789") or char == "@":
            state.error = True
            state.exit_code = 0
        start = i
        while not end_var(_char_at(text, i)):
            i += 1
        if _char_at(text, i) == "?":
            return str(state.exit_code), i + 1
        if start != i:
            return lookup_env(state.env, text[start:i]) or "", i
        return "$", i

    def parse_word(self, segment: str, pos: int) -> tuple[str, int]:
        """Read one word starting at ``pos``, removing quotes and expanding.

        Returns the word and the position just after it. An unclosed quote
        is reported as a syntax error.
        """
        chars = []
        quote = ""
        i = pos
        length = len(segment)
        while i < length and not end_word(segment[i], bool(quote)):
            char = segment[i]
            if not quote and char in _QUOTES:
                quote = char
            elif quote and char == quote:
                quote = ""
            elif (not quote or quote == '"') and char == "$":
                value, i = self.expand_var(segment, i)
                chars.append(value)
                continue
            else:
                chars.append(char)
            i += 1
        if i >= length and quote:
            self.state.display_error(1, UNCLOSED_QUOTES, True)
        return "".join(chars), i

    def tokenize(self, segment: str) -> Command:
        """Split one pipeline segment into words and redirections."""
        command = Command()
        i = 0
        while i < len(segment) and not self.state.error:
            char = segment[i]
            if char in _BLANKS:
                i += 1
            elif char in _REDIRECT_CHARS:
                self.state.flag_quote = quote_flag(segment, i)
                redirect, i = parse_redirection(segment, i)
                command.redirects.append(redirect)
            else:
                word, i = self.parse_word(segment, i)
                command.args.append(word)
        return command

    def parse_line(self, line: str) -> list[Command]:
        """Parse a whole prompt line and store the commands in the state."""
        if has_pipe_syntax_error(line):
            self.state.display_error(2, PIPE_SYNTAX_ERROR, True)
        commands = [self.tokenize(segment) for segment in split_segments(line)]
        self.state.segments = commands
        return commands