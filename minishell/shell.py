"""The interactive prompt loop and the signal handling around it."""

from __future__ import annotations

import os
import signal
import sys
import threading
from collections.abc import Iterable, Mapping, Sequence

from .builtins import mark_built_ins
from .environment import get_env_vars
from .executor import run_commands
from .heredoc import collect_here_docs
from .parsing import Command, Parser
from .redirects import apply_redirects
from .state import ShellState

try:
    import readline as _readline
except ImportError:  # pragma: no cover - platform without readline
    _readline = None

PROMPT = "minishell$ "


class Shell:
    """A prompt that reads lines, parses them and runs the commands."""

    def __init__(self, envp: Iterable[str] | Mapping[str, str] | None) -> None:
        self.state = ShellState(env=get_env_vars(envp))
        try:
            self.state.pwd = os.getcwd()
        except OSError:
            self.state.pwd = None
        self.parser = Parser(self.state)
        self.history: list[str] = []

    def _add_history(self, line: str) -> None:
        self.history.append(line)
        if _readline is not None:
            _readline.add_history(line)

    def parse(self, line: str) -> list[Command]:
        """Parse ``line``, read its here-documents and open its redirections."""
        state = self.state
        commands = self.parser.parse_line(line)
        mark_built_ins(commands)
        if not state.error:
            collect_here_docs(state, self.parser, commands, sys.stdin)
            apply_redirects(state, commands)
        return commands

    def process_line(self, line: str) -> None:
        """Record ``line`` in the history and run it unless parsing failed."""
        if not line or line.startswith("\n"):
            return
        rest = line.lstrip(" \t")
        if not rest:
            self._add_history(line)
            return
        if rest.startswith("\n"):
            return
        state = self.state
        if state.rep_prompt != line:
            self._add_history(line)
            state.rep_prompt = line
        try:
            commands = self.parse(line)
            if not state.error:
                run_commands(state, commands)
        finally:
            state.release_segments()

    def handle_sigint(self, signum: int, frame: object) -> None:
        """Abandon the current line on Ctrl-C; leave running children alone."""
        state = self.state
        state.exit_code = 130
        if state.in_exec:
            return
        if state.in_here_doc:
            state.display_error(130, "", True)
        else:
            sys.stdout.write("^C\n")
            sys.stdout.flush()
        raise KeyboardInterrupt

    def handle_sigquit(self, signum: int, frame: object) -> None:
        """Report a quit of the running command; ignored at the prompt."""
        state = self.state
        if state.in_exec:
            state.exit_code = 131
            sys.stderr.write("Quit (core dumped)\n")
            sys.stderr.flush()

    def _install_signals(self) -> dict[int, object]:
        if threading.current_thread() is not threading.main_thread():
            return {}
        saved = {signal.SIGINT: signal.signal(signal.SIGINT, self.handle_sigint)}
        if hasattr(signal, "SIGQUIT"):
            saved[signal.SIGQUIT] = signal.signal(signal.SIGQUIT, self.handle_sigquit)
        return saved

    def run(self) -> int:
        """Read and run lines until ``exit`` or end of input; return the status."""
        saved = self._install_signals()
        state = self.state
        try:
            while state.prompt:
                try:
                    line = input(PROMPT)
                except EOFError:
                    sys.stdout.write("exit\n")
                    sys.stdout.flush()
                    state.release_segments()
                    return 0
                except KeyboardInterrupt:
                    continue
                try:
                    self.process_line(line)
                except KeyboardInterrupt:
                    state.release_segments()
            return state.exit_code
        finally:
            for signum, handler in saved.items():
                signal.signal(signum, handler)


def main(argv: Sequence[str] | None = None) -> int:
    """Start the shell; any argument is refused as a script that does not exist."""
    args = list(sys.argv[1:] if argv is None else argv)
    if args:
        sys.stderr.write(f"minishell: {args[0]}: No such file or directory\n")
        sys.stderr.flush()
        return 127
    return Shell(os.environ).run()


if __name__ == "__main__":
    raise SystemExit(main())