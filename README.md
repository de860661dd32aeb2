# minishell

A small interactive command shell for POSIX systems. It reads command lines
at a `minishell$ ` prompt and supports:

- pipelines joined with `|`
- input and output redirection: `< file`, `> file`, `>> file`
- here-documents: `<< DELIMITER`, with `$NAME` and `$?` expanded in the
  lines read
- single and double quotes, with `$NAME` and `$?` expansion outside single
  quotes
- built-in commands: `echo` (with `-n`), `cd` (to `HOME` when given no
  argument), `pwd`, `env`, `export`, `unset` and `exit`
- external programs found through the `PATH` variable

The shell sets `SHLVL` one higher than the level it was started from, or to
1 when it is not set. Ctrl-C abandons the current line and shows a fresh
prompt; Ctrl-D at the prompt prints `exit` and leaves the shell.

## Installation

```
pip install .
```

## Usage

Start the shell:

```
minishell
```

Then type commands as you would in any shell:

```
minishell$ export GREETING=hello
minishell$ echo "$GREETING world" | tr a-z A-Z > out.txt
minishell$ cat << END
> first line
> $GREETING
> END
minishell$ exit 3
```

`exit` takes an optional numeric status (taken modulo 256); a non-numeric
argument is reported as `numeric argument required`. The shell itself takes
no arguments. Given one, it reports `No such file or directory` and exits
with status 127.

## Using it from Python

The `minishell.shell.Shell` class runs the same loop. It is built from an
environment given as a list of `NAME=value` strings or as a mapping:

```python
import os
from minishell.shell import Shell

shell = Shell(os.environ)
shell.process_line("echo hello | wc -c")
print(shell.state.exit_code)
```

- `Shell.process_line(line)` parses and runs one line, recording it in the
  history.
- `Shell.parse(line)` turns a line into a list of `minishell.parsing.Command`
  objects (with `args`, `redirects`, `stdin` and `stdout`) without running
  them. It does read any here-documents from standard input and open the
  redirection files.
- `Shell.run()` runs the interactive prompt until `exit` or end of input and
  returns the exit status.

## What it does not do

The shell does not handle `&&`, `||` or `;` as operators, wildcards,
backslash escapes, background jobs or job control, and it cannot run script
files. When a command has more than one here-document, their text is read
but none of it is kept.

## Running the tests

```
pip install ".[test]"
pytest
```