import os

import pytest

from minishell.parsing import (
    PIPE_SYNTAX_ERROR,
    UNCLOSED_QUOTES,
    Command,
    Parser,
    check_pipe,
    check_red_pos,
    end_var,
    end_word,
    has_pipe_syntax_error,
    parse_redirection,
    quote_flag,
    replace_pipe,
    split_segments,
)
from minishell.state import ShellState


@pytest.fixture
def state():
    return ShellState(env=["HOME=/home/user", "USER=tester", "EMPTY="])


@pytest.fixture
def parser(state):
    return Parser(state)


@pytest.mark.parametrize(
    "line, expected",
    [
        ("| ls", True),
        ("ls |", True),
        ("ls |  \t", True),
        ("ls || wc", True),
        ("ls | | wc", True),
        ("ls | wc", False),
        ("echo '||'", False),
        ("", False),
        ("   ", False),
    ],
)
def test_has_pipe_syntax_error(line, expected):
    assert has_pipe_syntax_error(line) is expected


def test_check_pipe_stops_at_unclosed_quote():
    assert check_pipe("echo 'a || b") is False
    assert check_pipe("a 'x' || b") is True


def test_replace_pipe_keeps_quoted_pipes():
    assert replace_pipe("a|'b|c'|d", "|", "\x01") == "a\x01'b|c'\x01d"


def test_split_segments_trims_parts():
    assert split_segments("ls -l |\twc  -c ") == ["ls -l", "wc  -c"]


def test_split_segments_respects_quotes():
    assert split_segments('echo "a|b" | cat') == ['echo "a|b"', "cat"]


def test_split_segments_without_pipe():
    line = "echo hello"
    assert split_segments(line) == [line]


@pytest.mark.parametrize(
    "char, quoted, expected",
    [(" ", False, True), ("\t", False, True), ("<", False, True),
     (">", False, True), (" ", True, False), ("a", False, False)],
)
def test_end_word(char, quoted, expected):
    assert end_word(char, quoted) is expected


@pytest.mark.parametrize(
    "char, expected",
    [("a", False), ("Z", False), ("5", False), ("_", False),
     ("?", True), ("-", True), ("", True), ("$", True)],
)
def test_end_var(char, expected):
    assert end_var(char) is expected


def test_check_red_pos_stops_at_blank():
    segment = "> out rest"
    length = check_red_pos(segment, 0)
    assert segment[:length] == "> out"


def test_check_red_pos_stops_at_next_redirect():
    segment = "<in>out"
    length = check_red_pos(segment, 0)
    assert segment[:length] == "<in"


def test_parse_redirection_append():
    segment = ">> log.txt x"
    text, pos = parse_redirection(segment, 0)
    assert text == ">>log.txt"
    assert segment[pos:] == " x"


def test_parse_redirection_removes_quotes():
    text, pos = parse_redirection('< "my file"', 0)
    assert text == "<my file"
    assert pos == len('< "my file"')


@pytest.mark.parametrize(
    "segment, expected",
    [('<< "EOF"', 2), ("<< EOF", 0), ('<< "EOF', 1), ("cat <<'x'", 2)],
)
def test_quote_flag(segment, expected):
    assert quote_flag(segment, segment.index("<")) == expected


def test_expand_var_reads_name(parser):
    text = "$HOME/x"
    value, pos = parser.expand_var(text, 0)
    assert value == "/home/user"
    assert text[pos:] == "/x"


def test_expand_var_exit_code(parser, state):
    state.exit_code = 7
    assert parser.expand_var("$?", 0) == (str(state.exit_code), 2)


def test_expand_var_lone_dollar(parser):
    assert parser.expand_var("$", 0) == ("$", 1)


def test_expand_var_unknown_is_empty(parser):
    assert parser.expand_var("$NOPE", 0) == ("", len("$NOPE"))


def test_expand_var_digit_marks_error(parser, state):
    state.exit_code = 5
    parser.expand_var("$1", 0)
    assert state.error is True
    assert state.exit_code == 0


def test_expand_var_hash_reports(parser, state, capsys):
    value, _ = parser.expand_var("$#", 0)
    assert value == "$"
    assert state.exit_code == 127
    assert state.error is True
    assert "0: command not found" in capsys.readouterr().err


def test_parse_word_double_quotes_expand(parser):
    word, pos = parser.parse_word('"a $HOME"b c', 0)
    assert word == "a /home/userb"
    assert pos == len('"a $HOME"b')


def test_parse_word_single_quotes_do_not_expand(parser):
    assert parser.parse_word("'$HOME'", 0) == ("$HOME", len("'$HOME'"))


def test_parse_word_unclosed_quote(parser, state, capsys):
    parser.parse_word("'abc", 0)
    assert state.error is True
    assert state.exit_code == 1
    assert UNCLOSED_QUOTES in capsys.readouterr().err


def test_tokenize_words_and_redirects(parser):
    command = parser.tokenize("echo hi > out < in")
    assert command.args == ["echo", "hi"]
    assert command.redirects == [">out", "<in"]


def test_tokenize_here_doc_sets_quote_flag(parser, state):
    command = parser.tokenize('cat << "EOF"')
    assert command.redirects == ["<<EOF"]
    assert state.flag_quote == 2


def test_tokenize_unset_variable_gives_empty_argument(parser):
    assert parser.tokenize("echo $NOPE").args == ["echo", ""]


def test_tokenize_stops_after_error(parser, state):
    state.error = True
    command = parser.tokenize("echo hi")
    assert command.args == []
    assert command.redirects == []


def test_parse_line_builds_pipeline(parser, state):
    commands = parser.parse_line("ls -l | wc -l")
    assert [command.args for command in commands] == [["ls", "-l"], ["wc", "-l"]]
    assert state.segments == commands
    assert state.error is False


def test_parse_line_pipe_syntax_error(parser, state, capsys):
    commands = parser.parse_line("ls || wc")
    assert state.error is True
    assert state.exit_code == 2
    assert PIPE_SYNTAX_ERROR in capsys.readouterr().err
    assert all(command.args == [] for command in commands)


def test_command_close_releases_descriptors():
    read_fd, write_fd = os.pipe()
    command = Command(stdin=read_fd, stdout=write_fd)
    command.close()
    assert command.stdin is None and command.stdout is None
    with pytest.raises(OSError):
        os.fstat(read_fd)
    with pytest.raises(OSError):
        os.fstat(write_fd)


def test_release_segments_closes_commands(state):
    read_fd, write_fd = os.pipe()
    os.close(write_fd)
    state.segments = [Command(stdin=read_fd)]
    state.release_segments()
    assert state.segments == []
    with pytest.raises(OSError):
        os.fstat(read_fd)