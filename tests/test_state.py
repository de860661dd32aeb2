import pytest

from minishell.state import ShellState


class FakeSegment:
    def __init__(self):
        self.closed = 0

    def close(self):
        self.closed += 1


def test_defaults():
    state = ShellState()
    assert state.env == []
    assert state.exit_code == 0
    assert state.error is False
    assert state.prompt is True
    assert state.segments == []


def test_display_error_sets_flag_and_code(capsys):
    state = ShellState()
    state.display_error(2, "minishell: syntax error near unexpected token `||'", True)
    captured = capsys.readouterr()
    assert captured.err == "minishell: syntax error near unexpected token `||'\n"
    assert captured.out == ""
    assert state.error is True
    assert state.exit_code == 2


def test_display_error_without_flag_keeps_error_clear(capsys):
    state = ShellState()
    state.display_error(1, "message", False)
    assert capsys.readouterr().err == "message\n"
    assert state.error is False
    assert state.exit_code == 1


def test_display_error_does_not_clear_existing_flag(capsys):
    state = ShellState(error=True)
    state.display_error(0, "x", False)
    capsys.readouterr()
    assert state.error is True
    assert state.exit_code == 0


@pytest.mark.parametrize("count", [0, 1, 3])
def test_release_segments_closes_everything(count):
    segments = [FakeSegment() for _ in range(count)]
    state = ShellState(segments=list(segments), error=True)
    state.release_segments()
    assert state.segments == []
    assert state.error is False
    assert [s.closed for s in segments] == [1] * count


def test_release_segments_keeps_environment():
    state = ShellState(env=["A=1"], exit_code=5)
    state.release_segments()
    assert state.env == ["A=1"]
    assert state.exit_code == 5