import io
import sys

import pytest

from maildirtools.flow import Reflower, main


def run(flow, lines):
    return "".join(flow.feed(line) for line in lines) + flow.finish()


def test_flowed_lines_are_joined():
    assert run(Reflower(), ["Hello \n", "world\n"]) == "Hello world\n"


def test_fixed_line_passes():
    assert run(Reflower(), ["a\n"]) == "a\n"


def test_passthrough_without_reflow():
    flow = Reflower(reflow=False)
    assert flow.feed("keep  this \r\n") == "keep  this \r\n"
    assert flow.finish() == ""


def test_quoted_line_gets_space():
    assert run(Reflower(), ["> quoted\n"]) == "> quoted\n"


def test_quote_change_breaks_paragraph():
    out = run(Reflower(), ["> a \n", "b\n"])
    assert out.split("\n")[:2] == ["> a ", "b"]


def test_wrapping_keeps_words_and_width():
    out = run(Reflower(maxcolumn=10), ["aaaa bbbb cccc \n", "\n"])
    assert out.split() == ["aaaa", "bbbb", "cccc"]
    assert all(len(line) <= 10 for line in out.split("\n"))
    assert out.count("\n") >= 2


def test_signature_separator_flushes():
    out = run(Reflower(), ["text \n", "-- \n"])
    assert out.endswith("\n-- \n")
    assert out.split("\n")[-2] == "-- "


def test_delsp_removes_trailing_space():
    assert run(Reflower(delsp=True), ["Hel \n", "lo\n"]) == "Hello\n"


def test_force_wraps_long_fixed_lines():
    out = run(Reflower(reflow=False, force=True, maxcolumn=10),
              ["aaaa bbbb cccc dddd\n"])
    assert out.split() == ["aaaa", "bbbb", "cccc", "dddd"]
    assert all(len(line) <= 10 for line in out.split("\n"))


def test_finish_terminates_open_paragraph():
    flow = Reflower()
    assert flow.feed("abc \n") == "abc "
    assert flow.finish() == "\n"
    assert flow.finish() == ""


def test_outer_quotes_prefix():
    out = run(Reflower(outer_quotes=2), ["text\n"])
    assert out == ">> text\n"


def _stdin(monkeypatch, data):
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(data)))


def test_main_reflows_flowed_input(monkeypatch, capsys):
    monkeypatch.setenv("COLUMNS", "80")
    monkeypatch.delenv("MAXCOLUMNS", raising=False)
    monkeypatch.setenv("PIPE_CONTENTTYPE", "text/plain; format=flowed")
    _stdin(monkeypatch, b"Hello \nworld\n")
    assert main([]) == 0
    assert capsys.readouterr().out == "Hello world\n"


def test_main_leaves_fixed_content_type(monkeypatch, capsys):
    monkeypatch.setenv("COLUMNS", "80")
    monkeypatch.setenv("PIPE_CONTENTTYPE", "text/plain")
    _stdin(monkeypatch, b"Hello \nworld\n")
    assert main([]) == 0
    assert capsys.readouterr().out == "Hello \nworld\n"


@pytest.mark.parametrize("argv", [["-z"], ["-w"]])
def test_main_usage(argv):
    assert main(argv) == 2