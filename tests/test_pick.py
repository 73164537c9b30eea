import io

import pytest

from maildirtools.pick import MailInfo, Picker, evaluate, main
from maildirtools.pickexpr import Expr, Flag, Op, ParseError, Prop, parse_expr, parse_msglist


def _write(path, subject="hello", sender="Alice <alice@example.com>",
           date="Mon, 01 Jan 2001 00:00:00 +0000"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        f"From: {sender}\nTo: bob@example.com\nSubject: {subject}\nDate: {date}\n\nbody\n")
    return str(path)


def _pick(lines, **kwargs):
    out = io.StringIO()
    picker = Picker(out=out, **kwargs)
    for line in lines:
        picker.add(line)
    picker.finish()
    return out.getvalue().splitlines(), picker


def test_no_expression_keeps_everything():
    lines = ["/m/cur/a:2,", "/m/cur/b:2,S", "/m/cur/c:2,F"]
    out, picker = _pick(lines)
    assert out == lines
    assert picker.kept == len(lines)


def test_index_selection():
    lines = ["/m/cur/a:2,", "/m/cur/b:2,S", "/m/cur/c:2,F"]
    out, _ = _pick(lines, expr=parse_msglist("2"))
    assert out == ["/m/cur/b:2,S"]


def test_index_range():
    lines = ["/m/cur/a", "/m/cur/b", "/m/cur/c", "/m/cur/d"]
    out, _ = _pick(lines, expr=parse_msglist("2:3"))
    assert out == ["/m/cur/b", "/m/cur/c"]


def test_seen_and_unseen_types():
    lines = ["/m/cur/a:2,", "/m/cur/b:2,RS", "/m/cur/c:2,F"]
    seen, _ = _pick(lines, expr=parse_msglist(":S"))
    unseen, _ = _pick(lines, expr=parse_msglist(":u"))
    assert seen == ["/m/cur/b:2,RS"]
    assert unseen == ["/m/cur/a:2,", "/m/cur/c:2,F"]


def test_new_flag_from_directory():
    lines = ["/m/new/a", "/m/cur/b:2,"]
    out, _ = _pick(lines, expr=parse_expr("new"))
    assert out == ["/m/new/a"]


def test_info_lines_are_seen():
    info = MailInfo(path="x", index=1)
    lines = ["<missing message>", "/m/cur/a:2,"]
    out, _ = _pick(lines, expr=parse_expr("info && seen"))
    assert out == ["<missing message>"]
    assert info.flags == 0


def test_subject_comparison(tmp_path):
    a = _write(tmp_path / "cur" / "a:2,", subject="hello")
    b = _write(tmp_path / "cur" / "b:2,", subject="other")
    out, _ = _pick([a, b], expr=parse_expr('subject = "hello"'))
    assert out == [a]
    out, _ = _pick([a, b], expr=parse_expr('subject !== "hello"'))
    assert out == [b]


def test_from_glob_on_address(tmp_path):
    a = _write(tmp_path / "cur" / "a", sender="Alice <alice@example.com>")
    b = _write(tmp_path / "cur" / "b", sender="Bob <bob@example.org>")
    out, _ = _pick([a, b], expr=parse_expr('from ~~ "*@example.com"'))
    assert out == [a]


def test_subject_regex_msglist(tmp_path):
    a = _write(tmp_path / "cur" / "a", subject="Weekly Report")
    b = _write(tmp_path / "cur" / "b", subject="lunch")
    out, _ = _pick([a, b], expr=parse_msglist("/report"))
    assert out == [a]


def test_date_comparison(tmp_path):
    a = _write(tmp_path / "cur" / "a")
    out, _ = _pick([a], expr=parse_expr("date > 1000"))
    assert out == [a]
    out, _ = _pick([a], expr=parse_expr("date < 1000"))
    assert out == []


def test_size_needs_existing_file(tmp_path):
    a = _write(tmp_path / "cur" / "a")
    out, _ = _pick([a], expr=parse_expr("size > 0"))
    assert out == [a]
    picker = Picker(expr=parse_expr("size > 0"), out=io.StringIO())
    with pytest.raises(OSError):
        picker.add(str(tmp_path / "missing"))


def test_cur_variable_without_current():
    lines = ["/m/a", "/m/b", "/m/c"]
    out, _ = _pick(lines, expr=parse_expr("index < cur"))
    assert out == lines


def test_cur_variable_with_current():
    lines = ["/m/a", "/m/b", "/m/c"]
    out, picker = _pick(lines, expr=parse_expr("index < cur"), cur="/m/b")
    assert out == ["/m/a"]
    assert picker.cur_index == 2


def test_thread_mode_prints_whole_thread():
    lines = ["/m/a", " /m/b", "  /m/c", "/m/d"]
    out, _ = _pick(lines, expr=parse_msglist("2"), thread_mode=True)
    assert out == ["/m/a", " /m/b", "  /m/c"]


def test_replies_counted_in_thread():
    lines = ["/m/a", " /m/b", "  /m/c", " /m/e", "/m/d", " /m/f"]
    out, _ = _pick(lines, expr=parse_expr("replies >= 2"))
    assert out == ["/m/a"]


def test_parent_and_child_flags():
    lines = ["/m/a", " /m/b", "/m/d"]
    out, picker = _pick(lines, expr=parse_expr("parent"), thread_mode=True)
    assert out == ["/m/a", " /m/b"]
    assert picker.threads is True


def test_prune_hides_rest_of_thread():
    lines = ["/m/a", " /m/b", " /m/c"]
    out, _ = _pick(lines, expr=parse_expr("prune"), thread_mode=True)
    assert out == ["/m/a"]


def test_evaluate_unknown_property():
    picker = Picker(out=io.StringIO())
    info = MailInfo(path="/m/a", index=1)
    with pytest.raises(ParseError):
        evaluate(Expr(Op.EQ, Prop.TOTAL, 1), info, picker)


def test_evaluate_flag_sets():
    picker = Picker(out=io.StringIO())
    info = MailInfo(path="/m/a", index=1, flags=int(Flag.SEEN | Flag.FLAGGED))
    assert evaluate(Expr(Op.ALLSET, Prop.FLAG, int(Flag.SEEN | Flag.FLAGGED)), info, picker)
    assert not evaluate(Expr(Op.ALLSET, Prop.FLAG, int(Flag.SEEN | Flag.DRAFT)), info, picker)
    assert evaluate(Expr(Op.ANYSET, Prop.FLAG, int(Flag.SEEN | Flag.DRAFT)), info, picker)


def test_main_verbose(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("/m/cur/a:2,\n/m/cur/b:2,S\n/m/cur/c:2,\n"))
    assert main(["-v", ":S"]) == 0
    captured = capsys.readouterr()
    assert captured.out == "/m/cur/b:2,S\n"
    assert captured.err == "3 mails tested, 1 picked.\n"


def test_main_parse_error(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO(""))
    assert main(["-t", "bogus stuff"]) == 2
    assert "parse error" in capsys.readouterr().err