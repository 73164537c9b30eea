import io

import pytest

from maildirtools.listing import FlagFilter, Lister, main


@pytest.fixture
def box(tmp_path):
    path = tmp_path / "box"
    for sub in ("cur", "new", "tmp"):
        (path / sub).mkdir(parents=True)
    (path / "cur" / "a:2,S").write_text("a")
    (path / "cur" / "c:2,F").write_text("c")
    (path / "cur" / ".hidden").write_text("h")
    (path / "new" / "b").write_text("b")
    return path


def lines(lister):
    return sorted(lister.out.getvalue().splitlines())


def test_flag_filter_required():
    wanted = FlagFilter({"S": True})
    assert wanted.matches("1:2,FS") is True
    assert wanted.matches("1:2,F") is False
    assert wanted.matches("1") is False


def test_flag_filter_forbidden_and_empty():
    assert FlagFilter({"T": False}).matches("1:2,ST") is False
    assert FlagFilter({"T": False}).matches("1:2,S") is True
    assert FlagFilter().matches("1") is True


def test_lists_cur_and_new(box):
    lister = Lister(out=io.StringIO())
    lister.list_arg(str(box))
    assert lines(lister) == sorted([f"{box}/cur/a:2,S", f"{box}/cur/c:2,F", f"{box}/new/b"])


def test_only_new_or_only_cur(box):
    only_new = Lister(new=1, out=io.StringIO())
    only_new.list_arg(str(box))
    assert lines(only_new) == [f"{box}/new/b"]
    only_cur = Lister(cur=1, out=io.StringIO())
    only_cur.list_arg(str(box))
    assert lines(only_cur) == sorted([f"{box}/cur/a:2,S", f"{box}/cur/c:2,F"])


def test_flag_filtering(box):
    lister = Lister(flags=FlagFilter({"S": True}), out=io.StringIO())
    lister.list_arg(str(box))
    assert lines(lister) == [f"{box}/cur/a:2,S"]


def test_plain_directory_and_file(tmp_path):
    (tmp_path / "m1").write_text("x")
    lister = Lister(out=io.StringIO())
    lister.list_arg(str(tmp_path))
    lister.list_arg(str(tmp_path / "m1"))
    assert lister.out.getvalue().splitlines() == [f"{tmp_path}/m1", str(tmp_path / "m1")]


def test_missing_argument_lists_nothing(tmp_path):
    lister = Lister(out=io.StringIO())
    lister.list_arg(str(tmp_path / "none"))
    assert lister.out.getvalue() == ""


def test_info_summary(box):
    lister = Lister(info=True, out=io.StringIO())
    lister.list_arg(str(box))
    fields = lister.out.getvalue().split()
    assert fields == ["1", "unseen", "1", "flagged", "2", "msg", str(box)]
    assert lister.dirs == 1
    assert (lister.count, lister.unseen, lister.flagged) == (0, 0, 0)


def test_main_info_totals(tmp_path, capsys):
    for name in ("one", "two"):
        for sub in ("cur", "new"):
            (tmp_path / name / sub).mkdir(parents=True)
        (tmp_path / name / "cur" / "m:2,").write_text("x")
    assert main(["-i", str(tmp_path / "one"), str(tmp_path / "two")]) == 0
    out = capsys.readouterr().out.splitlines()
    assert len(out) == 3
    assert out[-1].split() == ["2", "unseen", "0", "flagged", "2", "msg"]


def test_main_usage():
    assert main(["-Q"]) == 1