import pytest

from maildirtools.flag import apply_flags, flag_file, main


def test_apply_adds_flag_sorted():
    assert apply_flags("box/cur/1:2,S", {"F": True}) == "box/cur/1:2,FS"


def test_apply_removes_flag():
    assert apply_flags("box/cur/1:2,FS", {"S": False}) == "box/cur/1:2,F"


def test_apply_unchanged_is_none():
    assert apply_flags("box/cur/1:2,S", {"S": True, "T": False}) is None


def test_apply_without_info_is_none():
    assert apply_flags("box/new/1", {"S": True}) is None


def test_apply_set_then_clear_round_trip():
    original = "box/cur/1:2,RS"
    added = apply_flags(original, {"T": True})
    assert apply_flags(added, {"T": False}) == original


def test_flag_file_renames(tmp_path):
    path = tmp_path / "1:2,S"
    path.write_text("body")
    new = flag_file(str(path), {"T": True})
    assert new == apply_flags(str(path), {"T": True})
    assert not path.exists()
    assert open(new).read() == "body"


def test_flag_file_missing_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        flag_file(str(tmp_path / "gone:2,"), {"S": True})


def test_main_prints_new_name(tmp_path, capsys):
    path = tmp_path / "1:2,"
    path.write_text("x")
    assert main(["-F", str(path)]) == 0
    expected = apply_flags(str(path), {"F": True})
    assert capsys.readouterr().out == expected + "\n"


def test_main_last_option_wins(tmp_path, capsys):
    path = tmp_path / "1:2,S"
    path.write_text("x")
    assert main(["-S", "-s", str(path)]) == 0
    assert capsys.readouterr().out == apply_flags(str(path), {"S": False}) + "\n"


def test_main_unchanged_silent_unless_verbose(tmp_path, capsys):
    path = tmp_path / "1:2,S"
    path.write_text("x")
    assert main(["-S", str(path)]) == 0
    assert capsys.readouterr().out == ""
    assert path.exists()


def test_main_usage():
    assert main(["-Q"]) == 1