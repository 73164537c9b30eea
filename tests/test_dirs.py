from maildirtools.dirs import find_maildirs, main


def make_maildir(path):
    for sub in ("cur", "new", "tmp"):
        (path / sub).mkdir(parents=True)


def test_finds_maildirs_and_dot_folders(tmp_path):
    top = tmp_path / "mail"
    make_maildir(top / "inbox")
    make_maildir(top / "inbox" / ".Sub")
    make_maildir(top / "inbox" / "plain")
    make_maildir(top / "lists" / "a")
    (top / "notes.txt").write_text("x")
    root = top.resolve()
    found = sorted(find_maildirs(top))
    expected = sorted(str(root / p) for p in ("inbox", "inbox/.Sub", "lists/a"))
    assert found == expected


def test_top_level_maildir(tmp_path):
    make_maildir(tmp_path / "box")
    assert list(find_maildirs(tmp_path / "box")) == [str((tmp_path / "box").resolve())]


def test_missing_directory_yields_nothing(tmp_path):
    assert list(find_maildirs(tmp_path / "none")) == []


def test_needs_both_cur_and_new(tmp_path):
    (tmp_path / "half" / "cur").mkdir(parents=True)
    assert list(find_maildirs(tmp_path / "half")) == []


def test_main_nul_separator(tmp_path, capsys):
    make_maildir(tmp_path / "box")
    assert main(["-0", str(tmp_path / "box")]) == 0
    assert capsys.readouterr().out == str((tmp_path / "box").resolve()) + "\0"


def test_main_usage():
    assert main([]) == 1