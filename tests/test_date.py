from datetime import datetime, timezone, timedelta

from maildirtools.date import format_date, main
from maildirtools.message import parse_date


def test_fixed():
    d = datetime(2020, 3, 5, 7, 8, 9, tzinfo=timezone.utc)
    assert format_date(d) == "Thu, 05 Mar 2020 07:08:09 +0000"


def test_roundtrip():
    d = datetime(2021, 6, 1, 12, 0, 0, tzinfo=timezone(timedelta(hours=2)))
    assert parse_date(format_date(d)) == int(d.timestamp())


def test_main(capsys):
    assert main([]) == 0
    out = capsys.readouterr().out
    assert out.endswith("\n")
    parse_date(out)
    assert len(out.split()) == 6