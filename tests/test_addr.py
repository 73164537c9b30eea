import pytest

from maildirtools.addr import message_addresses, quote_display, main


@pytest.fixture
def mail(tmp_path):
    p = tmp_path / "m"
    p.write_bytes(
        b"From: Joe User <joe@example.com>\n"
        b"To: a@example.com, \"Doe, Jane\" <jane@example.com>\n"
        b"Subject: hi\n\nbody\n"
    )
    return p


def test_quote_plain():
    assert quote_display("Joe User") == "Joe User"


def test_quote_special():
    assert quote_display('Doe, J"x') == '"Doe, J\\"x"'


def test_addresses(mail):
    out = list(message_addresses(mail))
    assert out[0] == "Joe User <joe@example.com>"
    assert "a@example.com" in out
    assert '"Doe, Jane" <jane@example.com>' in out


def test_addresses_only(mail):
    out = list(message_addresses(mail, "to", True))
    assert out == ["a@example.com", "jane@example.com"]


def test_missing_file(tmp_path):
    assert list(message_addresses(tmp_path / "nope")) == []


def test_main(mail, capsys):
    assert main(["-a", str(mail)]) == 0
    assert "joe@example.com" in capsys.readouterr().out