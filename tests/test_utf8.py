import pytest

from maildirtools.utf8 import u8decode


@pytest.mark.parametrize("ch", ["A", "~", "\x7f", "é", "\u07ff", "\u0800", "€", "\ufffd", "\U00010000", "😀", "\U0010ffff"])
def test_decodes_like_python(ch):
    encoded = ch.encode("utf-8")
    assert u8decode(encoded) == (ord(ch), len(encoded))


def test_only_first_code_point_is_decoded():
    encoded = "ü".encode("utf-8")
    assert u8decode(encoded + b"rest") == (ord("ü"), len(encoded))


def test_empty_and_nul():
    assert u8decode(b"") == (0, 0)
    assert u8decode(b"\x00abc") == (0, 0)


def test_walks_a_whole_string():
    text = "naïve ☃ 𝄞"
    data = text.encode("utf-8")
    decoded = []
    while data:
        cp, length = u8decode(data)
        decoded.append(chr(cp))
        data = data[length:]
    assert "".join(decoded) == text


@pytest.mark.parametrize(
    "data",
    [
        b"\x80",
        b"\xbf",
        b"\xc0\x80",
        b"\xc1\xbf",
        b"\xe0\x80\x80",
        b"\xed\xa0\x80",
        b"\xf0\x80\x80\x80",
        b"\xf4\x90\x80\x80",
        b"\xf5\x80\x80\x80",
        b"\xff",
        b"\xe2\x82",
        b"\xc3",
        b"\xc3A",
    ],
)
def test_invalid_sequences(data):
    with pytest.raises(ValueError):
        u8decode(data)


@pytest.mark.parametrize("data", [b"\xed\xa0\x80", b"\xc0\x80", b"\xf4\x90\x80\x80"])
def test_rejects_what_python_rejects(data):
    with pytest.raises(UnicodeDecodeError):
        data.decode("utf-8")
    with pytest.raises(ValueError):
        u8decode(data)