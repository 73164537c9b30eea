"""Decoding of single UTF-8 code points."""

from __future__ import annotations


def u8decode(data: bytes) -> tuple[int, int]:
    """Decode the first UTF-8 code point of data.

    Returns (code point, length in bytes); an empty input or a leading NUL
    gives (0, 0). Raises ValueError on invalid or truncated UTF-8.
    """
    if not data or data[0] == 0:
        return 0, 0
    lead = data[0]
    second = data[1] if len(data) > 1 else 0

    if lead < 0x80:
        return lead, 1
    if lead < 0xC2:
        raise ValueError("continuation byte or overlong sequence")
    if lead < 0xE0:
        codepoint, extra = lead & 0x1F, 1
    elif lead < 0xF0:
        if lead == 0xE0 and second & 0xE0 == 0x80:
            raise ValueError("overlong sequence")
        if lead == 0xED and second & 0xE0 == 0xA0:
            raise ValueError("surrogate code point")
        codepoint, extra = lead & 0x0F, 2
    elif lead < 0xF5:
        if lead == 0xF0 and second & 0xF0 == 0x80:
            raise ValueError("overlong sequence")
        if lead == 0xF4 and second > 0x8F:
            raise ValueError("code point too high")
        codepoint, extra = lead & 0x07, 3
    else:
        raise ValueError("invalid lead byte")

    continuation = data[1:1 + extra]
    if len(continuation) < extra or any(b & 0xC0 != 0x80 for b in continuation):
        raise ValueError("invalid continuation byte")
    for byte in continuation:
        codepoint = (codepoint << 6) | (byte & 0x3F)
    return codepoint, extra + 1