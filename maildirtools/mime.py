"""Build MIME messages from plain drafts and check whether one is needed."""

from __future__ import annotations

import base64
import getopt
import os
import random
import sys

_USAGE = "Usage: mmime [-c|-r] [-t CONTENT-TYPE] < message"
_ATOM_SPECIALS = set(b" ()<>@,;:\\/[]?=")
_B64_LINE = 76


def encode_base64(data: bytes) -> bytes:
    """Base64-encode data in lines of 76 characters, ending with a newline."""
    full = len(data) - len(data) % 3
    body = base64.b64encode(data[:full])
    chunks = [body[i:i + _B64_LINE] for i in range(0, len(body), _B64_LINE)]
    out = b"".join(c + b"\n" if len(c) == _B64_LINE else c for c in chunks)
    return out + base64.b64encode(data[full:]) + b"\n"


def _utf8_width(byte: int) -> int:
    if byte & 0x80 == 0 or byte & 0xC0 == 0x80:
        return 3
    if byte & 0xE0 == 0xC0:
        return 6
    if byte & 0xF0 == 0xE0:
        return 9
    if byte & 0xF8 == 0xF0:
        return 12
    return 3


def encode_qp(data: bytes, maxlinelen: int = 78, linelen: int = 0) -> tuple[bytes, int]:
    """Quoted-printable encode data.

    A positive starting linelen selects encoded-word (header) mode.
    Returns (encoded bytes, column reached at the end).
    """
    out = bytearray()
    header = linelen > 0
    prev = 0
    starts_from = data.startswith(b"From ")
    size = len(data)

    for i, c in enumerate(data):
        nxt = data[i + 1] if i + 1 < size else None
        if linelen >= maxlinelen - _utf8_width(c) - int(header):
            linelen = 0
            prev = 0x0A
            if header:
                out += b"?=\n =?UTF-8?Q?"
                linelen += 11
            else:
                out += b"=\n"

        if (c > 126 or c == 0x3D
                or (linelen == 0 and (starts_from or (c == 0x2E and nxt in (0x0A, 0x0D))))):
            out += b"=%02X" % c
            linelen += 3
            prev = c
        elif header and c in (0x0A, 0x09, 0x5F):
            out += b"=%02X" % c
            linelen += 3
            prev = 0x5F
        elif header and c == 0x20:
            out += b"_"
            linelen += 1
            prev = 0x5F
        elif c < 33 and c != 0x0A:
            if c in (0x20, 0x09) and nxt is not None and nxt not in (0x0A, 0x0D):
                out.append(c)
                linelen += 1
                prev = c
            else:
                out += b"=%02X" % c
                linelen += 3
                prev = 0x5F
        elif c == 0x0A:
            if prev in (0x20, 0x09):
                out += b"=\n"
            out += b"\n"
            linelen = 0
            prev = 0
        else:
            out.append(c)
            linelen += 1
            prev = c

    if linelen > 0 and not header:
        out += b"=\n"
    return bytes(out), linelen


def attachment_disposition(filename: str, disposition: str = "attachment") -> str:
    """Return the Content-Disposition header line (with newline) for filename."""
    if not filename:
        return f"Content-Disposition: {disposition}\n"
    raw = filename.encode("utf-8", "surrogateescape")

    if len(raw) <= 36 and not any(b < 32 or b == 0x22 or b >= 127 for b in raw):
        q = '"' if any(b in _ATOM_SPECIALS for b in raw) else ""
        return f"Content-Disposition: {disposition}; filename={q}{filename}{q}\n"

    parts = [f"Content-Disposition: {disposition}"]
    pos = 0
    index = 0
    while pos < len(raw):
        head = f";\n filename*{index}*="
        if index == 0:
            head += "UTF-8''"
        width = len(head)
        tokens = []
        while pos < len(raw) and width < 78 - 3:
            b = raw[pos]
            pos += 1
            tok = f"%{b:02x}" if b <= 32 or b == 0x22 or b > 126 else chr(b)
            tokens.append(tok)
            width += len(tok)
        parts.append(head + "".join(tokens))
        index += 1
    return "".join(parts) + "\n"


def encode_header(line) -> bytes:
    """Encode a header line, turning words with 8-bit bytes into encoded-words."""
    if isinstance(line, str):
        line = line.encode("utf-8", "surrogateescape")
    if not line:
        return b""
    if line.endswith(b"\n"):
        line = line[:-1]

    out = bytearray()
    size = len(line)
    s = 0
    if line[:1] not in (b" ", b"\t"):
        colon = line.find(b":")
        s = size if colon < 0 else colon + 1
        out += line[:s]

    prevq = False
    linelen = s
    while s < size:
        e = s
        while e < size and line[e] == 0x20:
            e += 1
        highbit = 0
        while e < size and line[e] != 0x20:
            if line[e] >= 127:
                highbit += 1
            e += 1

        force = bool(highbit)
        if not force:
            if e - s >= 998:
                force = True
            else:
                if e - s >= 78 - linelen:
                    out += b"\n"  # wrap in advance before a long word
                    linelen = 0
                if linelen <= 1 and line[s:s + 2] == b"  ":
                    force = True
                else:
                    if line[s] != 0x20:
                        out += b" "
                        linelen += 1
                    out += line[s:e]
                    linelen += e - s
                    prevq = False
        if force:
            if not prevq and line[s] == 0x20:
                s += 1
            width = e - s
            if linelen >= 78 - 13 - 4 or (width < (78 - 13) // 3
                                          and width >= (78 - linelen - 13) // 3):
                out += b"\n"
                linelen = 0
            out += b" =?UTF-8?Q?"
            linelen += 11
            encoded, linelen = encode_qp(line[s:e], 78, linelen)
            out += encoded
            out += b"?="
            linelen += 2
            prevq = True
        s = e
    out += b"\n"
    return bytes(out)


def _max_line(chunk: bytes) -> int:
    return max((len(part) for part in chunk.split(b"\n")[:-1]), default=0)


def _attach_file(out, path: str, spec: str) -> None:
    content_type, hash_sign, disposition = spec.partition("#")
    if not hash_sign:
        disposition = "attachment"
    path, gt, filename = path.partition(">")
    if not gt:
        filename = path.rsplit("/", 1)[-1]

    try:
        with open(path, "rb") as handle:
            content = handle.read()
    except OSError as exc:
        print(f"mmime: error attaching file '{path}': {exc.strerror}", file=sys.stderr)
        return

    if content_type == "mblaze/raw":
        out.write(content)
        return

    bitlow = sum(1 for b in content if b < 32 and b not in (0x09, 0x0A))
    bithigh = sum(1 for b in content if b > 127)
    maxlinelen = _max_line(content)
    size = len(content)

    out.write(attachment_disposition(filename, disposition).encode("utf-8", "surrogateescape"))

    def headers(encoding: str) -> None:
        out.write(f"Content-Type: {content_type}\n"
                  f"Content-Transfer-Encoding: {encoding}\n\n".encode())

    if content_type == "message/rfc822":
        headers("8bit" if bitlow or bithigh else "7bit")
        out.write(content)
    elif bitlow == 0 and bithigh == 0 and maxlinelen <= 78:
        headers("7bit")
        out.write(content)
    elif bitlow == 0 and bithigh == 0:
        headers("quoted-printable")
        out.write(encode_qp(content)[0])
    elif bitlow > size // 10 or bithigh > size // 4:
        headers("base64")
        out.write(encode_base64(content))
    else:
        headers("quoted-printable")
        out.write(encode_qp(content)[0])


def build_mime(stream, out, raw: bool = False, content_type: str = "multipart/mixed") -> None:
    """Read a draft from binary stream and write a MIME message to binary out.

    Body lines '#type/subtype path' attach files; with raw, the body is
    written as a single quoted-printable text part.
    """
    sep = "----_=_%08x%08x%08x_=_" % tuple(random.getrandbits(31) for _ in range(3))
    boundary = sep.encode()
    in_header = True
    in_text = False

    for line in stream:
        if in_header:
            if line.startswith(b"\n"):
                in_header = False
                out.write(b"MIME-Version: 1.0\n")
                if raw:
                    out.write(b"Content-Type: text/plain; charset=UTF-8\n"
                              b"Content-Transfer-Encoding: quoted-printable\n\n")
                else:
                    out.write(f'Content-Type: {content_type}; boundary="{sep}"\n\n'
                              "This is a multipart message in MIME format.\n".encode())
            else:
                out.write(encode_header(line))
            continue

        if not raw and line.startswith(b"#"):
            space = line.find(b" ")
            if space >= 0 and b"/" in line[:space]:
                out.write(b"\n--" + boundary + b"\n")
                target = line[space + 1:]
                if target.endswith(b"\n"):
                    target = target[:-1]
                _attach_file(out, os.fsdecode(target), os.fsdecode(line[1:space]))
                in_text = False
                continue

        if not raw and not in_text:
            out.write(b"\n--" + boundary + b"\n"
                      b"Content-Type: text/plain; charset=UTF-8\n"
                      b"Content-Disposition: inline\n"
                      b"Content-Transfer-Encoding: quoted-printable\n\n")
            in_text = True

        out.write(encode_qp(line.split(b"\0", 1)[0])[0])

    if not raw and not in_header:
        out.write(b"\n--" + boundary + b"--\n")


def check_mime(data: bytes) -> bool:
    """Whether the message can be sent as is, without MIME encoding."""
    blank = data.find(b"\n\n")
    if blank >= 0:
        header, body = data[:blank + 2], data[blank + 2:]
    else:
        header, body = data, b""
    if any(b > 127 or (b < 32 and b not in (0x09, 0x0A)) for b in data):
        return False
    return (_max_line(header) < 998 and _max_line(body) <= 78
            and data.endswith(b"\n"))


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        opts, args = getopt.getopt(argv, "crt:")
    except getopt.GetoptError:
        print(_USAGE, file=sys.stderr)
        return 1
    if args:
        print(_USAGE, file=sys.stderr)
        return 1

    check = raw = False
    content_type = "multipart/mixed"
    for opt, value in opts:
        if opt == "-c":
            check = True
        elif opt == "-r":
            raw = True
        elif opt == "-t":
            content_type = value

    if check:
        return 0 if check_mime(sys.stdin.buffer.read()) else 1
    build_mime(sys.stdin.buffer, sys.stdout.buffer, raw, content_type)
    sys.stdout.buffer.flush()
    return 0