import re

import pytest

from maildirtools.grep import Grep, main


@pytest.fixture
def mail(tmp_path):
    p = tmp_path / "m:2,S"
    p.write_bytes(b"Subject: Hello World\nFrom: Ann <ann@example.com>\n\nsome body text\n")
    return str(p)


def test_subject_match(mail):
    g = Grep("subject", "hello", ignore_case=True)
    g.search(mail)
    assert g.output == [mail]
    assert g.matches == 1


def test_no_match(mail):
    g = Grep("subject", "nothing")
    g.search(mail)
    assert g.output == [] and g.matches == 0


def test_invert(mail):
    g = Grep("subject", "nothing", invert=True)
    g.search(mail)
    assert g.output == [mail]


def test_only_matching(mail):
    g = Grep("subject", "o", only_matching=True, header_prefix=True)
    g.search(mail)
    assert g.output == ["subject: o", "subject: o"]


def test_flags(mail):
    g = Grep("", "S")
    g.search(mail)
    assert g.matches == 1


def test_body(mail):
    g = Grep("/", "body")
    g.search(mail)
    assert g.output == [mail]


def test_addresses(mail):
    g = Grep("from", "^ann@", addresses=True, print_path=True)
    g.search(mail)
    assert g.output == [f"{mail}: from: ann@example.com"]


def test_bad_regex():
    with pytest.raises(re.error):
        Grep("subject", "(")


def test_main_status(mail):
    assert main(["subject:Hello", mail]) == 0
    assert main(["subject:zzz", mail]) == 1
    assert main(["nocolon", mail]) == 2