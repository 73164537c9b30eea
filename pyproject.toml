[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "maildirtools"
version = "1.0.0"
description = "Small command-line tools for reading, searching, filing and composing mail kept in maildirs"
requires-python = ">=3.10"
dependencies = []
keywords = ["maildir", "mail", "email", "mbox", "mime", "rfc822", "mua"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Email :: Email Clients (MUA)",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
maddr = "maildirtools.addr:main"
magrep = "maildirtools.grep:main"
mdate = "maildirtools.date:main"
mdeliver = "maildirtools.deliver:main"
mrefile = "maildirtools.deliver:refile_main"
mdirs = "maildirtools.dirs:main"
mexport = "maildirtools.export:main"
mflag = "maildirtools.flag:main"
mflow = "maildirtools.flow:main"
minc = "maildirtools.inc:main"
mlist = "maildirtools.listing:main"
mmime = "maildirtools.mime:main"
mpick = "maildirtools.pick:main"

[tool.hatch.build.targets.wheel]
packages = ["maildirtools"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"
