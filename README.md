# maildirtools

A set of small, composable command-line tools for mail stored in maildirs.
Each tool does one job, takes message file names as arguments or on
standard input, and writes plain text, so they combine with ordinary shell
pipes.

## Installation

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Commands

| Command     | What it does |
|-------------|--------------|
| `mdirs`     | Print every maildir found below the given directories (`-0` separates with NUL). |
| `mlist`     | List the messages in maildirs, filtered by flags (`-S`, `-s`, `-X`, `-x`, ...), by `new`/`cur` (`-N`, `-n`, `-C`, `-c`), or summarised per folder (`-i`). |
| `minc`      | Move messages from `new/` to `cur/` and print their new names (`-q` to stay quiet). |
| `mpick`     | Read a message list on standard input and select messages with an expression language (`-t 'from =~ "example.com" && !seen'`), message list arguments, and whole-thread selection (`-T`); `-v` reports counts. |
| `maddr`     | Print the addresses found in address headers (`-a` for bare addresses, `-H` to choose the colon-separated headers). |
| `magrep`    | Search headers or bodies with regular expressions: `magrep subject:invoice`, `magrep '*:pattern'` for any header, `magrep /:pattern` for plain-text bodies. |
| `mflag`     | Set or clear maildir flags by renaming files (`-S` to mark seen, `-s` to unmark, `-X`/`-x` for arbitrary flags, `-v` to echo unchanged names). |
| `mdeliver`  | Deliver a message (or, with `-M`, an mboxrd stream) from standard input into a maildir. |
| `mrefile`   | Move or copy (`-k`) existing messages into another maildir, keeping their flags. |
| `mexport`   | Write messages as an mboxrd stream; `-S` adds `Status:` and `X-Status:` headers. |
| `mmime`     | Turn a draft with `#type/subtype path` lines into a MIME message; `-r` makes a single text part, `-c` checks whether MIME encoding is needed. |
| `mflow`     | Reflow `format=flowed` text to the terminal width (`-w` to set it, `-f` to wrap any long line, `-q` to add a quote level). |
| `mdate`     | Print the current date in RFC 5322 format. |

## Examples

List the senders of all unread messages in the inbox:

```
mlist -s ~/Mail/INBOX | maddr -H from
```

File everything from one sender into an archive folder:

```
mlist ~/Mail/INBOX | mpick -t 'from =~~ "alice@example.com"' | mrefile ~/Mail/archive
```

Mark matching messages as seen:

```
mlist ~/Mail/INBOX | magrep -l subject:newsletter | mflag -S
```

Export a folder as an mbox:

```
mlist ~/Mail/lists | mexport -S > lists.mbox
```

## Library use

The parsing pieces are usable from Python as well:

```python
from maildirtools.message import parse_message, parse_date, iter_addresses

msg = parse_message(b"From: Alice <alice@example.com>\nDate: Mon, 1 Jan 2024 10:00:00 +0000\n\nhello\n")
print(msg.header("from"))
print(parse_date(msg.header("date")))
for display, address in iter_addresses(msg.header("from")):
    print(display, address)
```

`maildirtools.mime` provides `encode_qp`, `encode_base64`,
`encode_header` and `attachment_disposition`; `maildirtools.pickexpr`
exposes `parse_expr` and `parse_msglist` for the `mpick` expression
language, and `maildirtools.pick` has `Picker` and `evaluate` to apply
them.

## What is not included

There is no command for printing selected headers of messages in a
formatted way, and no command for generating `Message-ID` values.
Header values can be read from Python with `Message.header` and
`Message.headers`, and addresses listed with `maddr`.