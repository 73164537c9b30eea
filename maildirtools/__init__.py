"""Command-line tools and helpers for maildirs and RFC 822 messages: listing, searching, flagging, delivery, export, MIME building and reflowing."""

__version__ = "1.0.0"