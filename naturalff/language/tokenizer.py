"""Split directive text into comments, quoted strings and bare words."""

import re
from typing import Iterator

from naturalff.models import Token, TokenKind

DIRECTIVE_SEPARATOR = ";"

# Longest construct first: a comment swallows the rest of its line, a quoted
# string swallows whitespace up to the next quote (no escapes), and a bare
# word is anything else that is not whitespace, a quote or a hash.
_SIMPLE_RE = re.compile(r'(?P<comment>#[^\n]*\n?)|(?P<string>"[^"]*")|(?P<word>[^\s"#]+)')
_LINE_AWARE_RE = re.compile(r'(?P<comment>#[^\n]*)|(?P<string>"[^"]*")|(?P<word>[^\s"#]+)')


def normalize(source: str) -> str:
    """Turn every directive separator into whitespace.

    Applied to the raw text, so a ``;`` inside a quoted string becomes a space.
    """
    return source.replace(DIRECTIVE_SEPARATOR, " ")


def iter_tokens(source: str, line_aware: bool = False) -> Iterator[Token]:
    """Yield tokens in source order.

    Characters that start no construct (an unterminated quote, stray
    whitespace) are skipped silently. In the simple variant a comment keeps
    its trailing newline; the line-aware variant drops it.
    """
    text = normalize(source)
    regex = _LINE_AWARE_RE if line_aware else _SIMPLE_RE
    line = 1
    line_start = 0
    scanned = 0
    for match in regex.finditer(text):
        start = match.start()
        newlines = text.count("\n", scanned, start)
        if newlines:
            line += newlines
            line_start = text.rfind("\n", scanned, start) + 1
        scanned = start
        yield Token(
            kind=TokenKind(match.lastgroup),
            text=match.group(),
            line=line,
            offset=start - line_start,
        )


def tokenize(source: str, line_aware: bool = False) -> list[Token]:
    return list(iter_tokens(source, line_aware=line_aware))


def is_comment(token: Token) -> bool:
    return token.text.startswith("#")
