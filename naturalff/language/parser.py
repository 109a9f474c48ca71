"""Command matcher: turns a token stream into typed command nodes."""

import logging
from dataclasses import dataclass

from naturalff import nodes
from naturalff.language.patterns import REGISTRY, CommandPattern, Params
from naturalff.language.tokenizer import is_comment, tokenize
from naturalff.models import Diagnostic, ParseResult, Token

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """Outcome of matching one directive starting at a given token index.

    ``consumed`` is the number of tokens the directive occupies on success.
    On failure it is zero and ``failed_at`` is the window index of the token
    that failed; the caller resynchronizes past it.
    """

    node: nodes.CommandNode | None = None
    source: str | None = None
    consumed: int = 0
    diagnostic: Diagnostic | None = None
    failed_at: int = 0

    @property
    def success(self) -> bool:
        return self.node is not None


def _failure(
    message: str,
    command: str,
    token: Token | None = None,
    detail: str | None = None,
    failed_at: int = 0,
) -> MatchResult:
    return MatchResult(
        failed_at=failed_at,
        diagnostic=Diagnostic(
            message=message,
            command=command,
            token=token.text if token else None,
            line=token.line if token else None,
            offset=token.offset if token else None,
            detail=detail,
        )
    )


def _bind_window(
    pattern: CommandPattern, window: list[Token]
) -> tuple[Params, int] | MatchResult:
    """Check a window against the pattern's expectations.

    Returns the bound parameters and the number of tokens used, or a failed
    MatchResult naming the first token that did not fit.
    """
    params: Params = {}
    skipped = 0
    used = 1
    expectations = sorted(pattern.expected_tokens, key=lambda t: t.position)
    i = 0
    while i < len(expectations):
        expectation = expectations[i]
        if expectation.optional:
            group = [
                e for e in expectations[i:]
                if e.optional and e.group == expectation.group
            ] if expectation.group else [expectation]
            positions = [e.position - skipped for e in group]
            present = all(
                p < len(window) and e.matches(window[p].text)
                for e, p in zip(group, positions)
            )
            for e, p in zip(group, positions):
                if e.param_name:
                    params[e.param_name] = window[p].text if present else e.default
            if present:
                used = max(used, positions[-1] + 1)
            else:
                skipped += len(group)
            i += len(group)
            continue

        position = expectation.position - skipped
        token = window[position]
        if not expectation.matches(token.text):
            return _failure(
                f"{pattern.name}: Invalid command arguments {{{token.text}}}",
                pattern.name,
                token,
                failed_at=position,
            )
        if expectation.param_name:
            params[expectation.param_name] = token.text
        used = max(used, position + 1)
        i += 1
    return params, used


def match_command(tokens: list[Token], start: int) -> MatchResult:
    """Match the directive whose keyword is ``tokens[start]``."""
    keyword = tokens[start]
    pattern = REGISTRY.get(keyword.text)
    if pattern is None:
        return _failure(f"Unknown command: {keyword.text}", keyword.text, keyword)

    if start + pattern.max_required >= len(tokens):
        return _failure(f"Incomplete command: {pattern.name}", pattern.name, keyword)

    end = min(start + pattern.max_position + 1, len(tokens))
    window = tokens[start:end]

    bound = _bind_window(pattern, window)
    if isinstance(bound, MatchResult):
        return bound
    params, used = bound
    window = window[:used]
    source = " ".join(t.text for t in window)

    verdict = pattern.validate(params)
    if verdict is not True:
        return _failure(
            f"Params didn't validate: {{{source}}}",
            pattern.name,
            keyword,
            detail=verdict if isinstance(verdict, str) else None,
            failed_at=used - 1,
        )

    return MatchResult(
        node=pattern.create_node(params),
        source=source,
        consumed=used,
    )


def _is_directive_start(token: Token) -> bool:
    return is_comment(token) or token.text in REGISTRY


def _resync(tokens: list[Token], start: int, failed_at: int = 0) -> int:
    """Index of the next keyword or comment after the failing token.

    Tokens up to ``start + failed_at`` were read as parameters of the failed
    directive, so a keyword among them does not start a new one. A comment
    in the failing slot still does.
    """
    failed = start + failed_at
    if failed_at and is_comment(tokens[failed]):
        return failed
    for i in range(failed + 1, len(tokens)):
        if _is_directive_start(tokens[i]):
            return i
    return len(tokens)


def parse_tokens(tokens: list[Token]) -> ParseResult:
    result = ParseResult()
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if is_comment(token):
            result.commands.append(nodes.Comment(content=token.text))
            result.source_snippets.append(token.text)
            i += 1
            continue

        match = match_command(tokens, i)
        if match.success:
            logger.debug("Matched %s: %s", match.node.kind, match.source)
            result.commands.append(match.node)
            result.source_snippets.append(match.source)
            i += match.consumed
            continue

        result.errors.append(match.diagnostic.message)
        result.diagnostics.append(match.diagnostic)
        next_index = _resync(tokens, i, match.failed_at)
        logger.debug(
            "%s; skipping %d token(s)", match.diagnostic.message, next_index - i
        )
        i = next_index
    return result


def parse(source: str, line_aware: bool = False) -> ParseResult:
    """Parse directive text into nodes, error strings and echoed directives.

    Each call builds its own result; nothing is shared between calls.
    """
    return parse_tokens(tokenize(source, line_aware=line_aware))
