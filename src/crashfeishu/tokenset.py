"""Token set codec for the supervisor event listener protocol.

Both the header line and the event body of a supervisor notification are
encoded as space separated ``key:value`` tokens, e.g.::

    ver:3.0 server:supervisor serial:21 pool:listener eventname:PROCESS_STATE_EXITED len:84

Values may contain colons (only the first colon splits a token).
"""

from typing import Mapping

from crashfeishu.errors import TokenSetError

__all__ = [
    "TokenSet",
    "TokenSetError",
    "format_token_set",
    "parse_token_set",
]

TokenSet = dict[str, str]


def parse_token_set(line: str) -> TokenSet:
    """Decode a line of ``key:value`` tokens.

    Runs of spaces and surrounding whitespace are tolerated. When a key
    repeats, the last value wins.

    Args:
        line: Token line, with or without the trailing newline.

    Returns:
        Mapping of token keys to values.

    Raises:
        TokenSetError: If a token has no colon.
    """
    tokens: TokenSet = {}
    for segment in line.strip().split(" "):
        if not segment:
            continue
        key, sep, value = segment.partition(":")
        if not sep:
            raise TokenSetError(f"Token without colon: {segment!r}")
        tokens[key] = value
    return tokens


def format_token_set(tokens: Mapping[str, str]) -> str:
    """Encode a mapping as a line of ``key:value`` tokens (no newline).

    Raises:
        TokenSetError: If a key or value could not be decoded back unchanged.
    """
    parts = []
    for key, value in tokens.items():
        if not key or " " in key or ":" in key:
            raise TokenSetError(f"Invalid token key: {key!r}")
        if " " in value:
            raise TokenSetError(f"Token value contains a space: {value!r}")
        parts.append(f"{key}:{value}")
    return " ".join(parts)
