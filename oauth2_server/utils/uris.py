"""Redirect URI parsing, matching and argument helpers."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional
from urllib.parse import SplitResult, parse_qsl, urlencode, urlsplit, urlunsplit

_FORBIDDEN_HOST_CHARACTERS = set(":#?[]")


def _split(uri: str) -> Optional[SplitResult]:
    """Parse ``uri`` eagerly, returning None when any component is invalid."""
    if not isinstance(uri, str) or not uri:
        return None
    try:
        parsed = urlsplit(uri)
        # Accessing .port validates it.
        parsed.port
    except ValueError:
        return None
    return parsed


def is_valid_redirect_uri(uri: str) -> bool:
    """Check a URI is acceptable for registration on a client.

    The URI needs a scheme and a host, must not embed credentials, and the
    host cannot contain any of ``:#?[]``.
    """
    parsed = _split(uri)
    if parsed is None or not parsed.scheme or not parsed.netloc:
        return False
    if "@" in parsed.netloc:
        return False
    host = parsed.hostname
    if not host:
        return False
    return not (_FORBIDDEN_HOST_CHARACTERS & set(host))


def _comparable(parsed: SplitResult) -> tuple:
    return (
        parsed.scheme.lower(),
        parsed.username,
        parsed.password,
        parsed.hostname,
        parsed.port,
        parsed.path,
    )


def redirect_uri_matches(registered: Iterable[str], uri: str) -> bool:
    """Return True when ``uri`` matches one of the ``registered`` URIs.

    Scheme, userinfo, host, port and path must be identical; query string and
    fragment are ignored.
    """
    supplied = _split(uri)
    if supplied is None or not supplied.scheme:
        return False
    wanted = _comparable(supplied)
    for candidate in registered:
        parsed = _split(candidate)
        if parsed is None:
            continue
        if _comparable(parsed) == wanted:
            return True
    return False


def add_query_args(uri: str, args: Mapping[str, str]) -> str:
    """Merge ``args`` into the query string of ``uri``, keeping existing pairs."""
    parsed = urlsplit(uri)
    pairs = [(key, value) for key, value in parse_qsl(parsed.query, keep_blank_values=True) if key not in args]
    pairs.extend(args.items())
    return urlunsplit(parsed._replace(query=urlencode(pairs)))


def with_fragment_args(uri: str, args: Mapping[str, str]) -> str:
    """Replace the fragment of ``uri`` with the encoded ``args``."""
    parsed = urlsplit(uri)
    return urlunsplit(parsed._replace(fragment=urlencode(list(args.items()))))


__all__ = [
    "add_query_args",
    "is_valid_redirect_uri",
    "redirect_uri_matches",
    "with_fragment_args",
]
