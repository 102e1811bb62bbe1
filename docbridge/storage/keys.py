"""Percent-encoding of S3 object keys."""

from __future__ import annotations

from urllib.parse import quote, unquote

# Characters left intact by ``encodeURIComponent``-style quoting.
_COMPONENT_SAFE = "!~*'()"

# Characters that must always reach the canonical request in %XX form.
_RESERVED_SUBSTITUTIONS = str.maketrans(
    {
        "!": "%21",
        "'": "%27",
        "(": "%28",
        ")": "%29",
        "*": "%2A",
        "[": "%5B",
        "]": "%5D",
        "{": "%7B",
        "}": "%7D",
        "#": "%23",
        "?": "%3F",
        "&": "%26",
        "=": "%3D",
        "+": "%2B",
        " ": "%20",
    }
)


def _decode_once(key: str) -> str:
    try:
        return unquote(key, errors="strict")
    except UnicodeDecodeError:
        return key


def encode_segment(segment: str) -> str:
    """Encode a single path segment (no ``/`` handling)."""

    return quote(segment, safe=_COMPONENT_SAFE).translate(_RESERVED_SUBSTITUTIONS)


def encode_key(key: str) -> str:
    """Encode ``key`` for both the URL path and the SigV4 canonical URI.

    Keys that are already percent-encoded are decoded once first so the result
    is never double-encoded. Path separators are preserved and spaces always
    become ``%20``.
    """

    decoded = _decode_once(key)
    return "/".join(encode_segment(part) for part in decoded.split("/"))


__all__ = ["encode_key", "encode_segment"]
