"""Semantic version checks for module versions.

Module versions are semver strings with a leading ``v``. The shorthands
``v1`` and ``v1.2`` are accepted and stand for ``v1.0.0`` and ``v1.2.0``.
"""

import re

_NUM = r"(?:0|[1-9][0-9]*)"
_PRE_IDENT = r"(?:0|[1-9][0-9]*|[0-9]*[A-Za-z-][0-9A-Za-z-]*)"

_SEMVER_RE = re.compile(
    rf"v({_NUM})"
    rf"(?:\.({_NUM})"
    rf"(?:\.({_NUM})"
    rf"(-{_PRE_IDENT}(?:\.{_PRE_IDENT})*)?"
    r"(\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?"
    r")?)?"
)

INCOMPATIBLE = "+incompatible"


def _match(version: str) -> re.Match | None:
    return _SEMVER_RE.fullmatch(version)


def is_valid(version: str) -> bool:
    return _match(version) is not None


def major(version: str) -> str:
    """Return the major version prefix (``v2`` for ``v2.1.0``), or "" if invalid."""
    m = _match(version)
    if m is None:
        return ""
    return f"v{m.group(1)}"


def build(version: str) -> str:
    """Return the build suffix including its ``+``, or ""."""
    m = _match(version)
    if m is None:
        return ""
    return m.group(5) or ""


def canonical(version: str) -> str:
    """Return the canonical ``vMAJOR.MINOR.PATCH[-PRE]`` form, or "" if invalid.

    Build metadata is dropped, except ``+incompatible``, which is kept
    because it changes how the version relates to its module path.
    """
    m = _match(version)
    if m is None:
        return ""
    maj, minor, patch, pre, suffix = m.groups()
    result = f"v{maj}.{minor or '0'}.{patch or '0'}{pre or ''}"
    if suffix == INCOMPATIBLE:
        result += INCOMPATIBLE
    return result
