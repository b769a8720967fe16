"""Module path helpers for modlist."""

import re

import versions

_PATH_VERSION_RE = re.compile(r"/v[0-9]+\Z")
_GOPKG_IN_RE = re.compile(r"(.*?)(\.v(?:0|[1-9][0-9]*)(?:-unstable)?)\Z")


class InvalidVersionError(ValueError):
    """A version that does not fit the module path it is declared for."""

    def __init__(self, version: str, reason: str) -> None:
        super().__init__(f'version "{version}" invalid: {reason}')
        self.version = version
        self.reason = reason


def replace_path_version(path: str) -> str:
    """Drop a trailing ``/vN`` segment from a module path.

    ``github.com/foo/bar/v2`` becomes ``github.com/foo/bar``; paths without
    such a final segment come back unchanged.
    """
    if _PATH_VERSION_RE.search(path):
        return "/".join(path.split("/")[:-1])
    return path


def split_path_version(path: str) -> tuple[str, str, bool]:
    """Split a module path into prefix and major-version suffix.

    Returns ``(prefix, path_major, ok)``. ``path_major`` is ``/vN`` (or
    ``.vN`` for gopkg.in paths) and empty when there is none. ``ok`` is False
    when the path ends in a malformed suffix such as ``/v1`` or ``/v02``.
    """
    if path.startswith("gopkg.in/"):
        m = _GOPKG_IN_RE.fullmatch(path)
        if m is None or not m.group(1):
            return path, "", False
        return m.group(1), m.group(2), True

    i = len(path)
    dot = False
    while i > 0 and (path[i - 1].isdigit() and path[i - 1].isascii() or path[i - 1] == "."):
        if path[i - 1] == ".":
            dot = True
        i -= 1
    if i <= 1 or i == len(path) or path[i - 1] != "v" or path[i - 2] != "/":
        return path, "", True

    prefix, path_major = path[: i - 2], path[i - 2 :]
    if dot or len(path_major) <= 2 or path_major[2] == "0" or path_major == "/v1":
        return path, "", False
    return prefix, path_major, True


def check_path_major(version: str, path_major: str) -> None:
    """Raise InvalidVersionError unless ``version`` belongs to ``path_major``."""
    if path_major.startswith(".v") and path_major.endswith("-unstable"):
        path_major = path_major.removesuffix("-unstable")
    if version.startswith("v0.0.0-") and path_major == ".v1":
        # Old pseudo-versions for gopkg.in .v1 paths were generated as v0.
        return

    m = versions.major(version)
    if not path_major:
        if m in ("v0", "v1") or versions.build(version) == versions.INCOMPATIBLE:
            return
        expected = "v0 or v1"
    else:
        if m == path_major[1:]:
            return
        expected = path_major[1:]
    raise InvalidVersionError(version, f"should be {expected}, not {m}")
