"""Mod file retrieval for modlist.

A mod file is fetched with a single GET and the response body is handed to a
content parser. The default parser passes the bytes through untouched;
``github_json_parser`` instead digs the file's lines out of the JSON page
data that GitHub serves for a blob view.
"""

import json
from collections.abc import Callable, Iterator

import httpx

from logging_setup import get_logger

DEFAULT_TIMEOUT = 30.0

ContentParser = Callable[[Iterator[bytes]], bytes]

logger = get_logger("retrieve")


class EmptyContentError(ValueError):
    """The page data did not carry the file's raw lines."""

    def __init__(self, message: str = "empty content") -> None:
        super().__init__(message)


class PayloadShapeError(ValueError):
    """The raw lines were present but not a list of strings."""


def read_all(chunks: Iterator[bytes]) -> bytes:
    """Return the body exactly as received."""
    return b"".join(chunks)


def github_json_parser(chunks: Iterator[bytes]) -> bytes:
    """Extract file content from a GitHub blob page-data document.

    The document is large and its layout changes with the web front-end, so
    only ``payload.blob.rawLines`` is looked at; everything else is ignored.
    Only the first JSON value in the body is decoded.

    Raises:
        json.JSONDecodeError: body is not JSON
        EmptyContentError: rawLines is missing or null
        PayloadShapeError: rawLines is not a list of strings
    """
    text = b"".join(chunks).decode("utf-8")
    document, _ = json.JSONDecoder().raw_decode(text.lstrip(" \t\r\n"))

    raw_lines = None
    if isinstance(document, dict):
        payload = document.get("payload")
        if isinstance(payload, dict):
            blob = payload.get("blob")
            if isinstance(blob, dict):
                raw_lines = blob.get("rawLines")

    if raw_lines is None:
        raise EmptyContentError()
    if not isinstance(raw_lines, list) or not all(isinstance(line, str) for line in raw_lines):
        raise PayloadShapeError(
            f"payload.blob.rawLines: expected list of strings, got {type(raw_lines).__name__}"
        )

    logger.debug("Extracted %d raw lines", len(raw_lines))
    return "\n".join(raw_lines).encode("utf-8")


def retrieve_mod_file(
    url: str,
    parser: ContentParser = read_all,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> bytes:
    """Fetch ``url`` and run the response body through ``parser``.

    The status code is not checked: an error page simply fails to parse.
    Transport errors from httpx propagate unchanged.
    """
    logger.debug("GET %s", url)
    with httpx.stream(
        "GET",
        url,
        headers={"Accept": "*/*"},
        timeout=timeout,
        follow_redirects=True,
    ) as response:
        if not response.is_success:
            logger.debug("Unexpected status %d from %s", response.status_code, url)
        content = parser(response.iter_bytes())

    logger.debug("Retrieved %d bytes of content", len(content))
    return content
