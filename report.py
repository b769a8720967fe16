"""Console report of a parsed mod file."""

import sys
from typing import TextIO

from modfile import Manifest
from modpath import replace_path_version


def format_report(manifest: Manifest) -> list[str]:
    """Return the Go version line followed by one bullet per required module."""
    lines = [f"go version: {manifest.go_version}", "modules:"]
    lines.extend(f"- {replace_path_version(r.path)}" for r in manifest.require)
    return lines


def print_report(manifest: Manifest, out: TextIO | None = None) -> None:
    out = out or sys.stdout
    for line in format_report(manifest):
        out.write(f"{line}\n")
    out.flush()
