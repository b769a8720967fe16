"""Shared fixtures for modlist tests."""

import sys
from pathlib import Path

import pytest

# Add project root to path so we can import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import Config


MOD_URL = "https://github.com/example/project/blob/main/go.mod"


@pytest.fixture
def mod_lines():
    """Lines of a small but realistic go.mod file."""
    return [
        "module github.com/example/project",
        "",
        "go 1.21",
        "",
        "require (",
        "\tgithub.com/gdamore/tcell/v2 v2.6.0",
        "\tgithub.com/mattn/go-isatty v0.0.20",
        "\tgolang.org/x/sys v0.15.0 // indirect",
        ")",
    ]


@pytest.fixture
def github_payload(mod_lines):
    """Blob page data as served for a file view, trimmed to a few unrelated fields."""
    return {
        "payload": {
            "allShortcutsEnabled": False,
            "fileTree": {"": {"items": [{"name": "go.mod", "path": "go.mod"}], "totalCount": 1}},
            "repo": {"id": 1, "defaultBranch": "main", "name": "project", "ownerLogin": "example"},
            "refInfo": {"name": "main", "refType": "branch"},
            "path": "go.mod",
            "currentUser": None,
            "blob": {
                "rawLines": mod_lines,
                "stylingDirectives": [[{"start": 0, "end": 6, "cssClass": "pl-k"}]],
                "csv": None,
                "headerInfo": {"blobSize": "214 Bytes", "lineInfo": {"truncatedLoc": "9"}},
                "language": "Go Module",
                "symbols": {"timedOut": False, "symbols": []},
            },
            "csrf_tokens": {"/repos/preferences": {"post": "token"}},
        },
        "title": "project/go.mod at main",
    }


@pytest.fixture
def sample_config():
    """Pre-configured Config instance for testing."""
    return Config(
        mod_url=MOD_URL,
        timeout=30.0,
        raw=False,
        filename="go.mod",
    )


@pytest.fixture
def config_toml_content():
    """Sample modlist.toml content."""
    return """
mod_url = "https://raw.githubusercontent.com/example/project/main/go.mod"
timeout = 10
raw = true
"""
