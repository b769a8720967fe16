"""Configuration loading and validation for modlist."""

import tomllib
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse


DEFAULT_CONFIG_PATH = Path("modlist.toml")

DEFAULTS = {
    "mod_url": "https://github.com/junegunn/fzf/blob/master/go.mod",
    "timeout": 30.0,
    "raw": False,
}


@dataclass
class Config:
    mod_url: str
    timeout: float | None
    raw: bool
    filename: str

    @classmethod
    def load(
        cls,
        config_path: Path | None = None,
        mod_url_override: str | None = None,
        timeout_override: float | None = None,
        raw_override: bool | None = None,
    ) -> "Config":
        """Load configuration from TOML file with defaults."""
        config_data = dict(DEFAULTS)

        path = config_path or DEFAULT_CONFIG_PATH
        if path.exists():
            with open(path, "rb") as f:
                file_config = tomllib.load(f)
                config_data.update(file_config)

        if mod_url_override:
            config_data["mod_url"] = mod_url_override
        if timeout_override is not None:
            config_data["timeout"] = timeout_override
        if raw_override is not None:
            config_data["raw"] = raw_override

        mod_url = config_data["mod_url"]
        filename = PurePosixPath(urlparse(mod_url).path).name or "go.mod"

        # A non-positive timeout means wait forever.
        timeout = float(config_data["timeout"])

        return cls(
            mod_url=mod_url,
            timeout=timeout if timeout > 0 else None,
            raw=bool(config_data["raw"]),
            filename=filename,
        )
