"""Quapp runtime configuration.

Typed configuration for ``quapp serve``. Settings are Pydantic v2 models so a
user-supplied ``quapp.config.json`` is validated at construction time and
every field the user leaves out falls back to its default.

The JSON document uses camelCase keys (``fallbackPort``, ``openBrowser``);
Python code reads the snake_case attributes.  Instances are frozen: build one
with :func:`load_config` and pass it to whoever needs it.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from quapp.utils import print_warning

CONFIG_FILENAME = "quapp.config.json"


class ServerConfig(BaseModel):
    """Dev-server settings (the ``server`` record of ``quapp.config.json``)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    qr: bool = Field(default=True, description="Render a QR code for the LAN URL")
    network: str = Field(
        default="private",
        description='"private" binds to the LAN address; anything else stays on localhost',
    )
    port: int = Field(default=5173, ge=1, le=65535)
    fallback_port: bool = Field(
        default=True, description="Move to the next port when the server fails to bind"
    )
    https: bool = Field(default=False)
    open_browser: bool = Field(default=False)
    auto_retry: bool = Field(default=True)
    strict_port: bool = Field(default=False)


class QuappConfig(BaseModel):
    """Top-level ``quapp.config.json`` document.

    Unknown keys are ignored at every level, so a config file written for a
    newer release still loads.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    server: ServerConfig = Field(default_factory=ServerConfig)

    @classmethod
    def load(cls, path: Path) -> "QuappConfig":
        """Load and validate a configuration file.

        Args:
            path: The JSON file to read.

        Returns:
            A validated ``QuappConfig`` instance.

        Raises:
            OSError: If the file cannot be read.
            UnicodeDecodeError: If the file is not UTF-8.
            pydantic.ValidationError: If the file is not valid JSON or a value
                has the wrong type.
        """
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)


def load_config(root: str | Path | None = None) -> QuappConfig:
    """Return the configuration for the project in *root*.

    A missing ``quapp.config.json`` yields the defaults.  A file that cannot
    be read or parsed is reported as a warning and the defaults are used.

    Args:
        root: Project directory. Defaults to the current working directory.
    """
    config_path = Path(root or Path.cwd()) / CONFIG_FILENAME
    if not config_path.exists():
        return QuappConfig()

    try:
        return QuappConfig.load(config_path)
    except (OSError, UnicodeDecodeError, ValidationError) as exc:
        print_warning(f"Failed to read {CONFIG_FILENAME}. Using default config.")
        print_warning(str(exc))
        return QuappConfig()
