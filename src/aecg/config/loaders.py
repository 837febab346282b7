"""Reading ``Settings`` from JSON and TOML files."""

import json
import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any

from .._logging import logger
from .models import Settings


def _read_json(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text(encoding="utf-8"))


def _read_toml(path: Path) -> dict[str, Any]:
    return tomllib.loads(path.read_text(encoding="utf-8"))


_READERS: dict[str, Callable[[Path], dict[str, Any]]] = {
    ".json": _read_json,
    ".toml": _read_toml,
}


class ConfigLoader:
    """Builds ``Settings`` from mappings, config files or whatever a caller passed.

    A config file mirrors the nesting of ``Settings``. In TOML::

        [codec]
        pretty_print = false

        [validation]
        strict_mode = true
        timeout_seconds = 10

    Examples:
        settings = ConfigLoader.from_file("aecg.toml")
        settings = ConfigLoader.resolve(None)  # defaults
    """

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Settings:
        """Raises ``pydantic.ValidationError`` when ``data`` does not fit the models."""
        return Settings.model_validate(data)

    @staticmethod
    def from_file(path: str | Path) -> Settings:
        """Load settings from a ``.json`` or ``.toml`` file (suffix is case-insensitive).

        Raises:
            ValueError: For any other suffix
            OSError: If the file cannot be read
            pydantic.ValidationError: If the content does not fit the models
        """
        path = Path(path)
        reader = _READERS.get(path.suffix.lower())
        if reader is None:
            supported = ", ".join(sorted(_READERS))
            raise ValueError(f"Cannot read settings from {path.name}: expected one of {supported}")
        settings = ConfigLoader.from_dict(reader(path))
        logger.debug(f"Loaded settings from {path}")
        return settings

    @staticmethod
    def resolve(settings: Settings | str | Path | None) -> Settings:
        """Normalize the ``settings`` argument accepted by the top-level functions.

        Raises:
            TypeError: If ``settings`` is not a Settings object, a path or None
        """
        if settings is None:
            return Settings()
        if isinstance(settings, Settings):
            return settings
        if isinstance(settings, (str, Path)):
            return ConfigLoader.from_file(settings)
        raise TypeError(f"settings must be a Settings object, str, Path, or None, got {type(settings).__name__}")
