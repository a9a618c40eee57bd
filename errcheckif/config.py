"""
errcheckif/config.py — checker settings
=======================================

Settings come from three layers, later ones winning:

    built-in defaults  →  JSON settings file (--config)  →  CLI flags

A settings file is a flat JSON object whose keys match the fields of
:class:`Settings`::

    {
        "skip_tests": true,
        "skip_generated": true,
        "error_package": "errors",
        "error_predicates": ["Is", "As"],
        "jobs": 4,
        "output": "gcc",
        "suppress": ["uncheckedError:vendor/*"]
    }

License: MIT
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Mapping, Tuple

from errcheckif.errors import ConfigError, ErrorCode

logger = logging.getLogger(__name__)

OUTPUT_FORMATS: Tuple[str, ...] = ("gcc", "json", "summary")


@dataclass(frozen=True)
class Settings:
    """Immutable run configuration."""
    skip_tests: bool = True
    skip_generated: bool = True
    error_package: str = "errors"
    error_predicates: Tuple[str, ...] = ("Is", "As")
    jobs: int = 1
    output: str = "gcc"
    suppress: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.error_package or not self.error_package.isidentifier():
            raise ConfigError(f"error_package must be an identifier, got {self.error_package!r}")
        for name in self.error_predicates:
            if not isinstance(name, str) or not name.isidentifier():
                raise ConfigError(f"error predicate must be an identifier, got {name!r}")
        if self.jobs < 1:
            raise ConfigError(f"jobs must be at least 1, got {self.jobs}")
        if self.output not in OUTPUT_FORMATS:
            raise ConfigError(
                f"output must be one of {', '.join(OUTPUT_FORMATS)}, got {self.output!r}"
            )

    # ── construction ─────────────────────────────────────────────────

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Settings":
        """
        Build settings from a decoded mapping.

        Raises
        ------
        ConfigError
            On unknown keys or values of the wrong type.
        """
        if not isinstance(data, Mapping):
            raise ConfigError("settings must be a JSON object")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown setting(s): {', '.join(unknown)}", ErrorCode.UNKNOWN_SETTING)
        return cls(**{key: _coerce(key, value) for key, value in data.items()})

    @classmethod
    def load(cls, path: str) -> "Settings":
        path = os.path.expanduser(path)
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except OSError as exc:
            raise ConfigError(f"cannot read settings {path}: {exc}", ErrorCode.UNREADABLE_SETTINGS) from exc
        except ValueError as exc:
            raise ConfigError(f"settings {path} is not valid JSON: {exc}", ErrorCode.UNREADABLE_SETTINGS) from exc
        logger.info("Loaded settings from %s", path)
        return cls.from_mapping(data)

    def merged(self, **overrides: Any) -> "Settings":
        """Copy with every non-None override applied."""
        changes = {k: _coerce(k, v) for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["error_predicates"] = list(self.error_predicates)
        d["suppress"] = list(self.suppress)
        return d


_BOOL_KEYS = frozenset({"skip_tests", "skip_generated"})
_STR_KEYS = frozenset({"error_package", "output"})
_LIST_KEYS = frozenset({"error_predicates", "suppress"})


def _coerce(key: str, value: Any) -> Any:
    if key in _BOOL_KEYS:
        if not isinstance(value, bool):
            raise ConfigError(f"{key} must be true or false, got {value!r}")
        return value
    if key in _STR_KEYS:
        if not isinstance(value, str):
            raise ConfigError(f"{key} must be a string, got {value!r}")
        return value
    if key in _LIST_KEYS:
        if isinstance(value, str) or not isinstance(value, (list, tuple)):
            raise ConfigError(f"{key} must be a list of strings, got {value!r}")
        if not all(isinstance(v, str) for v in value):
            raise ConfigError(f"{key} must be a list of strings, got {value!r}")
        return tuple(value)
    if key == "jobs":
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"jobs must be an integer, got {value!r}")
        return value
    raise ConfigError(f"unknown setting: {key}", ErrorCode.UNKNOWN_SETTING)


__all__ = ["OUTPUT_FORMATS", "Settings"]
