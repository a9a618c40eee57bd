# errcheckif/errors.py
"""
errcheckif Error Types
══════════════════════

Exception hierarchy for everything *around* the analysis pass: reading
dump files and decoding settings.  The pass itself never raises for a
well-formed tree; unprovable sites degrade to "not handled, don't
report".

Hierarchy
─────────
┌──────────────────────────────────────────────────────────────┐
│  ErrCheckIfError (base)                                      │
│  ├── DumpError           - dump file could not be loaded     │
│  │   ├── DumpSyntaxError - S-expression text is malformed    │
│  │   └── DumpFormatError - forms do not describe a unit      │
│  └── ConfigError         - settings are invalid              │
└──────────────────────────────────────────────────────────────┘

Error Codes
───────────
  ECI-1xxx  dump text errors
  ECI-2xxx  dump structure errors
  ECI-3xxx  configuration errors
"""

from __future__ import annotations

from enum import Enum, unique
from typing import Optional


@unique
class ErrorCode(Enum):
    """Stable identifiers for load / config failures."""

    UNREADABLE_DUMP = "ECI-1001"
    MALFORMED_SEXP = "ECI-1002"

    UNKNOWN_FORM = "ECI-2001"
    BAD_ARITY = "ECI-2002"
    UNKNOWN_OBJECT = "ECI-2003"
    UNKNOWN_TYPE = "ECI-2004"
    DUPLICATE_DECLARATION = "ECI-2005"

    UNKNOWN_SETTING = "ECI-3001"
    BAD_SETTING_VALUE = "ECI-3002"
    UNREADABLE_SETTINGS = "ECI-3003"

    @property
    def code(self) -> str:
        return self.value


class ErrCheckIfError(Exception):
    """Base class for all errcheckif failures."""

    default_code: ErrorCode = ErrorCode.UNREADABLE_DUMP

    def __init__(self, message: str, code: Optional[ErrorCode] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def __str__(self) -> str:
        return f"[{self.code.code}] {self.message}"


class DumpError(ErrCheckIfError):
    """A dump file could not be turned into a source unit."""

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        filename: str = "",
    ) -> None:
        super().__init__(message, code)
        self.filename = filename

    def __str__(self) -> str:
        where = f"{self.filename}: " if self.filename else ""
        return f"[{self.code.code}] {where}{self.message}"


class DumpSyntaxError(DumpError):
    """The dump text is not a well-formed sequence of S-expressions."""

    default_code = ErrorCode.MALFORMED_SEXP

    def __init__(
        self,
        message: str,
        line: int = 0,
        column: int = 0,
        filename: str = "",
    ) -> None:
        super().__init__(message, ErrorCode.MALFORMED_SEXP, filename)
        self.line = line
        self.column = column

    def __str__(self) -> str:
        where = self.filename or "<dump>"
        return f"[{self.code.code}] {where}:{self.line}:{self.column}: {self.message}"


class DumpFormatError(DumpError):
    """The S-expressions parsed, but do not describe a valid unit."""

    default_code = ErrorCode.UNKNOWN_FORM


class ConfigError(ErrCheckIfError):
    """Settings could not be decoded or validated."""

    default_code = ErrorCode.BAD_SETTING_VALUE


__all__ = [
    "ErrorCode",
    "ErrCheckIfError",
    "DumpError",
    "DumpSyntaxError",
    "DumpFormatError",
    "ConfigError",
]
