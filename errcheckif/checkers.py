"""
errcheckif/checkers.py
══════════════════════

Checker framework that turns the findings of :mod:`errcheckif.analysis`
into suppressible, serialisable diagnostics and runs the pass over many
source units.

Architecture
────────────

  ┌─────────────────────────────────────────────────────────┐
  │                   CheckerRunner                         │
  │        one worker per SourceUnit (ThreadPoolExecutor)   │
  │  ┌───────────────────────────────────────────────────┐  │
  │  │              ErrCheckIfChecker                    │  │
  │  │   find_unhandled_errors(file, info, helpers)      │  │
  │  └──────────────────────────┬────────────────────────┘  │
  │                             │                           │
  │  ┌──────────────────────────▼────────────────────────┐  │
  │  │           SuppressionManager                      │  │
  │  │   //nolint[:ids]  │  file-level  │  global        │  │
  │  └──────────────────────────┬────────────────────────┘  │
  │                             │                           │
  │  ┌──────────────────────────▼────────────────────────┐  │
  │  │     Diagnostic Formatter (gcc / JSON / summary)   │  │
  │  └───────────────────────────────────────────────────┘  │
  └─────────────────────────────────────────────────────────┘

Each Checker follows a four-phase lifecycle:

  1. **configure()**        — read options (helper convention, …)
  2. **collect_evidence()** — run the pass, gather unproven sites
  3. **diagnose()**         — turn findings into Diagnostics
  4. **report()**           — return Diagnostics minus suppressions

License: MIT
"""

from __future__ import annotations

import json
import logging
import re
import sys
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from fnmatch import fnmatch
from typing import (
    Any,
    ClassVar,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    TextIO,
    Tuple,
    Type,
)

from errcheckif.analysis import ErrorHelpers, Finding, find_unhandled_errors
from errcheckif.config import Settings
from errcheckif.dumpfile import SourceUnit, parsedump, should_analyze
from errcheckif.syntax import File
from errcheckif.typeinfo import TypeInfo

logger = logging.getLogger(__name__)

UNCHECKED_ERROR = "uncheckedError"
INTERNAL_ERROR = "checkerInternalError"


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — DIAGNOSTIC MODEL
# ═════════════════════════════════════════════════════════════════════════

class DiagnosticSeverity(Enum):
    ERROR = "error"
    WARNING = "warning"
    STYLE = "style"
    INFORMATION = "information"


@dataclass(frozen=True, order=True)
class SourceLocation:
    """A specific point in source code."""
    file: str = ""
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        if self.column:
            return f"{self.file}:{self.line}:{self.column}"
        return f"{self.file}:{self.line}"


@dataclass(frozen=True)
class Diagnostic:
    """
    A single diagnostic finding.

    Attributes
    ----------
    error_id     : Unique identifier (``uncheckedError``)
    message      : Human-readable description
    severity     : DiagnosticSeverity
    location     : Start of the offending identifier
    checker_name : Name of the checker that produced this
    suppress_tag : Tag accepted by ``//nolint:<tag>``
    addon        : Tool name in JSON output
    end          : End of the offending identifier
    evidence     : Machine-readable evidence dict for downstream tooling
    """
    error_id: str
    message: str
    severity: DiagnosticSeverity
    location: SourceLocation
    checker_name: str = ""
    suppress_tag: str = ""
    addon: str = "errcheckif"
    end: SourceLocation = field(default_factory=SourceLocation)
    evidence: Dict[str, Any] = field(default_factory=dict)

    @property
    def sort_key(self) -> Tuple[str, int, int]:
        return (self.location.file, self.location.line, self.location.column)

    def to_json_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "file": self.location.file,
            "linenr": self.location.line,
            "column": self.location.column,
            "severity": self.severity.value,
            "message": self.message,
            "addon": self.addon,
            "errorId": self.error_id,
        }
        if self.end.line:
            result["endLinenr"] = self.end.line
            result["endColumn"] = self.end.column
        if self.evidence:
            result["evidence"] = self.evidence
        return result

    def to_json_str(self) -> str:
        """Single-line JSON string."""
        return json.dumps(self.to_json_dict(), sort_keys=True)

    def to_gcc_format(self) -> str:
        """GCC-style diagnostic string: file:line:col: severity: message."""
        sev = self.severity.value
        return f"{self.location}: {sev}: {self.message} [{self.error_id}]"


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — SUPPRESSION MANAGER
# ═════════════════════════════════════════════════════════════════════════

# //nolint, //nolint:errcheckif, //nolint:a,b // reason
NOLINT_RE = re.compile(r"^//\s*nolint(?::(?P<names>[\w.-]+(?:\s*,\s*[\w.-]+)*))?(?=\s|$)")


class SuppressionManager:
    """
    Manages diagnostic suppressions from multiple sources.

    Sources:
      1. Inline comments:  ``//nolint`` or ``//nolint:errcheckif``
      2. File-level suppressions (``id:pattern`` on the command line)
      3. Global suppressions (command-line or settings file)

    An id matches a diagnostic when it equals its error id, its checker
    name or its suppress tag; ``*`` matches everything.

    Usage
    -----
    >>> sm = SuppressionManager()
    >>> sm.add_file_suppression("uncheckedError", "vendor/*")
    >>> unit_sm = sm.for_unit(unit)
    >>> if not unit_sm.is_suppressed(diagnostic):
    ...     emit(diagnostic)
    """

    def __init__(self) -> None:
        # {(file, line)} → set of ids suppressed at that location
        self._inline: Dict[Tuple[str, int], Set[str]] = defaultdict(set)
        # file pattern → set of ids
        self._file_level: Dict[str, Set[str]] = defaultdict(set)
        self._global: Set[str] = set()

    @classmethod
    def from_specs(cls, specs: Iterable[str]) -> "SuppressionManager":
        """Build from ``id`` (global) and ``id:file-pattern`` strings."""
        sm = cls()
        for spec in specs:
            error_id, sep, pattern = spec.partition(":")
            if sep and pattern:
                sm.add_file_suppression(error_id, pattern)
            else:
                sm.add_global_suppression(error_id)
        return sm

    def for_unit(self, unit: SourceUnit) -> "SuppressionManager":
        """A copy sharing the file/global rules, with ``unit``'s inline ones loaded."""
        sm = SuppressionManager()
        sm._file_level.update({k: set(v) for k, v in self._file_level.items()})
        sm._global = set(self._global)
        sm.load_inline_suppressions(unit)
        return sm

    def load_inline_suppressions(self, unit: SourceUnit) -> None:
        """Scan the unit's comments for ``//nolint`` markers."""
        for comment in unit.comments:
            m = NOLINT_RE.match(comment.text.strip())
            if m is None:
                continue
            names = m.group("names")
            ids = {n.strip() for n in names.split(",")} if names else {"*"}
            self._inline[(unit.filename, comment.line)].update(ids)

    def add_file_suppression(self, error_id: str, file_pattern: str) -> None:
        """Suppress ``error_id`` in files matching ``file_pattern``."""
        self._file_level[file_pattern].add(error_id)

    def add_global_suppression(self, error_id: str) -> None:
        self._global.add(error_id)

    @staticmethod
    def _matches(ids: Set[str], diag: Diagnostic) -> bool:
        if "*" in ids:
            return True
        return bool(ids & {diag.error_id, diag.checker_name, diag.suppress_tag} - {""})

    def is_suppressed(self, diag: Diagnostic) -> bool:
        """Check whether a diagnostic should be suppressed."""
        if self._matches(self._global, diag):
            return True

        loc = diag.location

        # Inline (same line, or the comment sits on the line above)
        for line_offset in (0, 1):
            ids = self._inline.get((loc.file, loc.line - line_offset))
            if ids and self._matches(ids, diag):
                return True

        for pattern, ids in self._file_level.items():
            if not self._matches(ids, diag):
                continue
            if pattern == loc.file or loc.file.endswith(pattern) or fnmatch(loc.file, pattern):
                return True

        return False

    def filter_diagnostics(
        self, diagnostics: Iterable[Diagnostic]
    ) -> List[Diagnostic]:
        """Return only non-suppressed diagnostics."""
        return [d for d in diagnostics if not self.is_suppressed(d)]


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — CHECKER BASE CLASS
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class CheckerContext:
    """
    Shared context passed to every checker for one source unit.

    Attributes
    ----------
    unit         : SourceUnit under analysis
    suppressions : SuppressionManager with the unit's inline rules loaded
    settings     : run configuration
    stats        : mutable dict for timing / counting statistics
    """
    unit: SourceUnit
    suppressions: SuppressionManager = field(default_factory=SuppressionManager)
    settings: Settings = field(default_factory=Settings)
    stats: Dict[str, Any] = field(default_factory=dict)


class Checker(ABC):
    """
    Abstract base class for all checkers.

    Lifecycle
    ─────────
      1. ``configure(ctx)``        — receive context, read settings
      2. ``collect_evidence(ctx)`` — run the analysis
      3. ``diagnose(ctx)``         — correlate evidence into diagnostics
      4. ``report(ctx)``           — return final diagnostics

    Subclass Contract
    ─────────────────
      - Override ``name``, ``description``, ``error_ids``
      - Implement ``collect_evidence()`` and ``diagnose()``
    """

    name: ClassVar[str] = "base-checker"
    description: ClassVar[str] = ""
    error_ids: ClassVar[FrozenSet[str]] = frozenset()
    suppress_tag: ClassVar[str] = ""
    default_severity: ClassVar[DiagnosticSeverity] = DiagnosticSeverity.WARNING

    def __init__(self) -> None:
        self._diagnostics: List[Diagnostic] = []

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return list(self._diagnostics)

    def configure(self, ctx: CheckerContext) -> None:
        """Called before evidence collection.  Default does nothing."""
        pass

    @abstractmethod
    def collect_evidence(self, ctx: CheckerContext) -> None:
        ...

    @abstractmethod
    def diagnose(self, ctx: CheckerContext) -> None:
        """Append diagnostics to ``self._diagnostics``."""
        ...

    def report(self, ctx: CheckerContext) -> List[Diagnostic]:
        return ctx.suppressions.filter_diagnostics(self._diagnostics)

    def _emit(
        self,
        error_id: str,
        message: str,
        file: str,
        line: int,
        column: int = 0,
        severity: Optional[DiagnosticSeverity] = None,
        end: Optional[SourceLocation] = None,
        evidence: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Helper to create and store a diagnostic."""
        self._diagnostics.append(Diagnostic(
            error_id=error_id,
            message=message,
            severity=severity or self.default_severity,
            location=SourceLocation(file=file, line=line, column=column),
            checker_name=self.name,
            suppress_tag=self.suppress_tag,
            end=end or SourceLocation(),
            evidence=evidence or {},
        ))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} '{self.name}'>"


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — CHECKER REGISTRY
# ═════════════════════════════════════════════════════════════════════════

class CheckerRegistry:
    """Registry of available checkers, addressed by name."""

    def __init__(self) -> None:
        self._checkers: Dict[str, Type[Checker]] = {}

    def register(self, checker_cls: Type[Checker]) -> None:
        self._checkers[checker_cls.name] = checker_cls

    def get_by_name(self, name: str) -> Optional[Type[Checker]]:
        return self._checkers.get(name)

    def get_all(self) -> List[Type[Checker]]:
        return list(self._checkers.values())


# ═════════════════════════════════════════════════════════════════════════
#  PART 5 — UNCHECKED ERROR CHECKER
# ═════════════════════════════════════════════════════════════════════════

class ErrCheckIfChecker(Checker):
    """
    Reports error results that are bound to a variable but never tested
    against ``nil``, passed to an errors helper, or returned before the
    variable is overwritten or goes out of scope.

    Patterns detected:
      - ``n, err := f()`` with no later use of ``err`` at all
      - ``_, err = f(); _, err = g(); if err != nil`` (first result lost)
      - ``err := f(); if ok && err != nil`` (``&&`` does not count)
    """

    name: ClassVar[str] = "errcheckif"
    description: ClassVar[str] = "Error results assigned but never checked or returned"
    error_ids: ClassVar[FrozenSet[str]] = frozenset({UNCHECKED_ERROR})
    suppress_tag: ClassVar[str] = "errcheckif"

    def __init__(self, helpers: Optional[ErrorHelpers] = None) -> None:
        super().__init__()
        self.helpers = helpers or ErrorHelpers()
        self._findings: List[Finding] = []

    def configure(self, ctx: CheckerContext) -> None:
        s = ctx.settings
        self.helpers = ErrorHelpers(
            package=s.error_package,
            predicates=frozenset(s.error_predicates),
        )

    def collect_evidence(self, ctx: CheckerContext) -> None:
        self._findings = find_unhandled_errors(ctx.unit.file, ctx.unit.info, self.helpers)
        ctx.stats["tracked_findings"] = len(self._findings)

    def diagnose(self, ctx: CheckerContext) -> None:
        self._diagnose_findings(ctx.unit.filename)

    def _diagnose_findings(self, filename: str) -> None:
        for f in self._findings:
            self._emit(
                UNCHECKED_ERROR,
                f.message,
                file=filename,
                line=f.pos.line,
                column=f.pos.column,
                end=SourceLocation(filename, f.end.line, f.end.column),
                evidence={"variable": f.name},
            )

    def check(self, file: File, info: TypeInfo) -> List[Diagnostic]:
        """
        Tree + facts in, diagnostics out.

        No suppressions or file filtering are applied; this is the pure
        entry point host frameworks call per file.
        """
        self._diagnostics = []
        self._findings = find_unhandled_errors(file, info, self.helpers)
        self._diagnose_findings(file.name)
        return self.diagnostics


_DEFAULT_REGISTRY = CheckerRegistry()
_DEFAULT_REGISTRY.register(ErrCheckIfChecker)


# ═════════════════════════════════════════════════════════════════════════
#  PART 6 — CHECKER RUNNER
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class CheckerRunResults:
    """
    Aggregate results from running the checkers over one or more units.

    Attributes
    ----------
    diagnostics            : All diagnostics, sorted by (file, line, column)
    diagnostics_by_checker : Diagnostics grouped by checker name
    stats                  : Timing and counting statistics
    checker_names          : Names of checkers that were run
    units_analyzed         : File names that went through the checkers
    units_skipped          : File names excluded by ``should_analyze``
    """
    diagnostics: List[Diagnostic] = field(default_factory=list)
    diagnostics_by_checker: Dict[str, List[Diagnostic]] = field(
        default_factory=lambda: defaultdict(list)
    )
    stats: Dict[str, Any] = field(default_factory=dict)
    checker_names: List[str] = field(default_factory=list)
    units_analyzed: List[str] = field(default_factory=list)
    units_skipped: List[str] = field(default_factory=list)

    @property
    def finding_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.error_id != INTERNAL_ERROR)

    @property
    def internal_error_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.error_id == INTERNAL_ERROR)

    @property
    def total_count(self) -> int:
        return len(self.diagnostics)

    def merge(self, other: "CheckerRunResults") -> None:
        self.diagnostics.extend(other.diagnostics)
        for name, diags in other.diagnostics_by_checker.items():
            self.diagnostics_by_checker[name].extend(diags)
        for key, val in other.stats.items():
            self.stats[key] = self.stats.get(key, 0) + val
        for name in other.checker_names:
            if name not in self.checker_names:
                self.checker_names.append(name)
        self.units_analyzed.extend(other.units_analyzed)
        self.units_skipped.extend(other.units_skipped)

    def sort(self) -> None:
        # list.sort is stable: equal keys keep checker emission order.
        self.diagnostics.sort(key=lambda d: d.sort_key)
        for diags in self.diagnostics_by_checker.values():
            diags.sort(key=lambda d: d.sort_key)

    def to_json_lines(self) -> str:
        return "\n".join(d.to_json_str() for d in self.diagnostics)

    def to_gcc_format(self) -> str:
        return "\n".join(d.to_gcc_format() for d in self.diagnostics)

    def summary(self) -> str:
        """Human-readable summary."""
        lines = [
            f"Checker run complete: {self.finding_count} findings in "
            f"{len(self.units_analyzed)} file(s) "
            f"({len(self.units_skipped)} skipped, "
            f"{self.internal_error_count} internal errors)",
        ]
        for name in self.checker_names:
            count = len(self.diagnostics_by_checker.get(name, []))
            elapsed = self.stats.get(f"{name}_elapsed_ms", 0)
            lines.append(f"  {name}: {count} findings ({elapsed:.1f}ms)")
        return "\n".join(lines)


class CheckerRunner:
    """
    Runs the registered checkers against source units.

    Usage
    -----
    >>> runner = CheckerRunner(settings=Settings(jobs=4))
    >>> results = runner.run_units(units)
    >>> print(results.summary())

    Parameters for constructor
    ─────────────────────────
    registry    : CheckerRegistry — source of checker classes
    suppressions: SuppressionManager — file-level and global rules
    settings    : Settings — helper convention, file filters, jobs
    """

    def __init__(
        self,
        registry: Optional[CheckerRegistry] = None,
        suppressions: Optional[SuppressionManager] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.registry = registry or _DEFAULT_REGISTRY
        self.settings = settings or Settings()
        self.suppressions = suppressions or SuppressionManager.from_specs(self.settings.suppress)

    def run(
        self,
        unit: SourceUnit,
        checkers: Optional[Sequence[str]] = None,
    ) -> CheckerRunResults:
        """
        Run checkers against a single unit.  File filters are not
        applied here; see :meth:`run_units`.
        """
        results = CheckerRunResults()
        results.units_analyzed.append(unit.filename)

        ctx = CheckerContext(
            unit=unit,
            suppressions=self.suppressions.for_unit(unit),
            settings=self.settings,
        )

        if checkers is not None:
            checker_classes: List[Type[Checker]] = []
            for name in checkers:
                cls = self.registry.get_by_name(name)
                if cls is not None:
                    checker_classes.append(cls)
                else:
                    logger.warning("unknown checker %r ignored", name)
        else:
            checker_classes = self.registry.get_all()

        for cls in checker_classes:
            checker = cls()
            checker_name = cls.name
            results.checker_names.append(checker_name)

            t0 = time.monotonic()
            try:
                checker.configure(ctx)
                checker.collect_evidence(ctx)
                checker.diagnose(ctx)
                diags = checker.report(ctx)
            except Exception as exc:
                logger.exception("checker %s failed on %s", checker_name, unit.filename)
                diags = [Diagnostic(
                    error_id=INTERNAL_ERROR,
                    message=f"Checker '{checker_name}' failed: {exc}",
                    severity=DiagnosticSeverity.INFORMATION,
                    location=SourceLocation(file=unit.filename),
                    checker_name=checker_name,
                )]
            elapsed_ms = (time.monotonic() - t0) * 1000.0

            results.diagnostics.extend(diags)
            results.diagnostics_by_checker[checker_name].extend(diags)
            results.stats[f"{checker_name}_elapsed_ms"] = elapsed_ms

        results.sort()
        return results

    def run_units(
        self,
        units: Iterable[SourceUnit],
        checkers: Optional[Sequence[str]] = None,
        jobs: Optional[int] = None,
    ) -> CheckerRunResults:
        """
        Filter units with :func:`should_analyze`, run the rest (in
        parallel when ``jobs > 1``) and merge the results in input order.
        """
        jobs = jobs or self.settings.jobs
        combined = CheckerRunResults()
        selected: List[SourceUnit] = []
        for unit in units:
            if should_analyze(unit, self.settings):
                selected.append(unit)
            else:
                logger.info("Skipping %s", unit.filename)
                combined.units_skipped.append(unit.filename)

        if jobs > 1 and len(selected) > 1:
            with ThreadPoolExecutor(max_workers=jobs) as pool:
                partials = list(pool.map(lambda u: self.run(u, checkers), selected))
        else:
            partials = [self.run(u, checkers) for u in selected]

        for partial in partials:
            combined.merge(partial)
        combined.sort()
        return combined


# ═════════════════════════════════════════════════════════════════════════
#  PART 7 — CONVENIENCE ENTRY POINT
# ═════════════════════════════════════════════════════════════════════════

def write_results(results: CheckerRunResults, output: str, stream: TextIO) -> None:
    if output == "json":
        text = results.to_json_lines()
    elif output == "gcc":
        text = results.to_gcc_format()
    else:
        text = results.summary()
    if text:
        stream.write(text + "\n")


def run_addon(
    dump_files: Sequence[str],
    settings: Optional[Settings] = None,
    checkers: Optional[Sequence[str]] = None,
    stream: Optional[TextIO] = None,
) -> int:
    """
    Load dump files, run the checkers and write the diagnostics.

    Returns
    -------
    Exit code (0 = clean, 1 = findings, 2 = a checker failed)

    Raises
    ------
    DumpError
        When a dump file cannot be read or built.
    """
    settings = settings or Settings()
    units: List[SourceUnit] = []
    for path in dump_files:
        units.extend(parsedump(path))

    runner = CheckerRunner(settings=settings)
    results = runner.run_units(units, checkers=checkers)
    write_results(results, settings.output, stream or sys.stdout)

    if results.internal_error_count:
        return 2
    return 1 if results.finding_count else 0


__all__ = [
    "UNCHECKED_ERROR",
    "INTERNAL_ERROR",
    "Diagnostic",
    "DiagnosticSeverity",
    "SourceLocation",
    "NOLINT_RE",
    "SuppressionManager",
    "Checker",
    "CheckerContext",
    "CheckerRegistry",
    "ErrCheckIfChecker",
    "CheckerRunner",
    "CheckerRunResults",
    "write_results",
    "run_addon",
]
