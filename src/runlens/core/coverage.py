# src/runlens/core/coverage.py
"""Statement coverage lookup for element source files.

Reads an istanbul-style coverage JSON report ({file: {"s": {id: hits},
"f": {...}, "b": {...}}}) once, and answers per-file summaries keyed by
absolute path. A missing or unreadable report is not an error: every
lookup then yields None and callers show zero coverage.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from runlens.contracts.models import CoverageSummary

logger = structlog.get_logger(__name__)

# Statement keys shaped "startLine:startCol-endLine:endCol" carry their line
_STATEMENT_KEY = re.compile(r"^(\d+):\d+-\d+:\d+$")


@dataclass(frozen=True, slots=True)
class LineCoverage:
    line: int
    hits: int
    covered: bool


@dataclass(frozen=True, slots=True)
class CoverageDetails:
    statements: dict[str, int] = field(default_factory=dict)
    functions: dict[str, Any] = field(default_factory=dict)
    branches: dict[str, Any] = field(default_factory=dict)
    lines: tuple[LineCoverage, ...] = ()


def _round_percentage(value: float) -> int:
    return max(0, min(100, round(value)))


def _hits(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class CoverageReport:
    """Per-file coverage summaries loaded from one report."""

    def __init__(
        self,
        summaries: dict[str, CoverageSummary] | None = None,
        details: dict[str, CoverageDetails] | None = None,
    ) -> None:
        self._summaries = summaries or {}
        self._details = details or {}

    @classmethod
    def empty(cls) -> CoverageReport:
        return cls()

    @classmethod
    def from_mapping(cls, data: Any, *, base_dir: str | None = None) -> CoverageReport:
        """Build a report from decoded istanbul JSON.

        Args:
            data: Decoded report; anything but a mapping yields an empty report
            base_dir: Directory relative file keys are resolved against
                (defaults to the process cwd)

        Returns:
            Report keyed by normalized absolute path
        """
        if not isinstance(data, dict):
            return cls.empty()
        base = base_dir or os.getcwd()
        summaries: dict[str, CoverageSummary] = {}
        details: dict[str, CoverageDetails] = {}
        for file_key, metrics in data.items():
            absolute = os.path.normpath(file_key if os.path.isabs(file_key) else os.path.join(base, file_key))
            metrics = metrics if isinstance(metrics, dict) else {}
            statements = metrics.get("s") if isinstance(metrics.get("s"), dict) else {}
            total = len(statements)
            covered = sum(1 for hits in statements.values() if _hits(hits) > 0)
            percentage = _round_percentage(covered / total * 100) if total else 0

            lines: dict[int, LineCoverage] = {}
            for key, hits in statements.items():
                match = _STATEMENT_KEY.match(str(key))
                if match:
                    line = int(match.group(1))
                    lines.setdefault(line, LineCoverage(line=line, hits=_hits(hits), covered=_hits(hits) > 0))

            summaries[absolute] = CoverageSummary(
                file_path=absolute,
                total_statements=total,
                covered_statements=covered,
                percentage=percentage,
            )
            details[absolute] = CoverageDetails(
                statements={str(k): _hits(v) for k, v in statements.items()},
                functions=metrics.get("f") or {},
                branches=metrics.get("b") or {},
                lines=tuple(lines[line] for line in sorted(lines)),
            )
        return cls(summaries, details)

    @classmethod
    def load(cls, report_path: Path | None) -> CoverageReport:
        """Load a report file; missing or malformed files yield an empty report."""
        if report_path is None:
            return cls.empty()
        try:
            data = json.loads(report_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.info("Coverage report not found", report_path=str(report_path))
            return cls.empty()
        except (OSError, ValueError) as exc:
            logger.warning("Coverage report unreadable", report_path=str(report_path), error=str(exc))
            return cls.empty()
        return cls.from_mapping(data, base_dir=str(report_path.parent))

    def summary_for(self, absolute_path: str | None) -> CoverageSummary | None:
        if not absolute_path:
            return None
        return self._summaries.get(os.path.normpath(absolute_path))

    def details_for(self, absolute_path: str | None) -> CoverageDetails | None:
        if not absolute_path:
            return None
        return self._details.get(os.path.normpath(absolute_path))

    def __len__(self) -> int:
        return len(self._summaries)
