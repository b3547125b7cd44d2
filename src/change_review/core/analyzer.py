"""Analysis engine: runs registered passes over a parsed diff.

This module implements:
- ``AnalysisPass``: the callable contract every pass satisfies
- ``PassRegistry``: ordered name -> pass mapping (the ``--skip`` surface)
- ``AnalysisEngine``: runs the registry, sequentially or on a thread pool
- ``Results``: the aggregated, immutable set of findings

Passes are independent. A pass that raises ``OSError`` while reading the
repository is degraded to zero findings; the rest of the run continues.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import structlog

from change_review.core.passes import (
    AntiPatternPass,
    BlastRadiusPass,
    deleted_code_pass,
    dependency_pass,
    schema_change_pass,
    security_pass,
)
from change_review.models.diff import DiffSet
from change_review.models.finding import Finding, RiskLevel
from change_review.utils.logging import LogEventNames
from change_review.utils.metrics import Timer, get_metrics

if TYPE_CHECKING:
    from change_review.config.schema import AnalysisConfig

log = structlog.get_logger()


class AnalysisPass(Protocol):
    """A single analysis pass."""

    def __call__(self, diff_set: DiffSet, repo_root: Path | None) -> list[Finding]: ...


class PassRegistry:
    """Ordered mapping of pass name to pass.

    Example:
        registry = PassRegistry()
        registry.register("deps", dependency_pass)
        registry["deps"](diff_set, None)
    """

    def __init__(self) -> None:
        self._passes: dict[str, AnalysisPass] = {}

    def register(self, name: str, analysis_pass: AnalysisPass) -> None:
        """Register a pass; re-registering a name replaces it in place."""
        self._passes[name] = analysis_pass

    def names(self) -> list[str]:
        return list(self._passes)

    def items(self) -> list[tuple[str, AnalysisPass]]:
        return list(self._passes.items())

    def __getitem__(self, name: str) -> AnalysisPass:
        return self._passes[name]

    def __contains__(self, name: object) -> bool:
        return name in self._passes

    def __len__(self) -> int:
        return len(self._passes)


def default_registry(config: AnalysisConfig | None = None) -> PassRegistry:
    """Build the registry of built-in passes, tuned by ``config`` when given."""
    registry = PassRegistry()

    if config is None:
        anti_patterns = AntiPatternPass()
        blast_radius = BlastRadiusPass()
    else:
        limits = config.blast_radius
        anti_patterns = AntiPatternPass(duplication_window=config.duplication_window)
        blast_radius = BlastRadiusPass(
            reference_ceiling=limits.reference_ceiling,
            high_threshold=limits.high_threshold,
            medium_threshold=limits.medium_threshold,
            min_name_length=limits.min_name_length,
            max_files_walked=limits.max_files_walked,
        )

    registry.register("deps", dependency_pass)
    registry.register("security", security_pass)
    registry.register("deleted", deleted_code_pass)
    registry.register("schema", schema_change_pass)
    registry.register("anti_patterns", anti_patterns)
    registry.register("blast_radius", blast_radius)
    return registry


@dataclass(frozen=True)
class Results:
    """All findings from one analysis run."""

    findings: tuple[Finding, ...] = ()

    def __len__(self) -> int:
        return len(self.findings)

    def __iter__(self) -> Iterator[Finding]:
        return iter(self.findings)

    def by_file(self) -> dict[str, list[Finding]]:
        """Group findings by file; a new dict on every call."""
        grouped: dict[str, list[Finding]] = {}
        for finding in self.findings:
            grouped.setdefault(finding.file, []).append(finding)
        return grouped

    def by_risk(self, min_risk: RiskLevel) -> list[Finding]:
        """Findings at or above ``min_risk``."""
        return [f for f in self.findings if f.risk >= min_risk]

    def max_risk(self) -> RiskLevel:
        return max((f.risk for f in self.findings), default=RiskLevel.INFO)

    def summary(self) -> str:
        """One-line count per risk level, highest first."""
        if not self.findings:
            return "No issues found"

        counts = {level: 0 for level in RiskLevel}
        for finding in self.findings:
            counts[finding.risk] += 1

        parts = [
            f"{counts[level]} {level}"
            for level in sorted(RiskLevel, reverse=True)
            if counts[level] > 0
        ]
        return ", ".join(parts)

    def exit_code(self) -> int:
        """Process exit status for CI: 0 clean, 1 findings, 2 high risk or worse."""
        if not self.findings:
            return 0
        if self.max_risk() >= RiskLevel.HIGH:
            return 2
        return 1


class AnalysisEngine:
    """Runs analysis passes over a DiffSet.

    Example:
        engine = AnalysisEngine()
        results = engine.run(diff_set, repo_root=Path("."), skip=["blast_radius"])
        print(results.summary())
    """

    def __init__(
        self,
        registry: PassRegistry | None = None,
        parallel: bool = False,
        max_workers: int | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            registry: Passes to run (defaults to the built-in passes)
            parallel: Run passes on a thread pool
            max_workers: Thread pool size when ``parallel`` is set
        """
        self.registry = registry or default_registry()
        self.parallel = parallel
        self.max_workers = max_workers

    @classmethod
    def from_config(cls, config: AnalysisConfig) -> AnalysisEngine:
        return cls(registry=default_registry(config), parallel=config.parallel)

    def run(
        self,
        diff_set: DiffSet,
        repo_root: Path | None = None,
        skip: Iterable[str] = (),
    ) -> Results:
        """Run every registered pass not named in ``skip``.

        Args:
            diff_set: Parsed diff to analyze
            repo_root: Repository checkout for passes that read files
            skip: Pass names to leave out; unknown names are ignored

        Returns:
            Results with findings grouped in registration order
        """
        skip_set = set(skip)
        for name in sorted(skip_set):
            if name in self.registry:
                log.info(LogEventNames.PASS_SKIPPED, name=name)
            else:
                log.info(LogEventNames.UNKNOWN_PASS, name=name, available=self.registry.names())

        selected = [(name, p) for name, p in self.registry.items() if name not in skip_set]
        log.debug(
            LogEventNames.ANALYSIS_STARTED,
            passes=[name for name, _ in selected],
            files=len(diff_set),
            repo_root=str(repo_root) if repo_root else None,
        )

        def run_one(item: tuple[str, AnalysisPass]) -> Sequence[Finding]:
            return self._run_pass(item[0], item[1], diff_set, repo_root)

        if self.parallel and len(selected) > 1:
            # map() keeps registration order
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                batches = list(pool.map(run_one, selected))
        else:
            batches = [run_one(item) for item in selected]

        findings = tuple(finding for batch in batches for finding in batch)
        results = Results(findings=findings)

        log.info(
            LogEventNames.ANALYSIS_COMPLETE,
            findings=len(findings),
            max_risk=str(results.max_risk()),
        )
        return results

    def _run_pass(
        self,
        name: str,
        analysis_pass: AnalysisPass,
        diff_set: DiffSet,
        repo_root: Path | None,
    ) -> Sequence[Finding]:
        metrics = get_metrics()
        labels = {"pass": name}

        try:
            with Timer(metrics.pass_duration, labels=labels) as timer:
                findings = analysis_pass(diff_set, repo_root)
        except OSError as e:
            metrics.passes_degraded.inc(labels=labels)
            log.debug(LogEventNames.PASS_DEGRADED, name=name, error=str(e))
            return ()

        metrics.passes_run.inc(labels=labels)
        for finding in findings:
            metrics.findings.inc(labels={"pass": name, "risk": str(finding.risk)})

        log.debug(
            LogEventNames.PASS_COMPLETE,
            name=name,
            findings=len(findings),
            duration=round(timer.elapsed, 4),
        )
        return findings
