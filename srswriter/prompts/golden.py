"""
golden.py - Golden-case regression harness for template drift detection.

Each golden case pairs a role and an input context with a stored expected
output. The harness assembles the prompt, obtains the actual output (from an
injected executor, or the assembled prompt itself when none is given) and
scores it against the expectation with three cheap deterministic signals:

    combined = 0.5 * token_overlap + 0.3 * length_ratio + 0.2 * structural

A case passes when combined exceeds the threshold (0.8 by default). This is
drift detection, not a proof of correctness.

Golden case file (YAML):

    id: fr_writer_basic
    description: Basic functional requirements draft
    role: {name: fr_writer, category: content}
    input:
      userRequirements: Draft the login requirements
      workflow_mode: greenfield
    expected_output: |
      ## Login
      - Users sign in with email and password

Usage:
    from srswriter.prompts.golden import GoldenTestHarness, load_golden_cases

    harness = GoldenTestHarness(engine)
    report = harness.run_suite_sync(load_golden_cases(Path("tests/golden")))
    print(report.health, report.pass_rate)
"""

from __future__ import annotations

import inspect
import logging
import re
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

import yaml

from srswriter.runtime.async_utils import run_async_safely

from .engine import TemplateAssemblyEngine
from .types import AssemblyContext, RoleIdentifier, assembly_context_from_dict

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset(
    ["the", "is", "at", "which", "on", "and", "or", "but", "in", "with", "to", "for", "of", "as", "by"]
)
HEADING_LINE = re.compile(r"^#{1,6}\s+", re.MULTILINE)
LIST_ITEM_LINE = re.compile(r"^[\s]*[-*+]\s+", re.MULTILINE)
NON_WORD = re.compile(r"[^\w\s-]")

OVERLAP_WEIGHT = 0.5
LENGTH_WEIGHT = 0.3
STRUCTURAL_WEIGHT = 0.2

Executor = Callable[[str], Union[str, Awaitable[str]]]


# =============================================================================
# Similarity signals
# =============================================================================


def tokenize(text: str) -> List[str]:
    """Lower-case tokens longer than two characters, stop words removed."""
    tokens = NON_WORD.sub(" ", text.lower()).split()
    return [t for t in tokens if len(t) > 2 and t not in STOP_WORDS]


def token_overlap(expected: str, actual: str) -> float:
    """Jaccard similarity of the token sets (0 when both are empty)."""
    a: Set[str] = set(tokenize(expected))
    b: Set[str] = set(tokenize(actual))
    union = a | b
    return len(a & b) / len(union) if union else 0.0


def length_ratio(expected: str, actual: str) -> float:
    """min/max of token counts (0 when either side is empty)."""
    n_expected = len(tokenize(expected))
    n_actual = len(tokenize(actual))
    if n_expected == 0 or n_actual == 0:
        return 0.0
    return min(n_expected, n_actual) / max(n_expected, n_actual)


def _count_ratio(a: int, b: int) -> float:
    if a == 0 and b == 0:
        return 1.0
    if a == 0 or b == 0:
        return 0.0
    return min(a, b) / max(a, b)


def structural_similarity(expected: str, actual: str) -> float:
    """Mean of the heading-count and list-item-count ratios."""
    headings = _count_ratio(len(HEADING_LINE.findall(expected)), len(HEADING_LINE.findall(actual)))
    items = _count_ratio(len(LIST_ITEM_LINE.findall(expected)), len(LIST_ITEM_LINE.findall(actual)))
    return (headings + items) / 2


@dataclass(frozen=True)
class SimilarityScores:
    token_overlap: float
    length_ratio: float
    structural: float

    @property
    def combined(self) -> float:
        return (
            self.token_overlap * OVERLAP_WEIGHT
            + self.length_ratio * LENGTH_WEIGHT
            + self.structural * STRUCTURAL_WEIGHT
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "token_overlap": round(self.token_overlap, 4),
            "length_ratio": round(self.length_ratio, 4),
            "structural": round(self.structural, 4),
            "combined": round(self.combined, 4),
        }


def score(expected: str, actual: str) -> SimilarityScores:
    return SimilarityScores(
        token_overlap=token_overlap(expected, actual),
        length_ratio=length_ratio(expected, actual),
        structural=structural_similarity(expected, actual),
    )


# =============================================================================
# Cases and results
# =============================================================================


@dataclass(frozen=True)
class GoldenIssue:
    type: str  # execution_error | content_mismatch | format_violation | quality_degradation
    message: str
    severity: str  # critical | high | medium | low
    suggestion: Optional[str] = None


@dataclass(frozen=True)
class GoldenCase:
    id: str
    role: RoleIdentifier
    input: Dict[str, Any]
    expected_output: str
    description: str = ""

    def context(self) -> AssemblyContext:
        return assembly_context_from_dict(self.input)


def golden_case_from_dict(data: Dict[str, Any], source: str = "<dict>") -> GoldenCase:
    """Parse a GoldenCase. Raises ValueError on missing required fields."""
    for key in ("id", "role", "expected_output"):
        if key not in data:
            raise ValueError(f"{source}: golden case missing '{key}'")
    role_data = data["role"]
    if isinstance(role_data, str):
        role = RoleIdentifier.of(role_data)
    else:
        role = RoleIdentifier.of(role_data["name"], role_data.get("category", "content"))
    return GoldenCase(
        id=str(data["id"]),
        role=role,
        input=dict(data.get("input") or {}),
        expected_output=str(data["expected_output"]),
        description=str(data.get("description", "")),
    )


def load_golden_cases(directory: Path) -> List[GoldenCase]:
    """Load every *.yaml / *.yml case file under directory, in file-name order.

    A file holds one case mapping or a `cases:` list. Unreadable files are
    logged and skipped.
    """
    cases: List[GoldenCase] = []
    files = sorted(p for p in Path(directory).glob("*") if p.suffix in (".yaml", ".yml"))
    for path in files:
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            entries = data.get("cases", [data]) if isinstance(data, dict) else data
            for entry in entries:
                cases.append(golden_case_from_dict(entry, source=str(path)))
        except (OSError, yaml.YAMLError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Skipping golden case file %s: %s", path, e)
    return cases


@dataclass
class GoldenCaseResult:
    case_id: str
    role_name: str
    passed: bool
    scores: Optional[SimilarityScores] = None
    issues: List[GoldenIssue] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    error: Optional[str] = None
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "case_id": self.case_id,
            "role": self.role_name,
            "passed": self.passed,
            "scores": self.scores.to_dict() if self.scores else None,
            "issues": [asdict(i) for i in self.issues],
            "recommendations": list(self.recommendations),
            "error": self.error,
            "duration_ms": self.duration_ms,
        }


@dataclass
class GoldenSuiteReport:
    total: int
    passed: int
    failed: int
    pass_rate: float
    average_score: float
    health: str  # excellent | good | warning | critical
    recommendations: List[str]
    results: List[GoldenCaseResult]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "pass_rate": round(self.pass_rate, 4),
            "average_score": round(self.average_score, 4),
            "health": self.health,
            "recommendations": list(self.recommendations),
            "results": [r.to_dict() for r in self.results],
        }


def suite_health(pass_rate: float) -> str:
    if pass_rate >= 0.95:
        return "excellent"
    if pass_rate >= 0.8:
        return "good"
    if pass_rate >= 0.6:
        return "warning"
    return "critical"


def _issues_for(scores: SimilarityScores) -> List[GoldenIssue]:
    issues = []
    if scores.token_overlap < 0.5:
        issues.append(
            GoldenIssue(
                "content_mismatch",
                f"token overlap {scores.token_overlap:.2f} below 0.50",
                "medium",
                "review recent template edits for changed wording",
            )
        )
    if scores.structural < 0.8:
        issues.append(
            GoldenIssue(
                "format_violation",
                f"structural similarity {scores.structural:.2f} below 0.80",
                "high",
                "check heading and list structure in the output format guidance",
            )
        )
    if scores.length_ratio < 0.7:
        issues.append(
            GoldenIssue(
                "quality_degradation",
                f"length ratio {scores.length_ratio:.2f} below 0.70",
                "medium",
                "output is much longer or shorter than the baseline",
            )
        )
    return issues


def _recommendations_for(scores: SimilarityScores, issues: List[GoldenIssue]) -> List[str]:
    recommendations = []
    if scores.token_overlap < 0.7:
        recommendations.append("Token overlap is low: check the role template or content strategy")
    if scores.structural < 0.8:
        recommendations.append("Output structure diverges: strengthen the format guidance")
    if issues:
        recommendations.append("Fix the reported issues one at a time")
    return recommendations


# =============================================================================
# Harness
# =============================================================================


class GoldenTestHarness:
    """Run golden cases against an assembly engine."""

    def __init__(
        self,
        engine: TemplateAssemblyEngine,
        executor: Optional[Executor] = None,
        threshold: Optional[float] = None,
    ):
        self.engine = engine
        self.executor = executor
        self.threshold = threshold if threshold is not None else engine.settings.golden_pass_threshold

    async def _actual_output(self, prompt: str) -> str:
        if self.executor is None:
            return prompt
        output = self.executor(prompt)
        if inspect.isawaitable(output):
            output = await output
        return str(output)

    async def run_case(
        self,
        role: RoleIdentifier,
        context: AssemblyContext,
        expected_output: str,
        case_id: str = "adhoc",
    ) -> GoldenCaseResult:
        """Assemble, execute and score one case. Failures become failed results."""
        started = time.monotonic()
        try:
            prompt = await self.engine.assemble(role, context)
            actual = await self._actual_output(prompt)
        except Exception as e:  # any failure is a failed case, not a crashed suite
            logger.warning("Golden case %s failed to execute: %s", case_id, e)
            return GoldenCaseResult(
                case_id=case_id,
                role_name=role.name,
                passed=False,
                issues=[GoldenIssue("execution_error", str(e), "critical")],
                error=str(e),
            )

        scores = score(expected_output, actual)
        issues = _issues_for(scores)
        passed = scores.combined > self.threshold
        duration_ms = int((time.monotonic() - started) * 1000)
        logger.debug("Golden case %s: combined=%.3f passed=%s", case_id, scores.combined, passed)
        return GoldenCaseResult(
            case_id=case_id,
            role_name=role.name,
            passed=passed,
            scores=scores,
            issues=issues,
            recommendations=_recommendations_for(scores, issues),
            duration_ms=duration_ms,
        )

    async def run_golden_case(self, case: GoldenCase) -> GoldenCaseResult:
        try:
            context = case.context()
        except ValueError as e:
            return GoldenCaseResult(
                case_id=case.id,
                role_name=case.role.name,
                passed=False,
                issues=[GoldenIssue("execution_error", str(e), "critical")],
                error=str(e),
            )
        return await self.run_case(case.role, context, case.expected_output, case_id=case.id)

    async def run_suite(self, cases: List[GoldenCase]) -> GoldenSuiteReport:
        """Run cases sequentially and summarize."""
        results = [await self.run_golden_case(case) for case in cases]
        passed = sum(1 for r in results if r.passed)
        total = len(results)
        pass_rate = passed / total if total else 0.0
        scored = [r.scores.combined for r in results if r.scores is not None]
        average = sum(scored) / len(scored) if scored else 0.0

        recommendations = []
        failed = total - passed
        if failed:
            recommendations.append(f"{failed} golden case(s) failed and need attention first")
        low_overlap = [r for r in results if r.scores is not None and r.scores.token_overlap < 0.5]
        if low_overlap:
            recommendations.append(
                f"{len(low_overlap)} case(s) show low token overlap; review recent template changes"
            )

        report = GoldenSuiteReport(
            total=total,
            passed=passed,
            failed=failed,
            pass_rate=pass_rate,
            average_score=average,
            health=suite_health(pass_rate),
            recommendations=recommendations,
            results=results,
        )
        logger.info(
            "Golden suite: %d/%d passed (%.0f%%), health=%s",
            passed,
            total,
            pass_rate * 100,
            report.health,
        )
        return report

    def run_suite_sync(self, cases: List[GoldenCase]) -> GoldenSuiteReport:
        return run_async_safely(self.run_suite(cases))
