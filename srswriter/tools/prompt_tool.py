#!/usr/bin/env python3
"""
Prompt Tool

Command-line access to the prompt assembly pipeline for template authors.

Usage:
    srswriter-prompt assemble fr_writer --user-input "Write the login requirements" --project-root .
    srswriter-prompt assemble requirement_syncer --category process --context turn.yaml --json
    srswriter-prompt validate
    srswriter-prompt stats
    srswriter-prompt golden tests/golden --threshold 0.8

Exit codes:
    0  success
    1  validation failure, failing golden cases, or invalid input
    2  mandatory template missing
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from srswriter.config.specialist_registry import TemplateSpecialistRegistry
from srswriter.prompts.engine import TemplateAssemblyEngine
from srswriter.prompts.errors import InvalidContextError, MandatoryTemplateMissingError
from srswriter.prompts.golden import GoldenTestHarness, load_golden_cases
from srswriter.prompts.store import TemplateStore
from srswriter.prompts.types import RoleIdentifier, assembly_context_from_dict
from srswriter.runtime.async_utils import run_async_safely

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_MISSING_TEMPLATE = 2


def _build_engine(template_root: Optional[str]) -> TemplateAssemblyEngine:
    store = TemplateStore(template_root=template_root)
    return TemplateAssemblyEngine(store=store, registry=TemplateSpecialistRegistry(store))


def _load_context_file(path: str) -> Dict[str, Any]:
    """Read a context bag from JSON or YAML (chosen by suffix)."""
    with open(path, encoding="utf-8") as f:
        if Path(path).suffix == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: context file must hold a mapping")
    return data


def _context_bag(args: argparse.Namespace) -> Dict[str, Any]:
    bag: Dict[str, Any] = _load_context_file(args.context) if args.context else {}
    if args.user_input:
        bag["userRequirements"] = args.user_input
    if args.project_root:
        bag["projectRoot"] = args.project_root
    if args.workflow_mode:
        bag["workflow_mode"] = args.workflow_mode
    return bag


# =============================================================================
# Commands
# =============================================================================


def cmd_assemble(args: argparse.Namespace) -> int:
    engine = _build_engine(args.template_root)
    try:
        role = RoleIdentifier.of(args.role, args.category)
        context = assembly_context_from_dict(_context_bag(args))
    except (InvalidContextError, OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED

    try:
        result = run_async_safely(engine.assemble_with_metadata(role, context))
    except MandatoryTemplateMissingError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_MISSING_TEMPLATE

    if args.json:
        payload = {
            "role_name": result.role_name,
            "content_hash": result.content_hash,
            "layout_version": result.layout_version,
            "base_templates": list(result.base_templates),
            "char_count": len(result.content),
            "validation": result.validation.to_dict() if result.validation else None,
            "content": result.content,
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        print(result.content)
    return EXIT_OK


def cmd_validate(args: argparse.Namespace) -> int:
    engine = _build_engine(args.template_root)
    report = engine.validate_template_consistency()
    data = report.to_dict()
    if args.json:
        print(json.dumps(data, indent=2))
    else:
        print(f"Templates: {report.template_count}, specialists checked: {report.specialists_checked}")
        for issue in report.result.sorted_errors():
            print(f"  ERROR   {issue.issue_type}: {issue.location}: {issue.problem}")
        for issue in report.result.sorted_warnings():
            print(f"  WARNING {issue.issue_type}: {issue.location}: {issue.problem}")
        print(f"Status: {data['status']}")
    return EXIT_OK if report.is_valid else EXIT_FAILED


def cmd_stats(args: argparse.Namespace) -> int:
    engine = _build_engine(args.template_root)
    loaded = engine.preload_templates()
    stats = engine.template_stats()
    data = {
        "preloaded": loaded,
        "cached_count": stats.cached_count,
        "average_size": round(stats.average_size, 1),
        "categories": stats.categories,
        "search_dirs": list(stats.search_dirs),
    }
    print(json.dumps(data, indent=2))
    return EXIT_OK


def cmd_golden(args: argparse.Namespace) -> int:
    cases = load_golden_cases(Path(args.directory))
    if not cases:
        print(f"Error: no golden cases found in {args.directory}", file=sys.stderr)
        return EXIT_FAILED

    harness = GoldenTestHarness(_build_engine(args.template_root), threshold=args.threshold)
    report = harness.run_suite_sync(cases)
    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        for result in report.results:
            mark = "PASS" if result.passed else "FAIL"
            combined = f"{result.scores.combined:.3f}" if result.scores else "-"
            print(f"  {mark} {result.case_id} ({result.role_name}) combined={combined}")
        print(
            f"{report.passed}/{report.total} passed, "
            f"average {report.average_score:.3f}, health {report.health}"
        )
        for line in report.recommendations:
            print(f"  - {line}")
    return EXIT_OK if report.failed == 0 else EXIT_FAILED


# =============================================================================
# Entry point
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Assemble and check SRS writer specialist prompts")
    parser.add_argument("--template-root", default=None, help="Template directory searched first")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    assemble = sub.add_parser("assemble", help="Assemble the prompt for one specialist")
    assemble.add_argument("role", help="Specialist id (e.g., fr_writer)")
    assemble.add_argument("--category", default="content", choices=["content", "process"])
    assemble.add_argument("--context", help="Context bag file (.json or .yaml)")
    assemble.add_argument("--user-input", help="User request text")
    assemble.add_argument("--project-root", help="Project directory for environment and outline")
    assemble.add_argument("--workflow-mode", choices=["greenfield", "brownfield"])
    assemble.add_argument("--json", action="store_true", help="Print metadata and content as JSON")
    assemble.set_defaults(func=cmd_assemble)

    validate = sub.add_parser("validate", help="Check template consistency")
    validate.add_argument("--json", action="store_true", help="Print the report as JSON")
    validate.set_defaults(func=cmd_validate)

    stats = sub.add_parser("stats", help="Preload templates and print cache statistics")
    stats.set_defaults(func=cmd_stats)

    golden = sub.add_parser("golden", help="Run golden regression cases")
    golden.add_argument("directory", help="Directory of golden case YAML files")
    golden.add_argument("--threshold", type=float, default=None, help="Pass threshold for the combined score")
    golden.add_argument("--json", action="store_true", help="Print the suite report as JSON")
    golden.set_defaults(func=cmd_golden)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint for the prompt tool."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
