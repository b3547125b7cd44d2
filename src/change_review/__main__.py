"""Command line entry point for change-review.

This module provides the ``change-review`` command:
- ``check``: run analysis and print a report; the exit status reflects the
  highest risk found (0 clean, 1 findings, 2 high risk or worse)
- ``stat``: list the files in a diff with their +/- counts
- ``patch``: replay approve/reject decisions and print the filtered patch
  or its commit message

Diffs are read from a file argument, stdin, or ``git diff`` of a commit
range. Logs and the optional metrics dump go to stderr.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from change_review._version import __version__

if TYPE_CHECKING:
    from change_review.config.schema import ReviewConfig

log = structlog.get_logger()

# Distinct from the finding-based statuses returned by ``check``
EXIT_ERROR = 3

# Diff text is decoded so that any byte sequence survives into the output
DIFF_ENCODING = "utf-8"
DIFF_ERRORS = "surrogateescape"


def setup_logging(
    debug: bool = False,
    log_format: str = "console",
    level: str = "WARNING",
    file_path: Path | None = None,
) -> None:
    """Configure structured logging with secret sanitization.

    Args:
        debug: Force debug logging if True
        log_format: Output format ("json" or "console")
        level: Log level when not in debug mode
        file_path: Optional log file
    """
    from change_review.utils.logging import LogFormat, LogLevel, configure_logging

    configure_logging(
        level=LogLevel.DEBUG if debug else LogLevel(level.upper()),
        log_format=LogFormat(log_format.lower()),
        file_path=file_path,
    )


def _split_names(value: str) -> list[str]:
    return [name.strip() for name in value.split(",") if name.strip()]


def _add_diff_source(subparser: argparse.ArgumentParser) -> None:
    from change_review.utils.git import DEFAULT_RANGE

    subparser.add_argument(
        "diff", nargs="?", type=Path, help="Unified diff file (default: read stdin)"
    )
    subparser.add_argument(
        "-r",
        "--range",
        nargs="?",
        const=DEFAULT_RANGE,
        default=None,
        metavar="COMMIT_RANGE",
        help=f"Read the diff from git for a commit range such as main...HEAD "
        f"(default when given without a value: {DEFAULT_RANGE})",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with its subcommands."""
    from change_review.core.report import ReportFormat

    parser = argparse.ArgumentParser(
        prog="change-review",
        description="change-review - Review machine-authored code changes file by file",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: built-in defaults)",
    )

    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--log-format",
        choices=["json", "console"],
        default=None,
        help="Log output format (default: console)",
    )

    parser.add_argument(
        "--metrics",
        choices=["prometheus", "json"],
        default=None,
        help="Write run metrics to stderr after the command",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Run analysis and print a report")
    _add_diff_source(check)
    check.add_argument(
        "--repo",
        type=Path,
        default=None,
        help="Repository root for passes that read files "
        "(default: analysis.repo_root, then the enclosing git work tree)",
    )
    check.add_argument(
        "--skip",
        type=_split_names,
        action="extend",
        default=[],
        help="Comma-separated analysis passes to skip (repeatable)",
    )
    check.add_argument(
        "-f",
        "--format",
        choices=[fmt.value for fmt in ReportFormat],
        default=ReportFormat.TEXT.value,
        help="Report format (default: text)",
    )

    stat = subparsers.add_parser("stat", help="List changed files with +/- counts")
    _add_diff_source(stat)

    patch = subparsers.add_parser("patch", help="Emit the patch of approved files")
    _add_diff_source(patch)
    patch.add_argument(
        "--approve",
        type=int,
        nargs="+",
        default=[],
        metavar="INDEX",
        help="File indexes to approve",
    )
    patch.add_argument(
        "--reject",
        type=int,
        nargs="+",
        default=[],
        metavar="INDEX",
        help="File indexes to reject",
    )
    patch.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Write output to this file instead of stdout",
    )
    patch.add_argument(
        "--commit-msg",
        action="store_true",
        help="Print the suggested commit message instead of the patch",
    )

    return parser


def read_diff(args: argparse.Namespace, cwd: Path | None = None) -> str:
    """Read diff text from git, a file, or stdin (when no file or ``-`` is given).

    Raises:
        ReviewError: If both a file and a commit range are given, or git fails
        OSError: If the file cannot be read
    """
    from change_review.errors import ReviewError
    from change_review.utils.git import git_diff

    path = args.diff
    if args.range is not None:
        if path is not None:
            raise ReviewError("give either a diff file or --range, not both")
        return git_diff(args.range, cwd=cwd)

    if path is None or str(path) == "-":
        buffer = getattr(sys.stdin, "buffer", None)
        if buffer is None:
            return sys.stdin.read()
        return buffer.read().decode(DIFF_ENCODING, DIFF_ERRORS)
    return path.read_bytes().decode(DIFF_ENCODING, DIFF_ERRORS)


def write_output(text: str) -> None:
    """Write to stdout, restoring bytes the diff held that were not UTF-8."""
    data = text.encode(DIFF_ENCODING, DIFF_ERRORS)
    buffer = getattr(sys.stdout, "buffer", None)
    if buffer is None:
        sys.stdout.write(data.decode(DIFF_ENCODING, "replace"))
        return
    sys.stdout.flush()
    buffer.write(data)
    buffer.flush()


def resolve_repo_root(args: argparse.Namespace, config: "ReviewConfig") -> Path | None:
    """``--repo``, then ``analysis.repo_root``, then the enclosing git work tree."""
    from change_review.utils.git import find_repo_root

    if args.repo is not None:
        return args.repo
    if config.analysis.repo_root is not None:
        return config.analysis.repo_root

    repo_root = find_repo_root()
    if repo_root is not None:
        log.debug("repo_root_detected", repo_root=str(repo_root))
    return repo_root


def run_check(args: argparse.Namespace, config: "ReviewConfig") -> int:
    from change_review.core.analyzer import AnalysisEngine
    from change_review.core.diff_parser import parse_diff
    from change_review.core.report import render_report

    repo_root = resolve_repo_root(args, config)
    raw = read_diff(args, cwd=repo_root)
    diff_set = parse_diff(raw)
    if not diff_set.files:
        print("No changes to check.")
        return 0

    skip = [*config.analysis.skip_passes, *args.skip]

    engine = AnalysisEngine.from_config(config.analysis)
    results = engine.run(diff_set, repo_root=repo_root, skip=skip)

    write_output(render_report(diff_set, results, args.format))
    return results.exit_code()


def run_stat(args: argparse.Namespace, config: "ReviewConfig") -> int:
    from change_review.core.diff_parser import parse_diff
    from change_review.core.report import render_stat

    diff_set = parse_diff(read_diff(args))
    write_output(render_stat(diff_set))
    return 0


def run_patch(args: argparse.Namespace, config: "ReviewConfig") -> int:
    from change_review.core.diff_parser import parse_diff
    from change_review.core.review import ReviewSession

    diff_set = parse_diff(read_diff(args))
    session = ReviewSession(diff_set)
    for index in args.approve:
        session.approve(index)
    for index in args.reject:
        session.reject(index)

    output = session.generate_commit_message() if args.commit_msg else session.generate_patch()

    if args.output is not None:
        args.output.write_bytes(output.encode(DIFF_ENCODING, DIFF_ERRORS))
        counts = session.counts()
        log.info(
            "output_written",
            path=str(args.output),
            approved=counts.approved,
            rejected=counts.rejected,
        )
    else:
        write_output(output)
    return 0


COMMANDS = {
    "check": run_check,
    "stat": run_stat,
    "patch": run_patch,
}


def dump_metrics(metrics_format: str) -> None:
    """Write the metrics registry to stderr."""
    from change_review.utils.metrics import get_metrics

    registry = get_metrics()
    if metrics_format == "json":
        text = json.dumps(registry.get_all_metrics(), indent=2)
    else:
        text = registry.to_prometheus_format()
    print(text, file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(debug=args.debug, log_format=args.log_format or "console")

    from change_review.config.loader import load_config
    from change_review.errors import ReviewError
    from change_review.utils.logging import bind_context, clear_context

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        log.error("configuration_file_not_found", path=str(args.config), error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except ValueError as e:
        log.error("configuration_invalid", error=str(e))
        print(f"error: invalid configuration: {e}", file=sys.stderr)
        return EXIT_ERROR

    # Reconfigure logging from config file settings
    setup_logging(
        debug=args.debug,
        log_format=args.log_format or config.logging.format,
        level=config.logging.level,
        file_path=config.logging.file,
    )

    bind_context(command=args.command)
    try:
        return COMMANDS[args.command](args, config)
    except ReviewError as e:
        log.debug("command_failed", error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except KeyboardInterrupt:
        return 130
    finally:
        clear_context()
        if args.metrics:
            dump_metrics(args.metrics)


if __name__ == "__main__":
    sys.exit(main())
