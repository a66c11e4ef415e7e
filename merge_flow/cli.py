#!/usr/bin/env python3
"""
Command-line interface for the Merge Flow framework.

Usage:
    # Land a pull request, bumping the patch version if needed
    merge-flow https://github.com/owner/repo/pull/42 patch

    # Squash-merge with a tighter polling budget
    python -m merge_flow https://github.com/owner/repo/pull/42 minor \\
        --merge-method squash --max-polls 10

Environment Variables (required):
    GITHUB_TOKEN - GitHub token with repo and workflow scopes
"""

import argparse
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from . import __version__
from .config import (
    MERGE_METHODS,
    GitConfig,
    MergeFlowConfig,
    PollingConfig,
    PRConfig,
)
from .core import MergeFlow
from .errors import MalformedInputError, MergeFlowError, RemediationExhaustedError
from .models import RunResult, RunStatus
from .security import BUMP_TYPES, parse_pull_request_url
from .utils import setup_logging


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="merge-flow",
        description="Bump, sync, verify and merge a pull request",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Land a pull request with a patch bump
  %(prog)s https://github.com/owner/repo/pull/42 patch

  # Keep logs of failed runs somewhere specific
  %(prog)s https://github.com/owner/repo/pull/42 minor --log-dir /tmp/ci-logs

Environment Variables:
  GITHUB_TOKEN       GitHub token (may also be set in a .env file)
"""
    )

    # Required arguments
    parser.add_argument(
        "pr_url",
        help="Pull request URL (https://<host>/<owner>/<repo>/pull/<number>)",
    )
    parser.add_argument(
        "bump_type",
        choices=BUMP_TYPES,
        help="Version bump applied when the branch is not ahead of trunk",
    )

    # Optional arguments
    parser.add_argument(
        "--path",
        type=str,
        default=".",
        help="Directory holding (or to clone) the repository (default: current directory)",
    )

    parser.add_argument(
        "--merge-method",
        type=str,
        choices=MERGE_METHODS,
        default="merge",
        help="PR merge method (default: merge)",
    )

    parser.add_argument(
        "--remote",
        type=str,
        default="origin",
        help="Git remote name (default: origin)",
    )

    parser.add_argument(
        "--manifest",
        type=str,
        default="package.json",
        help="Manifest file holding the version (default: package.json)",
    )

    polling_group = parser.add_argument_group(
        "Polling options",
        "Budgets and intervals for mergeability polling, re-runs and branch sync.",
    )
    polling_group.add_argument(
        "--max-polls",
        type=int,
        default=30,
        help="Maximum mergeability polls (default: 30)",
    )
    polling_group.add_argument(
        "--poll-interval",
        type=float,
        default=30.0,
        help="Seconds between polls (default: 30)",
    )
    polling_group.add_argument(
        "--max-retries",
        type=int,
        default=2,
        help="Re-run attempts for failed workflows per commit (default: 2)",
    )
    polling_group.add_argument(
        "--sync-interval",
        type=float,
        default=60.0,
        help="Seconds to wait after pushing a sync merge (default: 60)",
    )
    polling_group.add_argument(
        "--max-sync-rounds",
        type=int,
        default=None,
        help="Give up syncing with trunk after this many rounds (default: no limit)",
    )
    polling_group.add_argument(
        "--log-dir",
        type=str,
        default="merge-flow-logs",
        help="Where logs of failed workflow runs are saved (default: ./merge-flow-logs)",
    )

    logging_group = parser.add_argument_group("Logging options")
    logging_group.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )
    logging_group.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only show errors on the console",
    )
    logging_group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    logging_group.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write DEBUG logs to this file",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def build_config(args: argparse.Namespace, token: str) -> MergeFlowConfig:
    """
    Build a MergeFlowConfig from parsed arguments.

    Raises:
        ValueError: If an option value is out of range.
    """
    return MergeFlowConfig(
        pr_url=args.pr_url,
        bump_type=args.bump_type,
        work_dir=Path(args.path).resolve(),
        github_token=token,
        git=GitConfig(
            remote=args.remote,
            manifest_file=args.manifest,
        ),
        polling=PollingConfig(
            max_polling_rounds=args.max_polls,
            poll_interval=args.poll_interval,
            max_retries=args.max_retries,
            sync_interval=args.sync_interval,
            max_sync_rounds=args.max_sync_rounds,
            log_dir=Path(args.log_dir).resolve(),
        ),
        pr=PRConfig(
            merge_method=args.merge_method,
        ),
    )


def print_summary(result: RunResult) -> None:
    """Print a summary of the run."""
    print("\n" + "=" * 60)
    print("📊 MERGE FLOW SUMMARY")
    print("=" * 60)
    print(f"PR:              {result.pr.url}")
    print(f"Status:          {result.status.value}")
    if result.status is not RunStatus.ALREADY_MERGED:
        print(f"Version bumped:  {'yes' if result.version_bumped else 'no'}")
        print(f"Sync rounds:     {result.sync_iterations}")
    if result.merge_sha:
        print(f"Merge commit:    {result.merge_sha}")
    print(f"Tag pushed:      {result.tag_pushed or 'no'}")
    print("=" * 60)


def _report_exhausted(error: RemediationExhaustedError) -> None:
    report = error.report
    if report is None:
        return
    print("\n📋 Captured logs of failed workflow runs:", file=sys.stderr)
    for log in report.captured_logs:
        if log.ok:
            print(f"   #{log.run_id} {log.run_name}: {log.path}", file=sys.stderr)
        else:
            print(f"   #{log.run_id} {log.run_name}: not captured ({log.error})", file=sys.stderr)
    for run_id, message in report.rerun_errors.items():
        print(f"   re-run of #{run_id} failed: {message}", file=sys.stderr)


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point."""
    # Load environment variables from .env if available
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(
        verbosity=2 if args.debug else args.verbose,
        log_file=args.log_file,
        quiet=args.quiet,
    )

    # Validate the URL before anything touches the network
    try:
        parse_pull_request_url(args.pr_url)
    except MalformedInputError as e:
        parser.print_usage(sys.stderr)
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(e.exit_code)

    token = os.environ.get("GITHUB_TOKEN")
    if not token:
        print("❌ Error: Please set GITHUB_TOKEN as an environment variable.", file=sys.stderr)
        sys.exit(1)

    try:
        config = build_config(args, token)
    except ValueError as e:
        parser.print_usage(sys.stderr)
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(MalformedInputError.exit_code)

    try:
        result = MergeFlow(config).run()
    except RemediationExhaustedError as e:
        print(f"\n❌ Error: {e}", file=sys.stderr)
        _report_exhausted(e)
        sys.exit(e.exit_code)
    except MergeFlowError as e:
        print(f"\n❌ Error: {e}", file=sys.stderr)
        sys.exit(e.exit_code)
    except KeyboardInterrupt:
        print("\n⛔ Interrupted by user", file=sys.stderr)
        sys.exit(130)

    print_summary(result)


if __name__ == "__main__":
    main()
