"""Command-line entry point: ``prbot <owner/repo>``.

Reads the auth token from the user's token file, checks the base branch of the
repository and opens a pull request with every file brought to canonical
form. Exit status is 0 on success or when nothing needs changing, 1 on any
fatal error and 2 on usage errors.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv
from pydantic import ValidationError

from prbot.checker import CanonicalFormChecker, CommandChecker
from prbot.config import Config, get_config
from prbot.exceptions import CredentialError, PrbotError, UsageError
from prbot.github.client import AsyncGitHubClient
from prbot.graph import run_workflow
from prbot.utils.logger import log_error, log_info, set_log_level


def parse_repository(value: str) -> Tuple[str, str]:
    """Split ``owner/repo``; anything but exactly one slash is rejected."""
    parts = value.split("/")
    if len(parts) != 2 or not all(parts):
        raise UsageError(f"expected <user/repo>, got {value!r}")
    return parts[0], parts[1]


def read_token(path: Path) -> str:
    try:
        token = path.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise CredentialError(f"Reading auth token: {e}") from e
    if not token:
        raise CredentialError(f"Reading auth token: {path} is empty")
    return token


async def execute(
    token: str, checker: CanonicalFormChecker, owner: str, repo: str, config: Config
) -> Dict[str, Any]:
    async with AsyncGitHubClient(token, config) as client:
        return await run_workflow(client, checker, owner, repo, config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prbot",
        usage="prbot <user/repo>",
        description="Find files that are not in canonical form and open a pull request fixing them.",
    )
    parser.add_argument("repository", help="GitHub repository as <user/repo>")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        owner, repo = parse_repository(args.repository)
    except UsageError as e:
        parser.error(e.message)

    load_dotenv()
    try:
        config = get_config()
    except ValidationError as e:
        print(f"prbot: invalid configuration:\n{e}", file=sys.stderr)
        return 1

    set_log_level(config.log_level)
    config.log_configuration()

    issues = config.validate_configuration()
    if issues:
        log_error("Configuration validation failed", issues=issues)
        print("prbot: configuration issues found:", file=sys.stderr)
        for issue in issues:
            print(f"  - {issue}", file=sys.stderr)
        return 1

    try:
        token = read_token(config.token_path)
        checker = CommandChecker.from_string(config.format_command)
        result = asyncio.run(execute(token, checker, owner, repo, config))
    except PrbotError as e:
        log_error("Run aborted", error=e.message)
        print(f"prbot: {e.message}", file=sys.stderr)
        return 1

    print(result.get("message", "done"))

    failures = (result.get("stats") or {}).get("failures", 0)
    if failures and config.fail_on_errors:
        log_info("Exiting non-zero because some files could not be checked", failures=failures)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
