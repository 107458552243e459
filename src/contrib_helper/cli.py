"""
Command line interface for the contrib_helper tool.

This module defines the ``main`` function which is used as the entry
point when executing the ``chuck`` command. It orchestrates repository
detection, configuration loading, template resolution, commit
collection, interactive selection, and publishing of the contribution
branch. Exit codes are defined as module constants below.
"""

from __future__ import annotations

import logging
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import click

from contrib_helper import __version__
from contrib_helper.collect.collector import CollectionError, CommitCollector
from contrib_helper.config.loader import ConfigError, load_config
from contrib_helper.hosting.github_client import GitHubClient
from contrib_helper.publish.publisher import (
    BranchCreateFailed,
    ContributionPublisher,
    FetchFailed,
    PushFailed,
    ReplayFailed,
    ReplayStatus,
)
from contrib_helper.selection.model import Commit
from contrib_helper.selection.terminal import UserCancel, run_selection
from contrib_helper.template.resolver import (
    ResolutionError,
    TemplateResolver,
    resolve_current_repo,
)
from contrib_helper.vcs.git_client import GitClient, GitError

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
# 2 is click's own usage error code
EXIT_NO_REPO = 3
EXIT_CONFIG_ERROR = 4
EXIT_RESOLUTION_ERROR = 5
EXIT_COLLECTION_ERROR = 6
EXIT_PUBLISH_FAILURE = 7
EXIT_PUSH_FAILED = 8

TOTAL_STEPS = 6
TOKEN_VARIABLES = ("GITHUB_TOKEN", "GH_TOKEN")


# ---------------------------------------------------------------------------
# Progress and status display utilities
# ---------------------------------------------------------------------------

class ProgressIndicator:
    """Announce a blocking operation and report how long it took."""

    def __init__(self, message: str):
        self.message = message
        self.start_time = 0.0

    def __enter__(self):
        self.start_time = time.monotonic()
        click.echo(f"→ {self.message}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            elapsed = time.monotonic() - self.start_time
            click.echo(f"  ✓ Done ({elapsed:.1f}s)")
        return False


def print_step(step_num: int, total_steps: int, message: str):
    """Print a step indicator."""
    click.echo(f"\n{'=' * 60}")
    click.echo(f"Step {step_num}/{total_steps}: {message}")
    click.echo(f"{'=' * 60}")


def print_info(message: str, indent: int = 0):
    click.echo(f"{'  ' * indent}ℹ {message}")


def print_success(message: str, indent: int = 0):
    click.echo(f"{'  ' * indent}✓ {message}")


def print_warning(message: str, indent: int = 0):
    click.echo(f"{'  ' * indent}⚠ {message}")


def print_error(message: str, indent: int = 0):
    click.echo(f"{'  ' * indent}✗ {message}", err=True)


def print_summary_box(title: str, items: List[str]):
    """Print a formatted summary box."""
    width = min(max([len(title)] + [len(item) for item in items]) + 4, 72)
    click.echo(f"\n┌{'─' * width}┐")
    click.echo(f"│ {title.ljust(width - 2)}│")
    click.echo(f"├{'─' * width}┤")
    for item in items:
        click.echo(f"│ {item.ljust(width - 2)}│")
    click.echo(f"└{'─' * width}┘")


def describe_commit(commit: Commit) -> str:
    return f"{commit.short_hash} - {commit.message}"


def plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count != 1 else ''}"


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------

def detect_repo(start_dir: Path) -> Path:
    """Return the root of the Git repository containing ``start_dir``.

    Raises
    ------
    click.exceptions.Exit
        With code EXIT_NO_REPO if ``start_dir`` is not inside a repository.
    """
    repo_root = GitClient.find_repo_root(start_dir)
    if repo_root is None:
        print_error("No Git repository found in current directory or parent directories.")
        raise click.exceptions.Exit(EXIT_NO_REPO)
    print_success(f"Found Git repository at: {repo_root}")
    return repo_root


def github_token() -> Optional[str]:
    for name in TOKEN_VARIABLES:
        value = os.environ.get(name)
        if value:
            return value
    return None


def make_hosting_factory(settings: Dict[str, Any], token: Optional[str]) -> Callable[[str], GitHubClient]:
    """Return a function handing out one :class:`GitHubClient` per host."""
    clients: Dict[str, GitHubClient] = {}

    def hosting_for(host: str) -> GitHubClient:
        if host not in clients:
            clients[host] = GitHubClient(
                api_url=settings.get("api_url") or GitHubClient.api_url_for_host(host),
                token=token,
                request_timeout=float(settings["request_timeout"]),
                max_pages=settings["max_pages"],
            )
        return clients[host]

    return hosting_for


def _enable_package_logging() -> None:
    """Let the package loggers reach the handlers set up by the CLI."""
    package = __name__.split(".")[0]
    for name, candidate in logging.root.manager.loggerDict.items():
        if name.startswith(package) and isinstance(candidate, logging.Logger):
            candidate.propagate = True


def _report_step(commit: Commit, status: ReplayStatus) -> None:
    if status is ReplayStatus.APPLIED:
        print_success(f"Cherry-picked: {describe_commit(commit)}", indent=1)
    else:
        print_warning(f"Skipped empty commit: {describe_commit(commit)}", indent=1)


def report_replay_failure(exc: ReplayFailed) -> None:
    print_error(str(exc))
    print_info(f"Branch {exc.branch.name} was left with the commits replayed so far", indent=1)
    for commit in exc.completed:
        print_info(f"done:    {describe_commit(commit)}", indent=2)
    for commit in exc.remaining:
        print_info(f"pending: {describe_commit(commit)}", indent=2)
    print_info("Resolve the problem by hand, or rerun chuck without the failing commit", indent=1)


def report_push_failure(exc: PushFailed) -> None:
    print_warning(f"Branch created but couldn't auto-push: {exc}")
    print_info("Push it yourself with:", indent=1)
    click.echo(f"      {exc.manual_command}")
    print_info("Then open the pull request at:", indent=1)
    click.echo(f"      {exc.pull_request_url}")


@click.command()
@click.option("--yes", "yes", is_flag=True, help="Select every candidate commit without prompting.")
@click.option(
    "--wrap/--clamp",
    "wrap",
    default=None,
    help="Wrap the cursor around the ends of the list instead of stopping (default from .chuckrc).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to the configuration file (default: .chuckrc in the repository root).",
)
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="chuck")
def main(yes: bool, wrap: Optional[bool], config_path: Optional[Path], verbose: bool) -> None:
    """🧔 Chuck: interactive commit selection for upstream contributions.

    Pick the commits you made since your repository was created from its
    template, and propose them back to the template as a pull request.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )
    if verbose:
        _enable_package_logging()

    started_at = datetime.now(timezone.utc)
    click.echo("\n🧔 Chuck: Let's see what you've been working on...")

    ctx = click.get_current_context(silent=True)
    current_step = 0

    try:
        # Step 1: Detect repository
        current_step += 1
        print_step(current_step, TOTAL_STEPS, "Detecting Repository")
        repo_root = detect_repo(Path.cwd())
        git = GitClient(repo_root)
        try:
            print_info(f"Current branch: {click.style(git.get_current_branch(), fg='cyan', bold=True)}")
        except GitError as exc:
            logger.debug("Could not read current branch: %s", exc)

        # Step 2: Load configuration
        current_step += 1
        print_step(current_step, TOTAL_STEPS, "Loading Configuration")
        try:
            config = load_config(repo_root, config_path)
        except ConfigError as exc:
            print_error(f"Configuration error: {exc}")
            raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
        print_success("Configuration loaded successfully")

        hosting_for = make_hosting_factory(config["hosting"], github_token())

        # Step 3: Resolve template and current repository
        current_step += 1
        print_step(current_step, TOTAL_STEPS, "Resolving Template")
        try:
            with ProgressIndicator("Reading template head"):
                template_ref = TemplateResolver(hosting_for).resolve(config)
            with ProgressIndicator("Identifying current repository"):
                current_repo = resolve_current_repo(git, hosting_for)
        except ResolutionError as exc:
            print_error(f"Hmm, having trouble here: {exc}")
            raise click.exceptions.Exit(EXIT_RESOLUTION_ERROR)
        print_success(f"Found template: {template_ref.repo.slug}")
        print_info(
            f"Baseline: {template_ref.baseline_commit[:7]} on {template_ref.default_branch} "
            f"({template_ref.baseline_timestamp.isoformat()})",
            indent=1,
        )
        print_success(f"Current repository: {current_repo.slug}")

        # Step 4: Collect candidate commits
        current_step += 1
        print_step(current_step, TOTAL_STEPS, "Collecting Commits")
        try:
            with ProgressIndicator(f"Comparing {current_repo.slug} with template {template_ref.repo.slug}"):
                commits = CommitCollector(hosting_for(current_repo.host), git).collect(
                    current_repo, template_ref
                )
        except CollectionError as exc:
            print_error(f"Can't seem to get those commits: {exc}")
            raise click.exceptions.Exit(EXIT_COLLECTION_ERROR)

        if not commits:
            print_info("Looks like you haven't made any commits since the template. Get to work!")
            raise click.exceptions.Exit(EXIT_SUCCESS)
        print_success(f"Found {plural(len(commits), 'commit')} since the template")
        for commit in commits:
            logger.debug("%s (files: %d)", describe_commit(commit), len(commit.files))

        # Step 5: Select commits
        current_step += 1
        print_step(current_step, TOTAL_STEPS, "Selecting Commits")
        if yes:
            print_info("Auto-select mode enabled - selecting all commits")
            selected = list(commits)
        else:
            use_wrap = config["selection"]["wrap"] if wrap is None else wrap
            try:
                selected = run_selection(commits, wrap=use_wrap)
            except UserCancel:
                print_info("Alright, maybe next time")
                raise click.exceptions.Exit(EXIT_SUCCESS)

        if not selected:
            print_info("No commits selected. That's fine, take your time.")
            raise click.exceptions.Exit(EXIT_SUCCESS)
        print_success(f"Selected {plural(len(selected), 'commit')}")
        for commit in selected:
            print_info(describe_commit(commit), indent=1)

        # Step 6: Publish
        current_step += 1
        print_step(current_step, TOTAL_STEPS, "Publishing Contribution")
        publisher = ContributionPublisher(
            git,
            remote_name=config["publish"]["remote_name"],
            branch_prefix=config["publish"]["branch_prefix"],
            started_at=started_at,
            on_step=_report_step,
        )
        try:
            branch = publisher.publish(selected, template_ref, current_repo)
        except (FetchFailed, BranchCreateFailed) as exc:
            print_error(str(exc))
            raise click.exceptions.Exit(EXIT_PUBLISH_FAILURE)
        except ReplayFailed as exc:
            report_replay_failure(exc)
            raise click.exceptions.Exit(EXIT_PUBLISH_FAILURE)
        except PushFailed as exc:
            report_push_failure(exc)
            raise click.exceptions.Exit(EXIT_PUSH_FAILED)

        summary_items = [
            f"✓ Branch: {branch.name}",
            f"✓ Pushed as: {branch.remote_branch}",
            f"✓ Applied: {plural(len(branch.applied), 'commit')}",
        ]
        if branch.skipped:
            summary_items.append(f"⚠ Skipped (already in template): {plural(len(branch.skipped), 'commit')}")
        print_summary_box("Summary", summary_items)

        click.echo(f"\n🧔 Create pull request at: {branch.pull_request_url}")
        click.echo("🧔 Now go make that pull request, kiddo\n")
        raise click.exceptions.Exit(EXIT_SUCCESS)

    except click.exceptions.Exit:
        raise
    except Exception as exc:
        logging.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        ctx.exit(EXIT_GENERIC_ERROR)
