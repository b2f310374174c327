# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Command-line entry point for publishing releases.

Parses the publish command, opens the repository with the configured SSH
key, asks for a version when none is given, and runs the release workflow.
Any failure is logged and turns into a non-zero exit status.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from ray_publish.errors import ReleaseError
from ray_publish.repository import DEFAULT_REMOTE, GitRepository, RepositoryPort, SshCredentials
from ray_publish.tags import resolve_latest_version, suggest_next_versions
from ray_publish.workflow import publish

logger = logging.getLogger(__name__)

FORMAT_HINT = "Enter the version to publish. Accepted formats: 2, v2, 2.0, v2.0, 2.1, v2.1"

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


@dataclass
class PublishInputs:
    """Parsed options of the publish command."""

    repo_path: str
    keyfile: str
    keyfile_password: str = ""
    remote: str = DEFAULT_REMOTE
    version: str = ""
    dry_run: bool = False
    debug: bool = False


def default_keyfile() -> str:
    """Return the conventional private key location (~/.ssh/id_rsa)."""
    return os.path.join(os.path.expanduser("~"), ".ssh", "id_rsa")


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "false").lower() == "true"


def parse_inputs(args: Sequence[str] | None = None) -> PublishInputs:
    """Parse the command line, with environment variables as defaults.

    CLI arguments take precedence over environment variables.

    Args:
        args: Arguments without the program name. Defaults to sys.argv[1:].

    Returns:
        PublishInputs with parsed values.
    """
    parser = argparse.ArgumentParser(
        prog="ray",
        description="Release helper - publish major and minor versions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables (used as defaults when CLI args not provided):
  RAY_REPO_PATH          Repository path
  RAY_KEYFILE            Private key file path
  RAY_KEYFILE_PASSWORD   Private key passphrase
  RAY_REMOTE             Remote to pull from and push to
  RAY_DRY_RUN            Only show the planned steps (true/false)
  RAY_DEBUG              Enable debug logging (true/false)

Examples:
  # Major release: cut release/v3 from develop and tag v3.0
  ray publish 3

  # Minor release: tag v3.1 on release/v3
  ray publish --path ~/src/service v3.1

  # Prompt for the version, suggesting the next major and minor
  ray publish
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    publish_parser = subparsers.add_parser(
        "publish",
        aliases=["worship", "p"],
        help="Publish a version",
        description="Publish a major (vX.0) or minor (vX.Y) release",
    )
    publish_parser.add_argument(
        "--path",
        "-p",
        default=os.environ.get("RAY_REPO_PATH", "."),
        help="Repository path (default: current directory)",
    )
    publish_parser.add_argument(
        "--keyfile",
        "-f",
        default=os.environ.get("RAY_KEYFILE", default_keyfile()),
        help="Private key file path (default: ~/.ssh/id_rsa)",
    )
    publish_parser.add_argument(
        "--keyfile-password",
        default=os.environ.get("RAY_KEYFILE_PASSWORD", ""),
        help="Private key passphrase",
    )
    publish_parser.add_argument(
        "--remote",
        default=os.environ.get("RAY_REMOTE", DEFAULT_REMOTE),
        help="Remote to pull from and push to (default: origin)",
    )
    publish_parser.add_argument(
        "--dry-run",
        action="store_true",
        default=_env_flag("RAY_DRY_RUN"),
        help="Only show the planned steps",
    )
    publish_parser.add_argument(
        "--debug",
        action="store_true",
        default=_env_flag("RAY_DEBUG"),
        help="Enable debug logging",
    )
    publish_parser.add_argument(
        "version",
        nargs="?",
        default="",
        help="Version to publish (e.g., 2, v2, 2.0, v2.1); prompted for when omitted",
    )

    parsed = parser.parse_args(args)

    return PublishInputs(
        repo_path=parsed.path,
        keyfile=parsed.keyfile,
        keyfile_password=parsed.keyfile_password,
        remote=parsed.remote,
        version=parsed.version,
        dry_run=parsed.dry_run,
        debug=parsed.debug,
    )


def configure_logging(debug: bool) -> None:
    """Configure logging based on debug flag.

    Args:
        debug: If True, enable DEBUG level logging.
    """
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def load_credentials(inputs: PublishInputs) -> SshCredentials | None:
    """Return the SSH credentials, or None when the key file is missing.

    Without credentials git falls back to the user's ssh configuration.
    """
    if not os.path.isfile(inputs.keyfile):
        logger.warning("Key file '%s' not found, using the default ssh configuration", inputs.keyfile)
        return None
    return SshCredentials(key_file=inputs.keyfile, passphrase=inputs.keyfile_password)


def make_completer(suggestions: Sequence[str]) -> Callable[[str, int], str | None]:
    """Build a readline completer offering the suggestions matching a prefix."""

    def complete(text: str, state: int) -> str | None:
        matches = [s for s in suggestions if s.startswith(text)]
        if state < len(matches):
            return matches[state]
        return None

    return complete


def _install_completer(suggestions: Sequence[str]) -> None:
    try:
        import readline
    except ImportError:  # pragma: no cover
        # Not available on Windows; the prompt still works without completion
        return
    readline.set_completer(make_completer(suggestions))
    readline.parse_and_bind("tab: complete")


def prompt_for_version(
    repository: RepositoryPort,
    input_func: Callable[[str], str] = input,
) -> str:
    """Ask the operator for a version, suggesting the next major and minor.

    Args:
        repository: Repository whose tags determine the suggestions.
        input_func: Function reading one line of input.

    Returns:
        The non-empty raw version token entered.
    """
    latest = resolve_latest_version(repository.list_tag_names())
    next_major, next_minor = suggest_next_versions(latest)

    print(FORMAT_HINT)
    print(f"  {next_major}  next major version")
    print(f"  {next_minor}  next minor version")
    _install_completer([str(next_major), str(next_minor)])

    raw = ""
    while not raw:
        raw = input_func("> ").strip()
    return raw


def run_publish(
    inputs: PublishInputs,
    repository: RepositoryPort | None = None,
    input_func: Callable[[str], str] = input,
) -> int:
    """Run the publish command.

    Args:
        inputs: Parsed command options.
        repository: Repository to use; opened from ``inputs`` when None.
        input_func: Function reading one line of input for the prompt.

    Returns:
        Process exit status: 0 on success, non-zero on any failure.
    """
    try:
        if repository is None:
            repository = GitRepository(inputs.repo_path, load_credentials(inputs), inputs.remote)

        raw_version = inputs.version or prompt_for_version(repository, input_func)
        result = publish(repository, raw_version, dry_run=inputs.dry_run)
    except ReleaseError as e:
        logger.error("%s", e)
        return EXIT_FAILURE
    except EOFError:
        logger.error("No version given")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return EXIT_INTERRUPTED

    if result.dry_run:
        print(f"Dry run complete, {result.tag} not published")
    else:
        print(f"{result.tag} published")
    return 0


def main() -> None:
    """Main entry point for the ray command."""
    inputs = parse_inputs()
    configure_logging(inputs.debug)
    logger.debug("Repository: %s, remote: %s, key file: %s", inputs.repo_path, inputs.remote, inputs.keyfile)
    sys.exit(run_publish(inputs))


if __name__ == "__main__":  # pragma: no cover
    main()
