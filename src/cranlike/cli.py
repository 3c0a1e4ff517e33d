"""
Command-line interface for cranlike.

This module provides the `cranlike` CLI tool for querying CRAN-like R
package repositories.
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from cranlike import __version__
from cranlike.cli_utils import DescriptionFormatter, ErrorFormatter, setup_logging
from cranlike.config import RepositoryConfig, RepositoryConfigError
from cranlike.packages import (
    ChecksumError,
    CranLikeRepository,
    DownloadError,
    PackageDownloader,
    PackageNotFoundError,
    RepositoryConnectionError,
    RepositoryError,
)


@dataclass
class RepositoryArgs:
    """Repository connection options shared by all commands."""

    repo: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    agent: Optional[str] = None
    timeout: Optional[float] = None
    config: Optional[Path] = None
    verbose: bool = False


@dataclass
class LatestArgs:
    """Arguments for the latest command."""

    name: str
    repository: RepositoryArgs


@dataclass
class ResolveArgs:
    """Arguments for the resolve command."""

    name: str
    version: str
    repository: RepositoryArgs


@dataclass
class DownloadArgs:
    """Arguments for the download command."""

    name: str
    version: str
    dest_dir: Path
    repository: RepositoryArgs
    verify: bool = True


def make_repository(args: RepositoryArgs) -> CranLikeRepository:
    """Build a repository client from config files, environment and flags."""
    config = RepositoryConfig.load(args.config).with_overrides(
        repo_url=args.repo,
        user=args.user,
        password=args.password,
        agent=args.agent,
        timeout=args.timeout,
    )
    return CranLikeRepository.from_config(config)


def run_command(command: Callable[[], None], verbose: bool) -> None:
    """Run a command body, mapping failures to messages and exit codes."""
    try:
        command()
    except RepositoryConfigError as e:
        ErrorFormatter.print_error("Configuration error", str(e))
        sys.exit(2)
    except PackageNotFoundError as e:
        ErrorFormatter.print_error("Package not found", str(e))
        sys.exit(1)
    except RepositoryConnectionError as e:
        ErrorFormatter.print_error("Repository unreachable", str(e))
        sys.exit(1)
    except RepositoryError as e:
        ErrorFormatter.print_error("Repository error", str(e))
        sys.exit(1)
    except (DownloadError, ChecksumError) as e:
        ErrorFormatter.print_error("Download failed", str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, verbose)


def latest_command(args: LatestArgs) -> None:
    """Show the version(s) of a package listed in the repository index.

    Examples:
        cranlike latest geosphere
        cranlike latest A3 --repo https://nexus.example.com/repository/cran
    """

    def body() -> None:
        repo = make_repository(args.repository)
        matches = repo.get_latest_package_version(args.name)
        if not matches:
            ErrorFormatter.print_error("Package not found", f"{args.name} is not listed in {repo.repo_url}")
            sys.exit(1)
        for description in matches:
            print(DescriptionFormatter.format_version_line(description))

    run_command(body, args.repository.verbose)


def resolve_command(args: ResolveArgs) -> None:
    """Resolve a package version to its source archive.

    Examples:
        cranlike resolve geosphere 1.0.0
    """

    def body() -> None:
        repo = make_repository(args.repository)
        package = repo.resolve_package(args.name, args.version)
        print(DescriptionFormatter.format_package(package))

    run_command(body, args.repository.verbose)


def download_command(args: DownloadArgs) -> None:
    """Resolve a package version and download its source archive.

    The archive is verified against the index MD5 checksum when the index
    lists the same version.

    Examples:
        cranlike download geosphere 1.5-14 -d ./archives
    """

    def body() -> None:
        repo = make_repository(args.repository)
        package = repo.resolve_package(args.name, args.version)

        checksum = None
        if args.verify:
            try:
                listed = repo.get_latest_package_version(args.name)
            except RepositoryError as e:
                logging.warning(f"Could not read package index, skipping checksum: {e}")
                listed = []
            for description in listed:
                if description.version == args.version and description.md5sum:
                    checksum = description.md5sum
                    break

        downloader = PackageDownloader(repo.transport)
        archive_path = downloader.download_package(package, args.dest_dir, checksum=checksum)
        message = f"Downloaded {archive_path}"
        if checksum:
            message += " (MD5 verified)"
        ErrorFormatter.print_success(message)

    run_command(body, args.repository.verbose)


def _repository_options() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "-r",
        "--repo",
        default=None,
        help="Repository URL (default: CRANLIKE_REPO_URL or https://cran.r-project.org)",
    )
    parent.add_argument(
        "-u",
        "--user",
        default=None,
        help="User name for Basic authentication",
    )
    parent.add_argument(
        "--password",
        default=None,
        help="Password for Basic authentication",
    )
    parent.add_argument(
        "--agent",
        default=None,
        help="User-Agent header value",
    )
    parent.add_argument(
        "-t",
        "--timeout",
        default=None,
        type=float,
        help="Request timeout in seconds",
    )
    parent.add_argument(
        "--config",
        default=None,
        type=Path,
        help="INI configuration file (default: CRANLIKE_CONFIG or ./cranlike.ini)",
    )
    parent.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug logging",
    )
    return parent


def _repository_args(parsed_args: argparse.Namespace) -> RepositoryArgs:
    return RepositoryArgs(
        repo=parsed_args.repo,
        user=parsed_args.user,
        password=parsed_args.password,
        agent=parsed_args.agent,
        timeout=parsed_args.timeout,
        config=parsed_args.config,
        verbose=parsed_args.verbose,
    )


def main(argv: Optional[List[str]] = None) -> None:
    """cranlike - query CRAN-like R package repositories."""
    parser = argparse.ArgumentParser(
        prog="cranlike",
        description="cranlike - query CRAN-like R package repositories",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"cranlike {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")
    repository_options = _repository_options()

    # Latest command
    latest_parser = subparsers.add_parser(
        "latest",
        parents=[repository_options],
        help="Show the indexed version(s) of a package",
    )
    latest_parser.add_argument("name", help="Package name (case sensitive)")

    # Resolve command
    resolve_parser = subparsers.add_parser(
        "resolve",
        parents=[repository_options],
        help="Resolve a package version to its source archive",
    )
    resolve_parser.add_argument("name", help="Package name (case sensitive)")
    resolve_parser.add_argument("version", help="Package version")

    # Download command
    download_parser = subparsers.add_parser(
        "download",
        parents=[repository_options],
        help="Download the source archive of a package version",
    )
    download_parser.add_argument("name", help="Package name (case sensitive)")
    download_parser.add_argument("version", help="Package version")
    download_parser.add_argument(
        "-d",
        "--dest",
        type=Path,
        default=Path.cwd(),
        help="Destination directory (default: current directory)",
    )
    download_parser.add_argument(
        "--no-verify",
        action="store_true",
        help="Skip MD5 verification against the package index",
    )

    # Parse arguments
    parsed_args = parser.parse_args(argv)

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    repository_args = _repository_args(parsed_args)
    setup_logging(repository_args.verbose)

    # Execute command
    if parsed_args.command == "latest":
        latest_command(LatestArgs(name=parsed_args.name, repository=repository_args))
    elif parsed_args.command == "resolve":
        resolve_command(
            ResolveArgs(
                name=parsed_args.name,
                version=parsed_args.version,
                repository=repository_args,
            )
        )
    elif parsed_args.command == "download":
        download_command(
            DownloadArgs(
                name=parsed_args.name,
                version=parsed_args.version,
                dest_dir=parsed_args.dest,
                repository=repository_args,
                verify=not parsed_args.no_verify,
            )
        )


if __name__ == "__main__":
    main()
