"""CLI utility functions for cranlike.

This module provides common utilities used across CLI commands including:
- Logging setup
- Package description formatting
- Error handling and formatting
"""

import logging
import sys
from typing import List

from cranlike.packages import PackageDescription, RPackage

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False) -> None:
    """Send log records to stderr.

    Args:
        verbose: Log debug records when True, only warnings otherwise
    """
    level = logging.DEBUG if verbose else logging.WARNING

    logger = logging.getLogger()
    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)


class DescriptionFormatter:
    """Formats package descriptions for terminal output."""

    @staticmethod
    def format_version_line(description: PackageDescription) -> str:
        return f"{description.package} {description.version}"

    @staticmethod
    def format_package(package: RPackage) -> str:
        """Format a resolved package as aligned ``Key: value`` lines.

        Args:
            package: Resolved package

        Returns:
            Multi-line summary, optional fields omitted when absent
        """
        description = package.description
        lines: List[str] = [
            f"Package:     {description.package}",
            f"Version:     {description.version}",
        ]
        if description.title:
            lines.append(f"Title:       {description.title}")
        if description.maintainer:
            lines.append(f"Maintainer:  {description.maintainer}")
        if description.licences:
            lines.append(f"License:     {' | '.join(description.licences)}")
        if description.urls:
            lines.append(f"URL:         {', '.join(description.urls)}")
        lines.append(f"Source:      {package.source_download_url}")
        return "\n".join(lines)


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Package not found")
            message: Error message details
        """
        print(file=sys.stderr)
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}", file=sys.stderr)
        print(file=sys.stderr)
        print(message, file=sys.stderr)
        print(file=sys.stderr)

    @staticmethod
    def print_success(message: str) -> None:
        """Print formatted success message.

        Args:
            message: Success message
        """
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        """Print formatted warning message.

        Args:
            message: Warning message
        """
        print(file=sys.stderr)
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}", file=sys.stderr)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:", file=sys.stderr)
            print(traceback.format_exc(), file=sys.stderr)

        sys.exit(1)
