"""Records returned by repository lookups."""

from dataclasses import dataclass
from enum import Enum

from .description import PackageDescription


@dataclass(frozen=True)
class RPackage:
    """An R package resolved to a downloadable source archive.

    Attributes:
        description: Parsed DESCRIPTION from inside the source archive
        source_download_url: URL of the archive the description was read from
    """

    description: PackageDescription
    source_download_url: str


class FailureReason(Enum):
    """Why one candidate source archive URL was rejected."""

    UNAVAILABLE = "unavailable"
    UNREACHABLE = "unreachable"
    ENTRY_MISSING = "entry missing"
    UNPARSABLE = "unparsable"
    CORRUPT = "corrupt"


@dataclass(frozen=True)
class CandidateFailure:
    """A rejected candidate source archive URL."""

    url: str
    reason: FailureReason
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.url} ({self.reason.value}: {self.detail})"
        return f"{self.url} ({self.reason.value})"
