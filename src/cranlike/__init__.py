"""cranlike - client for CRAN-like R package repositories."""

__version__ = "0.1.0"

from cranlike.packages import (  # noqa: E402
    CranLikeRepository,
    PackageDescription,
    PackageNotFoundError,
    RPackage,
    parse_description,
)

__all__ = [
    "__version__",
    "CranLikeRepository",
    "PackageDescription",
    "PackageNotFoundError",
    "RPackage",
    "parse_description",
]
