"""R package DESCRIPTION parser.

This module parses records in the Debian control file format used both by
the ``DESCRIPTION`` file shipped inside every R source package and by the
repository-wide ``PACKAGES`` index.

Record Format:
    Package: allhomes
    Version: 0.3.0
    Title: Extract Past Sales Data from Allhomes.com.au
    Description: Extract past sales data for specific suburb(s) and year(s)
        from the Australian property website <https://www.allhomes.com.au>.
    License: MIT + file LICENSE

    Lines starting with a space or tab continue the value of the previous
    field.

Reference: https://cran.r-project.org/doc/manuals/R-exts.html#The-DESCRIPTION-file
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .result import Err, Ok, Result

MANDATORY_FIELDS = ("Package", "Version")

_FIELD = 0
_VALUE = 1

_CONTINUATION_CHARS = (" ", "\t")
_WHITESPACE_RUN = re.compile(r"\s+")


@dataclass(frozen=True)
class PackageDescription:
    """Parsed DESCRIPTION of an R package.

    Only ``package`` and ``version`` are required. CRAN also requires title,
    description, authors, maintainer and licence, but other repositories do
    not enforce them, so they are optional here.

    Attributes:
        package: Case sensitive package identifier (e.g., "allhomes")
        version: Package version (e.g., "0.3.0")
        title: One line title
        description: Free text description, continuation lines joined
        authors: Value of the ``Author`` field
        maintainer: Maintainer name followed by an RFC 2822 address
        licences: Alternative licences from ``License`` (e.g., ("GPL-2", "file LICENCE"))
        urls: Homepages from ``URL``
        bug_report: Value of ``BugReports``
        md5sum: Archive checksum, present in repository index records
    """

    package: str
    version: str
    title: Optional[str] = None
    description: Optional[str] = None
    authors: Optional[str] = None
    maintainer: Optional[str] = None
    licences: Optional[Tuple[str, ...]] = None
    urls: Optional[Tuple[str, ...]] = None
    bug_report: Optional[str] = None
    md5sum: Optional[str] = None


@dataclass(frozen=True)
class ParseError:
    """Mandatory fields absent from a record, in check order."""

    missing: List[str] = field(default_factory=list)


def _collapse(value: Optional[str]) -> Optional[str]:
    """Trim a multi-line value and reduce internal whitespace runs to one space."""
    if value is None:
        return None
    return _WHITESPACE_RUN.sub(" ", value.strip())


def _strip(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip()


def _split(value: Optional[str], separator: str) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    return tuple(item.strip() for item in value.split(separator))


def scan_fields(content: str) -> Dict[str, str]:
    """Scan control file text into raw field/value pairs.

    Values are returned as scanned: continuation whitespace is kept and line
    terminators of continued lines are dropped. The last pair is stored even
    when the text does not end with a line terminator.

    Args:
        content: Text of a single control file record

    Returns:
        Dictionary mapping field names to raw values
    """
    attrs: Dict[str, str] = {}
    state = _FIELD
    field_name: List[str] = []
    value: List[str] = []

    length = len(content)
    i = 0
    while i < length:
        char = content[i]
        if state == _FIELD:
            if char == ":":
                state = _VALUE
            else:
                field_name.append(char)
        elif char == "\r" and i + 1 < length and content[i + 1] == "\n":
            pass
        elif char == "\n":
            continued = i + 1 < length and content[i + 1] in _CONTINUATION_CHARS
            if not continued:
                attrs["".join(field_name).strip()] = "".join(value)
                field_name = []
                value = []
                state = _FIELD
        else:
            value.append(char)
        i += 1

    # End of input flushes like a terminator followed by a new field
    if state == _VALUE:
        attrs["".join(field_name).strip()] = "".join(value)

    return attrs


def parse_description(content: str) -> Result[PackageDescription, ParseError]:
    """Parse a DESCRIPTION record.

    Args:
        content: Text of a single control file record

    Returns:
        Ok with the PackageDescription, or Err with the missing mandatory
        fields when ``Package`` or ``Version`` is absent
    """
    attrs = scan_fields(content)

    missing = [name for name in MANDATORY_FIELDS if name not in attrs]
    if missing:
        return Err(ParseError(missing=missing))

    return Ok(
        PackageDescription(
            package=attrs["Package"].strip(),
            version=attrs["Version"].strip(),
            title=_collapse(attrs.get("Title")),
            description=_collapse(attrs.get("Description")),
            authors=_collapse(attrs.get("Author")),
            maintainer=_collapse(attrs.get("Maintainer")),
            licences=_split(_collapse(attrs.get("License")), "|"),
            urls=_split(attrs.get("URL"), ","),
            bug_report=_strip(attrs.get("BugReports")),
            md5sum=_strip(attrs.get("MD5sum")),
        )
    )
