"""
Utility functions for extracting versions from dependency specifiers and config text.
"""
import re
from typing import Optional


# Specifiers that carry no concrete version
_UNPINNED = {"", "*", "latest", "x", "next"}
_NON_REGISTRY_PREFIXES = ("git", "git+", "http:", "https:", "file:", "link:", "path:", "url:", "workspace:", "github:")


def normalize_version(version: Optional[str]) -> Optional[str]:
    """
    Reduce a dependency specifier to the lowest concrete version it names.

    Examples:
        - "^18.2.0" -> "18.2.0"
        - "~1.2.x" -> "1.2"
        - ">=3.8,<4" -> "3.8"
        - "v1.2.3" -> "1.2.3"
        - "*" / "latest" / "git+https://..." -> None

    Args:
        version: Version specifier to normalize

    Returns:
        Normalized version or None
    """
    if not isinstance(version, str) or not version:
        return None
    version = version.strip()
    if version.lower() in _UNPINNED or version.lower().startswith(_NON_REGISTRY_PREFIXES):
        return None

    # First alternative of "||" ranges, first clause of "," ranges
    version = version.split("||")[0].split(",")[0].strip()
    version = re.sub(r'^(?:~>|==|[=<>!~^]=?)\s*', '', version)
    version = version.lstrip('v')
    version = re.sub(r'(?:\.[x*])+$', '', version)

    match = re.match(r'^\d+(?:\.\d+)*(?:[-+][0-9A-Za-z.-]+)?', version)
    return match.group(0) if match else None


def major_version(version: Optional[str]) -> Optional[int]:
    """Major component of a specifier ("^14.17.0" -> 14, ">=16" -> 16, "18+build" -> 18)."""
    normalized = normalize_version(version)
    if not normalized:
        return None
    major = re.match(r"\d+", normalized)
    return int(major.group(0)) if major else None


def docker_image_tag(from_line: str) -> Optional[str]:
    """
    Version from a Dockerfile FROM line.

    Examples:
        - "FROM node:18-alpine" -> "18"
        - "FROM python:3.12-slim AS build" -> "3.12"
        - "FROM nginx" -> None
    """
    match = re.match(r'^\s*FROM\s+(?:--platform=\S+\s+)?\S+?:([^\s@]+)', from_line, re.IGNORECASE)
    if not match:
        return None
    tag = match.group(1)
    version = re.match(r'^v?(\d+(?:\.\d+)*)', tag)
    return version.group(1) if version else None
