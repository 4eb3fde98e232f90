"""Decide what a resolved static target turns into.

Files stream. Directories serve their first existing default document,
else a listing when browsing is on, else nothing.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from perch.static.config import StaticRouteConfig
from perch.static.listing import DirectoryEntry, list_directory
from perch.static.mime import resolve_content_type
from perch.static.resolver import (
    EntryKind,
    Failure,
    FailureKind,
    ResolvedTarget,
    classify,
)


@dataclass(frozen=True, slots=True)
class Stream:
    """Send the bytes of ``path`` as ``content_type``."""

    path: Path
    content_type: str


@dataclass(frozen=True, slots=True)
class Listing:
    """Render a browsable page for ``directory``."""

    directory: ResolvedTarget
    entries: tuple[DirectoryEntry, ...]
    title: str


type ServingOutcome = Stream | Listing | Failure


def decide(
    config: StaticRouteConfig,
    target: ResolvedTarget,
    *,
    content_types: Callable[[Path], str] = resolve_content_type,
) -> ServingOutcome:
    """Choose the outcome for *target* under *config*."""
    if target.kind is EntryKind.FILE:
        return Stream(target.path, content_types(target.path))

    for name in config.default_documents:
        relative = f"{target.relative.rstrip('/')}/{name}".lstrip("/")
        found = classify(config, target.path / name, relative)
        if isinstance(found, Failure):
            if found.kind is FailureKind.UNAUTHORIZED:
                return found
            continue
        if found.kind is EntryKind.FILE:
            return Stream(found.path, content_types(found.path))

    if not config.directory_browsing:
        return Failure(FailureKind.NOT_FOUND, target.relative)

    try:
        entries = list_directory(target.path)
    except PermissionError:
        return Failure(FailureKind.UNAUTHORIZED, target.relative)
    relative = target.relative.strip("/")
    title = f"{config.mount_url}/{relative}" if relative else config.mount_url or "/"
    return Listing(target, entries, title)
