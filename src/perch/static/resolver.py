"""Map a request path to a filesystem entry under the static root.

``resolve`` never raises for the failures a client can provoke: missing
entries, traversal attempts and permission errors come back as a
``Failure`` value. Other ``OSError`` subclasses propagate to the caller.
"""

from __future__ import annotations

import errno
import logging
import os
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from perch.static.config import StaticRouteConfig

logger = logging.getLogger("perch.static")

# OSError errnos that mean "there is nothing servable here"
_MISSING_ERRNOS = frozenset({errno.ENOENT, errno.ENOTDIR, errno.ELOOP, errno.ENAMETOOLONG})


class EntryKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"


class FailureKind(Enum):
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"


@dataclass(frozen=True, slots=True)
class ResolvedTarget:
    """A file or directory inside the root, ready for the serving policy."""

    kind: EntryKind
    path: Path
    relative: str


@dataclass(frozen=True, slots=True)
class Failure:
    """A request that cannot be served, and why."""

    kind: FailureKind
    path: str


def strip_mount(mount_prefix: str, request_path: str) -> str | None:
    """Return the part of *request_path* below the mount, or None if outside it.

    ``strip_mount("public", "/public/img/a.png")`` -> ``"img/a.png"``
    """
    trimmed = request_path.lstrip("/")
    if not mount_prefix:
        return trimmed
    if trimmed == mount_prefix or trimmed.startswith(mount_prefix + "/"):
        return trimmed[len(mount_prefix) :].lstrip("/")
    return None


def classify(config: StaticRouteConfig, candidate: Path, relative: str) -> ResolvedTarget | Failure:
    """Canonicalize *candidate* and classify it, enforcing root containment.

    Symlinks are followed; containment is checked on the final path, so a
    link pointing out of the root is reported as not found.
    """
    try:
        real = candidate.resolve(strict=True)
        mode = real.stat().st_mode
    except PermissionError:
        return Failure(FailureKind.UNAUTHORIZED, relative)
    except ValueError:
        # Embedded NUL byte
        return Failure(FailureKind.NOT_FOUND, relative)
    except OSError as exc:
        if exc.errno in _MISSING_ERRNOS:
            return Failure(FailureKind.NOT_FOUND, relative)
        raise
    except RuntimeError:
        # Symlink loop on interpreters that report it this way
        return Failure(FailureKind.NOT_FOUND, relative)

    if not real.is_relative_to(config.root_path):
        logger.debug("Refusing %r: resolves outside %s", relative, config.root_path)
        return Failure(FailureKind.NOT_FOUND, relative)

    if stat.S_ISDIR(mode):
        return ResolvedTarget(EntryKind.DIRECTORY, real, relative)
    if stat.S_ISREG(mode):
        if not os.access(real, os.R_OK):
            return Failure(FailureKind.UNAUTHORIZED, relative)
        return ResolvedTarget(EntryKind.FILE, real, relative)
    return Failure(FailureKind.NOT_FOUND, relative)


def resolve(config: StaticRouteConfig, request_path: str) -> ResolvedTarget | Failure:
    """Resolve *request_path* to an entry under ``config.root_path``."""
    relative = strip_mount(config.mount_prefix, request_path)
    if relative is None:
        return Failure(FailureKind.NOT_FOUND, request_path)

    # Reject lexical escapes before touching the filesystem
    joined = os.path.normpath(os.path.join(config.root_path, relative))
    candidate = Path(joined)
    if not candidate.is_relative_to(config.root_path):
        logger.debug("Refusing %r: escapes %s", relative, config.root_path)
        return Failure(FailureKind.NOT_FOUND, relative)

    return classify(config, candidate, relative)
