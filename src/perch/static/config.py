"""Static route configuration.

Built once at registration time by ``StaticRouteConfig.create``, which
normalizes the mount prefix and fails fast on a bad root. The resulting
value is frozen and shared by every request the route serves.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from perch.errors import ConfigurationError


def normalize_mount(mount_prefix: str) -> str:
    """Strip surrounding slashes: ``"/public/"`` -> ``"public"``, ``"/"`` -> ``""``."""
    return "/".join(part for part in mount_prefix.split("/") if part)


@dataclass(frozen=True, slots=True)
class StaticRouteConfig:
    """Everything a static site route needs to answer a request.

    Attributes:
        mount_prefix: URL segment the site is served under, without leading
            or trailing slash (``""`` for the site root).
        root_path: Canonical absolute directory; no request resolves outside it.
        default_documents: File names tried, in order, when a directory is
            requested.
        directory_browsing: Render a listing for directories with no
            default document instead of answering 404.
    """

    mount_prefix: str
    root_path: Path
    default_documents: tuple[str, ...] = ()
    directory_browsing: bool = False

    @classmethod
    def create(
        cls,
        root_path: str | Path,
        mount_prefix: str = "/",
        *,
        default_documents: Iterable[str] = (),
        directory_browsing: bool = False,
    ) -> StaticRouteConfig:
        """Validate and normalize registration options.

        Raises ``ConfigurationError`` if *root_path* does not exist or is
        not a directory, or if a default document name is not a plain
        file name.
        """
        root = Path(root_path).expanduser()
        if not root.exists():
            msg = f"Static root {str(root)!r} does not exist."
            raise ConfigurationError(msg)
        if not root.is_dir():
            msg = f"Static root {str(root)!r} is not a directory."
            raise ConfigurationError(msg)

        documents = tuple(default_documents)
        for name in documents:
            if not name or name in (".", "..") or "/" in name or "\\" in name:
                msg = f"Default document {name!r} must be a plain file name."
                raise ConfigurationError(msg)

        return cls(
            mount_prefix=normalize_mount(mount_prefix),
            root_path=root.resolve(strict=True),
            default_documents=documents,
            directory_browsing=directory_browsing,
        )

    @property
    def mount_url(self) -> str:
        """The mount as a URL path: ``"/public"``, or ``""`` at the site root."""
        return f"/{self.mount_prefix}" if self.mount_prefix else ""

    @property
    def route_patterns(self) -> tuple[str, str]:
        """Router patterns covering the mount itself and everything beneath it."""
        base = self.mount_url
        return (base or "/", f"{base}/{{path:path}}")
