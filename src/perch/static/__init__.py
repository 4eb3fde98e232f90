"""Static site serving — a directory tree behind one GET route.

Usage::

    from perch import App

    app = App()
    app.static("/public", "./site", default_documents=["index.html"])

Request flow: ``resolver.resolve`` maps the request path to an entry under
the root (or a failure), ``policy.decide`` picks a file stream, a listing,
or a failure, and ``site.StaticSite`` writes the response.
"""

from perch.static.config import StaticRouteConfig
from perch.static.listing import DirectoryEntry, list_directory, render_directory_listing
from perch.static.mime import resolve_content_type
from perch.static.policy import Listing, ServingOutcome, Stream, decide
from perch.static.resolver import EntryKind, Failure, FailureKind, ResolvedTarget, resolve
from perch.static.site import StaticSite

__all__ = [
    "DirectoryEntry",
    "EntryKind",
    "Failure",
    "FailureKind",
    "Listing",
    "ResolvedTarget",
    "ServingOutcome",
    "StaticRouteConfig",
    "StaticSite",
    "Stream",
    "decide",
    "list_directory",
    "render_directory_listing",
    "resolve",
    "resolve_content_type",
]
