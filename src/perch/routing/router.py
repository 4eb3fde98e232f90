"""Compiled router with trie-based path matching.

Routes are registered during setup and compiled into an immutable
lookup structure when the app freezes. A path+method pair is owned by
exactly one route; re-registering it requires ``overwrite=True``.
"""

import re
from dataclasses import dataclass

from perch.errors import ConfigurationError, MethodNotAllowed, NotFound, RouteExistsError
from perch.routing.params import CONVERTERS
from perch.routing.route import PathSegment, Route, RouteMatch


def parse_path(path: str) -> list[PathSegment]:
    """Parse a route path string into segments.

    Examples::

        "/users"             -> [PathSegment("users")]
        "/users/{id:int}"    -> [PathSegment("users"), PathSegment("{id:int}", is_param=True, ...)]
        "/files/{rest:path}" -> [PathSegment("files"), PathSegment("{rest:path}", ...)]

    Raises ``ConfigurationError`` for unknown converters, a catch-all that
    is not the last segment, and Flask-style ``<param>`` segments.
    """
    parts = [part for part in path.strip("/").split("/") if part]
    segments: list[PathSegment] = []
    for index, part in enumerate(parts):
        if part.startswith("<") and part.endswith(">"):
            msg = (
                f"Route {path!r} uses <param> syntax. "
                f"Perch path parameters are written {{param}}."
            )
            raise ConfigurationError(msg)
        if not (part.startswith("{") and part.endswith("}")):
            segments.append(PathSegment(value=part))
            continue

        param_name, _, param_type = part[1:-1].partition(":")
        param_type = param_type or "str"
        if param_type not in CONVERTERS:
            msg = f"Route {path!r} uses unknown converter {param_type!r}."
            raise ConfigurationError(msg)
        if param_type == "path" and index != len(parts) - 1:
            msg = f"Route {path!r}: a {{name:path}} segment must come last."
            raise ConfigurationError(msg)
        segments.append(
            PathSegment(
                value=part,
                is_param=True,
                param_name=param_name,
                param_type=param_type,
            )
        )
    return segments


class _TrieNode:
    """A node in the route trie. Mutable during compilation only."""

    __slots__ = ("catch_all", "children", "param_child", "routes_by_method")

    def __init__(self) -> None:
        # Static segment children: "users" -> node
        self.children: dict[str, _TrieNode] = {}
        # Single parameter child (only one param pattern per level)
        self.param_child: _ParamEdge | None = None
        # Catch-all edge (path converter)
        self.catch_all: _CatchAllEdge | None = None
        # Routes at this node, keyed by HTTP method
        self.routes_by_method: dict[str, Route] = {}


@dataclass(slots=True)
class _ParamEdge:
    """A parameter edge in the trie."""

    converter: str
    regex: re.Pattern[str]
    node: _TrieNode


@dataclass(slots=True)
class _CatchAllEdge:
    """A catch-all (path) edge; consumes the remaining path."""

    routes_by_method: dict[str, Route]


def _claim(table: dict[str, Route], route: Route, *, overwrite: bool) -> None:
    """Bind every method of *route* into *table*, honouring *overwrite*."""
    taken = frozenset(route.methods & table.keys())
    if taken and not overwrite:
        raise RouteExistsError(route.path, taken)
    for method in route.methods:
        table[method] = route


class Router:
    """Compiled router with trie-based path matching.

    Usage::

        router = Router()
        router.add(Route("/users", handler, frozenset({"GET"})))
        router.add(Route("/files/{rest:path}", files, frozenset({"GET"})))
        router.compile()
        match = router.match("GET", "/files/css/site.css")
    """

    __slots__ = ("_compiled", "_param_names", "_root")

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._compiled = False
        # Parameter names per route path, in segment order
        self._param_names: dict[str, tuple[str, ...]] = {}

    def add(self, route: Route, *, overwrite: bool = False) -> None:
        """Add a route. Must be called before compile().

        Raises ``RouteExistsError`` if one of the route's methods is already
        bound to the same path, unless *overwrite* is true. Raises
        ``ConfigurationError`` if a parameter's converter differs from the
        one already compiled at that position.
        """
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)

        segments = parse_path(route.path)
        self._param_names[route.path] = tuple(
            seg.param_name or "" for seg in segments if seg.is_param
        )

        node = self._root
        for seg in segments:
            if seg.param_type == "path" and seg.is_param:
                if node.catch_all is None:
                    node.catch_all = _CatchAllEdge(routes_by_method={})
                _claim(node.catch_all.routes_by_method, route, overwrite=overwrite)
                return

            if seg.is_param:
                if node.param_child is None:
                    pattern, _ = CONVERTERS[seg.param_type]
                    node.param_child = _ParamEdge(
                        converter=seg.param_type,
                        regex=re.compile(f"^{pattern}$"),
                        node=_TrieNode(),
                    )
                elif node.param_child.converter != seg.param_type:
                    msg = (
                        f"Route {route.path!r} uses a {seg.param_type!r} parameter where "
                        f"another route uses {node.param_child.converter!r}."
                    )
                    raise ConfigurationError(msg)
                node = node.param_child.node
            else:
                node = node.children.setdefault(seg.value, _TrieNode())

        _claim(node.routes_by_method, route, overwrite=overwrite)

    @property
    def routes(self) -> list[Route]:
        """Every unique Route object in the trie."""
        seen: set[int] = set()
        result: list[Route] = []
        self._collect_routes(self._root, seen, result)
        return result

    def _collect_routes(self, node: _TrieNode, seen: set[int], result: list[Route]) -> None:
        tables = [node.routes_by_method]
        if node.catch_all is not None:
            tables.append(node.catch_all.routes_by_method)
        for table in tables:
            for route in table.values():
                if id(route) not in seen:
                    seen.add(id(route))
                    result.append(route)

        for child in node.children.values():
            self._collect_routes(child, seen, result)
        if node.param_child is not None:
            self._collect_routes(node.param_child.node, seen, result)

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch:
        """Match a request path and method against compiled routes.

        Returns a ``RouteMatch`` on success.
        Raises ``NotFound`` if no route matches the path.
        Raises ``MethodNotAllowed`` if the path matches but the method doesn't.
        """
        parts = [p for p in path.strip("/").split("/") if p]
        result = self._match_node(self._root, parts, 0, ())

        if result is None:
            raise NotFound(f"No route matches {method} {path!r}")

        table, values = result
        if method in table:
            route = table[method]
            # Routes sharing an edge may name its parameter differently
            params = dict(zip(self._param_names[route.path], values, strict=True))
            return RouteMatch(route=route, path_params=params)
        raise MethodNotAllowed(frozenset(table))

    def _match_node(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        values: tuple[str, ...],
    ) -> tuple[dict[str, Route], tuple[str, ...]] | None:
        """Recursively match path parts, collecting captured values in order."""
        if index == len(parts):
            if node.routes_by_method:
                return node.routes_by_method, values
            return None

        part = parts[index]

        # 1. Static child first (exact match)
        if part in node.children:
            result = self._match_node(node.children[part], parts, index + 1, values)
            if result is not None:
                return result

        # 2. Parameter child
        edge = node.param_child
        if edge is not None and edge.regex.match(part):
            result = self._match_node(edge.node, parts, index + 1, (*values, part))
            if result is not None:
                return result

        # 3. Catch-all consumes the rest
        if node.catch_all is not None:
            remaining = "/".join(parts[index:])
            return node.catch_all.routes_by_method, (*values, remaining)

        return None
