"""Represent a workspace dependency tree and compute build depths."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator

from crategraph.core.errors import UnresolvedReferenceError
from crategraph.core.identity import PackageIdentity


@dataclass
class Source:
    """One buildable package of the workspace: a node of the dependency tree."""

    id: int
    identity: PackageIdentity
    dirs: list[Path]
    is_root: bool
    hash: str = ""
    # Set by DepTree.compute_depths
    depth: int | None = None

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def version(self) -> str:
        return self.identity.version

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "source": self.identity.source,
            "dirs": [str(d) for d in self.dirs],
            "is_root": self.is_root,
            "hash": self.hash,
            "depth": self.depth,
        }


@dataclass
class DependencyNode:
    """A node in the nested tree view: one source and its direct dependencies."""

    name: str
    version: str
    path: str
    depth: int
    is_root: bool = False
    children: list[DependencyNode] = field(default_factory=list)
    # Optional: the underlying Source for API consumers
    source: Source | None = None

    def to_dict(self) -> dict:
        """Serialize node to a JSON-friendly dict."""
        return {
            "name": self.name,
            "version": self.version,
            "path": self.path,
            "depth": self.depth,
            "is_root": self.is_root,
            "children": [c.to_dict() for c in self.children],
        }


class DepTree:
    """
    Arena of sources addressed by integer handles.

    Handles are allocated with new_source() and index both the source list
    and the dependency lists. The edge set mirrors cargo's resolved graph
    and must be acyclic; cycles are not detected.
    """

    def __init__(self) -> None:
        self._sources: list[Source | None] = []
        self._dependencies: list[list[int]] = []
        self._roots: list[int] = []

    # -- construction -----------------------------------------------------

    def reserve_num_sources(self, num: int) -> None:
        """Size hint for the number of sources; lists grow on demand anyway."""
        if num < 0:
            raise ValueError(f"Negative number of sources: {num}")

    def new_source(self) -> int:
        self._sources.append(None)
        self._dependencies.append([])
        return len(self._sources) - 1

    def set_roots(self, ids: Iterable[int]) -> None:
        self._roots = list(ids)

    def set_source(self, source: Source, dep_ids: Iterable[int]) -> None:
        """Register a source with the handles of its direct dependencies."""
        if not 0 <= source.id < len(self._sources):
            raise RuntimeError(f"Source handle {source.id} was not allocated by this tree")
        if self._sources[source.id] is not None:
            raise RuntimeError(f"Source handle {source.id} registered twice ({source.identity})")

        deps = list(dep_ids)
        for dep in deps:
            if not 0 <= dep < len(self._sources):
                raise UnresolvedReferenceError(dep, f"dependency handle of {source.identity}:")
        self._sources[source.id] = source
        self._dependencies[source.id] = deps

    def compute_depths(self) -> None:
        """
        Set Source.depth for every registered source.

        depth = 0 without dependencies, else 1 + the largest dependency depth.
        Uses an explicit stack so deep graphs don't hit the recursion limit.
        """
        depths: dict[int, int] = {}
        for start in self._registered_ids():
            if start in depths:
                continue
            stack = [start]
            while stack:
                current = stack[-1]
                pending = [d for d in self._dependencies[current] if d not in depths]
                if pending:
                    for dep in pending:
                        if self._sources[dep] is None:
                            raise UnresolvedReferenceError(
                                dep, f"dependency handle of {self._sources[current].identity}:"
                            )
                    stack.extend(pending)
                    continue
                stack.pop()
                if current in depths:
                    continue
                deps = self._dependencies[current]
                depths[current] = 1 + max(depths[d] for d in deps) if deps else 0

        for sid, depth in depths.items():
            self._sources[sid].depth = depth

    # -- queries ------------------------------------------------------------

    def _registered_ids(self) -> list[int]:
        return [i for i, s in enumerate(self._sources) if s is not None]

    @property
    def roots(self) -> list[int]:
        return list(self._roots)

    @property
    def sources(self) -> Iterator[Source]:
        return (s for s in self._sources if s is not None)

    def __len__(self) -> int:
        return len(self._registered_ids())

    def __contains__(self, sid: object) -> bool:
        return isinstance(sid, int) and 0 <= sid < len(self._sources) and self._sources[sid] is not None

    def source(self, sid: int) -> Source:
        if sid not in self:
            raise KeyError(sid)
        return self._sources[sid]

    def dependencies(self, sid: int) -> list[int]:
        self.source(sid)
        return list(self._dependencies[sid])

    def depth(self, sid: int) -> int | None:
        return self.source(sid).depth

    def dependents(self, sid: int) -> list[int]:
        """Handles of the sources that depend directly on ``sid``."""
        self.source(sid)
        return [i for i in self._registered_ids() if sid in self._dependencies[i]]

    def transitive_dependencies(self, sid: int) -> set[int]:
        seen: set[int] = set()
        stack = self.dependencies(sid)
        while stack:
            dep = stack.pop()
            if dep in seen:
                continue
            seen.add(dep)
            stack.extend(self._dependencies[dep])
        return seen

    def find(self, name: str) -> list[Source]:
        """All sources with the given package name (several versions may coexist)."""
        return [s for s in self.sources if s.name == name]

    def levels(self) -> list[list[Source]]:
        """
        Sources grouped by ascending depth.

        Every source of level k only depends on sources of lower levels, so
        each level can be processed in parallel once the previous ones are done.
        """
        by_depth: dict[int, list[Source]] = {}
        for src in self.sources:
            if src.depth is None:
                raise RuntimeError("compute_depths() has not been called")
            by_depth.setdefault(src.depth, []).append(src)
        return [sorted(by_depth[d], key=lambda s: s.identity) for d in sorted(by_depth)]

    def node(self, sid: int) -> DependencyNode:
        """
        Nested view starting at ``sid``.

        Shared dependencies are represented by the same DependencyNode object,
        so the view is as large as the graph rather than the expanded tree.
        """
        cache: dict[int, DependencyNode] = {}

        def _make(current: int) -> DependencyNode:
            if current in cache:
                return cache[current]
            src = self.source(current)
            made = DependencyNode(
                name=src.name,
                version=src.version,
                path=str(src.dirs[0]) if src.dirs else "",
                depth=src.depth if src.depth is not None else 0,
                is_root=src.is_root,
                source=src,
            )
            cache[current] = made
            made.children = [_make(d) for d in self._dependencies[current] if d in self]
            return made

        return _make(sid)

    def root_nodes(self) -> list[DependencyNode]:
        return [self.node(r) for r in self._roots if r in self]

    def to_dict(self) -> dict:
        """Flat JSON-friendly dump: sources with dependency handles, plus roots."""
        sources = []
        for src in self.sources:
            entry = src.to_dict()
            entry["dependencies"] = list(self._dependencies[src.id])
            sources.append(entry)
        return {"roots": self.roots, "sources": sources}
