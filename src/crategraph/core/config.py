"""Settings for building a dependency tree, and the Source constructor."""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass, field
from pathlib import Path

from crategraph.core.errors import SourceConstructionError
from crategraph.core.identity import PackageIdentity
from crategraph.core.tree import Source


def _default_cargo() -> str:
    # cargo exports CARGO to subcommands and build scripts
    return os.environ.get("CARGO") or "cargo"


@dataclass
class Config:
    """
    Options of one dependency tree construction.

    verbose: log diagnostics (found sources, members, dependencies) at INFO.
    omit_deps: only build the workspace members, without their dependencies.
    cargo: executable used to run ``cargo metadata``.
    offline: pass ``--offline`` to ``cargo metadata``.
    """

    verbose: bool = False
    omit_deps: bool = False
    cargo: str = field(default_factory=_default_cargo)
    offline: bool = False

    def new_source(
        self,
        source_id: int,
        identity: PackageIdentity,
        dirs: list[Path],
        is_root: bool,
    ) -> Source:
        """Validate the directories of a package and create its Source."""
        if not dirs:
            raise SourceConstructionError(identity, "no source directories")
        for d in dirs:
            if not d.is_dir():
                raise SourceConstructionError(identity, f"'{d}' is not a directory")

        digest = hashlib.sha256(str(identity).encode())
        digest.update(identity.source.encode())
        for d in dirs:
            digest.update(os.fsencode(d))
        return Source(
            id=source_id,
            identity=identity,
            dirs=list(dirs),
            is_root=is_root,
            hash=digest.hexdigest()[:16],
        )
