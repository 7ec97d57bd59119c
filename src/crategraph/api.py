"""Public API: use crategraph from Python or from other tools."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from crategraph.core.builder import dependency_tree as _dependency_tree
from crategraph.core.config import Config
from crategraph.core.metadata import fetch_metadata, find_manifest_dir, load_metadata
from crategraph.core.tree import DepTree


def dependency_tree(
    metadata: dict[str, Any],
    *,
    omit_deps: bool = False,
    verbose: bool = False,
) -> DepTree:
    """
    Build the dependency tree described by decoded ``cargo metadata`` output.

    Args:
        metadata: The decoded JSON document.
        omit_deps: If True, only the workspace members are added, without dependencies.
        verbose: If True, log what is found while building.

    Returns:
        The DepTree with depths computed.
    """
    return _dependency_tree(Config(verbose=verbose, omit_deps=omit_deps), metadata)


def workspace_tree(
    path: Path | None = None,
    *,
    omit_deps: bool = False,
    verbose: bool = False,
    offline: bool = False,
) -> DepTree:
    """
    Run ``cargo metadata`` for the workspace containing ``path`` and build its tree.

    Args:
        path: A directory (or file) inside the workspace; defaults to the current directory.
        omit_deps: If True, only the workspace members are added.
        verbose: If True, log what is found while building.
        offline: If True, run cargo with ``--offline``.
    """
    config = Config(verbose=verbose, omit_deps=omit_deps, offline=offline)
    manifest_dir = find_manifest_dir(Path(path) if path is not None else Path.cwd())
    return _dependency_tree(config, fetch_metadata(manifest_dir, config))


def tree_from_file(
    path: str | Path,
    *,
    omit_deps: bool = False,
    verbose: bool = False,
) -> DepTree:
    """Build the tree from a saved ``cargo metadata`` snapshot (``-`` = stdin)."""
    return dependency_tree(load_metadata(path), omit_deps=omit_deps, verbose=verbose)
