"""Build the dependency tree of a cargo workspace from its metadata."""

from __future__ import annotations

import logging
from typing import Any

from crategraph.core.config import Config
from crategraph.core.errors import UnresolvedReferenceError
from crategraph.core.identity import PackageIdentity, parse_package_id
from crategraph.core.resolver import Package, resolve_packages
from crategraph.core.schema import as_array, as_object, as_str, item_as_str
from crategraph.core.tree import DepTree

logger = logging.getLogger(__name__)


def dependency_tree(config: Config, metadata: dict[str, Any]) -> DepTree:
    """
    Return the dependency tree of the whole workspace described by ``metadata``.

    ``metadata`` is the decoded output of ``cargo metadata --format-version 1``.
    The returned tree has its depths computed. Any error aborts the whole
    construction.
    """
    dep_tree = DepTree()
    packages = resolve_packages(metadata, config, dep_tree)

    build_dep_tree(config, metadata, packages, dep_tree)
    dep_tree.compute_depths()

    return dep_tree


def workspace_members(metadata: dict[str, Any]) -> list[PackageIdentity]:
    members = as_array("workspace_members", metadata)
    return [parse_package_id(item_as_str("workspace_members", m)) for m in members]


def _package(
    identity: PackageIdentity,
    packages: dict[PackageIdentity, Package],
    role: str,
) -> Package:
    package = packages.get(identity)
    if package is None:
        raise UnresolvedReferenceError(identity, role)
    return package


def build_dep_tree(
    config: Config,
    metadata: dict[str, Any],
    packages: dict[PackageIdentity, Package],
    dep_tree: DepTree,
) -> None:
    """
    Register the workspace members as roots and every resolve node as a source.

    With ``config.omit_deps`` only the members are registered, without
    dependencies, and ``resolve`` is never read.
    """
    members = workspace_members(metadata)
    if config.verbose:
        logger.info("Found workspace members: %s", ", ".join(str(m) for m in members))

    root_ids: list[int] = []
    for member in members:
        member_package = _package(member, packages, "workspace member")
        root_ids.append(member_package.id)
        if config.omit_deps:
            source = config.new_source(
                member_package.id, member, list(member_package.source_paths), True
            )
            dep_tree.set_source(source, [])

    dep_tree.set_roots(root_ids)
    if config.omit_deps:
        return

    roots = set(root_ids)
    nodes = as_array("nodes", as_object("resolve", metadata))
    for node in nodes:
        node_version = parse_package_id(as_str("id", node))
        node_package = _package(node_version, packages, "resolve node")

        dep_versions = [
            parse_package_id(item_as_str("dependencies", dep))
            for dep in as_array("dependencies", node)
        ]
        if dep_versions and config.verbose:
            logger.info(
                "Found dependencies of %s: %s",
                node_version,
                ", ".join(str(v) for v in dep_versions),
            )
        dep_ids = [_package(v, packages, "dependency").id for v in dep_versions]

        if config.verbose:
            logger.info("Building tree for %s", node_version)

        source = config.new_source(
            node_package.id,
            node_version,
            list(node_package.source_paths),
            node_package.id in roots,
        )
        dep_tree.set_source(source, dep_ids)
