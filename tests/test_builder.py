"""Tests for crategraph.core.builder module."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from crategraph.core.builder import build_dep_tree, dependency_tree, workspace_members
from crategraph.core.config import Config
from crategraph.core.errors import (
    ErrorKind,
    InvalidSourceDirectoryError,
    SchemaViolationError,
    SourceConstructionError,
    UnparsableIdentifierError,
    UnresolvedReferenceError,
)
from crategraph.core.identity import PackageIdentity, parse_package_id
from crategraph.core.resolver import resolve_packages
from crategraph.core.tree import DepTree, Source


def _by_name(tree: DepTree) -> dict[str, Source]:
    return {s.name: s for s in tree.sources}


class TestWorkspaceMembers:
    """Tests for workspace_members."""

    def test_parses_members(self, workspace) -> None:
        a = workspace.crate("a", member=True)
        assert workspace_members(workspace.metadata()) == [parse_package_id(a)]

    def test_non_string_member(self) -> None:
        with pytest.raises(SchemaViolationError) as exc_info:
            workspace_members({"workspace_members": [{"id": "a"}]})
        assert exc_info.value.field == "workspace_members"


class TestDependencyTree:
    """Tests for the full graph construction."""

    def test_chain_depths(self, workspace) -> None:
        c = workspace.crate("c")
        b = workspace.crate("b", [c])
        workspace.crate("a", [b], member=True)
        tree = dependency_tree(Config(), workspace.metadata())
        sources = _by_name(tree)
        assert sources["c"].depth == 0
        assert sources["b"].depth == 1
        assert sources["a"].depth == 2

    def test_nodes_in_any_document_order(self, workspace) -> None:
        # The resolve node of "a" comes before the one of its dependency
        c = workspace.crate("c")
        b = workspace.crate("b", [c])
        workspace.crate("a", [b], member=True)
        metadata = workspace.metadata()
        metadata["resolve"]["nodes"].reverse()
        tree = dependency_tree(Config(), metadata)
        assert _by_name(tree)["a"].depth == 2

    def test_roots_and_is_root(self, workspace) -> None:
        lib = workspace.crate("lib")
        workspace.crate("app", [lib], member=True)
        workspace.crate("tool", [lib], member=True)
        tree = dependency_tree(Config(), workspace.metadata())
        sources = _by_name(tree)
        assert sorted(tree.roots) == sorted([sources["app"].id, sources["tool"].id])
        assert sources["app"].is_root and sources["tool"].is_root
        assert not sources["lib"].is_root

    def test_root_flag_follows_members(self, workspace) -> None:
        lib = workspace.crate("lib")
        app = workspace.crate("app", [lib])
        metadata = workspace.metadata()

        metadata["workspace_members"] = [app]
        sources = _by_name(dependency_tree(Config(), metadata))
        assert sources["app"].is_root and not sources["lib"].is_root

        metadata["workspace_members"] = [lib]
        sources = _by_name(dependency_tree(Config(), metadata))
        assert sources["lib"].is_root and not sources["app"].is_root
        # Depths don't depend on which crate is a root
        assert sources["app"].depth == 1
        assert sources["lib"].depth == 0

    def test_edges_reference_registered_sources(self, workspace) -> None:
        base = workspace.crate("base")
        left = workspace.crate("left", [base])
        right = workspace.crate("right", [base])
        workspace.crate("top", [left, right], member=True)
        tree = dependency_tree(Config(), workspace.metadata())
        for src in tree.sources:
            for dep in tree.dependencies(src.id):
                assert dep in tree
        assert _by_name(tree)["top"].depth == 2

    def test_source_directories(self, workspace) -> None:
        workspace.crate("a", member=True, with_target=True)
        src = _by_name(dependency_tree(Config(), workspace.metadata()))["a"]
        assert [d.name for d in src.dirs] == ["src", "target"]
        assert len(src.hash) == 16

    def test_unresolved_member(self, workspace) -> None:
        workspace.crate("a", member=True)
        metadata = workspace.metadata()
        metadata["workspace_members"].append("path+file:///nowhere/ghost#ghost@0.1.0")
        with pytest.raises(UnresolvedReferenceError) as exc_info:
            dependency_tree(Config(), metadata)
        assert exc_info.value.kind is ErrorKind.UNRESOLVED_REFERENCE
        assert exc_info.value.role == "workspace member"
        assert exc_info.value.reference == PackageIdentity("ghost", "0.1.0", "path+file:///nowhere/ghost")

    def test_unresolved_dependency(self, workspace) -> None:
        workspace.crate("a", ["registry+https://github.com/rust-lang/crates.io-index#ghost@1.0.0"], member=True)
        with pytest.raises(UnresolvedReferenceError) as exc_info:
            dependency_tree(Config(), workspace.metadata())
        assert exc_info.value.role == "dependency"
        assert exc_info.value.reference.name == "ghost"

    def test_dependency_without_supported_target(self, workspace) -> None:
        script = workspace.crate("script", kinds=("custom-build",), src_file="build.rs")
        workspace.crate("a", [script], member=True)
        with pytest.raises(UnresolvedReferenceError):
            dependency_tree(Config(), workspace.metadata())

    def test_unparsable_dependency(self, workspace) -> None:
        workspace.crate("a", ["not a package id"], member=True)
        with pytest.raises(UnparsableIdentifierError):
            dependency_tree(Config(), workspace.metadata())

    def test_non_string_dependency(self, workspace) -> None:
        workspace.crate("a", [{"name": "b"}], member=True)
        with pytest.raises(SchemaViolationError, match="'dependencies'"):
            dependency_tree(Config(), workspace.metadata())

    def test_missing_manifest_path(self, workspace) -> None:
        workspace.crate("a", member=True)
        metadata = workspace.metadata()
        del metadata["packages"][0]["manifest_path"]
        with pytest.raises(SchemaViolationError) as exc_info:
            dependency_tree(Config(), metadata)
        assert exc_info.value.field == "manifest_path"
        assert "manifest_path" in str(exc_info.value)

    def test_missing_resolve(self, workspace) -> None:
        workspace.crate("a", member=True)
        metadata = workspace.metadata()
        metadata["resolve"] = None
        with pytest.raises(SchemaViolationError, match="'resolve'"):
            dependency_tree(Config(), metadata)

    def test_invalid_source_directory(self, workspace, tmp_path: Path) -> None:
        workspace.crate("a", member=True)
        metadata = workspace.metadata()
        metadata["packages"][0]["targets"][0]["src_path"] = str(tmp_path / "moved" / "lib.rs")
        with pytest.raises(InvalidSourceDirectoryError):
            dependency_tree(Config(), metadata)

    def test_source_construction_failure_propagates(self, workspace) -> None:
        class RejectingConfig(Config):
            def new_source(self, source_id, identity, dirs, is_root):
                if identity.name == "b":
                    raise SourceConstructionError(identity, "rejected")
                return super().new_source(source_id, identity, dirs, is_root)

        b = workspace.crate("b")
        workspace.crate("a", [b], member=True)
        with pytest.raises(SourceConstructionError) as exc_info:
            dependency_tree(RejectingConfig(), workspace.metadata())
        assert exc_info.value.kind is ErrorKind.DOWNSTREAM_CONSTRUCTION_FAILURE
        assert exc_info.value.reason == "rejected"

    def test_verbose_logging(self, workspace, caplog) -> None:
        b = workspace.crate("b")
        workspace.crate("a", [b], member=True)
        with caplog.at_level(logging.INFO, logger="crategraph.core.builder"):
            dependency_tree(Config(verbose=True), workspace.metadata())
        assert "Found workspace members: a 0.1.0" in caplog.text
        assert "Found dependencies of a 0.1.0: b 0.1.0" in caplog.text
        assert "Building tree for b 0.1.0" in caplog.text


class TestOmitDeps:
    """Tests for roots-only construction."""

    def test_only_roots(self, workspace) -> None:
        shared = workspace.crate("shared")
        dx = workspace.crate("dx", [shared])
        workspace.crate("x", [dx, shared], member=True)
        workspace.crate("y", [shared], member=True)
        tree = dependency_tree(Config(omit_deps=True), workspace.metadata())
        sources = _by_name(tree)
        assert set(sources) == {"x", "y"}
        assert all(s.depth == 0 and s.is_root for s in sources.values())
        assert all(tree.dependencies(s.id) == [] for s in sources.values())
        assert sorted(tree.roots) == sorted(s.id for s in sources.values())

    def test_resolve_is_not_read(self, workspace) -> None:
        workspace.crate("x", member=True)
        metadata = workspace.metadata()
        del metadata["resolve"]
        tree = dependency_tree(Config(omit_deps=True), metadata)
        assert len(tree) == 1

    def test_build_dep_tree_registers_roots(self, workspace) -> None:
        workspace.crate("x", member=True)
        metadata = workspace.metadata()
        tree = DepTree()
        packages = resolve_packages(metadata, Config(), tree)
        build_dep_tree(Config(omit_deps=True), metadata, packages, tree)
        assert tree.roots == [packages[parse_package_id(metadata["workspace_members"][0])].id]
        # Depths are computed by dependency_tree, not by build_dep_tree
        assert next(tree.sources).depth is None
