"""Core library: metadata access, package resolution, dependency tree building."""

from crategraph.core.builder import build_dep_tree, dependency_tree, workspace_members
from crategraph.core.config import Config
from crategraph.core.errors import (
    DepTreeError,
    ErrorKind,
    InvalidSourceDirectoryError,
    MetadataError,
    SchemaViolationError,
    SourceConstructionError,
    UnparsableIdentifierError,
    UnresolvedReferenceError,
)
from crategraph.core.identity import PackageIdentity, parse_package_id
from crategraph.core.metadata import fetch_metadata, find_manifest_dir, load_metadata
from crategraph.core.resolver import Package, ResolutionMode, resolve_packages, source_path
from crategraph.core.tree import DependencyNode, DepTree, Source

__all__ = [
    "build_dep_tree",
    "dependency_tree",
    "workspace_members",
    "Config",
    "DepTreeError",
    "ErrorKind",
    "InvalidSourceDirectoryError",
    "MetadataError",
    "SchemaViolationError",
    "SourceConstructionError",
    "UnparsableIdentifierError",
    "UnresolvedReferenceError",
    "PackageIdentity",
    "parse_package_id",
    "fetch_metadata",
    "find_manifest_dir",
    "load_metadata",
    "Package",
    "ResolutionMode",
    "resolve_packages",
    "source_path",
    "DependencyNode",
    "DepTree",
    "Source",
]
