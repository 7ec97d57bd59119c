"""Resolve the packages of a metadata snapshot to their source directories."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from crategraph.core.config import Config
from crategraph.core.errors import InvalidSourceDirectoryError
from crategraph.core.identity import PackageIdentity, parse_package_id
from crategraph.core.schema import as_array, as_str, item_as_str
from crategraph.core.tree import DepTree

logger = logging.getLogger(__name__)

# Directory next to a package's sources where cargo places build artifacts.
BUILD_OUTPUT_DIR = "target"

# Exact target kinds we build; any kind containing "lib" is accepted too.
_SUPPORTED_KINDS = ("bin", "proc-macro", "test")


class ResolutionMode(Enum):
    """Which directory of a package to resolve."""

    PRIMARY = "primary"
    BUILD_OUTPUT = "build-output"


@dataclass
class Package:
    """A resolved package: its tree handle and the directories found for it."""

    id: int
    source_paths: list[Path] = field(default_factory=list)


def is_supported_kind(kind: str) -> bool:
    return kind in _SUPPORTED_KINDS or "lib" in kind


def resolve_packages(
    metadata: dict[str, Any],
    config: Config,
    dep_tree: DepTree,
) -> dict[PackageIdentity, Package]:
    """
    Map every package of the snapshot to a handle and its directories.

    A handle is allocated from ``dep_tree`` the first time a package yields a
    directory; the primary directory comes first in ``source_paths``, the
    build-output directory (if any) second. Packages without a supported
    target kind are left out.
    """
    packages = as_array("packages", metadata)
    dep_tree.reserve_num_sources(len(packages))

    package_map: dict[PackageIdentity, Package] = {}
    for package in packages:
        identity = parse_package_id(as_str("id", package))
        for mode in ResolutionMode:
            path = source_path(config, package, mode)
            if path is None:
                continue

            if config.verbose:
                logger.info("Found %s source %s for package %s", mode.value, path, identity)

            entry = package_map.get(identity)
            if entry is None:
                entry = package_map[identity] = Package(id=dep_tree.new_source())
            entry.source_paths.append(path)

    return package_map


def source_path(config: Config, package: dict[str, Any], mode: ResolutionMode) -> Path | None:
    """
    Directory of ``package`` for the given resolution mode, or None.

    The first target with a supported kind decides. An absolute ``src_path``
    to an existing file gives its directory (primary) or ``target`` next to
    that directory (build output); a relative one gives the manifest
    directory. Raises InvalidSourceDirectoryError if the primary directory
    doesn't exist; a missing build-output directory just gives None.
    """
    targets = as_array("targets", package)
    manifest_dir = Path(as_str("manifest_path", package)).parent

    for target in targets:
        for kind in as_array("kind", target):
            kind = item_as_str("kind", kind)
            if not is_supported_kind(kind):
                if config.verbose:
                    logger.info("Unsupported target kind: %s", kind)
                continue

            src_path = Path(as_str("src_path", target))
            if src_path.is_absolute() and src_path.is_file():
                src_path = src_path.parent
                if mode is ResolutionMode.BUILD_OUTPUT:
                    src_path = src_path.parent / BUILD_OUTPUT_DIR

            if not src_path.is_absolute():
                src_path = manifest_dir

            if not src_path.is_dir():
                if mode is ResolutionMode.BUILD_OUTPUT:
                    return None
                raise InvalidSourceDirectoryError(src_path)

            return src_path

    return None
