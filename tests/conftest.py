"""Shared fixtures: fake cargo workspaces on disk and their metadata."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

REGISTRY = "registry+https://github.com/rust-lang/crates.io-index"


class WorkspaceBuilder:
    """Create crates under a directory and the matching cargo metadata document."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.packages: list[dict[str, Any]] = []
        self.members: list[str] = []
        self.nodes: list[dict[str, Any]] = []

    def crate(
        self,
        name: str,
        deps: tuple[str, ...] | list[str] = (),
        *,
        member: bool = False,
        version: str = "0.1.0",
        kinds: tuple[str, ...] = ("lib",),
        src_file: str = "src/lib.rs",
        with_target: bool = False,
    ) -> str:
        """Create a crate and return its package id."""
        pkg_dir = self.root / f"{name}-{version}"
        (pkg_dir / "src").mkdir(parents=True)
        (pkg_dir / "Cargo.toml").write_text(f'[package]\nname = "{name}"\nversion = "{version}"\n')
        (pkg_dir / src_file).write_text("")
        if with_target:
            (pkg_dir / "target").mkdir()

        if member:
            package_id = f"path+file://{pkg_dir}#{name}@{version}"
            self.members.append(package_id)
        else:
            package_id = f"{REGISTRY}#{name}@{version}"

        self.packages.append(
            {
                "name": name,
                "version": version,
                "id": package_id,
                "manifest_path": str(pkg_dir / "Cargo.toml"),
                "targets": [
                    {
                        "name": name,
                        "kind": list(kinds),
                        "src_path": str(pkg_dir / src_file),
                    }
                ],
            }
        )
        self.nodes.append({"id": package_id, "dependencies": list(deps)})
        return package_id

    def metadata(self) -> dict[str, Any]:
        return {
            "packages": self.packages,
            "workspace_members": self.members,
            "resolve": {"nodes": self.nodes, "root": None},
            "workspace_root": str(self.root),
            "version": 1,
        }


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    return WorkspaceBuilder(tmp_path)
