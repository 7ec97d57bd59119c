"""crategraph: build depth-annotated dependency trees of cargo workspaces (library, TUI, CLI)."""

from importlib.metadata import version, PackageNotFoundError

from crategraph.api import (
    dependency_tree,
    tree_from_file,
    workspace_tree,
)
from crategraph.core.config import Config
from crategraph.core.errors import DepTreeError, ErrorKind
from crategraph.core.tree import DepTree, Source

__all__ = [
    "dependency_tree",
    "tree_from_file",
    "workspace_tree",
    "Config",
    "DepTreeError",
    "ErrorKind",
    "DepTree",
    "Source",
    "__version__",
]

try:
    __version__ = version("crategraph")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"  # Not installed as package
