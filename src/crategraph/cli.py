"""Command-line interface for crategraph: show the dependency tree, its depth levels, or a graph."""

from __future__ import annotations

import argparse
import json
import logging
import re
import shutil
import subprocess
import sys
from pathlib import Path

from crategraph.core.builder import dependency_tree
from crategraph.core.config import Config
from crategraph.core.errors import DepTreeError
from crategraph.core.metadata import fetch_metadata, find_manifest_dir, load_metadata
from crategraph.core.tree import DepTree, DependencyNode


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def _config_from_args(args: argparse.Namespace) -> Config:
    return Config(
        verbose=getattr(args, "verbose", False),
        omit_deps=getattr(args, "omit_deps", False),
        offline=getattr(args, "offline", False),
    )


def _load_tree(args: argparse.Namespace) -> DepTree:
    """Build the tree from --metadata, or by running cargo metadata for --manifest-path."""
    config = _config_from_args(args)
    if getattr(args, "metadata", None):
        metadata = load_metadata(args.metadata)
    else:
        start = Path(args.manifest_path) if getattr(args, "manifest_path", None) else Path.cwd()
        metadata = fetch_metadata(find_manifest_dir(start), config)
    return dependency_tree(config, metadata)


def _print_tree_text(
    node: DependencyNode,
    prefix: str = "",
    is_last: bool = True,
    is_top: bool = True,
    seen: set[int] | None = None,
) -> None:
    """Print a dependency tree as indented text; repeated subtrees are marked with (*)."""
    if seen is None:
        seen = set()
    marker = "" if is_top else ("└── " if is_last else "├── ")
    key = node.source.id if node.source is not None else id(node)
    repeated = key in seen and bool(node.children)
    suffix = " (*)" if repeated else ""
    root = " [root]" if node.is_root else ""
    print(f"{prefix}{marker}{node.name} v{node.version}{root} [depth {node.depth}]{suffix}")
    if repeated:
        return
    seen.add(key)

    child_prefix = prefix if is_top else prefix + ("    " if is_last else "│   ")
    for i, child in enumerate(node.children):
        _print_tree_text(child, child_prefix, i == len(node.children) - 1, False, seen)


def cmd_tree(args: argparse.Namespace) -> int:
    """Show the dependency tree of every workspace member."""
    tree = _load_tree(args)

    if args.json:
        print(json.dumps(tree.to_dict(), indent=2))
        return 0

    roots = tree.root_nodes()
    if not roots:
        print("No workspace members found.")
        return 0
    seen: set[int] = set()
    for i, root in enumerate(roots):
        if i:
            print()
        _print_tree_text(root, seen=seen)
    return 0


def cmd_levels(args: argparse.Namespace) -> int:
    """Show sources grouped by build depth."""
    tree = _load_tree(args)
    levels = tree.levels()

    if args.json:
        print(json.dumps([[s.to_dict() for s in level] for level in levels], indent=2))
        return 0

    print(f"{len(tree)} source(s) in {len(levels)} level(s):\n")
    for depth, level in enumerate(levels):
        print(f"  Depth {depth} ({len(level)})")
        for src in level:
            root = " [root]" if src.is_root else ""
            if args.verbose:
                dirs = ", ".join(str(d) for d in src.dirs)
                print(f"    - {src.name} v{src.version}{root}: {dirs}")
            else:
                print(f"    - {src.name} v{src.version}{root}")
        print()
    return 0


def cmd_tui(args: argparse.Namespace) -> int:
    """Launch the interactive TUI."""
    from crategraph.tui.app import DepTreeApp

    app = DepTreeApp(
        manifest_path=Path(args.manifest_path) if getattr(args, "manifest_path", None) else None,
        metadata_path=getattr(args, "metadata", None),
        config=_config_from_args(args),
    )
    app.run()
    return 0


def _node_labels(tree: DepTree) -> dict[int, str]:
    """Label of every source: its name, plus the version when several versions coexist.

    Copies of the same version from different origins also carry their origin.
    """
    names: dict[str, int] = {}
    versions: dict[tuple[str, str], int] = {}
    for src in tree.sources:
        names[src.name] = names.get(src.name, 0) + 1
        versions[(src.name, src.version)] = versions.get((src.name, src.version), 0) + 1
    labels: dict[int, str] = {}
    for src in tree.sources:
        if versions[(src.name, src.version)] > 1:
            labels[src.id] = f"{src.name} {src.version} ({src.identity.source})"
        elif names[src.name] > 1:
            labels[src.id] = f"{src.name} {src.version}"
        else:
            labels[src.id] = src.name
    return labels


def _collect_edges(tree: DepTree) -> set[tuple[str, str]]:
    """All edges (dependent -> dependency) of the tree, by node label."""
    labels = _node_labels(tree)
    edges: set[tuple[str, str]] = set()
    for src in tree.sources:
        for dep in tree.dependencies(src.id):
            edges.add((labels[src.id], labels[dep]))
    return edges


def _generate_dot(
    tree: DepTree,
    title: str | None = None,
    highlight_roots: bool = True,
) -> str:
    """Generate DOT (Graphviz) format from a dependency tree."""
    labels = _node_labels(tree)
    lines = [
        "digraph dependencies {",
        "    rankdir=LR;",
        '    node [shape=box, style=rounded, fontname="sans-serif"];',
    ]
    if title:
        lines.insert(1, f'    label="{title}";')
        lines.insert(2, "    labelloc=t;")

    if highlight_roots:
        for name in sorted(labels[r] for r in tree.roots if r in tree):
            lines.append(f'    "{name}" [style="rounded,filled", fillcolor=lightblue];')

    # Isolated sources have no edge to show them
    for src in sorted(tree.sources, key=lambda s: s.identity):
        if not tree.dependencies(src.id) and not tree.dependents(src.id):
            lines.append(f'    "{labels[src.id]}";')

    for parent, child in sorted(_collect_edges(tree)):
        lines.append(f'    "{parent}" -> "{child}";')

    lines.append("}")
    return "\n".join(lines)


def _mermaid_id(name: str) -> str:
    """Convert a crate label to a valid Mermaid node ID."""
    return re.sub(r"\W", "_", name)


def _generate_mermaid(
    tree: DepTree,
    title: str | None = None,
    highlight_roots: bool = True,
) -> str:
    """Generate Mermaid format from a dependency tree."""
    labels = _node_labels(tree)
    lines = ["graph LR"]
    if title:
        lines[0] = f"---\ntitle: {title}\n---\ngraph LR"

    if highlight_roots:
        for name in sorted(labels[r] for r in tree.roots if r in tree):
            lines.append(f"    {_mermaid_id(name)}[{name}]")
            lines.append(f"    style {_mermaid_id(name)} fill:#lightblue")

    for parent, child in sorted(_collect_edges(tree)):
        lines.append(f"    {_mermaid_id(parent)} --> {_mermaid_id(child)}")

    return "\n".join(lines)


def _check_graphviz() -> bool:
    """Check if Graphviz (dot) is available."""
    return shutil.which("dot") is not None


def _render_dot(dot_content: str, output_path: Path, format: str) -> bool:
    """Render DOT content to an image file using Graphviz."""
    if not _check_graphviz():
        print(
            "Error: Graphviz not found. Install it with:\n"
            "  Ubuntu/Debian: sudo apt install graphviz\n"
            "  macOS: brew install graphviz\n"
            "  Or download from: https://graphviz.org/download/",
            file=sys.stderr,
        )
        return False

    try:
        result = subprocess.run(
            ["dot", f"-T{format}", "-o", str(output_path)],
            input=dot_content,
            capture_output=True,
            text=True,
            timeout=60,
        )
    except subprocess.TimeoutExpired:
        print("Error: Graphviz timed out (graph may be too large)", file=sys.stderr)
        return False
    except OSError as e:
        print(f"Error running Graphviz: {e}", file=sys.stderr)
        return False
    if result.returncode != 0:
        print(f"Graphviz error: {result.stderr}", file=sys.stderr)
        return False
    return True


def _open_file(path: Path) -> bool:
    """Open a file with the system default application."""
    import platform

    system = platform.system()
    try:
        if system == "Darwin":  # macOS
            subprocess.run(["open", str(path)], check=True)
        elif system == "Windows":
            subprocess.run(["start", "", str(path)], shell=True, check=True)
        else:  # Linux and others
            subprocess.run(["xdg-open", str(path)], check=True)
        return True
    except (OSError, subprocess.CalledProcessError) as e:
        print(f"Could not open file: {e}", file=sys.stderr)
        return False


def cmd_graph(args: argparse.Namespace) -> int:
    """Generate a dependency graph in DOT or Mermaid format."""
    tree = _load_tree(args)

    if args.no_title:
        title = None
    else:
        names = sorted(tree.source(r).name for r in tree.roots if r in tree)
        title = f"{', '.join(names)} dependencies" if names else "Workspace dependencies"

    if args.format == "mermaid":
        output = _generate_mermaid(tree, title=title)
    else:  # dot
        output = _generate_dot(tree, title=title)

    render_format = getattr(args, "render", None)
    if render_format:
        if args.format == "mermaid":
            print(
                "Error: --render only works with DOT format (not mermaid). "
                "Remove -f mermaid or use mermaid.live for rendering.",
                file=sys.stderr,
            )
            return 1

        if args.output:
            out_path = Path(args.output)
            if out_path.suffix.lower() not in (f".{render_format}", ".dot"):
                out_path = out_path.with_suffix(f".{render_format}")
        else:
            out_path = Path(f"workspace_deps.{render_format}")

        print(f"Rendering graph to {out_path}...", file=sys.stderr)
        if not _render_dot(output, out_path, render_format):
            return 1

        print(f"Graph image saved to: {out_path}", file=sys.stderr)
        if getattr(args, "open", False):
            _open_file(out_path)
        return 0

    if args.output:
        Path(args.output).write_text(output)
        print(f"Graph written to: {args.output}", file=sys.stderr)
    else:
        print(output)
    return 0


def _workspace_options() -> argparse.ArgumentParser:
    """Options shared by every command that builds a tree."""
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "-m",
        "--manifest-path",
        metavar="PATH",
        help="Directory (or Cargo.toml) inside the workspace (default: current directory)",
    )
    parent.add_argument(
        "--metadata",
        metavar="FILE",
        help="Read a saved 'cargo metadata --format-version 1' output instead of running cargo ('-' = stdin)",
    )
    parent.add_argument(
        "-o",
        "--omit-deps",
        dest="omit_deps",
        action="store_true",
        help="Only include the workspace members, not their dependencies",
    )
    parent.add_argument(
        "--offline",
        action="store_true",
        help="Run cargo metadata with --offline",
    )
    parent.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log what is found while building the tree",
    )
    return parent


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the crategraph CLI."""
    parser = argparse.ArgumentParser(
        prog="crategraph",
        description="Explore cargo workspace dependencies and their build depths.",
    )
    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    common = _workspace_options()

    # crategraph tree
    tree_parser = subparsers.add_parser(
        "tree",
        parents=[common],
        help="Show the dependency tree of the workspace members",
        description="Build and display the dependency tree of every workspace member.",
    )
    tree_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )
    tree_parser.set_defaults(func=cmd_tree)

    # crategraph levels
    levels_parser = subparsers.add_parser(
        "levels",
        parents=[common],
        help="Show sources grouped by build depth",
        description="List every source by depth; each depth only depends on lower ones.",
    )
    levels_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )
    levels_parser.set_defaults(func=cmd_levels)

    # crategraph graph
    graph_parser = subparsers.add_parser(
        "graph",
        parents=[common],
        help="Generate a dependency graph (DOT/Mermaid format)",
        description="Generate a visual dependency graph of the workspace.",
    )
    graph_parser.add_argument(
        "-f",
        "--format",
        choices=["dot", "mermaid"],
        default="dot",
        help="Output format: dot (Graphviz) or mermaid (default: dot)",
    )
    graph_parser.add_argument(
        "--output",
        metavar="FILE",
        help="Output file (default: stdout)",
    )
    graph_parser.add_argument(
        "--no-title",
        action="store_true",
        help="Don't include a title in the graph",
    )
    graph_parser.add_argument(
        "--render",
        choices=["png", "svg", "pdf"],
        metavar="FORMAT",
        help="Render to image (png, svg, pdf). Requires Graphviz installed.",
    )
    graph_parser.add_argument(
        "--open",
        action="store_true",
        help="Open the rendered image after creation (use with --render)",
    )
    graph_parser.set_defaults(func=cmd_graph)

    # crategraph tui (default if no command)
    tui_parser = subparsers.add_parser(
        "tui",
        parents=[common],
        help="Launch the interactive terminal UI",
        description="Start the interactive TUI for browsing the dependency tree.",
    )
    tui_parser.set_defaults(func=cmd_tui)

    args = parser.parse_args(argv)

    # Default to TUI if no command specified
    if args.command is None:
        args = argparse.Namespace(manifest_path=None, metadata=None, omit_deps=False, offline=False, verbose=False)
        return cmd_tui(args)

    _configure_logging(args.verbose)
    try:
        return args.func(args)
    except DepTreeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
