"""Textual TUI for navigating cargo workspace dependency trees."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Vertical
from textual.screen import ModalScreen
from textual.widgets import Footer, Header, Input, LoadingIndicator, Static, Tree
from textual.widgets.tree import TreeNode
from textual.worker import Worker, WorkerState

from crategraph.core.builder import dependency_tree
from crategraph.core.config import Config
from crategraph.core.metadata import fetch_metadata, find_manifest_dir, load_metadata
from crategraph.core.tree import DependencyNode, DepTree

WELCOME_DESC = """[bold cyan]crategraph[/]

[dim]Navigate the dependency tree of a cargo workspace.
Every crate shows its build depth: crates of equal depth can be built in parallel.[/]"""

# Limits to avoid huge trees and crashes
MAX_TREE_DEPTH = 8
MAX_TREE_NODES = 500
EXPAND_DEPTH_DEFAULT = 1

COLOR_ROOT = "bold green"
COLOR_HEADER = "bold magenta"
COLOR_PKG = "white"
COLOR_STATS = "cyan"
COLOR_PATH = "dim"


def _node_label(node: DependencyNode) -> str:
    color = COLOR_ROOT if node.is_root else COLOR_PKG
    return f"[{color}]{node.name}[/] [dim]v{node.version or '?'} · depth {node.depth}[/]"


def _populate_textual_tree(
    tn: TreeNode,
    node: DependencyNode,
    *,
    depth: int = 0,
    max_depth: int = MAX_TREE_DEPTH,
    max_nodes: int = MAX_TREE_NODES,
    node_count: list[int] | None = None,
) -> None:
    """Recursively add DependencyNode children; cap depth and total nodes."""
    if node_count is None:
        node_count = [0]
    for child in node.children:
        if node_count[0] >= max_nodes:
            tn.add_leaf(f"[dim]… truncated ({max_nodes} nodes max)[/]")
            return
        if depth >= max_depth:
            tn.add_leaf(f"[dim]{child.name} …[/]")
            continue
        node_count[0] += 1
        child_tn = tn.add(_node_label(child), expand=False)
        child_tn.data = child
        _populate_textual_tree(
            child_tn,
            child,
            depth=depth + 1,
            max_depth=max_depth,
            max_nodes=max_nodes,
            node_count=node_count,
        )


def _expand_to_depth(tn: TreeNode, depth: int, current: int = 0) -> None:
    """Expand tree nodes up to given depth (0 = root only)."""
    if current >= depth:
        return
    tn.expand()
    for child in tn.children:
        _expand_to_depth(child, depth, current + 1)


def _node_stats(tree: DepTree, sid: int) -> tuple[int, int, int]:
    """Return (direct_dependencies, transitive_dependencies, dependents) for a source."""
    return (
        len(tree.dependencies(sid)),
        len(tree.transitive_dependencies(sid)),
        len(tree.dependents(sid)),
    )


def _format_source(tree: DepTree, sid: int) -> str:
    """Details panel text for one source."""
    src = tree.source(sid)
    direct, transitive, dependents = _node_stats(tree, sid)
    role = f"[{COLOR_ROOT}]workspace member[/]" if src.is_root else "dependency"
    dirs = "\n".join(f"  [{COLOR_PATH}]{d}[/]" for d in src.dirs) or "  (n/a)"

    lines = [
        f"[{COLOR_HEADER}]Crate[/]",
        f"  [{COLOR_PKG}]{src.name}[/]  [dim]v{src.version}[/]  ({role})",
        f"  [dim]{src.identity.source}[/]",
        "",
        f"[{COLOR_HEADER}]Stats[/]",
        f"  Build depth:              [{COLOR_STATS}]{src.depth}[/]",
        f"  Direct dependencies:      [{COLOR_STATS}]{direct}[/]",
        f"  Transitive dependencies:  [{COLOR_STATS}]{transitive}[/]",
        f"  Dependents:               [{COLOR_STATS}]{dependents}[/]",
        "",
        f"[{COLOR_HEADER}]Directories[/]",
        dirs,
    ]
    return "\n".join(lines)


class SearchScreen(ModalScreen[str | None]):
    """Modal to search for crates in the tree. Keyboard-only."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=True),
    ]

    DEFAULT_CSS = """
    SearchScreen {
        align: center middle;
        padding: 2 4;
    }
    SearchScreen #search_title {
        text-align: center;
        padding-bottom: 1;
    }
    SearchScreen #search_input {
        width: 60;
        margin: 1 0;
    }
    SearchScreen #search_hint {
        text-align: center;
        padding-top: 1;
    }
    """

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._input: Input | None = None

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static(
                "[bold cyan]Search[/]\n\nType a crate name or partial match to find in the tree.",
                id="search_title",
                markup=True,
            )
            yield Input(placeholder="crate name...", id="search_input")
            yield Static(
                "[dim]Enter[/] = Search  ·  [dim]Escape[/] = Cancel\n"
                "[dim]After search: [bold]n[/bold] = next match, [bold]N[/bold] = previous[/]",
                id="search_hint",
                markup=True,
            )

    def on_mount(self) -> None:
        self._input = self.query_one("#search_input", Input)
        self._input.focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "search_input":
            return
        value = self._input.value.strip() if self._input else ""
        self.dismiss(value if value else None)

    def action_cancel(self) -> None:
        self.dismiss(None)


class DepTreeApp(App[None]):
    """Terminal UI to explore the dependency tree of a cargo workspace."""

    TITLE = "crategraph"
    BINDINGS = [
        Binding("/", "search", "Search"),
        Binding("f", "search", "Search", show=False),
        Binding("n", "next_match", "Next match", show=False),
        Binding("N", "prev_match", "Prev match", show=False),
        Binding("d", "toggle_details", "Details"),
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Refresh"),
        Binding("e", "expand_all", "Expand all"),
        Binding("c", "collapse_all", "Collapse"),
    ]

    DEFAULT_CSS = """
    #welcome_container {
        align: center middle;
        width: 100%;
        height: 100%;
    }
    #welcome_desc {
        text-align: center;
        padding: 2 4;
    }
    #main_container {
        display: none;
    }
    #details {
        padding: 1 2;
        border: solid $primary;
        height: auto;
        min-height: 8;
    }
    """

    def __init__(
        self,
        manifest_path: Path | None = None,
        metadata_path: str | Path | None = None,
        config: Config | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._manifest_path = manifest_path
        self._metadata_path = metadata_path
        self._config = config or Config()
        self._dep_tree: DepTree | None = None
        self._loading = False
        self._search_matches: list[TreeNode] = []
        self._search_index: int = 0
        self._details_visible: bool = True
        self.details_text = ""

    def compose(self) -> ComposeResult:
        yield Header(show_clock=False)
        with Container(id="welcome_container"):
            yield Static(WELCOME_DESC, id="welcome_desc", markup=True)
            yield LoadingIndicator()
            yield Static("[dim]Reading cargo metadata...[/]", id="loading_text", markup=True)
        with Container(id="main_container"):
            yield Tree("Workspace", id="dep_tree")
            yield Static(
                "[dim]↑/↓[/] move  ·  [dim]Enter[/]/[dim]Space[/] select  ·  [dim]q[/] quit",
                id="details",
            )
        yield Footer()

    def on_mount(self) -> None:
        self.sub_title = "Dependency Tree Explorer"
        self._start_loading()

    def _start_loading(self) -> None:
        """Build the dependency tree in a background thread."""
        if self._loading:
            return
        self._loading = True
        self.run_worker(self._load_tree_worker, thread=True, exit_on_error=False)

    def _load_tree_worker(self) -> DepTree:
        if self._metadata_path is not None:
            metadata = load_metadata(self._metadata_path)
        else:
            start = self._manifest_path or Path.cwd()
            metadata = fetch_metadata(find_manifest_dir(start), self._config)
        return dependency_tree(self._config, metadata)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        """Show the tree, or the error, once the worker is done."""
        if event.state == WorkerState.SUCCESS:
            self._loading = False
            self._dep_tree = event.worker.result
            self._show_main()
            self._load_main_view()
        elif event.state == WorkerState.ERROR:
            self._loading = False
            message = f"[red]Error: {event.worker.error}[/]\n\n[dim]r[/] = retry  ·  [dim]q[/] = quit"
            self.query_one("#loading_text", Static).update(message)
            self._set_details(message)

    def _show_main(self) -> None:
        self.query_one("#welcome_container").styles.display = "none"
        self.query_one("#main_container").styles.display = "block"

    def _clear_tree(self, tree: Tree) -> None:
        while tree.root.children:
            tree.root.children[0].remove()

    def _load_main_view(self) -> None:
        tree = self.query_one("#dep_tree", Tree)
        self._clear_tree(tree)
        dep_tree = self._dep_tree
        if dep_tree is None:
            return

        roots = dep_tree.root_nodes()
        levels = dep_tree.levels()
        tree.root.label = f"[{COLOR_HEADER}]Workspace ({len(roots)} member(s))[/]"
        node_count = [0]
        for root in roots:
            root_tn = tree.root.add(_node_label(root), expand=False)
            root_tn.data = root
            _populate_textual_tree(root_tn, root, node_count=node_count)
        if not roots:
            tree.root.add_leaf("[dim]No workspace members[/]")
        _expand_to_depth(tree.root, EXPAND_DEPTH_DEFAULT)

        self._set_details(
            f"[{COLOR_HEADER}]Workspace[/]\n\n"
            f"Crates: [{COLOR_STATS}]{len(dep_tree)}[/]  ·  "
            f"Members: [{COLOR_STATS}]{len(roots)}[/]  ·  "
            f"Build levels: [{COLOR_STATS}]{len(levels)}[/]\n\n"
            "[dim]↑/↓[/] move  ·  [dim]Enter[/] or [dim]Space[/] on a crate = details  ·  "
            "[dim]/[/] = search"
        )
        tree.focus()

    def _set_details(self, text: str) -> None:
        self.details_text = text
        self.query_one("#details", Static).update(text)

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:
        node = event.node.data
        if self._dep_tree is None or not isinstance(node, DependencyNode) or node.source is None:
            return
        self._set_details(_format_source(self._dep_tree, node.source.id))

    def action_refresh(self) -> None:
        self._search_matches = []
        self._start_loading()

    def action_expand_all(self) -> None:
        self.query_one("#dep_tree", Tree).root.expand_all()

    def action_collapse_all(self) -> None:
        tree = self.query_one("#dep_tree", Tree)
        tree.root.collapse_all()
        tree.root.expand()

    def action_search(self) -> None:
        """Open search modal."""
        if self._dep_tree is None:
            return
        self.push_screen(SearchScreen(), self._on_search_done)

    def _on_search_done(self, query: str | None) -> None:
        if not query:
            return
        self._search_matches = []
        self._search_index = 0

        tree = self.query_one("#dep_tree", Tree)
        self._collect_matches(tree.root, query.lower())

        if not self._search_matches:
            self.notify(f"No matches for '{query}'", severity="warning", timeout=2)
            return

        self.notify(
            f"Found {len(self._search_matches)} match(es) for '{query}'",
            severity="information",
            timeout=2,
        )
        self._goto_match(0)

    def _collect_matches(self, node: TreeNode, query: str) -> None:
        """Recursively collect nodes whose crate name matches the search query."""
        data = node.data
        if isinstance(data, DependencyNode) and query in data.name.lower():
            self._search_matches.append(node)
        for child in node.children:
            self._collect_matches(child, query)

    def _goto_match(self, index: int) -> None:
        """Navigate to and select a specific match."""
        if not self._search_matches:
            return
        self._search_index = index % len(self._search_matches)
        match_node = self._search_matches[self._search_index]

        parent = match_node.parent
        while parent is not None:
            parent.expand()
            parent = parent.parent

        tree = self.query_one("#dep_tree", Tree)
        tree.select_node(match_node)
        tree.scroll_to_node(match_node)
        self.notify(
            f"Match {self._search_index + 1}/{len(self._search_matches)}: {match_node.label}",
            severity="information",
            timeout=2,
        )

    def action_next_match(self) -> None:
        """Go to next search match."""
        if not self._search_matches:
            self.notify("No active search. Press / to search.", severity="information", timeout=2)
            return
        self._goto_match(self._search_index + 1)

    def action_prev_match(self) -> None:
        """Go to previous search match."""
        if not self._search_matches:
            self.notify("No active search. Press / to search.", severity="information", timeout=2)
            return
        self._goto_match(self._search_index - 1)

    def action_toggle_details(self) -> None:
        """Toggle visibility of the details panel."""
        self._details_visible = not self._details_visible
        details = self.query_one("#details", Static)
        details.styles.display = "block" if self._details_visible else "none"

    def action_quit(self) -> None:
        self.exit()


def main() -> None:
    """Entry point for the crategraph TUI."""
    manifest_path = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    app = DepTreeApp(manifest_path=manifest_path)
    app.run()


if __name__ == "__main__":
    main()
