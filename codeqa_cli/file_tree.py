"""Reshape flat corpus paths into a nested directory tree for display."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, Optional, Tuple

from rich.markup import escape
from rich.tree import Tree

# Directory nodes map child names to nodes; ``None`` marks a file.
TreeNode = Dict[str, Optional["TreeNode"]]


def build_tree(paths: Iterable[str]) -> TreeNode:
    """Build the nested tree; a name used both as file and directory stays a directory."""
    root: TreeNode = {}
    for path in paths:
        parts = path.split("/")
        node = root
        for part in parts[:-1]:
            child = node.get(part)
            if child is None:
                child = {}
                node[part] = child
            node = child
        node.setdefault(parts[-1], None)
    return root


def sorted_children(node: TreeNode) -> Iterator[Tuple[str, Optional[TreeNode]]]:
    """Directories first, then files, each group in lexicographic order."""
    yield from sorted(node.items(), key=lambda item: (item[1] is None, item[0]))


def iter_paths(node: TreeNode, prefix: str = "") -> Iterator[str]:
    """Walk the tree in display order, yielding full file paths."""
    for name, child in sorted_children(node):
        path = f"{prefix}{name}"
        if child is None:
            yield path
        else:
            yield from iter_paths(child, f"{path}/")


def count_files(node: TreeNode) -> int:
    return sum(1 if child is None else count_files(child) for child in node.values())


def render_tree(node: TreeNode, label: str = ".", max_depth: Optional[int] = None) -> Tree:
    """Render as a :class:`rich.tree.Tree`; deeper directories collapse to a file count."""
    tree = Tree(f"[bold]{escape(label)}[/bold]", guide_style="dim")
    _add_children(tree, node, depth=0, max_depth=max_depth)
    return tree


def _add_children(branch: Tree, node: TreeNode, depth: int, max_depth: Optional[int]) -> None:
    for name, child in sorted_children(node):
        if child is None:
            branch.add(f"📄 {escape(name)}")
            continue
        if max_depth is not None and depth >= max_depth:
            branch.add(f"📁 [cyan]{escape(name)}/[/cyan] [dim]({count_files(child)} files)[/dim]")
            continue
        sub = branch.add(f"📂 [cyan]{escape(name)}/[/cyan]")
        _add_children(sub, child, depth + 1, max_depth)
