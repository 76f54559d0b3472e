"""
KeySort Folder Tree

Immutable in-memory representation of a destination folder hierarchy.

Nodes live in a flat arena and refer to each other by integer index, so a
child is selected by digit with ``children[digit - 1]`` and no node holds a
reference to another node object. The tree is built once per folder
selection and never mutated afterwards.
"""

import logging
import os
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from keysort.errors import FolderEnumerationError

logger = logging.getLogger(__name__)

ListSubfolders = Callable[[str], Sequence[str]]

ROOT_LABEL = "0"


# ═══════════════════════════════════════════════════════════════════════════
# NODES
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FolderNode:
    """A single folder in the tree"""

    index: int
    name: str
    path: str
    parent: Optional[int]
    children: Tuple[int, ...] = ()

    @property
    def is_leaf(self) -> bool:
        """True if the folder has no subfolders"""
        return not self.children

    @property
    def child_count(self) -> int:
        return len(self.children)

    def __str__(self) -> str:
        return f"{self.name} ({self.child_count} subfolders)"


# ═══════════════════════════════════════════════════════════════════════════
# TREE
# ═══════════════════════════════════════════════════════════════════════════

class FolderTree:
    """
    Arena of FolderNode objects; index 0 is the root.

    Example usage:
        tree = build_tree("/photos/sorted", list_subfolders)
        node = tree.child(tree.root, 2)      # second subfolder of the root
        for label, depth, node in tree.entries():
            print("  " * depth, label, node.name)
    """

    def __init__(self, nodes: Sequence[FolderNode]):
        if not nodes:
            raise ValueError("A folder tree needs at least a root node")
        self._nodes: Tuple[FolderNode, ...] = tuple(nodes)
        self._by_path = {node.path: node for node in self._nodes}

    @property
    def root(self) -> FolderNode:
        return self._nodes[0]

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[FolderNode]:
        return iter(self._nodes)

    def node(self, index: int) -> FolderNode:
        return self._nodes[index]

    def children_of(self, node: FolderNode) -> List[FolderNode]:
        """Get the subfolders of a node in their fixed order"""
        return [self._nodes[i] for i in node.children]

    def child(self, node: FolderNode, digit: int) -> Optional[FolderNode]:
        """
        Get the subfolder selected by a 1-based digit.

        Args:
            node: Parent folder
            digit: 1-based position of the subfolder

        Returns:
            The subfolder, or None if the digit is out of range
        """
        if 0 < digit <= len(node.children):
            return self._nodes[node.children[digit - 1]]
        return None

    def parent_of(self, node: FolderNode) -> Optional[FolderNode]:
        if node.parent is None:
            return None
        return self._nodes[node.parent]

    def find(self, path: str) -> Optional[FolderNode]:
        """Look up a node by its absolute path"""
        return self._by_path.get(path)

    def resolve(self, indices: Sequence[int]) -> FolderNode:
        """
        Walk down the tree following 0-based child indices.

        Indices that are out of range are skipped rather than raising;
        callers are expected to validate before resolving.
        """
        current = self.root
        for index in indices:
            if 0 <= index < len(current.children):
                current = self._nodes[current.children[index]]
        return current

    def sequence_for(self, node: FolderNode) -> str:
        """
        Get the digit sequence that selects a node from the root.

        The root itself is addressed by "0".
        """
        digits: List[str] = []
        current = node
        while current.parent is not None:
            parent = self._nodes[current.parent]
            digits.append(str(parent.children.index(current.index) + 1))
            current = parent
        if not digits:
            return ROOT_LABEL
        return "".join(reversed(digits))

    def entries(self) -> Iterator[Tuple[str, int, FolderNode]]:
        """
        Iterate over every folder depth-first.

        Yields:
            Tuples of (sequence_label, depth, node)
        """
        stack: List[Tuple[int, int, str]] = [(0, 0, "")]
        while stack:
            index, depth, prefix = stack.pop()
            node = self._nodes[index]
            yield (prefix or ROOT_LABEL), depth, node
            for position in range(len(node.children), 0, -1):
                stack.append((node.children[position - 1], depth + 1, f"{prefix}{position}"))

    def max_depth(self) -> int:
        return max(depth for _, depth, _ in self.entries())


# ═══════════════════════════════════════════════════════════════════════════
# BUILDING
# ═══════════════════════════════════════════════════════════════════════════

def folder_name(path: str) -> str:
    """Display name of a folder path (the path itself for a filesystem root)"""
    return os.path.basename(path.rstrip("/\\")) or path


def build_tree(root_path: str, list_subfolders: ListSubfolders) -> FolderTree:
    """
    Build a folder tree by listing subfolders recursively.

    Traversal is depth-first and strictly sequential: each subfolder is
    fully expanded before its next sibling is listed.

    Args:
        root_path: Absolute path of the root folder
        list_subfolders: Callable returning the ordered subfolder names of a path

    Returns:
        The complete FolderTree

    Raises:
        FolderEnumerationError: If any listing fails; no partial tree is returned
    """
    logger.info(f"Building folder tree for {root_path}")
    slots: List[Optional[FolderNode]] = []

    def expand(path: str, parent: Optional[int]) -> int:
        index = len(slots)
        slots.append(None)

        try:
            names = list(list_subfolders(path))
        except Exception as e:
            logger.error(f"Listing failed for {path}: {e}")
            raise FolderEnumerationError(path, str(e)) from e

        children = tuple(expand(os.path.join(path, name), index) for name in names)
        slots[index] = FolderNode(
            index=index,
            name=folder_name(path),
            path=path,
            parent=parent,
            children=children,
        )
        return index

    expand(root_path, None)
    tree = FolderTree(slots)
    logger.info(f"Folder tree ready: {len(tree)} folders under {root_path}")
    return tree


def resolve(tree: FolderTree, indices: Sequence[int]) -> FolderNode:
    """Module-level shorthand for FolderTree.resolve"""
    return tree.resolve(indices)
