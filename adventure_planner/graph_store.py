"""
Graph store: the story tree of a document.

Owns node creation, deletion and field mutation, and enforces the tree
invariants:
- node ids are unique across the document
- the root exists and can never be deleted
- every node has at most one parent and there are no cycles
- decision texts only exist for current children

Rejected structural operations return False instead of raising, so the UI
can ignore or alert as it sees fit.
"""

import logging
import uuid
from collections import Counter
from typing import Dict, Iterator, List, Optional

import networkx as nx

from adventure_planner.models import (
    DEFAULT_CHILD_DESCRIPTION,
    DEFAULT_CHILD_TITLE,
    DEFAULT_DECISION_TEXT,
    DEFAULT_ROOT_ID,
    Document,
    Point,
    StoryNode,
)

logger = logging.getLogger(__name__)

# Horizontal spacing of the default fan-out below a parent
CHILD_SPACING_X = 200
CHILD_OFFSET_X = 100
CHILD_SPACING_Y = 200

NODE_ID_LENGTH = 8


class GraphStore:
    """
    Node/edge operations over a Document's node registry.

    The store holds no state of its own; everything lives on the document
    so that a session can swap documents wholesale.
    """

    def __init__(self, document: Document):
        self.document = document

    # --- Read accessors ---

    @property
    def nodes(self) -> Dict[str, StoryNode]:
        return self.document.nodes

    @property
    def root(self) -> Optional[StoryNode]:
        return self.document.root

    def get(self, node_id: str) -> Optional[StoryNode]:
        return self.nodes.get(node_id)

    def __contains__(self, node: object) -> bool:
        if isinstance(node, StoryNode):
            return self.nodes.get(node.id) is node
        return node in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def all_nodes(self) -> List[StoryNode]:
        """All registered nodes in insertion order."""
        return list(self.nodes.values())

    def children_of(self, node: StoryNode) -> List[StoryNode]:
        """Child nodes in authored order."""
        return [self.nodes[cid] for cid in node.children if cid in self.nodes]

    def parent_of(self, node: StoryNode) -> Optional[StoryNode]:
        if node.parent_id is None:
            return None
        return self.nodes.get(node.parent_id)

    def descendants(self, node: StoryNode) -> List[StoryNode]:
        """
        Pre-order list of `node` and everything below it.

        Each children list is copied before it is walked so callers may
        mutate the tree while consuming the result.
        """
        collected: List[StoryNode] = []
        stack = [node]
        while stack:
            current = stack.pop()
            collected.append(current)
            child_ids = list(current.children)
            for child_id in reversed(child_ids):
                child = self.nodes.get(child_id)
                if child is not None:
                    stack.append(child)
        return collected

    # --- Creation ---

    def create_root(self, title: str, description: str, position: Point,
                    node_id: str = DEFAULT_ROOT_ID) -> StoryNode:
        """
        Create the start node of the adventure.

        Raises:
            ValueError: if the document already has a root.
        """
        if self.document.root_id is not None:
            raise ValueError(f"Document already has a root node: {self.document.root_id}")
        if node_id in self.nodes:
            raise ValueError(f"Node id already in use: {node_id}")

        x, y = position
        root = StoryNode(id=node_id, title=title, description=description, x=float(x), y=float(y))
        self.nodes[root.id] = root
        self.document.root_id = root.id
        return root

    def _mint_id(self) -> str:
        while True:
            candidate = str(uuid.uuid4())[:NODE_ID_LENGTH]
            if candidate not in self.nodes:
                return candidate
            logger.debug(f"Node id collision on {candidate}, regenerating")

    def add_child(self, parent: StoryNode, title: str = DEFAULT_CHILD_TITLE,
                  description: str = DEFAULT_CHILD_DESCRIPTION) -> StoryNode:
        """
        Add a new branch below `parent` and return it.

        The default position fans children out below the parent using the
        child count before the append for both the slot and the offset.

        Raises:
            KeyError: if `parent` is not registered in this document.
        """
        if parent not in self:
            raise KeyError(f"Parent node is not part of this document: {parent.id}")

        child_count = len(parent.children)
        slot = child_count
        x = parent.x + (slot * CHILD_SPACING_X) - (child_count * CHILD_OFFSET_X)
        y = parent.y + CHILD_SPACING_Y

        child = StoryNode(id=self._mint_id(), title=title, description=description, x=x, y=y)
        self.nodes[child.id] = child
        parent.children.append(child.id)
        parent.decision_text[child.id] = DEFAULT_DECISION_TEXT
        child.parent_id = parent.id
        return child

    # --- Deletion ---

    def delete_subtree(self, node: StoryNode) -> bool:
        """
        Delete `node` and all of its descendants.

        Returns:
            False when `node` is the root or is not registered (the document
            is left unchanged), True otherwise.
        """
        if node.id == self.document.root_id:
            logger.debug("Refusing to delete the start node")
            return False
        if node not in self:
            logger.debug(f"Refusing to delete unregistered node {node.id}")
            return False

        parent = self.parent_of(node)
        if parent is not None:
            self._detach(parent, node.id)
        # A tree has one parent at most; sweep anyway in case a file was hand-edited
        for candidate in self.nodes.values():
            if node.id in candidate.children or node.id in candidate.decision_text:
                self._detach(candidate, node.id)

        doomed = self.descendants(node)
        for victim in doomed:
            self.nodes.pop(victim.id, None)
        node.parent_id = None

        logger.info(f"Deleted node {node.id} and {len(doomed) - 1} descendant(s)")
        return True

    @staticmethod
    def _detach(parent: StoryNode, child_id: str) -> None:
        parent.children[:] = [cid for cid in parent.children if cid != child_id]
        parent.decision_text.pop(child_id, None)

    # --- Mutators ---

    # Setters return False and leave the node alone once it is no longer registered

    def set_title(self, node: StoryNode, title: str) -> bool:
        if node not in self:
            return False
        node.title = title
        return True

    def set_description(self, node: StoryNode, description: str) -> bool:
        if node not in self:
            return False
        node.description = description
        return True

    def set_position(self, node: StoryNode, x: float, y: float) -> bool:
        if node not in self:
            return False
        node.x = float(x)
        node.y = float(y)
        return True

    def get_decision_text(self, parent: StoryNode, child_id: str) -> str:
        return parent.decision_text.get(child_id, DEFAULT_DECISION_TEXT)

    def set_decision_text(self, parent: StoryNode, child_id: str, text: str) -> bool:
        """Label the edge parent -> child. Returns False if child_id is not a child of parent."""
        if child_id not in parent.children:
            return False
        parent.decision_text[child_id] = text
        return True

    # --- Integrity ---

    def rebuild_parent_links(self) -> None:
        """Recompute every node's parent_id from the children lists."""
        for node in self.nodes.values():
            node.parent_id = None
        for node in self.nodes.values():
            for child_id in node.children:
                child = self.nodes.get(child_id)
                if child is not None:
                    child.parent_id = node.id

    def _iter_edges(self) -> Iterator[tuple]:
        for node in self.nodes.values():
            for child_id in node.children:
                if child_id in self.nodes:
                    yield node.id, child_id

    def to_networkx(self) -> nx.DiGraph:
        """
        Export the tree as a directed graph.

        Node attributes: title, description, x, y. Edge attribute:
        decision_text. Successor order follows each node's children list.
        """
        G = nx.DiGraph()
        for node in self.nodes.values():
            G.add_node(node.id, title=node.title, description=node.description, x=node.x, y=node.y,
                       is_root=node.id == self.document.root_id)
        for parent_id, child_id in self._iter_edges():
            parent = self.nodes[parent_id]
            G.add_edge(parent_id, child_id, decision_text=self.get_decision_text(parent, child_id))
        return G

    def validate(self) -> List[str]:
        """
        Check the tree invariants.

        Returns:
            A list of human-readable problems; empty when the tree is sound.
        """
        problems: List[str] = []
        root_id = self.document.root_id
        if root_id is None or root_id not in self.nodes:
            problems.append(f"Root node {root_id!r} is missing from the registry")

        for key, node in self.nodes.items():
            if key != node.id:
                problems.append(f"Registry key {key!r} does not match node id {node.id!r}")
            for child_id in node.children:
                if child_id not in self.nodes:
                    problems.append(f"Node {node.id} references unknown child {child_id}")
            stale = set(node.decision_text) - set(node.children)
            for child_id in sorted(stale):
                problems.append(f"Node {node.id} has decision text for non-child {child_id}")
            if len(set(node.children)) != len(node.children):
                problems.append(f"Node {node.id} lists the same child more than once")

        parent_counts = Counter(child_id for _, child_id in set(self._iter_edges()))
        for child_id, count in parent_counts.items():
            if count > 1:
                problems.append(f"Node {child_id} has {count} parents")
        if root_id in parent_counts:
            problems.append(f"Root node {root_id} has a parent")

        G = self.to_networkx()
        if not nx.is_directed_acyclic_graph(G):
            cycle = nx.find_cycle(G)
            problems.append("Cycle detected: " + " -> ".join(edge[0] for edge in cycle))
        elif root_id in G:
            reachable = nx.descendants(G, root_id) | {root_id}
            for node_id in self.nodes:
                if node_id not in reachable:
                    problems.append(f"Node {node_id} is not reachable from the root")

        for node in self.nodes.values():
            parent = self.parent_of(node)
            if parent is not None and node.id not in parent.children:
                problems.append(f"Node {node.id} points at parent {parent.id} which does not list it")

        return problems
