"""
Undo log for Adventure Planner.

Records are plain dataclasses, one per kind of reversible action, each
holding just the prior state needed to invert it. Inversion is a single
dispatch on the record kind. History is unbounded and there is no redo:
an undone record is discarded.

The core never records on its own; the UI decides which mutations are
undoable and pushes (or uses the record_* helpers, which skip no-op changes).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, ClassVar, List, Optional, Union

from adventure_planner.models import CustomConnection, CustomTag, Document, StoryNode
from adventure_planner.overlay_store import OverlayStore

logger = logging.getLogger(__name__)


class UndoKind(Enum):
    """Types of undoable actions."""
    MOVE_NODE = "move_node"
    MOVE_TAG = "move_tag"
    EDIT_TAG_TEXT = "edit_tag_text"
    ADD_TAG = "add_tag"
    DELETE_TAG = "delete_tag"
    ADD_CONNECTION = "add_connection"
    DELETE_CONNECTION = "delete_connection"


class ChangeKind(Enum):
    """Notifications sent to the view when the model changes under it."""
    NODE_MOVED = "node_moved"
    TOPOLOGY_CHANGED = "topology_changed"
    TAG_MOVED = "tag_moved"
    TAG_TEXT_CHANGED = "tag_text_changed"
    TAG_ADDED = "tag_added"
    TAG_REMOVED = "tag_removed"
    CONNECTION_ADDED = "connection_added"
    CONNECTION_REMOVED = "connection_removed"
    DOCUMENT_REPLACED = "document_replaced"


@dataclass
class Change:
    kind: ChangeKind
    subject: object = None


@dataclass
class MoveNode:
    kind: ClassVar[UndoKind] = UndoKind.MOVE_NODE
    node: StoryNode
    old_x: float
    old_y: float

    @property
    def description(self) -> str:
        return f"Move '{self.node.title}'"


@dataclass
class MoveTag:
    kind: ClassVar[UndoKind] = UndoKind.MOVE_TAG
    tag: CustomTag
    old_x: float
    old_y: float

    @property
    def description(self) -> str:
        return "Move tag"


@dataclass
class EditTagText:
    kind: ClassVar[UndoKind] = UndoKind.EDIT_TAG_TEXT
    tag: CustomTag
    old_text: str

    @property
    def description(self) -> str:
        return "Edit tag text"


@dataclass
class AddTag:
    kind: ClassVar[UndoKind] = UndoKind.ADD_TAG
    tag: CustomTag

    @property
    def description(self) -> str:
        return "Add tag"


@dataclass
class DeleteTag:
    kind: ClassVar[UndoKind] = UndoKind.DELETE_TAG
    tag: CustomTag

    @property
    def description(self) -> str:
        return "Delete tag"


@dataclass
class AddConnection:
    kind: ClassVar[UndoKind] = UndoKind.ADD_CONNECTION
    connection: CustomConnection

    @property
    def description(self) -> str:
        return "Add connection"


@dataclass
class DeleteConnection:
    kind: ClassVar[UndoKind] = UndoKind.DELETE_CONNECTION
    connection: CustomConnection

    @property
    def description(self) -> str:
        return "Delete connection"


UndoRecord = Union[MoveNode, MoveTag, EditTagText, AddTag, DeleteTag, AddConnection, DeleteConnection]


class UndoLog:
    """LIFO stack of undo records for one document."""

    def __init__(self, document: Document):
        self.document = document
        self._overlays = OverlayStore(document)
        self._stack: List[UndoRecord] = []

        # Callbacks
        self.on_change: Optional[Callable[[Change], None]] = None

    def __len__(self) -> int:
        return len(self._stack)

    @property
    def can_undo(self) -> bool:
        return len(self._stack) > 0

    @property
    def undo_description(self) -> str:
        """Description of the next undo action, or "" when there is none."""
        if self._stack:
            return self._stack[-1].description
        return ""

    def records(self) -> List[UndoRecord]:
        """Snapshot of the stack, oldest first."""
        return list(self._stack)

    def push(self, record: UndoRecord) -> None:
        self._stack.append(record)

    def clear(self) -> None:
        self._stack.clear()

    # --- Recording helpers ---

    def record_node_move(self, node: StoryNode, old_x: float, old_y: float) -> bool:
        """Push a MoveNode record if the node actually moved."""
        if node.x == old_x and node.y == old_y:
            return False
        self.push(MoveNode(node, old_x, old_y))
        return True

    def record_tag_move(self, tag: CustomTag, old_x: float, old_y: float) -> bool:
        """Push a MoveTag record if the tag actually moved."""
        if tag.x == old_x and tag.y == old_y:
            return False
        self.push(MoveTag(tag, old_x, old_y))
        return True

    def record_tag_edit(self, tag: CustomTag, old_text: str) -> bool:
        """Push an EditTagText record if the text actually changed."""
        if tag.text == old_text:
            return False
        self.push(EditTagText(tag, old_text))
        return True

    # --- Inversion ---

    def undo(self) -> bool:
        """
        Invert the most recent record.

        Returns:
            True if a record was popped, False if the log was empty.
        """
        if not self._stack:
            return False
        record = self._stack.pop()
        self._invert(record)
        return True

    def _invert(self, record: UndoRecord) -> None:
        kind = record.kind
        if kind is UndoKind.MOVE_NODE:
            node = record.node
            if self.document.nodes.get(node.id) is not node:
                logger.debug(f"Skipping move undo for deleted node {node.id}")
                return
            node.x, node.y = record.old_x, record.old_y
            self._notify(ChangeKind.NODE_MOVED, node)
            self._notify(ChangeKind.TOPOLOGY_CHANGED, node)
        elif kind is UndoKind.MOVE_TAG:
            self._overlays.move_tag(record.tag, (record.old_x, record.old_y))
            self._notify(ChangeKind.TAG_MOVED, record.tag)
        elif kind is UndoKind.EDIT_TAG_TEXT:
            self._overlays.edit_tag_text(record.tag, record.old_text)
            self._notify(ChangeKind.TAG_TEXT_CHANGED, record.tag)
        elif kind is UndoKind.ADD_TAG:
            if self._overlays.remove_tag(record.tag):
                self._notify(ChangeKind.TAG_REMOVED, record.tag)
        elif kind is UndoKind.DELETE_TAG:
            self._overlays.insert_tag(record.tag)
            self._notify(ChangeKind.TAG_ADDED, record.tag)
        elif kind is UndoKind.ADD_CONNECTION:
            if self._overlays.remove_connection(record.connection):
                self._notify(ChangeKind.CONNECTION_REMOVED, record.connection)
        elif kind is UndoKind.DELETE_CONNECTION:
            self._overlays.insert_connection(record.connection)
            self._notify(ChangeKind.CONNECTION_ADDED, record.connection)
        else:
            raise ValueError(f"Unknown undo record kind: {kind}")

    def _notify(self, kind: ChangeKind, subject: object = None) -> None:
        if self.on_change:
            self.on_change(Change(kind, subject))
