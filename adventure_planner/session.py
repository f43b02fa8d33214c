"""
Editor session: the one open adventure and everything that edits it.

The session owns a Document together with the GraphStore, OverlayStore and
UndoLog built on it. Loading swaps all four at once, and only after the new
file decoded successfully, so a failed open never disturbs the document
being edited.
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Union

from adventure_planner.codec import FILE_EXTENSION, LoadResult, read_document, write_document
from adventure_planner.graph_store import GraphStore
from adventure_planner.models import (
    DEFAULT_ROOT_DESCRIPTION,
    DEFAULT_ROOT_POSITION,
    DEFAULT_ROOT_TITLE,
    DEFAULT_TAG_TEXT,
    CustomConnection,
    CustomTag,
    Document,
    Point,
    StoryNode,
)
from adventure_planner.overlay_store import OverlayStore
from adventure_planner.undo import (
    AddConnection,
    AddTag,
    Change,
    ChangeKind,
    DeleteConnection,
    DeleteTag,
    UndoLog,
)

logger = logging.getLogger(__name__)

UNTITLED_NAME = "Untitled Adventure"
DEFAULT_FILE_NAME = "MyAdventure.adv"


class EditorSession:
    """
    Holds the open adventure.

    Store methods (session.graph, session.overlays) mutate without touching
    the undo log. The helpers on the session itself record undo entries for
    the actions the editor treats as undoable.
    """

    def __init__(self, on_file_used: Optional[Callable[[Path], None]] = None):
        """
        Args:
            on_file_used: Called with the path after every successful load or
                save (the UI uses it to maintain its recent files list).
        """
        self.on_file_used = on_file_used
        self._on_change: Optional[Callable[[Change], None]] = None
        self.file_path: Optional[Path] = None
        self._install(Document())
        self.new_document()

    # --- Document ownership ---

    def _install(self, document: Document) -> None:
        self.document = document
        self.graph = GraphStore(document)
        self.overlays = OverlayStore(document)
        self.undo_log = UndoLog(document)
        self.undo_log.on_change = self._on_change

    @property
    def on_change(self) -> Optional[Callable[[Change], None]]:
        return self._on_change

    @on_change.setter
    def on_change(self, callback: Optional[Callable[[Change], None]]) -> None:
        self._on_change = callback
        self.undo_log.on_change = callback

    def _notify(self, kind: ChangeKind, subject: object = None) -> None:
        if self._on_change:
            self._on_change(Change(kind, subject))

    def new_document(self) -> None:
        """Replace the open adventure with a fresh one holding only the start node."""
        document = Document()
        GraphStore(document).create_root(DEFAULT_ROOT_TITLE, DEFAULT_ROOT_DESCRIPTION, DEFAULT_ROOT_POSITION)
        self._install(document)
        self.file_path = None
        logger.debug("Started a new adventure")
        self._notify(ChangeKind.DOCUMENT_REPLACED, document)

    @property
    def is_untitled(self) -> bool:
        return self.file_path is None

    @property
    def display_name(self) -> str:
        return UNTITLED_NAME if self.file_path is None else self.file_path.name

    def suggested_file_name(self) -> str:
        return DEFAULT_FILE_NAME if self.file_path is None else self.file_path.name

    # --- Persistence ---

    def load(self, path: Union[str, Path]) -> LoadResult:
        """
        Open an adventure file, replacing the current document on success.

        Raises:
            PersistenceError: the file could not be read; the current
                document and undo history are left as they were.
        """
        path = Path(path)
        result = read_document(path)
        self._install(result.document)
        self.file_path = path
        if result.incomplete:
            logger.warning(f"Opened {path} with missing optional data: {'; '.join(result.warnings)}")
        self._notify(ChangeKind.DOCUMENT_REPLACED, result.document)
        if self.on_file_used:
            self.on_file_used(path)
        return result

    def save(self, path: Union[str, Path, None] = None) -> Path:
        """
        Save the adventure. Undo history is not saved.

        Args:
            path: Destination; defaults to the file the adventure came from.
                ".adv" is appended when the name has no suffix.

        Raises:
            ValueError: no path given and the adventure was never saved.
            PersistenceError: the file could not be written.
        """
        if path is None:
            if self.file_path is None:
                raise ValueError("Untitled adventure needs a file name to save")
            path = self.file_path
        path = Path(path)
        if not path.suffix:
            path = path.with_suffix(FILE_EXTENSION)

        write_document(self.document, path)
        self.file_path = path
        logger.debug(f"Session now bound to {path}")
        if self.on_file_used:
            self.on_file_used(path)
        return path

    # --- Undoable editing helpers ---

    def move_node(self, node: StoryNode, x: float, y: float) -> bool:
        """Move a node, recording an undo entry if the position changed."""
        old_x, old_y = node.x, node.y
        if not self.graph.set_position(node, x, y):
            return False
        return self.undo_log.record_node_move(node, old_x, old_y)

    def move_tag(self, tag: CustomTag, x: float, y: float) -> bool:
        old_x, old_y = tag.x, tag.y
        self.overlays.move_tag(tag, (x, y))
        return self.undo_log.record_tag_move(tag, old_x, old_y)

    def edit_tag_text(self, tag: CustomTag, text: str) -> bool:
        old_text = tag.text
        self.overlays.edit_tag_text(tag, text)
        return self.undo_log.record_tag_edit(tag, old_text)

    def add_tag(self, position: Point, text: str = DEFAULT_TAG_TEXT) -> CustomTag:
        tag = self.overlays.add_tag(position, text)
        self.undo_log.push(AddTag(tag))
        return tag

    def delete_tag(self, tag: CustomTag) -> bool:
        if not self.overlays.remove_tag(tag):
            return False
        self.undo_log.push(DeleteTag(tag))
        return True

    def add_connection(self, start: Point, end: Point) -> CustomConnection:
        connection = self.overlays.add_connection(start, end)
        self.undo_log.push(AddConnection(connection))
        return connection

    def delete_connection(self, connection: CustomConnection) -> bool:
        if not self.overlays.remove_connection(connection):
            return False
        self.undo_log.push(DeleteConnection(connection))
        return True

    def undo(self) -> bool:
        return self.undo_log.undo()
