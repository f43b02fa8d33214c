"""
Overlay store: free-form connections and text tags.

Overlays are independent of the story tree and of each other. Membership is
by object identity, and removing something that is not there is a no-op, so
undo can re-run removals safely.
"""

from typing import List

from adventure_planner.models import DEFAULT_TAG_TEXT, CustomConnection, CustomTag, Document, Point


def _index_of(items: list, target: object) -> int:
    for i, item in enumerate(items):
        if item is target:
            return i
    return -1


class OverlayStore:
    """CRUD over a Document's connections and tags."""

    def __init__(self, document: Document):
        self.document = document

    # --- Connections ---

    def connections(self) -> List[CustomConnection]:
        return list(self.document.connections)

    def add_connection(self, start: Point, end: Point) -> CustomConnection:
        connection = CustomConnection(start=(float(start[0]), float(start[1])),
                                      end=(float(end[0]), float(end[1])))
        self.document.connections.append(connection)
        return connection

    def insert_connection(self, connection: CustomConnection) -> None:
        """Put an existing connection object back (no new identity)."""
        if _index_of(self.document.connections, connection) < 0:
            self.document.connections.append(connection)

    def remove_connection(self, connection: CustomConnection) -> bool:
        index = _index_of(self.document.connections, connection)
        if index < 0:
            return False
        del self.document.connections[index]
        return True

    def has_connection(self, connection: CustomConnection) -> bool:
        return _index_of(self.document.connections, connection) >= 0

    # --- Tags ---

    def tags(self) -> List[CustomTag]:
        return list(self.document.tags)

    def add_tag(self, position: Point, text: str = DEFAULT_TAG_TEXT) -> CustomTag:
        x, y = position
        tag = CustomTag(x=float(x), y=float(y), text=text)
        self.document.tags.append(tag)
        return tag

    def insert_tag(self, tag: CustomTag) -> None:
        """Put an existing tag object back (no new identity)."""
        if _index_of(self.document.tags, tag) < 0:
            self.document.tags.append(tag)

    def remove_tag(self, tag: CustomTag) -> bool:
        index = _index_of(self.document.tags, tag)
        if index < 0:
            return False
        del self.document.tags[index]
        return True

    def has_tag(self, tag: CustomTag) -> bool:
        return _index_of(self.document.tags, tag) >= 0

    def move_tag(self, tag: CustomTag, position: Point) -> None:
        tag.x, tag.y = float(position[0]), float(position[1])

    def edit_tag_text(self, tag: CustomTag, text: str) -> None:
        tag.text = text
