"""
Document model for Adventure Planner.

A document is a tree of story nodes (branches) joined by decisions, plus
free-form overlay annotations (custom connections and tags) that are not
part of the tree. Entities hold no reference to any view object; the UI
keeps its own id-keyed lookup from model entity to on-screen handle.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

Point = Tuple[float, float]

DEFAULT_DECISION_TEXT = "Make a choice..."

DEFAULT_ROOT_ID = "1"
DEFAULT_ROOT_TITLE = "Start Your Adventure"
DEFAULT_ROOT_DESCRIPTION = "This is where your story begins..."
DEFAULT_ROOT_POSITION: Point = (300.0, 100.0)

DEFAULT_CHILD_TITLE = "New Branch"
DEFAULT_CHILD_DESCRIPTION = "Describe what happens in this branch..."

DEFAULT_TAG_TEXT = "Tag text..."


@dataclass(eq=False)
class StoryNode:
    """
    A branch of the story.

    `children` holds child ids in authored order; the nodes themselves are
    owned by the document registry. `parent_id` is a back-reference kept in
    sync by the graph store and is never persisted.
    """
    id: str
    title: str
    description: str
    x: float = 0.0
    y: float = 0.0
    children: List[str] = field(default_factory=list)
    decision_text: Dict[str, str] = field(default_factory=dict)
    parent_id: Optional[str] = None

    @property
    def position(self) -> Point:
        return (self.x, self.y)

    def __repr__(self) -> str:
        return f"StoryNode(id={self.id!r}, title={self.title!r})"


@dataclass(eq=False)
class CustomConnection:
    """Free-form arrow between two canvas points. Identity is the object itself."""
    start: Point
    end: Point


@dataclass(eq=False)
class CustomTag:
    """Free-form text label placed anywhere on the canvas."""
    x: float
    y: float
    text: str

    @property
    def position(self) -> Point:
        return (self.x, self.y)


@dataclass
class Document:
    """
    The persisted aggregate: node registry, root id and overlay collections.

    `nodes` preserves insertion order, which gives deterministic iteration
    for rendering and tests.
    """
    nodes: Dict[str, StoryNode] = field(default_factory=dict)
    root_id: Optional[str] = None
    connections: List[CustomConnection] = field(default_factory=list)
    tags: List[CustomTag] = field(default_factory=list)

    @property
    def root(self) -> Optional[StoryNode]:
        if self.root_id is None:
            return None
        return self.nodes.get(self.root_id)
