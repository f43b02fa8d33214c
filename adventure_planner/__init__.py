"""
Adventure Planner: document model for branching-narrative graphs.

- models: StoryNode, CustomConnection, CustomTag, Document
- graph_store: the story tree and its mutations
- overlay_store: free-form connections and tags
- undo: undo records and the undo log
- codec: the .adv file format
- session: the open adventure and its stores
"""

__version__ = "1.0.0"

from adventure_planner.models import CustomConnection, CustomTag, Document, StoryNode
from adventure_planner.graph_store import GraphStore
from adventure_planner.overlay_store import OverlayStore
from adventure_planner.undo import UndoLog, UndoKind
from adventure_planner.codec import (
    LoadResult,
    PersistenceCorrupt,
    PersistenceError,
    PersistenceIOError,
    read_document,
    write_document,
)
from adventure_planner.session import EditorSession

__all__ = [
    'StoryNode',
    'CustomConnection',
    'CustomTag',
    'Document',
    'GraphStore',
    'OverlayStore',
    'UndoLog',
    'UndoKind',
    'LoadResult',
    'PersistenceError',
    'PersistenceCorrupt',
    'PersistenceIOError',
    'read_document',
    'write_document',
    'EditorSession',
]
