import pytest

from adventure_planner.graph_store import GraphStore
from adventure_planner.models import (
    DEFAULT_ROOT_DESCRIPTION,
    DEFAULT_ROOT_POSITION,
    DEFAULT_ROOT_TITLE,
    Document,
)
from adventure_planner.overlay_store import OverlayStore


@pytest.fixture(autouse=True)
def isolated_app_dir(tmp_path, monkeypatch):
    """Keep config.json and recent files out of the real home directory."""
    app_dir = tmp_path / "app_home"
    monkeypatch.setenv("ADVENTURE_PLANNER_HOME", str(app_dir))
    monkeypatch.delenv("ADVENTURE_PLANNER_PORT", raising=False)
    return app_dir


@pytest.fixture
def document():
    """A document holding only the start node, as a new adventure does."""
    doc = Document()
    GraphStore(doc).create_root(DEFAULT_ROOT_TITLE, DEFAULT_ROOT_DESCRIPTION, DEFAULT_ROOT_POSITION)
    return doc


@pytest.fixture
def graph(document):
    return GraphStore(document)


@pytest.fixture
def overlays(document):
    return OverlayStore(document)


@pytest.fixture
def story(graph):
    """
    A small adventure:

        root
        ├── cave
        │   ├── troll
        │   └── treasure
        │       └── escape
        └── village
    """
    root = graph.root
    cave = graph.add_child(root, "Enter the cave", "It is dark.")
    village = graph.add_child(root, "Go to the village", "Smoke rises.")
    troll = graph.add_child(cave, "Fight the troll", "")
    treasure = graph.add_child(cave, "Grab the treasure", "")
    escape = graph.add_child(treasure, "Escape", "Run!")
    graph.set_decision_text(root, cave.id, "Go left")
    graph.set_decision_text(root, village.id, "Go right")
    return {
        "root": root,
        "cave": cave,
        "village": village,
        "troll": troll,
        "treasure": treasure,
        "escape": escape,
    }
