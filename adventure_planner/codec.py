"""
Persistence codec for .adv adventure files.

An .adv file is UTF-8 JSON Lines: one self-describing JSON value per line,
in this order:

    1. node registry   {"<id>": {id, title, description, x, y, children, decision_text}, ...}
    2. root id         "<id>"
    3. connections     [{"start": [x, y], "end": [x, y]}, ...]
    4. tags            [{"x": .., "y": .., "text": ..}, ...]

Sections 1-2 are mandatory. Older files stop after section 2 (legacy) or
after section 3 (mid); readers detect that by reaching the end of the file,
never by a length prefix. Some files carry a bare integer version marker
right before the connection list; the decoded value's type tells the two
layouts apart.

A failure inside the mandatory sections aborts the load. A failure after
them only loses the optional data: it is logged and reported on the
LoadResult, and the load succeeds.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from numbers import Real
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from adventure_planner.graph_store import GraphStore
from adventure_planner.models import CustomConnection, CustomTag, Document, StoryNode

logger = logging.getLogger(__name__)

FILE_EXTENSION = ".adv"

# Marker value written by write_document(version_marker=True)
FORMAT_VERSION = 2

GENERATION_LEGACY = "legacy"
GENERATION_MID = "mid"
GENERATION_CURRENT = "current"


class PersistenceError(Exception):
    """Base class for save/load failures surfaced to the user."""


class PersistenceCorrupt(PersistenceError):
    """The mandatory sections of a file could not be decoded."""


class PersistenceIOError(PersistenceError):
    """The file could not be opened, read or written."""


class _SectionError(ValueError):
    """A single section holds a value of the wrong shape."""


@dataclass
class LoadResult:
    """Outcome of a successful load."""
    document: Document
    generation: str
    version_marker: Optional[int] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def incomplete(self) -> bool:
        """True when optional trailing data was present but unreadable."""
        return len(self.warnings) > 0


# --- Encoding ---

def _node_to_record(node: StoryNode) -> Dict[str, Any]:
    return {
        "id": node.id,
        "title": node.title,
        "description": node.description,
        "x": node.x,
        "y": node.y,
        "children": list(node.children),
        "decision_text": dict(node.decision_text),
    }


def encode_sections(document: Document, version_marker: bool = False) -> List[Any]:
    """Return the ordered list of section values for `document`."""
    if document.root_id is None:
        raise ValueError("Cannot encode a document without a root node")

    sections: List[Any] = [
        {node_id: _node_to_record(node) for node_id, node in document.nodes.items()},
        document.root_id,
    ]
    if version_marker:
        sections.append(FORMAT_VERSION)
    sections.append([
        {"start": list(c.start), "end": list(c.end)} for c in document.connections
    ])
    sections.append([
        {"x": t.x, "y": t.y, "text": t.text} for t in document.tags
    ])
    return sections


def dumps_document(document: Document, version_marker: bool = False) -> bytes:
    """Serialize `document` to the bytes of an .adv file."""
    lines = [json.dumps(value, ensure_ascii=False) for value in encode_sections(document, version_marker)]
    return ("\n".join(lines) + "\n").encode("utf-8")


def write_document(document: Document, path: Union[str, Path], version_marker: bool = False) -> Path:
    """
    Write `document` to `path`.

    The data goes to a temporary file next to the destination which then
    replaces it, so a failed save leaves any existing file intact.

    Raises:
        PersistenceIOError: if the file cannot be written.
    """
    path = Path(path)
    payload = dumps_document(document, version_marker=version_marker)
    tmp_name = None
    try:
        with tempfile.NamedTemporaryFile("wb", dir=path.parent, prefix=f".{path.name}.",
                                         suffix=".tmp", delete=False) as fh:
            tmp_name = fh.name
            fh.write(payload)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise PersistenceIOError(f"Could not save {path}: {e}") from e
    logger.info(f"Saved {len(document.nodes)} nodes, {len(document.connections)} connections, "
                f"{len(document.tags)} tags to {path}")
    return path


# --- Decoding ---

def _iter_sections(data: bytes) -> Iterator[Any]:
    """Yield decoded JSON values, one per non-blank line."""
    for raw_line in data.split(b"\n"):
        if not raw_line.strip():
            continue
        yield json.loads(raw_line.decode("utf-8"))


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _is_point(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and len(value) == 2 and all(_is_number(v) for v in value)


def _node_from_record(key: str, record: Any) -> StoryNode:
    if not isinstance(record, dict):
        raise _SectionError(f"Node {key!r} is not an object")

    node_id = record.get("id", key)
    if node_id != key:
        raise _SectionError(f"Node id {node_id!r} does not match its registry key {key!r}")

    title = record.get("title", "")
    description = record.get("description", "")
    if not isinstance(title, str) or not isinstance(description, str):
        raise _SectionError(f"Node {key!r} has a non-text title or description")

    x, y = record.get("x", 0.0), record.get("y", 0.0)
    if not _is_number(x) or not _is_number(y):
        raise _SectionError(f"Node {key!r} has a non-numeric position")

    children = record.get("children", [])
    if not isinstance(children, list) or not all(isinstance(c, str) for c in children):
        raise _SectionError(f"Node {key!r} has a malformed children list")

    decisions = record.get("decision_text", {})
    if not isinstance(decisions, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in decisions.items()):
        raise _SectionError(f"Node {key!r} has malformed decision texts")

    return StoryNode(id=node_id, title=title, description=description, x=float(x), y=float(y),
                     children=list(children), decision_text=dict(decisions))


def _decode_registry(value: Any) -> Dict[str, StoryNode]:
    if not isinstance(value, dict):
        raise _SectionError(f"Expected the node registry, found {type(value).__name__}")
    return {key: _node_from_record(key, record) for key, record in value.items()}


def _decode_connections(value: Any) -> List[CustomConnection]:
    connections = []
    for item in value:
        if not isinstance(item, dict) or not _is_point(item.get("start")) or not _is_point(item.get("end")):
            raise _SectionError(f"Malformed connection record: {item!r}")
        start, end = item["start"], item["end"]
        connections.append(CustomConnection(start=(float(start[0]), float(start[1])),
                                            end=(float(end[0]), float(end[1]))))
    return connections


def _decode_tags(value: Any) -> List[CustomTag]:
    if not isinstance(value, list):
        raise _SectionError(f"Expected the tag list, found {type(value).__name__}")
    tags = []
    for item in value:
        if (not isinstance(item, dict) or not _is_number(item.get("x")) or not _is_number(item.get("y"))
                or not isinstance(item.get("text"), str)):
            raise _SectionError(f"Malformed tag record: {item!r}")
        tags.append(CustomTag(x=float(item["x"]), y=float(item["y"]), text=item["text"]))
    return tags


# json.JSONDecodeError and UnicodeDecodeError are ValueErrors; RecursionError comes from deeply nested values
_DECODE_ERRORS = (ValueError, TypeError, KeyError, RecursionError)


def loads_document(data: bytes) -> LoadResult:
    """
    Decode the bytes of an .adv file.

    Raises:
        PersistenceCorrupt: if the node registry or root id is unreadable or
            describes an invalid tree.
    """
    sections = _iter_sections(data)

    # Mandatory: node registry and root id
    try:
        nodes = _decode_registry(next(sections))
        root_id = next(sections)
        if not isinstance(root_id, str):
            raise _SectionError(f"Expected the root id, found {type(root_id).__name__}")
    except StopIteration:
        raise PersistenceCorrupt("File ended before the node registry and root id were read") from None
    except _DECODE_ERRORS as e:
        raise PersistenceCorrupt(f"Could not read story nodes: {e}") from e

    document = Document(nodes=nodes, root_id=root_id)
    graph = GraphStore(document)
    graph.rebuild_parent_links()
    problems = graph.validate()
    if problems:
        raise PersistenceCorrupt("Invalid story tree: " + "; ".join(problems))

    result = LoadResult(document=document, generation=GENERATION_LEGACY)

    # Optional: [version marker] connections, then tags
    try:
        value = next(sections)
        if isinstance(value, int) and not isinstance(value, bool):
            result.version_marker = value
            value = next(sections)
        if not isinstance(value, list):
            raise _SectionError(f"Expected the connection list, found {type(value).__name__}")
        document.connections.extend(_decode_connections(value))
        result.generation = GENERATION_MID

        document.tags.extend(_decode_tags(next(sections)))
        result.generation = GENERATION_CURRENT
    except StopIteration:
        pass
    except _DECODE_ERRORS as e:
        message = f"Ignoring unreadable {_next_section_name(result)} section: {e}"
        logger.warning(message)
        result.warnings.append(message)

    if result.generation != GENERATION_CURRENT and not result.warnings:
        logger.info(f"Loaded {result.generation} adventure file without "
                    f"{'custom connections or tags' if result.generation == GENERATION_LEGACY else 'tags'}")
    return result


def _next_section_name(result: LoadResult) -> str:
    return "connections" if result.generation == GENERATION_LEGACY else "tags"


def read_document(path: Union[str, Path]) -> LoadResult:
    """
    Load an .adv file.

    Raises:
        PersistenceIOError: if the file cannot be read.
        PersistenceCorrupt: if its mandatory sections are unreadable.
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise PersistenceIOError(f"Could not open {path}: {e}") from e

    try:
        result = loads_document(data)
    except PersistenceCorrupt as e:
        raise PersistenceCorrupt(f"{path.name}: {e}") from e

    logger.info(f"Loaded {path} ({result.generation}, {len(result.document.nodes)} nodes)")
    return result
