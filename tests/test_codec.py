import json

import pytest

from adventure_planner.codec import (
    FORMAT_VERSION,
    GENERATION_CURRENT,
    GENERATION_LEGACY,
    GENERATION_MID,
    PersistenceCorrupt,
    PersistenceIOError,
    dumps_document,
    loads_document,
    read_document,
    write_document,
)
from adventure_planner.graph_store import GraphStore


def _lines(data: bytes):
    return data.decode("utf-8").splitlines()


def _join(lines) -> bytes:
    return ("\n".join(lines) + "\n").encode("utf-8")


def _assert_isomorphic(original, loaded):
    assert loaded.root_id == original.root_id
    assert list(loaded.nodes) == list(original.nodes)
    for node_id, node in original.nodes.items():
        other = loaded.nodes[node_id]
        assert (other.title, other.description, other.position) == (node.title, node.description, node.position)
        assert other.children == node.children
        assert other.decision_text == node.decision_text
        assert other.parent_id == node.parent_id
    assert [(c.start, c.end) for c in loaded.connections] == [(c.start, c.end) for c in original.connections]
    assert [(t.x, t.y, t.text) for t in loaded.tags] == [(t.x, t.y, t.text) for t in original.tags]


@pytest.fixture
def annotated(document, story, overlays):
    overlays.add_connection((10, 20), (30.5, 40))
    overlays.add_connection((-1, -1), (0, 0))
    overlays.add_tag((100, 200), "Secret: the troll is friendly")
    overlays.add_tag((0, 0), "ünïcode ✓\nsecond line")
    return document


class TestRoundTrip:

    def test_full_document(self, annotated, tmp_path):
        path = write_document(annotated, tmp_path / "story.adv")
        result = read_document(path)
        assert result.generation == GENERATION_CURRENT
        assert result.warnings == []
        assert not result.incomplete
        _assert_isomorphic(annotated, result.document)

    def test_without_overlays(self, document, story, tmp_path):
        path = write_document(document, tmp_path / "plain.adv")
        result = read_document(path)
        assert result.generation == GENERATION_CURRENT
        assert result.document.connections == []
        assert result.document.tags == []
        _assert_isomorphic(document, result.document)

    def test_root_only(self, document, tmp_path):
        result = read_document(write_document(document, tmp_path / "root.adv"))
        _assert_isomorphic(document, result.document)

    def test_sections_are_ordered(self, annotated):
        lines = _lines(dumps_document(annotated))
        assert len(lines) == 4
        assert isinstance(json.loads(lines[0]), dict)
        assert json.loads(lines[1]) == annotated.root_id
        assert len(json.loads(lines[2])) == 2
        assert json.loads(lines[3])[0]["text"] == "Secret: the troll is friendly"

    def test_version_marker_layout(self, annotated):
        data = dumps_document(annotated, version_marker=True)
        assert json.loads(_lines(data)[2]) == FORMAT_VERSION

        result = loads_document(data)
        assert result.version_marker == FORMAT_VERSION
        assert result.generation == GENERATION_CURRENT
        _assert_isomorphic(annotated, result.document)

    def test_loaded_graph_is_editable(self, annotated):
        loaded = loads_document(dumps_document(annotated)).document
        graph = GraphStore(loaded)
        cave = next(n for n in graph.all_nodes() if n.title == "Enter the cave")
        assert graph.delete_subtree(cave)
        assert graph.validate() == []


class TestOlderGenerations:

    def test_legacy_file(self, annotated):
        data = _join(_lines(dumps_document(annotated))[:2])
        result = loads_document(data)
        assert result.generation == GENERATION_LEGACY
        assert result.document.connections == []
        assert result.document.tags == []
        assert not result.incomplete
        assert len(result.document.nodes) == len(annotated.nodes)

    def test_mid_file(self, annotated):
        data = _join(_lines(dumps_document(annotated))[:3])
        result = loads_document(data)
        assert result.generation == GENERATION_MID
        assert len(result.document.connections) == 2
        assert result.document.tags == []

    def test_mid_file_with_version_marker(self, annotated):
        data = _join(_lines(dumps_document(annotated, version_marker=True))[:4])
        result = loads_document(data)
        assert result.version_marker == FORMAT_VERSION
        assert result.generation == GENERATION_MID
        assert len(result.document.connections) == 2

    def test_marker_without_connections(self, annotated):
        data = _join(_lines(dumps_document(annotated, version_marker=True))[:3])
        result = loads_document(data)
        assert result.generation == GENERATION_LEGACY
        assert result.version_marker == FORMAT_VERSION
        assert not result.incomplete

    def test_node_records_missing_optional_fields(self):
        registry = {"1": {"id": "1", "title": "Start", "children": ["a"]},
                    "a": {"title": "Only a title"}}
        result = loads_document(_join([json.dumps(registry), json.dumps("1")]))
        doc = result.document
        assert doc.nodes["a"].description == ""
        assert doc.nodes["a"].position == (0.0, 0.0)
        assert doc.nodes["a"].parent_id == "1"
        assert doc.nodes["1"].decision_text == {}


class TestOptionalSectionFailures:

    def test_garbage_connections(self, annotated):
        lines = _lines(dumps_document(annotated))
        lines[2] = "{not json"
        result = loads_document(_join(lines))
        assert result.generation == GENERATION_LEGACY
        assert result.incomplete
        assert "connections" in result.warnings[0]
        assert result.document.connections == []
        assert result.document.tags == []
        assert len(result.document.nodes) == len(annotated.nodes)

    def test_wrong_type_where_connections_expected(self, annotated):
        lines = _lines(dumps_document(annotated))
        lines[2] = json.dumps({"unexpected": True})
        result = loads_document(_join(lines))
        assert result.incomplete
        assert result.document.connections == []

    def test_malformed_connection_record(self, annotated):
        lines = _lines(dumps_document(annotated))
        lines[2] = json.dumps([{"start": [0, 0], "end": [1, 1]}, {"start": "nowhere"}])
        result = loads_document(_join(lines))
        assert result.incomplete
        assert result.document.connections == []

    def test_corrupt_tags_keep_connections(self, annotated):
        lines = _lines(dumps_document(annotated))
        lines[3] = json.dumps([{"x": 1, "y": "two", "text": "bad"}])
        result = loads_document(_join(lines))
        assert result.generation == GENERATION_MID
        assert result.incomplete
        assert "tags" in result.warnings[0]
        assert len(result.document.connections) == 2
        assert result.document.tags == []

    def test_truncated_binary_tail(self, annotated):
        data = _join(_lines(dumps_document(annotated))[:2]) + b"\xff\xfe\x00garbage"
        result = loads_document(data)
        assert result.incomplete
        assert len(result.document.nodes) == len(annotated.nodes)

    def test_deeply_nested_tail(self, annotated):
        lines = _lines(dumps_document(annotated))[:2] + ["[" * 100000 + "]" * 100000]
        result = loads_document(_join(lines))
        assert result.incomplete
        assert result.document.connections == []
        assert len(result.document.nodes) == len(annotated.nodes)

    def test_failure_is_logged(self, annotated, caplog):
        lines = _lines(dumps_document(annotated))
        lines[3] = "]["
        with caplog.at_level("WARNING", logger="adventure_planner.codec"):
            loads_document(_join(lines))
        assert "Ignoring unreadable tags section" in caplog.text


class TestMandatorySectionFailures:

    @pytest.mark.parametrize("data", [
        b"",
        b"\n\n",
        b"{broken",
        b'["not", "a", "registry"]\n"1"\n',
        b'{"1": {"id": "1", "title": "Start"}}\n',
        b'{"1": {"id": "1", "title": "Start"}}\n42\n',
        b'{"1": {"id": "1", "title": "Start"}}\n"missing"\n',
        b'{"1": {"id": "2", "title": "Start"}}\n"1"\n',
        b'{"1": {"id": "1", "title": 7}}\n"1"\n',
        b'{"1": {"id": "1", "x": "left"}}\n"1"\n',
        b'{"1": {"id": "1", "children": ["ghost"]}}\n"1"\n',
        b'{"1": {"id": "1", "children": ["a"]}, "a": {"children": ["1"]}}\n"1"\n',
        b"[" * 100000 + b"]" * 100000 + b'\n"1"\n',
    ])
    def test_corrupt_mandatory_sections(self, data):
        with pytest.raises(PersistenceCorrupt):
            loads_document(data)

    def test_error_names_the_file(self, tmp_path):
        path = tmp_path / "bad.adv"
        path.write_bytes(b"{broken")
        with pytest.raises(PersistenceCorrupt, match="bad.adv"):
            read_document(path)


class TestIO:

    def test_missing_file(self, tmp_path):
        with pytest.raises(PersistenceIOError):
            read_document(tmp_path / "nope.adv")

    def test_unwritable_destination(self, document, tmp_path):
        with pytest.raises(PersistenceIOError):
            write_document(document, tmp_path / "no_such_dir" / "story.adv")

    def test_overwrite_leaves_no_temp_files(self, document, tmp_path):
        path = tmp_path / "story.adv"
        write_document(document, path)
        write_document(document, path)
        assert [p.name for p in tmp_path.iterdir()] == ["story.adv"]

    def test_document_without_root_cannot_be_written(self, tmp_path):
        from adventure_planner.models import Document
        with pytest.raises(ValueError):
            write_document(Document(), tmp_path / "empty.adv")
