"""
BatchFileParser — CSV and JSON legacy files.
"""

import json

import pytest

from core.models import DataType, EventSource, EventType
from exceptions import ValidationError
from services import BatchFileParser

SOURCE = "incoming/crm/batch-0415.csv"


@pytest.fixture
def parser():
    return BatchFileParser()


def _csv(text: str) -> bytes:
    return text.strip().encode("utf-8")


class TestDetectDataType:

    def test_csv(self):
        assert BatchFileParser.detect_data_type("a/B.CSV") == DataType.CSV

    def test_json(self):
        assert BatchFileParser.detect_data_type("a/b.json") == DataType.JSON

    def test_unsupported(self):
        with pytest.raises(ValidationError):
            BatchFileParser.detect_data_type("a/b.xlsx")


class TestCsv:

    def test_rows_become_created_events(self, parser):
        content = _csv("""
floor_plan_id,component_type,position_x,position_y
12,Wall,1.5,2
12,door,3,4.25
""")
        result = parser.parse(content, SOURCE, "file-drop-watcher")

        assert result.total_rows == 2
        assert result.rejected_count == 0
        first = result.events[0]
        assert first.event_type == EventType.CREATED
        assert first.floor_plan_id == 12
        assert first.component_type == "wall"
        assert first.position_x == 1.5
        assert first.source == EventSource.FILE_DROP
        assert first.source_file == SOURCE
        assert first.submitted_by == "file-drop-watcher"

    def test_event_ids_are_deterministic(self, parser):
        content = _csv("floor_plan_id,component_type,position_x,position_y\n1,wall,0,0\n1,wall,1,1")
        first = parser.parse(content, SOURCE, "x")
        second = parser.parse(content, SOURCE, "y")
        assert [e.event_id for e in first.events] == [e.event_id for e in second.events]
        assert first.events[0].event_id != first.events[1].event_id

    def test_explicit_event_id_kept(self, parser):
        content = _csv("event_id,floor_plan_id,component_type,position_x,position_y\nlegacy-77,1,wall,0,0")
        assert parser.parse(content, SOURCE, "x").events[0].event_id == "legacy-77"

    def test_prop_columns_fold_into_properties(self, parser):
        content = _csv("""
floor_plan_id,component_type,position_x,position_y,prop_width,prop_color,properties
5,window,1,1,120,oak,"{""glazing"": ""double""}"
""")
        event = parser.parse(content, SOURCE, "x").events[0]
        assert event.properties == {"glazing": "double", "width": 120, "color": "oak"}

    def test_update_and_delete_rows(self, parser):
        content = _csv("""
event_type,floor_plan_id,customization_id,position_x
UPDATED,5,40,9.5
deleted,5,41,
""")
        result = parser.parse(content, SOURCE, "x")
        assert [e.event_type for e in result.events] == [EventType.UPDATED, EventType.DELETED]
        assert result.events[1].position_x is None

    def test_bad_rows_collected_not_fatal(self, parser):
        content = _csv("""
floor_plan_id,component_type,position_x,position_y
1,wall,1,1
not-a-number,wall,1,1
2,,1,1
3,door,2,2
""")
        result = parser.parse(content, SOURCE, "x")
        assert result.total_rows == 4
        assert len(result.events) == 2
        assert [e["row"] for e in result.row_errors] == [2, 3]
        assert "floor_plan_id" in result.row_errors[0]["error"]
        assert "row 2:" in result.error_summary()

    def test_invalid_properties_json_is_row_error(self, parser):
        content = _csv('floor_plan_id,component_type,position_x,position_y,properties\n1,wall,0,0,"[1, 2]"')
        result = parser.parse(content, SOURCE, "x")
        assert result.events == []
        assert "properties must be a JSON object" in result.row_errors[0]["error"]

    def test_unknown_columns_ignored(self, parser):
        content = _csv("floor_plan_id,component_type,position_x,position_y,legacy_ref\n1,wall,0,0,ZX-1")
        result = parser.parse(content, SOURCE, "x")
        assert result.ignored_columns == ["legacy_ref"]
        assert len(result.events) == 1

    def test_missing_required_column(self, parser):
        with pytest.raises(ValidationError, match="floor_plan_id"):
            parser.parse(_csv("component_type,position_x,position_y\nwall,0,0"), SOURCE, "x")

    def test_empty_file(self, parser):
        with pytest.raises(ValidationError, match="empty"):
            parser.parse(b"", SOURCE, "x")

    def test_byte_order_mark_tolerated(self, parser):
        content = "\ufefffloor_plan_id,component_type,position_x,position_y\n1,wall,0,0".encode("utf-8")
        assert len(parser.parse(content, SOURCE, "x").events) == 1

    def test_error_summary_truncates(self, parser):
        rows = "\n".join("x,wall,0,0" for _ in range(25))
        result = parser.parse(_csv(f"floor_plan_id,component_type,position_x,position_y\n{rows}"), SOURCE, "x")
        summary = result.error_summary(max_errors=20)
        assert summary.endswith("... 5 more")


class TestJson:

    SOURCE = "incoming/erp/export.json"

    def test_list_shape(self, parser):
        content = json.dumps([
            {"floor_plan_id": 1, "component_type": "wall", "position_x": 0, "position_y": 0,
             "properties": {"height": 240}},
        ]).encode()
        result = parser.parse(content, self.SOURCE, "x")
        assert result.data_type == DataType.JSON
        assert result.events[0].properties == {"height": 240}

    @pytest.mark.parametrize("key", ["events", "customizations"])
    def test_container_shapes(self, parser, key):
        content = json.dumps({key: [
            {"event_type": "deleted", "floor_plan_id": 1, "customization_id": 4},
        ]}).encode()
        assert parser.parse(content, self.SOURCE, "x").events[0].event_type == EventType.DELETED

    def test_non_object_row_is_row_error(self, parser):
        content = json.dumps([42, {"floor_plan_id": 1, "component_type": "wall", "position_x": 0, "position_y": 0}])
        result = parser.parse(content.encode(), self.SOURCE, "x")
        assert len(result.events) == 1
        assert result.row_errors[0]["row"] == 1

    def test_server_fields_in_rows_are_overwritten(self, parser):
        content = json.dumps([{
            "floor_plan_id": 1, "component_type": "wall", "position_x": 0, "position_y": 0,
            "source": "api", "submitted_by": "someone-else",
        }]).encode()
        event = parser.parse(content, self.SOURCE, "watcher").events[0]
        assert event.source == EventSource.FILE_DROP
        assert event.submitted_by == "watcher"

    def test_unparseable(self, parser):
        with pytest.raises(ValidationError):
            parser.parse(b"{oops", self.SOURCE, "x")

    def test_wrong_top_level_shape(self, parser):
        with pytest.raises(ValidationError):
            parser.parse(json.dumps({"rows": []}).encode(), self.SOURCE, "x")
