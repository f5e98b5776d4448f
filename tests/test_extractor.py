"""Tests for A2UI component extraction."""

from hyper_notebook.a2ui import extract_components, strip_component_blocks


class TestExtractComponents:
    def test_single_block_with_array(self):
        text = '```json\n[{"type":"progress","properties":{"value":50,"label":"Step 1"}}]\n```'
        components = extract_components(text)
        assert len(components) == 1
        assert components[0].type == "progress"
        assert components[0].properties["value"] == 50

    def test_components_wrapper(self):
        text = 'Result:\n```json\n{"components": [{"type": "card", "properties": {"title": "X"}}]}\n```'
        components = extract_components(text)
        assert len(components) == 1
        assert components[0].type == "card"
        assert components[0].properties == {"title": "X"}

    def test_single_object(self):
        text = '```\n{"id": "b1", "type": "badge", "properties": {"label": "New"}}\n```'
        components = extract_components(text)
        assert [c.id for c in components] == ["b1"]

    def test_invalid_block_does_not_abort_valid_block(self):
        text = (
            "```json\n{not valid json,,}\n```\n"
            "Some prose.\n"
            '```json\n{"type": "card", "properties": {"title": "Kept"}}\n```'
        )
        components = extract_components(text)
        assert len(components) == 1
        assert components[0].properties["title"] == "Kept"

    def test_skip_hook_reports_invalid_blocks(self):
        skipped = []
        text = "```python\nprint('hi')\n```\n```json\n[1, 2]\n```"
        components = extract_components(text, on_skip=lambda i, reason: skipped.append(i))
        assert components == []
        # Block 1 is valid JSON without components, so only block 0 is skipped
        assert skipped == [0]

    def test_order_follows_blocks_then_elements(self, a2ui_reply):
        components = extract_components(a2ui_reply)
        assert [c.type for c in components] == ["progress", "card", "table"]

    def test_generated_ids_use_prefix_stamp_and_position(self, a2ui_reply):
        components = extract_components(a2ui_reply, stamp=1700000000000)
        assert components[0].id == "p1"
        assert components[1].id == "parsed-1700000000000-0-1"
        assert components[2].id == "parsed-1700000000000-2-0"

    def test_extraction_is_deterministic(self, a2ui_reply):
        first = extract_components(a2ui_reply, stamp=42)
        second = extract_components(a2ui_reply, stamp=42)
        assert first == second
        assert [c.to_dict() for c in first] == [c.to_dict() for c in second]

    def test_unknown_type_is_still_extracted(self):
        text = '```json\n{"type": "unsupported-widget", "properties": {}}\n```'
        components = extract_components(text)
        assert components[0].type == "unsupported-widget"

    def test_elements_without_string_type_are_ignored(self):
        text = '```json\n[{"type": 3}, {"title": "no type"}, "text", {"type": "badge"}]\n```'
        components = extract_components(text)
        assert [c.type for c in components] == ["badge"]
        assert components[0].id.endswith("-0-3")

    def test_duplicate_ids_are_kept(self):
        text = '```json\n[{"id": "x", "type": "badge"}, {"id": "x", "type": "card"}]\n```'
        components = extract_components(text)
        assert [c.id for c in components] == ["x", "x"]

    def test_parent_id_and_data_are_carried(self):
        text = (
            '```json\n[{"id": "t", "type": "table", "parentId": "c1", '
            '"data": [{"a": 1}], "properties": "oops"}]\n```'
        )
        component = extract_components(text)[0]
        assert component.parent_id == "c1"
        assert component.data == [{"a": 1}]
        assert component.properties == {}
        assert component.to_dict()["parentId"] == "c1"

    def test_non_standard_constants_skip_the_block(self):
        skipped = []
        text = (
            '```json\n{"type": "progress", "properties": {"value": NaN}}\n```\n'
            '```json\n{"type": "badge", "properties": {"count": -Infinity}}\n```\n'
            '```json\n{"type": "card", "properties": {"title": "Kept"}}\n```'
        )
        components = extract_components(text, on_skip=lambda i, reason: skipped.append(i))
        assert [c.type for c in components] == ["card"]
        assert skipped == [0, 1]

    def test_overflowing_number_skips_the_block(self):
        text = '```json\n{"type": "tabs", "properties": {"defaultIndex": 1e400}}\n```'
        assert extract_components(text) == []

    def test_falsy_ids_get_generated_ids(self):
        text = '```json\n[{"id": 0, "type": "badge"}, {"id": false, "type": "badge"}, {"id": 7, "type": "card"}]\n```'
        components = extract_components(text, stamp=5)
        assert [c.id for c in components] == ["parsed-5-0-0", "parsed-5-0-1", "7"]

    def test_text_without_blocks(self):
        assert extract_components("Just prose, no code.") == []


class TestStripComponentBlocks:
    def test_removes_only_component_blocks(self, a2ui_reply):
        cleaned = strip_component_blocks(a2ui_reply)
        assert "progress" not in cleaned
        assert "```python" in cleaned
        assert cleaned.startswith("Here is where you stand.")
        assert "\n\n\n" not in cleaned

    def test_keeps_block_with_non_standard_constant(self):
        text = 'Before\n\n```json\n{"type": "progress", "properties": {"value": NaN}}\n```'
        assert "NaN" in strip_component_blocks(text)

    def test_does_not_change_extraction_of_original(self, a2ui_reply):
        before = extract_components(a2ui_reply)
        strip_component_blocks(a2ui_reply)
        assert extract_components(a2ui_reply) == before
