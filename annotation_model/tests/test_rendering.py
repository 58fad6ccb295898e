"""
Unit tests for brat-style window rendering.

Run with: python -m pytest annotation_model/tests/test_rendering.py -v
"""

import pytest

from annotation_model import AnnotatedDocument, render_window
from annotation_model.rendering import visible_range

TEXT = "One fish. Two fish. Red fish. Blue fish."


@pytest.fixture
def document():
    document = AnnotatedDocument.from_text(TEXT)
    document.add_span("color", TEXT.index("Red"), TEXT.index("Red") + 3, {"value": "red"})
    document.add_span("color", TEXT.index("Blue"), TEXT.index("Blue") + 4, {"value": "blue"})
    document.add_span("number", 0, 3)
    return document


class TestVisibleRange:
    """Tests for visible_range()."""

    def test_window_is_clamped_to_document(self, document):
        assert visible_range(document, 1, 2) == (1, 2)
        assert visible_range(document, 3, 5) == (3, 4)
        assert visible_range(document, 10, 2) == (4, 4)
        assert visible_range(document, 0, 2) == (1, 2)


class TestRenderWindow:
    """Tests for render_window()."""

    def test_offsets_are_rebased_to_window(self, document):
        payload = render_window(document, 3, 2)

        assert payload["text"] == "Red fish. Blue fish."
        assert payload["sentence_number_offset"] == 3
        assert payload["sentence_offsets"] == [[0, 9], [10, 20]]
        assert payload["token_offsets"][0] == [0, 3]

    def test_only_visible_annotations_are_rendered(self, document):
        payload = render_window(document, 3, 2)

        assert [e[1] for e in payload["entities"]] == ["color", "color"]
        assert payload["entities"][0][2] == [[0, 3]]

    def test_hidden_layers(self, document):
        payload = render_window(document, 1, 4, hidden_layers={"color"})
        assert [e[1] for e in payload["entities"]] == ["number"]

    def test_labels_and_relations(self, document):
        red, blue = document.spans[0], document.spans[1]
        relation = document.add_relation("pair", red.id, blue.id)

        payload = render_window(
            document, 3, 2, label=lambda a: a.features.get("value", a.layer)
        )

        assert [e[3] for e in payload["entities"]] == ["red", "blue"]
        assert payload["relations"] == [
            [relation.id, "pair", [["Arg1", red.id], ["Arg2", blue.id]], "pair"]
        ]

    def test_relations_leaving_the_window_are_not_rendered(self, document):
        number = document.spans[2]
        document.add_relation("pair", number.id, document.spans[0].id)

        payload = render_window(document, 3, 2)

        assert payload["relations"] == []

    def test_rtl_and_highlight_flags(self, document):
        payload = render_window(document, 1, 1, rtl=True, highlight=3)
        assert payload["rtl_mode"] is True
        assert payload["highlight"] == 3
