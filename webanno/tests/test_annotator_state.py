"""
Unit tests for AnnotatorState paging and the per-user state store.

Run with: python -m pytest webanno/tests/test_annotator_state.py -v
"""

import pytest

from webanno.services.annotator_state import AnnotatorState, AnnotatorStateStore, ScriptDirection
from webanno.services.preferences import AnnotationPreferences


@pytest.fixture
def state():
    state = AnnotatorState(username="anna", preferences=AnnotationPreferences(window_size=5))
    state.number_of_sentences = 12
    return state


class TestPaging:
    """Tests for moving the visible sentence window."""

    def test_initial_window(self, state):
        assert state.first_visible_sentence == 1
        assert state.last_visible_sentence == 5

    def test_next_page_stops_at_last_page(self, state):
        assert state.next_page()
        assert state.first_visible_sentence == 6
        assert state.next_page()
        assert state.first_visible_sentence == 11
        assert state.last_visible_sentence == 12

        assert not state.next_page()
        assert state.first_visible_sentence == 11

    def test_previous_page_stops_at_first_sentence(self, state):
        state.goto_sentence(3)
        assert state.previous_page()
        assert state.first_visible_sentence == 1
        assert not state.previous_page()

    def test_first_and_last_page(self, state):
        state.last_page()
        assert state.first_visible_sentence == 8
        assert state.last_visible_sentence == 12

        state.first_page()
        assert state.first_visible_sentence == 1
        assert state.focus_sentence == 1

    def test_last_page_of_short_document(self):
        state = AnnotatorState(username="anna")
        state.number_of_sentences = 2
        state.last_page()
        assert state.first_visible_sentence == 1

    def test_goto_sentence_is_clamped(self, state):
        assert state.goto_sentence(0) == 1
        assert state.goto_sentence(50) == 12
        assert state.goto_sentence(7) == 7
        assert state.focus_sentence == 7

    def test_empty_document(self):
        state = AnnotatorState(username="anna")
        assert state.last_visible_sentence == 0
        assert state.goto_sentence(3) == 1


class TestAnnotatorState:
    """Tests for document position, script direction and remembered features."""

    def test_document_index(self, state):
        state.document_ids = [4, 8, 15]
        state.document_id = 8
        assert state.document_index == 2
        assert state.number_of_documents == 3

        state.document_id = 99
        assert state.document_index == 0

    def test_toggle_script_direction(self, state):
        assert state.toggle_script_direction() == ScriptDirection.RTL
        assert state.toggle_script_direction() == ScriptDirection.LTR

    def test_remembered_features_follow_preference(self, state):
        state.remember_feature("named_entity", "value", "PER")
        assert state.remembered_features == {"named_entity": {"value": "PER"}}

        state.clear_remembered_features()
        state.preferences.remember_feature_values = False
        state.remember_feature("named_entity", "value", "LOC")
        assert state.remembered_features == {}

    def test_to_dict(self, state):
        state.selection.annotation_id = 3
        data = state.to_dict()

        assert data["last_visible_sentence"] == 5
        assert data["selection"]["annotation_id"] == 3
        assert data["preferences"]["window_size"] == 5


class TestAnnotatorStateStore:
    """Tests for AnnotatorStateStore."""

    def test_one_state_per_user(self):
        store = AnnotatorStateStore()
        assert store.get("anna") is store.get("anna")
        assert store.get("anna") is not store.get("bob")

    def test_discard(self):
        store = AnnotatorStateStore()
        state = store.get("anna")
        store.discard("anna")
        assert store.get("anna") is not state

    def test_discard_project_closes_open_documents(self):
        store = AnnotatorStateStore()
        anna, bob = store.get("anna"), store.get("bob")
        anna.project_id, anna.document_id = 1, 10
        anna.selection.annotation_id = 5
        bob.project_id, bob.document_id = 2, 20

        store.discard_project(1)

        assert (anna.project_id, anna.document_id) == (None, None)
        assert not anna.selection.is_set
        assert (bob.project_id, bob.document_id) == (2, 20)
