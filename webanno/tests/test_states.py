"""
Unit tests for document state transitions.

Run with: python -m pytest webanno/tests/test_states.py -v
"""

from webanno.states import (
    AnnotationDocumentState, AnnotationDocumentStateTransition, SourceDocumentState,
    SourceDocumentStateTransition,
)


class TestSourceDocumentStateTransition:
    """Tests for SourceDocumentStateTransition."""

    def test_transition_leads_to_target_state(self):
        assert SourceDocumentStateTransition.transition(
            SourceDocumentStateTransition.NEW_TO_ANNOTATION_IN_PROGRESS
        ) == SourceDocumentState.ANNOTATION_IN_PROGRESS
        assert SourceDocumentStateTransition.transition(
            SourceDocumentStateTransition.CURATION_IN_PROGRESS_TO_CURATION_FINISHED
        ) == SourceDocumentState.CURATION_FINISHED

    def test_every_transition_changes_state(self):
        for transition in SourceDocumentStateTransition:
            assert transition.source != transition.target

    def test_lookup_by_name(self):
        transition = SourceDocumentStateTransition["ANNOTATION_FINISHED_TO_ANNOTATION_IN_PROGRESS"]
        assert transition.source == SourceDocumentState.ANNOTATION_FINISHED


class TestAnnotationDocumentStateTransition:
    """Tests for AnnotationDocumentStateTransition."""

    def test_transition_leads_to_target_state(self):
        assert AnnotationDocumentStateTransition.transition(
            AnnotationDocumentStateTransition.ANNOTATION_IN_PROGRESS_TO_ANNOTATION_FINISHED
        ) == AnnotationDocumentState.FINISHED

    def test_ignore_is_only_reachable_from_new(self):
        into_ignore = [t for t in AnnotationDocumentStateTransition if t.target == AnnotationDocumentState.IGNORE]
        assert [t.source for t in into_ignore] == [AnnotationDocumentState.NEW]

    def test_states_are_strings(self):
        assert AnnotationDocumentState.FINISHED == "FINISHED"
        assert SourceDocumentState.NEW.value == "NEW"
