"""
Integration tests for the annotation workspace.

Tests:
- Opening a document: permissions, loading, state transitions
- Paging and switching documents
- Creating, editing and deleting annotations
- Finishing and resetting documents

Run with: python -m pytest webanno/tests/test_annotation_workspace.py -v
"""

import pytest

from webanno.errors import (
    AccessDeniedError, ConfirmationRequiredError, DocumentReadError, NotFoundError,
    ValidationFailedError,
)
from webanno.services.annotation_workspace import AnnotationWorkspace
from webanno.states import AnnotationDocumentState, AnnotationDocumentStateTransition, SourceDocumentState


@pytest.fixture
def workspace(services, annotator, source_document):
    return AnnotationWorkspace(services, annotator, services.states.get(annotator.username))


@pytest.fixture
def opened(workspace, project, source_document):
    workspace.open(project.id, source_document.id)
    return workspace


class TestOpen:
    """Tests for opening and loading a document."""

    def test_open_renders_first_page(self, workspace, project, source_document):
        view = workspace.open(project.id, source_document.id)

        assert view["document"] == {"id": source_document.id, "name": "doc1.txt"}
        assert view["position"]["first_visible_sentence"] == 1
        assert view["position"]["last_visible_sentence"] == 2
        assert view["position"]["number_of_sentences"] == 4
        assert view["position"]["document_index"] == 1
        assert view["brat"]["text"] == "John lives in Berlin. He works for Siemens."
        assert view["finished"] is False

    def test_open_starts_annotation(self, services, workspace, project, source_document, annotator):
        workspace.open(project.id, source_document.id)

        annotation_document = services.documents.get_annotation_document(source_document, annotator)
        assert source_document.state == SourceDocumentState.ANNOTATION_IN_PROGRESS.value
        assert annotation_document.state == AnnotationDocumentState.IN_PROGRESS.value
        # The upgraded working copy is saved right away
        assert services.layout.annotation_file(project.id, source_document.id, "anna").exists()

    def test_reopening_keeps_states(self, workspace, project, source_document):
        workspace.open(project.id, source_document.id)
        workspace.open(project.id, source_document.id)

        assert source_document.state == SourceDocumentState.ANNOTATION_IN_PROGRESS.value

    def test_user_without_permission_is_rejected(self, services, project, source_document):
        carl = services.users.create_user("carl", "secret")
        workspace = AnnotationWorkspace(services, carl, services.states.get("carl"))

        with pytest.raises(AccessDeniedError, match="You have no permission to access document"):
            workspace.open(project.id, source_document.id)

        assert workspace.state.document_id is None

    def test_ignored_document_is_rejected(self, services, workspace, project, source_document, annotator):
        annotation_document = services.documents.create_or_get_annotation_document(source_document, annotator)
        services.documents.set_annotation_document_state(
            annotation_document, AnnotationDocumentStateTransition.NEW_TO_IGNORE
        )

        with pytest.raises(AccessDeniedError):
            workspace.open(project.id, source_document.id)

    def test_unknown_document(self, workspace, project):
        with pytest.raises(NotFoundError):
            workspace.open(project.id, 4711)

    def test_actions_need_an_open_document(self, workspace):
        with pytest.raises(ValidationFailedError, match="Please open a document first!"):
            workspace.render()
        with pytest.raises(ValidationFailedError, match="Please open a document first!"):
            workspace.next_page()

    def test_preferences_and_constraints_are_loaded(self, services, workspace, project, source_document, annotator):
        services.projects.create_constraint_set(project, "rules", "named_entity.value = PER")
        prefs = services.preferences.defaults()
        prefs.window_size = 3
        services.preferences.save_preferences(annotator.username, project, prefs)

        view = workspace.open(project.id, source_document.id)

        assert view["position"]["last_visible_sentence"] == 3
        assert [c["name"] for c in workspace.state.constraints] == ["rules"]

    def test_corrupt_working_copy(self, services, opened, project, source_document):
        path = services.layout.annotation_file(project.id, source_document.id, "anna")
        path.write_text("{broken", encoding="utf-8")

        with pytest.raises(DocumentReadError, match="Error reading CAS"):
            opened.render()


class TestNavigation:
    """Tests for paging and document switching."""

    def test_paging(self, opened):
        assert opened.next_page()["position"]["first_visible_sentence"] == 3
        # Already on the last page
        assert opened.next_page()["position"]["first_visible_sentence"] == 3
        assert opened.previous_page()["position"]["first_visible_sentence"] == 1
        assert opened.last_page()["position"]["first_visible_sentence"] == 3
        assert opened.first_page()["position"]["first_visible_sentence"] == 1

    def test_goto_page_is_clamped(self, opened):
        view = opened.goto_page(4)
        assert view["position"]["first_visible_sentence"] == 4
        assert view["position"]["last_visible_sentence"] == 4
        assert view["brat"]["text"] == "The end."

        assert opened.goto_page(99)["position"]["first_visible_sentence"] == 4
        assert opened.goto_page(-3)["position"]["first_visible_sentence"] == 1

    def test_switch_documents(self, services, opened, project):
        services.documents.upload_source_document(project, "doc2.txt", "Second document.")
        opened.open(project.id, opened.state.document_id)

        view = opened.next_document()
        assert view["document"]["name"] == "doc2.txt"
        assert view["position"]["document_index"] == 2

        with pytest.raises(ValidationFailedError, match="This is the last document!"):
            opened.next_document()

        assert opened.previous_document()["document"]["name"] == "doc1.txt"
        with pytest.raises(ValidationFailedError, match="This is the first document!"):
            opened.previous_document()

    def test_script_direction(self, opened):
        view = opened.toggle_script_direction()
        assert view["script_direction"] == "RTL"
        assert view["brat"]["rtl_mode"] is True

    def test_preferences_change(self, services, opened, project, annotator):
        view = opened.complete_preferences_change({"window_size": 3, "font_zoom": 150})

        assert view["position"]["last_visible_sentence"] == 3
        assert view["font_zoom"] == 150
        assert services.preferences.load_preferences(annotator.username, project).window_size == 3

    def test_invalid_preferences_are_rejected(self, opened):
        with pytest.raises(ValidationFailedError):
            opened.complete_preferences_change({"window_size": 0})
        assert opened.state.window_size == 2


class TestEditing:
    """Tests for creating, editing and deleting annotations."""

    def test_create_span(self, opened):
        span = opened.create_span("named_entity", 0, 4, {"value": "PER"})

        assert span["features"] == {"value": "PER", "identifier": None}
        assert opened.state.selection.annotation_id == span["id"]

        entities = opened.render()["brat"]["entities"]
        assert [(e[1], e[2], e[3]) for e in entities] == [("named_entity", [[0, 4]], "PER")]

    def test_span_is_persisted(self, opened):
        span = opened.create_span("pos", 5, 10, {"PosValue": "VBZ"})
        assert opened.get_editor_document().get_annotation(span["id"]).features == {"PosValue": "VBZ"}

    def test_value_outside_closed_tagset(self, opened):
        with pytest.raises(ValidationFailedError, match="tagset"):
            opened.create_span("named_entity", 0, 4, {"value": "ANIMAL"})
        assert opened.get_editor_document().spans == []

    def test_unknown_feature(self, opened):
        with pytest.raises(ValidationFailedError, match="does not exist"):
            opened.create_span("named_entity", 0, 4, {"colour": "red"})

    def test_remembered_values_are_applied(self, opened):
        opened.create_span("named_entity", 0, 4, {"value": "LOC"})
        second = opened.create_span("named_entity", 14, 20)
        assert second["features"]["value"] == "LOC"

    def test_wrong_layer_type(self, opened):
        with pytest.raises(ValidationFailedError, match="is not a span layer"):
            opened.create_span("dependency", 0, 4)

    def test_read_only_layer(self, services, opened, project):
        layer = services.schema.get_layer_by_name(project, "pos")
        services.schema.update_layer(layer, read_only=True)

        with pytest.raises(ValidationFailedError, match="read-only"):
            opened.create_span("pos", 0, 4)

    def test_create_relation(self, opened):
        john = opened.create_span("pos", 0, 4, {"PosValue": "NNP"})
        lives = opened.create_span("pos", 5, 10, {"PosValue": "VBZ"})

        relation = opened.create_relation("dependency", lives["id"], john["id"], {"DependencyType": "nsubj"})

        assert relation["source"] == lives["id"]
        relations = opened.render()["brat"]["relations"]
        assert relations[0][0] == relation["id"]
        assert relations[0][3] == "nsubj"

    def test_relation_must_connect_attached_layer(self, opened):
        john = opened.create_span("named_entity", 0, 4, {"value": "PER"})
        berlin = opened.create_span("named_entity", 14, 20, {"value": "LOC"})

        with pytest.raises(ValidationFailedError, match="only connects annotations of"):
            opened.create_relation("dependency", john["id"], berlin["id"])

    def test_set_feature(self, opened):
        span = opened.create_span("named_entity", 0, 4, {"value": "PER"})

        updated = opened.set_feature(span["id"], "value", "ORG")

        assert updated["features"]["value"] == "ORG"
        assert opened.state.remembered_features["named_entity"]["value"] == "ORG"

    def test_delete_span_deletes_relations(self, opened):
        john = opened.create_span("pos", 0, 4)
        lives = opened.create_span("pos", 5, 10)
        relation = opened.create_relation("dependency", lives["id"], john["id"])

        deleted = opened.delete_annotation(john["id"])

        assert sorted(deleted) == sorted([john["id"], relation["id"]])
        assert not opened.state.selection.is_set

    def test_select_annotation_moves_focus(self, opened):
        span = opened.create_span("pos", 44, 50)
        opened.state.selection.clear()

        opened.select_annotation(span["id"])

        assert opened.state.selection.annotation_id == span["id"]
        assert opened.state.focus_sentence == 3

    def test_unknown_annotation(self, opened):
        with pytest.raises(ValidationFailedError):
            opened.set_feature(999, "value", "PER")


class TestFinishAndReset:
    """Tests for finishing and resetting documents."""

    def test_finish_requires_confirmation(self, opened):
        with pytest.raises(ConfirmationRequiredError, match="Are you sure"):
            opened.finish_document()
        assert opened.render()["finished"] is False

    def test_finish(self, opened):
        view = opened.finish_document(confirmed=True)
        assert view["finished"] is True

        with pytest.raises(ValidationFailedError, match="already finished"):
            opened.finish_document(confirmed=True)

    def test_finished_documents_cannot_be_edited(self, opened):
        span = opened.create_span("pos", 0, 4)
        opened.finish_document(confirmed=True)

        with pytest.raises(ValidationFailedError, match="This document is already closed"):
            opened.create_span("pos", 5, 10)
        with pytest.raises(ValidationFailedError, match="This document is already closed"):
            opened.delete_annotation(span["id"])

    def test_reset(self, opened):
        opened.create_span("pos", 0, 4)

        with pytest.raises(ConfirmationRequiredError):
            opened.reset_document()
        assert len(opened.get_editor_document().spans) == 1

        view = opened.reset_document(confirmed=True)
        assert view["brat"]["entities"] == []
        assert opened.get_editor_document().spans == []

    def test_export_allowed_follows_project(self, services, opened, project):
        assert opened.render()["export_allowed"] is True

        services.projects.update_project(project, disable_export=True)

        assert opened.render()["export_allowed"] is False
