"""
Tests for removing a project's documents before the project is removed.

Run with: python -m pytest webanno/tests/test_event_adapter.py -v
"""

from unittest.mock import MagicMock

import pytest

from webanno.db import AnnotationDocument, Project, SourceDocument
from webanno.events import BeforeProjectRemovedEvent, EventPublisher
from webanno.services.document_service_event_adapter import DocumentServiceEventAdapter


class TestDocumentServiceEventAdapter:
    """Tests for DocumentServiceEventAdapter."""

    def test_removes_every_document_of_the_project(self):
        documents = [MagicMock(name="doc1"), MagicMock(name="doc2")]
        document_service = MagicMock()
        document_service.list_source_documents.return_value = documents
        project = MagicMock(id=3)

        DocumentServiceEventAdapter(document_service).before_project_remove(
            BeforeProjectRemovedEvent(project)
        )

        document_service.list_source_documents.assert_called_once_with(project)
        assert [c.args[0] for c in document_service.remove_source_document.call_args_list] == documents

    def test_register_subscribes_to_project_removal(self):
        publisher = EventPublisher()
        document_service = MagicMock()
        document_service.list_source_documents.return_value = []

        adapter = DocumentServiceEventAdapter(document_service).register(publisher)
        publisher.publish(BeforeProjectRemovedEvent(MagicMock(id=1)))

        assert publisher.listeners(BeforeProjectRemovedEvent) == [adapter.before_project_remove]
        document_service.list_source_documents.assert_called_once()

    def test_failing_listener_aborts_publishing(self):
        publisher = EventPublisher()
        document_service = MagicMock()
        document_service.list_source_documents.side_effect = OSError("disk gone")
        DocumentServiceEventAdapter(document_service).register(publisher)

        with pytest.raises(OSError):
            publisher.publish(BeforeProjectRemovedEvent(MagicMock(id=1)))


class TestProjectRemoval:
    """Project removal through the wired services."""

    def test_only_documents_of_the_removed_project_are_deleted(self, services, admin, settings):
        doomed = services.projects.create_project("Doomed", creator=admin)
        kept = services.projects.create_project("Kept", creator=admin)
        for name in ("a.txt", "b.txt"):
            services.documents.upload_source_document(doomed, name, "Some text.")
        survivor = services.documents.upload_source_document(kept, "c.txt", "Other text.")
        services.documents.create_or_get_annotation_document(survivor, admin)
        doomed_id = doomed.id

        services.projects.remove_project(doomed)

        db = services.db
        assert db.query(Project).filter(Project.id == doomed_id).first() is None
        assert db.query(SourceDocument).filter(SourceDocument.project_id == doomed_id).count() == 0
        assert [d.name for d in services.documents.list_source_documents(kept)] == ["c.txt"]
        assert db.query(AnnotationDocument).count() == 1
        assert not services.layout.project_dir(doomed_id).exists()
        assert services.layout.source_file(kept.id, survivor.id).exists()

    def test_open_editor_states_are_discarded(self, services, admin):
        project = services.projects.create_project("Open", creator=admin)
        state = services.states.get(admin.username)
        state.project_id = project.id
        state.document_id = 5

        services.projects.remove_project(project)

        assert state.project_id is None
        assert state.document_id is None
