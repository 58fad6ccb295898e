"""Removes the source documents of a project before the project itself is removed."""

import logging

from webanno.events import BeforeProjectRemovedEvent, EventPublisher

logger = logging.getLogger(__name__)


class DocumentServiceEventAdapter:
    """Bridges project lifecycle events to the document service."""

    def __init__(self, document_service):
        self.document_service = document_service

    def register(self, publisher: EventPublisher) -> "DocumentServiceEventAdapter":
        publisher.subscribe(BeforeProjectRemovedEvent, self.before_project_remove)
        return self

    def before_project_remove(self, event: BeforeProjectRemovedEvent) -> None:
        project = event.project
        documents = self.document_service.list_source_documents(project)
        logger.info(f"Removing {len(documents)} documents of project {project.id}")
        for document in documents:
            self.document_service.remove_source_document(document)
