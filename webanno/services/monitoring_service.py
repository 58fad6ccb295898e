"""
Annotation progress monitoring.

Builds the documents x annotators table of a project. Each cell holds the
state icon of the annotator's annotation document.
"""

import logging
from typing import Any, Dict

from webanno.db import Project
from webanno.states import AnnotationDocumentState
from webanno.utils.embeddable_image import EmbeddableImage

logger = logging.getLogger(__name__)


class MonitoringService:
    """Service for annotation progress of projects."""

    def __init__(self, project_service, document_service):
        self.project_service = project_service
        self.document_service = document_service

    def get_progress(self, project: Project) -> Dict[str, Any]:
        """
        Annotation progress of a project.

        Progress counts finished annotation documents among all documents an
        annotator has not ignored.

        Returns:
            Dictionary with annotators, one row per document and overall progress
        """
        annotators = self.project_service.list_project_users_with_level(project, "user")

        rows = []
        total_finished = 0
        total_active = 0
        for document in self.document_service.list_source_documents(project):
            states = {a.user: a.state for a in self.document_service.list_annotation_documents(document)}
            cells = {}
            finished = 0
            active = 0
            for username in annotators:
                state = states.get(username, AnnotationDocumentState.NEW.value)
                cells[username] = EmbeddableImage.for_state(
                    f"doc{document.id}-{username}", state
                ).model_dump()
                if state != AnnotationDocumentState.IGNORE.value:
                    active += 1
                    if state == AnnotationDocumentState.FINISHED.value:
                        finished += 1

            total_finished += finished
            total_active += active
            rows.append({
                "id": document.id,
                "name": document.name,
                "state": document.state,
                "cells": cells,
                "finished": finished,
                "progress": round(100.0 * finished / active, 1) if active else 0.0,
            })

        return {
            "project": {"id": project.id, "name": project.name},
            "annotators": annotators,
            "documents": rows,
            "overall_progress": round(100.0 * total_finished / total_active, 1) if total_active else 0.0,
        }
