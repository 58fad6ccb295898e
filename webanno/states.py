"""
Document lifecycle states and the transitions between them.

Source documents move from NEW through annotation into curation. Each
annotator's annotation document moves from NEW to IN_PROGRESS to FINISHED,
or is excluded from annotation with IGNORE. State changes are only made
through explicit transitions.
"""

from enum import Enum


class SourceDocumentState(str, Enum):
    NEW = "NEW"
    ANNOTATION_IN_PROGRESS = "ANNOTATION_IN_PROGRESS"
    ANNOTATION_FINISHED = "ANNOTATION_FINISHED"
    CURATION_IN_PROGRESS = "CURATION_IN_PROGRESS"
    CURATION_FINISHED = "CURATION_FINISHED"


class AnnotationDocumentState(str, Enum):
    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    FINISHED = "FINISHED"
    IGNORE = "IGNORE"


class SourceDocumentStateTransition(Enum):
    """Transitions of a source document as (from, to) pairs."""

    NEW_TO_ANNOTATION_IN_PROGRESS = (
        SourceDocumentState.NEW,
        SourceDocumentState.ANNOTATION_IN_PROGRESS,
    )
    ANNOTATION_IN_PROGRESS_TO_ANNOTATION_FINISHED = (
        SourceDocumentState.ANNOTATION_IN_PROGRESS,
        SourceDocumentState.ANNOTATION_FINISHED,
    )
    ANNOTATION_FINISHED_TO_ANNOTATION_IN_PROGRESS = (
        SourceDocumentState.ANNOTATION_FINISHED,
        SourceDocumentState.ANNOTATION_IN_PROGRESS,
    )
    ANNOTATION_IN_PROGRESS_TO_CURATION_IN_PROGRESS = (
        SourceDocumentState.ANNOTATION_IN_PROGRESS,
        SourceDocumentState.CURATION_IN_PROGRESS,
    )
    ANNOTATION_FINISHED_TO_CURATION_IN_PROGRESS = (
        SourceDocumentState.ANNOTATION_FINISHED,
        SourceDocumentState.CURATION_IN_PROGRESS,
    )
    CURATION_IN_PROGRESS_TO_CURATION_FINISHED = (
        SourceDocumentState.CURATION_IN_PROGRESS,
        SourceDocumentState.CURATION_FINISHED,
    )
    CURATION_FINISHED_TO_CURATION_IN_PROGRESS = (
        SourceDocumentState.CURATION_FINISHED,
        SourceDocumentState.CURATION_IN_PROGRESS,
    )

    @property
    def source(self) -> SourceDocumentState:
        return self.value[0]

    @property
    def target(self) -> SourceDocumentState:
        return self.value[1]

    @staticmethod
    def transition(transition: "SourceDocumentStateTransition") -> SourceDocumentState:
        """Get the state a transition leads to."""
        return transition.target


class AnnotationDocumentStateTransition(Enum):
    """Transitions of an annotation document as (from, to) pairs."""

    NEW_TO_ANNOTATION_IN_PROGRESS = (
        AnnotationDocumentState.NEW,
        AnnotationDocumentState.IN_PROGRESS,
    )
    ANNOTATION_IN_PROGRESS_TO_ANNOTATION_FINISHED = (
        AnnotationDocumentState.IN_PROGRESS,
        AnnotationDocumentState.FINISHED,
    )
    ANNOTATION_FINISHED_TO_ANNOTATION_IN_PROGRESS = (
        AnnotationDocumentState.FINISHED,
        AnnotationDocumentState.IN_PROGRESS,
    )
    NEW_TO_IGNORE = (
        AnnotationDocumentState.NEW,
        AnnotationDocumentState.IGNORE,
    )
    IGNORE_TO_NEW = (
        AnnotationDocumentState.IGNORE,
        AnnotationDocumentState.NEW,
    )

    @property
    def source(self) -> AnnotationDocumentState:
        return self.value[0]

    @property
    def target(self) -> AnnotationDocumentState:
        return self.value[1]

    @staticmethod
    def transition(transition: "AnnotationDocumentStateTransition") -> AnnotationDocumentState:
        """Get the state a transition leads to."""
        return transition.target
