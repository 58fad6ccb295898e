"""
Annotation workspace.

Mediates between the annotation editor, the document repository and the
user's AnnotatorState: opening and loading documents, paging through the
visible sentence window, editing annotations and finishing documents.
Rendering produces the brat-style payload of the visible window.
"""

import logging
from typing import Any, Dict, List, Optional

from annotation_model import AnnotatedDocument, AnnotationError, RelationAnnotation, render_window
from annotation_model.upgrade import RELATION, SPAN

from webanno.db import AnnotationDocument, AnnotationFeature, AnnotationLayer, Project, SourceDocument, User
from webanno.errors import (
    AccessDeniedError, ConfirmationRequiredError, DocumentReadError, ValidationFailedError,
)
from webanno.services.annotator_state import AnnotatorState, ScriptDirection
from webanno.services.preferences import AnnotationPreferences
from webanno.states import (
    AnnotationDocumentState, AnnotationDocumentStateTransition, SourceDocumentState,
    SourceDocumentStateTransition,
)

logger = logging.getLogger(__name__)

FINISH_CONFIRMATION = (
    "Are you sure you want to finish the document? "
    "After finishing, the document can no longer be edited."
)
RESET_CONFIRMATION = (
    "Are you sure you want to reset the document? "
    "All annotations you made on it will be lost."
)


class AnnotationWorkspace:
    """Annotation editor actions of one user."""

    def __init__(self, services, user: User, state: AnnotatorState):
        self.services = services
        self.user = user
        self.state = state

    # =========================================================================
    # Lookups
    # =========================================================================

    @property
    def project(self) -> Project:
        if self.state.project_id is None:
            raise ValidationFailedError("Please open a document first!")
        return self.services.projects.get_project(self.state.project_id)

    @property
    def document(self) -> SourceDocument:
        if self.state.document_id is None:
            raise ValidationFailedError("Please open a document first!")
        return self.services.documents.get_source_document(self.state.project_id, self.state.document_id)

    def _annotation_document(self) -> AnnotationDocument:
        return self.services.documents.create_or_get_annotation_document(self.document, self.user)

    def get_editor_document(self) -> AnnotatedDocument:
        """Read the working copy of the open document."""
        annotation_document = self._annotation_document()
        try:
            return self.services.documents.read_annotation_document(annotation_document)
        except (OSError, AnnotationError) as e:
            logger.error(f"Error reading CAS: {e}")
            raise DocumentReadError(f"Error reading CAS: {e}") from e

    def _write_editor_document(self, document: AnnotatedDocument) -> None:
        self.services.documents.write_annotation_document(document, self._annotation_document())

    def is_finished(self) -> bool:
        return self.services.documents.is_annotation_finished(self.document, self.user)

    # =========================================================================
    # Opening and loading
    # =========================================================================

    def open(self, project_id: int, document_id: int) -> Dict[str, Any]:
        """
        Open a document of a project in the editor.

        Raises:
            NotFoundError: if the project or the document does not exist
            AccessDeniedError: if the user may not annotate the document
        """
        projects = self.services.projects
        documents = self.services.documents

        project = projects.get_project(project_id)
        document = documents.get_source_document(project.id, document_id)

        annotatable = documents.list_annotatable_documents(project, self.user)
        if not projects.is_annotator(project, self.user) or document.id not in {d.id for d in annotatable}:
            raise AccessDeniedError(
                f"You have no permission to access document [{document_id}] in project [{project.id}]"
            )

        self.state.project_id = project.id
        self.state.document_id = document.id
        self.state.document_ids = [d.id for d in annotatable]
        self.state.script_direction = ScriptDirection(project.script_direction)

        self.load_document()
        return self.render()

    def load_document(self) -> None:
        """Prepare the open document for editing."""
        logger.info("BEGIN LOAD_DOCUMENT_ACTION")

        state = self.state
        project = self.project
        documents = self.services.documents

        # Make sure there is an annotation document record for the user
        annotation_document = documents.create_or_get_annotation_document(self.document, self.user)

        editor_document = self.get_editor_document()

        # Upgrade to the current layer configuration and save
        documents.upgrade_annotation_document(editor_document, project)
        documents.write_annotation_document(editor_document, annotation_document)

        state.clear_all_selections()
        state.constraints = documents.load_constraints(project)
        state.preferences = self.services.preferences.load_preferences(self.user.username, project)

        state.number_of_sentences = editor_document.sentence_count
        state.first_page()

        if state.previous_project_id != project.id:
            state.clear_remembered_features()
        state.previous_project_id = project.id

        logger.debug(
            f"Configured annotator state for user [{self.user.username}] "
            f"f:[{state.first_visible_sentence}] l:[{state.last_visible_sentence}] "
            f"s:[{state.focus_sentence}]"
        )

        document = annotation_document.document
        if document.state == SourceDocumentState.NEW.value:
            documents.set_source_document_state(
                document, SourceDocumentStateTransition.NEW_TO_ANNOTATION_IN_PROGRESS
            )
        if annotation_document.state == AnnotationDocumentState.NEW.value:
            documents.set_annotation_document_state(
                annotation_document, AnnotationDocumentStateTransition.NEW_TO_ANNOTATION_IN_PROGRESS
            )

        logger.info("END LOAD_DOCUMENT_ACTION")

    # =========================================================================
    # Navigation
    # =========================================================================

    def _navigate(self) -> None:
        # Paging needs an open, readable document
        self.state.number_of_sentences = self.get_editor_document().sentence_count

    def next_page(self) -> Dict[str, Any]:
        self._navigate()
        self.state.next_page()
        return self.render()

    def previous_page(self) -> Dict[str, Any]:
        self._navigate()
        self.state.previous_page()
        return self.render()

    def first_page(self) -> Dict[str, Any]:
        self._navigate()
        self.state.first_page()
        return self.render()

    def last_page(self) -> Dict[str, Any]:
        self._navigate()
        self.state.last_page()
        return self.render()

    def goto_page(self, sentence_number: int) -> Dict[str, Any]:
        self._navigate()
        self.state.goto_sentence(sentence_number)
        return self.render()

    def _switch_document(self, offset: int, boundary_message: str) -> Dict[str, Any]:
        index = self.state.document_index
        if index == 0:
            raise ValidationFailedError("Please open a document first!")
        target = index - 1 + offset
        if target < 0 or target >= self.state.number_of_documents:
            raise ValidationFailedError(boundary_message)
        return self.open(self.state.project_id, self.state.document_ids[target])

    def next_document(self) -> Dict[str, Any]:
        return self._switch_document(1, "This is the last document!")

    def previous_document(self) -> Dict[str, Any]:
        return self._switch_document(-1, "This is the first document!")

    def toggle_script_direction(self) -> Dict[str, Any]:
        self.state.toggle_script_direction()
        return self.render()

    def complete_preferences_change(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Apply and save changed preferences, then recompute the visible window."""
        preferences = AnnotationPreferences.from_dict(changes, self.state.preferences).validate()
        self.services.preferences.save_preferences(self.user.username, self.project, preferences)
        self.state.preferences = preferences

        # The window size may have changed
        self._navigate()
        self.state.set_first_visible_sentence(self.state.first_visible_sentence)
        return self.render()

    # =========================================================================
    # Finish / reset
    # =========================================================================

    def finish_document(self, confirmed: bool = False) -> Dict[str, Any]:
        """
        Mark the open document as finished by the user.

        Raises:
            ConfirmationRequiredError: if not confirmed
        """
        annotation_document = self._annotation_document()
        if annotation_document.state == AnnotationDocumentState.FINISHED.value:
            raise ValidationFailedError("Document is already finished")
        if not confirmed:
            raise ConfirmationRequiredError(FINISH_CONFIRMATION)

        self.services.documents.set_annotation_document_state(
            annotation_document, AnnotationDocumentStateTransition.ANNOTATION_IN_PROGRESS_TO_ANNOTATION_FINISHED
        )
        self.state.clear_all_selections()
        return self.render()

    def reset_document(self, confirmed: bool = False) -> Dict[str, Any]:
        annotation_document = self._annotation_document()
        if annotation_document.state == AnnotationDocumentState.FINISHED.value:
            raise ValidationFailedError("Finished documents cannot be reset")
        if not confirmed:
            raise ConfirmationRequiredError(RESET_CONFIRMATION)

        document = self.services.documents.reset_annotation_document(annotation_document)
        self.services.documents.upgrade_annotation_document(document, self.project)
        self._write_editor_document(document)

        self.state.clear_all_selections()
        self.state.number_of_sentences = document.sentence_count
        self.state.first_page()
        return self.render()

    # =========================================================================
    # Editing
    # =========================================================================

    def _editable_layer(self, layer_name: str, layer_type: str) -> AnnotationLayer:
        if self.is_finished():
            raise ValidationFailedError(
                "This document is already closed. Please ask your project manager to re-open it."
            )
        layer = self.services.schema.get_layer_by_name(self.project, layer_name)
        if not layer.enabled:
            raise ValidationFailedError(f"Layer [{layer_name}] is disabled")
        if layer.read_only:
            raise ValidationFailedError(f"Layer [{layer_name}] is read-only")
        if layer.type != layer_type:
            raise ValidationFailedError(f"Layer [{layer_name}] is not a {layer_type} layer")
        return layer

    def _feature(self, layer: AnnotationLayer, name: str) -> AnnotationFeature:
        for feature in layer.features:
            if feature.name == name and feature.enabled:
                return feature
        raise ValidationFailedError(f"Feature [{name}] does not exist on layer [{layer.name}]")

    def _convert(self, feature: AnnotationFeature, value: Any, document: AnnotatedDocument) -> Any:
        support = self.services.registry.get_feature_support(feature)
        try:
            converted = support.convert_value(feature, value)
            support.check_in_document(feature, converted, document)
        except ValueError as e:
            raise ValidationFailedError(str(e)) from e
        return converted

    def _initial_features(
        self, layer: AnnotationLayer, values: Optional[Dict[str, Any]], document: AnnotatedDocument
    ) -> Dict[str, Any]:
        """Feature values of a new annotation: remembered values overlaid with the given ones."""
        values = {**self.state.remembered_features.get(layer.name, {}), **(values or {})}
        features = {}
        for feature in layer.features:
            if not feature.enabled:
                continue
            if feature.name in values:
                features[feature.name] = self._convert(feature, values[feature.name], document)
            else:
                support = self.services.registry.get_feature_support(feature)
                features[feature.name] = support.default_value(feature)
            if feature.required and features[feature.name] in (None, "", []):
                raise ValidationFailedError(f"Feature [{feature.name}] is required")

        unknown = set(values) - {f.name for f in layer.features if f.enabled}
        if unknown:
            raise ValidationFailedError(
                f"Feature [{sorted(unknown)[0]}] does not exist on layer [{layer.name}]"
            )
        return features

    def _remember(self, layer: AnnotationLayer, features: Dict[str, Any]) -> None:
        for name, value in features.items():
            self.state.remember_feature(layer.name, name, value)

    def create_span(
        self, layer_name: str, begin: int, end: int, features: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        layer = self._editable_layer(layer_name, SPAN)
        document = self.get_editor_document()
        values = self._initial_features(layer, features, document)
        try:
            span = document.add_span(layer.name, begin, end, values)
        except AnnotationError as e:
            raise ValidationFailedError(str(e)) from e
        self._write_editor_document(document)

        self._remember(layer, values)
        self._select(span.id, layer.name, span.begin, span.end)
        self.state.focus_sentence = document.sentence_number_at(span.begin)
        logger.info(f"Created span {span.id} on [{layer.name}] at [{begin}-{end}]")
        return span.to_dict()

    def create_relation(
        self, layer_name: str, source: int, target: int, features: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        layer = self._editable_layer(layer_name, RELATION)
        document = self.get_editor_document()
        attach_layer = layer.attach_layer.name if layer.attach_layer is not None else None
        try:
            for endpoint in (source, target):
                span = document.get_span(endpoint)
                if attach_layer is not None and span.layer != attach_layer:
                    raise ValidationFailedError(
                        f"Relation layer [{layer.name}] only connects annotations of [{attach_layer}]"
                    )
            values = self._initial_features(layer, features, document)
            relation = document.add_relation(layer.name, source, target, values)
        except AnnotationError as e:
            raise ValidationFailedError(str(e)) from e
        self._write_editor_document(document)

        self._remember(layer, values)
        self._select(relation.id, layer.name)
        logger.info(f"Created relation {relation.id} on [{layer.name}]: {source} -> {target}")
        return relation.to_dict()

    def set_feature(self, annotation_id: int, feature_name: str, value: Any) -> Dict[str, Any]:
        document = self.get_editor_document()
        try:
            annotation = document.get_annotation(annotation_id)
        except AnnotationError as e:
            raise ValidationFailedError(str(e)) from e

        layer_type = RELATION if isinstance(annotation, RelationAnnotation) else SPAN
        layer = self._editable_layer(annotation.layer, layer_type)
        feature = self._feature(layer, feature_name)
        converted = self._convert(feature, value, document)
        document.set_feature(annotation_id, feature.name, converted)
        self._write_editor_document(document)

        self.state.remember_feature(layer.name, feature.name, converted)
        return annotation.to_dict()

    def delete_annotation(self, annotation_id: int) -> List[int]:
        document = self.get_editor_document()
        try:
            annotation = document.get_annotation(annotation_id)
        except AnnotationError as e:
            raise ValidationFailedError(str(e)) from e

        layer_type = RELATION if isinstance(annotation, RelationAnnotation) else SPAN
        self._editable_layer(annotation.layer, layer_type)
        deleted = document.delete_annotation(annotation_id)
        self._write_editor_document(document)

        if self.state.selection.annotation_id in deleted:
            self.state.clear_all_selections()
        logger.info(f"Deleted annotations {deleted}")
        return deleted

    def _select(self, annotation_id: int, layer: str, begin: Optional[int] = None, end: Optional[int] = None):
        selection = self.state.selection
        selection.annotation_id = annotation_id
        selection.layer = layer
        selection.begin = begin
        selection.end = end

    def select_annotation(self, annotation_id: int) -> Dict[str, Any]:
        document = self.get_editor_document()
        try:
            annotation = document.get_annotation(annotation_id)
        except AnnotationError as e:
            raise ValidationFailedError(str(e)) from e

        if not isinstance(annotation, RelationAnnotation):
            self._select(annotation.id, annotation.layer, annotation.begin, annotation.end)
            self.state.focus_sentence = document.sentence_number_at(annotation.begin)
        else:
            self._select(annotation.id, annotation.layer)
        return annotation.to_dict()

    # =========================================================================
    # Rendering
    # =========================================================================

    def _label_function(self, project: Project):
        layers = {layer.name: layer for layer in self.services.schema.list_layers(project)}
        registry = self.services.registry

        def label(annotation) -> str:
            layer = layers.get(annotation.layer)
            if layer is None:
                return annotation.layer
            parts = []
            for feature in layer.features:
                if not (feature.enabled and feature.visible):
                    continue
                text = registry.get_feature_support(feature).render_value(
                    feature, annotation.features.get(feature.name)
                )
                if text:
                    parts.append(text)
            return " ".join(parts) or layer.ui_name

        return label

    def render(self) -> Dict[str, Any]:
        """Render the visible window of the open document plus editor status."""
        state = self.state
        project = self.project
        document = self.get_editor_document()
        state.number_of_sentences = document.sentence_count
        state.set_first_visible_sentence(state.first_visible_sentence)

        hidden_layers = set(state.preferences.hidden_layers)
        hidden_layers.update(
            layer.name for layer in self.services.schema.list_layers(project) if not layer.enabled
        )

        payload = render_window(
            document,
            state.first_visible_sentence,
            state.window_size,
            hidden_layers=hidden_layers,
            label=self._label_function(project),
            rtl=state.script_direction.value == "RTL",
            highlight=state.selection.annotation_id,
        )
        return {
            "project": {"id": project.id, "name": project.name},
            "document": {"id": state.document_id, "name": self.document.name},
            "brat": payload,
            "position": {
                "first_visible_sentence": state.first_visible_sentence,
                "last_visible_sentence": state.last_visible_sentence,
                "focus_sentence": state.focus_sentence,
                "number_of_sentences": state.number_of_sentences,
                "document_index": state.document_index,
                "number_of_documents": state.number_of_documents,
            },
            "sidebar_size": state.preferences.sidebar_size,
            "font_zoom": state.preferences.font_zoom,
            "script_direction": state.script_direction.value,
            "selection": state.selection.to_dict(),
            "finished": self.is_finished(),
            "export_allowed": (
                self.services.projects.is_admin(project, self.user) or not project.disable_export
            ),
        }
