"""
Export of annotation documents and whole projects.

Single annotation documents are exported as JSON (the stored working copy)
or TSV (one token per line with one label column per span layer). Project
archives bundle metadata, source texts, annotation documents and guidelines
into a zip file; they are built by a Celery task.
"""

import json
import logging
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from annotation_model import AnnotatedDocument

from webanno.db import Project, SourceDocument, User
from webanno.errors import AccessDeniedError, NotFoundError, ValidationFailedError

logger = logging.getLogger(__name__)

EXPORT_FORMATS = {
    "json": "application/json",
    "tsv": "text/tab-separated-values",
}


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\t", "\\t").replace("\n", "\\n")


def _escape_label(value: str) -> str:
    escaped = _escape(value)
    for char in "|[]":
        escaped = escaped.replace(char, "\\" + char)
    return escaped


def document_to_tsv(document: AnnotatedDocument, layers: List[str], label) -> str:
    """
    Token-per-line rendering of a document.

    Each sentence starts with a ``#Text=`` line; each token line holds
    ``<sentence>-<token>``, the character range, the token text and one
    column per layer with the labels of the spans covering the token
    (``_`` when there is none).
    """
    lines = ["#FORMAT=WebAnno TSV", "#Columns=" + " ".join(layers), ""]
    for number, sentence in enumerate(document.sentences, start=1):
        lines.append(f"#Text={_escape(document.text[sentence.begin:sentence.end])}")
        tokens = [t for t in document.tokens if t.begin >= sentence.begin and t.end <= sentence.end]
        for index, token in enumerate(tokens, start=1):
            columns = [
                f"{number}-{index}",
                f"{token.begin}-{token.end}",
                _escape(document.text[token.begin:token.end]),
            ]
            for layer in layers:
                labels = [
                    f"{_escape_label(label(span)) or layer}[{span.id}]"
                    for span in document.select_spans(token.begin, token.end, layer=layer)
                ]
                columns.append("|".join(labels) or "_")
            lines.append("\t".join(columns))
        lines.append("")
    return "\n".join(lines)


class ExportService:
    """Service for exporting annotation documents and projects."""

    def __init__(self, services):
        self.services = services

    def is_export_allowed(self, project: Project, user: User) -> bool:
        return self.services.projects.is_admin(project, user) or not project.disable_export

    def check_export_allowed(self, project: Project, user: User) -> None:
        if not self.is_export_allowed(project, user):
            raise AccessDeniedError(f"Export is disabled for project [{project.name}]")

    def export_annotation_document(
        self,
        project: Project,
        document: SourceDocument,
        user: User,
        format: str = "json",
        annotator: Optional[str] = None,
    ) -> Tuple[str, str, str]:
        """
        Export the annotation document of an annotator.

        Args:
            project: Project of the document
            document: Source document
            user: Requesting user
            format: json or tsv
            annotator: Whose annotations to export (default: the requesting user)

        Returns:
            Tuple of (content, media type, file name)
        """
        self.check_export_allowed(project, user)
        if format not in EXPORT_FORMATS:
            raise ValidationFailedError(f"Unsupported export format [{format}]")

        annotator = annotator or user.username
        if annotator != user.username and not self.services.projects.is_curator(project, user):
            raise AccessDeniedError(
                f"You have no permission to export annotations of [{annotator}] in project [{project.id}]"
            )

        documents = self.services.documents
        annotation_document = documents.get_annotation_document(document, annotator)
        if annotation_document is None:
            raise NotFoundError(f"User [{annotator}] has no annotations on document [{document.id}]")
        editor_document = documents.read_annotation_document(annotation_document)

        stem = Path(document.name).stem
        if format == "json":
            content = json.dumps(editor_document.to_dict(), ensure_ascii=False, indent=2)
        else:
            span_layers = [
                layer.name for layer in self.services.schema.list_layers(project) if layer.type == "span"
            ]
            content = document_to_tsv(editor_document, span_layers, self._first_feature_label(project))

        logger.info(f"Exported document {document.id} of {annotator} as {format}")
        return content, EXPORT_FORMATS[format], f"{stem}-{annotator}.{format}"

    def _first_feature_label(self, project: Project):
        layers = {layer.name: layer for layer in self.services.schema.list_layers(project)}
        registry = self.services.registry

        def label(annotation) -> str:
            layer = layers.get(annotation.layer)
            features = [f for f in layer.features if f.enabled and f.visible] if layer is not None else []
            if not features:
                return ""
            feature = features[0]
            return registry.get_feature_support(feature).render_value(
                feature, annotation.features.get(feature.name)
            )

        return label

    def project_metadata(self, project: Project) -> Dict[str, Any]:
        schema = self.services.schema
        return {
            "name": project.name,
            "description": project.description,
            "mode": project.mode,
            "script_direction": project.script_direction,
            "disable_export": project.disable_export,
            "layers": [
                {
                    "name": layer.name,
                    "ui_name": layer.ui_name,
                    "type": layer.type,
                    "attach_layer": layer.attach_layer.name if layer.attach_layer else None,
                    "read_only": layer.read_only,
                    "features": [
                        {
                            "name": f.name,
                            "ui_name": f.ui_name,
                            "type": f.type,
                            "multi_value_mode": f.multi_value_mode,
                            "link_mode": f.link_mode,
                            "tags": f.tags,
                            "tags_creatable": f.tags_creatable,
                            "required": f.required,
                        }
                        for f in layer.features
                    ],
                }
                for layer in schema.list_layers(project)
            ],
            "documents": [
                {"name": d.name, "format": d.format, "state": d.state}
                for d in self.services.documents.list_source_documents(project)
            ],
            "permissions": [
                {"user": p.username, "level": p.level}
                for p in self.services.projects.list_permissions(project)
            ],
            "constraints": self.services.documents.load_constraints(project),
        }

    def export_project(self, project: Project, target_dir: Path) -> Path:
        """
        Write a zip archive of a project.

        Returns:
            Path of the archive
        """
        target_dir = Path(target_dir)
        target_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.utcnow().strftime("%Y%m%d%H%M%S")
        archive = target_dir / f"project-{project.id}-{timestamp}.zip"

        documents = self.services.documents
        layout = self.services.layout
        with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr("project.json", json.dumps(self.project_metadata(project), indent=2))

            for document in documents.list_source_documents(project):
                source = layout.source_file(project.id, document.id)
                if source.exists():
                    zf.write(source, f"source/{document.name}")
                for annotation_document in documents.list_annotation_documents(document):
                    path = layout.annotation_file(project.id, document.id, annotation_document.user)
                    if path.exists():
                        zf.write(path, f"annotation/{document.name}/{annotation_document.user}.json")

            for name in self.services.projects.list_guidelines(project):
                zf.write(layout.guideline_dir(project.id) / name, f"guideline/{name}")

        logger.info(f"Exported project {project.id} to {archive}")
        return archive
