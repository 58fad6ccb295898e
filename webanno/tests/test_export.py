"""
Tests for exporting annotation documents and project archives.

Run with: python -m pytest webanno/tests/test_export.py -v
"""

import json
import zipfile

import pytest

from annotation_model import AnnotatedDocument

from webanno.errors import AccessDeniedError, NotFoundError, ValidationFailedError
from webanno.services.export_service import document_to_tsv
from webanno.tasks.export_tasks import run_project_export


@pytest.fixture
def annotated(services, source_document, annotator):
    """Anna's annotation document with one named entity on "John"."""
    documents = services.documents
    annotation_document = documents.create_or_get_annotation_document(source_document, annotator)
    document = documents.read_annotation_document(annotation_document)
    document.add_span("named_entity", 0, 4, {"value": "PER", "identifier": None})
    documents.write_annotation_document(document, annotation_document)
    return annotation_document


class TestDocumentToTsv:
    """Tests for document_to_tsv()."""

    def test_token_lines(self):
        document = AnnotatedDocument.from_text("John sleeps.")
        span = document.add_span("named_entity", 0, 4, {"value": "PER"})

        tsv = document_to_tsv(document, ["named_entity"], lambda a: a.features.get("value", ""))
        lines = tsv.splitlines()

        assert lines[0] == "#FORMAT=WebAnno TSV"
        assert lines[1] == "#Columns=named_entity"
        assert lines[3] == "#Text=John sleeps."
        assert lines[4] == f"1-1\t0-4\tJohn\tPER[{span.id}]"
        assert lines[5] == "1-2\t5-11\tsleeps\t_"
        assert lines[6] == "1-3\t11-12\t.\t_"

    def test_label_delimiters_are_escaped(self):
        document = AnnotatedDocument.from_text("John sleeps.")
        span = document.add_span("named_entity", 0, 4, {"value": "A|B[1]"})

        tsv = document_to_tsv(document, ["named_entity"], lambda a: a.features.get("value", ""))

        assert f"\tJohn\tA\\|B\\[1\\][{span.id}]" in tsv


class TestExportService:
    """Tests for ExportService."""

    def test_json_export(self, services, project, source_document, annotator, annotated):
        content, media_type, file_name = services.export.export_annotation_document(
            project, source_document, annotator, format="json"
        )

        assert media_type == "application/json"
        assert file_name == "doc1-anna.json"
        assert json.loads(content)["spans"][0]["features"]["value"] == "PER"

    def test_tsv_export(self, services, project, source_document, annotator, annotated):
        content, media_type, _ = services.export.export_annotation_document(
            project, source_document, annotator, format="tsv"
        )

        assert media_type == "text/tab-separated-values"
        assert "#Columns=named_entity pos" in content
        assert "\tJohn\tPER[1]\t_" in content

    def test_tsv_labels_skip_disabled_features(self, services, project, source_document, annotator, annotated):
        schema = services.schema
        layer = schema.get_layer_by_name(project, "named_entity")
        schema.update_feature(schema.get_feature(layer, "value"), enabled=False)

        content, _, _ = services.export.export_annotation_document(
            project, source_document, annotator, format="tsv"
        )

        assert "\tJohn\tnamed_entity[1]\t_" in content

    def test_unknown_format(self, services, project, source_document, annotator, annotated):
        with pytest.raises(ValidationFailedError):
            services.export.export_annotation_document(project, source_document, annotator, format="xml")

    def test_disabled_export(self, services, project, source_document, annotator, annotated):
        services.projects.update_project(project, disable_export=True)

        with pytest.raises(AccessDeniedError, match="Export is disabled"):
            services.export.export_annotation_document(project, source_document, annotator)

    def test_project_managers_may_always_export(self, services, project, source_document, admin, annotated):
        services.projects.update_project(project, disable_export=True)

        content, _, file_name = services.export.export_annotation_document(
            project, source_document, admin, annotator="anna"
        )

        assert file_name == "doc1-anna.json"

    def test_annotators_cannot_export_other_users(self, services, project, source_document, annotator):
        with pytest.raises(AccessDeniedError):
            services.export.export_annotation_document(project, source_document, annotator, annotator="admin")

    def test_missing_annotation_document(self, services, project, source_document, admin):
        with pytest.raises(NotFoundError):
            services.export.export_annotation_document(project, source_document, admin)

    def test_project_archive(self, services, project, source_document, annotated, tmp_path):
        guideline = tmp_path / "rules.txt"
        guideline.write_text("Annotate persons.", encoding="utf-8")
        services.projects.create_guideline(project, guideline, "rules.txt")

        archive = services.export.export_project(project, tmp_path / "exports")

        with zipfile.ZipFile(archive) as zf:
            names = set(zf.namelist())
            metadata = json.loads(zf.read("project.json"))

        assert names == {
            "project.json",
            "source/doc1.txt",
            "annotation/doc1.txt/anna.json",
            "guideline/rules.txt",
        }
        assert metadata["name"] == "Test project"
        assert [layer["name"] for layer in metadata["layers"]] == ["named_entity", "pos", "dependency"]
        assert metadata["layers"][2]["attach_layer"] == "pos"

    def test_export_task_body(self, db, settings, project, annotated):
        result = run_project_export(db, project.id, settings=settings)

        assert result["project_id"] == project.id
        assert result["archive"].startswith(str(settings.exports_dir))
        assert result["size"] > 0
