"""
Annotation document model for WebAnno.

This package provides the per-user working copy of a source document:
- Sentence and token segmentation of the raw text
- Span and relation annotations carrying feature values
- JSON (de)serialization validated against a JSON schema
- Upgrade of stored documents to the project's current layer configuration
- brat-style rendering of a window of sentences
"""

from annotation_model.document import (
    AnnotatedDocument,
    AnnotationError,
    RelationAnnotation,
    Sentence,
    SpanAnnotation,
    Token,
)
from annotation_model.upgrade import LayerSchema, UpgradeReport, upgrade_document
from annotation_model.rendering import render_window

__version__ = "1.0.0"

__all__ = [
    "AnnotatedDocument",
    "AnnotationError",
    "RelationAnnotation",
    "Sentence",
    "SpanAnnotation",
    "Token",
    "LayerSchema",
    "UpgradeReport",
    "upgrade_document",
    "render_window",
]
