"""
Upgrade a stored annotation document to the current layer configuration.

Layer and feature definitions of a project change over time while stored
annotation documents keep the shape they were written with. Upgrading
brings a document in line with the current definitions:
- annotations on layers that no longer exist (or changed type) are removed
- relations whose endpoints were removed are removed
- features no longer defined are dropped
- newly defined features are added with their default value
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable

from annotation_model.document import AnnotatedDocument
from annotation_model.schema import SCHEMA_VERSION

SPAN = "span"
RELATION = "relation"


@dataclass
class LayerSchema:
    """Current definition of one annotation layer."""

    name: str
    type: str = SPAN
    # Feature name -> default value
    features: Dict[str, Any] = field(default_factory=dict)


@dataclass
class UpgradeReport:
    removed_annotations: int = 0
    removed_features: int = 0
    added_features: int = 0
    previous_version: int = SCHEMA_VERSION

    @property
    def changed(self) -> bool:
        return bool(
            self.removed_annotations
            or self.removed_features
            or self.added_features
            or self.previous_version != SCHEMA_VERSION
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "removed_annotations": self.removed_annotations,
            "removed_features": self.removed_features,
            "added_features": self.added_features,
            "previous_version": self.previous_version,
            "changed": self.changed,
        }


def _align_features(features: Dict[str, Any], schema: LayerSchema, report: UpgradeReport) -> Dict[str, Any]:
    aligned = {}
    for name, value in features.items():
        if name in schema.features:
            aligned[name] = value
        else:
            report.removed_features += 1
    for name, default in schema.features.items():
        if name not in aligned:
            aligned[name] = copy.deepcopy(default)
            report.added_features += 1
    return aligned


def upgrade_document(document: AnnotatedDocument, layers: Iterable[LayerSchema]) -> UpgradeReport:
    """Upgrade document in place and report what changed."""
    schemas = {layer.name: layer for layer in layers}
    report = UpgradeReport(previous_version=document.schema_version)

    kept_spans = []
    for span in document.spans:
        schema = schemas.get(span.layer)
        if schema is None or schema.type != SPAN:
            report.removed_annotations += 1
            continue
        span.features = _align_features(span.features, schema, report)
        kept_spans.append(span)
    document.spans = kept_spans

    span_ids = {s.id for s in kept_spans}
    kept_relations = []
    for relation in document.relations:
        schema = schemas.get(relation.layer)
        if (
            schema is None
            or schema.type != RELATION
            or relation.source not in span_ids
            or relation.target not in span_ids
        ):
            report.removed_annotations += 1
            continue
        relation.features = _align_features(relation.features, schema, report)
        kept_relations.append(relation)
    document.relations = kept_relations

    document.schema_version = SCHEMA_VERSION
    return report
