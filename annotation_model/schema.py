"""
JSON schema for serialized annotation documents.

Annotation documents are stored as JSON files in the repository. Every file
read back is validated against DOCUMENT_SCHEMA before it is turned into an
AnnotatedDocument.
"""

from typing import Any, Dict

import jsonschema

# Version written by the current code; older files are upgraded on load
SCHEMA_VERSION = 1

_OFFSETS = {
    "type": "array",
    "items": {
        "type": "array",
        "items": {"type": "integer", "minimum": 0},
        "minItems": 2,
        "maxItems": 2,
    },
}

DOCUMENT_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["text", "sentences", "tokens", "spans", "relations"],
    "properties": {
        "schema_version": {"type": "integer", "minimum": 0},
        "next_id": {"type": "integer", "minimum": 1},
        "text": {"type": "string"},
        "sentences": _OFFSETS,
        "tokens": _OFFSETS,
        "spans": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "layer", "begin", "end"],
                "properties": {
                    "id": {"type": "integer", "minimum": 1},
                    "layer": {"type": "string", "minLength": 1},
                    "begin": {"type": "integer", "minimum": 0},
                    "end": {"type": "integer", "minimum": 0},
                    "features": {"type": "object"},
                },
            },
        },
        "relations": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "layer", "source", "target"],
                "properties": {
                    "id": {"type": "integer", "minimum": 1},
                    "layer": {"type": "string", "minLength": 1},
                    "source": {"type": "integer", "minimum": 1},
                    "target": {"type": "integer", "minimum": 1},
                    "features": {"type": "object"},
                },
            },
        },
    },
}


def validate_document_json(data: Dict[str, Any]) -> None:
    """
    Validate serialized annotation document data.

    Raises:
        jsonschema.ValidationError: if the data does not match DOCUMENT_SCHEMA
    """
    jsonschema.validate(instance=data, schema=DOCUMENT_SCHEMA)
