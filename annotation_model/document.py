"""
In-memory annotation document.

An AnnotatedDocument is the working copy one annotator edits for one source
document: the raw text, its sentence and token segmentation, and the span
and relation annotations created on top of it. Annotation ids are unique
within a document and never reused.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union

import jsonschema

from annotation_model.schema import SCHEMA_VERSION, validate_document_json
from annotation_model.segmentation import sentence_offsets, token_offsets


class AnnotationError(Exception):
    """Raised when an annotation operation cannot be applied to a document."""


@dataclass
class Sentence:
    begin: int
    end: int


@dataclass
class Token:
    begin: int
    end: int


@dataclass
class SpanAnnotation:
    """Annotation covering the text range [begin, end)."""

    id: int
    layer: str
    begin: int
    end: int
    features: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "layer": self.layer,
            "begin": self.begin,
            "end": self.end,
            "features": dict(self.features),
        }


@dataclass
class RelationAnnotation:
    """Directed annotation connecting two span annotations."""

    id: int
    layer: str
    source: int
    target: int
    features: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "layer": self.layer,
            "source": self.source,
            "target": self.target,
            "features": dict(self.features),
        }


Annotation = Union[SpanAnnotation, RelationAnnotation]


@dataclass
class AnnotatedDocument:
    """Text plus segmentation plus annotations."""

    text: str
    sentences: List[Sentence] = field(default_factory=list)
    tokens: List[Token] = field(default_factory=list)
    spans: List[SpanAnnotation] = field(default_factory=list)
    relations: List[RelationAnnotation] = field(default_factory=list)
    schema_version: int = SCHEMA_VERSION
    next_id: int = 1

    @classmethod
    def from_text(cls, text: str) -> "AnnotatedDocument":
        """Create an empty annotation document for raw text."""
        sentences = [Sentence(b, e) for b, e in sentence_offsets(text)]
        if not sentences:
            # Every document has at least one (possibly empty) sentence
            sentences = [Sentence(0, len(text))]
        return cls(
            text=text,
            sentences=sentences,
            tokens=[Token(b, e) for b, e in token_offsets(text)],
        )

    # ------------------------------------------------------------------
    # Sentences
    # ------------------------------------------------------------------

    @property
    def sentence_count(self) -> int:
        return len(self.sentences)

    def get_sentence(self, number: int) -> Sentence:
        """Get a sentence by its 1-based number."""
        if number < 1 or number > len(self.sentences):
            raise AnnotationError(
                f"Sentence {number} out of range [1, {len(self.sentences)}]"
            )
        return self.sentences[number - 1]

    def sentence_number_at(self, offset: int) -> int:
        """1-based number of the sentence containing offset (or the last one before it)."""
        number = 1
        for i, sentence in enumerate(self.sentences, start=1):
            if sentence.begin <= offset:
                number = i
            else:
                break
        return number

    # ------------------------------------------------------------------
    # Annotations
    # ------------------------------------------------------------------

    def _allocate_id(self) -> int:
        annotation_id = self.next_id
        self.next_id += 1
        return annotation_id

    def iter_annotations(self) -> Iterator[Annotation]:
        yield from self.spans
        yield from self.relations

    def get_annotation(self, annotation_id: int) -> Annotation:
        for annotation in self.iter_annotations():
            if annotation.id == annotation_id:
                return annotation
        raise AnnotationError(f"Annotation [{annotation_id}] does not exist")

    def get_span(self, annotation_id: int) -> SpanAnnotation:
        annotation = self.get_annotation(annotation_id)
        if not isinstance(annotation, SpanAnnotation):
            raise AnnotationError(f"Annotation [{annotation_id}] is not a span")
        return annotation

    def add_span(
        self,
        layer: str,
        begin: int,
        end: int,
        features: Optional[Dict[str, Any]] = None,
    ) -> SpanAnnotation:
        if begin < 0 or end > len(self.text) or begin >= end:
            raise AnnotationError(
                f"Invalid span [{begin}-{end}] for text of length {len(self.text)}"
            )
        span = SpanAnnotation(
            id=self._allocate_id(),
            layer=layer,
            begin=begin,
            end=end,
            features=dict(features or {}),
        )
        self.spans.append(span)
        return span

    def add_relation(
        self,
        layer: str,
        source: int,
        target: int,
        features: Optional[Dict[str, Any]] = None,
    ) -> RelationAnnotation:
        self.get_span(source)
        self.get_span(target)
        relation = RelationAnnotation(
            id=self._allocate_id(),
            layer=layer,
            source=source,
            target=target,
            features=dict(features or {}),
        )
        self.relations.append(relation)
        return relation

    def set_feature(self, annotation_id: int, name: str, value: Any) -> Annotation:
        annotation = self.get_annotation(annotation_id)
        annotation.features[name] = value
        return annotation

    def delete_annotation(self, annotation_id: int) -> List[int]:
        """
        Delete an annotation.

        Relations attached to a deleted span are deleted with it.

        Returns:
            Ids of all deleted annotations
        """
        annotation = self.get_annotation(annotation_id)
        deleted = [annotation_id]
        if isinstance(annotation, SpanAnnotation):
            self.spans = [s for s in self.spans if s.id != annotation_id]
            attached = [
                r.id for r in self.relations
                if r.source == annotation_id or r.target == annotation_id
            ]
            deleted.extend(attached)
            self.relations = [r for r in self.relations if r.id not in attached]
        else:
            self.relations = [r for r in self.relations if r.id != annotation_id]
        return deleted

    def select_spans(
        self,
        begin: int,
        end: int,
        layer: Optional[str] = None,
    ) -> List[SpanAnnotation]:
        """Spans overlapping [begin, end), in text order."""
        spans = [
            s for s in self.spans
            if s.begin < end and s.end > begin and (layer is None or s.layer == layer)
        ]
        return sorted(spans, key=lambda s: (s.begin, -s.end, s.id))

    def covered_text(self, annotation: SpanAnnotation) -> str:
        return self.text[annotation.begin:annotation.end]

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "next_id": self.next_id,
            "text": self.text,
            "sentences": [[s.begin, s.end] for s in self.sentences],
            "tokens": [[t.begin, t.end] for t in self.tokens],
            "spans": [s.to_dict() for s in self.spans],
            "relations": [r.to_dict() for r in self.relations],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnnotatedDocument":
        try:
            validate_document_json(data)
        except jsonschema.ValidationError as e:
            raise AnnotationError(f"Invalid annotation document: {e.message}") from e

        spans = [
            SpanAnnotation(
                id=s["id"],
                layer=s["layer"],
                begin=s["begin"],
                end=s["end"],
                features=dict(s.get("features", {})),
            )
            for s in data["spans"]
        ]
        relations = [
            RelationAnnotation(
                id=r["id"],
                layer=r["layer"],
                source=r["source"],
                target=r["target"],
                features=dict(r.get("features", {})),
            )
            for r in data["relations"]
        ]
        highest_id = max((a.id for a in [*spans, *relations]), default=0)
        return cls(
            text=data["text"],
            sentences=[Sentence(b, e) for b, e in data["sentences"]],
            tokens=[Token(b, e) for b, e in data["tokens"]],
            spans=spans,
            relations=relations,
            schema_version=data.get("schema_version", 0),
            next_id=max(data.get("next_id", 1), highest_id + 1),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, payload: str) -> "AnnotatedDocument":
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            raise AnnotationError(f"Annotation document is not valid JSON: {e}") from e
        return cls.from_dict(data)
