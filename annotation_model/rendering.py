"""
brat-style rendering of a window of sentences.

The editor only ever shows a window of consecutive sentences. The rendered
payload carries the window text with offsets rebased to the window start, in
the shape the brat visualizer consumes (text, sentence_offsets,
token_offsets, entities, relations).
"""

from typing import Any, Callable, Collection, Dict, Optional

from annotation_model.document import AnnotatedDocument

LabelFunction = Callable[[Any], str]


def _default_label(annotation) -> str:
    return annotation.layer


def visible_range(document: AnnotatedDocument, first_sentence: int, window_size: int):
    """
    Compute the visible sentence range.

    Returns:
        Tuple of (first, last) 1-based sentence numbers, clamped to the document
    """
    total = document.sentence_count
    first = min(max(first_sentence, 1), total)
    last = min(first + max(window_size, 1) - 1, total)
    return first, last


def render_window(
    document: AnnotatedDocument,
    first_sentence: int,
    window_size: int,
    hidden_layers: Collection[str] = (),
    label: Optional[LabelFunction] = None,
    rtl: bool = False,
    highlight: Optional[int] = None,
) -> Dict[str, Any]:
    """Render sentences [first_sentence, first_sentence + window_size) of document."""
    label = label or _default_label
    first, last = visible_range(document, first_sentence, window_size)
    window_begin = document.get_sentence(first).begin
    window_end = document.get_sentence(last).end

    def rebase(begin: int, end: int):
        return [max(begin, window_begin) - window_begin, min(end, window_end) - window_begin]

    entities = []
    visible_spans = set()
    for span in document.select_spans(window_begin, window_end):
        if span.layer in hidden_layers:
            continue
        visible_spans.add(span.id)
        entities.append([span.id, span.layer, [rebase(span.begin, span.end)], label(span)])

    relations = []
    for relation in document.relations:
        if relation.layer in hidden_layers:
            continue
        if relation.source in visible_spans and relation.target in visible_spans:
            relations.append([
                relation.id,
                relation.layer,
                [["Arg1", relation.source], ["Arg2", relation.target]],
                label(relation),
            ])

    return {
        "text": document.text[window_begin:window_end],
        "sentence_number_offset": first,
        "sentence_offsets": [
            rebase(s.begin, s.end) for s in document.sentences[first - 1:last]
        ],
        "token_offsets": [
            rebase(t.begin, t.end)
            for t in document.tokens
            if t.begin >= window_begin and t.end <= window_end
        ],
        "entities": entities,
        "relations": relations,
        "highlight": highlight,
        "rtl_mode": rtl,
    }
