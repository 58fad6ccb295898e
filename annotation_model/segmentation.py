"""
Sentence splitting and tokenization for raw document text.

Sentences never cross a line break. Within a line, a sentence ends after a
run of terminal punctuation (optionally followed by closing quotes or
brackets) that is followed by whitespace.
"""

import re
from typing import List, Tuple

_LINE = re.compile(r"[^\n]+")
_SENTENCE_END = re.compile(r"[.!?]+[\"'\)\]]*(?=\s)")
_TOKEN = re.compile(r"\w+(?:[-']\w+)*|[^\w\s]")


def _trim(text: str, begin: int, end: int) -> Tuple[int, int]:
    while begin < end and text[begin].isspace():
        begin += 1
    while end > begin and text[end - 1].isspace():
        end -= 1
    return begin, end


def sentence_offsets(text: str) -> List[Tuple[int, int]]:
    """Return (begin, end) character offsets of all sentences in text."""
    offsets = []
    for line in _LINE.finditer(text):
        begin = line.start()
        for match in _SENTENCE_END.finditer(text, line.start(), line.end()):
            offsets.append(_trim(text, begin, match.end()))
            begin = match.end()
        offsets.append(_trim(text, begin, line.end()))
    return [(b, e) for b, e in offsets if e > b]


def token_offsets(text: str) -> List[Tuple[int, int]]:
    """Return (begin, end) character offsets of all tokens in text."""
    return [(m.start(), m.end()) for m in _TOKEN.finditer(text)]
