"""
Server-side state of a user's annotation editor.

Tracks which document is open, which sentences are visible, what is
selected and which feature values are remembered for the next annotation.
One state is kept per user for the lifetime of the process.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, List, Optional

from webanno.services.preferences import AnnotationPreferences


class Mode(str, Enum):
    ANNOTATION = "ANNOTATION"
    CURATION = "CURATION"


class ScriptDirection(str, Enum):
    LTR = "LTR"
    RTL = "RTL"


@dataclass
class Selection:
    """Currently selected annotation or text range."""

    annotation_id: Optional[int] = None
    layer: Optional[str] = None
    begin: Optional[int] = None
    end: Optional[int] = None

    def clear(self) -> None:
        self.annotation_id = None
        self.layer = None
        self.begin = None
        self.end = None

    @property
    def is_set(self) -> bool:
        return self.annotation_id is not None or self.begin is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "annotation_id": self.annotation_id,
            "layer": self.layer,
            "begin": self.begin,
            "end": self.end,
        }


@dataclass
class AnnotatorState:
    username: str
    mode: Mode = Mode.ANNOTATION
    project_id: Optional[int] = None
    document_id: Optional[int] = None
    # Ids of the documents the user can switch between, in display order
    document_ids: List[int] = field(default_factory=list)
    preferences: AnnotationPreferences = field(default_factory=AnnotationPreferences)
    selection: Selection = field(default_factory=Selection)
    first_visible_sentence: int = 1
    focus_sentence: int = 1
    number_of_sentences: int = 0
    script_direction: ScriptDirection = ScriptDirection.LTR
    constraints: List[Dict[str, Any]] = field(default_factory=list)
    # layer name -> feature name -> value
    remembered_features: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    # Project of the previously loaded document
    previous_project_id: Optional[int] = None

    # ------------------------------------------------------------------
    # Position
    # ------------------------------------------------------------------

    @property
    def window_size(self) -> int:
        return max(self.preferences.window_size, 1)

    @property
    def last_visible_sentence(self) -> int:
        if self.number_of_sentences == 0:
            return 0
        return min(self.first_visible_sentence + self.window_size - 1, self.number_of_sentences)

    @property
    def document_index(self) -> int:
        """1-based index of the open document in the document list (0 if not listed)."""
        if self.document_id in self.document_ids:
            return self.document_ids.index(self.document_id) + 1
        return 0

    @property
    def number_of_documents(self) -> int:
        return len(self.document_ids)

    def set_first_visible_sentence(self, number: int) -> None:
        """Make a sentence the first visible one, clamped to the document."""
        upper = max(self.number_of_sentences, 1)
        self.first_visible_sentence = min(max(number, 1), upper)

    # ------------------------------------------------------------------
    # Paging
    # ------------------------------------------------------------------

    def next_page(self) -> bool:
        """Move forward one window. Returns False when already showing the last page."""
        candidate = self.first_visible_sentence + self.window_size
        if candidate > self.number_of_sentences:
            return False
        self.first_visible_sentence = candidate
        self.focus_sentence = candidate
        return True

    def previous_page(self) -> bool:
        if self.first_visible_sentence <= 1:
            return False
        self.first_visible_sentence = max(1, self.first_visible_sentence - self.window_size)
        self.focus_sentence = self.first_visible_sentence
        return True

    def first_page(self) -> None:
        self.first_visible_sentence = 1
        self.focus_sentence = 1

    def last_page(self) -> None:
        self.set_first_visible_sentence(self.number_of_sentences - self.window_size + 1)
        self.focus_sentence = self.first_visible_sentence

    def goto_sentence(self, number: int) -> int:
        """Show the page starting at a sentence, clamped to [1, number of sentences]."""
        self.set_first_visible_sentence(number)
        self.focus_sentence = self.first_visible_sentence
        return self.first_visible_sentence

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------

    def toggle_script_direction(self) -> ScriptDirection:
        if self.script_direction == ScriptDirection.LTR:
            self.script_direction = ScriptDirection.RTL
        else:
            self.script_direction = ScriptDirection.LTR
        return self.script_direction

    def clear_all_selections(self) -> None:
        self.selection.clear()

    def clear_remembered_features(self) -> None:
        self.remembered_features.clear()

    def remember_feature(self, layer: str, name: str, value: Any) -> None:
        if self.preferences.remember_feature_values:
            self.remembered_features.setdefault(layer, {})[name] = value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "mode": self.mode.value,
            "project_id": self.project_id,
            "document_id": self.document_id,
            "first_visible_sentence": self.first_visible_sentence,
            "last_visible_sentence": self.last_visible_sentence,
            "focus_sentence": self.focus_sentence,
            "number_of_sentences": self.number_of_sentences,
            "document_index": self.document_index,
            "number_of_documents": self.number_of_documents,
            "script_direction": self.script_direction.value,
            "selection": self.selection.to_dict(),
            "preferences": self.preferences.to_dict(),
            "remembered_features": {k: dict(v) for k, v in self.remembered_features.items()},
            "constraints": [c["name"] for c in self.constraints],
        }


class AnnotatorStateStore:
    """Keeps one AnnotatorState per user."""

    def __init__(self):
        self._states: Dict[str, AnnotatorState] = {}
        self._lock = threading.Lock()

    def get(self, username: str) -> AnnotatorState:
        with self._lock:
            state = self._states.get(username)
            if state is None:
                state = self._states[username] = AnnotatorState(username=username)
            return state

    def discard(self, username: str) -> None:
        with self._lock:
            self._states.pop(username, None)

    def discard_project(self, project_id: int) -> None:
        """Forget the open document of every user working in a project."""
        with self._lock:
            for state in self._states.values():
                if state.project_id == project_id:
                    state.project_id = None
                    state.document_id = None
                    state.document_ids = []
                    state.clear_all_selections()


@lru_cache()
def get_annotator_state_store() -> AnnotatorStateStore:
    """Get the application-wide state store."""
    return AnnotatorStateStore()
