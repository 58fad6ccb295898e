"""
Annotation editor preferences.

Preferences are stored per user and project. Values that were never saved
fall back to the defaults from Settings.
"""

import logging
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from webanno.config import Settings
from webanno.db import AnnotationPreference, Project
from webanno.errors import ValidationFailedError

logger = logging.getLogger(__name__)

MAX_WINDOW_SIZE = 100
SIDEBAR_SIZE_RANGE = (5, 50)
FONT_ZOOM_RANGE = (10, 1000)


@dataclass
class AnnotationPreferences:
    window_size: int = 5
    sidebar_size: int = 20
    font_zoom: int = 100
    hidden_layers: List[str] = field(default_factory=list)
    # Keep the focus sentence in view when paging instead of jumping a full page
    scroll_page: bool = True
    remember_feature_values: bool = True

    def validate(self) -> "AnnotationPreferences":
        if not 1 <= self.window_size <= MAX_WINDOW_SIZE:
            raise ValidationFailedError(
                f"Window size must be between 1 and {MAX_WINDOW_SIZE}, got {self.window_size}"
            )
        low, high = SIDEBAR_SIZE_RANGE
        if not low <= self.sidebar_size <= high:
            raise ValidationFailedError(f"Sidebar size must be between {low} and {high}")
        low, high = FONT_ZOOM_RANGE
        if not low <= self.font_zoom <= high:
            raise ValidationFailedError(f"Font zoom must be between {low} and {high}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], defaults: "AnnotationPreferences") -> "AnnotationPreferences":
        values = defaults.to_dict()
        known = {f.name for f in fields(cls)}
        values.update({k: v for k, v in (data or {}).items() if k in known})
        return cls(**values)


class PreferencesService:
    """Loads and saves annotation preferences."""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    def defaults(self) -> AnnotationPreferences:
        return AnnotationPreferences(
            window_size=self.settings.default_window_size,
            sidebar_size=self.settings.default_sidebar_size,
            font_zoom=self.settings.default_font_zoom,
        )

    def _get_record(self, username: str, project: Project):
        return self.db.query(AnnotationPreference).filter(
            AnnotationPreference.username == username,
            AnnotationPreference.project_id == project.id,
        ).first()

    def load_preferences(self, username: str, project: Project) -> AnnotationPreferences:
        record = self._get_record(username, project)
        if record is None:
            return self.defaults()
        return AnnotationPreferences.from_dict(record.data, self.defaults())

    def save_preferences(self, username: str, project: Project, preferences: AnnotationPreferences) -> None:
        preferences.validate()
        record = self._get_record(username, project)
        if record is None:
            record = AnnotationPreference(username=username, project_id=project.id)
            self.db.add(record)
        record.data = preferences.to_dict()
        self.db.commit()
        logger.debug(f"Saved preferences of {username} in project {project.id}")
