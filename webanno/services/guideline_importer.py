"""
Import of annotation guideline files into a project.

Each uploaded file is first staged in a temporary file and then handed to
the project service, which copies it into the project's guideline storage.
A failing file is reported and the remaining files are still imported.
"""

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Iterable, List, Optional

from webanno.db import Project
from webanno.errors import ValidationFailedError
from webanno.utils.exceptions import get_root_cause_message

logger = logging.getLogger(__name__)

TEMP_FILE_PREFIX = "webanno-guidelines"


@dataclass
class GuidelineImportResult:
    imported: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self):
        return {"imported": list(self.imported), "errors": list(self.errors)}


class GuidelineImporter:
    """Stages uploaded guideline files and stores them in a project."""

    def __init__(self, project_service, tmp_dir: Optional[str] = None):
        self.project_service = project_service
        self.tmp_dir = tmp_dir

    def import_guidelines(self, project: Optional[Project], uploads: Iterable[Any]) -> GuidelineImportResult:
        """
        Import uploaded files as guidelines of a project.

        Args:
            project: Target project (must already be saved)
            uploads: Uploaded files, each with ``filename`` and a binary ``file``

        Returns:
            Names of the imported files and one error message per failed file
        """
        if project is None or not project.id:
            raise ValidationFailedError("Project not yet created, please save project Details!")

        uploads = [u for u in (uploads or []) if u is not None]
        if not uploads:
            raise ValidationFailedError(
                "No document is selected to upload, please select a document first"
            )

        result = GuidelineImportResult()
        for upload in uploads:
            file_name = upload.filename
            try:
                stored = self._import_one(project, file_name, upload.file)
                result.imported.append(stored.name)
            except Exception as e:
                message = f"Unable to write guideline file {get_root_cause_message(e)}"
                logger.error(message, exc_info=True)
                result.errors.append(message)

        logger.info(
            f"Imported {len(result.imported)} guidelines into project {project.id} "
            f"({len(result.errors)} failed)"
        )
        return result

    def _import_one(self, project: Project, file_name: str, stream: BinaryIO) -> Path:
        if self.tmp_dir:
            os.makedirs(self.tmp_dir, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=TEMP_FILE_PREFIX, dir=self.tmp_dir)
        try:
            with os.fdopen(fd, "wb") as tmp:
                shutil.copyfileobj(stream, tmp)
            return self.project_service.create_guideline(project, Path(tmp_path), file_name)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
