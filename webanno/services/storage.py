"""
Filesystem layout of the document repository.

    <repository_dir>/project/<project_id>/
        document/<document_id>/source.txt
        document/<document_id>/annotation/<username>.json
        guideline/<file name>
"""

import os
import tempfile
from pathlib import Path


class RepositoryLayout:
    """Resolves repository paths for projects, documents and guidelines."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def project_dir(self, project_id: int) -> Path:
        return self.root / "project" / str(project_id)

    def document_dir(self, project_id: int, document_id: int) -> Path:
        return self.project_dir(project_id) / "document" / str(document_id)

    def source_file(self, project_id: int, document_id: int) -> Path:
        return self.document_dir(project_id, document_id) / "source.txt"

    def annotation_dir(self, project_id: int, document_id: int) -> Path:
        return self.document_dir(project_id, document_id) / "annotation"

    def annotation_file(self, project_id: int, document_id: int, username: str) -> Path:
        return self.annotation_dir(project_id, document_id) / f"{username}.json"

    def guideline_dir(self, project_id: int) -> Path:
        return self.project_dir(project_id) / "guideline"


def write_text_atomic(path: Path, content: str) -> None:
    """Write a text file so readers never observe a partially written file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
