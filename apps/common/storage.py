import logging
import secrets
from pathlib import Path

from flask import current_app as app
from werkzeug.datastructures import FileStorage

logger = logging.getLogger(__name__)

PROPOSAL_DIR = "proposals"


class ProposalStorage:
    """Uploaded proposal PDFs, stored under a root directory.

    Paths handed out and accepted are relative to the root, e.g.
    ``proposals/3f2a....pdf``.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    @classmethod
    def from_app(cls) -> "ProposalStorage":
        return cls(app.config["PROPOSAL_STORAGE_ROOT"])

    def absolute_path(self, path: str) -> Path:
        full = (self.root / path).resolve()
        if not full.is_relative_to(self.root):
            raise ValueError(f"Path {path!r} escapes the storage root")
        return full

    def save(self, upload: FileStorage) -> str:
        relative = f"{PROPOSAL_DIR}/{secrets.token_hex(20)}.pdf"
        target = self.absolute_path(relative)
        target.parent.mkdir(parents=True, exist_ok=True)
        upload.save(target)
        logger.info("Stored proposal file %s", relative)
        return relative

    def exists(self, path: str | None) -> bool:
        if not path:
            return False
        try:
            return self.absolute_path(path).is_file()
        except ValueError:
            return False

    def delete(self, path: str | None):
        if not path:
            return
        full = self.absolute_path(path)
        if full.is_file():
            full.unlink()
            logger.info("Deleted proposal file %s", path)
