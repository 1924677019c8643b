from __future__ import annotations
import json
import logging
import os
from pathlib import Path
from typing import Union

from dotenv import load_dotenv

from ..errors import InvalidImportFormat
from ..models.session_state import SessionState

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class StateCacheRepository:
    """
    Keeps the last session on disk as one JSON file so the next run can
    pick up where the previous one stopped.
    """

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path or os.getenv("ASSAY_STATE_PATH", ".assay_analyst/state.json"))

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self, state: SessionState) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(state.to_dict(), indent=2), encoding="utf-8")
        tmp.replace(self.path)
        logger.debug(f"Session cached to {self.path}")
        return self.path

    def load(self) -> SessionState | None:
        if not self.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as err:
            raise InvalidImportFormat(f"Corrupt session cache {self.path}: {err}") from err
        if not isinstance(data, dict):
            raise InvalidImportFormat(f"Corrupt session cache {self.path}: expected a JSON object")
        return SessionState.from_dict(data)

    def clear(self) -> None:
        if self.exists():
            self.path.unlink()
            logger.info(f"Removed session cache {self.path}")
