"""
JSON file persistence — atomic writes for pydantic models.

Used for the configuration file and backup-info.json sidecars. Writes
go to a temp file in the same directory and are renamed into place, so
a crash mid-write never leaves a truncated file behind.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel

M = TypeVar("M", bound=BaseModel)

logger = logging.getLogger(__name__)


def write_model(model: BaseModel, path: Path) -> None:
    """Serialize a model to pretty-printed JSON (atomic write).

    Raises:
        OSError: If the directory cannot be created or the file written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    data = model.model_dump(mode="json")
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with open(fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp.replace(path)
        logger.debug("Wrote %s", path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def read_model(model_type: type[M], path: Path) -> M:
    """Load and validate a model from a JSON file.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the content is not valid JSON or fails validation
            (``json.JSONDecodeError`` and ``pydantic.ValidationError`` are
            both ValueError subclasses).
    """
    raw = path.read_text(encoding="utf-8")
    return model_type.model_validate(json.loads(raw))
