"""Helpers for reading and writing the JSON artifacts next to the site data."""
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from models.renames import ImageMapping

logger = logging.getLogger(__name__)


class CatalogWriteError(RuntimeError):
    """A catalog or mapping artifact could not be persisted. Fatal for the run."""


class MappingReadError(RuntimeError):
    """image-mapping.json exists but is not a valid name -> name object."""


class RenameCollisionError(FileExistsError):
    """A rename target appeared on disk after the rename plan was made."""


class InterruptedRenameError(RuntimeError):
    """Staging files from an earlier, interrupted rename are still present."""


def write_artifact(path: Path, payload: str) -> None:
    """Write `payload` to `path` via a sibling temp file and an atomic replace.

    Raises CatalogWriteError on any I/O failure; the previous file is left intact.
    """
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise CatalogWriteError(f"Could not write {path}: {exc}") from exc


def load_mapping(path: Path) -> ImageMapping:
    """Load the provenance mapping, or an empty one if none has been written yet.

    Raises MappingReadError if the file cannot be read or parsed.
    """
    if not path.exists():
        logger.info("No existing mapping file at %s; starting a new one.", path)
        return ImageMapping()
    try:
        return ImageMapping.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as exc:
        raise MappingReadError(f"Could not read mapping file {path}: {exc}") from exc


def write_mapping(mapping: ImageMapping, path: Path) -> None:
    write_artifact(path, mapping.model_dump_json(indent=2))
