"""Resource definition loading with validation.

Definitions are YAML files holding the same fields as the create/update
inputs. File size is checked before reading and the content is validated
with the pydantic input models at the boundary.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from .config import MAX_SPEC_FILE_SIZE_BYTES
from .resources.orchestrations import CreateOrchestrationInput
from .resources.storage_attachments import CreateStorageAttachmentInput

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class SpecLoadError(Exception):
    """Raised when a definition cannot be loaded or fails validation."""

    pass


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise SpecLoadError(f"Spec file not found: {path}")

    try:
        file_size = path.stat().st_size
    except OSError as e:
        raise SpecLoadError(f"Cannot stat spec file {path}: {e}") from e

    if file_size > MAX_SPEC_FILE_SIZE_BYTES:
        raise SpecLoadError(
            f"Spec file {path} exceeds maximum size of {MAX_SPEC_FILE_SIZE_BYTES} bytes "
            f"(actual: {file_size} bytes)"
        )

    try:
        with path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SpecLoadError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise SpecLoadError(f"Cannot read spec file {path}: {e}") from e

    if not isinstance(raw, dict):
        raise SpecLoadError(f"Spec file {path} must contain a mapping at the top level")
    return raw


def _load(path: Path, model: type[ModelT]) -> ModelT:
    raw = _read_yaml(path)
    try:
        spec = model.model_validate(raw)
    except ValidationError as e:
        raise SpecLoadError(f"Validation failed for {path}:\n{e}") from e

    logger.info("Loaded spec", extra={"path": str(path), "model": model.__name__})
    return spec


def resolve_spec_path(specs_dir: Path, path: str | Path) -> Path:
    """Resolve ``path`` against ``specs_dir`` unless it is absolute."""
    candidate = Path(path)
    return candidate if candidate.is_absolute() else specs_dir / candidate


def load_orchestration(path: Path) -> CreateOrchestrationInput:
    """Load an orchestration definition.

    Raises:
        SpecLoadError: If the file is missing, too large, or invalid.
    """
    return _load(path, CreateOrchestrationInput)


def load_storage_attachment(path: Path) -> CreateStorageAttachmentInput:
    """Load a storage attachment definition.

    Raises:
        SpecLoadError: If the file is missing, too large, or invalid.
    """
    return _load(path, CreateStorageAttachmentInput)
