import os
import logging
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from contract_scanner.core.config import Settings, settings as default_settings
from contract_scanner.schemas.prompts import PromptDefinition

logger = logging.getLogger(__name__)

STORE_KEY = "system-prompts"

_prompt_list = TypeAdapter(List[PromptDefinition])


def serialize_prompts(prompts: List[PromptDefinition]) -> str:
    """Serialize a prompt list into the single persisted blob."""
    return _prompt_list.dump_json(prompts, by_alias=True, indent=2).decode("utf-8")


def deserialize_prompts(blob: str) -> List[PromptDefinition]:
    return _prompt_list.validate_json(blob)


class PromptStore(ABC):
    """Storage backend for the prompt registry.

    The whole prompt list is stored as one named blob. It is read once
    when the registry starts and rewritten in full on every mutation.
    """

    @abstractmethod
    def load(self) -> Optional[List[PromptDefinition]]:
        """Return the persisted prompts, or None if nothing is stored."""

    @abstractmethod
    def save(self, prompts: List[PromptDefinition]) -> None:
        """Replace the persisted prompts."""


class InMemoryPromptStore(PromptStore):
    """Keeps the serialized blob in process memory."""

    def __init__(self, blob: Optional[str] = None):
        self._blob = blob

    def load(self) -> Optional[List[PromptDefinition]]:
        if self._blob is None:
            return None
        try:
            return deserialize_prompts(self._blob)
        except ValidationError as e:
            logger.error(f"Failed to load prompts: {str(e)}")
            return None

    def save(self, prompts: List[PromptDefinition]) -> None:
        self._blob = serialize_prompts(prompts)


class JsonFilePromptStore(PromptStore):
    """Stores the prompt blob as a JSON file on local disk."""

    def __init__(self, path: Path):
        """Initialize the file store.

        Args:
            path: Location of the JSON blob
        """
        self.path = Path(path)

    def load(self) -> Optional[List[PromptDefinition]]:
        if not self.path.exists():
            return None
        try:
            return deserialize_prompts(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            logger.error(f"Failed to load prompts from {self.path}: {str(e)}")
            return None

    def save(self, prompts: List[PromptDefinition]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{STORE_KEY}-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(serialize_prompts(prompts))
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


def create_prompt_store(config: Optional[Settings] = None) -> PromptStore:
    """Create the prompt store selected by PROMPT_STORE_BACKEND."""
    config = config or default_settings
    backend = config.PROMPT_STORE_BACKEND.lower()
    if backend == "memory":
        logger.info("Using in-memory prompt store")
        return InMemoryPromptStore()
    if backend == "file":
        logger.info(f"Using prompt store file: {config.PROMPT_STORE_PATH}")
        return JsonFilePromptStore(config.PROMPT_STORE_PATH)
    raise ValueError(f"Unknown PROMPT_STORE_BACKEND: {config.PROMPT_STORE_BACKEND}")
