import time
import uuid
import logging
import threading
from collections import Counter
from typing import Any, List, Mapping, Optional, Union

from contract_scanner.database.default_prompts import default_prompts
from contract_scanner.database.prompt_store import PromptStore
from contract_scanner.schemas.prompts import (
    PromptCategory,
    PromptCreate,
    PromptDefinition,
    PromptUpdate,
    utcnow,
)

logger = logging.getLogger(__name__)


class PromptRegistryError(RuntimeError):
    """Raised when a mutation would leave a category with several active prompts."""


def verify_single_active(prompts: List[PromptDefinition]) -> None:
    """Check that no category has more than one active prompt.

    Raises:
        PromptRegistryError: If a category has two or more active prompts
    """
    counts = Counter(p.category for p in prompts if p.is_active)
    crowded = sorted(category.value for category, count in counts.items() if count > 1)
    if crowded:
        raise PromptRegistryError(f"Multiple active prompts in categories: {', '.join(crowded)}")


class PromptRegistry:
    """Named system prompts grouped by category, one active prompt per category.

    State is loaded from the store once and kept in memory; every mutation
    rewrites the full list to the store. Each mutation is a single
    read-modify-write under one lock, so concurrent callers can never observe
    or persist two active prompts in the same category.
    """

    def __init__(self, store: PromptStore):
        """Initialize the registry.

        Args:
            store: Backend holding the persisted prompt list
        """
        self.store = store
        self._lock = threading.RLock()
        self._prompts = self._load()

    def _load(self) -> List[PromptDefinition]:
        prompts = self.store.load()
        if prompts is None:
            logger.info("No stored prompts found, using built-in defaults")
            return default_prompts()

        # Repair state written by an older or foreign writer: first active wins
        seen = set()
        for prompt in prompts:
            if not prompt.is_active:
                continue
            if prompt.category in seen:
                logger.warning(f"Deactivating prompt {prompt.id}: category {prompt.category.value} already has an active prompt")
                prompt.is_active = False
            seen.add(prompt.category)
        return prompts

    def _snapshot(self) -> List[PromptDefinition]:
        return [p.model_copy(deep=True) for p in self._prompts]

    def _commit(self, prompts: List[PromptDefinition]) -> List[PromptDefinition]:
        verify_single_active(prompts)
        self.store.save(prompts)
        self._prompts = prompts
        return self._snapshot()

    @staticmethod
    def _swap_active(prompts: List[PromptDefinition], target: PromptDefinition) -> None:
        """Make ``target`` the only active prompt of its category."""
        now = utcnow()
        for prompt in prompts:
            if prompt is target:
                continue
            if prompt.category == target.category and prompt.is_active:
                prompt.is_active = False
                prompt.last_modified = now
        target.is_active = True
        target.last_modified = now

    @staticmethod
    def _find(prompts: List[PromptDefinition], prompt_id: str) -> Optional[PromptDefinition]:
        return next((p for p in prompts if p.id == prompt_id), None)

    def list(self) -> List[PromptDefinition]:
        """Return all prompts in insertion order."""
        with self._lock:
            return self._snapshot()

    def get(self, prompt_id: str) -> Optional[PromptDefinition]:
        with self._lock:
            prompt = self._find(self._prompts, prompt_id)
            return prompt.model_copy(deep=True) if prompt else None

    def get_active(self, category: PromptCategory) -> Optional[PromptDefinition]:
        """Return the active prompt of a category, if any."""
        with self._lock:
            prompt = next((p for p in self._prompts if p.category == category and p.is_active), None)
            return prompt.model_copy(deep=True) if prompt else None

    def add(self, definition: Union[PromptCreate, Mapping[str, Any]]) -> List[PromptDefinition]:
        """Add a prompt, assigning a fresh id and timestamp.

        Args:
            definition: Prompt fields without id and timestamp

        Returns:
            The full prompt list after the addition
        """
        if not isinstance(definition, PromptCreate):
            definition = PromptCreate.model_validate(definition)

        with self._lock:
            prompts = self._snapshot()
            prompt = PromptDefinition(
                id=f"custom-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}",
                name=definition.name,
                description=definition.description,
                content=definition.content,
                category=definition.category,
                is_active=False,
                last_modified=utcnow(),
            )
            prompts.append(prompt)
            if definition.is_active:
                self._swap_active(prompts, prompt)
            logger.info(f"Added prompt {prompt.id} ({prompt.category.value})")
            return self._commit(prompts)

    def update(self, prompt_id: str, fields: Union[PromptUpdate, Mapping[str, Any]]) -> List[PromptDefinition]:
        """Merge fields into a prompt and refresh its timestamp.

        Unknown ids are ignored and the unchanged list is returned. Activating
        a prompt through an update deactivates the rest of its category.
        """
        if not isinstance(fields, PromptUpdate):
            fields = PromptUpdate.model_validate(fields)
        changes = fields.model_dump(exclude_unset=True, exclude_none=True)

        with self._lock:
            prompts = self._snapshot()
            prompt = self._find(prompts, prompt_id)
            if prompt is None:
                logger.warning(f"Prompt {prompt_id} not found, update ignored")
                return prompts

            activate = changes.pop("is_active", None)
            for key, value in changes.items():
                setattr(prompt, key, value)
            prompt.last_modified = utcnow()

            if activate:
                self._swap_active(prompts, prompt)
            elif activate is False:
                prompt.is_active = False
            elif prompt.is_active:
                # A category change can move an active prompt into an occupied category
                self._swap_active(prompts, prompt)
            return self._commit(prompts)

    def set_active(self, prompt_id: str, active: bool = True) -> List[PromptDefinition]:
        """Activate or deactivate a prompt.

        Activation deactivates every other prompt of the same category in the
        same locked step. Unknown ids are ignored.
        """
        with self._lock:
            prompts = self._snapshot()
            prompt = self._find(prompts, prompt_id)
            if prompt is None:
                logger.warning(f"Prompt {prompt_id} not found, activation ignored")
                return prompts

            if active:
                self._swap_active(prompts, prompt)
            else:
                prompt.is_active = False
                prompt.last_modified = utcnow()
            logger.info(f"Prompt {prompt_id} {'activated' if active else 'deactivated'}")
            return self._commit(prompts)

    def delete(self, prompt_id: str) -> List[PromptDefinition]:
        """Remove a prompt.

        Built-in prompts can be removed too; restricting deletion to
        user-created prompts is up to the caller.
        """
        with self._lock:
            prompts = [p for p in self._snapshot() if p.id != prompt_id]
            if len(prompts) == len(self._prompts):
                logger.warning(f"Prompt {prompt_id} not found, delete ignored")
                return prompts
            logger.info(f"Deleted prompt {prompt_id}")
            return self._commit(prompts)

    def reset_to_defaults(self) -> List[PromptDefinition]:
        """Replace every prompt, custom ones included, with the built-in set."""
        with self._lock:
            logger.info("Resetting prompts to defaults")
            return self._commit(default_prompts())
