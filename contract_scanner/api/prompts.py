from fastapi import APIRouter, Depends, HTTPException
from typing import List
import logging

from contract_scanner.api.dependencies import get_prompt_registry
from contract_scanner.database.prompt_registry import PromptRegistry, PromptRegistryError
from contract_scanner.schemas.prompts import (
    PromptActivation,
    PromptCategory,
    PromptCreate,
    PromptDefinition,
    PromptUpdate,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=List[PromptDefinition])
def list_prompts(registry: PromptRegistry = Depends(get_prompt_registry)):
    """List all system prompts."""
    return registry.list()


@router.get("/active/{category}", response_model=PromptDefinition)
def get_active_prompt(category: PromptCategory, registry: PromptRegistry = Depends(get_prompt_registry)):
    """Get the active prompt of a category."""
    prompt = registry.get_active(category)
    if prompt is None:
        raise HTTPException(status_code=404, detail=f"No active prompt in category {category.value}")
    return prompt


@router.post("/reset", response_model=List[PromptDefinition])
def reset_prompts(registry: PromptRegistry = Depends(get_prompt_registry)):
    """Restore the built-in prompts, discarding custom ones."""
    try:
        return registry.reset_to_defaults()
    except Exception as e:
        logger.error(f"Error resetting prompts: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error resetting prompts: {str(e)}")


@router.get("/{prompt_id}", response_model=PromptDefinition)
def get_prompt(prompt_id: str, registry: PromptRegistry = Depends(get_prompt_registry)):
    """Get a single prompt."""
    prompt = registry.get(prompt_id)
    if prompt is None:
        raise HTTPException(status_code=404, detail=f"Prompt with ID {prompt_id} not found")
    return prompt


@router.post("", response_model=List[PromptDefinition], status_code=201)
def add_prompt(definition: PromptCreate, registry: PromptRegistry = Depends(get_prompt_registry)):
    """Add a custom prompt."""
    try:
        return registry.add(definition)
    except PromptRegistryError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Error adding prompt: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error adding prompt: {str(e)}")


@router.patch("/{prompt_id}", response_model=List[PromptDefinition])
def update_prompt(
    prompt_id: str,
    fields: PromptUpdate,
    registry: PromptRegistry = Depends(get_prompt_registry),
):
    """Update fields of a prompt."""
    try:
        if registry.get(prompt_id) is None:
            raise HTTPException(status_code=404, detail=f"Prompt with ID {prompt_id} not found")
        return registry.update(prompt_id, fields)
    except HTTPException:
        raise
    except PromptRegistryError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating prompt: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error updating prompt: {str(e)}")


@router.post("/{prompt_id}/activate", response_model=List[PromptDefinition])
def activate_prompt(
    prompt_id: str,
    activation: PromptActivation = PromptActivation(),
    registry: PromptRegistry = Depends(get_prompt_registry),
):
    """Activate a prompt, deactivating the others in its category, or deactivate it."""
    try:
        if registry.get(prompt_id) is None:
            raise HTTPException(status_code=404, detail=f"Prompt with ID {prompt_id} not found")
        return registry.set_active(prompt_id, activation.active)
    except HTTPException:
        raise
    except PromptRegistryError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Error activating prompt: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error activating prompt: {str(e)}")


@router.delete("/{prompt_id}", response_model=List[PromptDefinition])
def delete_prompt(prompt_id: str, registry: PromptRegistry = Depends(get_prompt_registry)):
    """Delete a prompt."""
    try:
        if registry.get(prompt_id) is None:
            raise HTTPException(status_code=404, detail=f"Prompt with ID {prompt_id} not found")
        return registry.delete(prompt_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting prompt: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error deleting prompt: {str(e)}")
