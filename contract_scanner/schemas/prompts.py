from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PromptCategory(str, Enum):
    """Categories a system prompt can belong to."""
    ANALYSIS = "analysis"
    NEGOTIATION = "negotiation"
    SUMMARY = "summary"
    CUSTOM = "custom"


class PromptDefinition(BaseModel):
    """A named system prompt managed by the prompt registry."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str = ""
    content: str
    category: PromptCategory
    is_active: bool = Field(default=False, alias="isActive")
    last_modified: datetime = Field(default_factory=utcnow, alias="lastModified")


class PromptCreate(BaseModel):
    """Payload for adding a prompt; id and timestamp are assigned on add."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    description: str = ""
    content: str = Field(min_length=1)
    category: PromptCategory = PromptCategory.CUSTOM
    is_active: bool = Field(default=False, alias="isActive")


class PromptUpdate(BaseModel):
    """Partial update for an existing prompt."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    name: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    category: Optional[PromptCategory] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")


class PromptActivation(BaseModel):
    """Body of the activate endpoint."""
    active: bool = True
