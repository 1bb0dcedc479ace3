from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Product(BaseModel):
    """Catalog record; unknown fields are kept so the raw product can be forwarded."""
    model_config = ConfigDict(extra="allow", frozen=True)

    id: Optional[str] = None
    name: str = ""
    brand: str = ""
    category: str = ""
    description: Optional[str] = None
    image: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> Optional[str]:
        # Numeric and string ids for the same product must collide.
        if value is None:
            return None
        return str(value)

    @field_validator("name", "brand", "category", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    def raw(self) -> Dict[str, Any]:
        """Return the product as it appeared in the catalog document."""
        return self.model_dump(exclude_unset=True)


class ConversationMessage(BaseModel):
    """Persisted chat entry."""
    role: Literal["user", "assistant"]
    text: str


class FilterCriteria(BaseModel):
    """Transient category + free-text filter for one render."""
    category: str = ""
    query: str = ""


class FilterRequest(BaseModel):
    """Request payload for the filter API."""
    category: str = ""
    query: str = ""


class ChatRequest(BaseModel):
    """Request payload for follow-up questions."""
    message: str


class ViewSnapshot(BaseModel):
    """Rendered fragments plus the raw state returned after every action."""
    catalog_html: str
    selected_html: str
    chat_html: str
    selected_ids: List[str]
    messages: List[ConversationMessage]
    categories: List[str] = Field(default_factory=list)
