"""Model representing a detected named entity."""

from pydantic import BaseModel, Field


class Entity(BaseModel):
    text: str = Field(..., description="The entity's verbatim surface form")
    label: str = Field(..., description="Entity type label, e.g. PERSON or ORG")
