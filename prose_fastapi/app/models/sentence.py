"""Model representing a segmented sentence."""

from pydantic import BaseModel, Field


class Sentence(BaseModel):
    text: str = Field(..., description="The sentence's verbatim text span")
