"""Model representing a single analyzed token."""

from pydantic import BaseModel, Field


class Token(BaseModel):
    tag: str = Field(..., description="Part-of-speech tag")
    text: str = Field(..., description="The token's verbatim surface form")
    label: str = Field(..., description="IOB label (B-<TYPE>, I-<TYPE>, O, or empty)")
