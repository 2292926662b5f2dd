"""Model for a single document submitted for analysis."""

from pydantic import BaseModel, ConfigDict, Field


class AnalysisRequest(BaseModel):
    model_config = ConfigDict(strict=True)

    text: str = Field(..., description="The text to analyze", min_length=1)
