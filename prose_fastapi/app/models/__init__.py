"""Initialize the models package."""

from .analyze_request import AnalysisRequest
from .entity import Entity
from .sentence import Sentence
from .status import ErrorResponse, HealthStatus
from .token import Token

__all__ = [
    "AnalysisRequest",
    "Entity",
    "ErrorResponse",
    "HealthStatus",
    "Sentence",
    "Token",
]
