from .analysis import AnalysisResult, CompletedOutcome, ConfidenceScore, DetectedObject, FailedOutcome, Outcome
from .auth import Token, UserCreate, UserLogin, UserResponse

__all__ = [
    "AnalysisResult",
    "CompletedOutcome",
    "ConfidenceScore",
    "DetectedObject",
    "FailedOutcome",
    "Outcome",
    "Token",
    "UserCreate",
    "UserLogin",
    "UserResponse",
]
