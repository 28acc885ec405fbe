from .base import InferenceMethod, InferenceState, InferenceType
from .fitc import (
    CovarianceBlocks,
    FactorizationState,
    FITCInferenceMethod,
    PosteriorState,
    inducingpoint_wrapper,
)

__all__ = [
    "CovarianceBlocks",
    "FITCInferenceMethod",
    "FactorizationState",
    "InferenceMethod",
    "InferenceState",
    "InferenceType",
    "PosteriorState",
    "inducingpoint_wrapper",
]
