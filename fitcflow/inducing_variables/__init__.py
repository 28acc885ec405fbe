from .inducing_variables import InducingPoints, InducingVariables

__all__ = [
    "InducingPoints",
    "InducingVariables",
]
