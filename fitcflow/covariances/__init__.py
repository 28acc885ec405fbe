from . import kufs, kuus
from .dispatch import Kuf, Kuu

__all__ = [
    "Kuf",
    "Kuu",
    "dispatch",
    "kufs",
    "kuus",
]
