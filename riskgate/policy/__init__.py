# Decision Policy Module
from .engine import DecisionPolicy, merge_baseline

__all__ = [
    "DecisionPolicy",
    "merge_baseline",
]
