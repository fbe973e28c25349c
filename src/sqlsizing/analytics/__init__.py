"""
Recommendation and reporting analytics
"""

from .recommendation_engine import recommend, legal_capacities, minimum_capacity
from .report_assembler import build_row, apply_scale_up_policy, summarize

__all__ = [
    "recommend",
    "legal_capacities",
    "minimum_capacity",
    "build_row",
    "apply_scale_up_policy",
    "summarize"
]
