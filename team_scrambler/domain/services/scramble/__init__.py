"""Building blocks of the scramble planner, composed by ScramblePlanService."""

from .candidate_pool import CandidatePoolMixin
from .cap_enforcement import CapEnforcementMixin
from .swap_search import SwapSearchMixin, SwapSearchResult, round_half_up

__all__ = [
    "CandidatePoolMixin",
    "CapEnforcementMixin",
    "SwapSearchMixin",
    "SwapSearchResult",
    "round_half_up",
]
