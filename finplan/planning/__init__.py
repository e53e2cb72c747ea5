"""
Planning Components Package

The five planning components. Each is usable on its own; PlanningEngine
in finplan.engine wires them together.
"""

from finplan.planning.goals import GoalManager, make_slug
from finplan.planning.auto_goals import AutoGoalEngine, GoalProposal
from finplan.planning.allocator import FundingAllocator
from finplan.planning.portfolio import (
    InsufficientDataError,
    PortfolioAnalyzer,
    asset_class_split,
    glide_path_target,
)
from finplan.planning.recommendations import (
    RecommendationContext,
    RecommendationGenerator,
)

__all__ = [
    "AutoGoalEngine",
    "FundingAllocator",
    "GoalManager",
    "GoalProposal",
    "InsufficientDataError",
    "PortfolioAnalyzer",
    "RecommendationContext",
    "RecommendationGenerator",
    "asset_class_split",
    "glide_path_target",
    "make_slug",
]
