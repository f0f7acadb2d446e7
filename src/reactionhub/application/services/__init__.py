from .count_aggregator import CountAggregator
from .cross_entity_resolver import CrossEntityResolver
from .entity_registry import EntityRegistry
from .moderation_aggregator import ModerationAggregator
from .reaction_ledger import ReactionLedger
from .reaction_service import ReactionService, build_reaction_service
from .search_fanout_planner import SearchFanoutPlanner

__all__ = [
    "CountAggregator",
    "CrossEntityResolver",
    "EntityRegistry",
    "ModerationAggregator",
    "ReactionLedger",
    "ReactionService",
    "SearchFanoutPlanner",
    "build_reaction_service",
]
