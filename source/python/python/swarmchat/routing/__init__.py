from .aggregator import AgentBuffer, AgentStatus, ResponseAggregator
from .context import MentionBudget, RoutingContext
from .mentions import Mention, MentionExtractor
from .router import Router, TurnResult, fold_results

__all__ = [
  "AgentBuffer",
  "AgentStatus",
  "ResponseAggregator",
  "MentionBudget",
  "RoutingContext",
  "Mention",
  "MentionExtractor",
  "Router",
  "TurnResult",
  "fold_results",
]
