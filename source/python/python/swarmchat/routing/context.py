from dataclasses import dataclass, field
from typing import Optional, Set


class MentionBudget:
  """
  Per-turn count of dispatched mentions, shared by every branch of the turn.

  try_acquire() is a plain read-modify-write with no await in between, which
  is atomic under the single event loop the router runs on.
  """

  def __init__(self, cap: Optional[int] = None):
    self.cap = cap
    self.used = 0
    self.deepest = 0

  @property
  def remaining(self) -> Optional[int]:
    if self.cap is None:
      return None
    return max(self.cap - self.used, 0)

  def try_acquire(self, count: int) -> bool:
    """Reserve `count` dispatches, all or nothing."""
    if self.cap is not None and self.used + count > self.cap:
      return False
    self.used += count
    return True

  def release(self, count: int) -> None:
    """Give back reserved dispatches that were never made."""
    self.used -= count

  def record_depth(self, depth: int) -> None:
    self.deepest = max(self.deepest, depth)


@dataclass
class RoutingContext:
  """
  State threaded through one branch.

  `visited` belongs to this branch alone: children get their own copy, so an
  agent can't be re-entered from its own lineage but can appear again in a
  sibling branch. `budget` is the one object shared across the whole turn.
  """

  depth: int
  budget: MentionBudget
  visited: Set[str] = field(default_factory=set)
  parent_agent: Optional[str] = None

  def child(self, parent: str) -> "RoutingContext":
    return RoutingContext(
      depth=self.depth + 1,
      budget=self.budget,
      visited=set(self.visited) | {parent},
      parent_agent=parent,
    )
