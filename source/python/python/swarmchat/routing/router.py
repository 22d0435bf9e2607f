"""
Recursive mention routing.

A turn starts with the coordinator answering the user. Every reply is scanned
for @mentions; the mentioned agents are asked concurrently, each in its own
branch, and once all of them have answered their replies are folded into one
follow-up message for the agent that mentioned them. That agent's synthesized
reply is scanned again, so a branch keeps going until a reply carries no
actionable mention or a safety valve trips:

- depth: a branch at `max_mention_depth` hops from the coordinator does not
  dispatch. Synthesis rounds count as hops.
- budget: the whole turn dispatches at most `max_total_mentions` branches.
  A round whose mentions don't all fit is not dispatched.

Both valves are soft stops. The branch keeps its last reply as its result.
"""

import asyncio
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Optional

import httpx

from ..agents.factory import AgentFactory
from ..agents.prompts import build_swarm_context
from ..clients import ConnectionRegistry, StreamingClient
from ..config import SwarmConfig, save_config
from ..errors import ConnectError, RoutingError
from ..events import (
  AgentError,
  AgentResult,
  ChatEvent,
  Delta,
  Done,
  End,
  EventBus,
  ParallelEnd,
  ParallelProgress,
  ParallelStart,
  SynthesisStart,
  Thinking,
  ThreadEnd,
  ThreadStart,
  ToolEnd,
  ToolStart,
  UserMessage,
)
from ..logs import get_logger
from .aggregator import AgentStatus, ResponseAggregator
from .context import MentionBudget, RoutingContext
from .mentions import Mention, MentionExtractor

NO_RESPONSE = "No response"


@dataclass
class TurnResult:
  text: Optional[str]
  dispatches: int = 0
  max_depth_reached: int = 0


def fold_results(results: Iterable[AgentResult]) -> Optional[str]:
  """
  The follow-up message carrying children's replies back to their parent.

  Children that produced no text are left out. None when nothing is left.
  """
  lines = [f"{result.agent} replied: {result.content}" for result in results if result.content]
  if not lines:
    return None
  return "\n\n".join(lines)


class Router:
  """
  Runs turns against a swarm of agents.

  The router owns nothing global: the registry, event bus and spawn factory
  are passed in or created per router, so several swarms can run side by
  side in one process.
  """

  def __init__(
    self,
    config: SwarmConfig,
    bus: Optional[EventBus] = None,
    registry: Optional[ConnectionRegistry] = None,
    factory: Optional[AgentFactory] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    persist: Optional[Callable[[SwarmConfig], None]] = save_config,
  ):
    self.logger = get_logger("router")
    self.config = config
    self.bus = bus or EventBus()
    self.registry = registry or ConnectionRegistry(config, emit=self.bus.emit, http_client=http_client)
    self.factory = factory or AgentFactory(config, emit=self.bus.emit, persist=persist)
    self._extractor: Optional[MentionExtractor] = None
    self._extractor_key = None

  def emit(self, event: ChatEvent) -> None:
    self.bus.emit(event)

  @property
  def extractor(self) -> MentionExtractor:
    # rebuilt when agents are spawned or the vocabulary mode changes
    key = (frozenset(self.config.agents), self.config.open_vocabulary)
    if self._extractor is None or key != self._extractor_key:
      self._extractor = MentionExtractor(self.config.agents, open_vocabulary=self.config.open_vocabulary)
      self._extractor_key = key
    return self._extractor

  async def connect_master(self) -> StreamingClient:
    """
    Connect the coordinator ahead of the first turn.

    :raises ConnectError: If the coordinator is unreachable
    """
    client = await self.registry.ensure(self.config.master)
    if client is None:
      raise ConnectError(self.config.master, "coordinator is unreachable")
    return client

  async def turn(self, text: str) -> TurnResult:
    """
    Run one user turn to completion.

    Always emits exactly one `end` event, whether the turn succeeded or not.
    """
    master = self.config.master
    budget = MentionBudget(self.config.max_total_mentions)
    self.emit(UserMessage(text))

    try:
      client = await self.registry.ensure(master)
      if client is None:
        self.emit(AgentError(master, f"Failed to connect to {master}"))
        return TurnResult(None)

      result = await self._converse(master, client, text, RoutingContext(0, budget), None)
      self.logger.info(f"Turn finished: {budget.used} dispatches, deepest branch at depth {budget.deepest}")
      return TurnResult(result.content, budget.used, budget.deepest)
    finally:
      self.emit(End())

  async def _converse(
    self,
    agent: str,
    client: StreamingClient,
    message: str,
    ctx: RoutingContext,
    aggregator: Optional[ResponseAggregator],
  ) -> AgentResult:
    """Ask `agent`, then keep dispatching and synthesizing until its reply stops mentioning anyone."""
    depth = ctx.depth
    reply = await self._ask(agent, client, message, depth, aggregator)
    if reply is None:
      return AgentResult(agent, error=NO_RESPONSE)

    excluded = {agent} | ctx.visited
    while True:
      mentions = self.extractor.extract(reply, exclude=excluded)
      if not mentions:
        break

      if depth >= self.config.max_mention_depth:
        self.logger.info(
          f"Safety stop: '{agent}' is at depth {depth}, not dispatching {[m.target for m in mentions]}"
        )
        break

      # reserved before resolving so a refused round spawns nobody
      if not ctx.budget.try_acquire(len(mentions)):
        self.logger.info(
          f"Safety stop: mention budget exhausted ({ctx.budget.used}/{ctx.budget.cap}), "
          f"'{agent}' keeps its reply"
        )
        break

      resolved = self._resolve(mentions, reply)
      ctx.budget.release(len(mentions) - len(resolved))
      mentions = resolved
      if not mentions:
        break

      results = await self._fan_out(agent, mentions, replace(ctx, depth=depth))
      follow_up = fold_results(results)
      if follow_up is None:
        self.logger.debug(f"No child of '{agent}' produced text, skipping synthesis")
        break

      self.emit(SynthesisStart(agent))
      depth += 1
      synthesized = await self._ask(agent, client, follow_up, depth, aggregator)
      if synthesized is None:
        break
      reply = synthesized

    return AgentResult(agent, content=reply)

  def _resolve(self, mentions: List[Mention], reply: str) -> List[Mention]:
    resolved = []
    for mention in mentions:
      try:
        target = self._identity_name(mention.target)
      except RoutingError as e:
        self.logger.warning(f"Dropping mention: {e}")
        continue
      resolved.append(Mention(target, mention.message or reply))
    return resolved

  def _identity_name(self, target: str) -> str:
    if target in self.config.agents:
      return target
    if self.config.open_vocabulary:
      return self.factory.spawn(target).name
    raise RoutingError(target)

  async def _fan_out(self, parent: str, mentions: List[Mention], ctx: RoutingContext) -> List[AgentResult]:
    targets = [mention.target for mention in mentions]
    self.logger.info(f"'{parent}' at depth {ctx.depth} dispatches to {targets}")

    aggregator = ResponseAggregator()
    for target in targets:
      aggregator.create(target)
    self.emit(ParallelStart(targets))

    async with asyncio.TaskGroup() as group:
      for mention in mentions:
        group.create_task(self._branch(parent, mention, ctx.child(parent), aggregator))

    results = aggregator.results()
    self.emit(ParallelEnd(results))
    return results

  async def _branch(
    self,
    parent: str,
    mention: Mention,
    ctx: RoutingContext,
    aggregator: ResponseAggregator,
  ) -> None:
    target = mention.target
    self.emit(ThreadStart(parent, target, mention.message, ctx.depth))
    ctx.budget.record_depth(ctx.depth)

    try:
      client = await self.registry.ensure(target)
      if client is None:
        error = f"Failed to connect to {target}"
        self.emit(AgentError(target, error))
        aggregator.fail(target, error)
        self.emit(ParallelProgress(target, AgentStatus.ERROR.value))
        return

      message = mention.message
      if self.config.swarm_context:
        header = build_swarm_context(parent, target, ctx.depth, self.config.agents, self.config.master)
        message = f"{header}\n{message}"

      result = await self._converse(target, client, message, ctx, aggregator)
      if result.content is not None:
        aggregator.complete(target, result.content)
        self.emit(ParallelProgress(target, AgentStatus.DONE.value))
      else:
        aggregator.fail(target, result.error or NO_RESPONSE)
        self.emit(ParallelProgress(target, AgentStatus.ERROR.value))
    finally:
      self.emit(ThreadEnd(parent, target, ctx.depth))

  async def _ask(
    self,
    agent: str,
    client: StreamingClient,
    message: str,
    depth: int,
    aggregator: Optional[ResponseAggregator],
  ) -> Optional[str]:
    """One send() to one agent, with its events relayed to the bus and the cohort."""
    self.emit(Thinking(agent))
    if aggregator is not None:
      aggregator.restart(agent)

    failed = False

    def forward(event: ChatEvent) -> None:
      nonlocal failed
      if isinstance(event, AgentError):
        failed = True
      if aggregator is not None:
        self._track(aggregator, agent, event)
      self.emit(event)

    text = await client.send(message, on_event=forward)
    if text is None:
      if not failed:
        self.emit(AgentError(agent, NO_RESPONSE))
      return None

    self.emit(Done(agent, text, depth))
    return text

  def _track(self, aggregator: ResponseAggregator, agent: str, event: ChatEvent) -> None:
    before = aggregator.status(agent)
    if isinstance(event, Delta):
      aggregator.append_delta(agent, event.content)
    elif isinstance(event, ToolStart):
      aggregator.add_tool_use(agent, event.tool_name)
    elif isinstance(event, ToolEnd):
      aggregator.clear_tool_use(agent)
    else:
      return

    after = aggregator.status(agent)
    if after != before:
      buffer = aggregator.get(agent)
      self.emit(ParallelProgress(agent, after.value, buffer.tool_name if buffer else None))

  def status(self) -> Dict[str, bool]:
    return self.registry.status()

  async def aclose(self) -> None:
    await self.factory.drain()
    await self.registry.aclose()
