"""
Provisioning of agents that are mentioned but not configured.

A spawned agent borrows the coordinator's endpoint, model and token, gets the
next color of a rotating palette and a team-roster system prompt. The grown
config is persisted in the background; a failed save is logged and ignored.
"""

import asyncio
import inspect
from dataclasses import replace
from typing import Callable, Optional, Set

from ..config import SwarmConfig, save_config
from ..events import AgentSpawned, ChatEvent
from ..logs import get_logger
from .identity import AgentIdentity
from .prompts import build_agent_system_prompt

SPAWN_COLORS = ["green", "amber", "cyan", "purple", "red", "blue", "pink"]

logger = get_logger("factory")


def spawn_label(name: str) -> str:
  return name[:1].upper() + name[1:]


class AgentFactory:
  def __init__(
    self,
    config: SwarmConfig,
    emit: Optional[Callable[[ChatEvent], None]] = None,
    persist: Optional[Callable[[SwarmConfig], None]] = save_config,
  ):
    self.config = config
    self._emit = emit or (lambda event: None)
    self._persist = persist
    self._color_index = 0
    self._tasks: Set[asyncio.Task] = set()
    self._persist_lock: Optional[asyncio.Lock] = None

  def _next_color(self) -> str:
    color = SPAWN_COLORS[self._color_index % len(SPAWN_COLORS)]
    self._color_index += 1
    return color

  def spawn(self, name: str) -> AgentIdentity:
    """
    Create and register an identity for `name`.

    Returns the existing identity when the name is already known, so
    concurrent requests for one new name produce a single agent.
    """
    if existing := self.config.agents.get(name):
      return existing

    coordinator = self.config.coordinator
    identity = AgentIdentity(
      name=name,
      label=spawn_label(name),
      endpoint=coordinator.endpoint,
      color=self._next_color(),
      model=coordinator.model,
      auth_token=coordinator.auth_token,
    )
    # registered first so the prompt's roster includes the newcomer
    self.config.agents[name] = identity
    identity = replace(
      identity,
      system_prompt=build_agent_system_prompt(name, self.config.agents, self.config.master),
      prompt_generated=True,
    )
    self.config.agents[name] = identity

    logger.info(f"Spawned agent '{name}' ({identity.label}, {identity.color})")
    self._emit(AgentSpawned(name, identity.label, identity.color))
    self._schedule_persist()
    return identity

  def _schedule_persist(self) -> None:
    if self._persist is None:
      return
    try:
      loop = asyncio.get_running_loop()
    except RuntimeError:
      # called outside of an event loop, save inline
      try:
        result = self._persist(self.config)
        if inspect.isawaitable(result):
          asyncio.run(result)
      except Exception:
        logger.exception("Failed to persist spawned agents")
      return

    task = loop.create_task(self._save())
    self._tasks.add(task)
    task.add_done_callback(self._tasks.discard)

  async def _save(self) -> None:
    if self._persist_lock is None:
      self._persist_lock = asyncio.Lock()
    async with self._persist_lock:
      # spawns on the loop keep growing the live agent map while a thread saves
      snapshot = replace(self.config, agents=dict(self.config.agents))
      try:
        if inspect.iscoroutinefunction(self._persist):
          await self._persist(snapshot)
        else:
          await asyncio.to_thread(self._persist, snapshot)
      except Exception:
        logger.exception("Failed to persist spawned agents")

  async def drain(self) -> None:
    """Wait for background saves still in flight."""
    if self._tasks:
      await asyncio.gather(*list(self._tasks))
