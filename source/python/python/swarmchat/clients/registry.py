"""
Lazily created, deduplicated StreamingClients.

An agent connects the first time something asks for it. Concurrent
ensure() calls for the same name share one pending connection attempt, so an
agent's endpoint is probed once no matter how many branches reach it at the
same moment.
"""

import asyncio
from typing import Callable, Dict, List, Optional

import httpx

from ..agents.identity import AgentIdentity
from ..config import SwarmConfig, resolve_token
from ..errors import ConnectError
from ..events import ChatEvent, Connected, Connecting, ConnectFailed
from ..logs import get_logger, InfoContext
from .http import create_http_client
from .streaming import StreamingClient


class ConnectionRegistry(InfoContext):
  """
  Owns the StreamingClient of every connected agent.

  Identities are looked up in the config at connect time, so agents spawned
  during a turn can be connected as soon as they exist. A failed attempt
  leaves the agent unconnected; the next ensure() tries again.
  """

  def __init__(
    self,
    config: SwarmConfig,
    emit: Optional[Callable[[ChatEvent], None]] = None,
    http_client: Optional[httpx.AsyncClient] = None,
  ):
    self.logger = get_logger("registry")
    self.config = config
    self._emit = emit or (lambda event: None)
    self._owns_http = http_client is None
    self._http = http_client or create_http_client(read_timeout=config.timeout)
    self._clients: Dict[str, StreamingClient] = {}
    self._pending: Dict[str, asyncio.Task] = {}
    self._restored: Dict[str, List[dict]] = {}

  def get(self, name: str) -> Optional[StreamingClient]:
    """The connected client for an agent, without connecting."""
    client = self._clients.get(name)
    if client is not None and client.is_connected:
      return client
    return None

  async def ensure(self, name: str) -> Optional[StreamingClient]:
    """
    Return a connected client for the agent, connecting if needed.

    :param name: Agent name as configured
    :return: The client, or None if the agent is unknown or unreachable
    """
    existing = self.get(name)
    if existing is not None:
      return existing

    pending = self._pending.get(name)
    if pending is not None:
      self.logger.debug(f"Joining pending connection attempt for '{name}'")
      return await asyncio.shield(pending)

    identity = self.config.agents.get(name)
    if identity is None:
      self.logger.warning(f"Cannot connect to unknown agent '{name}'")
      return None

    task = asyncio.ensure_future(self._connect(identity))
    self._pending[name] = task
    return await asyncio.shield(task)

  async def _connect(self, identity: AgentIdentity) -> Optional[StreamingClient]:
    name = identity.name
    client = StreamingClient(
      identity,
      self._http,
      token=resolve_token(identity),
      timeout=self.config.timeout,
      connect_timeout=self.config.connect_timeout,
    )
    self._emit(Connecting(name))

    try:
      with self.info(f"Connecting to '{name}' at {identity.endpoint}", f"Connected to '{name}'"):
        await client.connect()
    except ConnectError as e:
      self.logger.warning(str(e))
      self._emit(ConnectFailed(name, str(e)))
      return None
    finally:
      self._pending.pop(name, None)

    if name in self._restored:
      client.restore(self._restored.pop(name))
    self._clients[name] = client
    self._emit(Connected(name))
    return client

  def status(self) -> Dict[str, bool]:
    """Connected flag for every configured agent."""
    return {name: self.get(name) is not None for name in self.config.agents}

  def histories(self) -> Dict[str, List[dict]]:
    """Conversation history of every connected agent, plus restored ones not yet connected."""
    result = {name: list(entries) for name, entries in self._restored.items()}
    for name, client in self._clients.items():
      result[name] = client.history
    return result

  def restore(self, histories: Dict[str, List[dict]]) -> None:
    """
    Replace agent histories wholesale.

    Agents that are not connected yet get their history when they connect.
    """
    for name, entries in histories.items():
      client = self._clients.get(name)
      if client is not None:
        client.restore(entries)
      else:
        self._restored[name] = list(entries)

  async def aclose(self) -> None:
    for task in list(self._pending.values()):
      task.cancel()
    for client in self._clients.values():
      client.close()
    self._clients.clear()
    if self._owns_http:
      await self._http.aclose()
