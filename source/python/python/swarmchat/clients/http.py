"""
Shared httpx client for agent endpoints.

One AsyncClient (one connection pool) is shared by every StreamingClient a
registry creates, instead of one pool per agent.
"""

import httpx

DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_READ_TIMEOUT = 120.0
DEFAULT_WRITE_TIMEOUT = 30.0
DEFAULT_POOL_TIMEOUT = 10.0

# Connection pool limits to prevent unbounded growth
MAX_CONNECTIONS = 100
MAX_KEEPALIVE_CONNECTIONS = 20


def create_timeout(read_timeout: float = DEFAULT_READ_TIMEOUT) -> httpx.Timeout:
  """Create httpx timeout configuration."""
  return httpx.Timeout(
    connect=DEFAULT_CONNECT_TIMEOUT,
    read=read_timeout,
    write=DEFAULT_WRITE_TIMEOUT,
    pool=DEFAULT_POOL_TIMEOUT,
  )


def create_limits() -> httpx.Limits:
  """Create httpx connection pool limits."""
  return httpx.Limits(
    max_connections=MAX_CONNECTIONS,
    max_keepalive_connections=MAX_KEEPALIVE_CONNECTIONS,
  )


def create_http_client(read_timeout: float = DEFAULT_READ_TIMEOUT, **kwargs) -> httpx.AsyncClient:
  """
  Create the AsyncClient used for probes and streamed completions.

  Extra keyword arguments go straight to httpx.AsyncClient (tests pass a
  MockTransport through `transport=`).
  """
  kwargs.setdefault("timeout", create_timeout(read_timeout))
  kwargs.setdefault("limits", create_limits())
  return httpx.AsyncClient(**kwargs)
