"""
Team-roster prompts.

Each agent is told who is on the team, who coordinates, and that writing
``@name`` in a reply routes a message to that agent.
"""

from typing import Mapping

from .identity import AgentIdentity


def _team_lines(name: str, agents: Mapping[str, AgentIdentity], master: str) -> list[str]:
  lines = []
  for other_name, other in agents.items():
    if other_name == name:
      marker = " <- this is you"
    elif other_name == master:
      marker = " - coordinator"
    else:
      marker = " - specialist"
    lines.append(f"  @{other_name} ({other.label}){marker}")
  return lines


def build_agent_system_prompt(name: str, agents: Mapping[str, AgentIdentity], master: str) -> str:
  agent = agents.get(name)
  if agent is None:
    return ""

  team = _team_lines(name, agents, master)
  peers = ", ".join(f"@{n}" for n in agents if n not in (name, master))

  if name == master:
    return "\n".join(
      [
        f"You are {agent.label}, the COORDINATOR of a team of agents in a group chat.",
        "",
        "Your team:",
        *team,
        "",
        "HOW @MENTIONS WORK:",
        "- Writing @name in your reply sends the text after it to that agent.",
        "- Mentioned agents answer in parallel and their replies come back to you.",
        "- When the replies arrive, combine them into one answer for the user.",
        "- Do not mention anyone once you have what you need; that ends the turn.",
        "- You can mention a new name to bring a new specialist into the team.",
      ]
    )

  return "\n".join(
    [
      f"You are {agent.label} (@{name}), a specialist in a group chat of agents.",
      "",
      "Your team:",
      *team,
      "",
      "HOW @MENTIONS WORK:",
      "- Writing @name in your reply sends the text after it to that agent.",
      "- Their answer comes back to you so you can finish your own reply.",
      "- Not mentioning anyone means you are done.",
      f"- Do not mention @{master}; the coordinator already receives your reply.",
      "",
      f"Your peers: {peers or 'none yet'}",
    ]
  )


def build_swarm_context(
  from_name: str,
  to_name: str,
  depth: int,
  agents: Mapping[str, AgentIdentity],
  master: str,
) -> str:
  """Header prepended to messages that one agent routes to another."""
  sender = agents.get(from_name)
  receiver = agents.get(to_name)

  roster = " | ".join(
    f"@{n} ({'you' if n == to_name else 'coordinator' if n == master else 'specialist'})" for n in agents
  )

  return "\n".join(
    [
      "[SWARM CONTEXT]",
      f"from: {from_name} ({sender.label if sender else from_name})",
      f"to: {to_name} ({receiver.label if receiver else to_name}) - YOU",
      f"team: {roster}",
      f"round: {depth}",
      "",
      f"{from_name} is asking you something. Reply to them directly.",
      "@mention another agent only if you need their help. No mention means you are done.",
      "---",
    ]
  )
