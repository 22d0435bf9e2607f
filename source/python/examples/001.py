import asyncio
import sys

from swarmchat import Router, SessionRecorder, load_config


def show(event):
  if event.type == "delta":
    print(event.content, end="", flush=True)
  elif event.type == "thread_start":
    print(f"\n[{event.from_agent} -> {event.to_agent}] ", end="")
  elif event.type == "done":
    print()
  elif event.type in ("error", "connect_error"):
    print(f"\n! {event.agent}: {event.error}")


async def main(config_path, question):
  config = load_config(config_path)
  router = Router(config)
  recorder = SessionRecorder(config.master, list(config.agents), histories=router.registry.histories)
  router.bus.subscribe(show)
  router.bus.subscribe(recorder)

  await router.connect_master()
  result = await router.turn(question)
  print(f"\n{result.dispatches} dispatches, session {recorder.id}")
  await router.aclose()


asyncio.run(main(sys.argv[1], " ".join(sys.argv[2:]) or "What should we build today?"))
