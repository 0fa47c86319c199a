"""Protean Engine runner for the activity domain.

Starts the Engine workers that process events asynchronously when the
domain runs with the production overlay:
- OutboxProcessor: polls the outbox table, publishes events to Redis Streams
- StreamSubscriptions: reads Redis Streams, invokes the delivery handler
  and the delivery log projector

Usage:
    python src/server.py
"""

import argparse
import asyncio

from protean.server.engine import Engine


def _get_domain():
    """Import and initialize the activity domain."""
    from activity.domain import activity

    activity.init()
    return activity


async def run():
    engine = Engine(_get_domain())
    await engine.run()


def main():
    parser = argparse.ArgumentParser(description="Activity notification Engine runner")
    parser.parse_args()

    asyncio.run(run())


if __name__ == "__main__":
    main()
