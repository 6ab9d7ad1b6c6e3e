"""CLI entry -- python -m shopfloor.core <command>

Commands:
  rebuild-projections     rebuild tasks from the events table
  seed-downtime-reasons   insert the default downtime cause taxonomy
"""

import asyncio
import sys

from .config import get_db_path

_USAGE = """usage: python -m shopfloor.core <command>
commands:
  rebuild-projections     rebuild tasks from the events table
  seed-downtime-reasons   insert the default downtime cause taxonomy"""


def main() -> None:
    """CLI main entry"""
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    command = sys.argv[1]

    if command == "rebuild-projections":
        asyncio.run(rebuild_projections())
    elif command == "seed-downtime-reasons":
        asyncio.run(seed_downtime_reasons())
    else:
        print(f"unknown command: {command}")
        print(_USAGE)
        sys.exit(1)


async def rebuild_projections() -> None:
    """Run the projection rebuild"""
    from .projection import rebuild_all
    from .store import create_store_group

    db_path = get_db_path()
    print(f"database: {db_path}")
    print("rebuilding projections...")

    store_group = await create_store_group(db_path)

    try:
        event_count = await rebuild_all(
            store_group.conn,
            store_group.event_store,
            store_group.task_store,
        )
        print(f"done, {event_count} events replayed")
    finally:
        await store_group.conn.close()


async def seed_downtime_reasons() -> None:
    """Seed the default cause taxonomy"""
    from .store import create_store_group

    db_path = get_db_path()
    store_group = await create_store_group(db_path)

    try:
        inserted = await store_group.downtime_store.seed_defaults()
        print(f"{inserted} downtime reasons inserted into {db_path}")
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    main()
