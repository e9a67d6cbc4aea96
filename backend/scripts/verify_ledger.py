import asyncio
import sys
from pathlib import Path

"""
Replay every item's movement ledger and report drift.

For each item the movements are folded over its opening stock and compared
with the stored current stock; the previous/new snapshots of consecutive
movements must also chain. Exits with status 1 when any item is off.

    python scripts/verify_ledger.py [--team TEAM_ID]
"""

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

import argparse
import uuid

from sqlalchemy import select

from core.config import settings
from core.logging import configure_logging
from db import models  # noqa: F401
from db.database import async_session_maker
from db.inventory.item import InventoryItem
from services.ledger import load_item_movements, verify_chain


async def main(team_id=None) -> int:
    configure_logging(settings.log_level)

    drifted = 0
    checked = 0
    async with async_session_maker() as session:
        stmt = select(InventoryItem).order_by(InventoryItem.team_id, InventoryItem.created_at)
        if team_id is not None:
            stmt = stmt.where(InventoryItem.team_id == team_id)
        items = (await session.execute(stmt)).scalars().all()

        for item in items:
            movements = await load_item_movements(session, item.id)
            check = verify_chain(item.initial_stock, movements)
            checked += 1
            if check.chained and check.replayed_stock == item.current_stock:
                continue
            drifted += 1
            print(
                f"DRIFT item={item.id} name={item.name!r} current={item.current_stock} "
                f"replayed={check.replayed_stock} movements={check.movement_count} "
                f"broken_at={check.broken_at}"
            )

    print(f"Checked {checked} items, {drifted} with drift")
    return 1 if drifted else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Replay every item's movement ledger and report drift.")
    parser.add_argument("--team", type=uuid.UUID, default=None, help="only check this team")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.team)))
