#!/usr/bin/env python3
"""List pending orders stored for each chat.

Usage:
    python scripts/list_orders.py [--chat CHAT_ID] [--json]

Options:
    --chat  Only list orders of one chat (default: all chats)
    --json  Print raw stored records instead of a table
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dotenv import load_dotenv

from swapchat.orders.database import close_db, init_db
from swapchat.orders.store import OrderStore, SqlKeyValueStore, list_namespaces

load_dotenv()

logging.basicConfig(level=logging.WARNING, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


async def main(chat: Optional[str] = None, raw: bool = False) -> int:
    database = await init_db()
    total = 0

    try:
        namespaces = [chat] if chat else await list_namespaces(database)
        if not namespaces:
            print("No pending orders.")
            return 0

        for namespace in namespaces:
            store = OrderStore(SqlKeyValueStore(database, namespace))
            if raw:
                keys = await store.keys()
                print(f"\nChat {namespace}: {len(keys)} record(s)")
                print("-" * 72)
                for key in keys:
                    total += 1
                    print(await store.get_raw(key))
                continue

            # unreadable records are logged and left out
            orders = await store.list_orders()
            print(f"\nChat {namespace}: {len(orders)} order(s)")
            print("-" * 72)
            for order in orders:
                total += 1
                print(
                    f"  {order.order_id:<24} {order.status:<10} "
                    f"{order.amount} {order.from_token} -> {order.to_token}  tx={order.tx_hash[:16]}"
                )
    finally:
        await close_db()

    print(f"\nTotal: {total}")
    return total


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="List pending swap orders")
    parser.add_argument("--chat", help="Only list orders of this chat id")
    parser.add_argument("--json", action="store_true", help="Print raw stored records")
    args = parser.parse_args()

    asyncio.run(main(chat=args.chat, raw=args.json))
