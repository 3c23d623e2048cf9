"""
Run the Shopify full order sync from the command line (no HTTP server needed).

Usage: python force_sync.py [customers.csv] [batch_size]
"""
import asyncio
import logging
import sys

from app.config import settings
from app.database import Database
from app.services.order_batch import load_customer_export, sync_customer_orders
from app.services.shopify_client import ShopifyClient


async def force_sync(path=None, batch_size=None):
    """Sync every customer's orders and print a summary"""
    print("=== Shopify Full Sync ===")
    database = Database.from_settings(settings)
    database.create_all()
    client = ShopifyClient.from_settings(settings)
    db = database.session()
    try:
        customers = load_customer_export(path)
        print(f"Loaded {len(customers)} customer(s)")
        result = await sync_customer_orders(db, client, customers, batch_size=batch_size)
        print(f"✅ {result['message']}")
        print(f"   Orders saved: {len(result['results'])}, skipped: {result['skipped']}, failed: {len(result['errors'])}")
        for error in result["errors"]:
            print(f"   ❌ order={error['orderId']} customer={error['customerName']}: {error['reason']}")
    finally:
        db.close()
        await client.aclose()
        database.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    csv_path = sys.argv[1] if len(sys.argv) > 1 else None
    size = int(sys.argv[2]) if len(sys.argv) > 2 else None
    asyncio.run(force_sync(csv_path, size))
