"""Mock order data for local runs of the CLI."""

from decimal import Decimal
from pathlib import Path

from dispute_engine.data.storage import Storage
from dispute_engine.models import OrderInfo


SAMPLE_ORDERS = [
    OrderInfo(order_id="order_001", order_no="ORD-20250101-0001", buyer_id="user_001", seller_id="user_002", amount=Decimal("120.00")),
    OrderInfo(order_id="order_002", order_no="ORD-20250103-0002", buyer_id="user_001", seller_id="user_003", amount=Decimal("45.50")),
    OrderInfo(order_id="order_003", order_no="ORD-20250104-0003", buyer_id="user_002", seller_id="user_001", amount=Decimal("300.00")),
    OrderInfo(order_id="order_004", order_no="ORD-20250110-0004", buyer_id="user_003", seller_id="user_002", amount=Decimal("18.99")),
    OrderInfo(order_id="order_005", order_no="ORD-20250112-0005", buyer_id="user_004", seller_id="user_001", amount=Decimal("75.00")),
    OrderInfo(order_id="order_006", order_no="ORD-20250115-0006", buyer_id="user_002", seller_id="user_004", amount=Decimal("9.90")),
]


def seed_data(data_dir: Path | None = None) -> Storage:
    """Write the sample orders into the store."""
    storage = Storage(data_dir)
    with storage.transaction() as tx:
        for order in SAMPLE_ORDERS:
            tx.save_order(order)
    return storage


def reset_data(data_dir: Path | None = None) -> Storage:
    """Drop every collection, then reseed the sample orders."""
    Storage(data_dir).clear()
    return seed_data(data_dir)
