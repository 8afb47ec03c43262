"""Demo data for a fresh OrderDesk database."""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.catalog.service import CatalogService
from orderdesk.orders.models import OrderModel
from orderdesk.orders.service import OrderService
from orderdesk.orders.transitions import OrderStatus

logger = logging.getLogger(__name__)

CUSTOMERS = [
    {"name": "Alice Johnson", "email": "alice@example.com", "phone": "555-0101"},
    {"name": "Bob Smith", "email": "bob@example.com", "phone": "555-0102"},
    {"name": "Carol Williams", "email": "carol@example.com", "phone": "555-0103"},
    {"name": "David Brown", "email": "david@example.com", "phone": "555-0104"},
    {"name": "Eve Davis", "email": "eve@example.com", "phone": "555-0105"},
]

PRODUCTS = [
    {"name": "Wireless Mouse", "sku": "WM-001", "price": "29.99", "stock_quantity": 150},
    {"name": "Mechanical Keyboard", "sku": "MK-001", "price": "89.99", "stock_quantity": 75},
    {"name": "USB-C Hub", "sku": "UH-001", "price": "49.99", "stock_quantity": 200},
    {"name": '27" Monitor', "sku": "MN-001", "price": "349.99", "stock_quantity": 30},
    {"name": "Webcam HD", "sku": "WC-001", "price": "69.99", "stock_quantity": 100},
    {"name": "Desk Lamp", "sku": "DL-001", "price": "39.99", "stock_quantity": 120},
    {"name": "Laptop Stand", "sku": "LS-001", "price": "59.99", "stock_quantity": 80},
    {"name": "Noise-Canceling Headphones", "sku": "NH-001", "price": "199.99", "stock_quantity": 45},
    {"name": "Mousepad XL", "sku": "MP-001", "price": "19.99", "stock_quantity": 300},
    {"name": "Cable Management Kit", "sku": "CM-001", "price": "14.99", "stock_quantity": 250},
]

# (customer index, target status, [(product index, quantity)], notes)
ORDERS = [
    (0, OrderStatus.PENDING, [(0, 2), (2, 1)], None),
    (0, OrderStatus.CONFIRMED, [(1, 1)], "Express shipping requested"),
    (1, OrderStatus.PROCESSING, [(3, 1), (4, 1)], None),
    (1, OrderStatus.SHIPPED, [(5, 3)], None),
    (2, OrderStatus.DELIVERED, [(6, 1), (7, 1)], "Gift wrapped"),
    (2, OrderStatus.CANCELLED, [(8, 5)], "Customer changed mind"),
    (3, OrderStatus.PENDING, [(9, 2), (0, 1)], None),
    (3, OrderStatus.CONFIRMED, [(1, 2), (2, 2)], None),
    (4, OrderStatus.PROCESSING, [(3, 2)], None),
    (4, OrderStatus.PENDING, [(4, 1), (5, 1), (6, 1)], None),
    (0, OrderStatus.SHIPPED, [(7, 1)], None),
    (1, OrderStatus.DELIVERED, [(8, 10), (9, 5)], None),
    (2, OrderStatus.PENDING, [(0, 1)], None),
    (3, OrderStatus.PROCESSING, [(1, 1), (3, 1)], None),
    (4, OrderStatus.CONFIRMED, [(2, 3)], None),
    (0, OrderStatus.CANCELLED, [(5, 2)], "Duplicate order"),
]

# Legal route from PENDING to each status.
PATHS = {
    OrderStatus.PENDING: [],
    OrderStatus.CONFIRMED: [OrderStatus.CONFIRMED],
    OrderStatus.PROCESSING: [OrderStatus.CONFIRMED, OrderStatus.PROCESSING],
    OrderStatus.SHIPPED: [OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED],
    OrderStatus.DELIVERED: [
        OrderStatus.CONFIRMED, OrderStatus.PROCESSING,
        OrderStatus.SHIPPED, OrderStatus.DELIVERED,
    ],
    OrderStatus.CANCELLED: [OrderStatus.CANCELLED],
}


async def seed_demo_data(
    session: AsyncSession,
    catalog: CatalogService,
    orders: OrderService,
) -> bool:
    """Load demo records. Returns False without writing if orders already exist."""
    existing = await session.execute(select(func.count(OrderModel.id)))
    if existing.scalar():
        logger.info("Data already exists, skipping seed")
        return False

    customers = [await catalog.create_customer(session, **c) for c in CUSTOMERS]
    products = [await catalog.create_product(session, **p) for p in PRODUCTS]

    # Orders walk the status machine like any other client would.
    for customer_idx, status, lines, notes in ORDERS:
        order = await orders.create_order(
            session,
            customer_id=customers[customer_idx].id,
            items=[
                {"product_id": products[p].id, "quantity": qty} for p, qty in lines
            ],
            notes=notes,
        )
        for step in PATHS[status]:
            await orders.change_status(session, order.id, step)

    logger.info(
        "Seeded %d customers, %d products, %d orders",
        len(customers), len(products), len(ORDERS),
    )
    return True
