"""Catalog service: customers and products."""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.catalog.models import CustomerModel, ProductModel
from orderdesk.common.exceptions import ValidationError

CENT = Decimal("0.01")


class CatalogService:
    """Customer and product records the order flow reads from."""

    # ── Customers ──

    async def create_customer(
        self,
        session: AsyncSession,
        name: str,
        email: str,
        phone: str | None = None,
    ) -> CustomerModel:
        existing = await session.execute(
            select(CustomerModel.id).where(CustomerModel.email == email)
        )
        if existing.scalar_one_or_none() is not None:
            raise ValidationError(f"Customer with email '{email}' already exists")
        customer = CustomerModel(name=name, email=email, phone=phone)
        session.add(customer)
        await session.flush()
        return customer

    async def get_customer(
        self, session: AsyncSession, customer_id: int
    ) -> CustomerModel | None:
        return await session.get(CustomerModel, customer_id)

    async def list_customers(self, session: AsyncSession) -> list[CustomerModel]:
        result = await session.execute(
            select(CustomerModel).order_by(CustomerModel.name.asc())
        )
        return list(result.scalars().all())

    # ── Products ──

    async def create_product(
        self,
        session: AsyncSession,
        name: str,
        sku: str,
        price: Decimal,
        stock_quantity: int = 0,
    ) -> ProductModel:
        existing = await session.execute(
            select(ProductModel.id).where(ProductModel.sku == sku)
        )
        if existing.scalar_one_or_none() is not None:
            raise ValidationError(f"Product with SKU '{sku}' already exists")
        product = ProductModel(
            name=name,
            sku=sku,
            price=Decimal(str(price)).quantize(CENT),
            stock_quantity=stock_quantity,
        )
        session.add(product)
        await session.flush()
        return product

    async def get_products(
        self, session: AsyncSession, product_ids: list[int]
    ) -> dict[int, ProductModel]:
        """Fetch several products at once, keyed by id. Missing ids are absent."""
        if not product_ids:
            return {}
        result = await session.execute(
            select(ProductModel).where(ProductModel.id.in_(set(product_ids)))
        )
        return {p.id: p for p in result.scalars().all()}

    async def list_products(self, session: AsyncSession) -> list[ProductModel]:
        result = await session.execute(
            select(ProductModel).order_by(ProductModel.name.asc())
        )
        return list(result.scalars().all())
