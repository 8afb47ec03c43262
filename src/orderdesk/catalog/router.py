"""Customer and product API router."""

from fastapi import APIRouter, Depends, HTTPException

from orderdesk.catalog.schemas import (
    CustomerCreate,
    CustomerResponse,
    ProductCreate,
    ProductResponse,
)
from orderdesk.common.exceptions import ValidationError
from orderdesk.deps import ServiceContainer, get_container

router = APIRouter()


# ── Customers ──

@router.get("/customers", response_model=list[CustomerResponse])
async def list_customers(container: ServiceContainer = Depends(get_container)):
    async with container.db.get_session() as session:
        customers = await container.catalog.list_customers(session)
        return [CustomerResponse.model_validate(c) for c in customers]


@router.post("/customers", response_model=CustomerResponse, status_code=201)
async def create_customer(
    body: CustomerCreate,
    container: ServiceContainer = Depends(get_container),
):
    try:
        async with container.db.get_session() as session:
            customer = await container.catalog.create_customer(
                session, name=body.name, email=body.email, phone=body.phone,
            )
            return CustomerResponse.model_validate(customer)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)


# ── Products ──

@router.get("/products", response_model=list[ProductResponse])
async def list_products(container: ServiceContainer = Depends(get_container)):
    async with container.db.get_session() as session:
        products = await container.catalog.list_products(session)
        return [ProductResponse.model_validate(p) for p in products]


@router.post("/products", response_model=ProductResponse, status_code=201)
async def create_product(
    body: ProductCreate,
    container: ServiceContainer = Depends(get_container),
):
    try:
        async with container.db.get_session() as session:
            product = await container.catalog.create_product(
                session,
                name=body.name,
                sku=body.sku,
                price=body.price,
                stock_quantity=body.stock_quantity,
            )
            return ProductResponse.model_validate(product)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)
