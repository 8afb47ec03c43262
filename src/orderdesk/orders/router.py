"""Order API router."""

from fastapi import APIRouter, Depends, HTTPException, Query

from orderdesk.common.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from orderdesk.common.schemas import PaginatedResponse
from orderdesk.deps import ServiceContainer, get_container
from orderdesk.orders.schemas import (
    BulkStatusResult,
    BulkStatusUpdate,
    OrderCreate,
    OrderResponse,
    OrderStatusUpdate,
    OrderSummary,
    OrderUpdate,
)

router = APIRouter()


@router.get("/orders", response_model=PaginatedResponse[OrderSummary])
async def list_orders(
    status: str | None = Query(None, description="Comma-separated statuses"),
    search: str | None = Query(None, description="Customer name, partial match"),
    sort_by: str = Query("created_at"),
    sort_dir: str = Query("desc"),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    container: ServiceContainer = Depends(get_container),
):
    settings = container.settings
    page_size = min(page_size or settings.default_page_size, settings.max_page_size)
    statuses = status.split(",") if status else None
    try:
        async with container.db.get_session() as session:
            items, total = await container.orders.list_orders(
                session,
                statuses=statuses,
                search=search,
                sort_by=sort_by,
                sort_dir=sort_dir,
                offset=(page - 1) * page_size,
                limit=page_size,
            )
            return PaginatedResponse[OrderSummary].build(
                [OrderSummary.model_validate(o) for o in items],
                total=total, page=page, page_size=page_size,
            )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)


@router.post("/orders", response_model=OrderResponse, status_code=201)
async def create_order(
    body: OrderCreate,
    container: ServiceContainer = Depends(get_container),
):
    try:
        async with container.db.get_session() as session:
            order = await container.orders.create_order(
                session,
                customer_id=body.customer_id,
                items=[item.model_dump() for item in body.items],
                notes=body.notes,
            )
            return OrderResponse.model_validate(order)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)


@router.post("/orders/bulk-status", response_model=BulkStatusResult)
async def bulk_update_status(
    body: BulkStatusUpdate,
    container: ServiceContainer = Depends(get_container),
):
    async with container.db.get_session() as session:
        return await container.orders.bulk_change_status(
            session, body.order_ids, body.status,
        )


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    container: ServiceContainer = Depends(get_container),
):
    async with container.db.get_session() as session:
        order = await container.orders.get_order(session, order_id)
        if order is None:
            raise HTTPException(status_code=404, detail="Order not found")
        return OrderResponse.model_validate(order)


@router.patch("/orders/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: int,
    body: OrderUpdate,
    container: ServiceContainer = Depends(get_container),
):
    try:
        async with container.db.get_session() as session:
            order = await container.orders.update_order(
                session, order_id, **body.model_dump(exclude_none=True)
            )
            return OrderResponse.model_validate(order)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=400, detail=e.message)


@router.patch("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: int,
    body: OrderStatusUpdate,
    container: ServiceContainer = Depends(get_container),
):
    try:
        async with container.db.get_session() as session:
            order = await container.orders.change_status(session, order_id, body.status)
            return OrderResponse.model_validate(order)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=400, detail=e.message)
