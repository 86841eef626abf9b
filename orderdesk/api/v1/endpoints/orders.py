from typing import List, Optional
from datetime import date
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from ....config.database import get_db
from ....core.dependencies import get_current_user, require_permission
from ....core.permissions import (
    can_delete, can_edit, can_mark_delivered, can_print_bill, permissions_for
)
from ....domain.filters import OrderFilter
from ....models.user import User
from ....schemas.order import (
    BalanceUpdate,
    BalanceView,
    DateRange,
    FinalizeResponse,
    OrderCreate,
    OrderListResponse,
    OrderPreview,
    OrderTotals,
    OrderUpdate,
    OrderView,
    ProductOption,
    SupplierGroup
)
from ....services.balance_service import BalanceService
from ....services.finalization_service import FinalizationService
from ....services.invoice_service import InvoiceService
from ....services.notification_service import OrderNotifier
from ....services.order_service import OrderService
from ....domain.lines import money

router = APIRouter()


def get_notifier() -> OrderNotifier:
    return OrderNotifier()


def get_invoice_service() -> InvoiceService:
    return InvoiceService()


def _criteria(status_filter: Optional[str], search: Optional[str],
              delivery_date: Optional[date], date_range: DateRange) -> OrderFilter:
    return OrderFilter(
        status=status_filter,
        search=search,
        delivery_date=delivery_date,
        date_range=date_range.value
    )


@router.get("/", response_model=OrderListResponse)
async def list_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    delivery_date: Optional[date] = Query(None),
    date_range: DateRange = Query(DateRange.ALL),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    List orders visible to the current user, newest first
    """
    views = OrderService(db).list_views(current_user, _criteria(status_filter, search, delivery_date, date_range))
    return {
        "items": views,
        "total": len(views),
        "permissions": permissions_for(current_user.role)
    }


@router.get("/by-supplier", response_model=List[SupplierGroup])
async def list_orders_by_supplier(
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    delivery_date: Optional[date] = Query(None),
    date_range: DateRange = Query(DateRange.ALL),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Orders grouped by the supplier of their highest value line
    """
    groups = OrderService(db).supplier_views(
        current_user, _criteria(status_filter, search, delivery_date, date_range)
    )
    return [{"supplier": supplier, "orders": views} for supplier, views in groups.items()]


@router.get("/products", response_model=List[ProductOption])
async def list_products(
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Product picker with the current user's effective stock
    """
    options = OrderService(db).product_picker(current_user, search)
    return [
        {
            "id": product.id,
            "name": product.name,
            "category": product.category,
            "sku": product.sku,
            "supplier": product.supplier,
            "price": product.price,
            "image_url": product.image_url,
            "effective_stock": stock
        }
        for product, stock in options
    ]


@router.post("/preview", response_model=OrderTotals)
async def preview_order(
    payload: OrderPreview,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(can_edit, "edit orders"))
):
    """
    Totals for a draft order without saving it
    """
    totals = OrderService(db).preview(current_user, payload.items, payload.customer_id)
    return OrderTotals(total=money(totals.total), in_stock_count=totals.in_stock_count,
                       held_count=totals.held_count)


@router.get("/{order_id}", response_model=OrderView)
async def get_order(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return OrderService(db).get_view(current_user, order_id)


@router.post("/", response_model=OrderView, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(can_edit, "create orders")),
    notifier: OrderNotifier = Depends(get_notifier)
):
    """
    Create an order; the creator is notified by e-mail after the response
    """
    order_service = OrderService(db)
    order = order_service.create_order(current_user, payload)

    message = notifier.new_order_message(current_user, order, order.customer_name)
    if message is not None:
        background_tasks.add_task(notifier.deliver, message)

    return order_service.build_view(current_user, order)


@router.put("/{order_id}", response_model=OrderView)
async def update_order(
    order_id: str,
    payload: OrderUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(can_edit, "edit orders"))
):
    order_service = OrderService(db)
    order = order_service.update_order(current_user, order_id, payload)
    return order_service.build_view(current_user, order)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(can_delete, "delete orders"))
):
    OrderService(db).delete_order(current_user, order_id)


@router.post("/{order_id}/hold/{product_id}", response_model=OrderView)
async def hold_item(
    order_id: str,
    product_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(can_edit, "hold items"))
):
    order_service = OrderService(db)
    order = order_service.hold_item(current_user, order_id, product_id)
    return order_service.build_view(current_user, order)


@router.post("/{order_id}/unhold/{product_id}", response_model=OrderView)
async def unhold_item(
    order_id: str,
    product_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(can_edit, "release held items"))
):
    order_service = OrderService(db)
    order = order_service.unhold_item(current_user, order_id, product_id)
    return order_service.build_view(current_user, order)


@router.put("/{order_id}/balances", response_model=BalanceView)
async def save_balances(
    order_id: str,
    payload: BalanceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(can_edit, "edit balances"))
):
    """
    Save cheque and paid amounts; credit is derived from them
    """
    order, state = BalanceService(db).save_balances(
        current_user,
        order_id,
        cheque_balance=payload.cheque_balance,
        amount_paid=payload.amount_paid,
        confirm=payload.confirm
    )
    return {
        "order_id": order.id,
        "total": money(state.total),
        "amount_paid": money(state.amount_paid),
        "cheque_balance": money(state.cheque_balance),
        "credit_balance": money(state.credit_balance),
        "outstanding_balance": money(state.outstanding)
    }


@router.post("/{order_id}/finalize", response_model=FinalizeResponse)
async def finalize_order(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(can_mark_delivered, "mark orders delivered"))
):
    """
    Mark an order delivered and deduct inventory
    """
    result = FinalizationService(db).finalize(current_user, order_id)
    return {
        "order": OrderService(db).build_view(current_user, result.order),
        "already_delivered": result.already_delivered,
        "sold": result.sold,
        "skipped_products": result.skipped_products
    }


@router.get("/{order_id}/invoice", response_class=HTMLResponse)
async def get_invoice(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(can_print_bill, "print bills")),
    invoice_service: InvoiceService = Depends(get_invoice_service)
):
    order_service = OrderService(db)
    order = order_service.get_order(order_id)
    return HTMLResponse(invoice_service.render(order_service.build_view(current_user, order), order.customer))


@router.post("/{order_id}/bill", response_class=HTMLResponse)
async def download_bill(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(can_print_bill, "print bills")),
    invoice_service: InvoiceService = Depends(get_invoice_service)
):
    """
    Finalize the order if it is not delivered yet, then render its invoice
    """
    order_service = OrderService(db)
    order = order_service.get_order(order_id)
    if not order.is_delivered and can_mark_delivered(current_user.role):
        order = FinalizationService(db).finalize(current_user, order_id).order
    return HTMLResponse(invoice_service.render(order_service.build_view(current_user, order), order.customer))
