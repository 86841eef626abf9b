from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import date
from decimal import Decimal
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "Pending"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class DateRange(str, Enum):
    TODAY = "today"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"
    ALL = "all"


class OrderLineIn(BaseModel):
    """A requested line; quantity, price and discount are clamped, not rejected."""
    product_id: str = Field(..., min_length=1, max_length=36)
    quantity: int = 0
    price: Optional[Decimal] = None
    discount: Optional[Decimal] = None
    held: bool = False


class OrderBase(BaseModel):
    customer_id: Optional[str] = Field(None, max_length=36)
    items: List[OrderLineIn] = Field(default_factory=list)
    expected_delivery_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)
    payment_method: Optional[str] = Field(None, max_length=50)


class OrderCreate(OrderBase):
    pass


class OrderUpdate(OrderBase):
    pass


class OrderPreview(BaseModel):
    customer_id: Optional[str] = None
    items: List[OrderLineIn] = Field(default_factory=list)


class OrderTotals(BaseModel):
    total: Decimal
    in_stock_count: int
    held_count: int

    class Config:
        from_attributes = True


class BalanceUpdate(BaseModel):
    cheque_balance: Optional[Decimal] = Field(None, ge=0)
    amount_paid: Optional[Decimal] = Field(None, ge=0)
    confirm: bool = False


class OrderLineView(BaseModel):
    product_id: str
    name: str
    image_url: Optional[str] = None
    quantity: int
    price: Decimal
    discount: Decimal
    subtotal: Decimal


class OrderView(BaseModel):
    id: str
    customer_id: str
    customer_name: str
    order_date: date
    expected_delivery_date: Optional[date] = None
    status: OrderStatus
    notes: Optional[str] = None
    payment_method: Optional[str] = None
    items: List[OrderLineView]
    backordered_items: List[OrderLineView]
    total: Decimal
    item_count: int
    backordered_count: int
    amount_paid: Decimal
    cheque_balance: Decimal
    credit_balance: Decimal
    outstanding_balance: Optional[Decimal] = None
    sold: int = 0
    assigned_user_id: Optional[str] = None
    assigned_user_name: Optional[str] = None


class SupplierGroup(BaseModel):
    supplier: str
    orders: List[OrderView]


class BalanceView(BaseModel):
    order_id: str
    total: Decimal
    amount_paid: Decimal
    cheque_balance: Decimal
    credit_balance: Decimal
    outstanding_balance: Decimal


class FinalizeResponse(BaseModel):
    order: OrderView
    already_delivered: bool
    sold: int
    skipped_products: List[str] = []


class ProductOption(BaseModel):
    id: str
    name: str
    category: Optional[str] = None
    sku: Optional[str] = None
    supplier: Optional[str] = None
    price: Decimal
    image_url: Optional[str] = None
    effective_stock: int


class OrderListResponse(BaseModel):
    items: List[OrderView]
    total: int
    permissions: Dict[str, bool]
