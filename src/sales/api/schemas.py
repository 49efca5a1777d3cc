"""Pydantic request/response schemas for the Sales API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CustomerSchema(BaseModel):
    first_name: str
    last_name: str
    email: str
    phone: str


class AddressSchema(BaseModel):
    street: str
    city: str
    state: str | None = None
    postal_code: str | None = None
    country: str = "Morocco"


class ProductNameSchema(BaseModel):
    en: str | None = None
    fr: str | None = None
    ar: str | None = None


class OrderItemSchema(BaseModel):
    product_id: str
    name: ProductNameSchema | None = None
    sku: str | None = None
    image: str | None = None
    category: str | None = None
    quantity: int = Field(ge=1)
    unit_price: float = Field(ge=0)
    total_price: float | None = Field(default=None, ge=0)


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    customer: CustomerSchema
    address: AddressSchema
    items: list[OrderItemSchema]
    tax: float = Field(default=0.0, ge=0)
    shipping: float = Field(default=0.0, ge=0)
    discount: float = Field(default=0.0, ge=0)
    currency: str = "MAD"
    payment_method: str = "cash_on_delivery"
    shipping_method: str = "standard"
    consent_given: bool = False
    language: str = "en"
    customer_note: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer": {
                        "first_name": "Amina",
                        "last_name": "Benali",
                        "email": "amina@example.ma",
                        "phone": "+212600000000",
                    },
                    "address": {
                        "street": "12 Rue Tarik",
                        "city": "Casablanca",
                        "postal_code": "20000",
                        "country": "Morocco",
                    },
                    "items": [
                        {
                            "product_id": "prod-argan-100",
                            "name": {"en": "Argan oil 100ml", "fr": "Huile d'argan 100ml"},
                            "sku": "ARG-100",
                            "quantity": 2,
                            "unit_price": 100.0,
                        }
                    ],
                    "shipping": 20.0,
                    "consent_given": True,
                }
            ]
        }
    }


class UpdateStatusRequest(BaseModel):
    status: str
    note: str | None = None


class AddTrackingRequest(BaseModel):
    tracking_number: str
    estimated_delivery: datetime | None = None


class AdminNoteRequest(BaseModel):
    note: str | None = Field(default=None, max_length=2000)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderNumberResponse(BaseModel):
    order_number: str


class OrderItemResponse(BaseModel):
    product_id: str
    name: ProductNameSchema
    sku: str | None = None
    quantity: int
    unit_price: float
    total_price: float
    currency: str


class TotalsResponse(BaseModel):
    subtotal: float
    tax: float
    shipping: float
    discount: float
    total: float
    currency: str


class StatusChangeResponse(BaseModel):
    status: str
    timestamp: datetime
    note: str | None = None
    updated_by: str | None = None


class OrderResponse(BaseModel):
    order_number: str
    customer: CustomerSchema
    full_name: str
    address: AddressSchema
    items: list[OrderItemResponse]
    totals: TotalsResponse
    status: str
    payment_status: str
    payment_method: str
    shipping_method: str
    tracking_number: str | None = None
    estimated_delivery: datetime | None = None
    actual_delivery: datetime | None = None
    status_history: list[StatusChangeResponse]
    can_cancel: bool
    item_count: int
    language: str
    customer_note: str | None = None
    admin_note: str | None = None
    created_at: datetime | None = None


class SummaryResponse(BaseModel):
    start: datetime
    end: datetime
    total_orders: int
    total_revenue: float
    average_order_value: float
    pending_count: int
    delivered_count: int
    cancelled_count: int


class ProductPerformanceResponse(BaseModel):
    product_id: str
    total_quantity: int
    total_revenue: float
    order_count: int
    name: ProductNameSchema
    sku: str | None = None


class TopProductsResponse(BaseModel):
    start: datetime
    end: datetime
    products: list[ProductPerformanceResponse]
