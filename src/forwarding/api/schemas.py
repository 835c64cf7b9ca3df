"""Pydantic request/response schemas for the forwarding API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------
class ReceivePackageRequest(BaseModel):
    user_id: str
    tracking_internal: str
    description: str | None = None
    weight: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    total_boxes: int = Field(default=1, ge=1)
    is_master: bool = False
    tracking_provider: str | None = None
    box_id: str | None = None
    declared_value_usd: float | None = Field(default=None, allow_inf_nan=False)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "user_id": "user-001",
                    "tracking_internal": "ABC123",
                    "description": "Laptop",
                    "weight": 9.0,
                    "total_boxes": 3,
                }
            ]
        }
    }


class PackageIdResponse(BaseModel):
    package_id: str


class ChildBoxSchema(BaseModel):
    label: str
    box_number: int
    total_boxes: int
    weight: float | None = None
    is_master: bool = False


class PackageResponse(BaseModel):
    package_id: str
    user_id: str
    tracking_internal: str
    tracking_provider: str | None = None
    description: str | None = None
    weight: float | None = None
    total_boxes: int
    is_master: bool
    status: str
    consolidation_id: str | None = None
    consolidation_status: str | None = None
    has_gex: bool
    gex_folio: str | None = None
    declared_value_usd: float | None = None
    child_boxes: list[ChildBoxSchema] = []


# ---------------------------------------------------------------------------
# Consolidations and selection
# ---------------------------------------------------------------------------
class CreateConsolidationRequest(BaseModel):
    user_id: str
    package_ids: list[str]


class ConsolidationIdResponse(BaseModel):
    consolidation_id: str


class SelectionTotalsSchema(BaseModel):
    package_count: int
    total_weight: float
    total_boxes: int


class EligiblePackagesResponse(BaseModel):
    user_id: str
    master_id: str | None = None
    packages: list[PackageResponse]
    totals: SelectionTotalsSchema


class ToggleSelectionRequest(BaseModel):
    user_id: str
    selected: list[str] = []
    package_id: str


class SelectionResponse(BaseModel):
    selected: list[str]
    master_id: str | None = None
    master_selected: bool
    totals: SelectionTotalsSchema


class DispatchRequest(BaseModel):
    master_tracking: str | None = None


class CancelConsolidationRequest(BaseModel):
    reason: str


class ConsolidationResponse(BaseModel):
    consolidation_id: str
    user_id: str
    package_ids: list[str]
    total_weight: float
    total_boxes: int
    status: str
    payment_status: str
    freight_cost_usd: float
    order_id: str | None = None
    transaction_id: str | None = None
    master_tracking: str | None = None


class StatusResponse(BaseModel):
    status: str


# ---------------------------------------------------------------------------
# GEX protection
# ---------------------------------------------------------------------------
class QuoteRequest(BaseModel):
    invoice_value_usd: float | None = Field(default=None, allow_inf_nan=False)


class QuoteResponse(BaseModel):
    available: bool
    declared_value_usd: float | None = None
    exchange_rate: float | None = None
    insured_value_mxn: float | None = None
    variable_fee_mxn: float | None = None
    fixed_fee_mxn: float | None = None
    total_cost_mxn: float | None = None
    source_currency: str = "USD"
    settlement_currency: str = "MXN"


class AttachWarrantyRequest(BaseModel):
    package_id: str
    user_id: str | None = None
    invoice_value_usd: float | None = Field(default=None, allow_inf_nan=False)
    description: str | None = None
    signature: str | None = None
    accepted_at: datetime | None = None
    payment_option: str = "pay_with_shipment"

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "package_id": "pkg-001",
                    "invoice_value_usd": 1200.0,
                    "description": "Laptop",
                    "signature": "data:image/png;base64,iVBORw0KGgo=",
                    "accepted_at": "2026-01-15T10:00:00Z",
                    "payment_option": "pay_now",
                }
            ]
        }
    }


class PolicyIdResponse(BaseModel):
    policy_id: str
    gex_folio: str


class PolicyResponse(BaseModel):
    policy_id: str
    gex_folio: str
    package_id: str
    user_id: str | None = None
    description: str
    declared_value_usd: float
    exchange_rate: float
    insured_value_mxn: float
    variable_fee_mxn: float
    fixed_fee_mxn: float
    total_cost_mxn: float
    accepted_at: datetime
    payment_option: str
    charge_status: str
    status: str


class ConfigureRatesRequest(BaseModel):
    rate: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    available: bool = True


class RatesConfigResponse(BaseModel):
    source: str
    rate: float
    available: bool


# ---------------------------------------------------------------------------
# Freight payments
# ---------------------------------------------------------------------------
class CreateFreightOrderRequest(BaseModel):
    """Freight is always charged in USD, so no currency is taken."""

    consolidation_id: str


class FreightOrderResponse(BaseModel):
    order_id: str
    approval_url: str | None = None
    amount: float
    currency: str


class CapturePaymentRequest(BaseModel):
    paypal_order_id: str
    consolidation_id: str


class CapturePaymentResponse(BaseModel):
    success: bool
    transaction_id: str


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Payment declined"


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
