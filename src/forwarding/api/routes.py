"""FastAPI routes for the forwarding domain: packages, consolidations, GEX and freight payments.

Routes that call out to an external service or take a process lock are plain
``def`` functions, so FastAPI runs them in its threadpool instead of the event loop.
"""

import os

from fastapi import APIRouter, HTTPException
from protean.utils.globals import current_domain

from forwarding.api.schemas import (
    AttachWarrantyRequest,
    CancelConsolidationRequest,
    CapturePaymentRequest,
    CapturePaymentResponse,
    ChildBoxSchema,
    ConfigureGatewayRequest,
    ConfigureRatesRequest,
    ConsolidationIdResponse,
    ConsolidationResponse,
    CreateConsolidationRequest,
    CreateFreightOrderRequest,
    DispatchRequest,
    EligiblePackagesResponse,
    FreightOrderResponse,
    GatewayConfigResponse,
    PackageIdResponse,
    PackageResponse,
    PolicyIdResponse,
    PolicyResponse,
    QuoteRequest,
    QuoteResponse,
    RatesConfigResponse,
    ReceivePackageRequest,
    SelectionResponse,
    SelectionTotalsSchema,
    StatusResponse,
    ToggleSelectionRequest,
)
from forwarding.consolidation.consolidation import Consolidation, freight_cost
from forwarding.consolidation.creation import group_packages
from forwarding.consolidation.lifecycle import (
    CancelConsolidation,
    DispatchConsolidation,
    ReleaseConsolidation,
    StartProcessing,
)
from forwarding.consolidation.payment import capture_freight_payment, request_freight_payment
from forwarding.gateway import get_gateway
from forwarding.gateway.fake_adapter import FakeFreightGateway
from forwarding.package.intake import ReceivePackage
from forwarding.package.package import Package
from forwarding.protection.attachment import attach_warranty
from forwarding.protection.policy import WarrantyPolicy
from forwarding.protection.quoting import get_quote_service
from forwarding.rates import get_rate_source
from forwarding.rates.fake_adapter import FakeRateSource
from forwarding.selection.selection import SelectionSession, eligible_packages


def _package_response(package) -> PackageResponse:
    return PackageResponse(
        package_id=str(package.id),
        user_id=str(package.user_id),
        tracking_internal=package.tracking_internal,
        tracking_provider=package.tracking_provider,
        description=package.description,
        weight=package.weight,
        total_boxes=package.total_boxes,
        is_master=bool(package.is_master),
        status=package.status,
        consolidation_id=str(package.consolidation_id) if package.consolidation_id else None,
        consolidation_status=package.consolidation_status,
        has_gex=bool(package.has_gex),
        gex_folio=package.gex_folio,
        declared_value_usd=package.declared_value_usd,
        child_boxes=[
            ChildBoxSchema(
                label=box.label,
                box_number=box.box_number,
                total_boxes=box.total_boxes,
                weight=box.weight,
                is_master=box.is_master,
            )
            for box in package.child_boxes()
        ],
    )


def _totals_schema(totals) -> SelectionTotalsSchema:
    return SelectionTotalsSchema(
        package_count=totals.package_count,
        total_weight=totals.total_weight,
        total_boxes=totals.total_boxes,
    )


def _eligible_for(user_id: str) -> list:
    repo = current_domain.repository_for(Package)
    packages = repo._dao.query.filter(user_id=user_id).order_by("received_at").all().items
    return eligible_packages(packages)


def _refuse_in_production(what: str) -> None:
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail=f"{what} configuration not available in production")


# ---------------------------------------------------------------------------
# Package Router
# ---------------------------------------------------------------------------
package_router = APIRouter(prefix="/packages", tags=["packages"])


@package_router.post("", status_code=201, response_model=PackageIdResponse)
async def receive_package(body: ReceivePackageRequest) -> PackageIdResponse:
    """Record a package received at the warehouse."""
    command = ReceivePackage(
        user_id=body.user_id,
        tracking_internal=body.tracking_internal,
        description=body.description,
        weight=body.weight,
        total_boxes=body.total_boxes,
        is_master=body.is_master,
        tracking_provider=body.tracking_provider,
        box_id=body.box_id,
        declared_value_usd=body.declared_value_usd,
    )
    result = current_domain.process(command, asynchronous=False)
    return PackageIdResponse(package_id=result)


@package_router.get("/{package_id}", response_model=PackageResponse)
async def get_package(package_id: str) -> PackageResponse:
    """Package details, including derived child box labels and GEX status."""
    package = current_domain.repository_for(Package).get(package_id)
    return _package_response(package)


# ---------------------------------------------------------------------------
# Consolidation Router
# ---------------------------------------------------------------------------
consolidation_router = APIRouter(prefix="/consolidations", tags=["consolidations"])


@consolidation_router.post("", status_code=201, response_model=ConsolidationIdResponse)
def create_consolidation(body: CreateConsolidationRequest) -> ConsolidationIdResponse:
    """Group the selected packages into a new consolidation."""
    consolidation_id = group_packages(body.user_id, body.package_ids)
    return ConsolidationIdResponse(consolidation_id=consolidation_id)


@consolidation_router.get("/eligible/{user_id}", response_model=EligiblePackagesResponse)
async def list_eligible_packages(user_id: str) -> EligiblePackagesResponse:
    """Packages the customer can still consolidate, with the derived master."""
    session = SelectionSession(_eligible_for(user_id))
    return EligiblePackagesResponse(
        user_id=user_id,
        master_id=session.master_id,
        packages=[_package_response(p) for p in session.packages],
        totals=_totals_schema(session.totals),
    )


@consolidation_router.post("/selection/toggle", response_model=SelectionResponse)
async def toggle_selection(body: ToggleSelectionRequest) -> SelectionResponse:
    """Evaluate one click on a package against the client's current selection."""
    session = SelectionSession(_eligible_for(body.user_id), selected=body.selected)
    session.toggle(body.package_id)
    return SelectionResponse(
        selected=session.selected_ids(),
        master_id=session.master_id,
        master_selected=session.master_selected,
        totals=_totals_schema(session.totals),
    )


@consolidation_router.get("/{consolidation_id}", response_model=ConsolidationResponse)
async def get_consolidation(consolidation_id: str) -> ConsolidationResponse:
    consolidation = current_domain.repository_for(Consolidation).get(consolidation_id)
    payment = consolidation.payment
    return ConsolidationResponse(
        consolidation_id=str(consolidation.id),
        user_id=str(consolidation.user_id),
        package_ids=consolidation.package_ids,
        total_weight=consolidation.total_weight,
        total_boxes=consolidation.total_boxes,
        status=consolidation.status,
        payment_status=consolidation.payment_status,
        freight_cost_usd=freight_cost(consolidation.total_weight),
        order_id=payment.order_id if payment else None,
        transaction_id=payment.transaction_id if payment else None,
        master_tracking=consolidation.master_tracking,
    )


@consolidation_router.put("/{consolidation_id}/process", response_model=StatusResponse)
async def start_processing(consolidation_id: str) -> StatusResponse:
    current_domain.process(StartProcessing(consolidation_id=consolidation_id), asynchronous=False)
    return StatusResponse(status="processing")


@consolidation_router.put("/{consolidation_id}/dispatch", response_model=StatusResponse)
async def dispatch_consolidation(consolidation_id: str, body: DispatchRequest) -> StatusResponse:
    """Record that the consolidation left the warehouse."""
    command = DispatchConsolidation(
        consolidation_id=consolidation_id,
        master_tracking=body.master_tracking,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="shipped")


@consolidation_router.put("/{consolidation_id}/release", response_model=StatusResponse)
async def release_consolidation(consolidation_id: str) -> StatusResponse:
    """Deliver a shipped consolidation. Freight must be paid."""
    current_domain.process(ReleaseConsolidation(consolidation_id=consolidation_id), asynchronous=False)
    return StatusResponse(status="delivered")


@consolidation_router.put("/{consolidation_id}/cancel", response_model=StatusResponse)
async def cancel_consolidation(consolidation_id: str, body: CancelConsolidationRequest) -> StatusResponse:
    command = CancelConsolidation(consolidation_id=consolidation_id, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="cancelled")


# ---------------------------------------------------------------------------
# GEX Router
# ---------------------------------------------------------------------------
gex_router = APIRouter(prefix="/gex", tags=["gex"])


@gex_router.post("/quote", response_model=QuoteResponse)
def quote_protection(body: QuoteRequest) -> QuoteResponse:
    """Live premium for a declared invoice value. Only a finite positive value gets a quote."""
    gex_quote = get_quote_service().get_quote(body.invoice_value_usd)
    if gex_quote is None:
        return QuoteResponse(available=False)
    return QuoteResponse(available=True, **gex_quote.as_display())


@gex_router.post("/warranties/self", status_code=201, response_model=PolicyIdResponse)
def attach_own_warranty(body: AttachWarrantyRequest) -> PolicyIdResponse:
    """Attach a GEX policy to one of the customer's packages."""
    policy_id = attach_warranty(
        package_id=body.package_id,
        user_id=body.user_id,
        declared_value_usd=body.invoice_value_usd,
        description=body.description,
        signature=body.signature,
        accepted_at=body.accepted_at,
        payment_option=body.payment_option,
    )
    policy = current_domain.repository_for(WarrantyPolicy).get(policy_id)
    return PolicyIdResponse(policy_id=policy_id, gex_folio=policy.gex_folio)


@gex_router.get("/warranties/{policy_id}", response_model=PolicyResponse)
async def get_warranty(policy_id: str) -> PolicyResponse:
    policy = current_domain.repository_for(WarrantyPolicy).get(policy_id)
    return PolicyResponse(
        policy_id=str(policy.id),
        gex_folio=policy.gex_folio,
        package_id=str(policy.package_id),
        user_id=str(policy.user_id) if policy.user_id else None,
        description=policy.description,
        declared_value_usd=policy.declared_value_usd,
        exchange_rate=policy.exchange_rate,
        insured_value_mxn=policy.insured_value_mxn,
        variable_fee_mxn=policy.variable_fee_mxn,
        fixed_fee_mxn=policy.fixed_fee_mxn,
        total_cost_mxn=policy.total_cost_mxn,
        accepted_at=policy.accepted_at,
        payment_option=policy.payment_option,
        charge_status=policy.charge_status,
        status=policy.status,
    )


@gex_router.post("/rates/configure", response_model=RatesConfigResponse)
async def configure_rates(body: ConfigureRatesRequest) -> RatesConfigResponse:
    """Configure the FakeRateSource (non-production only)."""
    _refuse_in_production("Rate source")

    source = get_rate_source()
    if not isinstance(source, FakeRateSource):
        raise HTTPException(status_code=400, detail="Rate configuration only available for FakeRateSource")

    source.configure(rate=body.rate, available=body.available)
    get_quote_service().invalidate()
    return RatesConfigResponse(source=type(source).__name__, rate=source.rate, available=source.available)


# ---------------------------------------------------------------------------
# Freight Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/orders", status_code=201, response_model=FreightOrderResponse)
def create_freight_order(body: CreateFreightOrderRequest) -> FreightOrderResponse:
    """Open a gateway order for a shipped consolidation's freight."""
    order = request_freight_payment(body.consolidation_id)
    return FreightOrderResponse(**order)


@payment_router.post("/capture", response_model=CapturePaymentResponse)
def capture_payment(body: CapturePaymentRequest) -> CapturePaymentResponse:
    """Capture an approved freight order. Replays return the original transaction."""
    transaction_id = capture_freight_payment(body.consolidation_id, body.paypal_order_id)
    return CapturePaymentResponse(success=True, transaction_id=transaction_id)


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeFreightGateway behavior (non-production only)."""
    _refuse_in_production("Gateway")

    gateway = get_gateway()
    if not isinstance(gateway, FakeFreightGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeFreightGateway")

    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
    )
