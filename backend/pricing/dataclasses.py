from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .services.utils import ZERO

LEASE_TERMS = (36, 48, 60, 72, 84)
DEFAULT_LEASE_TERM = 60
DEFAULT_OPERATING_HOURS = Decimal("180")
DEFAULT_FINANCE_COST_PCT = Decimal("9.5")
DEFAULT_RESIDUAL_PCT = Decimal("15")
EMPTY_MODEL_CODE = "0"
DEFAULT_CONTAINER_TYPE = "40' standard"


@dataclass
class ClearingCharges:
    """Customs and freight charges, local currency."""
    inland_freight: Decimal = ZERO
    sea_freight: Decimal = ZERO
    port_charges: Decimal = ZERO
    transport: Decimal = ZERO
    destuffing: Decimal = ZERO
    duties: Decimal = ZERO
    warranty: Decimal = ZERO

    def total(self) -> Decimal:
        return (self.inland_freight + self.sea_freight + self.port_charges + self.transport
                + self.destuffing + self.duties + self.warranty)


@dataclass
class LocalCosts:
    """Local installation charges, local currency."""
    assembly: Decimal = ZERO
    load_test: Decimal = ZERO
    delivery: Decimal = ZERO
    pdi: Decimal = ZERO
    extras: Decimal = ZERO

    def total(self) -> Decimal:
        return self.assembly + self.load_test + self.delivery + self.pdi + self.extras


@dataclass
class Slot:
    slot_index: int
    is_empty: bool = True

    # series / model
    series_code: str = ""
    model_code: str = ""
    model_name: str = ""
    model_material_number: str = ""
    eur_cost: Decimal = ZERO
    discount_pct: Decimal = ZERO
    quantity: int = 1
    operating_hours_per_month: Decimal = DEFAULT_OPERATING_HOURS
    lease_term_months: int = DEFAULT_LEASE_TERM

    # factory configuration (EUR)
    configuration: Dict[str, str] = field(default_factory=dict)
    configuration_cost: Decimal = ZERO
    attachments: List[str] = field(default_factory=list)
    attachments_cost: Decimal = ZERO

    # local add-ons (local currency)
    local_battery_cost: Decimal = ZERO
    local_attachment_cost: Decimal = ZERO
    local_telematics_cost: Decimal = ZERO
    clearing_charges: ClearingCharges = field(default_factory=ClearingCharges)
    local_costs: LocalCosts = field(default_factory=LocalCosts)

    # commercial
    markup_pct: Decimal = ZERO
    residual_value_pct: Decimal = DEFAULT_RESIDUAL_PCT
    finance_cost_pct: Decimal = DEFAULT_FINANCE_COST_PCT
    maintenance_rate_truck_per_hr: Decimal = ZERO
    maintenance_rate_tyres_per_hr: Decimal = ZERO
    maintenance_rate_attachment_per_hr: Decimal = ZERO
    telematics_subscription_cost_per_month: Decimal = ZERO
    telematics_subscription_selling_per_month: Decimal = ZERO
    operator_price_per_month: Decimal = ZERO

    @property
    def is_active(self) -> bool:
        return not self.is_empty and self.model_code != EMPTY_MODEL_CODE

    @property
    def maintenance_rate_per_hr(self) -> Decimal:
        return (self.maintenance_rate_truck_per_hr + self.maintenance_rate_tyres_per_hr
                + self.maintenance_rate_attachment_per_hr)


@dataclass
class SlotPricing:
    gross_cost_eur: Decimal
    factory_cost_eur: Decimal
    factory_cost: Decimal
    landed_cost: Decimal
    selling_price: Decimal
    margin: Decimal
    residual_value: Decimal
    lease_payment: Decimal
    maintenance_monthly: Decimal
    total_monthly: Decimal
    cost_per_hour: Decimal
    total_contract_value: Decimal


@dataclass
class QuoteTotals:
    total_sales_price: Decimal = ZERO
    total_factory_cost: Decimal = ZERO
    total_landed_cost: Decimal = ZERO
    average_margin: Decimal = ZERO
    total_lease_payment: Decimal = ZERO
    total_monthly: Decimal = ZERO
    total_maintenance: Decimal = ZERO
    total_residual_value: Decimal = ZERO
    total_contract_value: Decimal = ZERO
    irr: Optional[Decimal] = None
    npv: Decimal = ZERO
    commission: Decimal = ZERO
    unit_count: int = 0
    average_term_months: int = 0
    payback_period: Optional[int] = None
    cash_flows: List[Decimal] = field(default_factory=list)


@dataclass(frozen=True)
class SuggestionSignature:
    """Canonical fleet composition + ROE a shipping suggestion was built from."""
    slot_hash: str
    factory_roe: Decimal

    def as_dict(self) -> Dict[str, Any]:
        return {"slot_hash": self.slot_hash, "factory_roe": str(self.factory_roe)}


@dataclass
class ShippingEntry:
    id: str
    description: str = ""
    container_type: str = DEFAULT_CONTAINER_TYPE
    quantity: int = 1
    cost: Decimal = ZERO
    source: str = "manual"  # manual | suggested
    series_codes: List[str] = field(default_factory=list)
    suggested_at: Optional[str] = None
    needs_manual_entry: bool = False
    signature: Optional[SuggestionSignature] = None


@dataclass
class ContainerMappingData:
    series_code: str
    category: str
    qty_per_container: int
    container_type: str = DEFAULT_CONTAINER_TYPE
    container_cost_eur: Decimal = ZERO
    model: str = ""
    notes: str = ""


@dataclass
class CommissionTierData:
    min_margin: Decimal
    max_margin: Decimal
    commission_rate: Decimal
