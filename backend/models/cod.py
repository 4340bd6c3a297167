import re
from datetime import datetime
from typing import List, Optional, get_args, get_origin

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from config.constants import PRICING_FIXED, PRICING_TYPES, COD_REASONS

HHMM_REGEX = re.compile(r"^(\d{1,2}):(\d{2})")


def _list_item_model(annotation):
    args = get_args(annotation)
    if args and isinstance(args[0], type) and issubclass(args[0], BaseModel):
        return args[0]
    return None


class CodModel(BaseModel):
    """
    Base for every section of the COD settings document.

    The document is edited piecemeal from the admin panel, so sections are
    parsed leniently: nulls fall back to defaults, a non-list where a list is
    expected becomes empty and non-object list entries are dropped.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _degrade(cls, data):
        if isinstance(data, BaseModel):
            return data
        if not isinstance(data, dict):
            return {}

        cleaned = {}
        for name, field in cls.model_fields.items():
            key = field.alias or name
            if key not in data:
                if name not in data:
                    continue
                key = name

            value = data[key]
            if value is None:
                continue

            if get_origin(field.annotation) in (list, List):
                if not isinstance(value, (list, tuple, set)):
                    continue
                item_model = _list_item_model(field.annotation)
                if item_model is not None:
                    value = [v for v in value if isinstance(v, (dict, item_model))]

            cleaned[key] = value
        return cleaned


# =====================================================
# PRICING
# =====================================================

class PricingTier(CodModel):
    min_amount: float = 0
    max_amount: Optional[float] = None
    charge: float = 0


class Zone(CodModel):
    name: str = ""
    pincodes: List[str] = []
    states: List[str] = []
    cities: List[str] = []
    charge: float = 0
    min_charge: float = 0
    max_charge: Optional[float] = None


class LocationBased(CodModel):
    enabled: bool = False
    zones: List[Zone] = []


class Pricing(CodModel):
    type: str = PRICING_FIXED
    fixed_amount: Optional[float] = None
    percentage: float = 0
    min_charge: float = 0
    max_charge: Optional[float] = None
    tiers: List[PricingTier] = []
    location_based: LocationBased = LocationBased()

    @field_validator("type", mode="before")
    @classmethod
    def _known_type(cls, value):
        value = str(value or "").strip().lower()
        return value if value in PRICING_TYPES else PRICING_FIXED


# =====================================================
# COURIERS
# =====================================================

class Courier(CodModel):
    name: str = ""
    code: str = ""
    percentage: float = 0
    min_charge: float = 0
    max_charge: Optional[float] = None
    enabled: bool = False


class CourierCharges(CodModel):
    enabled: bool = False
    couriers: List[Courier] = []


# =====================================================
# BUSINESS RULES
# =====================================================

class TimeRestrictions(CodModel):
    enabled: bool = False
    start_time: str = "00:00"
    end_time: str = "23:59"
    days_of_week: List[int] = []

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _zero_pad(cls, value):
        match = HHMM_REGEX.match(str(value).strip())
        if not match:
            return value
        return f"{int(match.group(1)):02d}:{match.group(2)}"


class CodRules(CodModel):
    min_order_value: float = 0
    max_order_value: float = 0
    excluded_categories: List[str] = []
    excluded_products: List[str] = []
    excluded_pincodes: List[str] = []
    excluded_states: List[str] = []
    time_restrictions: TimeRestrictions = TimeRestrictions()


class CodAnalytics(CodModel):
    total_cod_orders: int = 0
    total_cod_revenue: float = 0
    average_cod_charge: float = 0
    last_updated: Optional[datetime] = None


# =====================================================
# SETTINGS DOCUMENT
# =====================================================

class CodSettings(CodModel):
    enabled: bool = False
    charge: float = 0                     # legacy fixed charge
    pricing: Pricing = Pricing()
    courier_charges: CourierCharges = CourierCharges()
    rules: CodRules = CodRules()
    analytics: CodAnalytics = CodAnalytics()


# =====================================================
# CHECKOUT INPUTS
# =====================================================

class CartLine(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")

    product_id: str = Field(
        "", validation_alias=AliasChoices("productId", "product_id", "id"),
    )
    category_id: str = Field(
        "", validation_alias=AliasChoices("categoryId", "category_id", "category"),
    )
    quantity: int = Field(1, ge=0)
    unit_price: float = Field(
        0, ge=0, validation_alias=AliasChoices("unitPrice", "unit_price", "price"),
    )

    @field_validator("product_id", "category_id", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value


class DeliveryAddress(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")

    pincode: str = Field(
        "", validation_alias=AliasChoices("pincode", "postalCode", "postal_code"),
    )
    state: str = ""
    city: str = ""

    @field_validator("pincode", "state", "city", mode="before")
    @classmethod
    def _strip(cls, value):
        return "" if value is None else str(value).strip()


# =====================================================
# DECISION
# =====================================================

class CodDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    available: bool
    charge: Optional[float] = None
    strategy: Optional[str] = None
    code: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def allow(cls, charge: float, strategy: str) -> "CodDecision":
        return cls(available=True, charge=round(max(charge, 0), 2), strategy=strategy)

    @classmethod
    def deny(cls, code: str) -> "CodDecision":
        return cls(available=False, code=code, reason=COD_REASONS[code])
