"""
Pricing calculator for job postings

The catalog tables below are the only place plan and add-on prices live.
All amounts are integer minor units (cents); Decimal is used only to
format amounts for display.
"""
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
import enum
import logging

from ..exceptions import InvalidCatalogItem

logger = logging.getLogger(__name__)


class Plan(str, enum.Enum):
    """Purchasable posting tier"""
    BASIC = "basic"
    STANDARD = "standard"
    FEATURED = "featured"
    UNLIMITED = "unlimited"


class Addon(str, enum.Enum):
    """Optional paid enhancement stacked onto a plan"""
    BOOST = "boost"
    HIGHLIGHT = "highlight"
    URGENT = "urgent"
    EXTENDED = "extended"


@dataclass(frozen=True)
class PlanSpec:
    name: str
    price_cents: int
    duration_days: Optional[int]  # None means the posting never expires
    featured_placement: bool
    features: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AddonSpec:
    name: str
    price_cents: int
    description: str
    extra_days: int = 0
    featured_placement: bool = False


PLAN_CATALOG: Dict[Plan, PlanSpec] = {
    Plan.BASIC: PlanSpec(
        name="Basic",
        price_cents=0,
        duration_days=15,
        featured_placement=False,
        features=("15-day listing", "Standard placement"),
    ),
    Plan.STANDARD: PlanSpec(
        name="Standard",
        price_cents=2000,
        duration_days=30,
        featured_placement=False,
        features=("30-day listing", "Standard placement", "Applicant dashboard"),
    ),
    Plan.FEATURED: PlanSpec(
        name="Featured",
        price_cents=5000,
        duration_days=30,
        featured_placement=True,
        features=("30-day listing", "Featured placement", "Applicant dashboard"),
    ),
    Plan.UNLIMITED: PlanSpec(
        name="Unlimited",
        price_cents=15000,
        duration_days=None,
        featured_placement=True,
        features=("No expiry", "Featured placement", "Applicant dashboard"),
    ),
}

ADDON_CATALOG: Dict[Addon, AddonSpec] = {
    Addon.BOOST: AddonSpec(
        name="Boost",
        price_cents=1000,
        description="Eligible for featured placement on the listings page",
        featured_placement=True,
    ),
    Addon.HIGHLIGHT: AddonSpec(
        name="Highlight",
        price_cents=500,
        description="Highlighted card in search results",
    ),
    Addon.URGENT: AddonSpec(
        name="Urgent",
        price_cents=1500,
        description="Urgent hiring badge",
    ),
    Addon.EXTENDED: AddonSpec(
        name="Extended",
        price_cents=2000,
        description="Keeps the listing up for 7 extra days",
        extra_days=7,
    ),
}


@dataclass(frozen=True)
class PriceQuote:
    """Priced plan + add-on selection"""
    plan: Plan
    addons: Tuple[Addon, ...]
    plan_price_cents: int
    addon_prices: Dict[str, int] = field(default_factory=dict)
    total_cents: int = 0
    currency: str = "usd"

    @property
    def addon_values(self) -> List[str]:
        return [addon.value for addon in self.addons]

    @property
    def is_free(self) -> bool:
        return self.total_cents == 0


def parse_plan(value) -> Plan:
    """Resolve a plan identifier, rejecting anything not in the catalog"""
    if isinstance(value, Plan):
        return value
    try:
        plan = Plan(str(value).strip().lower())
    except ValueError:
        raise InvalidCatalogItem("plan", value)
    if plan not in PLAN_CATALOG:
        raise InvalidCatalogItem("plan", value)
    return plan


def parse_addons(values: Optional[Iterable]) -> Tuple[Addon, ...]:
    """Resolve add-on identifiers into a sorted, duplicate-free tuple"""
    resolved = set()
    for value in values or ():
        if isinstance(value, Addon):
            addon = value
        else:
            try:
                addon = Addon(str(value).strip().lower())
            except ValueError:
                raise InvalidCatalogItem("addon", value)
        if addon not in ADDON_CATALOG:
            raise InvalidCatalogItem("addon", value)
        resolved.add(addon)
    return tuple(sorted(resolved, key=lambda a: a.value))


def base_price(plan) -> int:
    return PLAN_CATALOG[parse_plan(plan)].price_cents


def addon_price(addon) -> int:
    (resolved,) = parse_addons([addon])
    return ADDON_CATALOG[resolved].price_cents


def price(plan, addons: Optional[Iterable] = None) -> int:
    """Total price in cents: plan base price plus each distinct add-on"""
    return quote(plan, addons).total_cents


def quote(plan, addons: Optional[Iterable] = None, currency: str = "usd") -> PriceQuote:
    """Price a plan + add-on selection with a per-item breakdown"""
    resolved_plan = parse_plan(plan)
    resolved_addons = parse_addons(addons)

    plan_price = PLAN_CATALOG[resolved_plan].price_cents
    addon_prices = {addon.value: ADDON_CATALOG[addon].price_cents for addon in resolved_addons}
    total = plan_price + sum(addon_prices.values())

    return PriceQuote(
        plan=resolved_plan,
        addons=resolved_addons,
        plan_price_cents=plan_price,
        addon_prices=addon_prices,
        total_cents=total,
        currency=currency.lower(),
    )


def plan_duration(plan, addons: Optional[Iterable] = None) -> Optional[timedelta]:
    """Listing window for the selection, or None when the posting never expires"""
    spec = PLAN_CATALOG[parse_plan(plan)]
    if spec.duration_days is None:
        return None
    extra_days = sum(ADDON_CATALOG[addon].extra_days for addon in parse_addons(addons))
    return timedelta(days=spec.duration_days + extra_days)


def includes_featured_placement(plan, addons: Optional[Iterable] = None) -> bool:
    """Whether the selection entitles the posting to the featured flag"""
    if PLAN_CATALOG[parse_plan(plan)].featured_placement:
        return True
    return any(ADDON_CATALOG[addon].featured_placement for addon in parse_addons(addons))


def format_amount(amount_cents: int, currency: str = "usd") -> str:
    """Format minor units for display, e.g. 2000 -> '$20.00'"""
    amount = (Decimal(amount_cents) / Decimal(100)).quantize(Decimal("0.01"))
    if currency.lower() == "usd":
        return f"${amount}"
    return f"{amount} {currency.upper()}"


def catalog(currency: str = "usd") -> Dict[str, Dict]:
    """Public price list for the pricing page"""
    return {
        "currency": currency.lower(),
        "plans": {
            plan.value: {
                "name": spec.name,
                "price_cents": spec.price_cents,
                "price_display": format_amount(spec.price_cents, currency),
                "duration_days": spec.duration_days,
                "featured_placement": spec.featured_placement,
                "features": list(spec.features),
            }
            for plan, spec in PLAN_CATALOG.items()
        },
        "addons": {
            addon.value: {
                "name": spec.name,
                "price_cents": spec.price_cents,
                "price_display": format_amount(spec.price_cents, currency),
                "description": spec.description,
            }
            for addon, spec in ADDON_CATALOG.items()
        },
    }
