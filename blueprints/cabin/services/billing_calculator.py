"""
Billing Calculator - Cost arithmetic for cabin stays.

Handles:
- Billing method normalization (per person / flat rate, nightly / weekly)
- Whole-stay billing from a guest count
- Day-by-day billing from actual daily occupancy
- Per-guest-night rate derivation and source/recipient cost splits
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Dict, List, Any

from models.occupancy import DailyOccupancyEntry
from utils.date_ranges import each_night, nights_between


PER_PERSON_PER_DAY = "per-person-per-day"
PER_PERSON_PER_WEEK = "per-person-per-week"
FLAT_RATE_PER_DAY = "flat-rate-per-day"
FLAT_RATE_PER_WEEK = "flat-rate-per-week"

SUPPORTED_METHODS = (
    PER_PERSON_PER_DAY,
    PER_PERSON_PER_WEEK,
    FLAT_RATE_PER_DAY,
    FLAT_RATE_PER_WEEK,
)


def round_money(value: float) -> float:
    """Round to cents, half up."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def normalize_method(method: Optional[str]) -> str:
    """
    Normalize a billing method name.

    Accepts kebab-case and snake_case, and 'night' for 'day':
    'per_person_per_night' -> 'per-person-per-day'
    """
    return (method or "").lower().replace("_", "-").replace("night", "day")


def build_billing_config(settings: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Build a billing config from a reservation_settings row.

    Args:
        settings: reservation_settings dict (or None)

    Returns:
        dict with method, amount, tax_rate, cleaning_fee
    """
    settings = settings or {}
    return {
        "method": settings.get("financial_method") or "per_person_per_night",
        "amount": float(settings.get("nightly_rate") or 0),
        "tax_rate": float(settings.get("tax_rate") or 0),
        "cleaning_fee": float(settings.get("cleaning_fee") or 0),
    }


def validate_billing_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate a billing config.

    Returns:
        List of error messages (empty when valid)
    """
    errors = []

    if not config.get("method"):
        errors.append("Billing method is required")
    elif normalize_method(config["method"]) not in SUPPORTED_METHODS:
        errors.append(f"Unknown billing method: {config['method']}")

    if not config.get("amount") or config["amount"] <= 0:
        errors.append("Billing amount must be greater than 0")

    tax_rate = config.get("tax_rate") or 0
    if tax_rate < 0 or tax_rate > 100:
        errors.append("Tax rate must be between 0 and 100")

    if (config.get("cleaning_fee") or 0) < 0:
        errors.append("Cleaning fee cannot be negative")

    return errors


def _weeks(nights: int) -> int:
    return -(-nights // 7)


def _apply_fees(config: Dict[str, Any], base_amount: float) -> Dict[str, float]:
    cleaning_fee = config.get("cleaning_fee") or 0.0
    subtotal = base_amount + cleaning_fee
    tax_rate = config.get("tax_rate") or 0.0
    tax = subtotal * tax_rate / 100 if tax_rate else 0.0
    return {
        "base_amount": base_amount,
        "cleaning_fee": cleaning_fee,
        "subtotal": subtotal,
        "tax": tax,
        "total": subtotal + tax,
    }


def calculate_stay_billing(config: Dict[str, Any], guests: int, nights: int) -> Dict[str, Any]:
    """
    Bill a whole stay from a single guest count.

    Args:
        config: Billing config (see build_billing_config)
        guests: Number of guests
        nights: Number of nights

    Returns:
        dict with base_amount, cleaning_fee, subtotal, tax, total, details

    Raises:
        ValueError: If the billing method is unknown
    """
    method = normalize_method(config.get("method"))
    amount = config.get("amount") or 0.0

    if method == PER_PERSON_PER_DAY:
        base_amount = guests * nights * amount
        details = f"{guests} guests x {nights} nights x ${amount}/person/night"
    elif method == PER_PERSON_PER_WEEK:
        weeks = _weeks(nights)
        base_amount = guests * weeks * amount
        details = f"{guests} guests x {weeks} weeks x ${amount}/person/week"
    elif method == FLAT_RATE_PER_DAY:
        base_amount = nights * amount
        details = f"{nights} nights x ${amount}/night"
    elif method == FLAT_RATE_PER_WEEK:
        weeks = _weeks(nights)
        base_amount = weeks * amount
        details = f"{weeks} weeks x ${amount}/week"
    else:
        raise ValueError(f"Unknown billing method: {config.get('method')}")

    result = _apply_fees(config, base_amount)
    result["details"] = f"{details} = ${base_amount:.2f}"
    return result


def calculate_day_cost(config: Dict[str, Any], guests: int) -> float:
    """
    Cost of one night for a guest count.

    Weekly methods are pro-rated to a seventh per night; flat-rate methods
    only charge nights that had guests.
    """
    method = normalize_method(config.get("method"))
    amount = config.get("amount") or 0.0

    if method == PER_PERSON_PER_DAY:
        return guests * amount
    if method == PER_PERSON_PER_WEEK:
        return guests * amount / 7
    if method == FLAT_RATE_PER_DAY:
        return amount if guests > 0 else 0.0
    if method == FLAT_RATE_PER_WEEK:
        return amount / 7 if guests > 0 else 0.0
    raise ValueError(f"Unknown billing method: {config.get('method')}")


def calculate_from_daily_occupancy(
    config: Dict[str, Any],
    daily_guests: Dict[str, int],
    start_date: str,
    end_date: str
) -> Dict[str, Any]:
    """
    Bill a stay from actual guest counts per night.

    Only nights inside [start_date, end_date) are billed. With no daily
    data the stay is billed as zero guests over its nights.

    Args:
        config: Billing config
        daily_guests: Map of ISO date -> guests
        start_date: Reservation check-in date
        end_date: Reservation check-out date (exclusive)

    Returns:
        dict with base_amount, cleaning_fee, subtotal, tax, total, details,
        day_breakdown ([{date, guests, cost}])
    """
    stay_nights = set(each_night(start_date, end_date))
    days = sorted(d for d in daily_guests if d in stay_nights)

    if not days:
        result = calculate_stay_billing(config, 0, max(nights_between(start_date, end_date), 0))
        result["day_breakdown"] = []
        return result

    day_breakdown = []
    base_amount = 0.0
    for day in days:
        guests = daily_guests.get(day) or 0
        cost = calculate_day_cost(config, guests)
        base_amount += cost
        day_breakdown.append({"date": day, "guests": guests, "cost": cost})

    result = _apply_fees(config, base_amount)
    result["details"] = f"Calculated from {len(days)} days of actual occupancy"
    result["day_breakdown"] = day_breakdown
    return result


def per_diem_rate(config: Dict[str, Any], entries: Optional[List[DailyOccupancyEntry]] = None) -> float:
    """
    Per-guest-per-night rate used to split costs between family groups.

    Per-person methods give the nightly rate directly (weekly rates divided
    by seven). Flat-rate methods have no per-guest price, so the flat cost of
    the occupied nights is spread over the guest nights in `entries`. Tax is
    folded into the rate so split shares add up to the taxed base amount.

    Args:
        config: Billing config
        entries: Occupancy entries (needed for flat-rate methods)

    Returns:
        float: Rate per guest per night
    """
    method = normalize_method(config.get("method"))
    amount = config.get("amount") or 0.0

    if method == PER_PERSON_PER_DAY:
        rate = amount
    elif method == PER_PERSON_PER_WEEK:
        rate = amount / 7
    elif method in (FLAT_RATE_PER_DAY, FLAT_RATE_PER_WEEK):
        entries = entries or []
        guest_nights = sum(entry.total_guests for entry in entries)
        if guest_nights == 0:
            return 0.0
        flat_cost = sum(calculate_day_cost(config, entry.total_guests) for entry in entries)
        rate = flat_cost / guest_nights
    else:
        raise ValueError(f"Unknown billing method: {config.get('method')}")

    tax_rate = config.get("tax_rate") or 0.0
    return rate * (1 + tax_rate / 100)


def calculate_role_amount(
    entries: List[DailyOccupancyEntry],
    split_role: str,
    per_diem: float
) -> float:
    """
    Share billed to one payment row: sum of the role's guests times the
    rate snapshotted on each entry (falling back to `per_diem`).
    """
    total = 0.0
    for entry in entries:
        rate = entry.per_diem if entry.per_diem is not None else per_diem
        total += entry.guests_for(split_role) * rate
    return total


def calculate_split_totals(
    entries: List[DailyOccupancyEntry],
    per_diem: Optional[float] = None
) -> Dict[str, Any]:
    """
    Split a stay's cost between the source and recipient family groups.

    For each night: source cost = source guests x rate, recipient cost =
    recipient guests x rate. With a single rate across the stay,
    source_total + recipient_total == total_guest_nights x rate.

    Args:
        entries: Occupancy entries
        per_diem: Rate for entries that carry no snapshot

    Returns:
        dict with source_total, recipient_total, total, total_guest_nights
    """
    fallback = per_diem or 0.0
    source_total = calculate_role_amount(entries, "source", fallback)
    recipient_total = calculate_role_amount(entries, "recipient", fallback)

    return {
        "source_total": source_total,
        "recipient_total": recipient_total,
        "total": source_total + recipient_total,
        "total_guest_nights": sum(entry.total_guests for entry in entries),
    }
