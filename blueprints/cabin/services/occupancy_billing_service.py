"""
Occupancy Billing Service - Keeps payments in step with daily guest counts.

Handles:
- Writing a reservation's daily occupancy onto every payment row
- Recomputing unlocked row amounts from their share of the occupancy
- Refusing recalculation once money has been received (billing lock)
- Mirroring guest counts into check-in sessions
- Reading occupancy back (payment snapshot, then check-in sessions)

Rows are written one UPDATE at a time and committed individually, so
a row's amount and snapshot always agree. Two concurrent updates of the
same reservation resolve as last writer wins.
"""

import logging
import sqlite3
from typing import Optional, Dict, List, Any

from database import get_db
from models.checkin_session import get_daily_occupancy_from_sessions, mirror_daily_occupancy
from models.occupancy import (
    DailyOccupancyEntry,
    parse_occupancy_entries,
    load_occupancy,
    serialize_occupancy,
    carry_stored_rates,
    nights_within,
    price_entries,
    reprice_entries,
    guests_by_date,
)
from models.payment import (
    get_reservation_payments,
    create_payment,
    write_payment_billing,
    is_payment_locked,
)
from models.reservation_crud import get_reservation_by_id
from models.reservation_settings import get_reservation_settings
from utils.audit import log_audit, log_create
from blueprints.cabin.services.billing_calculator import (
    build_billing_config,
    calculate_from_daily_occupancy,
    calculate_role_amount,
    per_diem_rate,
    round_money,
)

logger = logging.getLogger(__name__)


NOTICE_COUNTS_ONLY = "Guest counts updated"
NOTICE_COUNTS_AND_BILLING = "Guest counts and billing updated"


def _result(
    success: bool,
    error: Optional[str] = None,
    error_code: Optional[str] = None,
    notice: Optional[str] = None,
    payment_ids: Optional[List[int]] = None,
    billing_locked: bool = False
) -> Dict[str, Any]:
    return {
        "success": success,
        "error": error,
        "error_code": error_code,
        "notice": notice,
        "payment_ids": payment_ids or [],
        "billing_locked": billing_locked,
    }


def _row_amount(
    config: Dict[str, Any],
    entries: List[DailyOccupancyEntry],
    split_role: str,
    per_diem: float
) -> float:
    """Amount billed to one row. The cleaning fee is only carried by full rows."""
    amount = calculate_role_amount(entries, split_role, per_diem)
    if split_role == "full" and config.get("cleaning_fee"):
        tax_rate = config.get("tax_rate") or 0.0
        amount += config["cleaning_fee"] * (1 + tax_rate / 100)
    return round_money(amount)


def _stored_snapshot(payments) -> List[DailyOccupancyEntry]:
    """The reservation's stored occupancy: 'full' row first, then 'source', then 'recipient'."""
    candidates = payments.by_role("full") + payments.by_role("source") + payments.by_role("recipient")
    for payment in candidates:
        entries = load_occupancy(payment["daily_occupancy"])
        if entries:
            return entries
    return []


def _sync_occupancy(
    organization_id: int,
    reservation_id: int,
    raw_entries,
    skip_billing_recalc: bool,
    show_notice: bool,
    actor_id: Optional[int],
    reprice: bool
) -> Dict[str, Any]:
    try:
        entries = parse_occupancy_entries(raw_entries)
    except ValueError as e:
        return _result(False, error=str(e), error_code="invalid_occupancy")

    try:
        reservation = get_reservation_by_id(organization_id, reservation_id)
        if not reservation:
            return _result(False, error="Reservation not found", error_code="not_found")

        payments = get_reservation_payments(organization_id, reservation_id)
        settings = get_reservation_settings(organization_id)
    except sqlite3.Error as e:
        logger.error(f"Error loading billing data for reservation {reservation_id}: {e}", exc_info=True)
        return _result(False, error="Could not load billing data", error_code="store_error")

    stay_entries = nights_within(entries, reservation["start_date"], reservation["end_date"])
    if len(stay_entries) != len(entries):
        logger.info(
            f"Ignoring {len(entries) - len(stay_entries)} occupancy day(s) outside "
            f"reservation {reservation_id} ({reservation['start_date']} to {reservation['end_date']})"
        )
    entries = carry_stored_rates(stay_entries, _stored_snapshot(payments))

    recalc = not skip_billing_recalc
    config = build_billing_config(settings)
    per_diem = None

    if recalc:
        if settings is None:
            logger.warning(
                f"No billing settings for organization {organization_id}; "
                f"amounts of reservation {reservation_id} left unchanged"
            )
            recalc = False
        else:
            try:
                per_diem = per_diem_rate(config, entries)
            except ValueError as e:
                return _result(False, error=str(e), error_code="invalid_settings")

            entries = reprice_entries(entries, per_diem) if reprice else price_entries(entries, per_diem)

    snapshot = serialize_occupancy(entries)
    db = get_db()

    # No payment yet: the whole stay is billed to the booking group
    if len(payments) == 0:
        amount = 0.0
        if recalc:
            billing = calculate_from_daily_occupancy(
                config, guests_by_date(entries), reservation["start_date"], reservation["end_date"]
            )
            amount = round_money(billing["total"])
        try:
            payment_id = create_payment(
                organization_id=organization_id,
                reservation_id=reservation_id,
                family_group=reservation["family_group"],
                amount=amount,
                split_role="full",
                status="pending",
                daily_occupancy=snapshot,
                description=f"Cabin stay {reservation['start_date']} to {reservation['end_date']}",
                created_by=actor_id,
            )
        except sqlite3.Error as e:
            db.rollback()
            logger.error(f"Error creating payment for reservation {reservation_id}: {e}", exc_info=True)
            return _result(False, error="Could not save billing", error_code="store_error")

        log_create("payment", payment_id, organization_id, actor_id,
                   data={"amount": amount, "split_role": "full"})
        payment_ids = [payment_id]
        billing_updated = recalc

    else:
        # Several recipient rows each carry their own split breakdown, so
        # neither their snapshot nor their amount is rewritten here; they
        # change through update_split_occupancy.
        recipient_rows = payments.by_role("recipient")
        skip_recipients = len(recipient_rows) > 1

        payment_ids = []
        billing_updated = False
        for row in payments:
            if skip_recipients and row["split_role"] == "recipient":
                continue

            locked = is_payment_locked(row)
            amount = None
            if recalc and not locked:
                amount = _row_amount(config, entries, row["split_role"], per_diem)

            try:
                write_payment_billing(row["id"], snapshot, amount, updated_by=actor_id)
            except sqlite3.Error as e:
                db.rollback()
                logger.error(f"Error updating payment {row['id']}: {e}", exc_info=True)
                return _result(False, error="Could not save billing", error_code="store_error",
                               payment_ids=payment_ids, billing_locked=payments.any_locked)

            payment_ids.append(row["id"])
            if amount is not None:
                billing_updated = True
                if amount != row["amount"]:
                    log_audit("RECALCULATE", "payment", row["id"], organization_id, actor_id,
                              before={"amount": row["amount"]}, after={"amount": amount})

        if skip_recipients:
            logger.info(
                f"Reservation {reservation_id} has {len(recipient_rows)} recipient payments; "
                f"their shares are edited through their splits"
            )

    try:
        mirror_daily_occupancy(organization_id, guests_by_date(entries))
    except sqlite3.Error as e:
        db.rollback()
        logger.error(f"Error mirroring occupancy into check-in sessions: {e}", exc_info=True)
        return _result(False, error="Could not update check-in sessions", error_code="store_error",
                       payment_ids=payment_ids, billing_locked=payments.any_locked)

    notice = None
    if show_notice:
        notice = NOTICE_COUNTS_AND_BILLING if billing_updated else NOTICE_COUNTS_ONLY

    logger.info(
        f"Occupancy synced for reservation {reservation_id}: "
        f"{len(entries)} days, {len(payment_ids)} payment(s), billing_updated={billing_updated}"
    )

    return _result(True, notice=notice, payment_ids=payment_ids, billing_locked=payments.any_locked)


# =============================================================================
# PUBLIC OPERATIONS
# =============================================================================

def update_occupancy(
    organization_id: int,
    reservation_id: int,
    entries,
    skip_billing_recalc: bool = False,
    show_notice: bool = True,
    actor_id: Optional[int] = None
) -> Dict[str, Any]:
    """
    Save a reservation's daily occupancy and re-bill its payments.

    Every payment row gets the new snapshot. Unlocked rows also get their
    amount recomputed from their share ('full': all guests, 'source':
    source guests, 'recipient': recipient guests). Locked rows keep their
    amount. A reservation without payments gets a single 'full' row.

    Args:
        organization_id: Organization ID
        reservation_id: Reservation ID
        entries: List of DailyOccupancyEntry or request dicts
        skip_billing_recalc: Only store the snapshot, keep amounts
        show_notice: Include a human readable notice in the result
        actor_id: Member making the change

    Returns:
        dict: {success, error, error_code, notice, payment_ids, billing_locked}
        error_code is one of 'invalid_occupancy', 'invalid_settings',
        'not_found', 'store_error'
    """
    return _sync_occupancy(
        organization_id, reservation_id, entries,
        skip_billing_recalc=skip_billing_recalc,
        show_notice=show_notice,
        actor_id=actor_id,
        reprice=False,
    )


def recalculate_billing(
    organization_id: int,
    reservation_id: int,
    entries,
    actor_id: Optional[int] = None
) -> Dict[str, Any]:
    """
    Force a recalculation of a reservation's payments at current rates.

    Refused when any payment row of the reservation is locked.

    Returns:
        dict: same shape as update_occupancy; error_code 'billing_locked'
        or 'not_found' when refused
    """
    try:
        payments = get_reservation_payments(organization_id, reservation_id)
    except sqlite3.Error as e:
        logger.error(f"Error loading payments for reservation {reservation_id}: {e}", exc_info=True)
        return _result(False, error="Could not load billing data", error_code="store_error")

    if len(payments) == 0:
        return _result(False, error="Payment not found", error_code="not_found")

    if payments.any_locked:
        logger.info(f"Recalculation refused for reservation {reservation_id}: billing locked")
        return _result(
            False,
            error="Billing is locked. Unlock billing to recalculate charges",
            error_code="billing_locked",
            payment_ids=payments.ids,
            billing_locked=True,
        )

    return _sync_occupancy(
        organization_id, reservation_id, entries,
        skip_billing_recalc=False,
        show_notice=True,
        actor_id=actor_id,
        reprice=True,
    )


def fetch_occupancy_data(organization_id: int, reservation_id: int) -> List[DailyOccupancyEntry]:
    """
    Read a reservation's daily occupancy.

    The payment snapshot is the source of truth ('full' row first, then
    'source'). Without one, guest counts recorded in check-in sessions
    during the stay are used.

    Returns:
        list[DailyOccupancyEntry] sorted by date (empty on error)
    """
    try:
        reservation = get_reservation_by_id(organization_id, reservation_id)
        if not reservation:
            return []

        entries = _stored_snapshot(get_reservation_payments(organization_id, reservation_id))
        if entries:
            return entries

        daily = get_daily_occupancy_from_sessions(
            organization_id, reservation["start_date"], reservation["end_date"]
        )
        return parse_occupancy_entries([
            {"date": day, "sourceGuests": guests} for day, guests in daily.items()
        ])

    except (sqlite3.Error, ValueError) as e:
        logger.error(f"Error fetching occupancy for reservation {reservation_id}: {e}", exc_info=True)
        return []


def get_billing_lock_status(organization_id: int, reservation_id: int) -> bool:
    """True when any payment row of the reservation is locked."""
    try:
        return get_reservation_payments(organization_id, reservation_id).any_locked
    except sqlite3.Error as e:
        logger.error(f"Error fetching billing lock status for reservation {reservation_id}: {e}",
                     exc_info=True)
        return False
