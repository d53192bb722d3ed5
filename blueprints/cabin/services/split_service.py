"""
Split Service - Sharing a stay's cost with other family groups.

Handles:
- Splitting a reservation's payment into a source share and one
  deferred payment per recipient group
- Editing a split's nightly breakdown until the recipient has paid
- Split detail lookups

The source group pays for its own guests, each recipient for the guests
it brought, all at the per-guest-night rate snapshotted on each night.
"""

import logging
import sqlite3
from typing import Optional, Dict, List, Any

from database import get_db
from models.member import get_member_by_id, MANAGER_ROLES
from models.occupancy import (
    DailyOccupancyEntry,
    parse_occupancy_entries,
    load_occupancy,
    serialize_occupancy,
    carry_stored_rates,
    nights_within,
    price_entries,
)
from models.payment import (
    get_reservation_payments,
    create_payment,
    write_payment_billing,
    update_payment_fields,
    delete_unpaid_payment,
    is_payment_locked,
)
from models.payment_split import (
    create_payment_split,
    get_split_by_id,
    get_splits_for_source_payment,
    update_split_daily_occupancy,
    set_notification_status,
)
from models.reservation_crud import get_reservation_by_id
from models.reservation_settings import get_reservation_settings
from utils.audit import log_audit
from utils.date_ranges import to_iso
from utils.datetime_helpers import season_due_date
from blueprints.cabin.services.billing_calculator import (
    build_billing_config,
    calculate_role_amount,
    calculate_split_totals,
    per_diem_rate,
    round_money,
)
from blueprints.cabin.services.notification_service import (
    dispatch_notification,
    SPLIT_PAYMENT_CREATED,
)

logger = logging.getLogger(__name__)


def _failure(error: str, error_code: str) -> Dict[str, Any]:
    return {"success": False, "error": error, "error_code": error_code}


def _merge_recipient_guests(
    source_entries: List[DailyOccupancyEntry],
    recipient_guests: List[Dict[str, int]],
    per_diem: float
) -> List[DailyOccupancyEntry]:
    """
    Source row snapshot: source guests per night plus every recipient's
    guests for the same night, so the whole stay can be read back from it.
    """
    totals = {}
    for guests in recipient_guests:
        for day, count in guests.items():
            totals[day] = totals.get(day, 0) + count

    merged = [
        DailyOccupancyEntry(
            date=entry.date,
            source_guests=entry.source_guests,
            recipient_guests=totals.pop(entry.date, 0),
            per_diem=entry.per_diem,
        )
        for entry in source_entries
    ]
    merged.extend(
        DailyOccupancyEntry(date=day, recipient_guests=count, per_diem=per_diem)
        for day, count in totals.items()
    )
    return parse_occupancy_entries(merged)


def _recipient_entries(
    source_entries: List[DailyOccupancyEntry],
    recipient_occupancy: List[DailyOccupancyEntry]
) -> List[DailyOccupancyEntry]:
    """Nightly breakdown stored on one split: source and this recipient's guests."""
    by_date = {entry.date: entry for entry in source_entries}
    entries = []
    for item in recipient_occupancy:
        source = by_date.get(item.date)
        entries.append(DailyOccupancyEntry(
            date=item.date,
            source_guests=source.source_guests if source else 0,
            recipient_guests=item.guests_for("full"),
        ))
    return entries


def _pick_source_payment(rows: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Prefer a row carrying guests, then one with an amount, then the oldest."""
    for row in rows:
        if any(entry.total_guests > 0 for entry in load_occupancy(row["daily_occupancy"])):
            return row
    for row in rows:
        if (row["amount"] or 0) > 0:
            return row
    return rows[0] if rows else None


# =============================================================================
# CREATE
# =============================================================================

def create_split_payments(
    organization_id: int,
    reservation_id: int,
    source_family_group: str,
    recipients: List[Dict[str, Any]],
    entries,
    actor_id: Optional[int] = None,
    description: Optional[str] = None
) -> Dict[str, Any]:
    """
    Split a reservation's cost between the booking group and recipients.

    The booking group's existing payment (or a new one) becomes the
    'source' row billed for source guests; unpaid duplicates of it are
    removed. Each recipient gets a 'deferred' payment due at season end
    plus the configured offset, and a split record with its nightly
    breakdown. Recipients are notified best effort.

    Args:
        organization_id: Organization ID
        reservation_id: Reservation being split
        source_family_group: Group that booked the stay
        recipients: [{'family_group', 'member_id' (optional),
                     'display_name' (optional), 'daily_occupancy': [{date, guests}]}]
        entries: Source group's nightly occupancy (sourceGuests per date)
        actor_id: Member making the split
        description: Payment description

    Returns:
        dict: {success, source_payment_id, source_amount, splits: [...]} or
        {success: False, error, error_code} with error_code one of
        'invalid_occupancy', 'invalid_settings', 'not_found',
        'billing_locked', 'store_error'
    """
    if not recipients:
        return _failure("At least one recipient is required", "invalid_occupancy")

    try:
        source_entries = parse_occupancy_entries(entries)
    except ValueError as e:
        return _failure(str(e), "invalid_occupancy")

    try:
        reservation = get_reservation_by_id(organization_id, reservation_id)
        if not reservation:
            return _failure("Reservation not found", "not_found")
        payments = get_reservation_payments(organization_id, reservation_id)
        settings = get_reservation_settings(organization_id)
    except sqlite3.Error as e:
        logger.error(f"Error loading split data for reservation {reservation_id}: {e}", exc_info=True)
        return _failure("Could not load billing data", "store_error")

    # A new split is always priced at the organization's current rate
    source_entries = carry_stored_rates(
        nights_within(source_entries, reservation["start_date"], reservation["end_date"])
    )
    config = build_billing_config(settings)

    try:
        recipient_plans = []
        for recipient in recipients:
            family_group = (recipient.get("family_group") or "").strip()
            if not family_group:
                raise ValueError("Recipient family group is required")
            if family_group == source_family_group:
                raise ValueError("Cannot split a stay with the booking family group")
            recipient_plans.append({
                "recipient": recipient,
                "family_group": family_group,
                "occupancy": nights_within(
                    parse_occupancy_entries(recipient.get("daily_occupancy")),
                    reservation["start_date"], reservation["end_date"],
                ),
            })
    except ValueError as e:
        return _failure(str(e), "invalid_occupancy")

    for plan in recipient_plans:
        plan["entries"] = _recipient_entries(source_entries, plan["occupancy"])
        if sum(entry.recipient_guests for entry in plan["entries"]) == 0:
            return _failure(f"{plan['family_group']} has no guests to split", "invalid_occupancy")

    merged = _merge_recipient_guests(
        source_entries,
        [{e.date: e.recipient_guests for e in plan["entries"]} for plan in recipient_plans],
        None,
    )
    try:
        per_diem = per_diem_rate(config, merged)
    except ValueError as e:
        return _failure(str(e), "invalid_settings")

    source_snapshot = price_entries(merged, per_diem)
    for plan in recipient_plans:
        plan["entries"] = price_entries(plan["entries"], per_diem)
        plan["amount"] = round_money(calculate_role_amount(plan["entries"], "recipient", per_diem))

    source_rows = [
        row for row in payments
        if row["family_group"] == source_family_group and row["split_role"] in ("full", "source")
    ]
    if any(is_payment_locked(row) for row in source_rows):
        return _failure("Cannot split a payment that has already been paid", "billing_locked")

    source_amount = round_money(calculate_role_amount(source_snapshot, "source", per_diem))

    due_date = to_iso(season_due_date(
        (settings or {}).get("season_end_month"),
        (settings or {}).get("season_end_day"),
        (settings or {}).get("season_payment_deadline_offset_days"),
    ))
    names = ", ".join(
        plan["recipient"].get("display_name") or plan["family_group"] for plan in recipient_plans
    )
    description = description or f"Cabin stay {reservation['start_date']} to {reservation['end_date']}"

    db = get_db()
    try:
        target = _pick_source_payment(source_rows)
        if target:
            source_payment_id = target["id"]
            update_payment_fields(
                source_payment_id, updated_by=actor_id, commit=False,
                split_role="source", notes=f"Cost split with: {names}"
            )
            write_payment_billing(
                source_payment_id, serialize_occupancy(source_snapshot), source_amount,
                updated_by=actor_id, commit=False
            )
            for row in source_rows:
                if row["id"] != source_payment_id:
                    delete_unpaid_payment(row["id"], commit=False)
        else:
            source_payment_id = create_payment(
                organization_id=organization_id,
                reservation_id=reservation_id,
                family_group=source_family_group,
                amount=source_amount,
                split_role="source",
                status="deferred",
                daily_occupancy=serialize_occupancy(source_snapshot),
                due_date=due_date,
                description=description,
                notes=f"Cost split with: {names}",
                created_by=actor_id,
                commit=False,
            )

        splits = []
        for plan in recipient_plans:
            recipient = plan["recipient"]
            payment_id = create_payment(
                organization_id=organization_id,
                reservation_id=reservation_id,
                family_group=plan["family_group"],
                amount=plan["amount"],
                split_role="recipient",
                status="deferred",
                daily_occupancy=serialize_occupancy(plan["entries"]),
                due_date=due_date,
                description=f"Guest cost split - {reservation['start_date']} to {reservation['end_date']}",
                notes=f"Split from {source_family_group}",
                created_by=actor_id,
                commit=False,
            )
            split_id = create_payment_split(
                organization_id=organization_id,
                source_payment_id=source_payment_id,
                split_payment_id=payment_id,
                source_family_group=source_family_group,
                split_to_family_group=plan["family_group"],
                daily_occupancy_split=serialize_occupancy(plan["entries"]),
                source_member_id=actor_id,
                split_to_member_id=recipient.get("member_id"),
                created_by=actor_id,
                commit=False,
            )
            splits.append({
                "split_id": split_id,
                "payment_id": payment_id,
                "family_group": plan["family_group"],
                "amount": plan["amount"],
            })

        db.commit()

    except sqlite3.Error as e:
        db.rollback()
        logger.error(f"Error creating split payments for reservation {reservation_id}: {e}", exc_info=True)
        return _failure("Could not save split payments", "store_error")

    log_audit("SPLIT", "payment", source_payment_id, organization_id, actor_id,
              after={"source_amount": source_amount, "splits": splits})
    logger.info(
        f"Reservation {reservation_id} split: source payment {source_payment_id} "
        f"${source_amount:.2f}, {len(splits)} recipient payment(s)"
    )

    for split in splits:
        sent = dispatch_notification(SPLIT_PAYMENT_CREATED, organization_id, {
            "splitId": split["split_id"],
            "reservationId": reservation_id,
            "sourceFamilyGroup": source_family_group,
            "familyGroup": split["family_group"],
            "amount": split["amount"],
            "dueDate": due_date,
        })
        set_notification_status(split["split_id"], "sent" if sent else "failed")

    return {
        "success": True,
        "error": None,
        "error_code": None,
        "source_payment_id": source_payment_id,
        "source_amount": source_amount,
        "due_date": due_date,
        "splits": splits,
    }


# =============================================================================
# UPDATE
# =============================================================================

def _can_edit_split(split: Dict[str, Any], actor_id: Optional[int]) -> bool:
    if actor_id is None:
        return False
    if split["source_member_id"] == actor_id:
        return True
    member = get_member_by_id(actor_id)
    if not member or member["organization_id"] != split["organization_id"]:
        return False
    return member["role"] in MANAGER_ROLES


def update_split_occupancy(
    organization_id: int,
    split_id: int,
    entries,
    actor_id: Optional[int] = None
) -> Dict[str, Any]:
    """
    Replace a split's nightly breakdown and re-bill both payments.

    Only the member who made the split, an admin or a calendar keeper may
    edit it, and only while the recipient has paid nothing.

    Args:
        organization_id: Organization ID
        split_id: Split ID
        entries: Nightly occupancy with sourceGuests and recipientGuests
        actor_id: Member making the change

    Returns:
        dict: {success, split_amount, source_amount} or {success: False,
        error, error_code} with error_code one of 'not_found',
        'permission_denied', 'billing_locked', 'invalid_occupancy',
        'invalid_settings', 'store_error'
    """
    try:
        new_entries = parse_occupancy_entries(entries)
    except ValueError as e:
        return _failure(str(e), "invalid_occupancy")

    try:
        split = get_split_by_id(organization_id, split_id)
        if not split:
            return _failure("Split not found", "not_found")

        if not _can_edit_split(split, actor_id):
            return _failure(
                "Permission denied. Only the source member or an admin can edit splits",
                "permission_denied",
            )

        split_payment = split["split_payment"]
        if split_payment and is_payment_locked(split_payment):
            return _failure("Cannot edit split after recipient has made payments", "billing_locked")

        settings = get_reservation_settings(organization_id)
        sibling_splits = [
            s for s in get_splits_for_source_payment(split["source_payment_id"]) if s["id"] != split_id
        ]
    except sqlite3.Error as e:
        logger.error(f"Error loading split {split_id}: {e}", exc_info=True)
        return _failure("Could not load split", "store_error")

    new_entries = carry_stored_rates(new_entries, load_occupancy(split["daily_occupancy_split"]))
    try:
        per_diem = per_diem_rate(build_billing_config(settings), new_entries)
    except ValueError as e:
        return _failure(str(e), "invalid_settings")

    new_entries = price_entries(new_entries, per_diem)
    split_amount = round_money(calculate_role_amount(new_entries, "recipient", per_diem))

    other_recipients = [
        {e.date: e.recipient_guests for e in load_occupancy(s["daily_occupancy_split"])}
        for s in sibling_splits
    ]
    source_snapshot = _merge_recipient_guests(
        new_entries,
        [{e.date: e.recipient_guests for e in new_entries}] + other_recipients,
        per_diem,
    )
    source_amount = round_money(calculate_role_amount(source_snapshot, "source", per_diem))

    db = get_db()
    try:
        update_split_daily_occupancy(split_id, serialize_occupancy(new_entries), commit=False)
        write_payment_billing(split["split_payment_id"], serialize_occupancy(new_entries),
                              split_amount, updated_by=actor_id, commit=False)
        write_payment_billing(split["source_payment_id"], serialize_occupancy(source_snapshot),
                              source_amount, updated_by=actor_id, commit=False)
        db.commit()
    except sqlite3.Error as e:
        db.rollback()
        logger.error(f"Error updating split {split_id}: {e}", exc_info=True)
        return _failure("Could not save split", "store_error")

    log_audit("UPDATE", "payment_split", split_id, organization_id, actor_id,
              before={"split_amount": split_payment["amount"] if split_payment else None},
              after={"split_amount": split_amount, "source_amount": source_amount})

    return {
        "success": True,
        "error": None,
        "error_code": None,
        "split_amount": split_amount,
        "source_amount": source_amount,
    }


# =============================================================================
# READ
# =============================================================================

def get_split_details(organization_id: int, split_id: int) -> Optional[Dict[str, Any]]:
    """
    Get a split with its breakdown, payments and totals.

    Returns:
        dict or None if not found
    """
    split = get_split_by_id(organization_id, split_id)
    if not split:
        return None

    entries = load_occupancy(split["daily_occupancy_split"])
    split_payment = split["split_payment"]

    return {
        "id": split["id"],
        "source_family_group": split["source_family_group"],
        "split_to_family_group": split["split_to_family_group"],
        "source_member_id": split["source_member_id"],
        "split_to_member_id": split["split_to_member_id"],
        "notification_status": split["notification_status"],
        "daily_occupancy": [entry.to_dict() for entry in entries],
        "totals": calculate_split_totals(entries),
        "source_payment": split["source_payment"],
        "split_payment": split_payment,
        "is_locked": bool(split_payment) and is_payment_locked(split_payment),
    }
