"""
Organization billing settings.
Read at calculation time; rates are never copied onto reservations.
"""

from database import get_db


def get_reservation_settings(organization_id: int) -> dict:
    """
    Get billing settings for an organization.

    Args:
        organization_id: Organization ID

    Returns:
        Settings dict or None if the organization has none
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT * FROM reservation_settings
        WHERE organization_id = ?
    ''', (organization_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


def upsert_reservation_settings(
    organization_id: int,
    financial_method: str,
    nightly_rate: float,
    tax_rate: float = 0.0,
    cleaning_fee: float = 0.0,
    season_end_month: int = 10,
    season_end_day: int = 31,
    season_payment_deadline_offset_days: int = 0
) -> None:
    """
    Create or replace an organization's billing settings.

    Raises:
        ValueError: If the method is unknown, the rate is not positive,
            the tax rate is outside 0-100 or the cleaning fee is negative
    """
    from blueprints.cabin.services.billing_calculator import validate_billing_config

    errors = validate_billing_config({
        "method": financial_method,
        "amount": nightly_rate,
        "tax_rate": tax_rate,
        "cleaning_fee": cleaning_fee,
    })
    if errors:
        raise ValueError("; ".join(errors))

    db = get_db()
    db.execute('''
        INSERT INTO reservation_settings (
            organization_id, financial_method, nightly_rate, tax_rate, cleaning_fee,
            season_end_month, season_end_day, season_payment_deadline_offset_days
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(organization_id) DO UPDATE SET
            financial_method = excluded.financial_method,
            nightly_rate = excluded.nightly_rate,
            tax_rate = excluded.tax_rate,
            cleaning_fee = excluded.cleaning_fee,
            season_end_month = excluded.season_end_month,
            season_end_day = excluded.season_end_day,
            season_payment_deadline_offset_days = excluded.season_payment_deadline_offset_days,
            updated_at = CURRENT_TIMESTAMP
    ''', (organization_id, financial_method, nightly_rate, tax_rate, cleaning_fee,
          season_end_month, season_end_day, season_payment_deadline_offset_days))
    db.commit()
