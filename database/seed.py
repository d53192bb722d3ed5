"""
Database seed data.
Initial data population for fresh database installations.
"""


def seed_database(db):
    """Insert initial seed data."""

    # 1. Default organization
    cursor = db.execute('''
        INSERT INTO organizations (name, code)
        VALUES (?, ?)
    ''', ('Family Cabin', 'CABIN'))
    organization_id = cursor.lastrowid

    # 2. Billing settings (per guest per night, no tax)
    db.execute('''
        INSERT INTO reservation_settings (
            organization_id, financial_method, nightly_rate, tax_rate,
            cleaning_fee, season_end_month, season_end_day,
            season_payment_deadline_offset_days
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
    ''', (organization_id, 'per_person_per_night', 25.0, 0.0, 0.0, 10, 31, 0))

    # 3. Administrator member
    db.execute('''
        INSERT INTO members (organization_id, username, email, full_name, family_group, role)
        VALUES (?, ?, ?, ?, ?, ?)
    ''', (organization_id, 'admin', 'admin@cabinshare.local', 'Cabin Administrator',
          'Administrators', 'admin'))
