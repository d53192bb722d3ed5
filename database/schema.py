"""
Database schema definitions.
Table creation, indexes, and structure management.

Dates are stored as ISO 'YYYY-MM-DD' text; JSON payloads as text.
"""


def drop_tables(db):
    """Drop all existing tables."""
    # Disable foreign key constraints before dropping
    db.execute('PRAGMA foreign_keys = OFF')

    tables = [
        'audit_log',
        'checkin_sessions',
        'payment_splits',
        'payments',
        'reservations',
        'reservation_settings',
        'members',
        'organizations'
    ]

    for table in tables:
        db.execute(f'DROP TABLE IF EXISTS {table}')

    # Re-enable foreign key constraints
    db.execute('PRAGMA foreign_keys = ON')


def create_tables(db):
    """Create all database tables."""

    # 1. Organizations & Members
    db.execute('''
        CREATE TABLE organizations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            code TEXT UNIQUE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    db.execute('''
        CREATE TABLE members (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            organization_id INTEGER NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            username TEXT NOT NULL,
            email TEXT,
            full_name TEXT,
            family_group TEXT,
            role TEXT NOT NULL DEFAULT 'member'
                CHECK(role IN ('admin', 'calendar_keeper', 'member')),
            active INTEGER DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(organization_id, username)
        )
    ''')

    # 2. Organization billing settings
    db.execute('''
        CREATE TABLE reservation_settings (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            organization_id INTEGER UNIQUE NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            financial_method TEXT DEFAULT 'per_person_per_night',
            nightly_rate REAL DEFAULT 0,
            tax_rate REAL DEFAULT 0,
            cleaning_fee REAL DEFAULT 0,
            season_end_month INTEGER DEFAULT 10,
            season_end_day INTEGER DEFAULT 31,
            season_payment_deadline_offset_days INTEGER DEFAULT 0,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 3. Reservations
    db.execute('''
        CREATE TABLE reservations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            organization_id INTEGER NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            family_group TEXT NOT NULL,
            property_name TEXT,
            start_date TEXT NOT NULL,
            end_date TEXT NOT NULL,
            guest_count INTEGER DEFAULT 1 CHECK(guest_count >= 0),
            status TEXT NOT NULL DEFAULT 'pending'
                CHECK(status IN ('pending', 'confirmed', 'cancelled')),
            time_period_number INTEGER,
            allocated_start_date TEXT,
            allocated_end_date TEXT,
            total_cost REAL DEFAULT 0,
            notes TEXT,
            created_by INTEGER REFERENCES members(id),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            CHECK(start_date < end_date)
        )
    ''')

    # 4. Payments (one reservation → many payment rows)
    db.execute('''
        CREATE TABLE payments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            organization_id INTEGER NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            reservation_id INTEGER REFERENCES reservations(id) ON DELETE CASCADE,
            family_group TEXT NOT NULL,
            split_role TEXT NOT NULL DEFAULT 'full'
                CHECK(split_role IN ('full', 'source', 'recipient')),
            payment_type TEXT DEFAULT 'use_fee',
            amount REAL NOT NULL DEFAULT 0,
            amount_paid REAL NOT NULL DEFAULT 0,
            daily_occupancy TEXT,
            billing_locked INTEGER NOT NULL DEFAULT 0,
            status TEXT NOT NULL DEFAULT 'pending'
                CHECK(status IN ('pending', 'deferred', 'partial', 'paid')),
            due_date TEXT,
            description TEXT,
            notes TEXT,
            created_by INTEGER REFERENCES members(id),
            updated_by INTEGER REFERENCES members(id),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    db.execute('''
        CREATE TABLE payment_splits (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            organization_id INTEGER NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            source_payment_id INTEGER NOT NULL REFERENCES payments(id) ON DELETE CASCADE,
            split_payment_id INTEGER NOT NULL REFERENCES payments(id) ON DELETE CASCADE,
            source_family_group TEXT NOT NULL,
            source_member_id INTEGER REFERENCES members(id),
            split_to_family_group TEXT NOT NULL,
            split_to_member_id INTEGER REFERENCES members(id),
            daily_occupancy_split TEXT,
            notification_status TEXT DEFAULT 'pending'
                CHECK(notification_status IN ('pending', 'sent', 'failed')),
            created_by INTEGER REFERENCES members(id),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 5. Check-in sessions (daily occupancy recorded during a stay)
    db.execute('''
        CREATE TABLE checkin_sessions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            organization_id INTEGER NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            family_group TEXT,
            check_date TEXT NOT NULL,
            session_type TEXT DEFAULT 'daily',
            checklist_responses TEXT DEFAULT '{}',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 6. Audit
    db.execute('''
        CREATE TABLE audit_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            organization_id INTEGER,
            user_id INTEGER,
            action TEXT NOT NULL,
            entity_type TEXT,
            entity_id INTEGER,
            changes TEXT,
            ip_address TEXT,
            user_agent TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')


def create_indexes(db):
    """Create performance indexes."""
    indexes = [
        'CREATE INDEX idx_members_org ON members(organization_id)',
        'CREATE INDEX idx_reservations_org_status ON reservations(organization_id, status)',
        'CREATE INDEX idx_reservations_dates ON reservations(start_date, end_date)',
        'CREATE INDEX idx_reservations_property ON reservations(property_name)',
        'CREATE INDEX idx_payments_reservation ON payments(reservation_id)',
        'CREATE INDEX idx_payments_org ON payments(organization_id)',
        'CREATE INDEX idx_payment_splits_source ON payment_splits(source_payment_id)',
        'CREATE INDEX idx_payment_splits_split ON payment_splits(split_payment_id)',
        'CREATE INDEX idx_checkin_sessions_org_date ON checkin_sessions(organization_id, check_date)',
        'CREATE INDEX idx_audit_log_entity ON audit_log(entity_type, entity_id)',
        'CREATE INDEX idx_audit_log_created ON audit_log(created_at)',
    ]

    for index_sql in indexes:
        db.execute(index_sql)
