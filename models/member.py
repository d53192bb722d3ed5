"""
Organization member model and data access functions.
Handles member lookup, creation, and Flask-Login integration.
"""

import sqlite3

from database import get_db
from utils.validators import validate_email


MEMBER_ROLES = ('admin', 'calendar_keeper', 'member')

# Roles allowed to book past dates and edit other groups' splits
MANAGER_ROLES = ('admin', 'calendar_keeper')


class Member:
    """
    Member class for Flask-Login integration.
    Wraps database row dictionary with required Flask-Login properties.
    """

    def __init__(self, member_dict):
        """
        Initialize Member from database row.

        Args:
            member_dict: Dictionary with member data from database
        """
        self.id = member_dict['id']
        self.organization_id = member_dict['organization_id']
        self.username = member_dict['username']
        self.email = member_dict.get('email')
        self.full_name = member_dict.get('full_name')
        self.family_group = member_dict.get('family_group')
        self.role = member_dict['role']
        self.active = member_dict['active']

    @property
    def is_manager(self):
        """Admins and calendar keepers manage the whole calendar."""
        return self.role in MANAGER_ROLES

    @property
    def is_authenticated(self):
        """Required by Flask-Login."""
        return True

    @property
    def is_active(self):
        """Required by Flask-Login."""
        return self.active == 1

    @property
    def is_anonymous(self):
        """Required by Flask-Login."""
        return False

    def get_id(self):
        """Required by Flask-Login. Returns member ID as string."""
        return str(self.id)


def get_member_by_id(member_id: int) -> dict:
    """
    Get member by ID.

    Args:
        member_id: Member ID

    Returns:
        Member dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM members WHERE id = ?', (member_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


def create_member(
    organization_id: int,
    username: str,
    family_group: str = None,
    role: str = 'member',
    email: str = None,
    full_name: str = None
) -> int:
    """
    Create an organization member.

    Args:
        organization_id: Owning organization
        username: Unique username within the organization
        family_group: Family group the member books for
        role: 'admin', 'calendar_keeper' or 'member'
        email: Contact email (optional)
        full_name: Display name (optional)

    Returns:
        New member ID

    Raises:
        ValueError: On invalid role/email or a duplicate username
    """
    if role not in MEMBER_ROLES:
        raise ValueError(f'Invalid role: {role}')
    if email and not validate_email(email):
        raise ValueError('Invalid email format')
    if not username:
        raise ValueError('Username is required')

    db = get_db()
    try:
        cursor = db.execute('''
            INSERT INTO members (organization_id, username, email, full_name, family_group, role)
            VALUES (?, ?, ?, ?, ?, ?)
        ''', (organization_id, username, email, full_name, family_group, role))
        db.commit()
    except sqlite3.IntegrityError:
        db.rollback()
        raise ValueError(f'Username already exists: {username}')

    return cursor.lastrowid
