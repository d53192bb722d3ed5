"""
Daily occupancy records.

A reservation's occupancy is an ordered sequence of DailyOccupancyEntry,
one per night, splitting the guests between the source family group (who
booked) and the recipient group they share the cost with. Entries are
stored as JSON on payments and payment splits:

    [{"date": "2024-08-01", "sourceGuests": 2, "recipientGuests": 1,
      "perDiem": 25.0, "sourceCost": 50.0, "recipientCost": 25.0}, ...]
"""

import json
import math
from dataclasses import dataclass, replace
from typing import Optional

from utils.date_ranges import to_iso, each_night
from utils.validators import validate_non_negative_int


SPLIT_ROLES = ('full', 'source', 'recipient')


@dataclass(frozen=True)
class DailyOccupancyEntry:
    """Guest counts for one night, with the per-guest rate it was priced at."""

    date: str
    source_guests: int = 0
    recipient_guests: int = 0
    per_diem: Optional[float] = None

    @property
    def total_guests(self) -> int:
        return self.source_guests + self.recipient_guests

    @property
    def source_cost(self) -> float:
        return self.source_guests * (self.per_diem or 0.0)

    @property
    def recipient_cost(self) -> float:
        return self.recipient_guests * (self.per_diem or 0.0)

    def guests_for(self, split_role: str) -> int:
        """Guests billed to a payment row with the given split role."""
        if split_role == 'source':
            return self.source_guests
        if split_role == 'recipient':
            return self.recipient_guests
        return self.total_guests

    def to_dict(self) -> dict:
        return {
            'date': self.date,
            'sourceGuests': self.source_guests,
            'recipientGuests': self.recipient_guests,
            'guests': self.total_guests,
            'perDiem': self.per_diem,
            'sourceCost': self.source_cost if self.per_diem is not None else None,
            'recipientCost': self.recipient_cost if self.per_diem is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'DailyOccupancyEntry':
        """
        Build an entry from a request body or stored JSON item.

        Accepts camelCase and snake_case keys. A legacy item carrying only
        'guests' is read as source guests.

        Raises:
            ValueError: On a missing/invalid date or an invalid guest count
        """
        if not isinstance(data, dict):
            raise ValueError('Each occupancy entry must be an object')

        try:
            day = to_iso(data.get('date'))
        except ValueError:
            raise ValueError(f"Invalid occupancy date: {data.get('date')!r}")

        source_raw = _first_present(data, 'sourceGuests', 'source_guests', 'guests', default=0)
        recipient_raw = _first_present(data, 'recipientGuests', 'recipient_guests', default=0)

        valid, source_guests, err = validate_non_negative_int(source_raw, f'Source guests on {day}')
        if not valid:
            raise ValueError(err)
        valid, recipient_guests, err = validate_non_negative_int(
            recipient_raw, f'Recipient guests on {day}'
        )
        if not valid:
            raise ValueError(err)

        per_diem = _first_present(data, 'perDiem', 'per_diem', default=None)
        if per_diem is not None:
            try:
                per_diem = float(per_diem)
            except (TypeError, ValueError):
                raise ValueError(f'Invalid per diem on {day}')
            if not math.isfinite(per_diem):
                raise ValueError(f'Invalid per diem on {day}')
            if per_diem < 0:
                raise ValueError(f'Per diem on {day} cannot be negative')

        return cls(
            date=day,
            source_guests=source_guests,
            recipient_guests=recipient_guests,
            per_diem=per_diem
        )


def _first_present(data: dict, *keys, default=None):
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return default


def parse_occupancy_entries(raw) -> list:
    """
    Validate and order a list of occupancy items.

    Args:
        raw: List of dicts (request JSON) or DailyOccupancyEntry objects

    Returns:
        list[DailyOccupancyEntry] sorted by date

    Raises:
        ValueError: If the payload is not a list, an item is invalid,
            or a date appears twice
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError('Occupancy must be a list of daily entries')

    entries = [
        item if isinstance(item, DailyOccupancyEntry) else DailyOccupancyEntry.from_dict(item)
        for item in raw
    ]

    seen = set()
    for entry in entries:
        if entry.date in seen:
            raise ValueError(f'Duplicate occupancy date: {entry.date}')
        seen.add(entry.date)

    return sorted(entries, key=lambda e: e.date)


def load_occupancy(stored) -> list:
    """Read a stored JSON snapshot back into entries. Empty or null → []."""
    if not stored:
        return []
    data = json.loads(stored) if isinstance(stored, str) else stored
    return parse_occupancy_entries(data)


def serialize_occupancy(entries: list) -> str:
    """Serialize entries for a JSON column."""
    return json.dumps([entry.to_dict() for entry in entries])


def carry_stored_rates(entries: list, stored: list = None) -> list:
    """
    Replace the rate on incoming entries with the one snapshotted for the
    same night in `stored`. Nights without a stored rate are left unpriced.

    Rates sent by a client are never billed; they are only ever taken from
    a snapshot written by this system.
    """
    rates = {entry.date: entry.per_diem for entry in (stored or []) if entry.per_diem is not None}
    return [replace(entry, per_diem=rates.get(entry.date)) for entry in entries]


def nights_within(entries: list, start_date, end_date) -> list:
    """Entries for nights of the stay [start_date, end_date)."""
    stay_nights = set(each_night(start_date, end_date))
    return [entry for entry in entries if entry.date in stay_nights]


def price_entries(entries: list, per_diem: float) -> list:
    """
    Snapshot the per-guest-night rate onto entries that were never priced.

    Entries that already carry a rate keep it, so a later change of the
    organization rate does not rewrite historical splits until they are
    explicitly repriced with reprice_entries().
    """
    return [
        entry if entry.per_diem is not None else replace(entry, per_diem=per_diem)
        for entry in entries
    ]


def reprice_entries(entries: list, per_diem: float) -> list:
    """Overwrite the rate on every entry (explicit recalculation)."""
    return [replace(entry, per_diem=per_diem) for entry in entries]


def guests_by_date(entries: list, split_role: str = 'full') -> dict:
    """Map ISO date → guests billed to the given split role."""
    return {entry.date: entry.guests_for(split_role) for entry in entries}
