"""
Tests for splitting a stay's cost between family groups.
"""

import pytest

import blueprints.cabin.services.split_service as split_service
from models.occupancy import load_occupancy
from models.payment import get_payment_by_id, get_reservation_payments, record_payment_received
from models.reservation_settings import upsert_reservation_settings
from utils.date_ranges import to_iso
from utils.datetime_helpers import season_due_date
from blueprints.cabin.services.occupancy_billing_service import update_occupancy
from blueprints.cabin.services.split_service import (
    create_split_payments,
    update_split_occupancy,
    get_split_details,
)


ORG = 1
ADMIN_ID = 1
DAYS = ('2024-08-01', '2024-08-02')


def _source(*guests):
    return [{'date': day, 'sourceGuests': count} for day, count in zip(DAYS, guests)]


def _recipient(family_group, *guests, member_id=None):
    return {
        'family_group': family_group,
        'member_id': member_id,
        'daily_occupancy': [{'date': day, 'guests': count} for day, count in zip(DAYS, guests)],
    }


@pytest.fixture
def stay(make_reservation):
    return make_reservation('2024-08-01', '2024-08-03')


@pytest.fixture
def split(stay, smith_member):
    """Smith (3 guests a night) shares two nights with one Jones guest."""
    result = create_split_payments(
        ORG, stay, 'Smith', [_recipient('Jones', 1, 1)], _source(3, 3), actor_id=smith_member
    )
    assert result['success'] is True
    return result


class TestCreateSplitPayments:

    def test_amounts(self, split):
        assert split['source_amount'] == 150.0
        assert len(split['splits']) == 1
        assert split['splits'][0]['family_group'] == 'Jones'
        assert split['splits'][0]['amount'] == 50.0

    def test_payment_rows(self, stay, split):
        payments = get_reservation_payments(ORG, stay)

        source = payments.by_role('source')[0]
        recipient = payments.by_role('recipient')[0]
        assert source['id'] == split['source_payment_id']
        assert source['amount'] == 150.0
        assert source['notes'] == 'Cost split with: Jones'
        assert recipient['family_group'] == 'Jones'
        assert recipient['status'] == 'deferred'
        assert recipient['amount'] == 50.0

    def test_due_date_is_season_end(self, stay, split):
        expected = to_iso(season_due_date(10, 31, 0))

        assert split['due_date'] == expected
        recipient = get_reservation_payments(ORG, stay).by_role('recipient')[0]
        assert recipient['due_date'] == expected

    def test_due_date_offset(self, stay):
        upsert_reservation_settings(ORG, 'per_person_per_night', 25.0,
                                    season_end_month=9, season_end_day=30,
                                    season_payment_deadline_offset_days=15)

        result = create_split_payments(ORG, stay, 'Smith', [_recipient('Jones', 1, 1)], _source(3, 3))

        assert result['due_date'] == to_iso(season_due_date(9, 30, 15))
        assert result['due_date'].endswith('-10-15')

    def test_source_snapshot_holds_whole_stay(self, stay, split):
        source = get_payment_by_id(ORG, split['source_payment_id'])
        entries = load_occupancy(source['daily_occupancy'])

        assert [(e.source_guests, e.recipient_guests) for e in entries] == [(3, 1), (3, 1)]

    def test_converts_existing_full_payment(self, stay):
        update_occupancy(ORG, stay, _source(4, 4))
        full_id = get_reservation_payments(ORG, stay).ids[0]

        result = create_split_payments(ORG, stay, 'Smith', [_recipient('Jones', 1, 1)], _source(3, 3))

        assert result['source_payment_id'] == full_id
        payments = get_reservation_payments(ORG, stay)
        assert len(payments) == 2
        assert get_payment_by_id(ORG, full_id)['split_role'] == 'source'
        assert get_payment_by_id(ORG, full_id)['amount'] == 150.0

    def test_conservation_with_two_recipients(self, stay):
        result = create_split_payments(
            ORG, stay, 'Smith',
            [_recipient('Jones', 1, 0), _recipient('Brown', 2, 2)],
            _source(3, 3)
        )

        total_guest_nights = 6 + 1 + 4
        billed = result['source_amount'] + sum(s['amount'] for s in result['splits'])
        assert billed == pytest.approx(total_guest_nights * 25.0)
        assert [s['amount'] for s in result['splits']] == [25.0, 100.0]

    def test_flat_rate_shares_add_up_to_flat_cost(self, stay):
        upsert_reservation_settings(ORG, 'flat_rate_per_night', 100.0)

        result = create_split_payments(ORG, stay, 'Smith', [_recipient('Jones', 2, 2)], _source(2, 2))

        assert result['source_amount'] == 100.0
        assert result['splits'][0]['amount'] == 100.0

    def test_requires_recipients(self, stay):
        result = create_split_payments(ORG, stay, 'Smith', [], _source(3, 3))

        assert result['success'] is False
        assert result['error_code'] == 'invalid_occupancy'

    def test_cannot_split_with_self(self, stay):
        result = create_split_payments(ORG, stay, 'Smith', [_recipient('Smith', 1, 1)], _source(3, 3))

        assert result['error_code'] == 'invalid_occupancy'

    def test_recipient_without_guests(self, stay):
        result = create_split_payments(ORG, stay, 'Smith', [_recipient('Jones', 0, 0)], _source(3, 3))

        assert result['error_code'] == 'invalid_occupancy'
        assert len(get_reservation_payments(ORG, stay)) == 0

    def test_client_rates_ignored(self, stay):
        recipient = _recipient('Jones', 1, 1)
        for item in recipient['daily_occupancy']:
            item['perDiem'] = 0
        source = [dict(item, perDiem=1) for item in _source(3, 3)]

        result = create_split_payments(ORG, stay, 'Smith', [recipient], source)

        assert result['source_amount'] == 150.0
        assert result['splits'][0]['amount'] == 50.0

    def test_nights_outside_stay_ignored(self, stay):
        recipient = _recipient('Jones', 1, 1)
        recipient['daily_occupancy'].append({'date': '2024-08-03', 'guests': 5})
        source = _source(3, 3) + [{'date': '2024-07-31', 'sourceGuests': 8}]

        result = create_split_payments(ORG, stay, 'Smith', [recipient], source)

        assert result['source_amount'] == 150.0
        assert result['splits'][0]['amount'] == 50.0

    def test_unknown_reservation(self, app):
        result = create_split_payments(ORG, 999, 'Smith', [_recipient('Jones', 1, 1)], _source(3, 3))

        assert result['error_code'] == 'not_found'

    def test_paid_source_cannot_be_split(self, stay):
        update_occupancy(ORG, stay, _source(4, 4))
        record_payment_received(ORG, get_reservation_payments(ORG, stay).ids[0], 100.0)

        result = create_split_payments(ORG, stay, 'Smith', [_recipient('Jones', 1, 1)], _source(3, 3))

        assert result['error_code'] == 'billing_locked'
        assert len(get_reservation_payments(ORG, stay)) == 1

    def test_notification_failure_recorded(self, split):
        details = get_split_details(ORG, split['splits'][0]['split_id'])

        assert details['notification_status'] == 'failed'

    def test_notification_sent_recorded(self, stay, monkeypatch):
        sent = []
        monkeypatch.setattr(
            split_service, 'dispatch_notification',
            lambda kind, org, payload: sent.append((kind, payload)) or True
        )

        result = create_split_payments(ORG, stay, 'Smith', [_recipient('Jones', 1, 1)], _source(3, 3))

        assert get_split_details(ORG, result['splits'][0]['split_id'])['notification_status'] == 'sent'
        assert sent[0][0] == 'split_payment_created'
        assert sent[0][1]['amount'] == 50.0

    def test_multiple_recipients_edited_through_splits(self, stay):
        result = create_split_payments(
            ORG, stay, 'Smith',
            [_recipient('Jones', 1, 1), _recipient('Brown', 2, 2)],
            _source(3, 3)
        )

        sync = update_occupancy(ORG, stay, _source(3, 3))

        assert sync['payment_ids'] == [result['source_payment_id']]
        for split in result['splits']:
            assert get_payment_by_id(ORG, split['payment_id'])['amount'] == split['amount']


class TestUpdateSplitOccupancy:

    def _entries(self, source, recipient):
        return [
            {'date': day, 'sourceGuests': source, 'recipientGuests': recipient}
            for day in DAYS
        ]

    def test_source_member_can_edit(self, split, smith_member):
        split_id = split['splits'][0]['split_id']

        result = update_split_occupancy(ORG, split_id, self._entries(3, 2), actor_id=smith_member)

        assert result['success'] is True
        assert result['split_amount'] == 100.0
        assert result['source_amount'] == 150.0
        assert get_payment_by_id(ORG, split['splits'][0]['payment_id'])['amount'] == 100.0
        assert get_payment_by_id(ORG, split['source_payment_id'])['amount'] == 150.0

    def test_client_rate_ignored(self, split, smith_member):
        entries = [dict(item, perDiem=0) for item in self._entries(3, 2)]

        result = update_split_occupancy(ORG, split['splits'][0]['split_id'], entries, actor_id=smith_member)

        assert result['split_amount'] == 100.0
        assert result['source_amount'] == 150.0

    def test_admin_can_edit(self, split):
        split_id = split['splits'][0]['split_id']

        result = update_split_occupancy(ORG, split_id, self._entries(2, 1), actor_id=ADMIN_ID)

        assert result['success'] is True
        assert result['source_amount'] == 100.0

    def test_other_member_denied(self, split, jones_member):
        split_id = split['splits'][0]['split_id']

        result = update_split_occupancy(ORG, split_id, self._entries(3, 2), actor_id=jones_member)

        assert result['success'] is False
        assert result['error_code'] == 'permission_denied'

    def test_anonymous_denied(self, split):
        result = update_split_occupancy(ORG, split['splits'][0]['split_id'], self._entries(3, 2))

        assert result['error_code'] == 'permission_denied'

    def test_locked_after_recipient_pays(self, split, smith_member):
        record_payment_received(ORG, split['splits'][0]['payment_id'], 10.0)

        result = update_split_occupancy(
            ORG, split['splits'][0]['split_id'], self._entries(3, 2), actor_id=smith_member
        )

        assert result['success'] is False
        assert result['error_code'] == 'billing_locked'
        assert get_payment_by_id(ORG, split['splits'][0]['payment_id'])['amount'] == 50.0

    def test_unknown_split(self, app):
        result = update_split_occupancy(ORG, 999, self._entries(1, 1), actor_id=ADMIN_ID)

        assert result['error_code'] == 'not_found'

    def test_sibling_recipients_stay_in_source_snapshot(self, stay, smith_member):
        result = create_split_payments(
            ORG, stay, 'Smith',
            [_recipient('Jones', 1, 1), _recipient('Brown', 2, 2)],
            _source(3, 3), actor_id=smith_member
        )
        jones_split = result['splits'][0]['split_id']

        update_split_occupancy(ORG, jones_split, self._entries(3, 0), actor_id=smith_member)

        source = get_payment_by_id(ORG, result['source_payment_id'])
        entries = load_occupancy(source['daily_occupancy'])
        assert [e.recipient_guests for e in entries] == [2, 2]


class TestGetSplitDetails:

    def test_details(self, split):
        details = get_split_details(ORG, split['splits'][0]['split_id'])

        assert details['source_family_group'] == 'Smith'
        assert details['split_to_family_group'] == 'Jones'
        assert details['totals']['source_total'] == 150.0
        assert details['totals']['recipient_total'] == 50.0
        assert details['is_locked'] is False
        assert len(details['daily_occupancy']) == 2

    def test_unknown_split(self, app):
        assert get_split_details(ORG, 999) is None
