"""
Tests for reservation conflict detection, validation and alternatives.
"""

import sqlite3
from datetime import date

import pytest

import models.reservation_conflicts as reservation_conflicts
from models.reservation import (
    check_overlap,
    detect_reservation_conflicts,
    check_property_availability,
    validate_reservation_dates,
    suggest_alternative_dates,
)
from utils.date_ranges import nights_between


ORG = 1
TODAY = date(2024, 6, 1)


class TestCheckOverlap:

    def test_noon_turnover_is_not_a_conflict(self):
        assert check_overlap('2024-06-10', '2024-06-11', '2024-06-11', '2024-06-12') is False
        assert check_overlap('2024-06-11', '2024-06-12', '2024-06-10', '2024-06-11') is False

    def test_shared_night_conflicts(self):
        assert check_overlap('2024-06-10', '2024-06-12', '2024-06-11', '2024-06-13') is True

    def test_contained_range(self):
        assert check_overlap('2024-06-01', '2024-06-30', '2024-06-10', '2024-06-11') is True

    def test_disjoint(self):
        assert check_overlap('2024-06-01', '2024-06-05', '2024-06-08', '2024-06-10') is False

    @pytest.mark.parametrize('first,second', [
        (('2024-06-10', '2024-06-11'), ('2024-06-11', '2024-06-12')),
        (('2024-06-10', '2024-06-15'), ('2024-06-12', '2024-06-13')),
        (('2024-06-10', '2024-06-12'), ('2024-06-01', '2024-06-11')),
        (('2024-06-10', '2024-06-12'), ('2024-07-01', '2024-07-05')),
    ])
    def test_symmetric(self, first, second):
        assert check_overlap(*first, *second) == check_overlap(*second, *first)

    def test_accepts_date_objects(self):
        assert check_overlap(date(2024, 6, 10), date(2024, 6, 12), '2024-06-11', '2024-06-13') is True


class TestDetectConflicts:

    def test_finds_confirmed_overlap(self, make_reservation):
        reservation_id = make_reservation('2024-06-10', '2024-06-15', family_group='Jones')

        result = detect_reservation_conflicts(ORG, '2024-06-12', '2024-06-14')

        assert result.has_conflicts
        assert [c['id'] for c in result.conflicts] == [reservation_id]
        assert result.status == 'ok'

    def test_ignores_pending_and_cancelled(self, make_reservation):
        make_reservation('2024-06-10', '2024-06-15', status='pending')
        make_reservation('2024-06-10', '2024-06-15', status='cancelled')

        result = detect_reservation_conflicts(ORG, '2024-06-12', '2024-06-14')

        assert not result.has_conflicts

    def test_excludes_reservation_being_edited(self, make_reservation):
        reservation_id = make_reservation('2024-06-10', '2024-06-15')

        result = detect_reservation_conflicts(
            ORG, '2024-06-11', '2024-06-16', exclude_reservation_id=reservation_id
        )

        assert not result.has_conflicts

    def test_same_day_transition_warns(self, make_reservation):
        make_reservation('2024-06-10', '2024-06-11', family_group='Jones')

        result = detect_reservation_conflicts(ORG, '2024-06-11', '2024-06-12')

        assert not result.has_conflicts
        assert len(result.warnings) == 1
        assert 'Jones' in result.warnings[0]

    def test_property_filter(self, make_reservation):
        make_reservation('2024-06-10', '2024-06-15', property_name='Lake House')

        assert not detect_reservation_conflicts(
            ORG, '2024-06-11', '2024-06-12', property_name='Main Cabin'
        ).has_conflicts
        assert detect_reservation_conflicts(
            ORG, '2024-06-11', '2024-06-12', property_name='Lake House'
        ).has_conflicts
        assert detect_reservation_conflicts(ORG, '2024-06-11', '2024-06-12').has_conflicts

    def test_other_organization_ignored(self, make_reservation):
        make_reservation('2024-06-10', '2024-06-15')

        assert not detect_reservation_conflicts(2, '2024-06-11', '2024-06-12').has_conflicts

    def test_missing_organization(self):
        result = detect_reservation_conflicts(None, '2024-06-11', '2024-06-12')

        assert result.check_failed
        assert result.warnings == ['No organization found']

    def test_store_error_fails_open(self, app, monkeypatch):
        def broken_db():
            raise sqlite3.OperationalError('database is locked')

        monkeypatch.setattr(reservation_conflicts, 'get_db', broken_db)

        result = detect_reservation_conflicts(ORG, '2024-06-11', '2024-06-12')

        assert result.check_failed
        assert not result.has_conflicts
        assert result.warnings == ['Error checking for conflicts']
        assert 'locked' in result.failure_reason

    def test_to_dict(self, make_reservation):
        make_reservation('2024-06-10', '2024-06-15')

        data = detect_reservation_conflicts(ORG, '2024-06-12', '2024-06-14').to_dict()

        assert data['has_conflicts'] is True
        assert data['status'] == 'ok'
        assert data['conflicts'][0]['family_group'] == 'Smith'

    def test_property_availability(self, make_reservation):
        make_reservation('2024-06-10', '2024-06-15')

        assert check_property_availability(ORG, '2024-06-15', '2024-06-18')['available'] is True
        blocked = check_property_availability(ORG, '2024-06-14', '2024-06-18')
        assert blocked['available'] is False
        assert blocked['check_failed'] is False


class TestValidateReservationDates:

    def test_valid_booking(self, app):
        result = validate_reservation_dates(ORG, '2024-06-10', '2024-06-12', 'Smith', today=TODAY)

        assert result['is_valid'] is True
        assert result['errors'] == []
        assert result['check_failed'] is False

    def test_checkout_must_follow_checkin(self, app):
        result = validate_reservation_dates(ORG, '2024-06-12', '2024-06-12', 'Smith', today=TODAY)

        assert result['is_valid'] is False
        assert 'Check-out date must be after check-in date' in result['errors']

    def test_new_booking_in_past(self, app):
        result = validate_reservation_dates(ORG, '2024-05-30', '2024-06-03', 'Smith', today=TODAY)

        assert result['is_valid'] is False
        assert 'Cannot make reservations for past dates' in result['errors']

    def test_edit_may_keep_past_checkin(self, app):
        result = validate_reservation_dates(
            ORG, '2024-05-30', '2024-06-03', 'Smith', is_edit_mode=True, today=TODAY
        )

        assert result['is_valid'] is True

    def test_edit_checkout_in_past(self, app):
        result = validate_reservation_dates(
            ORG, '2024-05-20', '2024-05-25', 'Smith', is_edit_mode=True, today=TODAY
        )

        assert 'Check-out date cannot be in the past' in result['errors']

    def test_admin_override_skips_past_rules(self, app):
        result = validate_reservation_dates(
            ORG, '2024-05-20', '2024-05-25', 'Smith', admin_override=True, today=TODAY
        )

        assert result['is_valid'] is True

    def test_overlap_is_an_error(self, make_reservation):
        make_reservation('2024-06-10', '2024-06-15', family_group='Jones')

        result = validate_reservation_dates(ORG, '2024-06-12', '2024-06-16', 'Smith', today=TODAY)

        assert result['is_valid'] is False
        assert result['errors'][0].startswith('Overlaps with existing Jones reservation')

    def test_turnover_is_a_warning(self, make_reservation):
        make_reservation('2024-06-10', '2024-06-15', family_group='Jones')

        result = validate_reservation_dates(ORG, '2024-06-15', '2024-06-18', 'Smith', today=TODAY)

        assert result['is_valid'] is True
        assert len(result['warnings']) == 1

    def test_invalid_dates_returned_as_errors(self, app):
        result = validate_reservation_dates(ORG, 'soon', '2024-06-12', 'Smith', today=TODAY)

        assert result['is_valid'] is False
        assert result['errors'] == ['Check-in and check-out must be valid dates']

    def test_store_error_allows_booking(self, app, monkeypatch):
        def broken_db():
            raise sqlite3.OperationalError('disk I/O error')

        monkeypatch.setattr(reservation_conflicts, 'get_db', broken_db)

        result = validate_reservation_dates(ORG, '2024-06-10', '2024-06-12', 'Smith', today=TODAY)

        assert result['is_valid'] is True
        assert result['check_failed'] is True
        assert 'Error checking for conflicts' in result['warnings']


class TestSuggestAlternativeDates:

    def test_interleaves_earlier_and_later(self, app):
        alternatives = suggest_alternative_dates(ORG, '2024-07-10', '2024-07-13')

        assert [a['start_date'] for a in alternatives] == [
            '2024-07-09', '2024-07-11', '2024-07-08', '2024-07-12', '2024-07-07',
        ]

    def test_solid_bookings_both_sides(self, make_reservation):
        # Booked solid for 10 days before and after the requested stay
        make_reservation('2024-06-30', '2024-07-23', family_group='Jones')

        alternatives = suggest_alternative_dates(
            ORG, '2024-07-10', '2024-07-13', days_to_search=14
        )

        assert 0 < len(alternatives) <= 5
        for alternative in alternatives:
            assert nights_between(alternative['start_date'], alternative['end_date']) == 3
            assert not detect_reservation_conflicts(
                ORG, alternative['start_date'], alternative['end_date']
            ).has_conflicts

    def test_nothing_free(self, make_reservation):
        make_reservation('2024-06-01', '2024-08-31', family_group='Jones')

        assert suggest_alternative_dates(ORG, '2024-07-10', '2024-07-13', days_to_search=5) == []

    def test_max_alternatives_from_config(self, app):
        app.config['MAX_ALTERNATIVES'] = 2

        alternatives = suggest_alternative_dates(ORG, '2024-07-10', '2024-07-13')

        assert len(alternatives) == 2

    def test_failed_checks_never_suggested(self, app, monkeypatch):
        def broken_db():
            raise sqlite3.OperationalError('database is locked')

        monkeypatch.setattr(reservation_conflicts, 'get_db', broken_db)

        assert suggest_alternative_dates(ORG, '2024-07-10', '2024-07-13', days_to_search=3) == []
