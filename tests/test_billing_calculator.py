"""
Tests for the billing calculator.
"""

import pytest

from models.occupancy import DailyOccupancyEntry, price_entries
from blueprints.cabin.services.billing_calculator import (
    round_money,
    normalize_method,
    build_billing_config,
    validate_billing_config,
    calculate_stay_billing,
    calculate_day_cost,
    calculate_from_daily_occupancy,
    per_diem_rate,
    calculate_split_totals,
)


def _config(method='per_person_per_night', amount=25.0, tax_rate=0.0, cleaning_fee=0.0):
    return {'method': method, 'amount': amount, 'tax_rate': tax_rate, 'cleaning_fee': cleaning_fee}


class TestMethods:

    def test_normalize_method(self):
        assert normalize_method('per_person_per_night') == 'per-person-per-day'
        assert normalize_method('Flat_Rate_Per_Week') == 'flat-rate-per-week'
        assert normalize_method('per-person-per-day') == 'per-person-per-day'
        assert normalize_method(None) == ''

    def test_build_config_from_settings(self):
        config = build_billing_config({
            'financial_method': 'flat_rate_per_night',
            'nightly_rate': 150,
            'tax_rate': 8.5,
            'cleaning_fee': None,
        })
        assert config == {'method': 'flat_rate_per_night', 'amount': 150.0,
                          'tax_rate': 8.5, 'cleaning_fee': 0.0}

    def test_build_config_defaults(self):
        assert build_billing_config(None)['method'] == 'per_person_per_night'

    def test_validate_config(self):
        assert validate_billing_config(_config()) == []
        errors = validate_billing_config(_config(method='per_room', amount=0, tax_rate=120))
        assert len(errors) == 3

    def test_round_money_half_up(self):
        assert round_money(2.675) == 2.68
        assert round_money(0.125) == 0.13


class TestStayBilling:

    def test_per_person_per_night(self):
        result = calculate_stay_billing(_config(), guests=4, nights=3)
        assert result['base_amount'] == 300.0
        assert result['total'] == 300.0

    def test_weekly_rounds_up_weeks(self):
        result = calculate_stay_billing(_config('per_person_per_week', 100.0), guests=2, nights=8)
        assert result['base_amount'] == 400.0

    def test_flat_rate_with_fee_and_tax(self):
        result = calculate_stay_billing(
            _config('flat_rate_per_night', 100.0, tax_rate=10.0, cleaning_fee=50.0),
            guests=6, nights=2
        )
        assert result['base_amount'] == 200.0
        assert result['subtotal'] == 250.0
        assert result['tax'] == pytest.approx(25.0)
        assert result['total'] == pytest.approx(275.0)

    def test_unknown_method(self):
        with pytest.raises(ValueError):
            calculate_stay_billing(_config('per_room'), guests=1, nights=1)


class TestDailyBilling:

    def test_day_cost_per_method(self):
        assert calculate_day_cost(_config(), 3) == 75.0
        assert calculate_day_cost(_config('per_person_per_week', 70.0), 2) == pytest.approx(20.0)
        assert calculate_day_cost(_config('flat_rate_per_night', 100.0), 0) == 0.0
        assert calculate_day_cost(_config('flat_rate_per_night', 100.0), 5) == 100.0
        assert calculate_day_cost(_config('flat_rate_per_week', 700.0), 1) == pytest.approx(100.0)

    def test_from_daily_occupancy(self):
        result = calculate_from_daily_occupancy(
            _config(),
            {'2024-08-01': 2, '2024-08-02': 4, '2024-08-03': 1},
            '2024-08-01', '2024-08-04'
        )
        assert result['base_amount'] == 175.0
        assert [d['cost'] for d in result['day_breakdown']] == [50.0, 100.0, 25.0]

    def test_nights_outside_stay_not_billed(self):
        result = calculate_from_daily_occupancy(
            _config(),
            {'2024-07-31': 9, '2024-08-01': 2, '2024-08-04': 9},
            '2024-08-01', '2024-08-04'
        )
        assert result['base_amount'] == 50.0

    def test_no_daily_data_falls_back(self):
        result = calculate_from_daily_occupancy(
            _config('flat_rate_per_night', 100.0), {}, '2024-08-01', '2024-08-04'
        )
        assert result['base_amount'] == 300.0
        assert result['day_breakdown'] == []


class TestPerDiem:

    def test_per_person_rates(self):
        assert per_diem_rate(_config()) == 25.0
        assert per_diem_rate(_config('per_person_per_week', 70.0)) == pytest.approx(10.0)

    def test_tax_folded_in(self):
        assert per_diem_rate(_config(tax_rate=10.0)) == pytest.approx(27.5)

    def test_flat_rate_spread_over_guest_nights(self):
        entries = [
            DailyOccupancyEntry('2024-08-01', 2, 2),
            DailyOccupancyEntry('2024-08-02', 4, 0),
        ]
        # 2 nights x $100 over 8 guest nights
        assert per_diem_rate(_config('flat_rate_per_night', 100.0), entries) == pytest.approx(25.0)

    def test_flat_rate_without_guests(self):
        assert per_diem_rate(_config('flat_rate_per_night', 100.0), []) == 0.0


class TestSplitTotals:

    def test_conservation(self):
        """Source and recipient shares add up to every guest night at the rate."""
        entries = [
            DailyOccupancyEntry('2024-08-01', 3, 1),
            DailyOccupancyEntry('2024-08-02', 2, 2),
            DailyOccupancyEntry('2024-08-03', 0, 5),
        ]
        per_diem = 18.75
        totals = calculate_split_totals(entries, per_diem)
        assert totals['total_guest_nights'] == 13
        assert totals['source_total'] + totals['recipient_total'] == pytest.approx(13 * per_diem)

    def test_snapshot_rate_wins(self):
        entries = price_entries([DailyOccupancyEntry('2024-08-01', 2, 1, 20.0)], 25.0)
        totals = calculate_split_totals(entries, 25.0)
        assert totals['source_total'] == 40.0
        assert totals['recipient_total'] == 20.0

    def test_twenty_five_dollar_scenario(self):
        """Two nights of 3 source + 1 recipient guests at $25."""
        entries = [
            DailyOccupancyEntry('2024-08-01', 3, 1),
            DailyOccupancyEntry('2024-08-02', 3, 1),
        ]
        totals = calculate_split_totals(entries, 25.0)
        assert totals['source_total'] == 150.0
        assert totals['recipient_total'] == 50.0
        assert totals['total'] == 200.0
