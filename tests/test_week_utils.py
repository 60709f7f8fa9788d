"""
Tests for ISO week helpers
"""
import pytest
from datetime import date, datetime

from docketwise.utils.week_utils import (
    start_of_iso_week,
    end_of_iso_week,
    parse_week_string,
    parse_week_start,
    resolve_week,
    get_week_string,
    get_week_label,
    is_current_or_past_week,
    format_display_date,
    format_decimal,
)


class TestWeekUtils:

    def test_start_of_iso_week_snaps_to_monday(self):
        # 2025-09-18 is a Thursday
        assert start_of_iso_week(date(2025, 9, 18)) == date(2025, 9, 15)
        assert start_of_iso_week(date(2025, 9, 21)) == date(2025, 9, 15)
        assert start_of_iso_week(datetime(2025, 9, 15, 23, 59)) == date(2025, 9, 15)

    def test_end_of_iso_week_is_sunday(self):
        assert end_of_iso_week(date(2025, 9, 15)) == date(2025, 9, 21)

    def test_parse_week_string(self):
        monday, sunday = parse_week_string('2025-W38')
        assert monday == date(2025, 9, 15)
        assert sunday == date(2025, 9, 21)

    def test_parse_week_string_first_week_can_start_in_previous_year(self):
        monday, _ = parse_week_string('2025-W01')
        assert monday == date(2024, 12, 30)

    @pytest.mark.parametrize('value', ['2025-38', '2025-W', 'W38-2025', '', None, '2025-W54', '2025-W00'])
    def test_parse_week_string_rejects_bad_input(self, value):
        with pytest.raises(ValueError):
            parse_week_string(value)

    def test_parse_week_string_rejects_week_53_in_short_year(self):
        # 2025 has 52 ISO weeks
        with pytest.raises(ValueError):
            parse_week_string('2025-W53')

    def test_parse_week_start_snaps_back(self):
        assert parse_week_start('2025-09-17') == date(2025, 9, 15)
        with pytest.raises(ValueError):
            parse_week_start('17/09/2025')

    def test_resolve_week_precedence(self):
        today = date(2025, 9, 18)
        assert resolve_week('2025-W01', '2025-09-17', today=today)[0] == date(2024, 12, 30)
        assert resolve_week(None, '2025-09-10', today=today)[0] == date(2025, 9, 8)
        assert resolve_week(today=today) == (date(2025, 9, 15), date(2025, 9, 21))

    def test_get_week_string_uses_iso_year(self):
        assert get_week_string(date(2025, 9, 15)) == '2025-W38'
        assert get_week_string(date(2024, 12, 30)) == '2025-W01'
        assert get_week_string(date(2025, 1, 5)) == '2025-W01'

    def test_week_label(self):
        assert get_week_label(date(2025, 9, 15), date(2025, 9, 21)) == 'Sep 15 - Sep 21, 2025'

    def test_current_or_past_week(self):
        today = date(2025, 9, 18)
        assert is_current_or_past_week(date(2025, 9, 15), today=today)
        assert is_current_or_past_week(date(2025, 9, 8), today=today)
        assert not is_current_or_past_week(date(2025, 9, 22), today=today)

    def test_formatting(self):
        assert format_display_date(date(2025, 9, 5)) == 'Sep 05, 2025'
        assert format_display_date(None) == ''
        assert format_decimal(7.5) == '7.50'
        assert format_decimal(None) == '0.00'
