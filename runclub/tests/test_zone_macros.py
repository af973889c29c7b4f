#!/usr/bin/env python3
"""
Tests for speed-zone shortcut expansion.

Run with: pytest runclub/tests/test_zone_macros.py -v
"""

import sys
from pathlib import Path

import pytest

# Add repository root for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from runclub.models import SpeedZones
from runclub.zone_macros import expand_zone_macros


@pytest.fixture
def zones():
    return SpeedZones(z1='6:40/km', z2='5:30/km', z3='5:00/km', z4='4:30/km', z5='')


class TestExpansion:

    def test_basic_example(self):
        assert expand_zone_macros('corra 3km em z2 hoje', {'z2': '5:30/km'}) == \
            'corra 3km em 5:30/km hoje'

    def test_multiple_zones(self, zones):
        text = '10min z1 depois 5x1km z4 com 2min z1 '
        assert expand_zone_macros(text, zones) == \
            '10min 6:40/km depois 5x1km 4:30/km com 2min 6:40/km '

    def test_uppercase_shortcut(self, zones):
        assert expand_zone_macros('trote Z3 leve', zones) == 'trote 5:00/km leve'

    def test_trailing_whitespace_preserved(self, zones):
        assert expand_zone_macros('z2\nz3\t', zones) == '5:30/km\n5:00/km\t'

    def test_mapping_keys_case_insensitive(self):
        assert expand_zone_macros('em z2 hoje', {'Z2': '5:30/km'}) == 'em 5:30/km hoje'


class TestLeftUnchanged:

    def test_blank_zone(self, zones):
        assert expand_zone_macros('sprint z5 final', zones) == 'sprint z5 final'

    def test_missing_zone_key(self):
        assert expand_zone_macros('em z3 hoje', {'z2': '5:30/km'}) == 'em z3 hoje'

    def test_no_zones(self):
        assert expand_zone_macros('em z2 hoje', None) == 'em z2 hoje'
        assert expand_zone_macros('em z2 hoje', {}) == 'em z2 hoje'

    def test_shortcut_needs_trailing_whitespace(self, zones):
        assert expand_zone_macros('termine em z2', zones) == 'termine em z2'

    def test_shortcut_needs_word_boundary(self, zones):
        assert expand_zone_macros('xz2 trote', zones) == 'xz2 trote'

    def test_zone_out_of_range(self, zones):
        assert expand_zone_macros('em z6 hoje', zones) == 'em z6 hoje'

    def test_empty_text(self, zones):
        assert expand_zone_macros('', zones) == ''


class TestSinglePass:
    """Output is never expanded again."""

    def test_pace_that_looks_like_shortcut(self):
        zones = {'z1': 'z2 ', 'z2': '5:30/km'}
        assert expand_zone_macros('z1 ', zones) == 'z2  '

    def test_input_not_mutated(self, zones):
        text = 'em z2 hoje'
        expand_zone_macros(text, zones)
        assert text == 'em z2 hoje'


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
