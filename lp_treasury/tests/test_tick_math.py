"""
Tick Math 테스트

in-range / full-range 판별을 테스트합니다.
"""

import pytest

from ..math.tick_math import (
    get_tick_spacing_for_fee,
    usable_tick_bounds,
    is_full_range,
    is_in_range,
)


class TestTickSpacing:

    @pytest.mark.parametrize("fee,spacing", [(100, 1), (500, 10), (3000, 60), (10000, 200)])
    def test_known_fee_tiers(self, fee, spacing):
        assert get_tick_spacing_for_fee(fee) == spacing

    def test_unknown_fee_tier(self):
        with pytest.raises(ValueError):
            get_tick_spacing_for_fee(2500)

    def test_usable_bounds(self):
        """MIN_TICK / MAX_TICK를 틱 간격에 맞춰 안쪽으로 정렬"""
        assert usable_tick_bounds(60) == (-887220, 887220)
        assert usable_tick_bounds(200) == (-887200, 887200)
        assert usable_tick_bounds(1) == (-887272, 887272)


class TestFullRange:

    def test_full_range_with_spacing(self):
        assert is_full_range(-887220, 887220, tick_spacing=60)

    def test_narrower_than_usable_bounds(self):
        assert not is_full_range(-887160, 887220, tick_spacing=60)

    def test_unknown_spacing_uses_widest(self):
        """틱 간격을 모르면 가장 넓은 간격(200)의 경계를 기준으로 판별"""
        assert is_full_range(-887220, 887220)
        assert is_full_range(-887200, 887200)
        assert not is_full_range(-887000, 887200)

    def test_concentrated_position(self):
        assert not is_full_range(-600, 600, tick_spacing=60)


class TestInRange:
    """반개구간 [tick_lower, tick_upper)"""

    def test_lower_inclusive(self):
        assert is_in_range(-60, 60, -60)

    def test_upper_exclusive(self):
        assert not is_in_range(-60, 60, 60)

    def test_below(self):
        assert not is_in_range(-60, 60, -61)
