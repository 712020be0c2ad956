"""
Tests for terminal_broker.domain.ports.
"""

from terminal_broker.domain.ports import PortAllocator


class TestPortAllocator:

    def test_empty_returns_base(self):
        assert PortAllocator(7681).allocate([]) == 7681

    def test_high_water_mark(self):
        assert PortAllocator(7681).allocate([7681, 7682]) == 7683

    def test_gap_not_reused(self):
        """7681 removed while 7682 is held → next is 7683, not 7681."""
        assert PortAllocator(7681).allocate([7682]) == 7683

    def test_custom_base(self):
        assert PortAllocator(9000).allocate(set()) == 9000

    def test_accepts_any_iterable(self):
        assert PortAllocator().allocate(p for p in (7690, 7685)) == 7691
