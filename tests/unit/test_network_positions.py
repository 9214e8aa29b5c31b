"""Unit tests for ternary tree position math."""

import pytest

from academy.services.network.positions import (
    branch_root,
    branch_rotation,
    format_position_id,
    get_ancestor_position_ids,
    get_child_positions,
    get_parent_position,
    get_slot_number,
    next_branch,
    parse_position_id,
    positions_at_relative_depth,
)


class TestPositionIds:
    """Formatting and parsing of L###P########## ids."""

    def test_root_id(self):
        assert format_position_id(0, 1) == "L000P0000000001"

    def test_format_pads_level_and_position(self):
        assert format_position_id(2, 5) == "L002P0000000005"

    def test_parse(self):
        assert parse_position_id("L003P0000000027") == (3, 27)

    @pytest.mark.parametrize(
        "bad", ["", "L3P27", "L003P000000002", "X003P0000000027", "L003P0000000000"]
    )
    def test_parse_rejects_malformed(self, bad):
        with pytest.raises(ValueError):
            parse_position_id(bad)

    def test_format_rejects_position_zero(self):
        with pytest.raises(ValueError):
            format_position_id(1, 0)


class TestTreeNavigation:
    """Children, parents and slots."""

    def test_children_of_root(self):
        assert get_child_positions(1) == [1, 2, 3]

    def test_children_of_position_two(self):
        assert get_child_positions(2) == [4, 5, 6]

    def test_parent_of_children(self):
        for child in (4, 5, 6):
            assert get_parent_position(child) == 2

    def test_root_has_no_parent(self):
        assert get_parent_position(1, level=0) is None
        assert get_parent_position(1) is None

    def test_slot_numbers_cycle(self):
        assert [get_slot_number(p) for p in range(1, 8)] == [1, 2, 3, 1, 2, 3, 1]

    def test_branch_root(self):
        # Position 2 on its level: its branch 3 child is position 6
        assert branch_root(2, 3) == 6

    def test_branch_root_rejects_bad_branch(self):
        with pytest.raises(ValueError):
            branch_root(1, 4)

    def test_positions_at_relative_depth(self):
        assert list(positions_at_relative_depth(2, 0)) == [2]
        assert list(positions_at_relative_depth(2, 1)) == [4, 5, 6]
        assert list(positions_at_relative_depth(2, 2)) == list(range(10, 19))


class TestAncestors:
    """Upline chains."""

    def test_root_has_no_ancestors(self):
        assert get_ancestor_position_ids("L000P0000000001") == []

    def test_ancestors_nearest_first(self):
        assert get_ancestor_position_ids("L002P0000000005") == [
            "L001P0000000002",
            "L000P0000000001",
        ]


class TestBranchRotation:
    """Round-robin branch selection for new referrals."""

    def test_no_previous_branch_treated_as_branch_one(self):
        assert next_branch(None) == 2

    @pytest.mark.parametrize("last, expected", [(1, 2), (2, 3), (3, 1)])
    def test_next_branch(self, last, expected):
        assert next_branch(last) == expected

    def test_rotation_order(self):
        assert branch_rotation(2) == [2, 3, 1]
        assert branch_rotation(1) == [1, 2, 3]
