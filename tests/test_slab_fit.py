"""
Slab fit planner tests.

Tests:
1-3.   Single-slab fit (normal, rotated, exact usable size)
4-7.   Lengthwise / widthwise splits
8-10.  Multi-join grid
11-14. Segment sums, determinism, join cost, helpers
"""

import pytest

from stonequote.calculators.slab_fit import calculate_cut_plan, estimate_waste, will_require_join
from stonequote.schemas import Material, Piece, SlabSize
from stonequote.slab_sizes import get_slab_size, slab_size_for_material, usable_dimensions


JUMBO = SlabSize(length_mm=3200, width_mm=1600, name="Jumbo")


def _sample_piece(length_mm, width_mm):
    return Piece(id=1, length_mm=length_mm, width_mm=width_mm)


# ============================================================
# Single slab
# ============================================================

def test_piece_within_usable_fits_single_slab():
    plan = calculate_cut_plan(_sample_piece(2400, 600), JUMBO)
    assert plan["fits_on_single_slab"] is True
    assert plan["strategy"] == "NONE"
    assert plan["segments"] == [{"length_mm": 2400, "width_mm": 600, "slab_index": 0}]
    assert plan["joins"] == []
    assert plan["total_slabs_required"] == 1
    assert plan["join_cost"] == 0.0
    assert plan["warnings"] == []


def test_piece_fitting_only_rotated_warns():
    plan = calculate_cut_plan(_sample_piece(1500, 3000), JUMBO)
    assert plan["fits_on_single_slab"] is True
    assert plan["strategy"] == "NONE"
    assert plan["warnings"] == ["Piece must be rotated 90° to fit on slab"]


def test_piece_exactly_usable_size_fits():
    """Usable area is the slab minus 20mm trim on every side: 3160 x 1560."""
    assert usable_dimensions(JUMBO, 20) == (3160, 1560)
    plan = calculate_cut_plan(_sample_piece(3160, 1560), JUMBO)
    assert plan["fits_on_single_slab"] is True


@pytest.mark.parametrize("slab,trim", [
    (SlabSize(length_mm=40, width_mm=40), 20),
    (JUMBO, 800),
    (JUMBO, 2000),
])
def test_slab_with_no_usable_area_returns_plan(slab, trim):
    plan = calculate_cut_plan(_sample_piece(500, 300), slab, trim, join_rate_per_metre=150)
    assert plan["fits_on_single_slab"] is False
    assert plan["segments"] == []
    assert plan["joins"] == []
    assert plan["total_slabs_required"] == 0
    assert plan["join_cost"] == 0.0
    assert "no usable area" in plan["warnings"][0]
    assert estimate_waste(_sample_piece(500, 300), slab, trim)["waste_mm2"] == 0.0


# ============================================================
# Lengthwise / widthwise
# ============================================================

def test_lengthwise_split_two_segments():
    """4000 x 700 on a jumbo slab: two 2000mm segments, one join at 2000mm."""
    plan = calculate_cut_plan(_sample_piece(4000, 700), JUMBO, edge_trim_mm=20)
    assert plan["fits_on_single_slab"] is False
    assert plan["strategy"] == "LENGTHWISE"
    assert plan["segments"] == [
        {"length_mm": 2000, "width_mm": 700, "slab_index": 0},
        {"length_mm": 2000, "width_mm": 700, "slab_index": 1},
    ]
    assert plan["joins"] == [{"position_mm": 2000, "orientation": "VERTICAL", "length_mm": 700}]
    assert plan["total_slabs_required"] == 2
    assert plan["join_length_mm"] == 700


def test_lengthwise_join_at_centre_warns():
    plan = calculate_cut_plan(_sample_piece(4000, 700), JUMBO)
    assert "Join is near centre of piece - consider adjusting if possible" in plan["warnings"]


def test_lengthwise_three_segments_no_centre_warning():
    plan = calculate_cut_plan(_sample_piece(9000, 600), JUMBO)
    assert [s["length_mm"] for s in plan["segments"]] == [3000, 3000, 3000]
    assert [j["position_mm"] for j in plan["joins"]] == [3000, 6000]
    assert plan["warnings"] == []


def test_widthwise_split():
    plan = calculate_cut_plan(_sample_piece(2000, 2000), JUMBO)
    assert plan["strategy"] == "WIDTHWISE"
    assert [s["width_mm"] for s in plan["segments"]] == [1000, 1000]
    assert plan["joins"] == [{"position_mm": 1000, "orientation": "HORIZONTAL", "length_mm": 2000}]
    assert plan["warnings"] == ["Widthwise join - ensure waterfall continuity if applicable"]


# ============================================================
# Multi-join
# ============================================================

def test_multi_join_grid():
    plan = calculate_cut_plan(_sample_piece(7000, 2000), JUMBO)
    assert plan["strategy"] == "MULTI_JOIN"
    assert plan["total_slabs_required"] == 6
    assert len(plan["segments"]) == 6
    assert [s["slab_index"] for s in plan["segments"]] == [0, 1, 2, 3, 4, 5]


def test_multi_join_joins_and_length():
    plan = calculate_cut_plan(_sample_piece(7000, 2000), JUMBO)
    vertical = [j for j in plan["joins"] if j["orientation"] == "VERTICAL"]
    horizontal = [j for j in plan["joins"] if j["orientation"] == "HORIZONTAL"]
    assert len(vertical) == 2
    assert len(horizontal) == 1
    assert plan["join_length_mm"] == 2 * 2000 + 7000


def test_multi_join_warnings():
    plan = calculate_cut_plan(_sample_piece(7000, 2000), JUMBO)
    assert plan["warnings"] == [
        "Complex piece requires 6 slabs and 3 joins",
        "Consider breaking into separate pieces if possible",
    ]


# ============================================================
# Invariants and helpers
# ============================================================

@pytest.mark.parametrize("length,width", [
    (4000, 700), (3161, 900), (6500, 620), (9999, 1000), (2000, 1561), (3000, 4100), (7001, 3333),
])
def test_segments_sum_exactly_to_piece(length, width):
    plan = calculate_cut_plan(_sample_piece(length, width), JUMBO)
    segments = plan["segments"]

    if plan["strategy"] == "LENGTHWISE":
        assert sum(s["length_mm"] for s in segments) == length
    elif plan["strategy"] == "WIDTHWISE":
        assert sum(s["width_mm"] for s in segments) == width
    else:
        assert plan["strategy"] == "MULTI_JOIN"
        columns = len([j for j in plan["joins"] if j["orientation"] == "VERTICAL"]) + 1
        assert sum(s["length_mm"] for s in segments[:columns]) == length
        assert sum(s["width_mm"] for s in segments[::columns]) == width


def test_cut_plan_is_deterministic():
    piece = _sample_piece(7000, 2000)
    assert calculate_cut_plan(piece, JUMBO, 20, 150) == calculate_cut_plan(piece, JUMBO, 20, 150)


def test_join_cost_rounded_from_join_length():
    plan = calculate_cut_plan(_sample_piece(4000, 700), JUMBO, join_rate_per_metre=150)
    assert plan["join_cost"] == 105.0
    plan = calculate_cut_plan(_sample_piece(2000, 2000), JUMBO, join_rate_per_metre=150)
    assert plan["join_cost"] == 300.0


def test_will_require_join_and_waste():
    assert will_require_join(_sample_piece(4000, 700), JUMBO) is True
    assert will_require_join(_sample_piece(3000, 1500), JUMBO) is False
    waste = estimate_waste(_sample_piece(3000, 1500), JUMBO)
    assert waste["waste_mm2"] == 620000
    assert waste["waste_percentage"] == 12.1


def test_slab_size_lookup():
    assert get_slab_size("Caesarstone").length_mm == 3200
    assert get_slab_size("Essastone").width_mm == 1440
    assert get_slab_size("Unknown Brand") == get_slab_size("caesarstone")
    own = Material(id=1, name="Custom", slab_length_mm=3000, slab_width_mm=1400)
    assert slab_size_for_material(own).length_mm == 3000
