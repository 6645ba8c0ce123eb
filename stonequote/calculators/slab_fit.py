"""
Slab fit planner.

Input: piece dimensions, slab size, edge trim, join rate.
Output: CutPlan dict with strategy, segments, joins, join cost and warnings.

Never raises. A piece that cannot be cut cleanly still gets a plan; the risk
is documented in the warnings list.
"""

import math

from ..config import settings
from ..models import JoinStrategy, JoinOrientation
from ..slab_sizes import usable_dimensions
from .base import round_money


def calculate_cut_plan(piece, slab_size, edge_trim_mm: float = 20,
                       join_rate_per_metre: float = 0.0) -> dict:
    """
    Decide whether a piece fits on one slab and, if not, how to split it.

    Args:
        piece: anything with length_mm and width_mm
        slab_size: SlabSize (full slab, before trimming)
        edge_trim_mm: trimmed off every slab edge before cutting
        join_rate_per_metre: $/Lm used for join_cost

    Returns:
        CutPlan dict:
        {
            fits_on_single_slab: bool,
            strategy: "NONE" | "LENGTHWISE" | "WIDTHWISE" | "MULTI_JOIN",
            segments: [{length_mm, width_mm, slab_index}],
            joins: [{position_mm, orientation, length_mm}],
            total_slabs_required: int,
            join_length_mm: float,
            join_cost: float,
            warnings: [str],
        }
    """
    max_length, max_width = usable_dimensions(slab_size, edge_trim_mm)
    length = piece.length_mm
    width = piece.width_mm

    if max_length <= 0 or max_width <= 0:
        return _make_plan(
            strategy=JoinStrategy.NONE,
            segments=[],
            joins=[],
            total_slabs=0,
            join_rate_per_metre=join_rate_per_metre,
            warnings=[
                f"Slab has no usable area after edge trim "
                f"({slab_size.length_mm:g}x{slab_size.width_mm:g}mm, trim {edge_trim_mm:g}mm)"
            ],
            fits=False,
        )

    fits_normal = length <= max_length and width <= max_width
    fits_rotated = width <= max_length and length <= max_width

    if fits_normal or fits_rotated:
        warnings = []
        if fits_rotated and not fits_normal:
            warnings.append("Piece must be rotated 90° to fit on slab")
        return _make_plan(
            strategy=JoinStrategy.NONE,
            segments=[_segment(length, width, 0)],
            joins=[],
            total_slabs=1,
            join_rate_per_metre=join_rate_per_metre,
            warnings=warnings,
        )

    if length > max_length and width <= max_width:
        return _lengthwise(length, width, max_length, join_rate_per_metre)

    if width > max_width and length <= max_length:
        return _widthwise(length, width, max_width, join_rate_per_metre)

    return _multi_join(length, width, max_length, max_width, join_rate_per_metre)


def will_require_join(piece, slab_size, edge_trim_mm: float = 20) -> bool:
    """True if the piece has to be split across slabs."""
    return not calculate_cut_plan(piece, slab_size, edge_trim_mm)["fits_on_single_slab"]


def estimate_waste(piece, slab_size, edge_trim_mm: float = 20) -> dict:
    """
    Share of the consumed slabs that does not end up in the piece.

    Returns: {"waste_percentage": float (1 decimal), "waste_mm2": float}
    """
    plan = calculate_cut_plan(piece, slab_size, edge_trim_mm)
    piece_area = piece.length_mm * piece.width_mm
    slab_area = plan["total_slabs_required"] * slab_size.length_mm * slab_size.width_mm
    if slab_area <= 0:
        return {"waste_percentage": 0.0, "waste_mm2": 0.0}
    waste_mm2 = slab_area - piece_area
    return {
        "waste_percentage": round(waste_mm2 / slab_area * 100, 1),
        "waste_mm2": waste_mm2,
    }


# --- Split strategies ---

def _split_axis(total: float, usable: float) -> list:
    """
    Split one dimension into near-equal segments that each fit `usable`.
    Segments are ceil(total / n) long; the last one takes whatever remains,
    so the parts always sum back to `total` exactly.
    """
    count = math.ceil(total / usable)
    segment = math.ceil(total / count)
    parts = []
    remaining = total
    for i in range(count):
        part = remaining if i == count - 1 else min(segment, remaining)
        parts.append(part)
        remaining -= part
    return parts


def _join_positions(parts: list) -> list:
    """Running offsets of every internal boundary."""
    positions = []
    offset = 0
    for part in parts[:-1]:
        offset += part
        positions.append(offset)
    return positions


def _lengthwise(length, width, max_length, join_rate_per_metre) -> dict:
    parts = _split_axis(length, max_length)
    segments = [_segment(part, width, i) for i, part in enumerate(parts)]
    joins = [_join(pos, JoinOrientation.VERTICAL, width) for pos in _join_positions(parts)]

    warnings = []
    centre = length / 2
    for join in joins:
        if abs(join["position_mm"] - centre) < settings.JOIN_CENTRE_WARNING_MM:
            warnings.append("Join is near centre of piece - consider adjusting if possible")

    return _make_plan(JoinStrategy.LENGTHWISE, segments, joins, len(parts),
                      join_rate_per_metre, warnings)


def _widthwise(length, width, max_width, join_rate_per_metre) -> dict:
    parts = _split_axis(width, max_width)
    segments = [_segment(length, part, i) for i, part in enumerate(parts)]
    joins = [_join(pos, JoinOrientation.HORIZONTAL, length) for pos in _join_positions(parts)]

    return _make_plan(JoinStrategy.WIDTHWISE, segments, joins, len(parts),
                      join_rate_per_metre,
                      ["Widthwise join - ensure waterfall continuity if applicable"])


def _multi_join(length, width, max_length, max_width, join_rate_per_metre) -> dict:
    columns = _split_axis(length, max_length)
    rows = _split_axis(width, max_width)

    segments = []
    for r, row_width in enumerate(rows):
        for c, col_length in enumerate(columns):
            segments.append(_segment(col_length, row_width, r * len(columns) + c))

    joins = [_join(pos, JoinOrientation.VERTICAL, width) for pos in _join_positions(columns)]
    joins += [_join(pos, JoinOrientation.HORIZONTAL, length) for pos in _join_positions(rows)]

    total_slabs = len(columns) * len(rows)
    warnings = [
        f"Complex piece requires {total_slabs} slabs and {len(joins)} joins",
        "Consider breaking into separate pieces if possible",
    ]
    return _make_plan(JoinStrategy.MULTI_JOIN, segments, joins, total_slabs,
                      join_rate_per_metre, warnings)


# --- Builders ---

def _segment(length_mm, width_mm, slab_index) -> dict:
    return {"length_mm": length_mm, "width_mm": width_mm, "slab_index": slab_index}


def _join(position_mm, orientation, length_mm) -> dict:
    return {"position_mm": position_mm, "orientation": orientation.value, "length_mm": length_mm}


def _make_plan(strategy, segments, joins, total_slabs, join_rate_per_metre, warnings,
               fits=None) -> dict:
    if fits is None:
        fits = strategy == JoinStrategy.NONE
    join_length = sum(j["length_mm"] for j in joins)
    return {
        "fits_on_single_slab": fits,
        "strategy": strategy.value,
        "segments": segments,
        "joins": joins,
        "total_slabs_required": total_slabs,
        "join_length_mm": join_length,
        "join_cost": round_money((join_length / 1000) * join_rate_per_metre),
        "warnings": warnings,
    }
