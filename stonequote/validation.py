"""
Piece checks run before any pricing.

Each raises ValidationError on the first problem found; a single invalid
piece aborts the whole quote.
"""

import math

from .errors import ValidationError
from .models import LaminationMethod

# Profiles a mitred edge can carry
MITRE_COMPATIBLE_PROFILES = ("pencil", "raw")


def validate_dimensions(piece):
    for label, value in (("length", piece.length_mm), ("width", piece.width_mm),
                         ("thickness", piece.thickness_mm)):
        if value is None or not math.isfinite(value) or value <= 0:
            raise ValidationError(
                f"{piece.display_name}: {label} must be greater than 0 (got {value!r})",
                piece_id=piece.id,
            )


def validate_cutouts(piece):
    """Quantities must be whole and positive; a sized cutout must fit inside the piece."""
    for cutout in piece.cutouts:
        if cutout.quantity < 1:
            raise ValidationError(
                f"{piece.display_name}: cutout {cutout.type!r} quantity must be at least 1",
                piece_id=piece.id,
            )
        if cutout.length_mm is None and cutout.width_mm is None:
            continue

        length = cutout.length_mm or 0
        width = cutout.width_mm or 0
        fits = (length <= piece.length_mm and width <= piece.width_mm) or \
               (length <= piece.width_mm and width <= piece.length_mm)
        if length < 0 or width < 0 or not fits:
            raise ValidationError(
                f"{piece.display_name}: cutout {cutout.type!r} ({length:g}x{width:g}mm) "
                f"exceeds the piece ({piece.length_mm:g}x{piece.width_mm:g}mm)",
                piece_id=piece.id,
            )


def validate_mitred_edges(piece, resolver):
    """A mitred piece can only carry Pencil Round (or raw) finished edges."""
    if piece.lamination_method != LaminationMethod.MITRED:
        return
    for side, edge_id, _ in piece.edge_sides():
        if not edge_id:
            continue
        edge_type = resolver.edge_type(edge_id)
        name = edge_type.name.lower()
        if not any(profile in name for profile in MITRE_COMPATIBLE_PROFILES):
            raise ValidationError(
                f"{piece.display_name}: mitred edges only support Pencil Round profile. "
                f"Found {edge_type.name!r} on the {side} edge. "
                f"Change to Pencil Round or switch to Laminated edge.",
                piece_id=piece.id,
            )


def validate_piece(piece, resolver):
    validate_dimensions(piece)
    validate_cutouts(piece)
    validate_mitred_edges(piece, resolver)


def validate_pieces(pieces, resolver):
    """Validate every piece up front. Piece ids must be unique within a quote."""
    seen = set()
    for piece in pieces:
        if piece.id in seen:
            raise ValidationError(f"Duplicate piece id {piece.id!r}", piece_id=piece.id)
        seen.add(piece.id)
        validate_piece(piece, resolver)
