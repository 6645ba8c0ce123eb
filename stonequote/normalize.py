"""
Cutout normaliser.

Stored quotes carry cutouts in three historical shapes:

    {"typeId": "ct-hotplate", "quantity": 1}
    {"type": "Hotplate", "quantity": 1}      # type id or display name
    {"name": "Hotplate", "quantity": 1}

sometimes as a JSON-encoded string. The pricing engine only ever sees
CutoutSpec(type=<cutout type id>, quantity=n); this module does the mapping
at the input boundary.
"""

import json
import logging

from .errors import ValidationError
from .schemas import CutoutSpec

logger = logging.getLogger(__name__)

_TYPE_KEYS = ("typeId", "type_id", "type", "name")


def _resolve_type(entry: dict, by_id: dict, by_name: dict):
    for key in _TYPE_KEYS:
        value = entry.get(key)
        if not value:
            continue
        value = str(value)
        if value in by_id:
            return value
        match = by_name.get(value.strip().lower())
        if match is not None:
            return match
        # Unresolved: pass through so the engine can warn about it
        return value
    return None


def _dimension(entry: dict, *keys):
    for key in keys:
        if entry.get(key) is not None:
            try:
                return float(entry[key])
            except (TypeError, ValueError):
                raise ValidationError(f"Cutout {key} must be a number, got {entry[key]!r}")
    return None


def _quantity(entry: dict) -> int:
    """Stored quantities of 0, None or "" mean one cutout."""
    raw = entry.get("quantity") or 1
    try:
        quantity = float(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Cutout quantity must be a whole number, got {raw!r}")
    if not quantity.is_integer():
        raise ValidationError(f"Cutout quantity must be a whole number, got {raw!r}")
    return int(quantity)


def normalize_cutouts(raw, cutout_types=None) -> list:
    """
    Convert any stored cutout shape into a list of CutoutSpec.

    Args:
        raw: list of dicts / CutoutSpec, a JSON string of such a list, or None
        cutout_types: CutoutType records used to map display names to ids

    Returns:
        [CutoutSpec], in input order. Entries with no recognisable type are dropped.
    """
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Cutouts are not valid JSON: {e}")
    if not isinstance(raw, list):
        raise ValidationError(f"Cutouts must be a list, got {type(raw).__name__}")

    cutout_types = cutout_types or []
    by_id = {c.id: c.id for c in cutout_types}
    by_name = {c.name.strip().lower(): c.id for c in cutout_types}

    specs = []
    for entry in raw:
        if isinstance(entry, CutoutSpec):
            specs.append(entry)
            continue
        if not isinstance(entry, dict):
            logger.warning("Skipping cutout entry of type %s", type(entry).__name__)
            continue

        type_id = _resolve_type(entry, by_id, by_name)
        if type_id is None:
            logger.warning("Skipping cutout with no type: %s", entry)
            continue

        specs.append(CutoutSpec(
            type=type_id,
            quantity=_quantity(entry),
            length_mm=_dimension(entry, "lengthMm", "length_mm"),
            width_mm=_dimension(entry, "widthMm", "width_mm"),
        ))
    return specs
