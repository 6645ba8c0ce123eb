"""
Cutout normaliser tests: the three stored shapes collapse to CutoutSpec.
"""

import pytest

from stonequote.errors import ValidationError
from stonequote.normalize import normalize_cutouts
from stonequote.schemas import CutoutSpec

from conftest import sample_cutout_types


def test_type_id_shape():
    specs = normalize_cutouts([{"typeId": "hotplate", "quantity": 2}], sample_cutout_types())
    assert specs == [CutoutSpec(type="hotplate", quantity=2)]


def test_type_shape_by_id_or_name():
    specs = normalize_cutouts(
        [{"type": "undermount", "quantity": 1}, {"type": "Tap Hole", "quantity": 3}],
        sample_cutout_types(),
    )
    assert [(s.type, s.quantity) for s in specs] == [("undermount", 1), ("taphole", 3)]


def test_name_shape_case_insensitive():
    specs = normalize_cutouts([{"name": "  hotplate "}], sample_cutout_types())
    assert specs == [CutoutSpec(type="hotplate", quantity=1)]


def test_json_string_input():
    raw = '[{"typeId": "hotplate", "quantity": 1}, {"name": "Undermount Sink", "quantity": 1}]'
    specs = normalize_cutouts(raw, sample_cutout_types())
    assert [s.type for s in specs] == ["hotplate", "undermount"]


def test_quantity_defaults_to_one():
    specs = normalize_cutouts([{"type": "hotplate"}, {"type": "hotplate", "quantity": 0}],
                              sample_cutout_types())
    assert [s.quantity for s in specs] == [1, 1]


def test_dimensions_carried_through():
    specs = normalize_cutouts([{"typeId": "undermount", "lengthMm": 800, "widthMm": 450}],
                              sample_cutout_types())
    assert specs[0].length_mm == 800.0
    assert specs[0].width_mm == 450.0


def test_unresolved_name_passed_through():
    specs = normalize_cutouts([{"name": "Jacuzzi"}], sample_cutout_types())
    assert specs == [CutoutSpec(type="Jacuzzi", quantity=1)]


def test_empty_and_typeless_entries():
    assert normalize_cutouts(None) == []
    assert normalize_cutouts("") == []
    assert normalize_cutouts([{"quantity": 2}, "junk"]) == []


def test_invalid_json_raises():
    with pytest.raises(ValidationError):
        normalize_cutouts("[{not json")


def test_non_list_raises():
    with pytest.raises(ValidationError):
        normalize_cutouts({"typeId": "hotplate"})


def test_quantity_from_stored_string():
    specs = normalize_cutouts([{"type": "hotplate", "quantity": "2"}], sample_cutout_types())
    assert specs[0].quantity == 2


@pytest.mark.parametrize("quantity", ["1.5", "two", 2.5, [1]])
def test_bad_quantity_raises(quantity):
    with pytest.raises(ValidationError):
        normalize_cutouts([{"type": "hotplate", "quantity": quantity}])


def test_bad_dimension_raises():
    with pytest.raises(ValidationError):
        normalize_cutouts([{"type": "undermount", "lengthMm": "wide"}])
