import pytest

from csvmap.errors import NoMappableFieldsError
from csvmap.mapping import infer_mappings
from csvmap.models import FieldMapping, MappingSet
from csvmap.transform import transform_rows


def test_transform_applies_mapped_columns_only():
    rows = [{"Name": "John", "Email": "john@x.com", "Misc": "ignored"}]
    result = transform_rows(rows, infer_mappings(["Name", "Email", "Misc"]))
    assert result.records == [{"name": "John", "email": "john@x.com"}]
    assert result.active_targets == ["name", "email"]


def test_last_source_wins_on_collision():
    mapping_set = MappingSet(mappings=(
        FieldMapping(source="A", target="email"),
        FieldMapping(source="B", target="email"),
    ))
    result = transform_rows([{"A": "a@x.com", "B": "b@x.com"}], mapping_set)
    assert result.records == [{"email": "b@x.com"}]
    assert result.active_targets == ["email"]


def test_missing_source_value_defaults_to_empty():
    mapping_set = MappingSet(mappings=(FieldMapping(source="Phone", target="phone"),))
    assert transform_rows([{}], mapping_set).records == [{"phone": ""}]


def test_row_order_preserved_and_nothing_filtered():
    rows = [{"Name": str(i)} for i in range(5)] + [{"Name": ""}]
    result = transform_rows(rows, infer_mappings(["Name"]))
    assert [r["name"] for r in result.records] == ["0", "1", "2", "3", "4", ""]


def test_no_mappable_fields():
    mapping_set = MappingSet(mappings=(
        FieldMapping(source="Name", target="skip"),
        FieldMapping(source="Email", target="skip"),
    ))
    with pytest.raises(NoMappableFieldsError):
        transform_rows([{"Name": "x", "Email": "y"}], mapping_set)


def test_progress_reported_at_record_milestones():
    calls = []
    rows = [{"Name": str(i)} for i in range(5)]
    transform_rows(rows, infer_mappings(["Name"]), on_progress=lambda d, t: calls.append((d, t)), progress_every=2)
    assert calls == [(2, 5), (4, 5), (5, 5)]


def test_progress_final_call_not_repeated():
    calls = []
    rows = [{"Name": str(i)} for i in range(4)]
    transform_rows(rows, infer_mappings(["Name"]), on_progress=lambda d, t: calls.append((d, t)), progress_every=2)
    assert calls == [(2, 4), (4, 4)]
