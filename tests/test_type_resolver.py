import pytest

from schemacheck.catalog.ref_index import RefIndex
from schemacheck.catalog.type_resolver import entity_candidates, resolve_entity_type
from schemacheck.errors import AmbiguousOrMissingEntityError, UnknownEntityTypeError


@pytest.mark.parametrize("key", ["invoice", "salesorder", "custom.record-1"])
def test_single_key_is_the_entity_type(key):
    assert resolve_entity_type({key: {}}) == key


def test_schema_key_is_ignored():
    document = {"$schema": "https://x/parent.json", "invoice": {"id": 1}}
    assert resolve_entity_type(document) == "invoice"


@pytest.mark.parametrize(
    "document",
    [
        {},
        {"$schema": "https://x/parent.json"},
        {"invoice": {}, "creditmemo": {}},
        ["invoice"],
        "invoice",
    ],
)
def test_zero_or_many_keys_fail(document):
    with pytest.raises(AmbiguousOrMissingEntityError) as excinfo:
        resolve_entity_type(document)
    assert excinfo.value.candidates == entity_candidates(document)


def test_resolved_type_missing_from_catalog():
    index = RefIndex({"invoice": "https://x/invoice.json", "vendor": "https://x/vendor.json"})
    entity_type = resolve_entity_type({"salesorder": {}})
    with pytest.raises(UnknownEntityTypeError) as excinfo:
        index.locator_for(entity_type)
    assert excinfo.value.known == ["invoice", "vendor"]
