"""
Tests for processing/identity_resolver.py
"""

import pytest

from processing.identity_resolver import PRODUCT, SUPPLIER, EntityRegistry, normalize_name
from processing.mapping_store import InMemoryStore, JsonFileStore


class TestNormalizeName:

    @pytest.mark.parametrize("raw, expected", [
        ("ACME, Inc.", "acme inc"),
        ("  Acme   Inc ", "acme inc"),
        ("PVC-Pipe 20mm", "pvc pipe 20mm"),
        (None, ""),
        ("...", ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_name(raw) == expected


class TestSuppliers:

    def test_same_name_same_id(self):
        registry = EntityRegistry()
        assert registry.ensure_supplier("Acme Inc") == registry.ensure_supplier("Acme Inc")

    def test_punctuation_and_case_ignored(self):
        registry = EntityRegistry()
        assert registry.ensure_supplier("ACME, Inc.") == registry.ensure_supplier("acme inc")

    def test_word_order_fuzzy_match(self):
        registry = EntityRegistry()
        first = registry.ensure_supplier("Acme Steel Supplies")
        assert registry.ensure_supplier("Steel Supplies Acme") == first

    def test_different_suppliers_different_ids(self):
        registry = EntityRegistry()
        assert registry.ensure_supplier("Acme") != registry.ensure_supplier("Bolt Co")

    def test_blank_name_rejected(self):
        with pytest.raises(ValueError):
            EntityRegistry().ensure_supplier("  ")

    def test_display_name_kept(self):
        registry = EntityRegistry()
        supplier_id = registry.ensure_supplier("  ACME,   Inc. ")
        assert registry.get(SUPPLIER, supplier_id).name == "ACME, Inc."

    def test_kinds_are_separate(self):
        registry = EntityRegistry()
        supplier_id = registry.ensure_supplier("Acme")
        product_id = registry.ensure_product("Acme")
        assert supplier_id != product_id
        assert [entity.id for entity in registry.entities(SUPPLIER)] == [supplier_id]


class TestProducts:

    def test_sizes_never_merged(self):
        registry = EntityRegistry()
        small = registry.ensure_product("PVC Pipe 20mm")
        large = registry.ensure_product("PVC Pipe 25mm")
        assert small != large

    def test_attributes_stored(self):
        registry = EntityRegistry()
        product_id = registry.ensure_product("Copper Wire", category="Electrical", product_code="00731")
        entity = registry.get(PRODUCT, product_id)
        assert entity.category == "Electrical"
        assert entity.product_code == "00731"

    def test_find_unknown(self):
        registry = EntityRegistry()
        registry.ensure_product("Copper Wire")
        assert registry.find(PRODUCT, "Roofing Screws") is None
        assert registry.find(PRODUCT, "") is None

    def test_threshold_configurable(self):
        registry = EntityRegistry(store=InMemoryStore(), threshold=100)
        first = registry.ensure_product("Galvanised Bolt")
        assert registry.ensure_product("Galvanized Bolt") != first

    def test_durable_across_restarts(self, tmp_path):
        path = tmp_path / "registry.json"
        product_id = EntityRegistry(JsonFileStore(path)).ensure_product("Copper Wire")
        assert EntityRegistry(JsonFileStore(path)).ensure_product("copper wire") == product_id
