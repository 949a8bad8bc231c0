"""
Tests for processing/template_manager.py

Covers template CRUD, ordering by last update, durable storage, replaying
a template over new rows, and corrections fed back into the header mapper.
"""

from datetime import datetime, timedelta, timezone

import pytest

from processing.column_mapper import HeaderMapper
from processing.mapping_store import InMemoryStore, JsonFileStore
from processing.template_manager import TemplateColumn, TemplateManager


class _StepClock:
    """Returns a strictly increasing UTC datetime on every call."""

    def __init__(self):
        self.current = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


def _make_manager(store=None) -> TemplateManager:
    mapper = HeaderMapper(store=InMemoryStore())
    return TemplateManager(store=store if store is not None else InMemoryStore(), mapper=mapper, clock=_StepClock())


_ACME_COLUMNS = [
    TemplateColumn("Vendor", "supplier", True, 1.0),
    TemplateColumn("Description", "product_name", True, 1.0),
    TemplateColumn("Cost", "price", True, 1.0),
    TemplateColumn("Internal Ref", "", False, 0.2),
]


# ═══════════════════════════════════════════════════════════════════════════
# Auto-detection
# ═══════════════════════════════════════════════════════════════════════════

class TestAutoDetect:

    def test_includes_unmapped_headers(self):
        columns = _make_manager().auto_detect_mappings(["Supplier", "Price", "xyz123"])

        assert [column.original_column for column in columns] == ["Supplier", "Price", "xyz123"]
        assert columns[0].standard_field == "supplier"
        assert columns[0].is_required is True
        assert columns[2].standard_field == ""
        assert columns[2].is_required is False

    def test_optional_fields_not_required(self):
        columns = _make_manager().auto_detect_mappings(["Notes"])
        assert columns[0].standard_field == "notes"
        assert columns[0].is_required is False


# ═══════════════════════════════════════════════════════════════════════════
# CRUD
# ═══════════════════════════════════════════════════════════════════════════

class TestCrud:

    def test_create_and_get(self):
        manager = _make_manager()
        template = manager.create_template("Acme Pipes", "ACM", "Monthly list", _ACME_COLUMNS)

        assert template.id.startswith("template_")
        assert template.is_active is True
        assert template.created_at == template.updated_at

        loaded = manager.get_template(template.id)
        assert loaded == template

    def test_unknown_template(self):
        assert _make_manager().get_template("template_missing") is None

    def test_blank_supplier_rejected(self):
        with pytest.raises(ValueError):
            _make_manager().create_template("   ")

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            _make_manager().create_template("Acme", column_mappings=[
                TemplateColumn("Vendor", "vendor_name"),
            ])

    def test_all_templates_newest_first(self):
        manager = _make_manager()
        first = manager.create_template("Acme")
        second = manager.create_template("Bolt Co")
        assert [t.id for t in manager.get_all_templates()] == [second.id, first.id]

        manager.update_template(first.id, description="refreshed")
        assert [t.id for t in manager.get_all_templates()] == [first.id, second.id]

    def test_update_returns_false_for_unknown(self):
        assert _make_manager().update_template("template_missing", description="x") is False

    def test_update_rejects_unknown_fields(self):
        manager = _make_manager()
        template = manager.create_template("Acme")
        with pytest.raises(ValueError):
            manager.update_template(template.id, id="template_other")

    def test_update_bumps_timestamp(self):
        manager = _make_manager()
        template = manager.create_template("Acme")
        assert manager.update_template(template.id, supplier_code="ACM") is True

        updated = manager.get_template(template.id)
        assert updated.supplier_code == "ACM"
        assert updated.updated_at > template.updated_at
        assert updated.created_at == template.created_at

    def test_delete(self):
        manager = _make_manager()
        template = manager.create_template("Acme")
        assert manager.delete_template(template.id) is True
        assert manager.get_template(template.id) is None
        assert manager.delete_template(template.id) is False

    def test_find_by_supplier(self):
        manager = _make_manager()
        acme = manager.create_template("Acme Pipes")
        manager.create_template("Bolt Co")

        assert manager.find_by_supplier("  acme   PIPES ").id == acme.id
        assert manager.find_by_supplier("Unknown") is None

    def test_find_by_supplier_skips_inactive(self):
        manager = _make_manager()
        template = manager.create_template("Acme")
        manager.update_template(template.id, is_active=False)
        assert manager.find_by_supplier("Acme") is None

    def test_durable_across_restarts(self, tmp_path):
        path = tmp_path / "templates.json"
        template = _make_manager(JsonFileStore(path)).create_template(
            "Acme", column_mappings=_ACME_COLUMNS
        )

        reloaded = _make_manager(JsonFileStore(path)).get_template(template.id)
        assert reloaded == template
        assert reloaded.column_mappings[0] == TemplateColumn("Vendor", "supplier", True, 1.0)


# ═══════════════════════════════════════════════════════════════════════════
# Replay and corrections
# ═══════════════════════════════════════════════════════════════════════════

class TestProcessData:

    def test_replays_mapping_and_drops_unmapped(self):
        manager = _make_manager()
        template = manager.create_template("Acme", column_mappings=_ACME_COLUMNS)
        rows = [{"Vendor": "Acme", "Description": "Pipe", "Cost": 12.5, "Internal Ref": "X1"}]

        records = manager.process_data(template.id, rows)

        assert records == [{"supplier": "Acme", "product_name": "Pipe", "price": 12.5}]
        assert list(records[0]) == ["supplier", "product_name", "price"]

    def test_missing_columns_become_blank(self):
        manager = _make_manager()
        template = manager.create_template("Acme", column_mappings=_ACME_COLUMNS)
        records = manager.process_data(template.id, [{"Vendor": "Acme"}])
        assert records == [{"supplier": "Acme", "product_name": "", "price": ""}]

    def test_unknown_template_yields_nothing(self):
        assert _make_manager().process_data("template_missing", [{"a": 1}]) == []

    def test_export_to_csv(self):
        manager = _make_manager()
        template = manager.create_template("Acme", column_mappings=_ACME_COLUMNS)
        records = manager.process_data(
            template.id, [{"Vendor": "Acme, Inc.", "Description": 'Pipe 6"', "Cost": 12.5}]
        )
        assert manager.export_to_csv(records) == (
            'supplier,product_name,price\n"Acme, Inc.","Pipe 6""",12.5'
        )


class TestCorrections:

    def test_changed_mapping_is_learned(self):
        manager = _make_manager()
        template = manager.create_template("Acme", column_mappings=_ACME_COLUMNS)

        changed = list(_ACME_COLUMNS)
        changed[3] = TemplateColumn("Internal Ref", "product_code", False, 1.0)
        manager.update_template(template.id, column_mappings=changed)

        entry = manager.mapper.map_header("internal ref")
        assert entry.canonical_field == "product_code"
        assert entry.confidence == 1.0

    def test_unchanged_mappings_not_learned(self):
        manager = _make_manager()
        template = manager.create_template("Acme", column_mappings=_ACME_COLUMNS)
        manager.update_template(template.id, column_mappings=list(_ACME_COLUMNS))
        assert manager.mapper.learned_mappings() == {}

    def test_unmapping_learns_skip(self):
        manager = _make_manager()
        template = manager.create_template("Acme", column_mappings=_ACME_COLUMNS)

        changed = list(_ACME_COLUMNS)
        changed[2] = TemplateColumn("Cost", "", False, 0.0)
        manager.update_template(template.id, column_mappings=changed)

        assert manager.mapper.map_header("Cost").canonical_field == "skip"
