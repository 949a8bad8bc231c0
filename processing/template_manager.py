"""
Template manager — persisted, supplier-bound column mappings.

A SupplierTemplate records how one supplier's price-list columns map onto
the canonical fields, so the next file from that supplier is mapped without
asking the user again.  Templates are never shared between suppliers.

Changing a template's mappings feeds each changed column back into the
header mapper as a learned correction.  Deleting a template only removes
the template; offers already built from it are untouched.

Public API:
    TemplateManager(store, mapper)
        .auto_detect_mappings(headers) → list[TemplateColumn]
        .create_template(supplier_name, ...) → SupplierTemplate
        .get_template(id) / .get_all_templates() / .find_by_supplier(name)
        .update_template(id, **updates) → bool
        .delete_template(id) → bool
        .process_data(id, rows) → list[dict]
        .export_to_csv(records) → str
"""

import logging
import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import Callable, Iterable, Mapping

from config.schema import REQUIRED_FIELDS, SKIP_FIELD
from processing.column_mapper import (
    SOURCE_TEMPLATE,
    ColumnMapping,
    FieldMapping,
    HeaderMapper,
    check_field,
)
from processing.mapping_store import InMemoryStore
from utils.csv_export import to_csv

logger = logging.getLogger(__name__)

TEMPLATE_ID_PREFIX = "template_"

_UPDATABLE_FIELDS: set[str] = {
    "supplier_name",
    "supplier_code",
    "description",
    "column_mappings",
    "is_active",
}


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class TemplateColumn:
    """One column of a template; standard_field is "" when unmapped."""

    original_column: str
    standard_field: str = ""
    is_required: bool = False
    confidence: float = 0.0

    @property
    def is_mapped(self) -> bool:
        return self.standard_field not in ("", SKIP_FIELD)


@dataclass
class SupplierTemplate:
    id: str
    supplier_name: str
    supplier_code: str = ""
    description: str = ""
    column_mappings: list[TemplateColumn] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""
    is_active: bool = True

    def to_column_mapping(self) -> ColumnMapping:
        """The template's columns as a ColumnMapping."""
        return ColumnMapping(entries=[
            FieldMapping(
                original_header=column.original_column,
                canonical_field=column.standard_field if column.is_mapped else SKIP_FIELD,
                confidence=column.confidence,
                source=SOURCE_TEMPLATE,
            )
            for column in self.column_mappings
        ])

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "SupplierTemplate":
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        values["column_mappings"] = [
            _as_column(column) for column in values.get("column_mappings") or []
        ]
        return cls(**values)


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def columns_from_mapping(mapping: ColumnMapping) -> list[TemplateColumn]:
    """Template columns for every header of *mapping*, unmapped ones included."""
    return [
        TemplateColumn(
            original_column=entry.original_header,
            standard_field=entry.canonical_field if entry.is_mapped else "",
            is_required=entry.canonical_field in REQUIRED_FIELDS,
            confidence=entry.confidence,
        )
        for entry in mapping
    ]


class TemplateManager:
    """
    CRUD over supplier templates held in a key-value store.

    Args:
        store: Template store keyed by template id (InMemoryStore when omitted).
        mapper: Header mapper used for auto-detection and fed with
                corrections when template mappings change.
        clock: Returns the current UTC datetime (injectable for tests).
    """

    def __init__(
        self,
        store=None,
        mapper: HeaderMapper | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store if store is not None else InMemoryStore()
        self.mapper = mapper if mapper is not None else HeaderMapper()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # ── Mapping ────────────────────────────────────────────────────────

    def auto_detect_mappings(self, headers: list[str]) -> list[TemplateColumn]:
        return columns_from_mapping(self.mapper.map_headers(headers))

    # ── CRUD ───────────────────────────────────────────────────────────

    def create_template(
        self,
        supplier_name: str,
        supplier_code: str = "",
        description: str = "",
        column_mappings: Iterable[TemplateColumn | Mapping] | None = None,
    ) -> SupplierTemplate:
        """
        Create and persist a template for one supplier.

        Raises:
            ValueError: If supplier_name is blank or a column names an
                        unknown canonical field.
        """
        supplier_name = " ".join(str(supplier_name or "").split())
        if not supplier_name:
            raise ValueError("A template needs a supplier name")

        columns = [_as_column(column) for column in column_mappings or []]
        timestamp = self.clock().isoformat()
        template = SupplierTemplate(
            id=f"{TEMPLATE_ID_PREFIX}{uuid.uuid4().hex}",
            supplier_name=supplier_name,
            supplier_code=supplier_code,
            description=description,
            column_mappings=columns,
            created_at=timestamp,
            updated_at=timestamp,
        )
        self._save(template)
        logger.info(
            f"Created template {template.id} for '{supplier_name}' "
            f"({sum(column.is_mapped for column in columns)} mapped column(s))"
        )
        return template

    def get_template(self, template_id: str) -> SupplierTemplate | None:
        value = self.store.get(template_id)
        if not isinstance(value, dict):
            return None
        try:
            return SupplierTemplate.from_dict(value)
        except Exception as exc:
            logger.warning(f"Ignoring unreadable template {template_id}: {exc}")
            return None

    def get_all_templates(self) -> list[SupplierTemplate]:
        """All templates, most recently updated first."""
        templates = [
            template
            for template in (self.get_template(key) for key in self.store.keys())
            if template is not None
        ]
        return sorted(templates, key=lambda template: template.updated_at, reverse=True)

    def find_by_supplier(self, supplier_name: str) -> SupplierTemplate | None:
        """Newest active template whose supplier name matches (case-insensitive)."""
        wanted = " ".join(str(supplier_name or "").lower().split())
        if not wanted:
            return None
        for template in self.get_all_templates():
            if template.is_active and " ".join(template.supplier_name.lower().split()) == wanted:
                return template
        return None

    def update_template(self, template_id: str, **updates) -> bool:
        """
        Apply *updates* to a template and bump updated_at.

        Columns whose standard field changed (or that are new) are learned
        by the header mapper as corrections.

        Returns:
            False if the template does not exist.

        Raises:
            ValueError: For fields that cannot be updated.
        """
        unknown = set(updates) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update template field(s): {', '.join(sorted(unknown))}")

        template = self.get_template(template_id)
        if template is None:
            logger.warning(f"Template {template_id} not found — nothing updated")
            return False

        if "column_mappings" in updates:
            new_columns = [_as_column(column) for column in updates["column_mappings"] or []]
            self._learn_changes(template.column_mappings, new_columns)
            template.column_mappings = new_columns
        for name in ("supplier_name", "supplier_code", "description", "is_active"):
            if name in updates:
                setattr(template, name, updates[name])

        template.updated_at = self.clock().isoformat()
        self._save(template)
        logger.info(f"Updated template {template_id}: {', '.join(sorted(updates)) or 'timestamp'}")
        return True

    def delete_template(self, template_id: str) -> bool:
        deleted = self.store.delete(template_id)
        if deleted:
            logger.info(f"Deleted template {template_id}")
        return deleted

    # ── Replay ─────────────────────────────────────────────────────────

    def process_data(
        self,
        template_id: str,
        rows: Iterable[Mapping[str, object]],
    ) -> list[dict[str, object]]:
        """
        Re-key *rows* by canonical field using a stored template.

        Unmapped columns are dropped.  An unknown template yields [].
        """
        template = self.get_template(template_id)
        if template is None:
            logger.warning(f"Template {template_id} not found — no rows processed")
            return []

        field_headers = template.to_column_mapping().mapped_fields()
        records = [
            {name: row.get(header, "") for name, header in field_headers.items()}
            for row in rows
        ]
        logger.info(f"Processed {len(records)} row(s) with template {template_id}")
        return records

    def export_to_csv(self, records: list[Mapping[str, object]]) -> str:
        return to_csv(records)

    # ── Internal helpers ───────────────────────────────────────────────

    def _save(self, template: SupplierTemplate) -> None:
        self.store.put(template.id, template.to_dict())

    def _learn_changes(
        self,
        old_columns: list[TemplateColumn],
        new_columns: list[TemplateColumn],
    ) -> None:
        previous = {column.original_column: column.standard_field for column in old_columns}
        for column in new_columns:
            if previous.get(column.original_column) != column.standard_field:
                self.mapper.learn_correction(
                    column.original_column, column.standard_field or SKIP_FIELD
                )


def _as_column(column: TemplateColumn | Mapping) -> TemplateColumn:
    if not isinstance(column, TemplateColumn):
        column = TemplateColumn(
            original_column=str(column["original_column"]),
            standard_field=str(column.get("standard_field") or ""),
            is_required=bool(column.get("is_required", False)),
            confidence=float(column.get("confidence", 0.0)),
        )
    if column.standard_field:
        check_field(column.standard_field)
    return column
