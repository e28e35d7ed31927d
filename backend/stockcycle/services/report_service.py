# Overview: Closing report generation, export payload and inventory comparison.

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Mapping
from typing import Any, Iterable

from stockcycle.extensions import db
from stockcycle.models import (
    REPORT_STATUS_APPROVED,
    REPORT_STATUS_DRAFT,
    CountEntry,
    FinalizationReport,
    Inventory,
    TransitRecord,
)
from stockcycle.errors import NotFoundError, StateError, ValidationError
from stockcycle.reference_data import (
    DC_KEYS,
    DEFAULT_REFERENCE,
    AssetFamily,
    ReferenceData,
    resolve_dc_by_city,
    resolve_dc_by_code,
)
from stockcycle.services.concurrency import run_with_retry, storage_guard
from stockcycle.services.progress_service import resolve_category, resolve_origin
from stockcycle.time_utils import utcnow


logger = logging.getLogger(__name__)

DC_BUCKET_STOCK = "stock"
DC_BUCKET_SUPPLIER = "supplier"
DC_BUCKET_TRANSIT = "transit"
DC_BUCKETS = (DC_BUCKET_STOCK, DC_BUCKET_SUPPLIER, DC_BUCKET_TRANSIT)

FAMILY_COLUMNS = ("store", "dc", "supplier", "transit")

# count category -> family column
_FAMILY_COLUMN_BY_CATEGORY = {
    "store": "store",
    "sector": "dc",
    "supplier": "supplier",
}


def _sorted_counts(counts: dict[str, int]) -> dict[str, int]:
    return {key: counts[key] for key in sorted(counts)}


def pending_stores_by_region(store_origins: Iterable[str], reference: ReferenceData) -> dict[str, list[str]]:
    """region -> catalog stores without a single store count; regions with none pending are left out."""
    counted = set(store_origins)
    pending = {}
    for region in sorted(reference.stores_by_region):
        missing = [store for store in reference.stores_by_region[region] if store not in counted]
        if missing:
            pending[region] = missing
    return pending


def summarize(
    entries: Iterable[Any],
    transits: Iterable[Any],
    reference: ReferenceData | None = None,
) -> dict:
    """
    Aggregate counts and transits into the report summaries in one pass each.

    Rows may be models or raw mappings; origin and category go through the
    legacy alias resolvers.

    Returns:
        dict with store_summary, dc_summary, family_summary,
        unclassified_assets, store_origins, has_supplier, transit_record_count
    """
    reference = reference or DEFAULT_REFERENCE

    stores: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
    dcs = {dc: {bucket: defaultdict(int) for bucket in DC_BUCKETS} for dc in DC_KEYS}
    families = {family: dict.fromkeys(FAMILY_COLUMNS, 0) for family in AssetFamily}
    unclassified: set[str] = set()
    store_origins: set[str] = set()
    has_supplier = False

    def _family_for(asset_type: str) -> AssetFamily:
        family = reference.classify_asset(asset_type)
        if family is None:
            unclassified.add(asset_type)
            return AssetFamily.OTHER
        return family

    for row in entries:
        category = resolve_category(row)
        origin = resolve_origin(row)
        asset_type = _field(row, "asset_type", "ativo")
        quantity = int(_field(row, "quantity", "quantidade") or 0)
        if category not in _FAMILY_COLUMN_BY_CATEGORY or not origin or not asset_type:
            logger.warning("Skipping count row without category/origin/asset: %r", row)
            continue

        if category == "store":
            store_origins.add(origin)
            stores[origin][asset_type] += quantity
        elif category == "sector":
            dcs[resolve_dc_by_code(origin)][DC_BUCKET_STOCK][asset_type] += quantity
        else:
            if quantity > 0:
                has_supplier = True
            dcs[resolve_dc_by_code(origin)][DC_BUCKET_SUPPLIER][asset_type] += quantity

        families[_family_for(asset_type)][_FAMILY_COLUMN_BY_CATEGORY[category]] += quantity

    transit_count = 0
    for row in transits:
        origin = _field(row, "origin", "origem") or ""
        asset_type = _field(row, "asset_type", "ativo")
        quantity = int(_field(row, "quantity", "quantidade") or 0)
        if not asset_type:
            logger.warning("Skipping transit row without asset: %r", row)
            continue
        transit_count += 1

        families[_family_for(asset_type)]["transit"] += quantity

        dc = resolve_dc_by_city(origin)
        if dc is None:
            logger.warning("Transit origin %r does not match a distribution center; left out of the DC summary", origin)
            continue
        dcs[dc][DC_BUCKET_TRANSIT][asset_type] += quantity

    if unclassified:
        logger.warning("Unclassified asset types counted as %s: %s", AssetFamily.OTHER.value, sorted(unclassified))

    family_summary = {}
    for family in sorted(families, key=lambda f: f.value):
        columns = families[family]
        family_summary[family.value] = {**columns, "total": sum(columns.values())}

    return {
        "store_summary": {store: _sorted_counts(stores[store]) for store in sorted(stores)},
        "dc_summary": {
            dc: {bucket: _sorted_counts(dcs[dc][bucket]) for bucket in DC_BUCKETS}
            for dc in sorted(dcs)
        },
        "family_summary": family_summary,
        "unclassified_assets": sorted(unclassified),
        "store_origins": store_origins,
        "has_supplier": has_supplier,
        "transit_record_count": transit_count,
    }


def _field(row: Any, *names: str):
    for name in names:
        value = row.get(name) if isinstance(row, Mapping) else getattr(row, name, None)
        if value is not None:
            return value
    return None


def generate_report(inventory_id: int, reference: ReferenceData | None = None) -> tuple[FinalizationReport, dict]:
    """
    Build (or rebuild) the draft closing report for an inventory.

    Returns:
        (FinalizationReport, validation summary); flushed, not committed

    Raises:
        NotFoundError: inventory does not exist
        StateError: the inventory's report is already approved
    """
    reference = reference or DEFAULT_REFERENCE

    def _op():
        inventory = db.session.get(Inventory, inventory_id)
        if not inventory:
            raise NotFoundError(f"Inventory {inventory_id} not found")

        entries = db.session.query(CountEntry).filter_by(inventory_id=inventory_id).all()
        transits = db.session.query(TransitRecord).filter_by(inventory_id=inventory_id).all()
        summary = summarize(entries, transits, reference)

        report = db.session.query(FinalizationReport).filter_by(inventory_id=inventory_id).first()
        if report and report.status == REPORT_STATUS_APPROVED:
            raise StateError(f"Report for inventory {inventory.code} is already approved")
        if not report:
            report = FinalizationReport(inventory_id=inventory_id)
            db.session.add(report)

        report.pending_stores = pending_stores_by_region(summary["store_origins"], reference)
        report.suppliers_missing = not summary["has_supplier"]
        report.has_transit = summary["transit_record_count"] > 0
        report.transit_record_count = summary["transit_record_count"]
        report.store_summary = summary["store_summary"]
        report.dc_summary = summary["dc_summary"]
        report.family_summary = summary["family_summary"]
        report.unclassified_assets = summary["unclassified_assets"]
        report.status = REPORT_STATUS_DRAFT
        report.approved_by = None
        report.approved_at = None
        report.generated_at = utcnow()
        db.session.flush()

        return report, report.validation_summary()

    with storage_guard("report.generate", inventory_id):
        return run_with_retry(_op)


def get_report(report_id: int) -> FinalizationReport:
    report = db.session.get(FinalizationReport, report_id)
    if not report:
        raise NotFoundError(f"Report {report_id} not found")
    return report


def get_report_for_inventory(inventory_id: int) -> FinalizationReport:
    report = db.session.query(FinalizationReport).filter_by(inventory_id=inventory_id).first()
    if not report:
        raise NotFoundError(f"No report generated for inventory {inventory_id}")
    return report


def build_export_payload(inventory_id: int, report_id: int) -> dict:
    """Everything a printable report needs, with no aggregation left to the renderer."""
    if report_id is None:
        raise ValidationError("report_id is required")

    inventory = db.session.get(Inventory, inventory_id)
    if not inventory:
        raise NotFoundError(f"Inventory {inventory_id} not found")
    report = get_report(report_id)
    if report.inventory_id != inventory.id:
        raise NotFoundError(f"Report {report_id} does not belong to inventory {inventory_id}")

    return {
        "inventory": inventory.to_dict(),
        "report": report.to_dict(),
        "validation": report.validation_summary(),
    }


def compare_inventories(base_id: int, other_id: int) -> dict:
    """
    Family totals and progress of other minus base.

    Both inventories need a generated report.
    """
    base = db.session.get(Inventory, base_id)
    if not base:
        raise NotFoundError(f"Inventory {base_id} not found")
    other = db.session.get(Inventory, other_id)
    if not other:
        raise NotFoundError(f"Inventory {other_id} not found")

    base_families = get_report_for_inventory(base_id).family_summary or {}
    other_families = get_report_for_inventory(other_id).family_summary or {}

    families = {}
    for family in sorted(set(base_families) | set(other_families)):
        before = base_families.get(family, {})
        after = other_families.get(family, {})
        families[family] = {
            column: after.get(column, 0) - before.get(column, 0)
            for column in (*FAMILY_COLUMNS, "total")
        }

    return {
        "base": base.to_dict(),
        "other": other.to_dict(),
        "family_diff": families,
        "progress_diff": {key: other.progress[key] - base.progress[key] for key in ("stores", "sectors", "suppliers")},
    }
