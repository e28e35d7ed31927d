import unittest

import pytest

from stockcycle.errors import NotFoundError
from stockcycle.reference_data import ReferenceData
from stockcycle.services import count_service, progress_service
from stockcycle.services.progress_service import compute_progress, percentage, resolve_category, resolve_origin


class OriginResolutionTests(unittest.TestCase):
    def test_canonical_field_wins(self):
        self.assertEqual(resolve_origin({"origin": "Loja 01", "loja": "Loja 02"}), "Loja 01")

    def test_legacy_aliases_in_order(self):
        self.assertEqual(resolve_origin({"loja": "Loja 03"}), "Loja 03")
        self.assertEqual(resolve_origin({"setor_cd": "Setor Avarias SP"}), "Setor Avarias SP")
        self.assertEqual(resolve_origin({"setorCd": "Setor Expedição ES"}), "Setor Expedição ES")
        self.assertEqual(resolve_origin({"fornecedor": "Fornecedor RJ"}), "Fornecedor RJ")
        self.assertEqual(resolve_origin({"cd_origem": "CD SP"}), "CD SP")
        self.assertEqual(resolve_origin({"cdOrigem": "CD ES"}), "CD ES")

    def test_blank_values_fall_through(self):
        self.assertEqual(resolve_origin({"origin": "  ", "loja": "", "fornecedor": "Fornecedor SP"}), "Fornecedor SP")
        self.assertIsNone(resolve_origin({"origin": None}))

    def test_legacy_category_values(self):
        self.assertEqual(resolve_category({"tipo": "loja"}), "store")
        self.assertEqual(resolve_category({"tipo": "setor"}), "sector")
        self.assertEqual(resolve_category({"tipo": "fornecedor"}), "supplier")
        self.assertEqual(resolve_category({"category": "store"}), "store")


class PercentageTests(unittest.TestCase):
    def test_rounds_half_up(self):
        self.assertEqual(percentage(1, 8), 13)  # 12.5
        self.assertEqual(percentage(1, 200), 1)  # 0.5
        self.assertEqual(percentage(1, 3), 33)
        self.assertEqual(percentage(2, 3), 67)

    def test_bounds(self):
        self.assertEqual(percentage(0, 50), 0)
        self.assertEqual(percentage(50, 50), 100)
        self.assertEqual(percentage(60, 50), 100)
        self.assertEqual(percentage(3, 0), 0)


def test_compute_progress_counts_distinct_origins():
    rows = [
        {"category": "store", "origin": "Loja 01"},
        {"category": "store", "origin": "Loja 01"},
        {"tipo": "loja", "loja": "Loja 02"},
        {"category": "sector", "origin": "Setor Recebimento SP"},
        {"category": "supplier", "origin": "Fornecedor SP"},
        {"category": "supplier", "origin": "Fornecedor ES"},
    ]
    assert compute_progress(rows) == {"stores": 4, "sectors": 13, "suppliers": 67}


def test_compute_progress_with_custom_reference():
    reference = ReferenceData(
        stores_by_region={"Norte": ("A", "B")},
        dc_sectors=(),
        supplier_total=3,
    )
    rows = [{"category": "store", "origin": "A"}, {"category": "sector", "origin": "X"}]
    assert compute_progress(rows, reference) == {"stores": 50, "sectors": 0, "suppliers": 0}


def test_full_store_coverage_is_100():
    reference = ReferenceData()
    rows = [{"category": "store", "origin": store} for store in reference.all_stores]
    assert compute_progress(rows)["stores"] == 100


def test_progress_monotonic_under_additions(inventory, db_session):
    seen = []
    for origin in ("Loja 01", "Loja 01", "Loja 02", "CD SP", "Loja 40"):
        count_service.add_entry(inventory.id, "store", origin, "CAIXA BIN", 1, "Ana")
        seen.append(progress_service.get_live_progress(inventory.id)["stores"])
    assert seen == sorted(seen)
    assert seen[-1] == 8


def test_refresh_progress_persists_snapshot(inventory, db_session):
    count_service.add_entry(inventory.id, "supplier", "Fornecedor RJ", "CAIXA HB 415", 9, "Ana", on_change=None)
    db_session.commit()
    assert inventory.progress_suppliers == 0

    refreshed = progress_service.refresh_progress(inventory.id)
    db_session.commit()

    assert refreshed.progress == {"stores": 0, "sectors": 0, "suppliers": 33}
    assert refreshed.status == "active"


def test_progress_for_missing_inventory(db_session):
    with pytest.raises(NotFoundError):
        progress_service.get_live_progress(999)
    with pytest.raises(NotFoundError):
        progress_service.refresh_progress(999)
