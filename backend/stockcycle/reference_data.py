# Overview: Static catalogs (stores, DC sectors, assets, suppliers) and lookup rules.

"""
Reference data is read-only. Services receive a ``ReferenceData`` value on
every call (``DEFAULT_REFERENCE`` when omitted) so tests can pass smaller
catalogs without touching module state.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field


class AssetFamily(str, enum.Enum):
    HB = "HB"
    HNT = "HNT"
    OTHER = "OTHER"


# Fixed rollup table. OTHER is also the fallback for unknown asset types.
ASSET_FAMILY_MEMBERS: dict[AssetFamily, frozenset[str]] = {
    AssetFamily.HB: frozenset({"CAIXA HB 623", "CAIXA HB 618", "CAIXA HB 415"}),
    AssetFamily.HNT: frozenset({"CAIXA HNT G", "CAIXA HNT P"}),
    AssetFamily.OTHER: frozenset({"CAIXA BIN", "CAIXA BASCULHANTE"}),
}

ASSET_TYPES = (
    "CAIXA HB 623",
    "CAIXA HB 618",
    "CAIXA HB 415",
    "CAIXA HNT G",
    "CAIXA HNT P",
    "CAIXA BIN",
    "CAIXA BASCULHANTE",
)

STORES_BY_REGION: dict[str, tuple[str, ...]] = {
    "Regional Capital": tuple(f"Loja {n:02d}" for n in range(1, 17)),
    "Regional Interior": tuple(f"Loja {n:02d}" for n in range(17, 33)),
    "Regional Litoral": tuple(f"Loja {n:02d}" for n in range(33, 49)),
    "Centros de Distribuição": ("CD SP", "CD ES"),
}

DC_SECTORS = (
    "Setor Recebimento SP",
    "Setor Expedição SP",
    "Setor Higienização SP",
    "Setor Avarias SP",
    "Setor Recebimento ES",
    "Setor Expedição ES",
    "Setor Recebimento RJ",
    "Setor Expedição RJ",
)

SUPPLIERS = (
    "Fornecedor SP",
    "Fornecedor ES",
    "Fornecedor RJ",
)

# Progress denominator for suppliers is fixed, one per DC region.
SUPPLIER_TOTAL = 3

# Store-category origins that may carry a companion transit payload.
TRANSIT_ELIGIBLE_ORIGINS = frozenset({"CD SP", "CD ES"})

# Full names used on transit records.
TRANSIT_DISTRIBUTION_CENTERS = (
    "CD São Paulo",
    "CD Espírito Santo",
    "CD Rio de Janeiro",
)

DC_SP = "CD SP"
DC_ES = "CD ES"
DC_RJ = "CD RJ"
DC_KEYS = (DC_ES, DC_RJ, DC_SP)

# Ordered: first match wins.
_SHORT_CODE_RULES = (("ES", DC_ES), ("RJ", DC_RJ))
_CITY_NAME_RULES = (
    ("São Paulo", DC_SP),
    ("Espírito Santo", DC_ES),
    ("Rio de Janeiro", DC_RJ),
)


@dataclass(frozen=True)
class ReferenceData:
    stores_by_region: dict[str, tuple[str, ...]] = field(default_factory=lambda: dict(STORES_BY_REGION))
    dc_sectors: tuple[str, ...] = DC_SECTORS
    asset_types: tuple[str, ...] = ASSET_TYPES
    suppliers: tuple[str, ...] = SUPPLIERS
    asset_families: dict[AssetFamily, frozenset[str]] = field(default_factory=lambda: dict(ASSET_FAMILY_MEMBERS))
    supplier_total: int = SUPPLIER_TOTAL

    @property
    def all_stores(self) -> list[str]:
        return [store for stores in self.stores_by_region.values() for store in stores]

    @property
    def total_stores(self) -> int:
        return len(self.all_stores)

    @property
    def total_sectors(self) -> int:
        return len(self.dc_sectors)

    def classify_asset(self, asset_type: str) -> AssetFamily | None:
        """Family for a known asset type, None when unclassified."""
        for family in AssetFamily:
            if asset_type in self.asset_families.get(family, ()):
                return family
        return None

    def to_dict(self) -> dict:
        return {
            "stores_by_region": {region: list(stores) for region, stores in self.stores_by_region.items()},
            "dc_sectors": list(self.dc_sectors),
            "asset_types": list(self.asset_types),
            "suppliers": list(self.suppliers),
            "asset_families": {
                family.value: sorted(members) for family, members in self.asset_families.items()
            },
            "transit_distribution_centers": list(TRANSIT_DISTRIBUTION_CENTERS),
            "transit_eligible_origins": sorted(TRANSIT_ELIGIBLE_ORIGINS),
        }


DEFAULT_REFERENCE = ReferenceData()


def resolve_dc_by_code(origin: str) -> str:
    """Sector/supplier origin -> DC key by short-code substring, SP by default."""
    for needle, dc in _SHORT_CODE_RULES:
        if needle in origin:
            return dc
    return DC_SP


def resolve_dc_by_city(origin: str) -> str | None:
    """Transit origin -> DC key by full city name, None when unmatched."""
    for needle, dc in _CITY_NAME_RULES:
        if needle in origin:
            return dc
    return None
