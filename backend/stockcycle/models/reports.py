from __future__ import annotations

from ..extensions import db
from stockcycle.time_utils import to_utc_z, utcnow


REPORT_STATUS_DRAFT = "draft"
REPORT_STATUS_APPROVED = "approved"


class FinalizationReport(db.Model):
    """
    Closing report for one inventory (one row per inventory, upserted).

    LIFECYCLE:
    1. draft: regenerated freely while the inventory is active
    2. approved: set together with the inventory becoming finalized; frozen

    The JSON summaries are the exact contract handed to report renderers.
    Renderers lay them out and never recompute aggregates.
    """
    __tablename__ = "finalization_reports"
    __table_args__ = (
        db.UniqueConstraint("inventory_id", name="uq_finalization_reports_inventory"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventories.id"), nullable=False, index=True)

    # region -> [store, ...], only regions with pending stores
    pending_stores = db.Column(db.JSON, nullable=False, default=dict)
    suppliers_missing = db.Column(db.Boolean, nullable=False, default=True)
    has_transit = db.Column(db.Boolean, nullable=False, default=False)
    transit_record_count = db.Column(db.Integer, nullable=False, default=0)

    # store -> asset -> qty
    store_summary = db.Column(db.JSON, nullable=False, default=dict)
    # DC -> {stock|supplier|transit} -> asset -> qty
    dc_summary = db.Column(db.JSON, nullable=False, default=dict)
    # family -> {store, dc, supplier, transit, total}
    family_summary = db.Column(db.JSON, nullable=False, default=dict)
    unclassified_assets = db.Column(db.JSON, nullable=False, default=list)

    # draft, approved
    status = db.Column(db.String(16), nullable=False, default=REPORT_STATUS_DRAFT, index=True)
    approved_by = db.Column(db.String(255), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    generated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    inventory = db.relationship("Inventory", backref=db.backref("report", uselist=False))

    def __repr__(self) -> str:
        return f"<FinalizationReport id={self.id} inventory_id={self.inventory_id} status={self.status}>"

    @property
    def all_stores_counted(self) -> bool:
        return not any(self.pending_stores.values()) if self.pending_stores else True

    def validation_summary(self) -> dict:
        return {
            "all_stores_counted": self.all_stores_counted,
            "has_supplier": not self.suppliers_missing,
            "has_transit": self.has_transit,
            "pending_stores_by_region": self.pending_stores or {},
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_id": self.inventory_id,
            "pending_stores": self.pending_stores or {},
            "suppliers_missing": self.suppliers_missing,
            "has_transit": self.has_transit,
            "transit_record_count": self.transit_record_count,
            "store_summary": self.store_summary or {},
            "dc_summary": self.dc_summary or {},
            "family_summary": self.family_summary or {},
            "unclassified_assets": self.unclassified_assets or [],
            "status": self.status,
            "approved_by": self.approved_by,
            "approved_at": to_utc_z(self.approved_at),
            "generated_at": to_utc_z(self.generated_at),
        }
