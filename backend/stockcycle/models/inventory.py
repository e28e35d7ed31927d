from __future__ import annotations

from ..extensions import db
from stockcycle.time_utils import to_utc_z, utcnow


class Inventory(db.Model):
    """
    One counting campaign ("cycle").

    LIFECYCLE:
    1. active: counts and transit records may be written
    2. finalized: frozen, ended_at set, report approved

    SINGLE ACTIVE INVENTORY:
    The partial unique index on status (WHERE status = 'active') allows any
    number of finalized rows but only one active row. The service layer checks
    first; the index is what closes the race between two concurrent starts.
    """
    __tablename__ = "inventories"
    __table_args__ = (
        db.Index(
            "uq_inventories_single_active",
            "status",
            unique=True,
            sqlite_where=db.text("status = 'active'"),
            postgresql_where=db.text("status = 'active'"),
        ),
        db.Index("ix_inventories_started_at", "started_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # e.g. "INV-OUT-20261019-48213"
    code = db.Column(db.String(64), nullable=False, index=True)
    responsible = db.Column(db.String(255), nullable=False)

    # active, finalized
    status = db.Column(db.String(16), nullable=False, default="active")

    started_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Progress snapshot, integer percentages 0-100
    progress_stores = db.Column(db.Integer, nullable=False, default=0)
    progress_sectors = db.Column(db.Integer, nullable=False, default=0)
    progress_suppliers = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Inventory id={self.id} code={self.code!r} status={self.status}>"

    @property
    def progress(self) -> dict:
        return {
            "stores": self.progress_stores or 0,
            "sectors": self.progress_sectors or 0,
            "suppliers": self.progress_suppliers or 0,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "responsible": self.responsible,
            "status": self.status,
            "started_at": to_utc_z(self.started_at),
            "ended_at": to_utc_z(self.ended_at),
            "progress": self.progress,
            "updated_at": to_utc_z(self.updated_at),
        }


class CountEntry(db.Model):
    """
    One counted quantity of one asset type at one origin.

    origin is a store, DC sector or supplier name depending on category.
    inventory_id, origin and counted_at never change after insert.

    The transit_* columns are a companion payload only kept for store counts
    taken at a transit-eligible DC alias (see reference_data).
    """
    __tablename__ = "count_entries"
    __table_args__ = (
        db.Index("ix_count_entries_inventory_category", "inventory_id", "category"),
        db.Index("ix_count_entries_inventory_origin", "inventory_id", "origin"),
        db.CheckConstraint("quantity > 0", name="ck_count_entries_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventories.id"), nullable=False, index=True)

    # store, sector, supplier
    category = db.Column(db.String(16), nullable=False)
    origin = db.Column(db.String(255), nullable=False)
    destination = db.Column(db.String(255), nullable=True)
    asset_type = db.Column(db.String(128), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    responsible = db.Column(db.String(255), nullable=False)

    counted_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    transit_asset_type = db.Column(db.String(128), nullable=True)
    transit_quantity = db.Column(db.Integer, nullable=True)
    transit_responsible = db.Column(db.String(255), nullable=True)

    inventory = db.relationship("Inventory", backref=db.backref("count_entries", lazy="dynamic"))

    def __repr__(self) -> str:
        return f"<CountEntry id={self.id} {self.category}:{self.origin!r} {self.asset_type}={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_id": self.inventory_id,
            "category": self.category,
            "origin": self.origin,
            "destination": self.destination,
            "asset_type": self.asset_type,
            "quantity": self.quantity,
            "responsible": self.responsible,
            "counted_at": to_utc_z(self.counted_at),
            "transit_asset_type": self.transit_asset_type,
            "transit_quantity": self.transit_quantity,
            "transit_responsible": self.transit_responsible,
        }


class TransitRecord(db.Model):
    """
    Shipment of one asset type between two distribution centers.

    received_at is set exactly when status is "received".
    """
    __tablename__ = "transit_records"
    __table_args__ = (
        db.Index("ix_transit_records_inventory_status", "inventory_id", "status"),
        db.CheckConstraint("quantity > 0", name="ck_transit_records_quantity_positive"),
        db.CheckConstraint("origin <> destination", name="ck_transit_records_distinct_endpoints"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventories.id"), nullable=False, index=True)

    origin = db.Column(db.String(255), nullable=False)
    destination = db.Column(db.String(255), nullable=False)
    asset_type = db.Column(db.String(128), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    # sent, received, pending
    status = db.Column(db.String(16), nullable=False, default="sent")

    sent_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)

    inventory = db.relationship("Inventory", backref=db.backref("transit_records", lazy="dynamic"))

    def __repr__(self) -> str:
        return f"<TransitRecord id={self.id} {self.origin!r}->{self.destination!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_id": self.inventory_id,
            "origin": self.origin,
            "destination": self.destination,
            "asset_type": self.asset_type,
            "quantity": self.quantity,
            "status": self.status,
            "sent_at": to_utc_z(self.sent_at),
            "received_at": to_utc_z(self.received_at),
        }
