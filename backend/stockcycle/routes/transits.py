# Overview: Flask API routes for the transit ledger (shipments between distribution centers).

"""Transit ledger API routes"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..errors import InventoryError
from ..services import transit_service
from .responses import commit, error_response, require_id


transits_bp = Blueprint("transits", __name__, url_prefix="/api/transits")


@transits_bp.get("")
def list_transits_route():
    """Shipments, most recently sent first. Optional ?inventory_id= and ?status=."""
    try:
        records = transit_service.list_entries(
            inventory_id=request.args.get("inventory_id", type=int),
            status=request.args.get("status"),
        )
        return jsonify({"transits": [record.to_dict() for record in records]}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list transit records")
        return jsonify({"error": "Internal server error"}), 500


@transits_bp.post("")
def create_transit_route():
    """
    Record one shipment.

    Request body:
    {
        "inventory_id": int,
        "origin": str,
        "destination": str,
        "asset_type": str,
        "quantity": int,
        "status": "sent" | "received" | "pending" (default "sent")
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        inventory_id = require_id(data, "inventory_id")
        record = transit_service.add_entry(
            inventory_id,
            data.get("origin"),
            data.get("destination"),
            data.get("asset_type"),
            data.get("quantity"),
            status=data.get("status") or transit_service.TRANSIT_STATUS_SENT,
        )
        commit("transit.add", inventory_id)
        return jsonify({"transit": record.to_dict()}), 201
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create transit record")
        return jsonify({"error": "Internal server error"}), 500


@transits_bp.post("/bulk")
def create_transits_bulk_route():
    """Several assets on one origin -> destination leg, all or nothing."""
    data = request.get_json(silent=True) or {}
    try:
        inventory_id = require_id(data, "inventory_id")
        records = transit_service.add_entries_bulk(
            inventory_id,
            data.get("origin"),
            data.get("destination"),
            data.get("items"),
            status=data.get("status") or transit_service.TRANSIT_STATUS_SENT,
        )
        commit("transit.add_bulk", inventory_id)
        return jsonify({"transits": [record.to_dict() for record in records]}), 201
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create transit records")
        return jsonify({"error": "Internal server error"}), 500


@transits_bp.get("/<int:record_id>")
def get_transit_route(record_id: int):
    try:
        return jsonify({"transit": transit_service.get_entry(record_id).to_dict()}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load transit record")
        return jsonify({"error": "Internal server error"}), 500


@transits_bp.put("/<int:record_id>")
def edit_transit_route(record_id: int):
    """Update origin, destination, asset_type, quantity and/or status."""
    data = request.get_json(silent=True) or {}
    try:
        record = transit_service.edit_entry(record_id, data)
        commit("transit.edit", record_id)
        return jsonify({"transit": record.to_dict()}), 200
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to edit transit record")
        return jsonify({"error": "Internal server error"}), 500


@transits_bp.patch("/<int:record_id>/status")
def update_transit_status_route(record_id: int):
    """
    Change a shipment's status.

    Request body:
    {
        "status": "sent" | "received" | "pending"
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        record = transit_service.update_status(record_id, data.get("status"))
        commit("transit.update_status", record_id)
        return jsonify({"transit": record.to_dict()}), 200
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update transit status")
        return jsonify({"error": "Internal server error"}), 500


@transits_bp.delete("/<int:record_id>")
def delete_transit_route(record_id: int):
    try:
        transit_service.remove_entry(record_id)
        commit("transit.remove", record_id)
        return jsonify({"deleted": record_id}), 200
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete transit record")
        return jsonify({"error": "Internal server error"}), 500
