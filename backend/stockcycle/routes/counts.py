# Overview: Flask API routes for the count ledger; parses input and returns JSON responses.

"""Count ledger API routes"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..errors import InventoryError
from ..services import count_service, test_data_service
from .responses import commit, error_response, require_id


counts_bp = Blueprint("counts", __name__, url_prefix="/api/counts")


@counts_bp.get("")
def list_counts_route():
    """Counts newest first. Optional ?inventory_id= and ?category=."""
    try:
        entries = count_service.list_entries(
            inventory_id=request.args.get("inventory_id", type=int),
            category=request.args.get("category"),
        )
        return jsonify({"counts": [entry.to_dict() for entry in entries]}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list counts")
        return jsonify({"error": "Internal server error"}), 500


@counts_bp.post("")
def create_count_route():
    """
    Record one count.

    Request body:
    {
        "inventory_id": int,
        "category": "store" | "sector" | "supplier",
        "origin": str,
        "asset_type": str,
        "quantity": int,
        "responsible": str,
        "destination": str (optional),
        "transit": {"asset_type", "quantity", "responsible"} (optional)
    }

    Returns:
        201: Count created
        400: Invalid request or inventory not active
        404: Inventory not found
    """
    data = request.get_json(silent=True) or {}
    try:
        inventory_id = require_id(data, "inventory_id")
        entry = count_service.add_entry(
            inventory_id,
            data.get("category"),
            data.get("origin"),
            data.get("asset_type"),
            data.get("quantity"),
            data.get("responsible"),
            destination=data.get("destination"),
            transit=data.get("transit"),
        )
        commit("count.add", inventory_id)
        return jsonify({"count": entry.to_dict()}), 201
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create count")
        return jsonify({"error": "Internal server error"}), 500


@counts_bp.post("/bulk")
def create_counts_bulk_route():
    """
    Record several assets for one origin, all or nothing.

    Request body:
    {
        "inventory_id": int,
        "category": str,
        "origin": str,
        "responsible": str,
        "destination": str (optional),
        "items": [{"asset_type": str, "quantity": int}, ...]
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        inventory_id = require_id(data, "inventory_id")
        entries = count_service.add_entries_bulk(
            inventory_id,
            data.get("category"),
            data.get("origin"),
            data.get("items"),
            data.get("responsible"),
            destination=data.get("destination"),
        )
        commit("count.add_bulk", inventory_id)
        return jsonify({"counts": [entry.to_dict() for entry in entries]}), 201
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create counts")
        return jsonify({"error": "Internal server error"}), 500


@counts_bp.post("/bulk-test")
def generate_test_counts_route():
    """
    Generate random counts for origins that have none yet.

    Request body:
    {
        "inventory_id": int,
        "category": "store" | "sector",
        "origins": [str, ...],
        "items_per_origin": int (1-20, default 5),
        "responsible": str (default "Sistema Teste")
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        inventory_id = require_id(data, "inventory_id")
        result = test_data_service.generate_test_counts(
            inventory_id,
            data.get("category"),
            data.get("origins"),
            items_per_origin=data.get("items_per_origin", 5),
            responsible=data.get("responsible") or test_data_service.DEFAULT_TEST_RESPONSIBLE,
        )
        commit("count.generate_test", inventory_id)
        return jsonify(result), 201 if result["generated"] else 200
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to generate test counts")
        return jsonify({"error": "Internal server error"}), 500


@counts_bp.get("/<int:entry_id>")
def get_count_route(entry_id: int):
    try:
        return jsonify({"count": count_service.get_entry(entry_id).to_dict()}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load count")
        return jsonify({"error": "Internal server error"}), 500


@counts_bp.patch("/<int:entry_id>")
def edit_count_route(entry_id: int):
    """
    Update a count. inventory_id, origin and counted_at are rejected.

    Returns:
        200: Count updated
        400: Invalid field/value or inventory not active
        404: Count not found
    """
    data = request.get_json(silent=True) or {}
    try:
        entry = count_service.edit_entry(entry_id, data)
        commit("count.edit", entry_id)
        return jsonify({"count": entry.to_dict()}), 200
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to edit count")
        return jsonify({"error": "Internal server error"}), 500


@counts_bp.delete("/<int:entry_id>")
def delete_count_route(entry_id: int):
    try:
        count_service.remove_entry(entry_id)
        commit("count.remove", entry_id)
        return jsonify({"deleted": entry_id}), 200
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete count")
        return jsonify({"error": "Internal server error"}), 500
