# Overview: Flask API routes for the inventory cycle, its progress, report and finalization.

"""Inventory cycle API routes"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..errors import FinalizationRolledBackError, InventoryError
from ..services import inventory_service, progress_service, report_service
from .responses import commit, error_response, require_id


inventories_bp = Blueprint("inventories", __name__, url_prefix="/api/inventories")


@inventories_bp.get("")
def list_inventories_route():
    """List inventories, newest first. Optional ?status=active|finalized."""
    try:
        inventories = inventory_service.list_inventories(status=request.args.get("status"))
        return jsonify({"inventories": [inv.to_dict() for inv in inventories]}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list inventories")
        return jsonify({"error": "Internal server error"}), 500


@inventories_bp.post("")
def start_inventory_route():
    """
    Start a new inventory cycle.

    Request body:
    {
        "responsible": str
    }

    Returns:
        201: Inventory created
        400: Missing responsible
        409: Another inventory is active
    """
    data = request.get_json(silent=True) or {}
    try:
        inventory = inventory_service.start_inventory(data.get("responsible"))
        commit("inventory.start", inventory.id)
        return jsonify({"inventory": inventory.to_dict()}), 201
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to start inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventories_bp.get("/active")
def active_inventory_route():
    """The active inventory, or null when none is open."""
    try:
        inventory = inventory_service.get_active_inventory()
        return jsonify({"inventory": inventory.to_dict() if inventory else None}), 200
    except Exception:
        current_app.logger.exception("Failed to load active inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventories_bp.get("/compare")
def compare_inventories_route():
    """Family and progress differences between two inventories (?base=&other=)."""
    try:
        base_id = require_id(request.args, "base")
        other_id = require_id(request.args, "other")
        return jsonify(report_service.compare_inventories(base_id, other_id)), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to compare inventories")
        return jsonify({"error": "Internal server error"}), 500


@inventories_bp.get("/<int:inventory_id>")
def get_inventory_route(inventory_id: int):
    try:
        inventory = inventory_service.get_inventory(inventory_id)
        return jsonify({"inventory": inventory.to_dict()}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventories_bp.get("/<int:inventory_id>/progress")
def get_progress_route(inventory_id: int):
    """Live progress computed from the counts, next to the stored snapshot."""
    try:
        inventory = inventory_service.get_inventory(inventory_id)
        live = progress_service.get_live_progress(inventory_id)
        return jsonify({"progress": live, "snapshot": inventory.progress}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to compute progress")
        return jsonify({"error": "Internal server error"}), 500


@inventories_bp.patch("/<int:inventory_id>/progress")
def refresh_progress_route(inventory_id: int):
    """Recompute and store the progress snapshot."""
    try:
        inventory = progress_service.refresh_progress(inventory_id)
        commit("inventory.refresh_progress", inventory_id)
        return jsonify({"inventory": inventory.to_dict()}), 200
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to refresh progress")
        return jsonify({"error": "Internal server error"}), 500


@inventories_bp.post("/<int:inventory_id>/report")
def generate_report_route(inventory_id: int):
    """
    Build (or rebuild) the draft closing report.

    Returns:
        201: {"report": {...}, "validation": {...}}
        400: Report already approved
        404: Inventory not found
    """
    try:
        report, validation = report_service.generate_report(inventory_id)
        commit("report.generate", inventory_id)
        return jsonify({"report": report.to_dict(), "validation": validation}), 201
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to generate report")
        return jsonify({"error": "Internal server error"}), 500


@inventories_bp.get("/<int:inventory_id>/report")
def get_report_route(inventory_id: int):
    try:
        report = report_service.get_report_for_inventory(inventory_id)
        return jsonify({"report": report.to_dict(), "validation": report.validation_summary()}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load report")
        return jsonify({"error": "Internal server error"}), 500


@inventories_bp.get("/<int:inventory_id>/report/export")
def export_report_route(inventory_id: int):
    """Structured payload for printable reports (?report_id=)."""
    try:
        report_id = require_id(request.args, "report_id")
        return jsonify(report_service.build_export_payload(inventory_id, report_id)), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to export report")
        return jsonify({"error": "Internal server error"}), 500


@inventories_bp.post("/<int:inventory_id>/finalize")
def finalize_inventory_route(inventory_id: int):
    """
    Finalize an inventory by approving its report.

    Request body:
    {
        "report_id": int,
        "approver_name": str
    }

    Returns:
        200: Inventory finalized, report approved
        400: Validation or state problem (incomplete report, not active)
        404: Inventory or report not found
        500: Storage failure; "outcome" tells whether the inventory was
             left untouched, rolled back or needs manual checking
    """
    data = request.get_json(silent=True) or {}
    try:
        report_id = require_id(data, "report_id")

        inventory, report = inventory_service.request_finalization(
            inventory_id,
            report_id,
            data.get("approver_name"),
            require_complete=current_app.config.get("FINALIZATION_REQUIRES_COMPLETE_REPORT", True),
        )
        return jsonify({"inventory": inventory.to_dict(), "report": report.to_dict()}), 200
    except InventoryError as e:
        db.session.rollback()
        if isinstance(e, FinalizationRolledBackError):
            current_app.logger.warning("Finalization of inventory %s rolled back: %s", inventory_id, e)
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to finalize inventory")
        return jsonify({"error": "Internal server error"}), 500
