# Overview: Flask API route for counts pushed by the external counting app.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..errors import InventoryError, StateError
from ..services import integrator_service, inventory_service
from ..validation import coerce_int
from .responses import commit, error_response


integrator_bp = Blueprint("integrator", __name__, url_prefix="/api/integrator")


@integrator_bp.post("/ingest")
def ingest_route():
    """
    Ingest external store counts, best effort.

    Request body:
    {
        "inventory_id": int (optional, defaults to the active inventory),
        "records": [{"loja_nome", "ativo_nome", "quantidade"} | {"origin", "asset_type", "quantity"}, ...]
    }

    Returns:
        201: every record stored
        207: some records rejected (see "failures")
        400: no active inventory / inventory not active
    """
    data = request.get_json(silent=True) or {}
    try:
        if data.get("inventory_id") is not None:
            inventory_id = coerce_int(data["inventory_id"], "inventory_id")
        else:
            active = inventory_service.get_active_inventory()
            if not active:
                raise StateError("No active inventory to ingest into")
            inventory_id = active.id

        created, failures = integrator_service.ingest_counts(inventory_id, data.get("records"))
        commit("integrator.ingest", inventory_id)
        return jsonify({
            "inventory_id": inventory_id,
            "created": [entry.to_dict() for entry in created],
            "failures": [failure.to_dict() for failure in failures],
        }), 207 if failures else 201
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to ingest integrator records")
        return jsonify({"error": "Internal server error"}), 500
