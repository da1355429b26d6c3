"""REST API endpoints for the printer picker and print button."""
from flask import Blueprint, current_app, request, jsonify

from printbridge.printer import NotFound, PrinterManager

api_bp = Blueprint("api", __name__)


def get_manager() -> PrinterManager:
    return current_app.extensions["printer_manager"]


# Printers API

@api_bp.route("/printers/capabilities", methods=["GET"])
def capabilities():
    """Report which transports this host supports."""
    caps = get_manager().capabilities()
    return jsonify({"available": any(caps.values()), **caps})


@api_bp.route("/printers", methods=["GET"])
def list_printers():
    """List printers from the last discovery and the current selection."""
    manager = get_manager()
    selected = manager.current()
    return jsonify({
        "printers": [d.to_dict() for d in manager.registry.devices()],
        "selected": selected.id if selected else None,
    })


@api_bp.route("/printers/discover", methods=["POST"])
def discover_printers():
    """Run discovery across USB and system printers."""
    devices = get_manager().discover_all()
    return jsonify({
        "printers": [d.to_dict() for d in devices]
    })


@api_bp.route("/printers/select", methods=["POST"])
def select_printer():
    """Select a discovered printer.

    Request body:
    {
        "device_id": "04b8:0e15"
    }
    """
    data = request.get_json(silent=True) or {}

    device_id = data.get("device_id")
    if not device_id:
        return jsonify({"error": "device_id is required"}), 400

    try:
        device = get_manager().select(str(device_id))
    except NotFound as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(device.to_dict())


# Print API

@api_bp.route("/print", methods=["POST"])
def print_receipt():
    """Print a receipt.

    Request body:
    {
        "content": "RECEIPT\\n...",
        "transport": "usb"  // usb, serial or system (default)
    }
    """
    data = request.get_json(silent=True) or {}

    content = data.get("content")
    if not isinstance(content, str) or not content:
        return jsonify({"error": "content is required"}), 400

    result = get_manager().print(content, data.get("transport"))
    return jsonify(result.to_dict()), 200 if result.success else 500
