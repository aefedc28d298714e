from flask import Blueprint, jsonify

from whoowes.errors import StoreUnavailableError
from whoowes.extensions import get_ledger

health_bp = Blueprint("health", __name__)


@health_bp.route("/", methods=["GET"])
def health():
    try:
        get_ledger().store.ping()
    except StoreUnavailableError:
        return jsonify({"status": "unavailable", "store": False}), 503
    return jsonify({"status": "ok", "store": True})
