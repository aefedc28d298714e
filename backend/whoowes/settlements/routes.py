"""Settlement routes."""
from flask import Blueprint, jsonify

from whoowes.auth.gate import current_caller
from whoowes.extensions import get_ledger

settlements_bp = Blueprint("settlements", __name__)


@settlements_bp.route("/evaluate", methods=["POST"])
def evaluate():
    """
    Re-run the settlement pass on its own.

    Used when a purchase committed but its settlement pass was deferred.
    """
    result = get_ledger().purchases.settle(current_caller())
    return jsonify(result.to_dict())
