from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required

from whoowes.extensions import get_ledger

merchants_bp = Blueprint("merchants", __name__)


@merchants_bp.route("/", methods=["GET"])
@jwt_required()
def list_merchants():
    return jsonify(get_ledger().queries.merchants())
