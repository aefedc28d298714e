from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from whoowes.auth.gate import current_caller, require_authorized
from whoowes.errors import ValidationError
from whoowes.extensions import get_ledger
from whoowes.utils.validators import parse_flag, parse_since

transactions_bp = Blueprint("transactions", __name__)


@transactions_bp.route("/", methods=["GET"])
@jwt_required()
def list_transactions():
    """
    Transactions grouped by active card.

    Returns:
    [
        {"cardId": "...", "cardholder": "Alice", "transactions": [
            {"id": "...", "merchantName": "Grocery", "amount": 10.0,
             "enteredDate": "...", "archived": false}
        ]}
    ]
    """
    try:
        since = parse_since(request.args.get("since"))
    except ValueError:
        raise ValidationError("invalid since date")
    return jsonify(get_ledger().queries.transactions(
        open_only=parse_flag(request.args.get("open")),
        since=since,
    ))


@transactions_bp.route("/", methods=["POST"])
def record_purchase():
    """
    Record a purchase, then check whether the group is settled.

    Request body:
    {
        "merchantName": "Grocery",
        "amount": 10.00,
        "cardId": "..."
    }
    """
    caller = require_authorized(current_caller())
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")

    outcome = get_ledger().purchases.record_purchase(
        caller,
        card_id=data.get("cardId"),
        merchant_name=data.get("merchantName"),
        amount=data.get("amount"),
    )
    return jsonify(outcome.to_dict()), 201
