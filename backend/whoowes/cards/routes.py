from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from whoowes.errors import ValidationError
from whoowes.extensions import get_ledger
from whoowes.utils.validators import parse_flag, parse_since

cards_bp = Blueprint("cards", __name__)


@cards_bp.route("/", methods=["GET"])
@jwt_required()
def list_cards():
    """Active cards: [{id, cardholder, initials}]"""
    return jsonify(get_ledger().queries.cards())


@cards_bp.route("/<card_id>/transactions", methods=["GET"])
@jwt_required()
def card_transactions(card_id):
    """
    Transactions on one card.

    Query params:
        open=true          only non-archived entries
        since=YYYY-MM-DD   only entries on/after this date
    """
    try:
        since = parse_since(request.args.get("since"))
    except ValueError:
        raise ValidationError("invalid since date")
    listing = get_ledger().queries.card_transactions(
        card_id,
        open_only=parse_flag(request.args.get("open")),
        since=since,
    )
    return jsonify(listing)
