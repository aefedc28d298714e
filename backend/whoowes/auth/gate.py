"""
Authorization gate.

Token issuance and OTP login live outside this service. All the ledger
needs is a Caller: an opaque identity plus a yes/no decision. The HTTP
layer derives it from the bearer JWT; the services only check the flag.
"""
from dataclasses import dataclass
from typing import Optional

from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from whoowes.errors import UnauthorizedError


@dataclass(frozen=True)
class Caller:
    identity: Optional[str]
    authorized: bool

    @classmethod
    def anonymous(cls) -> "Caller":
        return cls(identity=None, authorized=False)


def require_authorized(caller: Optional[Caller]) -> Caller:
    """Refuse to go on unless the gate admitted the caller."""
    if caller is None or not caller.authorized:
        raise UnauthorizedError("request is not authorized")
    return caller


def current_caller() -> Caller:
    """Build the Caller for the current Flask request from its JWT."""
    try:
        verify_jwt_in_request()
    except (JWTExtendedException, PyJWTError):
        return Caller.anonymous()
    identity = get_jwt_identity()
    return Caller(identity=str(identity), authorized=identity is not None)
