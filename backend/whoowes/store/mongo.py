"""
MongoDB store adapter.

Collections:
- cards:        {_id: str, cardholder, initials, active, revision}
- merchants:    {_id: ObjectId, name}  (unique index on name)
- transactions: {_id: ObjectId, card_id, merchant_name, amount: Decimal128,
                 entered_date, archived}

Transactions run in a client session with snapshot read concern and
majority write concern, so they require a replica set (or sharded
cluster). One call to run_transaction is one attempt; pymongo's
TransientTransactionError label and duplicate-key races are reported as
TransactionConflict for the caller's retry loop, and any other driver
failure as StoreUnavailableError.
"""
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from bson import Decimal128, ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, MongoClient
from pymongo.errors import (
    ConnectionFailure,
    DuplicateKeyError,
    PyMongoError,
    ServerSelectionTimeoutError,
)
from pymongo.read_concern import ReadConcern
from pymongo.read_preferences import ReadPreference
from pymongo.write_concern import WriteConcern
import structlog

from whoowes.cards.models import Card
from whoowes.errors import StoreUnavailableError, TransactionConflict
from whoowes.merchants.models import Merchant
from whoowes.store.interface import LedgerStore, UnitOfWork
from whoowes.transactions.models import Transaction

logger = structlog.get_logger(__name__)

TRANSIENT_LABEL = "TransientTransactionError"
UNKNOWN_COMMIT_LABEL = "UnknownTransactionCommitResult"


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal128):
        return value.to_decimal()
    return Decimal(str(value))


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _object_ids(ids):
    out = []
    for value in ids:
        try:
            out.append(ObjectId(value))
        except (InvalidId, TypeError):
            continue
    return out


def card_from_doc(doc) -> Card:
    return Card(
        id=str(doc["_id"]),
        cardholder=doc.get("cardholder", ""),
        initials=doc.get("initials", ""),
        active=bool(doc.get("active", False)),
    )


def merchant_from_doc(doc) -> Merchant:
    return Merchant(id=str(doc["_id"]), name=doc["name"])


def transaction_from_doc(doc) -> Transaction:
    return Transaction(
        id=str(doc["_id"]),
        card_id=doc["card_id"],
        merchant_name=doc.get("merchant_name", ""),
        amount=_as_decimal(doc["amount"]),
        entered_date=_as_utc(doc["entered_date"]),
        archived=bool(doc.get("archived", False)),
    )


@contextmanager
def translate_errors():
    """Map driver-level connectivity failures to StoreUnavailableError."""
    try:
        yield
    except (ConnectionFailure, ServerSelectionTimeoutError) as err:
        if err.has_error_label(TRANSIENT_LABEL):
            raise TransactionConflict(str(err)) from err
        raise StoreUnavailableError(str(err)) from err


class MongoUnitOfWork(UnitOfWork):

    def __init__(self, db, session):
        self.db = db
        self.session = session

    def get_card(self, card_id):
        doc = self.db.cards.find_one({"_id": card_id}, session=self.session)
        return card_from_doc(doc) if doc else None

    def active_cards(self):
        cursor = self.db.cards.find({"active": True}, session=self.session).sort("_id", ASCENDING)
        return [card_from_doc(doc) for doc in cursor]

    def touch_card(self, card_id):
        self.db.cards.update_one({"_id": card_id}, {"$inc": {"revision": 1}}, session=self.session)

    def find_merchant(self, name):
        doc = self.db.merchants.find_one({"name": name}, session=self.session)
        return merchant_from_doc(doc) if doc else None

    def insert_merchant(self, name):
        result = self.db.merchants.insert_one({"name": name}, session=self.session)
        return Merchant(id=str(result.inserted_id), name=name)

    def insert_transaction(self, transaction):
        doc = {
            "card_id": transaction.card_id,
            "merchant_name": transaction.merchant_name,
            "amount": Decimal128(transaction.amount),
            "entered_date": transaction.entered_date,
            "archived": False,
        }
        result = self.db.transactions.insert_one(doc, session=self.session)
        doc["_id"] = result.inserted_id
        return transaction_from_doc(doc)

    def open_transactions(self, card_id):
        cursor = self.db.transactions.find(
            {"card_id": card_id, "archived": False}, session=self.session
        ).sort("entered_date", ASCENDING)
        return [transaction_from_doc(doc) for doc in cursor]

    def archive_transactions(self, transaction_ids):
        oids = _object_ids(transaction_ids)
        if not oids:
            return 0
        result = self.db.transactions.update_many(
            {"_id": {"$in": oids}, "archived": False},
            {"$set": {"archived": True}},
            session=self.session,
        )
        return result.modified_count


class MongoStore(LedgerStore):
    """LedgerStore backed by a MongoDB replica set."""

    COMMIT_ATTEMPTS = 3

    def __init__(self, client: MongoClient, db_name: str = "whoowes"):
        self._client = client
        self._db = client.get_default_database(default=db_name)

    @classmethod
    def from_uri(cls, uri: str, db_name: str = "whoowes", timeout_ms: int = 5000) -> "MongoStore":
        client = MongoClient(uri, tz_aware=True, serverSelectionTimeoutMS=timeout_ms)
        store = cls(client, db_name)
        logger.info("mongo_connected", database=store.db.name)
        return store

    @property
    def db(self):
        return self._db

    def ensure_indexes(self) -> None:
        with translate_errors():
            self._db.merchants.create_index([("name", ASCENDING)], unique=True)
            self._db.transactions.create_index(
                [("card_id", ASCENDING), ("archived", ASCENDING), ("entered_date", ASCENDING)]
            )

    def run_transaction(self, body):
        try:
            with translate_errors(), self._client.start_session() as session:
                session.start_transaction(
                    read_concern=ReadConcern("snapshot"),
                    write_concern=WriteConcern("majority"),
                    read_preference=ReadPreference.PRIMARY,
                )
                try:
                    result = body(MongoUnitOfWork(self._db, session))
                except BaseException:
                    if session.in_transaction:
                        session.abort_transaction()
                    raise
                self._commit(session)
                return result
        except DuplicateKeyError as err:
            # Another writer committed the same merchant name first.
            raise TransactionConflict(str(err)) from err
        except PyMongoError as err:
            if err.has_error_label(TRANSIENT_LABEL):
                raise TransactionConflict(str(err)) from err
            logger.error("mongo_transaction_failed", error=str(err), code=getattr(err, "code", None))
            raise StoreUnavailableError(str(err)) from err

    def _commit(self, session) -> None:
        for _ in range(self.COMMIT_ATTEMPTS):
            try:
                session.commit_transaction()
                return
            except PyMongoError as err:
                if err.has_error_label(UNKNOWN_COMMIT_LABEL):
                    continue
                raise
        # Re-running the body could append twice, so this is not a conflict.
        raise StoreUnavailableError("transaction commit outcome unknown")

    def list_cards(self, active_only=True):
        query = {"active": True} if active_only else {}
        with translate_errors():
            return [card_from_doc(doc) for doc in self._db.cards.find(query).sort("_id", ASCENDING)]

    def get_card(self, card_id):
        with translate_errors():
            doc = self._db.cards.find_one({"_id": card_id})
        return card_from_doc(doc) if doc else None

    def save_card(self, card):
        with translate_errors():
            self._db.cards.update_one(
                {"_id": card.id},
                {
                    "$set": {"cardholder": card.cardholder, "initials": card.initials, "active": card.active},
                    "$inc": {"revision": 1},
                },
                upsert=True,
            )
        return card

    def list_merchants(self):
        with translate_errors():
            return [merchant_from_doc(doc) for doc in self._db.merchants.find().sort("name", ASCENDING)]

    def list_transactions(self, card_id=None, open_only=False, since: Optional[datetime] = None):
        query = {}
        if card_id is not None:
            query["card_id"] = card_id
        if open_only:
            query["archived"] = False
        if since is not None:
            query["entered_date"] = {"$gte": since}
        with translate_errors():
            cursor = self._db.transactions.find(query).sort("entered_date", ASCENDING)
            return [transaction_from_doc(doc) for doc in cursor]

    def ping(self):
        try:
            self._client.admin.command("ping")
        except PyMongoError as err:
            raise StoreUnavailableError(str(err)) from err

    def close(self):
        self._client.close()
