import pytest

from whoowes.core.transactions import TransactionRunner
from whoowes.errors import ConflictError, TransactionConflict


class TestTransactionRunner:

    def test_returns_body_result(self, store):
        runner = TransactionRunner(store, max_attempts=1, max_wait=0.0)
        assert runner.run(lambda txn: txn.get_card("c1").cardholder) == "Alice"

    def test_reruns_body_with_fresh_reads(self, store):
        runner = TransactionRunner(store, max_attempts=3, max_wait=0.0)
        attempts = []

        def body(txn):
            attempts.append(txn)
            return len(attempts)

        store.fail_next_commits(2)
        assert runner.run(body) == 3
        assert len({id(txn) for txn in attempts}) == 3

    def test_budget_exhaustion_raises_conflict_error(self, store):
        runner = TransactionRunner(store, max_attempts=2, max_wait=0.0)
        store.fail_next_commits(2)
        with pytest.raises(ConflictError) as exc:
            runner.run(lambda txn: None, name="archive")
        assert exc.value.retryable
        assert "archive" in exc.value.message
        assert store.conflicts == 2

    def test_other_errors_are_not_retried(self, store):
        runner = TransactionRunner(store, max_attempts=5, max_wait=0.0)
        calls = []

        def body(txn):
            calls.append(1)
            raise KeyError("nope")

        with pytest.raises(KeyError):
            runner.run(body)
        assert calls == [1]

    def test_rejects_empty_budget(self, store):
        with pytest.raises(ValueError):
            TransactionRunner(store, max_attempts=0)

    def test_conflict_signal_is_internal(self):
        assert not issubclass(TransactionConflict, ConflictError)
