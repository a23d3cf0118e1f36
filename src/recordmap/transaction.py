"""
Transactions over a DbMap's connection.
"""
import logging
import threading
from typing import TYPE_CHECKING, Any

from recordmap.cursor import Cursor
from recordmap.exceptions import TransactionFinishedError
from recordmap.executor import SqlExecutor

if TYPE_CHECKING:
    from recordmap.dbmap import DbMap

logger = logging.getLogger(__name__)


_local = threading.local()


def _active_transactions() -> set[int]:
    if not hasattr(_local, 'active_transactions'):
        _local.active_transactions = set()
    return _local.active_transactions


class Transaction(SqlExecutor):
    """Executor whose statements run in one database transaction.

    Offers every DbMap record operation plus commit, rollback and
    savepoints. Once committed or rolled back, any further use raises
    TransactionFinishedError. Thread-local state rejects a second open
    transaction on the same connection in the same thread.

    Examples
        with dbmap.begin() as tx:
            tx.insert(invoice)
            tx.update(person)

        tx = dbmap.begin()
        try:
            tx.delete(person)
            tx.commit()
        except Exception:
            tx.rollback()
            raise
    """

    def __init__(self, dbmap: 'DbMap') -> None:
        self._dbmap = dbmap
        self.cn = dbmap.cn
        self.closed = False

        if id(self.cn) in _active_transactions() and self.cn.in_transaction:
            raise RuntimeError('Nested transactions are not supported')

        dbmap._initialise()
        dbmap._trace('begin;', ())
        dbmap.dialect.begin(self.cn.driver_connection)
        _active_transactions().add(id(self.cn))
        self.cn.in_transaction = True
        logger.debug(f'Started transaction for connection {id(self.cn)}')

    def __enter__(self) -> 'Transaction':
        return self

    def __exit__(self, exc_type: type | None, value: Exception | None, traceback: Any | None) -> None:
        if self.closed:
            return
        if exc_type is not None:
            logger.warning('Rolling back the current transaction')
            self.rollback()
        else:
            self.commit()

    @property
    def dbmap(self) -> 'DbMap':
        return self._dbmap

    def _check_open(self) -> None:
        if self.closed:
            raise TransactionFinishedError('recordmap: transaction has already been committed or rolled back')

    def _cursor(self) -> Cursor:
        self._check_open()
        return self.cn.cursor(self._dbmap.dialect)

    def _finish(self) -> None:
        self.closed = True
        _active_transactions().discard(id(self.cn))
        self.cn.in_transaction = False
        self._dbmap.dialect.end(self.cn.driver_connection)
        logger.debug(f'Transaction finished for connection {id(self.cn)}')

    def commit(self) -> None:
        """Commit the transaction.

        Raises
            TransactionFinishedError: already committed or rolled back
        """
        self._check_open()
        self._dbmap._trace('commit;', ())
        try:
            self.cn.commit()
        finally:
            self._finish()

    def rollback(self) -> None:
        """Roll back the transaction.

        Raises
            TransactionFinishedError: already committed or rolled back
        """
        self._check_open()
        self._dbmap._trace('rollback;', ())
        try:
            self.cn.rollback()
        finally:
            self._finish()

    def savepoint(self, name: str) -> None:
        """Mark a savepoint that can later be rolled back to or released."""
        self.exec(f'savepoint {self._dbmap.dialect.quote_field(name)}')

    def rollback_to_savepoint(self, name: str) -> None:
        self.exec(f'rollback to savepoint {self._dbmap.dialect.quote_field(name)}')

    def release_savepoint(self, name: str) -> None:
        self.exec(f'release savepoint {self._dbmap.dialect.quote_field(name)}')
