import logging
from typing import Callable, NamedTuple, Optional

from pcdmkit.client import RepositoryClient, strip_transaction
from pcdmkit.compose.exceptions import TransactionOwnershipError

logger = logging.getLogger(__name__)


class ScopeResult(NamedTuple):
    """Outcome of a unit of work run by `run_in_scope()`. It is only true
    if the work produced a URI.

    ```pycon
    >>> bool(ScopeResult('http://localhost:8080/rest/foo'))
    True

    >>> bool(ScopeResult(error=RuntimeError('oops')))
    False
    ```
    """

    uri: Optional[str] = None
    """Resulting URI; transaction-stripped if the scope committed"""

    error: Optional[Exception] = None
    """The error that caused the scope to roll back, if any"""

    def __bool__(self):
        return self.uri is not None


class TransactionScope:
    """Context manager that ensures a transaction for a unit of work.

    If no `transaction` is supplied, one is created on entry and this scope
    owns it: it must be closed by exactly one call to `commit()` or
    `rollback()`. Leaving the block without closing it, whether by an
    exception or a normal exit, rolls it back. Exceptions are always
    re-raised.

    If a `transaction` is supplied, this scope only participates in it. It
    never commits or rolls back; trying to do so raises a
    `TransactionOwnershipError` without contacting the repository.
    """

    def __init__(self, client: RepositoryClient, transaction: Optional[str] = None):
        self.client = client
        self.transaction: Optional[str] = transaction or None
        self.external: bool = self.transaction is not None
        """Whether the transaction was supplied by the caller"""
        self.owned: bool = False
        """Whether this scope created, and must close, the transaction"""
        self.closed: bool = False

    def __str__(self):
        return str(self.transaction)

    def __enter__(self) -> 'TransactionScope':
        if self.transaction is None:
            self.transaction = self.client.create_transaction()
            self.owned = True
        else:
            logger.debug(f'Participating in transaction {self.transaction}')
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self.owned or self.closed:
            return False
        if exc_val is None:
            logger.info(f'Transaction {self} was not committed')
            self.rollback()
            return False
        try:
            self.rollback()
        except Exception as e:
            # the original exception is the one to report
            logger.error(f'Unable to roll back transaction {self}: {e.__class__.__name__}: {e}')
        return False

    def _close(self, action: str):
        if not self.owned:
            raise TransactionOwnershipError(f'Cannot {action} transaction {self}; it was opened by the caller')
        if self.closed:
            raise TransactionOwnershipError(f'Cannot {action} transaction {self}; it is already closed')
        self.closed = True

    def commit(self):
        self._close('commit')
        self.client.commit_transaction(self.transaction)

    def rollback(self):
        self._close('roll back')
        self.client.rollback_transaction(self.transaction)


def run_in_scope(
        client: RepositoryClient,
        transaction: Optional[str],
        work: Callable[[str], Optional[str]],
) -> ScopeResult:
    """Run `work` within a `TransactionScope`. The `work` callable receives
    the transaction identifier and returns a URI, or `None` if there was
    nothing to do.

    When no `transaction` is supplied:

    * if `work` returns a URI, the transaction is committed and the URI is
      returned with the transaction identifier stripped out;
    * if `work` returns `None`, the transaction is rolled back and an empty
      result is returned;
    * if anything fails, including creating or committing the transaction,
      the error is logged, the transaction (if open and not yet closed) is
      rolled back, and a failed result holding the error is returned.

    When a `transaction` is supplied, the URI from `work` is returned as-is
    and any error propagates to the caller. The transaction is neither
    committed nor rolled back.
    """
    scope = TransactionScope(client, transaction)
    try:
        with scope:
            uri = work(scope.transaction)
            if uri is not None and scope.owned:
                scope.commit()
                uri = strip_transaction(uri)
            return ScopeResult(uri=uri)
    except Exception as e:
        if scope.external:
            raise
        logger.error(f'Composition failed in transaction {scope}: {e.__class__.__name__}: {e}')
        return ScopeResult(error=e)
