"""
Settlement Data Store

``SettlementStore`` is the data-store handle passed into the settlement
operation. It binds every query to one database alias and runs transaction
bodies with a bounded number of attempts.

Usage:
    >>> store = SettlementStore.from_settings()
    >>> store.run_transaction(lambda s: s.requests().select_for_update().get(pk=request_id))
"""

import logging
from typing import Callable, Optional, TypeVar

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, DatabaseError, OperationalError, transaction

from core.accounts.models import Account

from .exceptions import InternalFailure, SettlementError, TransactionConflict
from .models import ActivationRequest, Partner, Sale

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SettlementStore:
    """
    Database handle for settlement.

    Attributes:
        using (str): Django database alias all queries are bound to
        max_attempts (int): How often a transaction body is executed before a
            lock/serialization conflict is reported as InternalFailure
    """

    DEFAULT_MAX_ATTEMPTS = 5

    def __init__(self, using: str = DEFAULT_DB_ALIAS, max_attempts: Optional[int] = None) -> None:
        self.using = using
        self.max_attempts = max(1, max_attempts or self.DEFAULT_MAX_ATTEMPTS)

    @classmethod
    def from_settings(cls, using: str = DEFAULT_DB_ALIAS) -> "SettlementStore":
        return cls(
            using=using,
            max_attempts=getattr(
                settings, "SETTLEMENT_MAX_TRANSACTION_ATTEMPTS", cls.DEFAULT_MAX_ATTEMPTS
            ),
        )

    def __repr__(self) -> str:
        return f"<SettlementStore(using={self.using!r}, max_attempts={self.max_attempts})>"

    # --- Querysets bound to this store's alias ---

    def accounts(self):
        return Account.objects.using(self.using)

    def partners(self):
        return Partner.objects.using(self.using)

    def requests(self):
        return ActivationRequest.objects.using(self.using)

    def sales(self):
        return Sale.objects.using(self.using)

    # --- Transactions ---

    def run_transaction(self, body: Callable[["SettlementStore"], T]) -> T:
        """
        Execute ``body(store)`` inside one atomic block.

        The body may run more than once: on OperationalError (lock timeout,
        deadlock, serialization failure) the block is rolled back and retried
        up to ``max_attempts`` times. It must therefore not call external
        services.

        Raises:
            SettlementError: Raised by the body; propagated unchanged after rollback
            InternalFailure: On exhausted attempts or any other database error
        """
        conflict = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                with transaction.atomic(using=self.using):
                    return body(self)
            except SettlementError:
                raise
            except OperationalError as exc:
                conflict = TransactionConflict(str(exc), attempt=attempt)
                logger.warning(
                    "Settlement transaction conflict (attempt %s/%s): %s",
                    attempt,
                    self.max_attempts,
                    exc,
                )
            except DatabaseError as exc:
                logger.exception("Settlement transaction failed: %s", exc)
                raise InternalFailure(details={"error": str(exc)}) from exc

        logger.error(
            "Settlement transaction gave up after %s attempts.", self.max_attempts
        )
        raise InternalFailure(
            details={"attempts": self.max_attempts}
        ) from conflict
