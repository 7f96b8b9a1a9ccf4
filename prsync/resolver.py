"""Two-pass push of remote transactions that reference each other.

A remote transaction may name a partner transaction that has not been pushed
yet, and the service only accepts references to existing records. Such a
transaction is first pushed without the reference and queued; once every
transaction of the pass exists remotely the queued originals are pushed again
with their reference. No transaction is pushed more than twice.
"""

import logging
from collections.abc import Iterable

from prsync.remote import EntityKind, RemoteTransaction

logger = logging.getLogger(__name__)


class DeferredReferenceResolver:
    """Push transactions so that partner references always resolve.

    State lives for a single sync run.
    """

    def __init__(self, client, portfolio_id: int, known_uuids: Iterable[str] = ()):
        """
        Args:
            client: Remote client
            portfolio_id: Remote portfolio holding the transactions
            known_uuids: Transaction uuids that already exist remotely
        """
        self.client = client
        self.portfolio_id = portfolio_id
        self.known_uuids: set[str] = set(known_uuids)
        self.retry_queue: list[RemoteTransaction] = []

    def push(self, transaction: RemoteTransaction) -> RemoteTransaction:
        """Push a transaction, deferring an unresolvable partner reference.

        Returns:
            The stored record
        """
        partner = transaction.partner_transaction_uuid
        if partner is not None and partner not in self.known_uuids:
            logger.debug(
                f"Deferring partner {partner} of transaction {transaction.uuid}"
            )
            self.retry_queue.append(transaction)
            transaction = transaction.without_partner()

        stored = self.client.upsert_entity(
            EntityKind.TRANSACTION, self.portfolio_id, transaction
        )
        self.known_uuids.add(stored.uuid)
        return stored

    def replay(self) -> int:
        """Push queued transactions again with their partner reference.

        Returns:
            Number of transactions pushed a second time
        """
        queued, self.retry_queue = self.retry_queue, []
        for transaction in queued:
            if transaction.partner_transaction_uuid not in self.known_uuids:
                logger.warning(
                    f"Partner {transaction.partner_transaction_uuid} of transaction "
                    f"{transaction.uuid} was not pushed in this run"
                )
            self.client.upsert_entity(
                EntityKind.TRANSACTION, self.portfolio_id, transaction
            )
        if queued:
            logger.info(f"Attached {len(queued)} deferred partner references")
        return len(queued)
