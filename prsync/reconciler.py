"""Generic diff/upsert/delete of a uuid-keyed remote collection."""

import logging
from collections.abc import Callable, Iterable
from typing import Any

from prsync.remote import EntityKind

logger = logging.getLogger(__name__)


class EntityReconciler:
    """Make one remote collection mirror a local collection.

    Local values always win: every matched remote record is replaced by a
    record built from the local item, whether or not anything changed.
    """

    def __init__(self, client, portfolio_id: int):
        self.client = client
        self.portfolio_id = portfolio_id

    def reconcile(
        self,
        kind: EntityKind,
        local_items: Iterable[Any],
        to_remote: Callable[[Any], Any],
    ) -> dict[str, int]:
        """Upsert every local item and delete remote records left unmatched.

        Args:
            kind: Remote collection to reconcile
            local_items: Local entities, each with a ``uuid``
            to_remote: Builds the full remote record for a local entity

        Returns:
            Counts of created, updated and deleted remote records

        Raises:
            RemoteUnavailable: On the first failing remote call; earlier
                calls are not rolled back
        """
        remote_items = self.client.list_entities(kind, self.portfolio_id)
        unmatched = {item.uuid: item for item in remote_items}
        logger.info(
            f"Reconciling {kind.value}: {len(remote_items)} remote records"
        )

        created = 0
        updated = 0
        for local in local_items:
            if unmatched.pop(local.uuid, None) is None:
                created += 1
                logger.debug(f"Creating {kind.value} {local.uuid}")
            else:
                updated += 1
                logger.debug(f"Updating {kind.value} {local.uuid}")
            self.client.upsert_entity(kind, self.portfolio_id, to_remote(local))

        for stale in unmatched.values():
            logger.debug(f"Deleting {kind.value} {stale.uuid}")
            self.client.delete_entity(kind, self.portfolio_id, stale)

        logger.info(
            f"Reconciled {kind.value}: {created} created, {updated} updated, "
            f"{len(unmatched)} deleted"
        )
        return {"created": created, "updated": updated, "deleted": len(unmatched)}
