"""Sync logic mirroring the local ledger onto a Portfolio Report portfolio."""

import logging
from typing import Any

from prsync.api_client import RemoteUnavailable
from prsync.converter import (
    ConversionError,
    convert_account_transaction,
    convert_portfolio_transaction,
)
from prsync.ledger import Account, Ledger, Portfolio, Security
from prsync.reconciler import EntityReconciler
from prsync.remote import EntityKind, RemoteAccount, RemotePortfolio, RemoteSecurity
from prsync.resolver import DeferredReferenceResolver

logger = logging.getLogger(__name__)

PORTFOLIO_ID_KEY = "net.portfolio-report.portfolioId"


def security_to_remote(security: Security) -> RemoteSecurity:
    return RemoteSecurity(
        uuid=security.uuid,
        name=security.name,
        currency_code=security.currency_code,
        isin=security.isin,
        wkn=security.wkn,
        symbol=security.symbol,
        active=security.active,
        note=security.note,
    )


def account_to_remote(owner: Account | Portfolio) -> RemoteAccount:
    """Build the remote account of a deposit account or a portfolio."""
    if isinstance(owner, Portfolio):
        return RemoteAccount(
            uuid=owner.uuid,
            type="securities",
            name=owner.name,
            active=owner.active,
            note=owner.note,
            reference_account_uuid=owner.reference_account.uuid,
        )
    return RemoteAccount(
        uuid=owner.uuid,
        type="deposit",
        name=owner.name,
        currency_code=owner.currency_code,
        active=owner.active,
        note=owner.note,
    )


class SyncOrchestrator:
    """Run one full sync of a ledger against the remote service.

    Must not run concurrently for the same ledger and remote portfolio.
    """

    def __init__(self, client, ledger: Ledger, properties=None):
        """
        Args:
            client: Remote client (``PortfolioReportClient`` or compatible)
            ledger: Local ledger to mirror
            properties: Property store holding the remote portfolio id;
                defaults to the ledger's own properties
        """
        self.client = client
        self.ledger = ledger
        self.properties = properties if properties is not None else ledger

    def sync(self) -> dict[str, Any]:
        """Bootstrap the remote portfolio, then securities, accounts, transactions.

        Returns:
            Dictionary with sync results:
            {
                "status": "success",
                "portfolio_id": int,
                "securities": {"created": int, "updated": int, "deleted": int},
                "accounts": {...},
                "transactions": {..., "deferred": int}
            }

        Raises:
            RemoteUnavailable: If any remote call fails; calls made before the
                failure stay committed
            ConversionError: If a local transaction cannot be converted
        """
        try:
            portfolio_id = self.get_or_create_portfolio()
            logger.info(f"Syncing with remote portfolio {portfolio_id}")

            reconciler = EntityReconciler(self.client, portfolio_id)
            securities = self.sync_securities(reconciler)
            accounts = self.sync_accounts(reconciler)
            transactions = self.sync_transactions(portfolio_id)
        except (RemoteUnavailable, ConversionError) as e:
            logger.error(f"Sync failed with {type(e).__name__}: {str(e)}")
            raise

        logger.info(f"Sync complete for remote portfolio {portfolio_id}")
        return {
            "status": "success",
            "portfolio_id": portfolio_id,
            "securities": securities,
            "accounts": accounts,
            "transactions": transactions,
        }

    def get_or_create_portfolio(self) -> int:
        """Resolve the stored remote portfolio id, creating the portfolio if needed.

        A missing, non-numeric or no longer existing id results in exactly
        one new remote portfolio whose id is stored for the next run.
        """
        stored = self.properties.get_property(PORTFOLIO_ID_KEY)
        if stored is not None:
            try:
                portfolio_id = int(stored)
            except ValueError:
                logger.warning(f"Ignoring invalid stored portfolio id {stored!r}")
            else:
                if any(p.id == portfolio_id for p in self.client.list_portfolios()):
                    return portfolio_id
                logger.warning(f"Remote portfolio {portfolio_id} no longer exists")

        created = self.client.create_portfolio(
            RemotePortfolio(
                id=None,
                name="Synced Portfolio",
                note="automatically created by prsync",
                base_currency_code=self.ledger.base_currency,
            )
        )
        self.properties.set_property(PORTFOLIO_ID_KEY, str(created.id))
        logger.info(f"Created remote portfolio {created.id}")
        return created.id

    def sync_securities(self, reconciler: EntityReconciler) -> dict[str, int]:
        # Instruments without currency (e.g. indices) have no remote equivalent
        securities = [s for s in self.ledger.securities if s.currency_code is not None]
        skipped = len(self.ledger.securities) - len(securities)
        if skipped:
            logger.info(f"Skipping {skipped} securities without currency")
        return reconciler.reconcile(EntityKind.SECURITY, securities, security_to_remote)

    def sync_accounts(self, reconciler: EntityReconciler) -> dict[str, int]:
        owners = [*self.ledger.accounts, *self.ledger.portfolios]
        return reconciler.reconcile(EntityKind.ACCOUNT, owners, account_to_remote)

    def sync_transactions(self, portfolio_id: int) -> dict[str, int]:
        """Push converted transactions and delete remote ones no longer produced."""
        remote_transactions = self.client.list_entities(
            EntityKind.TRANSACTION, portfolio_id
        )
        remote_by_uuid = {t.uuid: t for t in remote_transactions}
        unmatched = dict(remote_by_uuid)
        resolver = DeferredReferenceResolver(self.client, portfolio_id, remote_by_uuid)
        logger.info(
            f"Reconciling transactions: {len(remote_transactions)} remote records"
        )

        # Convert everything first so a local error aborts before any push
        converted_all = list(self._convert_all(remote_by_uuid))

        created = 0
        updated = 0
        for converted in converted_all:
            if unmatched.pop(converted.uuid, None) is None:
                created += 1
            else:
                updated += 1
            resolver.push(converted)

        deferred = resolver.replay()

        for stale in unmatched.values():
            logger.debug(f"Deleting transaction {stale.uuid}")
            self.client.delete_entity(EntityKind.TRANSACTION, portfolio_id, stale)

        logger.info(
            f"Reconciled transactions: {created} created, {updated} updated, "
            f"{len(unmatched)} deleted, {deferred} deferred"
        )
        return {
            "created": created,
            "updated": updated,
            "deleted": len(unmatched),
            "deferred": deferred,
        }

    def _convert_all(self, remote_by_uuid):
        """Yield remote records for all local transactions, portfolios first.

        The portfolio-side record paired with an account transaction keeps the
        uuid it already has remotely, read from the account-side record.
        """
        for portfolio in self.ledger.portfolios:
            for local in portfolio.transactions:
                yield convert_portfolio_transaction(local, portfolio)

        for account in self.ledger.accounts:
            for local in account.transactions:
                existing = remote_by_uuid.get(local.uuid)
                hint = existing.partner_transaction_uuid if existing else None
                yield from convert_account_transaction(
                    local, account, self.ledger, partner_uuid_hint=hint
                )
