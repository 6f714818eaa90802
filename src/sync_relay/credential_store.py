"""
Durable storage for credential pairings.

A pairing is kept as two rows in two independent namespaces, one keyed by the
local credential and one keyed by the provider credential. Both rows are
written (and deleted) together through ``create_pairing``/``delete_pairing``.
The two writes are issued concurrently on separate sessions and there is no
cross-namespace transaction: if one side fails the pairing may be half
written, and the caller receives a ``PairingConsistencyError`` naming the
side(s) that failed.
"""

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sync_relay.db_models import Base, LocalToProvider, ProviderToLocal
from sync_relay.redaction import fingerprint

logger = logging.getLogger("sync_relay.store")


class CredentialStoreError(RuntimeError):
    pass


class PairingConsistencyError(CredentialStoreError):
    def __init__(self, operation: str, failed: dict[str, BaseException]):
        self.operation = operation
        self.failed = failed
        names = ", ".join(sorted(failed))
        super().__init__(f"Pairing {operation} failed in namespace(s): {names}")


class StoreNamespace:
    """One directional string-to-string map backed by a single table."""

    def __init__(
        self,
        name: str,
        model: type[Base],
        session_maker: async_sessionmaker[AsyncSession],
    ):
        self.name = name
        self._model = model
        self._session_maker = session_maker

    async def get(self, key: str) -> str | None:
        async with self._session_maker() as session:
            row = await session.get(self._model, key)
            return row.value if row is not None else None

    async def put(self, key: str, value: str) -> None:
        async with self._session_maker() as session:
            await session.merge(self._model(key=key, value=value))
            await session.commit()

    async def delete(self, key: str) -> None:
        async with self._session_maker() as session:
            await session.execute(delete(self._model).where(self._model.key == key))
            await session.commit()


@dataclass
class Pairing:
    local_credential: str
    provider_credential: str


class CredentialStore:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.local_to_provider = StoreNamespace(
            "local_to_provider", LocalToProvider, session_maker
        )
        self.provider_to_local = StoreNamespace(
            "provider_to_local", ProviderToLocal, session_maker
        )

    async def get_provider_credential(self, local_credential: str) -> str | None:
        return await self.local_to_provider.get(local_credential)

    async def get_local_credential(self, provider_credential: str) -> str | None:
        return await self.provider_to_local.get(provider_credential)

    async def create_pairing(self, local_credential: str, provider_credential: str) -> Pairing:
        await self._run_paired(
            "create",
            self.local_to_provider.put(local_credential, provider_credential),
            self.provider_to_local.put(provider_credential, local_credential),
        )
        logger.info("Stored pairing for local credential %s", fingerprint(local_credential))
        return Pairing(local_credential, provider_credential)

    async def delete_pairing(self, local_credential: str, provider_credential: str) -> None:
        await self._run_paired(
            "delete",
            self.local_to_provider.delete(local_credential),
            self.provider_to_local.delete(provider_credential),
        )
        logger.info("Deleted pairing for local credential %s", fingerprint(local_credential))

    async def _run_paired(self, operation: str, local_op, provider_op) -> None:
        results = await asyncio.gather(local_op, provider_op, return_exceptions=True)
        failed = {
            namespace.name: result
            for namespace, result in zip(
                (self.local_to_provider, self.provider_to_local), results
            )
            if isinstance(result, BaseException)
        }
        if failed:
            # TODO: decide whether a half-written pairing should be rolled back
            # with a compensating delete of the side that succeeded.
            for name, error in failed.items():
                logger.error("Pairing %s failed in %s: %r", operation, name, error)
            raise PairingConsistencyError(operation, failed)
