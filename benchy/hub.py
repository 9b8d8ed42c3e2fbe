from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import HubConfig, MintConfig
from .graphql import (
    MINT_STATUS,
    MINT_TO_COLLECTION,
    RETRY_MINT_TO_COLLECTION,
    CollectionMint,
    GraphQLError,
    MalformedResponseError,
    build_mint_variables,
    build_request,
    build_retry_variables,
    build_status_variables,
    parse_collection_mint,
)
from .state import RemoteStatus

LOGGER = logging.getLogger("benchy.hub")


class HubError(Exception):
    """Base class for failures talking to the Hub API."""


class HubTransportError(HubError):
    """The request never produced a usable HTTP response."""


class HubResponseError(HubError):
    """The API answered but the answer was an error or could not be parsed."""


class HubClient:
    """Blocking GraphQL client for the three mint operations.

    The underlying ``httpx.Client`` is shared by all worker threads.
    """

    def __init__(
        self,
        config: HubConfig,
        mint: MintConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._url = config.url
        self._mint = mint
        self._client = httpx.Client(
            headers={"Authorization": config.token},
            timeout=httpx.Timeout(config.request_timeout_seconds),
            transport=transport,
        )

    def __enter__(self) -> "HubClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def submit(self) -> CollectionMint:
        payload = self._post(
            build_request(MINT_TO_COLLECTION, build_mint_variables(self._mint), "MintToCollection")
        )
        mint = self._parse(payload, "mintToCollection", "collectionMint")
        LOGGER.info("Mint req sent successfully: MintID: %s -- Status: %s", mint.id, mint.raw_status)
        return mint

    def check_status(self, item_id: str) -> RemoteStatus:
        payload = self._post(
            build_request(MINT_STATUS, build_status_variables(item_id), "MintStatus")
        )
        mint = self._parse(payload, "mint")
        LOGGER.debug("Checking status of mint %s -- Status: %s", mint.id, mint.raw_status)
        if mint.creation_status is RemoteStatus.CREATED:
            LOGGER.info("Mint %s created successfully", mint.id)
        return mint.creation_status

    def retry(self, item_id: str) -> CollectionMint:
        payload = self._post(
            build_request(
                RETRY_MINT_TO_COLLECTION,
                build_retry_variables(item_id),
                "RetryMintToCollection",
            )
        )
        mint = self._parse(payload, "retryMintToCollection", "collectionMint")
        LOGGER.info(
            "Retry Mint req sent successfully: MintID: %s -- Status: %s",
            mint.id,
            mint.raw_status,
        )
        return mint

    def _post(self, body: dict[str, Any]) -> Any:
        try:
            response = self._client.post(self._url, json=body)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise HubTransportError(f"{body['operationName']} request failed: {exc!r}") from exc

        LOGGER.debug("%s", response.text)
        try:
            return response.json()
        except ValueError as exc:
            raise HubResponseError(
                f"{body['operationName']} returned a non-JSON body: {response.text[:200]!r}"
            ) from exc

    def _parse(self, payload: Any, *path: str) -> CollectionMint:
        try:
            return parse_collection_mint(payload, *path)
        except GraphQLError as exc:
            LOGGER.error("%s", payload)
            raise HubResponseError(str(exc)) from exc
        except MalformedResponseError as exc:
            LOGGER.error("%s", exc)
            raise HubResponseError(str(exc)) from exc


__all__ = ["HubClient", "HubError", "HubResponseError", "HubTransportError"]
