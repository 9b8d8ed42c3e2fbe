from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

from .config import MintConfig
from .state import RemoteStatus

MINT_TO_COLLECTION = """
mutation MintToCollection($input: MintToCollectionInput!) {
  mintToCollection(input: $input) {
    collectionMint {
      id
      creationStatus
    }
  }
}
""".strip()

RETRY_MINT_TO_COLLECTION = """
mutation RetryMintToCollection($input: RetryMintEditionInput!) {
  retryMintToCollection(input: $input) {
    collectionMint {
      id
      creationStatus
    }
  }
}
""".strip()

MINT_STATUS = """
query MintStatus($id: UUID!) {
  mint(id: $id) {
    id
    creationStatus
  }
}
""".strip()


class GraphQLError(Exception):
    """The API answered with an ``errors`` array."""

    def __init__(self, messages: list[str]) -> None:
        super().__init__(f"GraphQL errors: {messages}")
        self.messages = messages


class MalformedResponseError(Exception):
    """The response body does not have the expected shape."""


@dataclass(frozen=True)
class CollectionMint:
    id: str
    creation_status: RemoteStatus
    raw_status: str = ""


def build_request(query: str, variables: dict[str, Any], operation: str) -> dict[str, Any]:
    return {"query": query, "variables": variables, "operationName": operation}


def build_mint_variables(mint: MintConfig) -> dict[str, Any]:
    # The metadata name is capped at 18 characters by the API.
    name = str(uuid.uuid4())[:18]
    return {
        "input": {
            "collection": mint.collection_id,
            "recipient": mint.recipient,
            "sellerFeeBasisPoints": 0,
            "compressed": mint.compressed,
            "creators": [
                {
                    "address": mint.creator.address,
                    "share": 100,
                    "verified": mint.creator.verified,
                }
            ],
            "metadataJson": {
                "name": name,
                "symbol": mint.symbol,
                "description": mint.description,
                "image": mint.image,
                "attributes": [{"traitType": "Benchmark", "value": "true"}],
            },
        }
    }


def build_retry_variables(item_id: str) -> dict[str, Any]:
    return {"input": {"id": item_id}}


def build_status_variables(item_id: str) -> dict[str, Any]:
    return {"id": item_id}


def parse_collection_mint(payload: Any, *path: str) -> CollectionMint:
    """Extract ``{id, creationStatus}`` found under ``data.<path...>``.

    Raises GraphQLError when the response carries errors and
    MalformedResponseError when ``data`` or the nested object is missing.
    """

    if not isinstance(payload, dict):
        raise MalformedResponseError("response body is not a JSON object")

    errors = payload.get("errors")
    if errors:
        messages = [
            str(error.get("message", error)) if isinstance(error, dict) else str(error)
            for error in errors
        ]
        raise GraphQLError(messages)

    node: Any = payload.get("data")
    if node is None:
        raise MalformedResponseError("data is missing from the response")
    for key in path:
        if not isinstance(node, dict) or node.get(key) is None:
            raise MalformedResponseError(f"response is missing {'.'.join(path)}")
        node = node[key]

    if not isinstance(node, dict):
        raise MalformedResponseError(f"unexpected value at {'.'.join(path)}: {node!r}")
    try:
        mint_id = str(node["id"])
        raw_status = str(node["creationStatus"])
    except KeyError as exc:
        raise MalformedResponseError(f"mint is missing field {exc.args[0]!r}") from exc

    return CollectionMint(
        id=mint_id,
        creation_status=RemoteStatus.parse(raw_status),
        raw_status=raw_status,
    )


__all__ = [
    "CollectionMint",
    "GraphQLError",
    "MINT_STATUS",
    "MINT_TO_COLLECTION",
    "MalformedResponseError",
    "RETRY_MINT_TO_COLLECTION",
    "build_mint_variables",
    "build_request",
    "build_retry_variables",
    "build_status_variables",
    "parse_collection_mint",
]
