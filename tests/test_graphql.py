"""Tests for GraphQL request building and response parsing."""

import pytest

from benchy.config import CreatorConfig, MintConfig
from benchy.graphql import (
    GraphQLError,
    MalformedResponseError,
    build_mint_variables,
    build_request,
    build_retry_variables,
    parse_collection_mint,
)
from benchy.state import RemoteStatus


@pytest.fixture
def mint_config():
    return MintConfig(
        collection_id="collection-1",
        recipient="recipient-1",
        creator=CreatorConfig(address="creator-1", verified=True),
        description="desc",
        compressed=False,
        image="https://example.com/a.png",
    )


def test_mint_variables_carry_config(mint_config):
    variables = build_mint_variables(mint_config)["input"]

    assert variables["collection"] == "collection-1"
    assert variables["recipient"] == "recipient-1"
    assert variables["sellerFeeBasisPoints"] == 0
    assert variables["compressed"] is False
    assert variables["creators"] == [{"address": "creator-1", "share": 100, "verified": True}]
    metadata = variables["metadataJson"]
    assert metadata["symbol"] == "HOLAPLEX"
    assert metadata["image"] == "https://example.com/a.png"
    assert metadata["attributes"] == [{"traitType": "Benchmark", "value": "true"}]


def test_each_mint_gets_a_short_unique_name(mint_config):
    first = build_mint_variables(mint_config)["input"]["metadataJson"]["name"]
    second = build_mint_variables(mint_config)["input"]["metadataJson"]["name"]

    assert len(first) == 18
    assert first != second


def test_build_request_names_operation():
    body = build_request("query { x }", build_retry_variables("mint-1"), "RetryMintToCollection")

    assert body == {
        "query": "query { x }",
        "variables": {"input": {"id": "mint-1"}},
        "operationName": "RetryMintToCollection",
    }


def test_parse_nested_collection_mint():
    payload = {
        "data": {
            "mintToCollection": {"collectionMint": {"id": "mint-1", "creationStatus": "PENDING"}}
        }
    }

    mint = parse_collection_mint(payload, "mintToCollection", "collectionMint")

    assert mint.id == "mint-1"
    assert mint.creation_status is RemoteStatus.PENDING
    assert mint.raw_status == "PENDING"


def test_parse_lowercase_status():
    payload = {"data": {"mint": {"id": "mint-1", "creationStatus": "created"}}}

    assert parse_collection_mint(payload, "mint").creation_status is RemoteStatus.CREATED


def test_errors_array_raises_graphql_error():
    payload = {"data": None, "errors": [{"message": "not authorized"}, "boom"]}

    with pytest.raises(GraphQLError) as excinfo:
        parse_collection_mint(payload, "mint")

    assert excinfo.value.messages == ["not authorized", "boom"]


@pytest.mark.parametrize(
    "payload",
    [
        "nope",
        {},
        {"data": {}},
        {"data": {"mint": None}},
        {"data": {"mint": "mint-1"}},
        {"data": {"mint": {"id": "mint-1"}}},
    ],
)
def test_malformed_payloads(payload):
    with pytest.raises(MalformedResponseError):
        parse_collection_mint(payload, "mint")
