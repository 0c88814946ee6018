from __future__ import annotations

import pytest

from servicedb_py import NotFoundError, TransportError
from servicedb_py.mocks import ANY, FakeDynamoDBClient
from servicedb_py.schema import (
    SecondaryIndex,
    TableKeySchema,
    build_create_table_request,
    create_table,
    delete_table,
    describe_table,
    ensure_table,
    list_tables,
)
from servicedb_py.testkit import client_error, no_sleep

KEYS = TableKeySchema(partition_key="pk", sort_key="sk")


def test_build_create_table_request_for_pk_sk_table() -> None:
    req = build_create_table_request("TestTable", KEYS)

    assert req == {
        "TableName": "TestTable",
        "BillingMode": "PAY_PER_REQUEST",
        "KeySchema": [
            {"AttributeName": "pk", "KeyType": "HASH"},
            {"AttributeName": "sk", "KeyType": "RANGE"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "pk", "AttributeType": "S"},
            {"AttributeName": "sk", "AttributeType": "S"},
        ],
    }


def test_build_create_table_request_provisioned_with_gsi() -> None:
    keys = TableKeySchema(
        partition_key="pk",
        global_indexes=(
            SecondaryIndex(name="byOwner", partition_key="owner", sort_key="createdAt", sort_key_type="N"),
        ),
    )

    req = build_create_table_request(
        "TestTable",
        keys,
        billing_mode="PROVISIONED",
        provisioned_throughput={"ReadCapacityUnits": 10, "WriteCapacityUnits": 10},
    )

    assert req["KeySchema"] == [{"AttributeName": "pk", "KeyType": "HASH"}]
    assert req["ProvisionedThroughput"] == {"ReadCapacityUnits": 10, "WriteCapacityUnits": 10}
    assert req["AttributeDefinitions"] == [
        {"AttributeName": "createdAt", "AttributeType": "N"},
        {"AttributeName": "owner", "AttributeType": "S"},
        {"AttributeName": "pk", "AttributeType": "S"},
    ]
    (gsi,) = req["GlobalSecondaryIndexes"]
    assert gsi["IndexName"] == "byOwner"
    assert gsi["Projection"] == {"ProjectionType": "ALL"}
    assert gsi["ProvisionedThroughput"] == {"ReadCapacityUnits": 10, "WriteCapacityUnits": 10}


def test_build_create_table_request_validation() -> None:
    with pytest.raises(ValueError, match="table_name is required"):
        build_create_table_request("", KEYS)
    with pytest.raises(ValueError, match="unsupported billing_mode"):
        build_create_table_request("t", KEYS, billing_mode="FREE")
    with pytest.raises(ValueError, match="provisioned_throughput is required"):
        build_create_table_request("t", KEYS, billing_mode="PROVISIONED")
    with pytest.raises(ValueError, match="must be S/N/B"):
        build_create_table_request("t", TableKeySchema(partition_key="pk", partition_key_type="BOOL"))
    with pytest.raises(ValueError, match="conflicting types"):
        build_create_table_request(
            "t",
            TableKeySchema(
                partition_key="pk",
                global_indexes=(SecondaryIndex(name="g", partition_key="pk", partition_key_type="N"),),
            ),
        )
    with pytest.raises(ValueError, match="duplicate index name"):
        build_create_table_request(
            "t",
            TableKeySchema(
                partition_key="pk",
                global_indexes=(
                    SecondaryIndex(name="g", partition_key="a"),
                    SecondaryIndex(name="g", partition_key="b"),
                ),
            ),
        )


def test_create_table_waits_for_active() -> None:
    client = FakeDynamoDBClient()
    client.expect("create_table", {"TableName": "TestTable", "KeySchema": ANY})
    client.expect("describe_table", error=client_error("ResourceNotFoundException"))
    client.expect("describe_table", response={"Table": {"TableStatus": "CREATING"}})
    client.expect("describe_table", response={"Table": {"TableStatus": "ACTIVE"}})

    create_table("TestTable", KEYS, client=client, sleep=no_sleep)
    client.assert_no_pending()


def test_create_table_tolerates_existing_table_and_maps_other_errors() -> None:
    client = FakeDynamoDBClient()
    client.expect("create_table", error=client_error("ResourceInUseException"))
    create_table("TestTable", KEYS, client=client, wait_for_active=False)

    client.expect("create_table", error=client_error("LimitExceededException", "too many"))
    with pytest.raises(TransportError, match="too many"):
        create_table("TestTable", KEYS, client=client, wait_for_active=False)
    client.assert_no_pending()


def test_create_table_times_out() -> None:
    client = FakeDynamoDBClient()
    client.expect("create_table")

    with pytest.raises(TransportError, match="timed out waiting for table ACTIVE"):
        create_table("TestTable", KEYS, client=client, wait_timeout_seconds=0.0, sleep=no_sleep)


def test_ensure_table_creates_missing_table() -> None:
    client = FakeDynamoDBClient()
    client.expect("describe_table", error=client_error("ResourceNotFoundException"))
    client.expect("create_table", {"TableName": "TestTable"})

    ensure_table("TestTable", KEYS, client=client, wait_for_active=False)
    client.assert_no_pending()


def test_ensure_table_waits_for_existing_table() -> None:
    client = FakeDynamoDBClient()
    client.expect("describe_table", response={"Table": {"TableStatus": "UPDATING"}})
    client.expect("describe_table", response={"Table": {"TableStatus": "ACTIVE"}})

    ensure_table("TestTable", KEYS, client=client, sleep=no_sleep)
    client.assert_no_pending()


def test_describe_table_and_list_tables() -> None:
    client = FakeDynamoDBClient()
    client.expect("describe_table", {"TableName": "TestTable"}, response={"Table": {"TableName": "TestTable"}})
    client.expect("list_tables", response={"TableNames": ["TestTable"]})
    client.expect("describe_table", error=client_error("ResourceNotFoundException", "missing"))

    assert describe_table("TestTable", client=client)["Table"] == {"TableName": "TestTable"}
    assert list_tables(client=client) == ("TestTable",)
    with pytest.raises(NotFoundError):
        describe_table("TestTable", client=client)


def test_delete_table_waits_and_can_ignore_missing() -> None:
    client = FakeDynamoDBClient()
    client.expect("delete_table", {"TableName": "TestTable"})
    client.expect("describe_table", response={"Table": {"TableStatus": "DELETING"}})
    client.expect("describe_table", error=client_error("ResourceNotFoundException"))
    delete_table("TestTable", client=client, sleep=no_sleep)

    client.expect("delete_table", error=client_error("ResourceNotFoundException"))
    delete_table("TestTable", client=client, ignore_missing=True)

    client.expect("delete_table", error=client_error("ResourceNotFoundException"))
    with pytest.raises(NotFoundError):
        delete_table("TestTable", client=client)
    client.assert_no_pending()
