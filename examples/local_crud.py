from __future__ import annotations

import uuid

from pydantic import BaseModel

from servicedb_py import BaseService, ClientOptions, ServiceOptions
from servicedb_py.log import configure_logging, log_call_metric
from servicedb_py.runtime import create_dynamodb_client
from servicedb_py.schema import TableKeySchema, create_table, delete_table


class Note(BaseModel):
    pk: str
    sk: str
    value: int
    meta: dict[str, str] = {}


def main() -> None:
    configure_logging("DEBUG")

    options = ClientOptions.from_env()
    client = create_dynamodb_client(options, metrics=log_call_metric)
    table_name = f"servicedb_py_example_{uuid.uuid4().hex[:12]}"
    create_table(table_name, TableKeySchema(partition_key="pk", sort_key="sk"), client=client)

    try:
        notes = BaseService(Note, ServiceOptions(table=table_name, client=options), client=client)

        notes.put(Note(pk="A", sk="001", value=1, meta={"owner": "alice"}))
        notes.put(Note(pk="A", sk="010", value=10))
        notes.put(Note(pk="A", sk="100", value=100))

        print("get:", notes.get({"pk": "A", "sk": "010"}))
        print("update:", notes.update({"pk": "A", "sk": "001"}, {"value": 2, "meta.owner": "bob"}))

        items = notes.query(
            "#pk = :pk AND begins_with(#sk, :prefix)",
            expression_attribute_names={"#pk": "pk", "#sk": "sk"},
            expression_attribute_values={":pk": "A", ":prefix": "0"},
        )
        print("query begins_with('0'):", items)
        print("delete:", notes.delete({"pk": "A", "sk": "100"}))
    finally:
        delete_table(table_name, client=client)


if __name__ == "__main__":
    main()
