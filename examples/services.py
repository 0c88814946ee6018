from __future__ import annotations

from pydantic import BaseModel, field_validator

from servicedb_py import BaseService, ClientOptions, DataOperations, ServiceOptions, create_service


class User(BaseModel):
    pk: str
    sk: str = " "
    name: str | None = None

    @field_validator("pk")
    @classmethod
    def _user_key(cls, value: str) -> str:
        if not value.startswith("USER#") or value == "USER#":
            raise ValueError("pk must look like USER#<id>")
        return value


class Book(BaseModel):
    pk: str
    sk: str
    title: str


class UserService(BaseService[User]):
    def rename(self, user_id: str, name: str) -> User | None:
        return self.update(
            {"pk": f"USER#{user_id}", "sk": " "},
            {"name": name},
            condition_expression="attribute_exists(#pk)",
            expression_attribute_names={"#pk": "pk"},
        )


def books_for(books: DataOperations[Book], user_id: str) -> list[Book]:
    return books.query(
        "#pk = :pk",
        expression_attribute_names={"#pk": "pk"},
        expression_attribute_values={":pk": f"USER#{user_id}"},
    )


options = ServiceOptions(table="MyTable", client=ClientOptions(region_name="us-east-1"))

users = create_service(User, options, UserService).service
books = create_service(Book, options).service
