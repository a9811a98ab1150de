import re
from typing import Iterable

import pytest

from apps.synchronizer.resources import ResourceBundle
from utils.schemas import DatabaseObject, ObjectKind

_DDL = re.compile(
    r"(?:CREATE\s+OR\s+ALTER|CREATE|ALTER)\s+(PROC(?:EDURE)?|FUNCTION|VIEW)\s+"
    r"\[?(\w+)\]?\.\[?(\w+)\]?",
    re.IGNORECASE,
)
_KINDS = {"PROC": ObjectKind.PROCEDURE, "PROCEDURE": ObjectKind.PROCEDURE,
          "FUNCTION": ObjectKind.FUNCTION, "VIEW": ObjectKind.VIEW}


class FakeCatalog:
    """In-memory ObjectCatalog that records every statement it runs."""

    def __init__(self, existing: Iterable[tuple[ObjectKind, str]] = (), fail_on: Iterable[str] = ()) -> None:
        self.objects: dict[ObjectKind, dict[str, DatabaseObject]] = {kind: {} for kind in ObjectKind}
        self.statements: list[str] = []
        self.fail_on = list(fail_on)
        for kind, qualified in existing:
            self.add(kind, qualified)

    def add(self, kind: ObjectKind, qualified: str) -> None:
        schema, name = qualified.split(".")
        obj = DatabaseObject(schema_name=schema, name=name, kind=kind)
        self.objects[kind][obj.key] = obj

    def names(self, kind: ObjectKind) -> set[str]:
        return {obj.qualified_name for obj in self.objects[kind].values()}

    def list_objects(self, kind: ObjectKind) -> list[DatabaseObject]:
        return sorted(self.objects[kind].values(), key=lambda obj: obj.key)

    def execute(self, sql: str) -> int:
        self.statements.append(sql)
        for marker in self.fail_on:
            if marker in sql:
                raise RuntimeError(f"simulated failure: {marker}")

        match = _DDL.search(sql)
        if match:
            kind = _KINDS[match.group(1).upper()]
            self.add(kind, f"{match.group(2)}.{match.group(3)}")
        return -1

    def drop(self, obj: DatabaseObject) -> None:
        self.execute(f"DROP {obj.kind.value.upper()} {obj.qualified_name}")
        del self.objects[obj.kind][obj.key]


def procedure(name: str) -> str:
    return f"CREATE OR ALTER PROCEDURE {name}\nAS\nBEGIN\n    SELECT 1;\nEND\nGO\n"


def view(name: str) -> str:
    return f"CREATE OR ALTER VIEW {name}\nAS\nSELECT 1 AS [Id];\nGO\n"


def function(name: str) -> str:
    return f"CREATE OR ALTER FUNCTION {name} ()\nRETURNS INT\nAS\nBEGIN\n    RETURN 1;\nEND\nGO\n"


@pytest.fixture()
def fake_catalog():
    return FakeCatalog()


@pytest.fixture()
def sample_bundle():
    return (
        ResourceBundle()
        .add("procedures.dbo.Process_Users.sql", procedure("[dbo].[Process_Users]"))
        .add("functions.dbo.GetUserDashboardCount.sql", function("[dbo].[GetUserDashboardCount]"))
        .add("views.dbo.ActiveUsers.sql", view("[dbo].[ActiveUsers]"))
    )
