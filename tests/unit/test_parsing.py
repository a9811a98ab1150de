import pytest

from apps.synchronizer.parsing import (
    name_from_resource,
    parse_identifier,
    resolve_object_name,
    split_batches,
    strip_comments,
)
from apps.synchronizer.resources import SqlResource
from utils.schemas import ObjectKind


@pytest.mark.parametrize(
    "sql, expected",
    [
        ("CREATE PROCEDURE dbo.Process_Users AS SELECT 1", "dbo.Process_Users"),
        ("create proc [sales].[Refresh] @Id INT AS SELECT 1", "sales.Refresh"),
        ("ALTER PROCEDURE Cleanup\nAS\nSELECT 1", "dbo.Cleanup"),
        ("CREATE OR ALTER PROCEDURE [dbo].[Process_Users]\n    @JobDetailId INT\nAS", "dbo.Process_Users"),
        ("CREATE PROCEDURE [dbo].[Nightly Cleanup] AS SELECT 1", "dbo.Nightly Cleanup"),
    ],
)
def test_resolve_procedure_name_from_header(sql, expected):
    resource = SqlResource(name="procedures.anything.sql", text=sql)
    assert resolve_object_name(resource, ObjectKind.PROCEDURE, "dbo") == expected


def test_resolve_function_and_view_names():
    fn = SqlResource(name="functions.x.sql", text="CREATE FUNCTION dbo.GetCount(@UserId INT) RETURNS INT")
    vw = SqlResource(name="views.x.sql", text="CREATE VIEW reporting.ActiveUsers AS SELECT 1 AS Id")
    assert resolve_object_name(fn, ObjectKind.FUNCTION, "dbo") == "dbo.GetCount"
    assert resolve_object_name(vw, ObjectKind.VIEW, "dbo") == "reporting.ActiveUsers"


def test_header_for_another_kind_is_not_recognized():
    resource = SqlResource(name="procedures.dbo.V.sql", text="CREATE VIEW dbo.V AS SELECT 1 AS Id")
    assert resolve_object_name(resource, ObjectKind.PROCEDURE, "dbo") is None


def test_missing_header_is_unresolvable_even_with_conventional_name():
    resource = SqlResource(name="procedures.dbo.Broken.sql", text="SELECT 1;\nGO\nDROP TABLE dbo.Users;")
    assert resolve_object_name(resource, ObjectKind.PROCEDURE, "dbo") is None


def test_header_inside_comment_is_ignored():
    sql = "-- ALTER PROCEDURE dbo.Old\n/* CREATE PROCEDURE dbo.Older */\nCREATE PROCEDURE dbo.New AS SELECT 1"
    resource = SqlResource(name="procedures.x.sql", text=sql)
    assert resolve_object_name(resource, ObjectKind.PROCEDURE, "dbo") == "dbo.New"


def test_unparseable_identifier_falls_back_to_resource_name():
    resource = SqlResource(
        name="procedures.sales.Quarterly.sql",
        text='CREATE PROCEDURE "sales"."Quarterly" AS SELECT 1',
    )
    assert resolve_object_name(resource, ObjectKind.PROCEDURE, "dbo") == "sales.Quarterly"


def test_unparseable_identifier_and_name_is_unresolvable():
    resource = SqlResource(name="procedures.notes.txt", text='CREATE PROCEDURE "odd" AS SELECT 1')
    assert resolve_object_name(resource, ObjectKind.PROCEDURE, "dbo") is None


def test_default_schema_is_applied():
    assert parse_identifier(" Process_Users AS", "app") == "app.Process_Users"
    assert parse_identifier(" [hr].[Sync](", "app") == "hr.Sync"


@pytest.mark.parametrize(
    "name, expected",
    [
        ("procedures.dbo.Process_Users.sql", "dbo.Process_Users"),
        ("procedures.Process_Users.sql", "dbo.Process_Users"),
        ("PROCEDURES.sales.Refresh.SQL", "sales.Refresh"),
        ("procedures.readme.txt", None),
        ("procedures..sql", None),
    ],
)
def test_name_from_resource(name, expected):
    resource = SqlResource(name=name, text=None)
    assert name_from_resource(resource, ObjectKind.PROCEDURE, "dbo") == expected


def test_split_batches_on_go_lines():
    sql = "CREATE VIEW a AS SELECT 1\nGO\n  go  \nCREATE VIEW b AS SELECT 2\nGo\n\nGOOD_NAME\n"
    batches = split_batches(sql)
    assert len(batches) == 3
    assert batches[0].strip() == "CREATE VIEW a AS SELECT 1"
    assert batches[1].strip() == "CREATE VIEW b AS SELECT 2"
    assert batches[2].strip() == "GOOD_NAME"


def test_split_batches_without_separator():
    assert split_batches("SELECT 1") == ["SELECT 1"]
    assert split_batches("  \nGO\n ") == []


def test_strip_comments():
    assert "CREATE" not in strip_comments("/* CREATE\nVIEW */ SELECT 1 -- CREATE")
