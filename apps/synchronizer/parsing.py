"""
DDL text helpers: object header parsing and batch splitting.
"""

import re
from typing import Optional

from apps.synchronizer.resources import SqlResource
from utils.schemas import ObjectKind

_KIND_KEYWORDS = {
    ObjectKind.PROCEDURE: r"PROC(?:EDURE)?",
    ObjectKind.FUNCTION: r"FUNCTION",
    ObjectKind.VIEW: r"VIEW",
}

_HEADER_PATTERNS = {
    kind: re.compile(
        r"(?<![\w@#$])(?:CREATE\s+OR\s+ALTER|CREATE|ALTER)\s+" + keyword + r"\b",
        re.IGNORECASE,
    )
    for kind, keyword in _KIND_KEYWORDS.items()
}


def _part(group: str) -> str:
    return rf"(?:\[(?P<{group}_q>[^\]\r\n]+)\]|(?P<{group}_w>\w+))"


_IDENTIFIER = re.compile(
    r"\s*" + _part("first") + r"(?:\s*\.\s*" + _part("second") + r")?(?=[\s(;,]|\Z)"
)

_COMMENTS = re.compile(r"--[^\n]*|/\*.*?\*/", re.DOTALL)

# A line holding only the GO batch directive
_BATCH_SEPARATOR = re.compile(r"^\s*GO\s*$", re.IGNORECASE | re.MULTILINE)


def strip_comments(sql: str) -> str:
    return _COMMENTS.sub(" ", sql)


def parse_identifier(text: str, default_schema: str) -> Optional[str]:
    """Parse `[schema.]name` at the start of text into `schema.name`."""
    match = _IDENTIFIER.match(text)
    if match is None:
        return None

    first = match.group("first_q") or match.group("first_w")
    second = match.group("second_q") or match.group("second_w")
    if second:
        return f"{first}.{second}"
    return f"{default_schema}.{first}"


def name_from_resource(resource: SqlResource, kind: ObjectKind, default_schema: str) -> Optional[str]:
    """
    Derive `schema.name` from the resource naming convention.

    `dbo.Process_Users.sql` gives `dbo.Process_Users`, `Process_Users.sql`
    gives `<default_schema>.Process_Users`.
    """
    parts = resource.local_name(kind).split(".")
    if len(parts) < 2 or parts[-1].lower() != "sql" or not all(parts[:-1]):
        return None
    if len(parts) >= 3:
        return f"{parts[-3]}.{parts[-2]}"
    return f"{default_schema}.{parts[-2]}"


def resolve_object_name(resource: SqlResource, kind: ObjectKind, default_schema: str) -> Optional[str]:
    """
    Target identifier for a resource, or None when it cannot be determined.

    The DDL must carry a CREATE/ALTER header for the kind. When the identifier
    after the header cannot be parsed, the resource name is used instead.
    """
    if resource.text is None:
        return None

    sql = strip_comments(resource.text)
    header = _HEADER_PATTERNS[kind].search(sql)
    if header is None:
        return None

    return parse_identifier(sql[header.end():], default_schema) or name_from_resource(
        resource, kind, default_schema
    )


def split_batches(sql: str) -> list[str]:
    """Split a script on GO lines, dropping blank batches."""
    return [batch for batch in _BATCH_SEPARATOR.split(sql) if batch.strip()]
