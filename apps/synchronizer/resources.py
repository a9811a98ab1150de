"""
SQL Resource Bundle

Named SQL text resources bundled with the application. A bundle is an
explicit, ordered registry: resources are added by direct calls, loaded from
a directory, or loaded from package data.

Resource names are dotted paths relative to the bundle root, e.g.
`procedures.dbo.Process_Users.sql` for `procedures/dbo.Process_Users.sql`.
"""

import logging
from dataclasses import dataclass
from importlib import resources as importlib_resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Iterator, Optional

from utils.errors import ConfigurationError
from utils.schemas import ObjectKind

logger = logging.getLogger(__name__)

SQL_SUFFIX = ".sql"


@dataclass(frozen=True)
class SqlResource:
    """A named SQL script. `text` is None when the body could not be loaded."""

    name: str
    text: Optional[str]

    @property
    def is_blank(self) -> bool:
        return self.text is None or not self.text.strip()

    def local_name(self, kind: ObjectKind) -> str:
        """Resource name with the kind's folder prefix removed."""
        prefix = f"{kind.folder}."
        if self.name.casefold().startswith(prefix):
            return self.name[len(prefix):]
        return self.name


def _decode(data: bytes) -> str:
    # utf-8-sig drops the BOM SSMS writes by default
    return data.decode("utf-8-sig")


class ResourceBundle:
    """Ordered registry of SQL resources keyed case-insensitively by name."""

    def __init__(self, resources: Optional[list[SqlResource]] = None) -> None:
        self._resources: dict[str, SqlResource] = {}
        for resource in resources or []:
            self._register(resource)

    def _register(self, resource: SqlResource) -> None:
        key = resource.name.casefold()
        if key in self._resources:
            raise ConfigurationError(f"Duplicate SQL resource name: {resource.name}")
        self._resources[key] = resource

    def add(self, name: str, text: Optional[str]) -> "ResourceBundle":
        """Register a resource. Returns the bundle so calls can be chained."""
        if not name or not name.strip():
            raise ConfigurationError("SQL resource name must be a non-empty string")
        self._register(SqlResource(name=name.strip(), text=text))
        return self

    def add_file(self, path: str | Path, name: Optional[str] = None) -> "ResourceBundle":
        """Register a file; an unreadable file is kept as a missing resource."""
        file_path = Path(path)
        text: Optional[str] = None
        try:
            text = _decode(file_path.read_bytes())
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read SQL resource: path=%s, error=%s", str(file_path), str(e))
        return self.add(name or file_path.name, text)

    @classmethod
    def from_directory(cls, root: str | Path) -> "ResourceBundle":
        """
        Load every *.sql file below a directory.

        Raises:
            ConfigurationError: If the directory does not exist
        """
        root_path = Path(root)
        if not root_path.is_dir():
            raise ConfigurationError(f"SQL resources directory not found: {root}")

        bundle = cls()
        for file_path in sorted(root_path.rglob("*")):
            if file_path.is_file() and file_path.name.lower().endswith(SQL_SUFFIX):
                name = ".".join(file_path.relative_to(root_path).parts)
                bundle.add_file(file_path, name=name)

        logger.info("Loaded SQL resources: dir=%s, count=%d", str(root_path), len(bundle))
        return bundle

    @classmethod
    def from_package(cls, package: str) -> "ResourceBundle":
        """
        Load every *.sql file shipped as package data.

        Raises:
            ConfigurationError: If the package cannot be imported
        """
        try:
            root = importlib_resources.files(package)
        except ModuleNotFoundError as e:
            raise ConfigurationError(f"SQL resources package not found: {package}") from e

        bundle = cls()
        for parts, entry in sorted(_walk(root, ()), key=lambda item: item[0]):
            name = ".".join(parts)
            try:
                text: Optional[str] = _decode(entry.read_bytes())
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Could not read SQL resource: name=%s, error=%s", name, str(e))
                text = None
            bundle.add(name, text)

        logger.info("Loaded SQL resources: package=%s, count=%d", package, len(bundle))
        return bundle

    def for_kind(self, kind: ObjectKind) -> list[SqlResource]:
        """Resources under the kind's folder, sorted by name."""
        prefix = f"{kind.folder}."
        selected = [
            resource
            for key, resource in self._resources.items()
            if key.startswith(prefix) and key.endswith(SQL_SUFFIX)
        ]
        return sorted(selected, key=lambda resource: resource.name)

    def names(self) -> list[str]:
        return [resource.name for resource in self._resources.values()]

    def __len__(self) -> int:
        return len(self._resources)

    def __iter__(self) -> Iterator[SqlResource]:
        return iter(self._resources.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.casefold() in self._resources


def _walk(node: Traversable, parts: tuple[str, ...]) -> Iterator[tuple[tuple[str, ...], Traversable]]:
    for entry in node.iterdir():
        if entry.is_dir():
            if entry.name != "__pycache__":
                yield from _walk(entry, parts + (entry.name,))
        elif entry.name.lower().endswith(SQL_SUFFIX):
            yield parts + (entry.name,), entry
