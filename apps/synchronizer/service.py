"""
SQL Object Synchronizer - Reconcile Bundled SQL Objects With the Catalog

For each object kind (procedures, functions, views) a sync run:
1. Resolves the target `schema.name` of every bundled resource
2. Reads the existing user-defined objects of that kind from the catalog
3. Drops existing objects with no matching resource
4. Executes every resource, GO batch by GO batch, counting it as altered when
   the object existed before the run and created otherwise

Failures of a single drop or resource are logged and counted; the run moves
on to the next object. There is no enclosing transaction: each statement
commits on its own, so a partial failure leaves earlier statements applied.

Usage:
    from apps.synchronizer.service import sync_sql_objects

    result = sync_sql_objects(engine, ResourceBundle.from_package("apps.synchronizer.sql"))
    if result.errors:
        raise SyncFailedError(...)
"""

import threading
import time
from typing import Optional

from apps.synchronizer.catalog import ObjectCatalog, SqlServerCatalog
from apps.synchronizer.parsing import name_from_resource, resolve_object_name, split_batches
from apps.synchronizer.resources import ResourceBundle, SqlResource
from utils.config import settings
from utils.db import Bind, ensure_supported_backend, get_conn
from utils.errors import ConfigurationError, SyncCancelledError
from utils.logging import get_logger
from utils.schemas import ObjectKind, SyncResult

logger = get_logger(__name__)

SYNC_ORDER = (ObjectKind.PROCEDURE, ObjectKind.FUNCTION, ObjectKind.VIEW)


class SqlObjectSynchronizer:
    """
    Reconciles a ResourceBundle with an ObjectCatalog.

    Handles:
    - Name resolution from DDL headers with a resource-name fallback
    - Drop phase for objects missing from the bundle
    - Create/alter phase for every bundled resource
    - Cancellation between statements
    """

    def __init__(
        self,
        catalog: ObjectCatalog,
        bundle: ResourceBundle,
        default_schema: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """
        Initialize synchronizer.

        Args:
            catalog: Catalog query and statement execution primitives
            bundle: SQL resources to deploy
            default_schema: Schema for unqualified names, defaults to settings.SQL_DEFAULT_SCHEMA
            cancel_event: When set, the run stops before its next statement
        """
        if catalog is None:
            raise ConfigurationError("A database catalog is required")
        if bundle is None:
            raise ConfigurationError("A SQL resource bundle is required")

        self.catalog = catalog
        self.bundle = bundle
        self.default_schema = default_schema or settings.SQL_DEFAULT_SCHEMA
        self.cancel_event = cancel_event or threading.Event()

    def _check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise SyncCancelledError("SQL object synchronization cancelled")

    def sync_all(self) -> SyncResult:
        """Sync procedures, functions and views; return the combined counters."""
        total = SyncResult()
        for result in self.sync_each():
            total.add(result)
        return total

    def sync_each(self) -> list[SyncResult]:
        """Sync every kind in order; return one result per kind."""
        start_time = time.time()
        logger.info("Starting database object synchronization (procedures, functions, views)")

        results = [self.sync_kind(kind) for kind in SYNC_ORDER]

        total = SyncResult()
        for result in results:
            total.add(result)

        logger.info(
            "Database object synchronization completed. Total - %s, elapsed=%.3fs",
            total.summary(), time.time() - start_time,
        )
        return results

    def sync_procedures(self) -> SyncResult:
        return self.sync_kind(ObjectKind.PROCEDURE)

    def sync_functions(self) -> SyncResult:
        return self.sync_kind(ObjectKind.FUNCTION)

    def sync_views(self) -> SyncResult:
        return self.sync_kind(ObjectKind.VIEW)

    def sync_kind(self, kind: ObjectKind) -> SyncResult:
        """
        Reconcile one object kind.

        Raises:
            SyncCancelledError: If cancellation is requested mid-run
            Exception: If the catalog query itself fails
        """
        result = SyncResult(kind=kind)
        resources = self.bundle.for_kind(kind)

        logger.info("Starting %s synchronization: resources=%d", kind.value, len(resources))

        targets = [(resource, self._target_name(resource, kind)) for resource in resources]
        # Resources that cannot be applied still keep their named object out of the drop phase
        desired = set()
        for resource, target in targets:
            name = target or name_from_resource(resource, kind, self.default_schema)
            if name:
                desired.add(name.casefold())

        self._check_cancelled()
        try:
            existing = self.catalog.list_objects(kind)
        except Exception as e:
            logger.error("Error during %s synchronization: %s", kind.value, str(e), exc_info=True)
            raise

        # Snapshot taken before any drop; decides created vs altered
        existing_keys = {obj.key for obj in existing}

        for obj in existing:
            if obj.key in desired:
                continue

            self._check_cancelled()
            try:
                self.catalog.drop(obj)
            except Exception as e:
                result.errors += 1
                logger.error(
                    "Error dropping %s: %s, error=%s",
                    kind.value, obj.qualified_name, str(e),
                    exc_info=True,
                )
                continue

            result.dropped += 1
            logger.info("Dropped %s: %s", kind.value, obj.qualified_name)

        for resource, name in targets:
            self._check_cancelled()

            if resource.is_blank:
                logger.warning("SQL resource is missing or empty, skipping: %s", resource.name)
                continue

            if name is None:
                result.errors += 1
                logger.warning("Could not extract %s name from resource: %s", kind.value, resource.name)
                continue

            try:
                self._apply(resource)
            except SyncCancelledError:
                raise
            except Exception as e:
                result.errors += 1
                logger.error(
                    "Error executing SQL resource: %s, error=%s",
                    resource.name, str(e),
                    exc_info=True,
                )
                continue

            if name.casefold() in existing_keys:
                result.altered += 1
                logger.info("Altered %s: %s from resource: %s", kind.value, name, resource.name)
            else:
                result.created += 1
                logger.info("Created %s: %s from resource: %s", kind.value, name, resource.name)

        logger.info("%s synchronization completed. %s", kind.plural.capitalize(), result.summary())
        return result

    def _target_name(self, resource: SqlResource, kind: ObjectKind) -> Optional[str]:
        if resource.is_blank:
            return None
        return resolve_object_name(resource, kind, self.default_schema)

    def _apply(self, resource: SqlResource) -> None:
        for batch in split_batches(resource.text or ""):
            self._check_cancelled()
            self.catalog.execute(batch)


def sync_sql_objects(
    bind: Optional[Bind],
    bundle: Optional[ResourceBundle] = None,
    default_schema: Optional[str] = None,
    cancel_event: Optional[threading.Event] = None,
) -> SyncResult:
    """
    Synchronize procedures, functions and views against a SQL Server database.

    Args:
        bind: Engine (a connection is opened and closed here) or open Connection (left open)
        bundle: Resources to deploy, defaults to the configured bundle
        default_schema: Schema for unqualified names
        cancel_event: Cancellation signal, honoured between statements

    Returns:
        Combined SyncResult over all kinds

    Raises:
        ConfigurationError: If bind is missing or not SQL Server
    """
    return sum(
        sync_sql_objects_by_kind(bind, bundle, default_schema, cancel_event),
        SyncResult(),
    )


def sync_sql_objects_by_kind(
    bind: Optional[Bind],
    bundle: Optional[ResourceBundle] = None,
    default_schema: Optional[str] = None,
    cancel_event: Optional[threading.Event] = None,
) -> list[SyncResult]:
    """Same as sync_sql_objects, returning one SyncResult per kind."""
    ensure_supported_backend(bind)
    if bundle is None:
        bundle = load_configured_bundle()

    with get_conn(bind) as conn:
        synchronizer = SqlObjectSynchronizer(
            SqlServerCatalog(conn),
            bundle,
            default_schema=default_schema,
            cancel_event=cancel_event,
        )
        return synchronizer.sync_each()


def load_configured_bundle() -> ResourceBundle:
    """Bundle from SQL_RESOURCES_DIR when set, else from SQL_RESOURCES_PACKAGE."""
    if settings.SQL_RESOURCES_DIR:
        return ResourceBundle.from_directory(settings.SQL_RESOURCES_DIR)
    return ResourceBundle.from_package(settings.SQL_RESOURCES_PACKAGE)
