"""Reconciler that copies a ConfigMap from one namespace to another."""

import copy
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from configmapsync.types import (
    Condition,
    ConditionStatus,
    ConfigMap,
    ConfigMapSync,
    NamespacedName,
    ObjectMeta,
    set_status_condition,
)

logger = logging.getLogger(__name__)

CONFIG_MAP_SYNC_FINALIZER = "configmapsync.apps.kapendra.com/finalizer"
TYPE_SYNCED = "Synced"
TYPE_SOURCE_AVAILABLE = "SourceAvailable"
TYPE_READY = "Ready"

LABEL_SYNC_NAME = "configmapsync.apps.kapendra.com/sync-name"
LABEL_SYNC_NAMESPACE = "configmapsync.apps.kapendra.com/sync-namespace"
LABEL_MANAGED_BY = "configmapsync.apps.kapendra.com/managed-by"
MANAGER_NAME = "configmapsync-controller"
ANNOTATION_SOURCE_HASH = "configmapsync.apps.kapendra.com/source-hash"
ANNOTATION_LAST_SYNC = "configmapsync.apps.kapendra.com/last-sync"

SOURCE_MISSING_REQUEUE = timedelta(minutes=5)
SOURCE_ERROR_BASE_DELAY = timedelta(seconds=30)
DESTINATION_ERROR_BASE_DELAY = timedelta(minutes=1)
MAX_BACKOFF = timedelta(minutes=10)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _rfc3339(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class NotFoundError(LookupError):
    """Raised when a requested object does not exist."""

    def __init__(self, kind: str, key: NamespacedName):
        super().__init__(f"{kind} {key} not found")
        self.kind = kind
        self.key = key


class KubeClient:
    """In-memory object store following the API server's rules for
    finalizers and the status subresource."""

    def __init__(self, clock: Clock | None = None):
        self._objects: dict[tuple[str, NamespacedName], Any] = {}
        self._clock = clock or _utcnow

    def _require(self, kind: str, key: NamespacedName) -> Any:
        try:
            return self._objects[(kind, key)]
        except KeyError:
            raise NotFoundError(kind, key) from None

    def get(self, kind: str, key: NamespacedName) -> Any:
        return copy.deepcopy(self._require(kind, key))

    def create(self, obj: Any) -> None:
        ident = (obj.kind, obj.metadata.key)
        if ident in self._objects:
            raise ValueError(f"{obj.kind} {obj.metadata.key} already exists")
        self._objects[ident] = copy.deepcopy(obj)

    def update(self, obj: Any) -> None:
        stored = self._require(obj.kind, obj.metadata.key)
        new = copy.deepcopy(obj)
        new.metadata.deletion_timestamp = stored.metadata.deletion_timestamp
        if hasattr(stored, "status"):
            new.status = copy.deepcopy(stored.status)
        if new.metadata.deletion_timestamp is not None and not new.metadata.finalizers:
            del self._objects[(obj.kind, obj.metadata.key)]
            return
        self._objects[(obj.kind, obj.metadata.key)] = new

    def delete(self, obj: Any) -> None:
        stored = self._require(obj.kind, obj.metadata.key)
        if stored.metadata.finalizers:
            if stored.metadata.deletion_timestamp is None:
                stored.metadata.deletion_timestamp = self._clock()
            return
        del self._objects[(obj.kind, obj.metadata.key)]

    def update_status(self, obj: Any) -> None:
        stored = self._require(obj.kind, obj.metadata.key)
        if not hasattr(stored, "status"):
            raise TypeError(f"{obj.kind} has no status subresource")
        stored.status = copy.deepcopy(obj.status)


@dataclass(frozen=True)
class Request:
    """Names the object to reconcile."""

    namespaced_name: NamespacedName


@dataclass(frozen=True)
class Result:
    """Outcome of a reconciliation; a zero delay means no requeue."""

    requeue_after: timedelta = timedelta(0)


class ConfigMapSyncReconciler:
    """Keeps a destination ConfigMap in step with its source, one way."""

    def __init__(self, client: KubeClient, clock: Clock | None = None):
        self.client = client
        self._clock = clock or _utcnow

    def reconcile(self, request: Request) -> Result:
        try:
            config_map_sync = self.client.get(ConfigMapSync.kind, request.namespaced_name)
        except NotFoundError:
            logger.error("Failed to fetch ConfigMapSync resource %s", request.namespaced_name)
            return Result()

        if config_map_sync.metadata.deletion_timestamp is not None:
            return self._finalize(config_map_sync)

        if not config_map_sync.metadata.contains_finalizer(CONFIG_MAP_SYNC_FINALIZER):
            logger.info("Adding Finalizer to ConfigMapSync")
            config_map_sync.metadata.add_finalizer(CONFIG_MAP_SYNC_FINALIZER)
            self.client.update(config_map_sync)
            return Result()

        spec = config_map_sync.spec
        status = config_map_sync.status
        logger.info(
            "Processing ConfigMapSync sourceNamespace=%s destinationNamespace=%s configMapName=%s",
            spec.source_namespace, spec.destination_namespace, spec.config_map_name,
        )

        source_key = NamespacedName(spec.source_namespace, spec.config_map_name)
        try:
            source = self.client.get(ConfigMap.kind, source_key)
        except NotFoundError:
            logger.info("Source ConfigMap not found, skipping sync sourceKey=%s", source_key)
            status.sync_status = "Failed"
            status.message = "Source ConfigMap not found"
            status.source_exists = False
            status.destination_exists = False
            status.last_sync_time = _rfc3339(self._clock())
            self._write_status(config_map_sync)
            return Result(requeue_after=SOURCE_MISSING_REQUEUE)
        except Exception as exc:
            status.retry_count += 1
            delay = self.calculate_backoff_duration(status.retry_count, SOURCE_ERROR_BASE_DELAY)
            logger.error(
                "Failed to fetch source ConfigMap, retrying with backoff "
                "sourceKey=%s retryCount=%d retryAfter=%s: %s",
                source_key, status.retry_count, delay, exc,
            )
            self.set_condition(config_map_sync, TYPE_SYNCED, ConditionStatus.FALSE,
                               "SyncFailed", "Failed to fetch source ConfigMap")
            self.set_condition(config_map_sync, TYPE_SOURCE_AVAILABLE, ConditionStatus.FALSE,
                               "FetchError", "Error accessing source ConfigMap")
            self.set_condition(config_map_sync, TYPE_READY, ConditionStatus.FALSE,
                               "NotReady", "Source ConfigMap fetch failed")
            status.sync_status = "Failed"
            status.message = "Failed to fetch source ConfigMap"
            status.source_exists = False
            status.destination_exists = False
            status.last_sync_time = _rfc3339(self._clock())
            self._write_status(config_map_sync)
            return Result(requeue_after=delay)

        logger.info("Source ConfigMap fetched successfully sourceKey=%s dataKeys=%d",
                    source_key, len(source.data))

        destination_key = NamespacedName(spec.destination_namespace, spec.config_map_name)
        source_hash = self.calculate_source_hash(source.data)
        try:
            existing = self.client.get(ConfigMap.kind, destination_key)
        except NotFoundError:
            logger.info("Destination ConfigMap not found, creating new one destinationKey=%s",
                        destination_key)
            destination = ConfigMap(
                metadata=ObjectMeta(
                    name=spec.config_map_name,
                    namespace=spec.destination_namespace,
                    labels={
                        LABEL_SYNC_NAME: config_map_sync.metadata.name,
                        LABEL_SYNC_NAMESPACE: config_map_sync.metadata.namespace,
                        LABEL_MANAGED_BY: MANAGER_NAME,
                    },
                    annotations={
                        ANNOTATION_SOURCE_HASH: source_hash,
                        ANNOTATION_LAST_SYNC: _rfc3339(self._clock()),
                    },
                ),
                data=dict(source.data),
            )
            try:
                self.client.create(destination)
            except Exception as exc:
                return self._destination_failure(config_map_sync, "create", destination_key, exc)
            logger.info("Destination ConfigMap created successfully destinationKey=%s", destination_key)
        else:
            logger.info("Destination ConfigMap found, updating with source data destinationKey=%s",
                        destination_key)
            existing.data = dict(source.data)
            existing.metadata.annotations[ANNOTATION_SOURCE_HASH] = source_hash
            existing.metadata.annotations[ANNOTATION_LAST_SYNC] = _rfc3339(self._clock())
            try:
                self.client.update(existing)
            except Exception as exc:
                return self._destination_failure(config_map_sync, "update", destination_key, exc)
            logger.info("Destination ConfigMap updated successfully destinationKey=%s", destination_key)

        status.retry_count = 0
        status.last_sync_time = _rfc3339(self._clock())
        self.set_condition(config_map_sync, TYPE_SYNCED, ConditionStatus.TRUE,
                           "SyncSucceeded", "ConfigMap synced successfully")
        self.set_condition(config_map_sync, TYPE_SOURCE_AVAILABLE, ConditionStatus.TRUE,
                           "SourceFound", "Source ConfigMap exists and accessible")
        self.set_condition(config_map_sync, TYPE_READY, ConditionStatus.TRUE,
                           "AllComponentsReady", "All sync components are functioning properly")
        status.sync_status = "Success"
        status.message = "ConfigMap synced successfully"
        status.source_exists = True
        status.destination_exists = True
        self._write_status(config_map_sync)

        logger.info("ConfigMap sync completed successfully sourceKey=%s destinationKey=%s",
                    source_key, destination_key)
        return Result()

    def _finalize(self, config_map_sync: ConfigMapSync) -> Result:
        logger.info("ConfigMapSync is being deleted, starting cleanup")
        spec = config_map_sync.spec
        destination_key = NamespacedName(spec.destination_namespace, spec.config_map_name)
        try:
            destination = self.client.get(ConfigMap.kind, destination_key)
        except NotFoundError:
            logger.info("Destination ConfigMap not found, skipping cleanup")
        except Exception as exc:
            logger.error("Failed to fetch destination ConfigMap during cleanup: %s", exc)
        else:
            logger.info("Destination ConfigMap found and deleting it")
            self.client.delete(destination)
            logger.info("Destination ConfigMap deleted successfully")

        logger.info("Removing configmapsync finalizer")
        config_map_sync.metadata.remove_finalizer(CONFIG_MAP_SYNC_FINALIZER)
        self.client.update(config_map_sync)
        logger.info("ConfigMapSync finalizer removed successfully")
        return Result()

    def _destination_failure(self, config_map_sync: ConfigMapSync, action: str,
                             destination_key: NamespacedName, exc: Exception) -> Result:
        status = config_map_sync.status
        status.retry_count += 1
        delay = self.calculate_backoff_duration(status.retry_count, DESTINATION_ERROR_BASE_DELAY)
        logger.error(
            "Failed to %s destination ConfigMap, retrying with backoff "
            "destinationKey=%s retryCount=%d retryAfter=%s: %s",
            action, destination_key, status.retry_count, delay, exc,
        )
        return Result(requeue_after=delay)

    def _write_status(self, config_map_sync: ConfigMapSync) -> None:
        try:
            self.client.update_status(config_map_sync)
        except Exception as exc:
            logger.error("Failed to update ConfigMapSync status: %s", exc)

    def set_condition(self, config_map_sync: ConfigMapSync, condition_type: str,
                      status: ConditionStatus, reason: str, message: str) -> None:
        condition = Condition(
            type=condition_type,
            status=status,
            reason=reason,
            message=message,
            last_transition_time=self._clock(),
        )
        set_status_condition(config_map_sync.status.conditions, condition)

    def calculate_backoff_duration(self, retry_count: int, base_delay: timedelta) -> timedelta:
        if retry_count == 0:
            return base_delay
        return min(base_delay * (1 << retry_count), MAX_BACKOFF)

    def calculate_source_hash(self, source_data: dict[str, str]) -> str:
        rendered = " ".join(f"{key}:{source_data[key]}" for key in sorted(source_data))
        return hashlib.sha256(f"map[{rendered}]".encode()).hexdigest()