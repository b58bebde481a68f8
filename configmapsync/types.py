"""Resource types of the apps.kapendra.com/v1 API group."""

import dataclasses
import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar


@dataclass(frozen=True)
class GroupVersion:
    """An API group together with its version."""

    group: str
    version: str

    def __str__(self) -> str:
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"


GROUP_VERSION = GroupVersion(group="apps.kapendra.com", version="v1")


@dataclass(frozen=True)
class NamespacedName:
    """Identifies an object by namespace and name."""

    namespace: str = ""
    name: str = ""

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


def _format_time(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass
class ObjectMeta:
    """Standard object metadata."""

    name: str = ""
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    finalizers: list[str] = field(default_factory=list)
    deletion_timestamp: datetime | None = None

    @property
    def key(self) -> NamespacedName:
        return NamespacedName(namespace=self.namespace, name=self.name)

    def contains_finalizer(self, finalizer: str) -> bool:
        return finalizer in self.finalizers

    def add_finalizer(self, finalizer: str) -> bool:
        """Add the finalizer if absent; return whether anything changed."""
        if finalizer in self.finalizers:
            return False
        self.finalizers.append(finalizer)
        return True

    def remove_finalizer(self, finalizer: str) -> bool:
        """Remove every occurrence of the finalizer; return whether anything changed."""
        remaining = [f for f in self.finalizers if f != finalizer]
        changed = len(remaining) != len(self.finalizers)
        self.finalizers = remaining
        return changed


def _meta_to_dict(meta: ObjectMeta) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if meta.name:
        out["name"] = meta.name
    if meta.namespace:
        out["namespace"] = meta.namespace
    if meta.labels:
        out["labels"] = dict(meta.labels)
    if meta.annotations:
        out["annotations"] = dict(meta.annotations)
    if meta.finalizers:
        out["finalizers"] = list(meta.finalizers)
    if meta.deletion_timestamp is not None:
        out["deletionTimestamp"] = _format_time(meta.deletion_timestamp)
    return out


def _meta_from_dict(data: dict[str, Any]) -> ObjectMeta:
    return ObjectMeta(
        name=data.get("name", ""),
        namespace=data.get("namespace", ""),
        labels=dict(data.get("labels") or {}),
        annotations=dict(data.get("annotations") or {}),
        finalizers=list(data.get("finalizers") or []),
        deletion_timestamp=_parse_time(data.get("deletionTimestamp")),
    )


@dataclass
class ConfigMap:
    """A core/v1 ConfigMap."""

    kind: ClassVar[str] = "ConfigMap"

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    data: dict[str, str] = field(default_factory=dict)


class ConditionStatus(str, enum.Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


@dataclass
class Condition:
    """One aspect of an object's observed state."""

    type: str
    status: ConditionStatus
    reason: str = ""
    message: str = ""
    last_transition_time: datetime | None = None
    observed_generation: int = 0


def _condition_to_dict(condition: Condition) -> dict[str, Any]:
    out: dict[str, Any] = {"type": condition.type, "status": condition.status.value}
    if condition.observed_generation:
        out["observedGeneration"] = condition.observed_generation
    if condition.last_transition_time is not None:
        out["lastTransitionTime"] = _format_time(condition.last_transition_time)
    out["reason"] = condition.reason
    out["message"] = condition.message
    return out


def _condition_from_dict(data: dict[str, Any]) -> Condition:
    return Condition(
        type=data["type"],
        status=ConditionStatus(data["status"]),
        reason=data.get("reason", ""),
        message=data.get("message", ""),
        last_transition_time=_parse_time(data.get("lastTransitionTime")),
        observed_generation=data.get("observedGeneration", 0),
    )


def find_status_condition(conditions: list[Condition], condition_type: str) -> Condition | None:
    """Return the condition of the given type, or None."""
    return next((c for c in conditions if c.type == condition_type), None)


def set_status_condition(conditions: list[Condition], condition: Condition) -> bool:
    """Add or update a condition in place; return whether the list changed.

    The transition time only moves when the status changes.
    """
    existing = find_status_condition(conditions, condition.type)
    if existing is None:
        added = dataclasses.replace(condition)
        if added.last_transition_time is None:
            added.last_transition_time = datetime.now(timezone.utc)
        conditions.append(added)
        return True

    changed = False
    if existing.status != condition.status:
        existing.status = condition.status
        existing.last_transition_time = condition.last_transition_time or datetime.now(timezone.utc)
        changed = True
    for attribute in ("reason", "message", "observed_generation"):
        new_value = getattr(condition, attribute)
        if getattr(existing, attribute) != new_value:
            setattr(existing, attribute, new_value)
            changed = True
    return changed


@dataclass
class ConfigMapSyncSpec:
    """Desired state: which ConfigMap to copy from where to where."""

    source_namespace: str = ""
    destination_namespace: str = ""
    config_map_name: str = ""


@dataclass
class ConfigMapSyncStatus:
    """Observed state of a ConfigMapSync."""

    last_sync_time: str = ""
    sync_status: str = ""
    message: str = ""
    source_exists: bool = False
    destination_exists: bool = False
    conditions: list[Condition] = field(default_factory=list)
    retry_count: int = 0


def _status_to_dict(status: ConfigMapSyncStatus) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if status.last_sync_time:
        out["lastSyncTime"] = status.last_sync_time
    if status.sync_status:
        out["syncStatus"] = status.sync_status
    if status.message:
        out["message"] = status.message
    out["sourceExists"] = status.source_exists
    out["destinationExists"] = status.destination_exists
    if status.conditions:
        out["conditions"] = [_condition_to_dict(c) for c in status.conditions]
    if status.retry_count:
        out["retryCount"] = status.retry_count
    return out


def _status_from_dict(data: dict[str, Any]) -> ConfigMapSyncStatus:
    return ConfigMapSyncStatus(
        last_sync_time=data.get("lastSyncTime", ""),
        sync_status=data.get("syncStatus", ""),
        message=data.get("message", ""),
        source_exists=bool(data.get("sourceExists", False)),
        destination_exists=bool(data.get("destinationExists", False)),
        conditions=[_condition_from_dict(c) for c in data.get("conditions") or []],
        retry_count=data.get("retryCount", 0),
    )


@dataclass
class ConfigMapSync:
    """The ConfigMapSync custom resource."""

    kind: ClassVar[str] = "ConfigMapSync"
    api_version: ClassVar[str] = str(GROUP_VERSION)

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: ConfigMapSyncSpec = field(default_factory=ConfigMapSyncSpec)
    status: ConfigMapSyncStatus = field(default_factory=ConfigMapSyncStatus)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"apiVersion": self.api_version, "kind": self.kind}
        metadata = _meta_to_dict(self.metadata)
        if metadata:
            out["metadata"] = metadata
        out["spec"] = {
            "sourceNamespace": self.spec.source_namespace,
            "destinationNamespace": self.spec.destination_namespace,
            "configMapName": self.spec.config_map_name,
        }
        if self.status != ConfigMapSyncStatus():
            out["status"] = _status_to_dict(self.status)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConfigMapSync":
        kind = data.get("kind", cls.kind)
        if kind != cls.kind:
            raise ValueError(f"expected kind {cls.kind!r}, got {kind!r}")
        spec = data.get("spec") or {}
        return cls(
            metadata=_meta_from_dict(data.get("metadata") or {}),
            spec=ConfigMapSyncSpec(
                source_namespace=spec.get("sourceNamespace", ""),
                destination_namespace=spec.get("destinationNamespace", ""),
                config_map_name=spec.get("configMapName", ""),
            ),
            status=_status_from_dict(data.get("status") or {}),
        )


@dataclass
class ConfigMapSyncList:
    """A list of ConfigMapSync resources."""

    kind: ClassVar[str] = "ConfigMapSyncList"
    api_version: ClassVar[str] = str(GROUP_VERSION)

    items: list[ConfigMapSync] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "items": [item.to_dict() for item in self.items],
        }