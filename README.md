# configmapsync

A small library for one-way synchronisation of a ConfigMap. The data of a
source ConfigMap in one namespace is copied into a ConfigMap of the same name
in a destination namespace, and kept up to date on every reconcile pass.

The package has two modules:

- `configmapsync.types`: the `ConfigMapSync` resource (group
  `apps.kapendra.com`, version `v1`) and the supporting types `ObjectMeta`,
  `ConfigMap`, `Condition`, `ConditionStatus`, `NamespacedName` and
  `GroupVersion`, plus `find_status_condition` and `set_status_condition`.
- `configmapsync.controller`: `ConfigMapSyncReconciler`, the in-memory
  object store `KubeClient`, and `Request`, `Result` and `NotFoundError`.

## Installation

```
pip install configmapsync
```

## Describing a sync

```python
from configmapsync.types import ConfigMapSync, ConfigMapSyncSpec, ObjectMeta

sync = ConfigMapSync(
    metadata=ObjectMeta(name="app-config-sync", namespace="default"),
    spec=ConfigMapSyncSpec(
        source_namespace="shared",
        destination_namespace="team-a",
        config_map_name="app-config",
    ),
)
document = sync.to_dict()
same = ConfigMapSync.from_dict(document)
```

`to_dict` writes `apiVersion` (`apps.kapendra.com/v1`), `kind`, `metadata`
(when not empty), `spec` with the wire names `sourceNamespace`,
`destinationNamespace` and `configMapName`, and `status` only when it differs
from an empty status. Status fields use the names `lastSyncTime`,
`syncStatus`, `message`, `sourceExists`, `destinationExists`, `conditions`
and `retryCount`. `from_dict` raises `ValueError` when `kind` names another
resource. `ConfigMapSyncList.to_dict` serialises a list of resources.

`ObjectMeta` has `contains_finalizer`, `add_finalizer` and `remove_finalizer`;
the last two return whether the list changed. `set_status_condition` adds or
updates a condition of the same type in place and moves its
`last_transition_time` only when the status changes.

## Reconciling

`KubeClient` is an in-memory object store keyed by kind and namespaced name.
It follows the API server's rules that matter here: `get` returns a copy and
raises `NotFoundError` for a missing object; `create` raises `ValueError` if
the object already exists; `update` keeps the stored status and deletion
timestamp, and removes the object once it is marked for deletion and has no
finalizers left; `delete` only marks an object that still has finalizers;
`update_status` writes only the status and raises `TypeError` for objects
without one. The reconciler calls just these five methods, so any object
with the same methods can stand in for it.

```python
from configmapsync.controller import ConfigMapSyncReconciler, KubeClient, Request
from configmapsync.types import ConfigMap, NamespacedName, ObjectMeta

client = KubeClient()
client.create(ConfigMap(
    metadata=ObjectMeta(name="app-config", namespace="shared"),
    data={"level": "debug"},
))
client.create(sync)

reconciler = ConfigMapSyncReconciler(client)
request = Request(NamespacedName(namespace="default", name="app-config-sync"))
reconciler.reconcile(request)  # first pass adds the finalizer
result = reconciler.reconcile(request)  # second pass copies the data

copied = client.get(ConfigMap.kind, NamespacedName(namespace="team-a", name="app-config"))
assert copied.data == {"level": "debug"}
if result.requeue_after:
    ...  # schedule another reconcile after this timedelta
```

Both `KubeClient` and `ConfigMapSyncReconciler` accept an optional `clock`,
a callable returning a `datetime`, used for timestamps.

A reconcile pass:

- returns an empty `Result` when the `ConfigMapSync` does not exist;
- adds the finalizer `configmapsync.apps.kapendra.com/finalizer` on first
  sight and returns;
- when the resource is marked for deletion, deletes the destination
  ConfigMap if it exists and then removes the finalizer;
- when the source ConfigMap is missing, records a `Failed` status with the
  message `Source ConfigMap not found` and asks to be requeued after five
  minutes;
- when fetching the source fails for any other reason, increments
  `retry_count`, sets the `Synced`, `SourceAvailable` and `Ready` conditions
  to `False`, and requeues after a backoff of 30 seconds × 2^retry_count;
- when creating or updating the destination fails, increments `retry_count`
  and requeues after 1 minute × 2^retry_count;
- otherwise creates the destination (labelled with
  `configmapsync.apps.kapendra.com/sync-name`, `.../sync-namespace` and
  `.../managed-by: configmapsync-controller`) or updates the existing one,
  annotates it with `configmapsync.apps.kapendra.com/source-hash` (a SHA-256
  hash of the source data) and `configmapsync.apps.kapendra.com/last-sync`,
  resets `retry_count`, sets the three conditions to `True` and records a
  `Success` status.

Backoff delays are capped at ten minutes (`calculate_backoff_duration`).
Times in the status and annotations are RFC 3339 strings in UTC. A failed
status write is logged through the standard `logging` module and does not
fail the pass.

## What it does not do

The package does not talk to a real cluster: `KubeClient` keeps objects in
memory only. There is no watch loop, work queue, leader election, metrics or
health endpoint, and no command-line program; the caller decides when to call
`reconcile` and acts on `Result.requeue_after` itself.

## Running the tests

```
pip install -e ".[test]"
pytest
```