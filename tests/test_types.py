from datetime import datetime, timedelta, timezone

import pytest

from configmapsync.types import (
    GROUP_VERSION,
    Condition,
    ConditionStatus,
    ConfigMapSync,
    ConfigMapSyncList,
    ConfigMapSyncSpec,
    ConfigMapSyncStatus,
    GroupVersion,
    NamespacedName,
    ObjectMeta,
    find_status_condition,
    set_status_condition,
)

FINALIZER = "configmapsync.apps.kapendra.com/finalizer"
T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _sample() -> ConfigMapSync:
    return ConfigMapSync(
        metadata=ObjectMeta(
            name="sync",
            namespace="default",
            labels={"team": "ops"},
            finalizers=[FINALIZER],
        ),
        spec=ConfigMapSyncSpec("src", "dst", "app-config"),
        status=ConfigMapSyncStatus(
            last_sync_time="2025-01-01T00:00:00Z",
            sync_status="Success",
            message="ConfigMap synced successfully",
            source_exists=True,
            destination_exists=True,
            conditions=[Condition("Synced", ConditionStatus.TRUE, "SyncSucceeded", "ok", T0)],
            retry_count=2,
        ),
    )


def test_group_version_string():
    assert str(GROUP_VERSION) == "apps.kapendra.com/v1"
    assert str(GroupVersion("", "v1")) == "v1"


def test_namespaced_name_string():
    assert str(NamespacedName("default", "test-resource")) == "default/test-resource"


def test_finalizer_add_contains_remove():
    meta = ObjectMeta()
    assert not meta.contains_finalizer(FINALIZER)
    assert meta.add_finalizer(FINALIZER) is True
    assert meta.add_finalizer(FINALIZER) is False
    assert meta.finalizers == [FINALIZER]
    assert meta.remove_finalizer(FINALIZER) is True
    assert meta.remove_finalizer(FINALIZER) is False
    assert meta.finalizers == []


def test_round_trip_dict():
    original = _sample()
    restored = ConfigMapSync.from_dict(original.to_dict())
    assert restored == original


def test_to_dict_uses_wire_names():
    data = _sample().to_dict()
    assert data["kind"] == "ConfigMapSync"
    assert data["apiVersion"] == str(GROUP_VERSION)
    assert data["spec"] == {
        "sourceNamespace": "src",
        "destinationNamespace": "dst",
        "configMapName": "app-config",
    }
    assert data["status"]["syncStatus"] == "Success"
    assert data["status"]["retryCount"] == 2
    assert data["status"]["conditions"][0]["status"] == "True"


def test_empty_status_and_metadata_are_omitted():
    data = ConfigMapSync().to_dict()
    assert "status" not in data
    assert "metadata" not in data
    assert data["spec"]["configMapName"] == ""


def test_status_booleans_always_present():
    status = ConfigMapSyncStatus(sync_status="Failed")
    data = ConfigMapSync(status=status).to_dict()["status"]
    assert data["sourceExists"] is False
    assert data["destinationExists"] is False
    assert "retryCount" not in data
    assert "conditions" not in data


def test_from_dict_rejects_wrong_kind():
    with pytest.raises(ValueError):
        ConfigMapSync.from_dict({"kind": "ConfigMap"})


def test_list_to_dict():
    items = [_sample(), ConfigMapSync()]
    data = ConfigMapSyncList(items=items).to_dict()
    assert data["kind"] == "ConfigMapSyncList"
    assert data["items"] == [item.to_dict() for item in items]


def test_set_status_condition_appends_new():
    conditions: list[Condition] = []
    assert set_status_condition(conditions, Condition("Ready", ConditionStatus.FALSE, "NotReady", "x"))
    found = find_status_condition(conditions, "Ready")
    assert found.status is ConditionStatus.FALSE
    assert found.last_transition_time is not None


def test_set_status_condition_keeps_time_when_status_unchanged():
    conditions = [Condition("Ready", ConditionStatus.TRUE, "A", "a", T0)]
    later = T0 + timedelta(hours=1)
    changed = set_status_condition(conditions, Condition("Ready", ConditionStatus.TRUE, "B", "b", later))
    assert changed is True
    assert conditions[0].last_transition_time == T0
    assert conditions[0].reason == "B"
    assert len(conditions) == 1


def test_set_status_condition_moves_time_on_status_change():
    conditions = [Condition("Ready", ConditionStatus.TRUE, "A", "a", T0)]
    later = T0 + timedelta(hours=1)
    set_status_condition(conditions, Condition("Ready", ConditionStatus.FALSE, "A", "a", later))
    assert conditions[0].status is ConditionStatus.FALSE
    assert conditions[0].last_transition_time == later


def test_set_status_condition_reports_no_change():
    conditions = [Condition("Ready", ConditionStatus.TRUE, "A", "a", T0)]
    assert set_status_condition(conditions, Condition("Ready", ConditionStatus.TRUE, "A", "a")) is False


def test_find_status_condition_missing():
    assert find_status_condition([], "Synced") is None