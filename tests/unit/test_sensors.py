"""Unit tests for the sensor framework and Prometheus metrics."""

import pytest
from unittest.mock import Mock
from prometheus_client import CollectorRegistry
from cmdoperator.sensors import OperatorSensor, PrometheusMonitor, SensorDelegate


@pytest.fixture
def registry():
    return CollectorRegistry()


@pytest.fixture
def monitor(registry):
    return PrometheusMonitor(registry=registry)


def sample(registry, name, **labels):
    return registry.get_sample_value(name, labels)


class TestSensorDelegate:
    """Tests for fanning events out to several sensors."""

    def test_states_are_kept_per_sensor(self):
        """Test that each sensor receives its own start state."""
        first, second = Mock(spec=OperatorSensor), Mock(spec=OperatorSensor)
        first.on_reconcile_start.return_value = {"n": 1}
        second.on_reconcile_start.return_value = {"n": 2}
        delegate = SensorDelegate()
        delegate.add(first)
        delegate.add(second)

        state = delegate.on_reconcile_start("cluster", 1, "timer")
        delegate.on_reconcile_complete("cluster", state, True)

        first.on_reconcile_complete.assert_called_once_with("cluster", {"n": 1}, True, None)
        second.on_reconcile_complete.assert_called_once_with("cluster", {"n": 2}, True, None)

    def test_sensor_errors_are_contained(self):
        """Test that one failing sensor does not affect the others."""
        broken, healthy = Mock(spec=OperatorSensor), Mock(spec=OperatorSensor)
        broken.on_pod_refresh.side_effect = RuntimeError("boom")
        delegate = SensorDelegate()
        delegate.add(broken)
        delegate.add(healthy)

        delegate.on_pod_refresh("shop", "Deployment", "web", True)

        healthy.on_pod_refresh.assert_called_once_with("shop", "Deployment", "web", True)

    def test_no_sensors(self):
        """Test that an empty delegate returns no state."""
        delegate = SensorDelegate()
        assert delegate.on_reconcile_start("cluster", 1, "timer") is None
        delegate.on_reconcile_complete("cluster", None, True)

    def test_remove_and_clear(self):
        """Test removing sensors from the delegate."""
        sensor = Mock(spec=OperatorSensor)
        delegate = SensorDelegate()
        delegate.add(sensor)
        delegate.remove(sensor)
        delegate.on_status_update("cluster", "running", ["phase"])
        sensor.on_status_update.assert_not_called()
        delegate.add(sensor)
        delegate.clear()
        delegate.on_status_update("cluster", "running", ["phase"])
        sensor.on_status_update.assert_not_called()


class TestPrometheusMonitor:
    """Tests for the Prometheus metrics backend."""

    def test_reconcile_metrics(self, monitor, registry):
        """Test reconcile counters and the error counter."""
        state = monitor.on_reconcile_start("cluster", 1, "timer")
        monitor.on_reconcile_complete("cluster", state, False, ValueError("bad"))

        assert sample(
            registry,
            "cmdop_reconcile_total",
            instance_name="cluster",
            trigger_source="timer",
            result="failure",
        ) == 1.0
        assert sample(
            registry,
            "cmdop_reconcile_errors_total",
            instance_name="cluster",
            error_type="ValueError",
        ) == 1.0

    def test_resource_sync_metrics(self, monitor, registry):
        """Test write counters for cluster scoped objects."""
        state = monitor.on_resource_sync_start("cluster", "cert-manager-edit", None, "ClusterRole")
        monitor.on_resource_sync_complete(
            "cluster", "cert-manager-edit", None, "ClusterRole", state, "create", True
        )

        assert sample(
            registry,
            "cmdop_resource_sync_total",
            instance_name="cluster",
            resource_name="cert-manager-edit",
            namespace="",
            resource_type="ClusterRole",
            operation="create",
            result="success",
        ) == 1.0

    def test_drift_metrics(self, monitor, registry):
        """Test one increment per drifted field."""
        monitor.on_resource_drift_detected(
            "cluster", "cert-manager-webhook", "cert-manager", "Deployment", ["spec", "metadata.labels"]
        )
        assert sample(
            registry,
            "cmdop_resource_drift_detected_total",
            instance_name="cluster",
            resource_name="cert-manager-webhook",
            namespace="cert-manager",
            resource_type="Deployment",
            drift_field="metadata.labels",
        ) == 1.0

    def test_phase_gauge(self, monitor, registry):
        """Test that exactly the current phase is set."""
        monitor.on_status_update("cluster", "pending", ["phase"])
        monitor.on_status_update("cluster", "running", ["phase"])

        assert sample(registry, "cmdop_phase", instance_name="cluster", phase="running") == 1.0
        assert sample(registry, "cmdop_phase", instance_name="cluster", phase="pending") == 0.0
        assert sample(
            registry, "cmdop_status_updates_total", instance_name="cluster", update_field="phase"
        ) == 2.0

    def test_pod_refresh_metrics(self, monitor, registry):
        """Test the pod refresh counter."""
        monitor.on_pod_refresh("shop", "StatefulSet", "cache", True)
        assert sample(
            registry,
            "cmdop_pod_refresh_total",
            namespace="shop",
            kind="StatefulSet",
            result="success",
        ) == 1.0
