"""Prometheus monitoring backend for the cert-manager operator.

PrometheusMonitor turns sensor events into Prometheus metrics in three groups:

1. Reconciliation health - duration, throughput and errors of reconcile passes
2. Managed object sync - writes, latency and drift of the objects we manage
3. Status and pod refreshes - phase transitions and workload restarts
"""

from typing import Dict, List, Optional, Any
import time
import logging

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

from cmdoperator.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)

PHASES = ("unknown", "pending", "progressing", "running")


class PrometheusMonitor(OperatorSensor):
    """Prometheus metrics monitor.

    Metrics are prefixed with ``cmdop_``. Cluster scoped objects are
    recorded with an empty ``namespace`` label.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        super().__init__()

        # =============================================================================
        # Reconciliation Loop Metrics
        # =============================================================================

        self.reconcile_duration = Histogram(
            'cmdop_reconcile_duration_seconds',
            'Time spent in a reconcile pass',
            labelnames=['instance_name', 'trigger_source', 'result'],
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
            registry=registry,
        )

        self.reconcile_total = Counter(
            'cmdop_reconcile_total',
            'Total number of reconcile passes',
            labelnames=['instance_name', 'trigger_source', 'result'],
            registry=registry,
        )

        self.reconcile_errors = Counter(
            'cmdop_reconcile_errors_total',
            'Total number of failed reconcile passes',
            labelnames=['instance_name', 'error_type'],
            registry=registry,
        )

        # =============================================================================
        # Managed Object Sync Metrics
        # =============================================================================

        self.resource_sync_duration = Histogram(
            'cmdop_resource_sync_duration_seconds',
            'Time spent writing managed objects',
            labelnames=['instance_name', 'resource_name', 'namespace', 'resource_type', 'operation', 'result'],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=registry,
        )

        self.resource_sync_total = Counter(
            'cmdop_resource_sync_total',
            'Total number of managed object writes',
            labelnames=['instance_name', 'resource_name', 'namespace', 'resource_type', 'operation', 'result'],
            registry=registry,
        )

        self.resource_sync_errors = Counter(
            'cmdop_resource_sync_errors_total',
            'Total number of failed managed object writes',
            labelnames=['instance_name', 'resource_name', 'namespace', 'resource_type', 'error_type'],
            registry=registry,
        )

        self.resource_drift_detected = Counter(
            'cmdop_resource_drift_detected_total',
            'Total number of drifted fields found on managed objects',
            labelnames=['instance_name', 'resource_name', 'namespace', 'resource_type', 'drift_field'],
            registry=registry,
        )

        # =============================================================================
        # Status and Pod Refresh Metrics
        # =============================================================================

        self.status_updates = Counter(
            'cmdop_status_updates_total',
            'Total number of status updates',
            labelnames=['instance_name', 'update_field'],
            registry=registry,
        )

        self.phase = Gauge(
            'cmdop_phase',
            'Current phase of the CertManagerDeployment (1 for the active phase)',
            labelnames=['instance_name', 'phase'],
            registry=registry,
        )

        self.pod_refresh_total = Counter(
            'cmdop_pod_refresh_total',
            'Total number of workload restarts caused by secret changes',
            labelnames=['namespace', 'kind', 'result'],
            registry=registry,
        )

        logger.info("PrometheusMonitor initialized with all metrics")

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        instance_name: str,
        generation: int,
        trigger_source: str,
    ) -> Optional[Dict[str, Any]]:
        """Record reconcile start time."""
        return {
            'start_time': time.time(),
            'trigger_source': trigger_source,
        }

    def on_reconcile_complete(
        self,
        instance_name: str,
        state: Optional[Dict[str, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Record reconcile duration and result."""
        if state:
            duration = time.time() - state['start_time']
            trigger_source = state['trigger_source']
            result = 'success' if success else 'failure'

            self.reconcile_duration.labels(
                instance_name=instance_name,
                trigger_source=trigger_source,
                result=result,
            ).observe(duration)

            self.reconcile_total.labels(
                instance_name=instance_name,
                trigger_source=trigger_source,
                result=result,
            ).inc()

        if error:
            self.reconcile_errors.labels(
                instance_name=instance_name,
                error_type=error.__class__.__name__,
            ).inc()

    # =============================================================================
    # Managed Object Hooks
    # =============================================================================

    def on_resource_sync_start(
        self,
        instance_name: str,
        resource_name: str,
        namespace: Optional[str],
        resource_type: str,
    ) -> Optional[Dict[str, Any]]:
        """Record write start time."""
        return {'start_time': time.time()}

    def on_resource_sync_complete(
        self,
        instance_name: str,
        resource_name: str,
        namespace: Optional[str],
        resource_type: str,
        state: Optional[Dict[str, Any]],
        operation: str,
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Record write duration and result."""
        namespace = namespace or ""
        if state:
            duration = time.time() - state['start_time']
            result = 'success' if success else 'failure'

            self.resource_sync_duration.labels(
                instance_name=instance_name,
                resource_name=resource_name,
                namespace=namespace,
                resource_type=resource_type,
                operation=operation,
                result=result,
            ).observe(duration)

            self.resource_sync_total.labels(
                instance_name=instance_name,
                resource_name=resource_name,
                namespace=namespace,
                resource_type=resource_type,
                operation=operation,
                result=result,
            ).inc()

        if error:
            self.resource_sync_errors.labels(
                instance_name=instance_name,
                resource_name=resource_name,
                namespace=namespace,
                resource_type=resource_type,
                error_type=error.__class__.__name__,
            ).inc()

    def on_resource_drift_detected(
        self,
        instance_name: str,
        resource_name: str,
        namespace: Optional[str],
        resource_type: str,
        drift_fields: List[str],
    ) -> None:
        """Record drifted fields."""
        for field in drift_fields:
            self.resource_drift_detected.labels(
                instance_name=instance_name,
                resource_name=resource_name,
                namespace=namespace or "",
                resource_type=resource_type,
                drift_field=field,
            ).inc()

    # =============================================================================
    # Status and Pod Refresh Hooks
    # =============================================================================

    def on_status_update(
        self,
        instance_name: str,
        phase: str,
        update_fields: List[str],
    ) -> None:
        """Record status update and the current phase."""
        for field in update_fields:
            self.status_updates.labels(
                instance_name=instance_name,
                update_field=field,
            ).inc()
        for known_phase in PHASES:
            self.phase.labels(instance_name=instance_name, phase=known_phase).set(
                1 if known_phase == phase else 0
            )

    def on_pod_refresh(
        self,
        namespace: str,
        kind: str,
        name: str,
        success: bool,
    ) -> None:
        """Record workload restart."""
        self.pod_refresh_total.labels(
            namespace=namespace,
            kind=kind,
            result='success' if success else 'failure',
        ).inc()
