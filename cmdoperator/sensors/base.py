"""Base sensor classes for operator monitoring.

This module defines the base OperatorSensor class that provides lifecycle hooks
for monitoring operator events. All hooks are no-ops by default, allowing
subclasses to override only the events they care about.

Hooks come in pairs where an operation has a duration: ``on_X_start()``
returns an optional state dict that is handed back to ``on_X_complete()``.
"""

from typing import Dict, List, Optional, Any
import logging

logger = logging.getLogger(__name__)


class OperatorSensor:
    """Base sensor class for cert-manager operator monitoring.

    Hooks cover three areas:
    1. Reconciliation of the CertManagerDeployment
    2. Managed object operations (create/update of cluster objects)
    3. Pod refreshes triggered by certificate secret changes

    Example:
        class LoggingSensor(OperatorSensor):
            def on_reconcile_start(self, instance_name, generation, trigger_source):
                return {'start_time': time.time()}

            def on_reconcile_complete(self, instance_name, state, success, error=None):
                duration = time.time() - state['start_time']
                logger.info(f"Reconciled {instance_name} in {duration}s")
    """

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        instance_name: str,
        generation: int,
        trigger_source: str,
    ) -> Optional[Dict[str, Any]]:
        """Called when a reconcile pass begins.

        Args:
            instance_name: CertManagerDeployment name
            generation: Resource generation number
            trigger_source: What triggered the pass (create, resume, update, timer)

        Returns:
            Optional state dict passed to on_reconcile_complete
        """
        pass

    def on_reconcile_complete(
        self,
        instance_name: str,
        state: Optional[Dict[str, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Called when a reconcile pass ends, successfully or not."""
        pass

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
        """Called before a managed object is written.

        Args:
            instance_name: CertManagerDeployment name
            resource_name: Name of the managed object
            namespace: Namespace of the object, None for cluster scoped kinds
            resource_type: Kind of the object (Deployment, ClusterRole, ...)

        Returns:
            Optional state dict passed to on_resource_sync_complete
        """
        pass

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
        """Called after a managed object write.

        Args:
            operation: Operation performed (create, update)
            success: Whether the write succeeded
            error: Exception if the write failed
        """
        pass

    def on_resource_drift_detected(
        self,
        instance_name: str,
        resource_name: str,
        namespace: Optional[str],
        resource_type: str,
        drift_fields: List[str],
    ) -> None:
        """Called when a live object no longer matches its desired state."""
        pass

    # =============================================================================
    # Status and Pod Refresh Hooks
    # =============================================================================

    def on_status_update(
        self,
        instance_name: str,
        phase: str,
        update_fields: List[str],
    ) -> None:
        """Called when the CertManagerDeployment status is written."""
        pass

    def on_pod_refresh(
        self,
        namespace: str,
        kind: str,
        name: str,
        success: bool,
    ) -> None:
        """Called after a workload was restarted for a changed secret.

        Args:
            namespace: Namespace of the workload and the secret
            kind: Workload kind (Deployment, DaemonSet, StatefulSet)
            name: Workload name
            success: Whether the workload update succeeded
        """
        pass

    # =============================================================================
    # Utility Methods
    # =============================================================================

    def asdict(self) -> Dict[str, Any]:
        """Return sensor state as dictionary."""
        return {}
