"""Events posted on the CertManagerDeployment while managed objects change."""
import kopf
from typing import Any, Mapping, NamedTuple, Optional

NORMAL = "Normal"
WARNING = "Warning"


class Event(NamedTuple):
    type: str
    reason: str
    message: str


class EventSet(NamedTuple):
    """The events emitted while converging one kind of object."""

    creating: Event
    updating: Optional[Event] = None
    updated: Optional[Event] = None


def _event_set(reason: str, subject: str, updates: bool = True) -> EventSet:
    creating = Event(
        NORMAL, f"Creating{reason}", f"{subject} does not exist and needs to be created"
    )
    if not updates:
        return EventSet(creating)
    return EventSet(
        creating,
        Event(
            NORMAL,
            f"Updating{reason}",
            f"{subject} exists but does not match desired state and needs updating",
        ),
        Event(NORMAL, f"Updated{reason}", f"{subject} has been successfully updated"),
    )


DEPLOYMENT_EVENTS = _event_set("Deployment", "Deployment")
CRD_EVENTS = _event_set("CRD", "CRD")
NAMESPACE_EVENTS = _event_set("Namespace", "Namespace", updates=False)
ROLE_EVENTS = _event_set("Role", "Role")
ROLE_BINDING_EVENTS = _event_set("RoleBinding", "RoleBinding")
CLUSTER_ROLE_EVENTS = _event_set("ClusterRole", "Cluster role")
CLUSTER_ROLE_BINDING_EVENTS = EventSet(
    Event(
        NORMAL,
        "CreatingClusterRoleBinding",
        "Cluster rolebinding does not exist and needs to be created",
    ),
    *_event_set("ClusterRoleBinding", "ClusterRoleBinding")[1:],
)
SERVICE_ACCOUNT_EVENTS = _event_set("ServiceAccount", "Service account", updates=False)
SERVICE_EVENTS = _event_set("Service", "Service")
WEBHOOK_EVENTS = _event_set("Webhook", "Webhook")

POD_REFRESH = Event(
    NORMAL,
    "PodRefresh",
    "Associated pods restarted as a cert-manager secret used by the object has changed.",
)
POD_REFRESH_FAILURE = Event(
    WARNING,
    "PodRefreshFailure",
    "Unable to restart pods associated with object due to an API error.",
)


def describe(name: str, namespace: Optional[str] = None) -> str:
    return f"{namespace}/{name}" if namespace else name


def post_event(
    owner: Mapping[str, Any],
    event: Event,
    name: Optional[str] = None,
    namespace: Optional[str] = None,
) -> None:
    """Post `event` on `owner`, suffixed with the affected object's identity."""
    if owner is None:
        return
    message = event.message
    if name:
        message = f"{message}: {describe(name, namespace)}"
    kopf.event(owner, type=event.type, reason=event.reason, message=message)
