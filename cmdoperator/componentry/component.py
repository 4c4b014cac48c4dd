"""Value types describing the deployable parts of cert-manager.

Components are rebuilt from scratch for every reconcile pass and never
mutated in place. Version specific differences are applied with
``NamedTuple._replace`` which always yields a new value. Accessors that
hand out nested kubernetes models return deep copies so callers can freely
modify what they receive.
"""
import copy
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Tuple
from kubernetes_asyncio.client import (
    V1MutatingWebhook,
    V1PodTemplateSpec,
    V1PolicyRule,
    V1ServiceSpec,
    V1ValidatingWebhook,
)

from cmdoperator.componentry.constants import (
    CERT_MANAGER_BASE_NAME,
    COMPONENT_LABEL_KEY,
    NAME_LABEL_KEY,
)

JSON = Dict[str, Any]


class RoleData(NamedTuple):
    """A Role or ClusterRole that belongs to a component.

    Aggregate roles only exist to be aggregated into the built-in
    admin/edit/view roles and never receive a binding.
    """

    name: str
    policy_rules: Tuple[V1PolicyRule, ...]
    labels: Mapping[str, str] = {}
    is_aggregate: bool = False

    def rules(self) -> List[V1PolicyRule]:
        return copy.deepcopy(list(self.policy_rules))


class WebhookData(NamedTuple):
    """Admission webhooks served by a component."""

    name: str
    annotations: Mapping[str, str] = {}
    mutating_webhooks: Tuple[V1MutatingWebhook, ...] = ()
    validating_webhooks: Tuple[V1ValidatingWebhook, ...] = ()

    def is_empty(self) -> bool:
        return not self.mutating_webhooks and not self.validating_webhooks

    def mutating(self) -> List[V1MutatingWebhook]:
        return copy.deepcopy(list(self.mutating_webhooks))

    def validating(self) -> List[V1ValidatingWebhook]:
        return copy.deepcopy(list(self.validating_webhooks))

    def annotation_dict(self) -> Dict[str, str]:
        return dict(self.annotations)


class Component(NamedTuple):
    """Everything needed to run one cert-manager component at one version."""

    name: str
    version: str
    service_account_name: str
    labels: Mapping[str, str]
    pod_template: V1PodTemplateSpec
    replicas: int = 1
    roles: Tuple[RoleData, ...] = ()
    cluster_roles: Tuple[RoleData, ...] = ()
    service: Optional[V1ServiceSpec] = None
    webhooks: Tuple[WebhookData, ...] = ()

    @property
    def resource_name(self) -> str:
        """Name shared by the component's Deployment and Service."""
        return f"{CERT_MANAGER_BASE_NAME}-{self.name}"

    def base_label_selector(self) -> Dict[str, str]:
        return {
            COMPONENT_LABEL_KEY: self.name,
            NAME_LABEL_KEY: self.name,
        }

    def pod_template_spec(self) -> V1PodTemplateSpec:
        return copy.deepcopy(self.pod_template)

    def service_spec(self) -> Optional[V1ServiceSpec]:
        return copy.deepcopy(self.service) if self.service is not None else None

    def has_service(self) -> bool:
        return self.service is not None

    def non_empty_webhooks(self) -> List[WebhookData]:
        return [webhook for webhook in self.webhooks if not webhook.is_empty()]

    def with_container(self, **changes: Any) -> "Component":
        """Return a copy whose first container has the attributes in ``changes`` set."""
        pod_template = self.pod_template_spec()
        container = pod_template.spec.containers[0]
        for attr, value in changes.items():
            setattr(container, attr, value)
        return self._replace(pod_template=pod_template)

    def with_cluster_role(self, role: RoleData) -> "Component":
        """Return a copy with the cluster role of the same name swapped for ``role``."""
        return self._replace(
            cluster_roles=tuple(
                role if existing.name == role.name else existing
                for existing in self.cluster_roles
            )
        )
