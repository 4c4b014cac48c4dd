import logging
from logging import Logger
from typing import Any, Dict, List, Mapping, Optional, Union
from kubernetes_asyncio.client import (
    RbacV1Subject,
    V1ClusterRole,
    V1ClusterRoleBinding,
    V1Deployment,
    V1DeploymentSpec,
    V1LabelSelector,
    V1MutatingWebhookConfiguration,
    V1Namespace,
    V1ObjectMeta,
    V1PodTemplateSpec,
    V1Role,
    V1RoleBinding,
    V1RoleRef,
    V1Service,
    V1ServiceAccount,
    V1ValidatingWebhookConfiguration,
)
from cmdoperator.componentry import (
    Component,
    RoleData,
    WebhookData,
    resolve_components,
    resolve_version,
    version_is_supported,
)
from cmdoperator.componentry.constants import (
    CERT_MANAGER_DEPLOYMENT_NAMESPACE,
    RESERVED_INSTANCE_NAME,
)
from cmdoperator.common.models.labels import Labels
from cmdoperator.configs import default_config_for, merge_args, schema_for
from cmdoperator.resources.base import (
    BaseResource,
    ResourceKind,
    CUSTOM_RESOURCE_DEFINITION,
    NAMESPACE,
    SERVICE_ACCOUNT,
    ROLE,
    ROLE_BINDING,
    CLUSTER_ROLE,
    CLUSTER_ROLE_BINDING,
    DEPLOYMENT,
    SERVICE,
    MUTATING_WEBHOOK_CONFIGURATION,
    VALIDATING_WEBHOOK_CONFIGURATION,
)
from cmdoperator.resources.crds import load_crds
from cmdoperator.resources.status import StatusAggregator
from cmdoperator.types.models import CertManagerDeploymentSpec
from cmdoperator.types.settings import Settings
from cmdoperator.utils.objects import cached_property

JSON = Dict[str, Any]

RBAC_API_GROUP = "rbac.authorization.k8s.io"
ADMISSION_API_VERSION = "admissionregistration.k8s.io/v1"


class CertManagerDeployment(BaseResource):
    """A cert-manager installation described by a CertManagerDeployment.

    A new instance is built for every reconcile pass, so desired objects
    are never shared between passes.
    """

    conf: Settings = Settings()

    KIND = "CertManagerDeployment"
    GROUP_NAME = "operators.redhat.io"
    GROUP_VERSION = "v1alpha1"
    PLURAL_NAME = "certmanagerdeployments"

    namespace: str = CERT_MANAGER_DEPLOYMENT_NAMESPACE
    spec: CertManagerDeploymentSpec

    def __init__(
        self,
        name: str,
        spec: CertManagerDeploymentSpec,
        owner: Optional[Mapping[str, Any]] = None,
        logger: Logger = None,
    ):
        self.instance_name = name
        self.spec = spec
        self.owner = owner
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_spec(
        cls,
        name: str,
        spec: CertManagerDeploymentSpec,
        body: Optional[Mapping[str, Any]] = None,
        logger: Logger = None,
    ) -> "CertManagerDeployment":
        return CertManagerDeployment(name, spec, owner=body, logger=logger)

    @staticmethod
    def is_reserved_name(name: str) -> bool:
        return name == RESERVED_INSTANCE_NAME

    @cached_property
    def version(self) -> str:
        return resolve_version(getattr(self.spec, "version", None))

    def supported_version(self) -> bool:
        return version_is_supported(self.version)

    @cached_property
    def components(self) -> List[Component]:
        return resolve_components(self.version)

    # ------------------------------------------------
    # ---- Desired state ----
    # ------------------------------------------------

    def prepare_metadata(
        self,
        name: str,
        labels: Labels,
        namespaced: bool = True,
        annotations: Optional[Dict[str, str]] = None,
    ) -> V1ObjectMeta:
        return V1ObjectMeta(
            name=name,
            namespace=self.namespace if namespaced else None,
            labels=labels.as_dict(),
            annotations=annotations,
        )

    def prepare_namespace(self) -> V1Namespace:
        return V1Namespace(
            api_version="v1",
            kind="Namespace",
            metadata=self.prepare_metadata(
                CERT_MANAGER_DEPLOYMENT_NAMESPACE, Labels.standard(), namespaced=False
            ),
        )

    def prepare_crds(self) -> List[JSON]:
        return load_crds(self.version, self.conf.crd_dir)

    def prepare_service_account(self, component: Component) -> V1ServiceAccount:
        return V1ServiceAccount(
            api_version="v1",
            kind="ServiceAccount",
            metadata=self.prepare_metadata(
                component.service_account_name, Labels(component.labels)
            ),
            automount_service_account_token=True,
        )

    def prepare_service_accounts(self) -> List[V1ServiceAccount]:
        return [self.prepare_service_account(c) for c in self.components]

    def prepare_role(
        self, component: Component, role: RoleData, namespaced: bool = True
    ) -> Union[V1Role, V1ClusterRole]:
        model, kind = (V1Role, "Role") if namespaced else (V1ClusterRole, "ClusterRole")
        return model(
            api_version=f"{RBAC_API_GROUP}/v1",
            kind=kind,
            metadata=self.prepare_metadata(
                role.name,
                Labels(component.labels).update(role.labels),
                namespaced=namespaced,
            ),
            rules=role.rules(),
        )

    def prepare_roles(self) -> List[V1Role]:
        return [
            self.prepare_role(component, role)
            for component in self.components
            for role in component.roles
        ]

    def prepare_cluster_roles(self) -> List[V1ClusterRole]:
        return [
            self.prepare_role(component, role, namespaced=False)
            for component in self.components
            for role in component.cluster_roles
        ]

    def prepare_role_binding(
        self, component: Component, role: RoleData, namespaced: bool = True
    ) -> Union[V1RoleBinding, V1ClusterRoleBinding]:
        role_kind = "Role" if namespaced else "ClusterRole"
        model = V1RoleBinding if namespaced else V1ClusterRoleBinding
        return model(
            api_version=f"{RBAC_API_GROUP}/v1",
            kind=f"{role_kind}Binding",
            metadata=self.prepare_metadata(
                role.name,
                Labels(component.labels).update(Labels.standard().as_dict()),
                namespaced=namespaced,
            ),
            role_ref=V1RoleRef(api_group=RBAC_API_GROUP, kind=role_kind, name=role.name),
            subjects=[
                RbacV1Subject(
                    kind="ServiceAccount",
                    name=component.service_account_name,
                    namespace=self.namespace,
                )
            ],
        )

    def prepare_role_bindings(self) -> List[V1RoleBinding]:
        return [
            self.prepare_role_binding(component, role)
            for component in self.components
            for role in component.roles
        ]

    def prepare_cluster_role_bindings(self) -> List[V1ClusterRoleBinding]:
        """Bindings for every cluster role except the aggregate ones."""
        return [
            self.prepare_role_binding(component, role, namespaced=False)
            for component in self.components
            for role in component.cluster_roles
            if not role.is_aggregate
        ]

    def prepare_label_selector(self, component: Component) -> Labels:
        return Labels(component.base_label_selector()).include_kubernetes_instance(
            self.instance_name
        )

    def prepare_container_args(self, component: Component, overrides: Any) -> List[str]:
        return merge_args(
            schema_for(component.name, self.version),
            default_config_for(component.name, self.version),
            overrides,
        )

    def prepare_pod_template(self, component: Component) -> V1PodTemplateSpec:
        customization = self.spec.customization_for(component.name)
        selector = self.prepare_label_selector(component)
        template = component.pod_template_spec()
        template.metadata = template.metadata or V1ObjectMeta()
        template.metadata.labels = (
            Labels(template.metadata.labels).update(selector.as_dict()).as_dict()
        )
        template.spec.service_account_name = component.service_account_name
        container = template.spec.containers[0]
        if customization.image:
            container.image = customization.image
        if customization.image_pull_policy:
            container.image_pull_policy = customization.image_pull_policy
        container.args = self.prepare_container_args(
            component, customization.arg_overrides
        )
        return template

    def prepare_deployment(self, component: Component) -> V1Deployment:
        selector = self.prepare_label_selector(component)
        labels = Labels.standard().update(component.labels)
        return V1Deployment(
            api_version="apps/v1",
            kind="Deployment",
            metadata=self.prepare_metadata(component.resource_name, labels),
            spec=V1DeploymentSpec(
                replicas=component.replicas,
                selector=V1LabelSelector(match_labels=selector.as_dict()),
                template=self.prepare_pod_template(component),
            ),
        )

    def prepare_deployments(self) -> List[V1Deployment]:
        return [self.prepare_deployment(c) for c in self.components]

    def prepare_service(self, component: Component) -> V1Service:
        spec = component.service_spec()
        spec.selector = self.prepare_label_selector(component).as_dict()
        labels = Labels.standard().update(component.labels)
        return V1Service(
            api_version="v1",
            kind="Service",
            metadata=self.prepare_metadata(component.resource_name, labels),
            spec=spec,
        )

    def prepare_services(self) -> List[V1Service]:
        return [self.prepare_service(c) for c in self.components if c.has_service()]

    def prepare_webhook_metadata(self, webhook: WebhookData) -> V1ObjectMeta:
        return self.prepare_metadata(
            webhook.name,
            Labels(self.owner_labels),
            namespaced=False,
            annotations=webhook.annotation_dict(),
        )

    def prepare_webhook_services(self, webhooks: List[Any]) -> List[Any]:
        for hook in webhooks:
            hook.client_config.service.namespace = self.namespace
        return webhooks

    def prepare_mutating_webhooks(self) -> List[V1MutatingWebhookConfiguration]:
        return [
            V1MutatingWebhookConfiguration(
                api_version=ADMISSION_API_VERSION,
                kind=MUTATING_WEBHOOK_CONFIGURATION.kind,
                metadata=self.prepare_webhook_metadata(webhook),
                webhooks=self.prepare_webhook_services(webhook.mutating()),
            )
            for component in self.components
            for webhook in component.non_empty_webhooks()
            if webhook.mutating_webhooks
        ]

    def prepare_validating_webhooks(self) -> List[V1ValidatingWebhookConfiguration]:
        return [
            V1ValidatingWebhookConfiguration(
                api_version=ADMISSION_API_VERSION,
                kind=VALIDATING_WEBHOOK_CONFIGURATION.kind,
                metadata=self.prepare_webhook_metadata(webhook),
                webhooks=self.prepare_webhook_services(webhook.validating()),
            )
            for component in self.components
            for webhook in component.non_empty_webhooks()
            if webhook.validating_webhooks
        ]

    @property
    def owner_labels(self) -> Dict[str, str]:
        metadata = (self.owner or {}).get("metadata") or {}
        return dict(metadata.get("labels") or {})

    # ------------------------------------------------
    # ---- Convergence ----
    # ------------------------------------------------

    async def sync_all(self, kind: ResourceKind, desired: List[Any]) -> None:
        self.logger.debug(f"Starting reconciliation: {kind.kind}")
        for obj in desired:
            await self.converge(kind, obj)
        self.logger.debug(f"Ending reconciliation: {kind.kind}")

    async def sync_crds(self):
        await self.sync_all(CUSTOM_RESOURCE_DEFINITION, self.prepare_crds())

    async def sync_namespace(self):
        await self.sync_all(NAMESPACE, [self.prepare_namespace()])

    async def sync_service_accounts(self):
        await self.sync_all(SERVICE_ACCOUNT, self.prepare_service_accounts())

    async def sync_roles(self):
        await self.sync_all(ROLE, self.prepare_roles())

    async def sync_role_bindings(self):
        await self.sync_all(ROLE_BINDING, self.prepare_role_bindings())

    async def sync_cluster_roles(self):
        await self.sync_all(CLUSTER_ROLE, self.prepare_cluster_roles())

    async def sync_cluster_role_bindings(self):
        await self.sync_all(CLUSTER_ROLE_BINDING, self.prepare_cluster_role_bindings())

    async def sync_deployments(self):
        await self.sync_all(DEPLOYMENT, self.prepare_deployments())

    async def sync_services(self):
        await self.sync_all(SERVICE, self.prepare_services())

    async def sync_webhooks(self):
        await self.sync_all(MUTATING_WEBHOOK_CONFIGURATION, self.prepare_mutating_webhooks())
        await self.sync_all(
            VALIDATING_WEBHOOK_CONFIGURATION, self.prepare_validating_webhooks()
        )

    async def synchronize(self) -> None:
        """Compare current state with desired state for all managed objects and create/update as needed."""
        await self.sync_crds()
        await self.sync_namespace()
        await self.sync_service_accounts()
        await self.sync_roles()
        await self.sync_role_bindings()
        await self.sync_cluster_roles()
        await self.sync_cluster_role_bindings()
        await self.sync_deployments()
        await self.sync_services()
        await self.sync_webhooks()

    async def compute_status(self) -> JSON:
        return await StatusAggregator(self).compute()
