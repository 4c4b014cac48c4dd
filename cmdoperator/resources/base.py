import copy
import kopf
import logging
from logging import Logger
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Tuple
from kubernetes_asyncio.client import (
    ApiException,
    AdmissionregistrationV1Api,
    ApiextensionsV1Api,
    AppsV1Api,
    CoreV1Api,
    RbacAuthorizationV1Api,
)
from kubernetes_asyncio.client.api_client import ApiClient
from cmdoperator import events
from cmdoperator.events import EventSet, describe, post_event
from cmdoperator.sensors import OperatorSensor
from cmdoperator.utils.errors import already_exists_error
from cmdoperator.utils.helpers import (
    FieldPath,
    document,
    format_path,
    merge_documents,
    mismatched_fields,
)
from cmdoperator.utils.objects import cached_property

JSON = Dict[str, Any]

CREATE = "create"
UPDATE = "update"

LABELS: FieldPath = ("metadata", "labels")
ANNOTATIONS: FieldPath = ("metadata", "annotations")
SPEC: FieldPath = ("spec",)


class ResourceKind(NamedTuple):
    """How one kind of managed object is read, written and compared.

    `resource` is the snake case name used by the kubernetes client methods,
    e.g. ``read_namespaced_<resource>`` or ``read_<resource>``.
    """

    kind: str
    api: str
    resource: str
    namespaced: bool
    events: EventSet
    owned: bool = True
    compare: Tuple[FieldPath, ...] = ()
    merge: Tuple[FieldPath, ...] = ()

    @property
    def create_only(self) -> bool:
        return not self.compare

    def method(self, verb: str) -> str:
        scope = "namespaced_" if self.namespaced else ""
        return f"{verb}_{scope}{self.resource}"


CUSTOM_RESOURCE_DEFINITION = ResourceKind(
    "CustomResourceDefinition",
    "apiextensions_v1_api",
    "custom_resource_definition",
    namespaced=False,
    events=events.CRD_EVENTS,
    owned=False,
    compare=(SPEC, LABELS, ANNOTATIONS),
)
NAMESPACE = ResourceKind(
    "Namespace", "core_v1_api", "namespace", False, events.NAMESPACE_EVENTS
)
SERVICE_ACCOUNT = ResourceKind(
    "ServiceAccount",
    "core_v1_api",
    "service_account",
    True,
    events.SERVICE_ACCOUNT_EVENTS,
)
ROLE = ResourceKind(
    "Role",
    "rbac_v1_api",
    "role",
    True,
    events.ROLE_EVENTS,
    compare=(("rules",), LABELS),
)
CLUSTER_ROLE = ResourceKind(
    "ClusterRole",
    "rbac_v1_api",
    "cluster_role",
    False,
    events.CLUSTER_ROLE_EVENTS,
    compare=(("rules",), LABELS),
)
ROLE_BINDING = ResourceKind(
    "RoleBinding",
    "rbac_v1_api",
    "role_binding",
    True,
    events.ROLE_BINDING_EVENTS,
    compare=(("subjects",), LABELS),
)
CLUSTER_ROLE_BINDING = ResourceKind(
    "ClusterRoleBinding",
    "rbac_v1_api",
    "cluster_role_binding",
    False,
    events.CLUSTER_ROLE_BINDING_EVENTS,
    compare=(("subjects",), LABELS),
)
DEPLOYMENT = ResourceKind(
    "Deployment",
    "apps_v1_api",
    "deployment",
    True,
    events.DEPLOYMENT_EVENTS,
    compare=(SPEC, LABELS, ANNOTATIONS),
    merge=(SPEC,),
)
SERVICE = ResourceKind(
    "Service",
    "core_v1_api",
    "service",
    True,
    events.SERVICE_EVENTS,
    compare=(SPEC, LABELS, ANNOTATIONS),
    merge=(SPEC,),
)
MUTATING_WEBHOOK_CONFIGURATION = ResourceKind(
    "MutatingWebhookConfiguration",
    "admissionregistration_v1_api",
    "mutating_webhook_configuration",
    False,
    events.WEBHOOK_EVENTS,
    compare=(("webhooks",), LABELS, ANNOTATIONS),
)
VALIDATING_WEBHOOK_CONFIGURATION = ResourceKind(
    "ValidatingWebhookConfiguration",
    "admissionregistration_v1_api",
    "validating_webhook_configuration",
    False,
    events.WEBHOOK_EVENTS,
    compare=(("webhooks",), LABELS, ANNOTATIONS),
)


class BaseResource:
    """Kubernetes API access shared by the operator's resources.

    Objects are handled as plain camelCase dictionaries. Objects returned by
    the API are converted with the client's serializer before they are
    compared or written back.
    """

    logger: Logger = logging.getLogger(__name__)
    sensor: OperatorSensor = OperatorSensor()
    shared_api_client: ApiClient = None

    _api_client: ApiClient = None
    _core_v1_api: CoreV1Api = None
    _apps_v1_api: AppsV1Api = None
    _rbac_v1_api: RbacAuthorizationV1Api = None
    _apiextensions_v1_api: ApiextensionsV1Api = None
    _admissionregistration_v1_api: AdmissionregistrationV1Api = None

    owner: Optional[Mapping[str, Any]] = None
    instance_name: str = None

    def to_dict(self, obj: Any) -> Optional[JSON]:
        if obj is None or isinstance(obj, dict):
            return obj
        return self.api_client.sanitize_for_serialization(obj)

    async def fetch(
        self, kind: ResourceKind, name: str, namespace: Optional[str] = None
    ) -> Optional[JSON]:
        """Retrieve the latest state of an object, None when it does not exist."""
        read = getattr(getattr(self, kind.api), kind.method("read"))
        try:
            if kind.namespaced:
                obj = await read(name=name, namespace=namespace)
            else:
                obj = await read(name=name)
        except ApiException as ex:
            if ex.status == 404:
                return None
            raise
        return self.to_dict(obj)

    async def create(self, kind: ResourceKind, body: JSON) -> None:
        create = getattr(getattr(self, kind.api), kind.method("create"))
        if kind.namespaced:
            await create(namespace=body["metadata"].get("namespace"), body=body)
        else:
            await create(body=body)

    async def replace(self, kind: ResourceKind, body: JSON) -> None:
        replace = getattr(getattr(self, kind.api), kind.method("replace"))
        name = body["metadata"]["name"]
        if kind.namespaced:
            await replace(
                name=name, namespace=body["metadata"].get("namespace"), body=body
            )
        else:
            await replace(name=name, body=body)

    async def list_namespaced(
        self, api: str, resource: str, namespace: str
    ) -> List[JSON]:
        """List objects of a namespaced kind, e.g. ``("apps_v1_api", "deployment")``."""
        list_ = getattr(getattr(self, api), f"list_namespaced_{resource}")
        result = self.to_dict(await list_(namespace=namespace))
        return result.get("items") or []

    async def write(self, kind: ResourceKind, body: JSON, operation: str) -> None:
        """Create or replace `body`, reporting the write to the sensor."""
        name = body["metadata"]["name"]
        namespace = body["metadata"].get("namespace")
        sensor_state = self.sensor.on_resource_sync_start(
            self.instance_name, name, namespace, kind.kind
        )
        success = True
        error = None
        try:
            if operation == CREATE:
                await self.create(kind, body)
            else:
                await self.replace(kind, body)
        except Exception as ex:
            success = False
            error = ex
            raise
        finally:
            self.sensor.on_resource_sync_complete(
                self.instance_name,
                name,
                namespace,
                kind.kind,
                sensor_state,
                operation,
                success,
                error,
            )

    async def converge(self, kind: ResourceKind, desired: Any) -> Optional[str]:
        """Bring the live object in line with `desired`.

        `desired` is a kubernetes model or a camelCase dictionary. Missing
        objects are created. Existing objects are only updated in the
        sub-fields that no longer match, starting from a copy of the live
        object. Returns the operation performed, or None when nothing changed.
        """
        if kind.owned and self.owner is not None:
            kopf.append_owner_reference(desired, owner=self.owner)
        desired = self.to_dict(desired)
        name = desired["metadata"]["name"]
        namespace = desired["metadata"].get("namespace")

        live = await self.fetch(kind, name, namespace)
        if live is None:
            self.logger.info(f"Creating {kind.kind} {describe(name, namespace)}")
            post_event(self.owner, kind.events.creating, name, namespace)
            try:
                await self.write(kind, desired, CREATE)
                return CREATE
            except ApiException as ex:
                if not already_exists_error(ex):
                    raise
                conflict = ex
            self.logger.info(
                f"{kind.kind} {describe(name, namespace)} already exists, "
                "comparing with the live object"
            )
            live = await self.fetch(kind, name, namespace)
            if live is None:
                raise conflict

        if kind.create_only:
            return None
        return await self.update_drifted(kind, desired, live)

    async def update_drifted(
        self, kind: ResourceKind, desired: JSON, live: JSON
    ) -> Optional[str]:
        """Overwrite the sub-fields of `live` that do not match `desired`."""
        name = desired["metadata"]["name"]
        namespace = desired["metadata"].get("namespace")
        drifted = mismatched_fields(desired, live, kind.compare)
        if not drifted:
            return None

        drift_fields = [format_path(path) for path in drifted]
        self.logger.info(
            f"{kind.kind} {describe(name, namespace)} exists but needs an update: "
            f"{', '.join(drift_fields)}"
        )
        self.sensor.on_resource_drift_detected(
            self.instance_name, name, namespace, kind.kind, drift_fields
        )
        wanted = document(desired)
        updated = document(copy.deepcopy(live))
        for path in drifted:
            keys = list(path)
            value = copy.deepcopy(wanted[keys])
            if path in kind.merge:
                value = merge_documents(updated.get(keys) or {}, value)
            updated[keys] = value

        post_event(self.owner, kind.events.updating, name, namespace)
        await self.write(kind, updated.dict(), UPDATE)
        post_event(self.owner, kind.events.updated, name, namespace)
        return UPDATE

    @cached_property
    def api_client(self) -> ApiClient:
        if self._api_client is None:
            # Use the shared API client if available, otherwise create a new one
            if self.shared_api_client is not None:
                self._api_client = self.shared_api_client
            else:
                self._api_client = ApiClient()
        return self._api_client

    @cached_property
    def core_v1_api(self) -> CoreV1Api:
        if self._core_v1_api is None:
            self._core_v1_api = CoreV1Api(self.api_client)
        return self._core_v1_api

    @cached_property
    def apps_v1_api(self) -> AppsV1Api:
        if self._apps_v1_api is None:
            self._apps_v1_api = AppsV1Api(self.api_client)
        return self._apps_v1_api

    @cached_property
    def rbac_v1_api(self) -> RbacAuthorizationV1Api:
        if self._rbac_v1_api is None:
            self._rbac_v1_api = RbacAuthorizationV1Api(self.api_client)
        return self._rbac_v1_api

    @cached_property
    def apiextensions_v1_api(self) -> ApiextensionsV1Api:
        if self._apiextensions_v1_api is None:
            self._apiextensions_v1_api = ApiextensionsV1Api(self.api_client)
        return self._apiextensions_v1_api

    @cached_property
    def admissionregistration_v1_api(self) -> AdmissionregistrationV1Api:
        if self._admissionregistration_v1_api is None:
            self._admissionregistration_v1_api = AdmissionregistrationV1Api(
                self.api_client
            )
        return self._admissionregistration_v1_api
