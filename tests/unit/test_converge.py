"""Unit tests for converging live objects towards their desired state."""

import copy
import json
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, Mock, patch
from kubernetes_asyncio.client import ApiException
from kubernetes_asyncio.client.api_client import ApiClient
from cmdoperator import events
from cmdoperator.resources.base import (
    CUSTOM_RESOURCE_DEFINITION,
    DEPLOYMENT,
    SERVICE_ACCOUNT,
    CREATE,
    UPDATE,
)
from cmdoperator.resources.certmanagerdeployment import CertManagerDeployment
from cmdoperator.types.schemas import CertManagerDeploymentSpecSchema

OWNER = {
    "apiVersion": "operators.redhat.io/v1alpha1",
    "kind": "CertManagerDeployment",
    "metadata": {"name": "cluster", "uid": "5d6e2a4c-62f1-4d4e-8f2b-7f0d2b1c9e01"},
}

CRD = {
    "apiVersion": "apiextensions.k8s.io/v1",
    "kind": "CustomResourceDefinition",
    "metadata": {"name": "issuers.cert-manager.io"},
    "spec": {"group": "cert-manager.io", "scope": "Namespaced"},
}


def not_found():
    return ApiException(status=404, reason="Not Found")


def already_exists():
    ex = ApiException(status=409, reason="Conflict")
    ex.body = json.dumps({"kind": "Status", "reason": "AlreadyExists"})
    return ex


def as_live(desired):
    """Simulate what the API server returns for a created object."""
    live = copy.deepcopy(desired)
    live["metadata"]["uid"] = "abc"
    live["metadata"]["resourceVersion"] = "42"
    live["spec"]["revisionHistoryLimit"] = 10
    live["spec"]["template"]["spec"]["dnsPolicy"] = "ClusterFirst"
    live["status"] = {"readyReplicas": 1}
    return live


@pytest_asyncio.fixture
async def api_client():
    async with ApiClient() as client:
        yield client


@pytest.fixture
def cmd(api_client):
    spec = CertManagerDeploymentSpecSchema().load({})
    resource = CertManagerDeployment.from_spec("cluster", spec, body=OWNER)
    resource.api_client = api_client
    resource.apps_v1_api = AsyncMock()
    resource.core_v1_api = AsyncMock()
    resource.apiextensions_v1_api = AsyncMock()
    resource.sensor = Mock()
    return resource


@pytest.fixture
def deployment(cmd):
    return cmd.to_dict(cmd.prepare_deployments()[0])


@pytest.fixture(autouse=True)
def posted_events():
    with patch("cmdoperator.resources.base.post_event") as post_event:
        yield post_event


class TestConvergeCreate:
    """Tests for objects that do not exist yet."""

    @pytest.mark.asyncio
    async def test_creates_missing_object(self, cmd, deployment, posted_events):
        """Test that a missing deployment is created with an owner reference."""
        cmd.apps_v1_api.read_namespaced_deployment.side_effect = not_found()

        assert await cmd.converge(DEPLOYMENT, deployment) == CREATE

        create = cmd.apps_v1_api.create_namespaced_deployment
        create.assert_awaited_once()
        body = create.call_args.kwargs["body"]
        assert create.call_args.kwargs["namespace"] == "cert-manager"
        assert body["metadata"]["ownerReferences"][0]["uid"] == OWNER["metadata"]["uid"]
        posted_events.assert_called_once_with(
            OWNER, events.DEPLOYMENT_EVENTS.creating, "cert-manager-controller", "cert-manager"
        )

    @pytest.mark.asyncio
    async def test_crds_are_not_owned(self, cmd):
        """Test that CRDs are created without an owner reference."""
        cmd.apiextensions_v1_api.read_custom_resource_definition.side_effect = not_found()

        await cmd.converge(CUSTOM_RESOURCE_DEFINITION, copy.deepcopy(CRD))

        create = cmd.apiextensions_v1_api.create_custom_resource_definition
        body = create.call_args.kwargs["body"]
        assert "ownerReferences" not in body["metadata"]
        assert "namespace" not in create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_already_exists_updates_the_live_object(self, cmd, deployment):
        """Test that a create conflict re-reads the object and patches only drift."""
        live = as_live(deployment)
        live["metadata"]["resourceVersion"] = "77"
        live["metadata"]["annotations"] = {"unmanaged": "x"}
        live["spec"]["replicas"] = 3
        cmd.apps_v1_api.read_namespaced_deployment.side_effect = [not_found(), live]
        cmd.apps_v1_api.create_namespaced_deployment.side_effect = already_exists()

        assert await cmd.converge(DEPLOYMENT, deployment) == UPDATE

        body = cmd.apps_v1_api.replace_namespaced_deployment.call_args.kwargs["body"]
        assert body["metadata"]["resourceVersion"] == "77"
        assert body["metadata"]["annotations"] == {"unmanaged": "x"}
        assert body["spec"]["replicas"] == 1
        assert body["spec"]["revisionHistoryLimit"] == 10

    @pytest.mark.asyncio
    async def test_already_exists_and_matching_writes_nothing(self, cmd, deployment):
        """Test that a conflicting create of an up to date object stops there."""
        cmd.apps_v1_api.read_namespaced_deployment.side_effect = [
            not_found(),
            as_live(deployment),
        ]
        cmd.apps_v1_api.create_namespaced_deployment.side_effect = already_exists()

        assert await cmd.converge(DEPLOYMENT, deployment) is None
        cmd.apps_v1_api.replace_namespaced_deployment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_create_errors_propagate(self, cmd, deployment):
        """Test that create errors other than a conflict abort the pass."""
        cmd.apps_v1_api.read_namespaced_deployment.side_effect = not_found()
        cmd.apps_v1_api.create_namespaced_deployment.side_effect = ApiException(
            status=403, reason="Forbidden"
        )

        with pytest.raises(ApiException):
            await cmd.converge(DEPLOYMENT, deployment)
        cmd.apps_v1_api.replace_namespaced_deployment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_write_is_reported_to_sensor(self, cmd, deployment):
        """Test that the sensor sees the start and the end of a write."""
        cmd.apps_v1_api.read_namespaced_deployment.side_effect = not_found()

        await cmd.converge(DEPLOYMENT, deployment)

        cmd.sensor.on_resource_sync_start.assert_called_once_with(
            "cluster", "cert-manager-controller", "cert-manager", "Deployment"
        )
        args = cmd.sensor.on_resource_sync_complete.call_args.args
        assert args[5:7] == (CREATE, True)


class TestConvergeExisting:
    """Tests for objects that already exist."""

    @pytest.mark.asyncio
    async def test_matching_object_is_left_alone(self, cmd, deployment, posted_events):
        """Test that a second pass over an unchanged object writes nothing."""
        live = as_live(deployment)
        cmd.apps_v1_api.read_namespaced_deployment.return_value = live

        assert await cmd.converge(DEPLOYMENT, deployment) is None

        cmd.apps_v1_api.replace_namespaced_deployment.assert_not_awaited()
        cmd.apps_v1_api.create_namespaced_deployment.assert_not_awaited()
        posted_events.assert_not_called()

    @pytest.mark.asyncio
    async def test_drifted_spec_is_merged(self, cmd, deployment, posted_events):
        """Test that drift is repaired while keeping server defaulted fields."""
        live = as_live(deployment)
        live["spec"]["replicas"] = 3
        live["metadata"]["labels"]["extra"] = "kept"
        cmd.apps_v1_api.read_namespaced_deployment.return_value = live

        assert await cmd.converge(DEPLOYMENT, deployment) == UPDATE

        body = cmd.apps_v1_api.replace_namespaced_deployment.call_args.kwargs["body"]
        assert body["spec"]["replicas"] == 1
        assert body["spec"]["revisionHistoryLimit"] == 10
        assert body["spec"]["template"]["spec"]["dnsPolicy"] == "ClusterFirst"
        assert body["metadata"]["resourceVersion"] == "42"
        assert [c.args[1] for c in posted_events.call_args_list] == [
            events.DEPLOYMENT_EVENTS.updating,
            events.DEPLOYMENT_EVENTS.updated,
        ]
        cmd.sensor.on_resource_drift_detected.assert_called_once_with(
            "cluster", "cert-manager-controller", "cert-manager", "Deployment", ["spec"]
        )

    @pytest.mark.asyncio
    async def test_drifted_labels_are_replaced(self, cmd, deployment):
        """Test that labels missing a desired value are reset."""
        live = as_live(deployment)
        live["metadata"]["labels"] = {"app": "something-else"}
        cmd.apps_v1_api.read_namespaced_deployment.return_value = live

        assert await cmd.converge(DEPLOYMENT, deployment) == UPDATE

        body = cmd.apps_v1_api.replace_namespaced_deployment.call_args.kwargs["body"]
        assert body["metadata"]["labels"] == deployment["metadata"]["labels"]

    @pytest.mark.asyncio
    async def test_create_only_kinds_are_never_updated(self, cmd):
        """Test that an existing service account is not updated."""
        account = cmd.to_dict(cmd.prepare_service_accounts()[0])
        live = copy.deepcopy(account)
        live["automountServiceAccountToken"] = False
        cmd.core_v1_api.read_namespaced_service_account.return_value = live

        assert await cmd.converge(SERVICE_ACCOUNT, account) is None
        cmd.core_v1_api.replace_namespaced_service_account.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_read_errors_propagate(self, cmd, deployment):
        """Test that errors other than not found abort the pass."""
        cmd.apps_v1_api.read_namespaced_deployment.side_effect = ApiException(
            status=500, reason="Internal Server Error"
        )
        with pytest.raises(ApiException):
            await cmd.converge(DEPLOYMENT, deployment)

    @pytest.mark.asyncio
    async def test_failed_write_is_reported(self, cmd, deployment):
        """Test that a failing write is reported to the sensor and re-raised."""
        live = as_live(deployment)
        live["spec"]["replicas"] = 2
        cmd.apps_v1_api.read_namespaced_deployment.return_value = live
        error = ApiException(status=422, reason="Unprocessable Entity")
        cmd.apps_v1_api.replace_namespaced_deployment.side_effect = error

        with pytest.raises(ApiException):
            await cmd.converge(DEPLOYMENT, deployment)

        args = cmd.sensor.on_resource_sync_complete.call_args.args
        assert args[5:] == (UPDATE, False, error)


class TestSynchronize:
    """Tests for the full reconcile pass."""

    @pytest.mark.asyncio
    async def test_objects_are_synced_in_order(self, cmd):
        """Test the order in which kinds are converged."""
        calls = []
        for step in (
            "sync_crds",
            "sync_namespace",
            "sync_service_accounts",
            "sync_roles",
            "sync_role_bindings",
            "sync_cluster_roles",
            "sync_cluster_role_bindings",
            "sync_deployments",
            "sync_services",
            "sync_webhooks",
        ):
            setattr(cmd, step, AsyncMock(side_effect=lambda step=step: calls.append(step)))

        await cmd.synchronize()

        assert calls == [
            "sync_crds",
            "sync_namespace",
            "sync_service_accounts",
            "sync_roles",
            "sync_role_bindings",
            "sync_cluster_roles",
            "sync_cluster_role_bindings",
            "sync_deployments",
            "sync_services",
            "sync_webhooks",
        ]


class InMemoryApi:
    """Serves read, create and replace calls of every API group from one store.

    Like the API server, created objects get a uid and a resourceVersion and
    a replace must carry the stored resourceVersion.
    """

    def __init__(self):
        self.objects = {}
        self.writes = []
        self.revision = 0

    def __getattr__(self, method):
        if method.startswith(("_", "handle_")):
            raise AttributeError(method)
        verb, _, resource = method.partition("_")
        if resource.startswith("namespaced_"):
            resource = resource[len("namespaced_"):]
        handler = getattr(self, f"handle_{verb}")

        async def call(name=None, namespace=None, body=None):
            return handler(resource, name, namespace, body)

        return call

    def next_revision(self):
        self.revision += 1
        return str(self.revision)

    def handle_read(self, resource, name, namespace, body):
        try:
            return copy.deepcopy(self.objects[(resource, namespace, name)])
        except KeyError:
            raise not_found() from None

    def handle_create(self, resource, name, namespace, body):
        metadata = body["metadata"]
        key = (resource, metadata.get("namespace"), metadata["name"])
        if key in self.objects:
            raise already_exists()
        stored = copy.deepcopy(body)
        stored["metadata"]["uid"] = f"uid-{metadata['name']}"
        stored["metadata"]["resourceVersion"] = self.next_revision()
        self.objects[key] = stored
        self.writes.append((CREATE, resource, metadata["name"]))

    def handle_replace(self, resource, name, namespace, body):
        key = (resource, namespace, name)
        if key not in self.objects:
            raise not_found()
        current = self.objects[key]["metadata"]["resourceVersion"]
        if body["metadata"].get("resourceVersion") != current:
            raise ApiException(status=409, reason="Conflict")
        stored = copy.deepcopy(body)
        stored["metadata"]["resourceVersion"] = self.next_revision()
        self.objects[key] = stored
        self.writes.append((UPDATE, resource, name))


@pytest.fixture
def store(cmd):
    api = InMemoryApi()
    for attr in (
        "core_v1_api",
        "apps_v1_api",
        "rbac_v1_api",
        "apiextensions_v1_api",
        "admissionregistration_v1_api",
    ):
        setattr(cmd, attr, api)
    with patch.object(cmd, "prepare_crds", side_effect=lambda: [copy.deepcopy(CRD)]):
        yield api


class TestRepeatedPasses:
    """Tests for running the full reconcile pass against one store."""

    @pytest.mark.asyncio
    async def test_second_pass_writes_nothing(self, cmd, store):
        """Test that a pass over a converged cluster makes no writes."""
        await cmd.synchronize()
        created = list(store.writes)

        await cmd.synchronize()

        expected = 1 + sum(
            len(objects)
            for objects in (
                [cmd.prepare_namespace()],
                cmd.prepare_service_accounts(),
                cmd.prepare_roles(),
                cmd.prepare_role_bindings(),
                cmd.prepare_cluster_roles(),
                cmd.prepare_cluster_role_bindings(),
                cmd.prepare_deployments(),
                cmd.prepare_services(),
                cmd.prepare_mutating_webhooks(),
                cmd.prepare_validating_webhooks(),
            )
        )
        assert len(created) == expected
        assert {operation for operation, _, _ in created} == {CREATE}
        assert store.writes == created

    @pytest.mark.asyncio
    async def test_drift_is_repaired_once(self, cmd, store):
        """Test that drift is written back once and unmanaged fields survive."""
        await cmd.synchronize()
        key = ("deployment", "cert-manager", "cert-manager-webhook")
        store.objects[key]["spec"]["replicas"] = 4
        store.objects[key]["metadata"]["annotations"] = {"unmanaged": "x"}
        written = len(store.writes)

        await cmd.synchronize()
        await cmd.synchronize()

        assert store.writes[written:] == [
            (UPDATE, "deployment", "cert-manager-webhook")
        ]
        assert store.objects[key]["spec"]["replicas"] == 1
        assert store.objects[key]["metadata"]["annotations"] == {"unmanaged": "x"}
