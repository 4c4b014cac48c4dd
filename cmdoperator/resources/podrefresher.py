"""Restart workloads that mount a cert-manager issued secret when it changes.

Only workloads that opt in with the allow-restart annotation are touched.
A restart is triggered by stamping a label on the pod template, and the
secret's resourceVersion is recorded on the workload so the same secret
revision never restarts it twice.
"""
import copy
import json
import logging
from datetime import datetime
from logging import Logger
from typing import Any, Dict, List, Mapping, NamedTuple, Optional
from kubernetes_asyncio.client import ApiException
from cmdoperator.events import POD_REFRESH, POD_REFRESH_FAILURE, post_event
from cmdoperator.resources.base import BaseResource
from cmdoperator.utils.helpers import canonicalize_dict, time_restarted_value

JSON = Dict[str, Any]

SECRET_RESOURCE_VERSIONS_ANNOTATION = (
    "certmanagerdeployment.opdev.io/secret-resource-versions"
)
ISSUER_KIND_ANNOTATION = "cert-manager.io/issuer-kind"
ALLOW_RESTART_ANNOTATION = "certmanagerdeployment.opdev.io/allow-restart"
TIME_RESTARTED_LABEL = "certmanagerdeployment.opdev.io/time-restarted"


class WorkloadKind(NamedTuple):
    kind: str
    resource: str
    api_version: str = "apps/v1"


WORKLOAD_KINDS = (
    WorkloadKind("Deployment", "deployment"),
    WorkloadKind("DaemonSet", "daemon_set"),
    WorkloadKind("StatefulSet", "stateful_set"),
)


def is_cert_manager_secret(secret: Mapping[str, Any]) -> bool:
    annotations = (secret.get("metadata") or {}).get("annotations") or {}
    return ISSUER_KIND_ANNOTATION in annotations


def has_allow_restart_annotation(workload: Mapping[str, Any]) -> bool:
    annotations = (workload.get("metadata") or {}).get("annotations") or {}
    return annotations.get(ALLOW_RESTART_ANNOTATION) == "true"


def uses_secret(secret_name: str, workload: Mapping[str, Any]) -> bool:
    """True when the pod template mounts `secret_name` as a volume."""
    pod_spec = ((workload.get("spec") or {}).get("template") or {}).get("spec") or {}
    return any(
        (volume.get("secret") or {}).get("secretName") == secret_name
        for volume in pod_spec.get("volumes") or []
    )


def recorded_resource_versions(annotations: Optional[Mapping[str, str]]) -> Optional[Dict]:
    """Decode the resource versions annotation, None when missing or malformed."""
    value = (annotations or {}).get(SECRET_RESOURCE_VERSIONS_ANNOTATION)
    if value is None:
        return None
    try:
        versions = json.loads(value)
    except ValueError:
        return None
    return versions if isinstance(versions, dict) else None


def outdated_secret_in_use(
    secret_name: str, resource_version: str, annotations: Optional[Mapping[str, str]]
) -> bool:
    versions = recorded_resource_versions(annotations)
    if versions is None or secret_name not in versions:
        return True
    return versions[secret_name] != resource_version


def needs_refresh(secret: Mapping[str, Any], workload: Mapping[str, Any]) -> bool:
    metadata = secret["metadata"]
    return (
        has_allow_restart_annotation(workload)
        and uses_secret(metadata["name"], workload)
        and outdated_secret_in_use(
            metadata["name"],
            metadata.get("resourceVersion"),
            workload["metadata"].get("annotations"),
        )
    )


def refreshed(
    secret: Mapping[str, Any], workload: Mapping[str, Any], when: datetime = None
) -> JSON:
    """Return a copy of `workload` stamped for a restart."""
    updated = copy.deepcopy(dict(workload))
    restarted_at = time_restarted_value(when)
    metadata = updated["metadata"]
    metadata.setdefault("labels", {})
    metadata["labels"] = {**(metadata["labels"] or {}), TIME_RESTARTED_LABEL: restarted_at}

    template_metadata = updated["spec"]["template"].setdefault("metadata", {})
    template_metadata["labels"] = {
        **(template_metadata.get("labels") or {}),
        TIME_RESTARTED_LABEL: restarted_at,
    }

    annotations = dict(metadata.get("annotations") or {})
    versions = recorded_resource_versions(annotations) or {}
    versions[secret["metadata"]["name"]] = secret["metadata"].get("resourceVersion")
    annotations[SECRET_RESOURCE_VERSIONS_ANNOTATION] = canonicalize_dict(versions)
    metadata["annotations"] = annotations
    return updated


class PodRefresher(BaseResource):
    """Restarts opted-in workloads in the namespace of a changed secret."""

    def __init__(self, secret: Mapping[str, Any], logger: Logger = None):
        self.secret = secret
        self.logger = logger or logging.getLogger(__name__)

    @property
    def secret_name(self) -> str:
        return self.secret["metadata"]["name"]

    @property
    def namespace(self) -> str:
        return self.secret["metadata"].get("namespace")

    async def list_workloads(self, workload_kind: WorkloadKind) -> List[JSON]:
        items = await self.list_namespaced(
            "apps_v1_api", workload_kind.resource, self.namespace
        )
        for item in items:
            # list results omit the type of each item
            item["apiVersion"] = workload_kind.api_version
            item["kind"] = workload_kind.kind
        return items

    async def refresh(self, workload_kind: WorkloadKind, workload: JSON) -> bool:
        name = workload["metadata"]["name"]
        self.logger.info(
            f"{workload_kind.kind} {self.namespace}/{name} makes use of secret "
            f"{self.secret_name} and has opted-in, initiating refresh"
        )
        replace = getattr(
            self.apps_v1_api, f"replace_namespaced_{workload_kind.resource}"
        )
        success = True
        try:
            await replace(
                name=name,
                namespace=self.namespace,
                body=refreshed(self.secret, workload),
            )
        except ApiException as ex:
            success = False
            self.logger.error(
                f"Unable to restart {workload_kind.kind} {self.namespace}/{name}: {ex}"
            )
            post_event(workload, POD_REFRESH_FAILURE)
        else:
            post_event(workload, POD_REFRESH)
        self.sensor.on_pod_refresh(self.namespace, workload_kind.kind, name, success)
        return success

    async def synchronize(self) -> List[str]:
        """Refresh every workload using the secret.

        Returns the names of the workloads that failed to refresh. Failures
        are not retried.
        """
        if not is_cert_manager_secret(self.secret):
            self.logger.info(
                f"Secret {self.namespace}/{self.secret_name} is not a cert-manager "
                "issued certificate. Disregarding."
            )
            return []

        failed = []
        for workload_kind in WORKLOAD_KINDS:
            for workload in await self.list_workloads(workload_kind):
                if not needs_refresh(self.secret, workload):
                    continue
                if not await self.refresh(workload_kind, workload):
                    failed.append(f"{workload_kind.kind}/{workload['metadata']['name']}")

        if failed:
            self.logger.info(
                "Resource(s) that opted-in to refreshes have failed to refresh but "
                f"the request will not be retried: {', '.join(failed)}"
            )
        return failed
