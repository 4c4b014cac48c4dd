"""Status of a CertManagerDeployment derived from the objects it manages."""
from typing import Any, Dict, List, Optional, Sequence, Tuple
from kubernetes_asyncio.client import ApiException
from cmdoperator.resources.base import (
    CUSTOM_RESOURCE_DEFINITION,
    DEPLOYMENT,
    BaseResource,
)
from cmdoperator.utils.errors import CRDLoadError
from cmdoperator.utils.helpers import now

JSON = Dict[str, Any]

PHASE_UNKNOWN = "unknown"
PHASE_PENDING = "pending"
PHASE_PROGRESSING = "progressing"
PHASE_RUNNING = "running"

VERSION_UNKNOWN = "unknown"

CONDITION_TRUE = "True"
CONDITION_FALSE = "False"
CONDITION_UNKNOWN = "Unknown"

DEPLOYMENTS_ARE_READY = "DeploymentsAreReady"
CRDS_ARE_READY = "CRDsAreReady"


def condition_status(value: bool) -> str:
    return CONDITION_TRUE if value else CONDITION_FALSE


def deployment_is_ready(deployment: JSON) -> bool:
    """Available, ready and desired replica counts all agree."""
    spec = deployment.get("spec") or {}
    status = deployment.get("status") or {}
    desired = spec.get("replicas", 1)
    ready = status.get("readyReplicas") or 0
    available = status.get("availableReplicas") or 0
    return available == ready and ready == desired


def deployments_are_ready(deployments: Sequence[JSON]) -> str:
    return condition_status(all(deployment_is_ready(d) for d in deployments))


def crd_is_ready(crd: JSON) -> bool:
    """Both the Established and NamesAccepted conditions are true."""
    conditions = (crd.get("status") or {}).get("conditions") or []
    true_types = {c.get("type") for c in conditions if c.get("status") == CONDITION_TRUE}
    return {"Established", "NamesAccepted"} <= true_types


def crds_are_ready(crds: Sequence[JSON]) -> str:
    return condition_status(all(crd_is_ready(crd) for crd in crds))


def new_condition(type_: str, status: str, reason: str, message: str) -> JSON:
    return {
        "type": type_,
        "status": status,
        "reason": reason,
        "message": message,
        "lastUpdateTime": now(),
    }


def deployments_condition(found: Optional[Sequence[JSON]], expected: int) -> JSON:
    status = CONDITION_UNKNOWN
    if found is not None and len(found) == expected:
        status = deployments_are_ready(found)
    return new_condition(
        DEPLOYMENTS_ARE_READY,
        status,
        "AllDeploymentsHealthy",
        "Deployment available and ready pods matches desired.",
    )


def crds_condition(found: Optional[Sequence[JSON]], expected: int) -> JSON:
    status = CONDITION_UNKNOWN
    if found is not None and len(found) == expected:
        status = crds_are_ready(found)
    return new_condition(
        CRDS_ARE_READY,
        status,
        "AllCRDsHealthy",
        "CRDs NamesAccepted and Established Conditions are true.",
    )


def phase_for(conditions: Sequence[JSON]) -> str:
    """`running` when both readiness conditions are true, `pending` otherwise."""
    by_type = {condition["type"]: condition for condition in conditions}
    healthy = all(
        by_type.get(type_, {}).get("status") == CONDITION_TRUE
        for type_ in (DEPLOYMENTS_ARE_READY, CRDS_ARE_READY)
    )
    return PHASE_RUNNING if healthy else PHASE_PENDING


def deployment_conditions(deployments: Sequence[JSON]) -> List[JSON]:
    return [
        {
            "namespacedName": f"{d['metadata'].get('namespace')}/{d['metadata']['name']}",
            "conditions": (d.get("status") or {}).get("conditions") or [],
        }
        for d in deployments
    ]


def crd_conditions(crds: Sequence[JSON]) -> List[JSON]:
    return [
        {
            "name": crd["metadata"]["name"],
            "conditions": (crd.get("status") or {}).get("conditions") or [],
        }
        for crd in crds
    ]


def initial_status() -> JSON:
    return {
        "version": VERSION_UNKNOWN,
        "phase": PHASE_UNKNOWN,
        "conditions": [],
    }


class StatusAggregator:
    """Reads the live Deployments and CRDs of a CertManagerDeployment.

    Nothing is written to the cluster; the caller decides how the computed
    status is stored.
    """

    def __init__(self, resource: BaseResource):
        self.resource = resource

    async def find(
        self, kind, expected: Sequence[Any]
    ) -> Tuple[Optional[List[JSON]], int]:
        """Fetch the live counterpart of each expected object.

        Returns None instead of the found list when a lookup fails for any
        reason other than the object being absent.
        """
        found = []
        for obj in expected:
            metadata = self.resource.to_dict(obj)["metadata"]
            try:
                live = await self.resource.fetch(
                    kind, metadata["name"], metadata.get("namespace")
                )
            except ApiException as ex:
                self.resource.logger.error(
                    f"Unable to query for existing {kind.kind} {metadata['name']}: {ex}"
                )
                return None, len(expected)
            if live is not None:
                found.append(live)
        return found, len(expected)

    async def deployments(self) -> Tuple[Optional[List[JSON]], int]:
        return await self.find(DEPLOYMENT, self.resource.prepare_deployments())

    async def crds(self) -> Tuple[Optional[List[JSON]], int]:
        try:
            expected = self.resource.prepare_crds()
        except CRDLoadError as ex:
            self.resource.logger.info(
                f"Unable to determine status of expected CRDs: {ex}"
            )
            return None, 0
        return await self.find(CUSTOM_RESOURCE_DEFINITION, expected)

    async def compute(self) -> JSON:
        status = initial_status()
        status["version"] = self.resource.version

        deployments, expected_deployments = await self.deployments()
        if deployments is None:
            self.resource.logger.info(
                "Unable to determine status of expected deployments for this instance"
            )
        status["conditions"].append(
            deployments_condition(deployments, expected_deployments)
        )
        status["deploymentConditions"] = deployment_conditions(deployments or [])

        crds, expected_crds = await self.crds()
        if crds is None:
            self.resource.logger.info(
                "Unable to determine status of expected CRDs for this instance"
            )
        status["conditions"].append(crds_condition(crds, expected_crds))
        status["crdConditions"] = crd_conditions(crds or [])

        status["phase"] = phase_for(status["conditions"])
        return status
