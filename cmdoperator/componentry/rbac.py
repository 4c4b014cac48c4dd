"""RBAC rule sets used by the cert-manager components."""
from typing import List, Optional
from kubernetes_asyncio.client import V1PolicyRule

from cmdoperator.componentry.component import RoleData

CORE = ""
CERT_MANAGER = "cert-manager.io"
ACME = "acme.cert-manager.io"

READ = ("get", "list", "watch")
EDIT = ("create", "delete", "deletecollection", "patch", "update")

AGGREGATE_TO_ADMIN = "rbac.authorization.k8s.io/aggregate-to-admin"
AGGREGATE_TO_EDIT = "rbac.authorization.k8s.io/aggregate-to-edit"
AGGREGATE_TO_VIEW = "rbac.authorization.k8s.io/aggregate-to-view"


def policy_rule(
    api_groups: List[str],
    resources: List[str],
    verbs: List[str],
    resource_names: Optional[List[str]] = None,
) -> V1PolicyRule:
    return V1PolicyRule(
        api_groups=list(api_groups),
        resources=list(resources),
        verbs=list(verbs),
        resource_names=list(resource_names) if resource_names else None,
    )


# ------------------------------------------------
# ---- Roles ----
# ------------------------------------------------

ROLE_FOR_CONTROLLER = RoleData(
    name="cert-manager-controller:leaderelection",
    policy_rules=(
        policy_rule(
            [CORE],
            ["configmaps"],
            ["get", "update", "patch"],
            resource_names=["cert-manager-controller"],
        ),
        policy_rule([CORE], ["configmaps"], ["create"]),
    ),
)

ROLE_FOR_CAINJECTOR_LEADER_ELECTION = RoleData(
    name="cert-manager-cainjector:leaderelection",
    policy_rules=(
        policy_rule(
            [CORE],
            ["configmaps"],
            ["get", "update", "patch"],
            resource_names=[
                "cert-manager-cainjector-leader-election",
                "cert-manager-cainjector-leader-election-core",
            ],
        ),
        policy_rule([CORE], ["configmaps"], ["create"]),
    ),
)

ROLE_FOR_WEBHOOK = RoleData(
    name="cert-manager-webhook:dynamic-serving",
    policy_rules=(
        policy_rule(
            [CORE],
            ["secrets"],
            ["get", "list", "watch", "update"],
            resource_names=["cert-manager-webhook-ca"],
        ),
        policy_rule([CORE], ["secrets"], ["create"]),
    ),
)

# ------------------------------------------------
# ---- Cluster roles ----
# ------------------------------------------------

CLUSTER_ROLE_FOR_CLUSTER_ISSUERS = RoleData(
    name="cert-manager-controller-clusterissuers",
    policy_rules=(
        policy_rule([CERT_MANAGER], ["clusterissuers", "clusterissuers/status"], ["update"]),
        policy_rule([CERT_MANAGER], ["clusterissuers"], READ),
        policy_rule(
            [CORE], ["secrets"], ["get", "list", "watch", "create", "update", "delete"]
        ),
        policy_rule([CORE], ["events"], ["create", "patch"]),
    ),
)

CLUSTER_ROLE_FOR_ISSUERS = RoleData(
    name="cert-manager-controller-issuers",
    policy_rules=(
        policy_rule([CERT_MANAGER], ["issuers", "issuers/status"], ["update"]),
        policy_rule([CERT_MANAGER], ["issuers"], READ),
        policy_rule(
            [CORE], ["secrets"], ["get", "list", "watch", "create", "update", "delete"]
        ),
        policy_rule([CORE], ["events"], ["create", "patch"]),
    ),
)

CLUSTER_ROLE_FOR_CHALLENGES = RoleData(
    name="cert-manager-controller-challenges",
    policy_rules=(
        policy_rule([ACME], ["challenges", "challenges/status"], ["update"]),
        policy_rule([ACME], ["challenges"], READ),
        policy_rule([CERT_MANAGER], ["issuers", "clusterissuers"], READ),
        policy_rule([CORE], ["secrets"], READ),
        policy_rule([CORE], ["events"], ["create", "patch"]),
        policy_rule(
            [CORE], ["pods", "services"], ["get", "list", "watch", "create", "delete"]
        ),
        policy_rule(
            ["extensions"],
            ["ingresses"],
            ["get", "list", "watch", "create", "delete", "update"],
        ),
        policy_rule(["route.openshift.io"], ["routes/custom-host"], ["create"]),
        policy_rule([ACME], ["challenges/finalizers"], ["update"]),
        # cert-manager ships this rule twice; kept so live objects compare equal.
        policy_rule([CORE], ["secrets"], READ),
    ),
)

CLUSTER_ROLE_FOR_EDIT = RoleData(
    name="cert-manager-edit",
    is_aggregate=True,
    labels={AGGREGATE_TO_ADMIN: "true", AGGREGATE_TO_EDIT: "true"},
    policy_rules=(
        policy_rule(
            [CERT_MANAGER], ["certificates", "certificaterequests", "issuers"], EDIT
        ),
        policy_rule([ACME], ["challenges", "orders"], EDIT),
    ),
)

#: cert-manager v1.2.0 only granted read access on ACME resources to editors.
CLUSTER_ROLE_FOR_EDIT_V1_2_0 = CLUSTER_ROLE_FOR_EDIT._replace(
    policy_rules=(
        policy_rule(
            [CERT_MANAGER], ["certificates", "certificaterequests", "issuers"], EDIT
        ),
        policy_rule([ACME], ["challenges", "orders"], READ),
    ),
)

CLUSTER_ROLE_FOR_CERTIFICATES = RoleData(
    name="cert-manager-controller-certificates",
    policy_rules=(
        policy_rule(
            [CERT_MANAGER],
            [
                "certificates",
                "certificates/status",
                "certificaterequests",
                "certificaterequests/status",
            ],
            ["update"],
        ),
        policy_rule(
            [CERT_MANAGER],
            ["certificates", "certificaterequests", "clusterissuers", "issuers"],
            ["get", "watch", "list"],
        ),
        policy_rule(
            [CERT_MANAGER],
            ["certificates/finalizers", "certificaterequests/finalizers"],
            ["update"],
        ),
        policy_rule([ACME], ["orders"], ["create", "delete", "get", "list", "watch"]),
        policy_rule(
            [CORE], ["secrets"], ["get", "list", "watch", "create", "update", "delete"]
        ),
        policy_rule([CORE], ["events"], ["create", "patch"]),
    ),
)

CLUSTER_ROLE_FOR_ORDERS = RoleData(
    name="cert-manager-controller-orders",
    policy_rules=(
        policy_rule([ACME], ["orders", "orders/status"], ["update"]),
        policy_rule([ACME], ["orders", "challenges"], READ),
        policy_rule([CERT_MANAGER], ["clusterissuers", "issuers"], READ),
        policy_rule([ACME], ["challenges"], ["create", "delete"]),
        policy_rule([ACME], ["orders/finalizers"], ["update"]),
        policy_rule([CORE], ["secrets"], READ),
        policy_rule([CORE], ["events"], ["create", "patch"]),
    ),
)

CLUSTER_ROLE_FOR_INGRESS_SHIM = RoleData(
    name="cert-manager-controller-ingress-shim",
    policy_rules=(
        policy_rule(
            [CERT_MANAGER],
            ["certificates", "certificaterequests"],
            ["create", "update", "delete"],
        ),
        policy_rule(
            [CERT_MANAGER],
            ["certificates", "certificaterequests", "issuers", "clusterissuers"],
            READ,
        ),
        policy_rule(["extensions"], ["ingresses"], READ),
        policy_rule(["extensions"], ["ingresses/finalizers"], ["update"]),
        policy_rule([CORE], ["events"], ["create", "patch"]),
    ),
)

CLUSTER_ROLE_FOR_VIEW = RoleData(
    name="cert-manager-view",
    is_aggregate=True,
    labels={
        AGGREGATE_TO_ADMIN: "true",
        AGGREGATE_TO_EDIT: "true",
        AGGREGATE_TO_VIEW: "true",
    },
    policy_rules=(
        policy_rule(
            [CERT_MANAGER], ["certificates", "certificaterequests", "issuers"], READ
        ),
        policy_rule([ACME], ["challenges", "orders"], READ),
    ),
)

CLUSTER_ROLE_FOR_APPROVER = RoleData(
    name="cert-manager-controller-approve:cert-manager-io",
    policy_rules=(
        policy_rule(
            [CERT_MANAGER],
            ["signers"],
            ["approve"],
            resource_names=[
                "issuers.cert-manager.io/*",
                "clusterissuers.cert-manager.io/*",
            ],
        ),
    ),
)

CLUSTER_ROLE_FOR_CAINJECTOR = RoleData(
    name="cert-manager-cainjector",
    policy_rules=(
        policy_rule([CERT_MANAGER], ["certificates"], READ),
        policy_rule([CORE], ["secrets"], READ),
        policy_rule([CORE], ["events"], ["get", "create", "update", "patch"]),
        policy_rule(["apiregistration.k8s.io"], ["apiservices"], READ + ("update",)),
        policy_rule(
            ["apiextensions.k8s.io"],
            ["customresourcedefinitions"],
            READ + ("update",),
        ),
        policy_rule(["auditregistration.k8s.io"], ["auditsinks"], READ + ("update",)),
        policy_rule(
            ["admissionregistration.k8s.io"],
            ["validatingwebhookconfigurations", "mutatingwebhookconfigurations"],
            READ + ("update",),
        ),
    ),
)

CLUSTER_ROLE_FOR_SUBJECT_ACCESS_REVIEWS = RoleData(
    name="cert-manager-webhook:subjectaccessreviews",
    policy_rules=(
        policy_rule(["authorization.k8s.io"], ["subjectaccessreviews"], ["create"]),
    ),
)
