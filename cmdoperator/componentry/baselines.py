"""Latest-version descriptions of each cert-manager component.

Every function builds a brand new ``Component`` so no two reconcile
passes ever share nested models.
"""
from typing import Dict, List
from kubernetes_asyncio.client import (
    AdmissionregistrationV1ServiceReference,
    AdmissionregistrationV1WebhookClientConfig,
    V1Container,
    V1ContainerPort,
    V1EnvVar,
    V1EnvVarSource,
    V1HTTPGetAction,
    V1LabelSelector,
    V1LabelSelectorRequirement,
    V1MutatingWebhook,
    V1ObjectFieldSelector,
    V1ObjectMeta,
    V1PodSpec,
    V1PodTemplateSpec,
    V1Probe,
    V1RuleWithOperations,
    V1ServicePort,
    V1ServiceSpec,
    V1ValidatingWebhook,
)

from cmdoperator.componentry import rbac
from cmdoperator.componentry.component import Component, WebhookData
from cmdoperator.componentry.constants import (
    CAINJECTOR,
    CERT_MANAGER_DEFAULT_VERSION,
    CERT_MANAGER_DEPLOYMENT_NAMESPACE,
    COMPONENT_LABEL_KEY,
    CONTROLLER,
    NAME_LABEL_KEY,
    WEBHOOK,
    image_for,
    standard_labels,
)

IMAGE_PULL_POLICY = "IfNotPresent"
CONTAINER_NAME = "cert-manager"
WEBHOOK_TIMEOUT_SECONDS = 10
WEBHOOK_SERVICE_NAME = "cert-manager-webhook"


def component_labels(name: str) -> Dict[str, str]:
    return {
        COMPONENT_LABEL_KEY: name,
        NAME_LABEL_KEY: name,
        **standard_labels(),
    }


def pod_namespace_env() -> List[V1EnvVar]:
    return [
        V1EnvVar(
            name="POD_NAMESPACE",
            value_from=V1EnvVarSource(
                field_ref=V1ObjectFieldSelector(field_path="metadata.namespace")
            ),
        )
    ]


def container(name: str, **extra) -> V1Container:
    return V1Container(
        name=CONTAINER_NAME,
        args=[],
        env=pod_namespace_env(),
        image=image_for(name, CERT_MANAGER_DEFAULT_VERSION),
        image_pull_policy=IMAGE_PULL_POLICY,
        **extra,
    )


def pod_template(
    pod_container: V1Container, annotations: Dict[str, str] = None
) -> V1PodTemplateSpec:
    return V1PodTemplateSpec(
        metadata=V1ObjectMeta(annotations=annotations),
        spec=V1PodSpec(containers=[pod_container]),
    )


def http_probe(path: str, initial_delay: int, period: int) -> V1Probe:
    return V1Probe(
        http_get=V1HTTPGetAction(path=path, port=6080, scheme="HTTP"),
        initial_delay_seconds=initial_delay,
        period_seconds=period,
        success_threshold=1,
        timeout_seconds=1,
        failure_threshold=3,
    )


def cluster_ip_service(port: int, target_port: int) -> V1ServiceSpec:
    return V1ServiceSpec(
        ports=[V1ServicePort(protocol="TCP", port=port, target_port=target_port)],
        type="ClusterIP",
    )


def controller() -> Component:
    return Component(
        name=CONTROLLER,
        version=CERT_MANAGER_DEFAULT_VERSION,
        service_account_name="cert-manager",
        labels=component_labels(CONTROLLER),
        cluster_roles=(
            rbac.CLUSTER_ROLE_FOR_CLUSTER_ISSUERS,
            rbac.CLUSTER_ROLE_FOR_ISSUERS,
            rbac.CLUSTER_ROLE_FOR_CHALLENGES,
            rbac.CLUSTER_ROLE_FOR_EDIT,
            rbac.CLUSTER_ROLE_FOR_INGRESS_SHIM,
            rbac.CLUSTER_ROLE_FOR_ORDERS,
            rbac.CLUSTER_ROLE_FOR_CERTIFICATES,
            rbac.CLUSTER_ROLE_FOR_VIEW,
            rbac.CLUSTER_ROLE_FOR_APPROVER,
        ),
        roles=(rbac.ROLE_FOR_CONTROLLER,),
        pod_template=pod_template(
            container(
                CONTROLLER,
                ports=[V1ContainerPort(container_port=9402, protocol="TCP")],
            ),
            annotations={
                "prometheus.io/path": "/metrics",
                "prometheus.io/port": "9402",
                "prometheus.io/scrape": "true",
            },
        ),
        service=cluster_ip_service(9402, 9402),
    )


def cainjector() -> Component:
    return Component(
        name=CAINJECTOR,
        version=CERT_MANAGER_DEFAULT_VERSION,
        service_account_name="cert-manager-cainjector",
        labels=component_labels(CAINJECTOR),
        cluster_roles=(rbac.CLUSTER_ROLE_FOR_CAINJECTOR,),
        roles=(rbac.ROLE_FOR_CAINJECTOR_LEADER_ELECTION,),
        pod_template=pod_template(container(CAINJECTOR)),
    )


def client_config(path: str) -> AdmissionregistrationV1WebhookClientConfig:
    return AdmissionregistrationV1WebhookClientConfig(
        service=AdmissionregistrationV1ServiceReference(
            name=WEBHOOK_SERVICE_NAME,
            namespace=CERT_MANAGER_DEPLOYMENT_NAMESPACE,
            path=path,
        )
    )


def admission_rules() -> List[V1RuleWithOperations]:
    return [
        V1RuleWithOperations(
            operations=["CREATE", "UPDATE"],
            api_groups=["cert-manager.io", "acme.certmanager.io"],
            api_versions=["*"],
            resources=["*/*"],
        )
    ]


def mutating_webhook() -> V1MutatingWebhook:
    return V1MutatingWebhook(
        name="webhook.cert-manager.io",
        admission_review_versions=["v1", "v1beta1"],
        client_config=client_config("/mutate"),
        failure_policy="Fail",
        side_effects="None",
        timeout_seconds=WEBHOOK_TIMEOUT_SECONDS,
        rules=admission_rules(),
    )


def validating_webhook() -> V1ValidatingWebhook:
    return V1ValidatingWebhook(
        name="webhook.cert-manager.io",
        admission_review_versions=["v1", "v1beta1"],
        client_config=client_config("/validate"),
        failure_policy="Fail",
        side_effects="None",
        timeout_seconds=WEBHOOK_TIMEOUT_SECONDS,
        rules=admission_rules(),
        namespace_selector=V1LabelSelector(
            match_expressions=[
                V1LabelSelectorRequirement(
                    key="cert-manager.io/disable-validation",
                    operator="NotIn",
                    values=["true"],
                ),
                V1LabelSelectorRequirement(
                    key="name", operator="NotIn", values=["cert-manager"]
                ),
            ]
        ),
    )


def webhook() -> Component:
    return Component(
        name=WEBHOOK,
        version=CERT_MANAGER_DEFAULT_VERSION,
        service_account_name="cert-manager-webhook",
        labels=component_labels(WEBHOOK),
        cluster_roles=(rbac.CLUSTER_ROLE_FOR_SUBJECT_ACCESS_REVIEWS,),
        roles=(rbac.ROLE_FOR_WEBHOOK,),
        pod_template=pod_template(
            container(
                WEBHOOK,
                liveness_probe=http_probe("/livez", initial_delay=60, period=10),
                readiness_probe=http_probe("/healthz", initial_delay=5, period=5),
                ports=[V1ContainerPort(container_port=10250, name="https")],
            )
        ),
        service=cluster_ip_service(443, 10250),
        webhooks=(
            WebhookData(
                name=WEBHOOK_SERVICE_NAME,
                annotations={
                    "cert-manager.io/inject-ca-from-secret": "cert-manager/cert-manager-webhook-ca",
                },
                mutating_webhooks=(mutating_webhook(),),
                validating_webhooks=(validating_webhook(),),
            ),
        ),
    )
