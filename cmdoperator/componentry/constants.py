from typing import Dict, Tuple

#: Version of cert-manager installed when the custom resource does not ask for one.
CERT_MANAGER_DEFAULT_VERSION = "v1.3.1"

#: Versions of cert-manager this operator knows how to deploy, oldest first.
SUPPORTED_VERSIONS: Tuple[str, ...] = ("v1.2.0", "v1.3.0", "v1.3.1")

#: Base name used for objects that include the product name.
CERT_MANAGER_BASE_NAME = "cert-manager"

#: Namespace that receives every namespaced object managed by the operator.
CERT_MANAGER_DEPLOYMENT_NAMESPACE = CERT_MANAGER_BASE_NAME

#: Only a custom resource with this name is ever reconciled.
RESERVED_INSTANCE_NAME = "cluster"

#: Key of the label that links managed objects to the custom resource.
INSTANCE_LABEL_KEY = "app.kubernetes.io/instance"

COMPONENT_LABEL_KEY = "app.kubernetes.io/component"
NAME_LABEL_KEY = "app.kubernetes.io/name"

#: Labels carried by every managed object.
STANDARD_LABELS: Dict[str, str] = {
    "app": "cert-manager",
    "app.kubernetes.io/managed-by": "operator",
}

IMAGE_REPOSITORY = "quay.io/jetstack"

CONTROLLER = "controller"
CAINJECTOR = "cainjector"
WEBHOOK = "webhook"


def standard_labels() -> Dict[str, str]:
    """Return a fresh copy of the standard labels."""
    return dict(STANDARD_LABELS)


def image_for(component_name: str, version: str) -> str:
    return f"{IMAGE_REPOSITORY}/{CERT_MANAGER_BASE_NAME}-{component_name}:{version}"
