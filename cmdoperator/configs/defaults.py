"""Default configuration documents for each component and version."""
import yaml
from typing import Dict, Mapping
from marshmallow import Schema
from cmdoperator.componentry.constants import (
    CONTROLLER,
    CAINJECTOR,
    WEBHOOK,
    SUPPORTED_VERSIONS,
)
from cmdoperator.configs.schemas import (
    ControllerConfigSchema,
    CAInjectorConfigSchema,
    WebhookConfigSchema,
)
from cmdoperator.utils.errors import UnsupportedComponentError, UnsupportedVersionError

CONFIG_API_VERSION = "certmanagerconfigs.operators.opdev.io/v1"

CONTROLLER_DEFAULTS = f"""
apiVersion: {CONFIG_API_VERSION}
kind: CertManagerControllerConfig
flags:
  v: 2
  cluster-resource-namespace: $(POD_NAMESPACE)
  leader-election-namespace: $(POD_NAMESPACE)
"""

WEBHOOK_DEFAULTS = f"""
apiVersion: {CONFIG_API_VERSION}
kind: CertManagerWebhookConfig
flags:
  v: 2
  secure-port: 10250
  dynamic-serving-ca-secret-namespace: $(POD_NAMESPACE)
  dynamic-serving-ca-secret-name: cert-manager-webhook-ca
  dynamic-serving-dns-names:
    - cert-manager-webhook
    - cert-manager-webhook.cert-manager
    - cert-manager-webhook.cert-manager.svc
"""

CAINJECTOR_DEFAULTS = f"""
apiVersion: {CONFIG_API_VERSION}
kind: CertManagerCAInjectorConfig
flags:
  v: 2
  leader-election-namespace: $(POD_NAMESPACE)
"""

_COMPONENT_DEFAULTS = {
    CONTROLLER: CONTROLLER_DEFAULTS,
    CAINJECTOR: CAINJECTOR_DEFAULTS,
    WEBHOOK: WEBHOOK_DEFAULTS,
}

_COMPONENT_SCHEMAS = {
    CONTROLLER: ControllerConfigSchema,
    CAINJECTOR: CAInjectorConfigSchema,
    WEBHOOK: WebhookConfigSchema,
}

#: Default documents per version. Every supported version currently shares them.
DEFAULT_CONFIGS: Mapping[str, Mapping[str, str]] = {
    version: dict(_COMPONENT_DEFAULTS) for version in SUPPORTED_VERSIONS
}

#: Config schemas per version.
CONFIG_SCHEMAS: Mapping[str, Mapping[str, type]] = {
    version: dict(_COMPONENT_SCHEMAS) for version in SUPPORTED_VERSIONS
}


def _lookup(table: Mapping[str, Mapping], component: str, version: str):
    if version not in table:
        raise UnsupportedVersionError(version)
    by_component = table[version]
    if component not in by_component:
        raise UnsupportedComponentError(component)
    return by_component[component]


def default_config_for(component: str, version: str) -> Dict:
    """Return a freshly decoded default document for a component at a version."""
    return yaml.safe_load(_lookup(DEFAULT_CONFIGS, component, version))


def schema_for(component: str, version: str) -> Schema:
    return _lookup(CONFIG_SCHEMAS, component, version)()
