from cmdoperator.componentry.component import Component, RoleData, WebhookData
from cmdoperator.componentry.registry import (
    COMPONENTS,
    resolve_component,
    resolve_components,
    resolve_version,
    version_is_supported,
)

__all__ = [
    "Component",
    "RoleData",
    "WebhookData",
    "COMPONENTS",
    "resolve_component",
    "resolve_components",
    "resolve_version",
    "version_is_supported",
]
