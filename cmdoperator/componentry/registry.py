from typing import Callable, Dict, List, Optional

from cmdoperator.componentry import baselines
from cmdoperator.componentry.component import Component
from cmdoperator.componentry.constants import (
    CAINJECTOR,
    CERT_MANAGER_DEFAULT_VERSION,
    CONTROLLER,
    SUPPORTED_VERSIONS,
    WEBHOOK,
)
from cmdoperator.componentry.patches import VERSION_PATCHES, apply_patches
from cmdoperator.utils.errors import UnsupportedComponentError, UnsupportedVersionError

BASELINES: Dict[str, Callable[[], Component]] = {
    CONTROLLER: baselines.controller,
    CAINJECTOR: baselines.cainjector,
    WEBHOOK: baselines.webhook,
}

#: Components in the order their objects are reconciled.
COMPONENTS = (CONTROLLER, CAINJECTOR, WEBHOOK)


def resolve_version(version: Optional[str]) -> str:
    """Return ``version`` or the default version when none was requested."""
    return version if version else CERT_MANAGER_DEFAULT_VERSION


def version_is_supported(version: Optional[str]) -> bool:
    return resolve_version(version) in SUPPORTED_VERSIONS


def resolve_component(name: str, version: Optional[str] = None) -> Component:
    """Build the description of component ``name`` at ``version``.

    Raises:
        UnsupportedComponentError: ``name`` is not a cert-manager component.
        UnsupportedVersionError: the resolved version is not supported.
    """
    try:
        baseline = BASELINES[name]
    except KeyError:
        raise UnsupportedComponentError(name) from None
    resolved = resolve_version(version)
    if resolved not in VERSION_PATCHES:
        raise UnsupportedVersionError(resolved)
    return apply_patches(baseline(), resolved)


def resolve_components(version: Optional[str] = None) -> List[Component]:
    return [resolve_component(name, version) for name in COMPONENTS]
