"""Per-version adjustments applied on top of the latest baselines.

``VERSION_PATCHES`` maps a cert-manager version to the ordered, named
patches that turn a baseline component into that version. Supporting a
new version is a matter of adding a row here.
"""
from typing import Callable, Dict, NamedTuple, Tuple

from cmdoperator.componentry import rbac
from cmdoperator.componentry.component import Component
from cmdoperator.componentry.constants import CONTROLLER, image_for


class Patch(NamedTuple):
    name: str
    apply: Callable[[Component, str], Component]


def _pin_image(component: Component, version: str) -> Component:
    return component.with_container(image=image_for(component.name, version))


def _legacy_edit_role(component: Component, version: str) -> Component:
    if component.name != CONTROLLER:
        return component
    return component.with_cluster_role(rbac.CLUSTER_ROLE_FOR_EDIT_V1_2_0)


PIN_IMAGE = Patch("pin-image", _pin_image)
LEGACY_EDIT_ROLE = Patch("legacy-edit-role", _legacy_edit_role)

VERSION_PATCHES: Dict[str, Tuple[Patch, ...]] = {
    "v1.3.1": (),
    "v1.3.0": (PIN_IMAGE,),
    "v1.2.0": (PIN_IMAGE, LEGACY_EDIT_ROLE),
}


def apply_patches(component: Component, version: str) -> Component:
    """Apply every patch registered for ``version`` in order."""
    for patch in VERSION_PATCHES[version]:
        component = patch.apply(component, version)
    return component._replace(version=version)
