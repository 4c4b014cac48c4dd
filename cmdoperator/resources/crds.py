"""CustomResourceDefinition documents shipped with each cert-manager version."""
import os
import yaml
from typing import Dict, List, Optional, Tuple
from cmdoperator.componentry import version_is_supported
from cmdoperator.utils.errors import CRDLoadError

CRD_KIND = "CustomResourceDefinition"

CRD_FILES: Tuple[str, ...] = (
    "cert-manager.io_issuers_crd.yaml",
    "cert-manager.io_certificates_crd.yaml",
    "cert-manager.io_certificaterequests_crd.yaml",
    "cert-manager.io_clusterissuers_crd.yaml",
    "acme.cert-manager.io_challenges_crd.yaml",
    "acme.cert-manager.io_orders_crd.yaml",
)


def crd_paths(version: str, crd_dir: Optional[str] = None) -> List[str]:
    """Return the CRD manifest paths for `version`, in the order they are applied."""
    if not version_is_supported(version):
        raise CRDLoadError(f"unsupported version {version}")
    root = crd_dir or os.getcwd()
    return [os.path.join(root, version, filename) for filename in CRD_FILES]


def load_crd(path: str) -> Dict:
    try:
        with open(path) as f:
            document = yaml.safe_load(f)
    except yaml.YAMLError as ex:
        raise CRDLoadError(f"unable to decode {path}: {ex}") from ex
    if not isinstance(document, dict) or document.get("kind") != CRD_KIND:
        found = document.get("kind") if isinstance(document, dict) else type(document).__name__
        raise CRDLoadError(
            f"expected {CRD_KIND} but got {found} from file at path {path}"
        )
    return document


def load_crds(version: str, crd_dir: Optional[str] = None) -> List[Dict]:
    """Load every CRD for `version` from ``<crd_dir>/<version>/``.

    Raises:
        CRDLoadError: The version is unsupported, a file is missing or a
            file does not hold a CustomResourceDefinition.
    """
    paths = crd_paths(version, crd_dir)
    for path in paths:
        if not os.path.exists(path):
            raise CRDLoadError(
                f"unable to find CRDs for version {version}. Missing {path}"
            )
    return [load_crd(path) for path in paths]
