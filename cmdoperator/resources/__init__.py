from cmdoperator.resources.base import BaseResource, ResourceKind
from cmdoperator.resources.certmanagerdeployment import CertManagerDeployment
from cmdoperator.resources.podrefresher import PodRefresher
from cmdoperator.resources.status import StatusAggregator

__all__ = [
    "BaseResource",
    "ResourceKind",
    "CertManagerDeployment",
    "PodRefresher",
    "StatusAggregator",
]
