from .certmanagerdeployment_spec import (
    ContainerArgOverrides,
    DangerZone,
    DeploymentCustomization,
    CertManagerDeploymentSpec,
)
