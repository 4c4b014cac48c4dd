from .certmanagerdeployment_spec import (
    ContainerArgOverridesSchema,
    DangerZoneSchema,
    CertManagerDeploymentSpecSchema,
)
