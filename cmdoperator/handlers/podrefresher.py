import kopf
from logging import Logger
from cmdoperator.resources import PodRefresher
from cmdoperator.resources.podrefresher import ISSUER_KIND_ANNOTATION
from cmdoperator.types.settings import Settings

REFRESH_EVENT_TYPES = (None, "ADDED", "MODIFIED")


def refresher_enabled(**_) -> bool:
    return Settings().pod_refresher_enabled


@kopf.on.event(
    "v1",
    "secrets",
    annotations={ISSUER_KIND_ANNOTATION: kopf.PRESENT},
    when=refresher_enabled,
)
async def on_certificate_secret(event, body, logger: Logger, **kwargs):
    """Restart opted-in workloads that mount a changed cert-manager secret."""
    if event.get("type") not in REFRESH_EVENT_TYPES:
        return
    await PodRefresher(body, logger=logger).synchronize()
