import kopf
from logging import Logger
from kubernetes_asyncio.client import ApiException
from cmdoperator.types.models import CertManagerDeploymentSpec
from cmdoperator.types.schemas import CertManagerDeploymentSpecSchema
from cmdoperator.types.settings import Settings
from cmdoperator.resources import CertManagerDeployment
from cmdoperator.utils.errors import convert_api_exception

KIND = CertManagerDeployment.KIND


def get_sensor():
    """Get sensor from CertManagerDeployment class.

    Returns:
        Sensor instance or None
    """
    return getattr(CertManagerDeployment, "sensor", None)


async def update_status(
    cmd: CertManagerDeployment, name: str, patch, logger: Logger
) -> None:
    status = await cmd.compute_status()
    patch.status.update(status)
    logger.debug(f"Status of {KIND}/{name} is now {status['phase']}")
    sensor = get_sensor()
    if sensor:
        sensor.on_status_update(name, status["phase"], list(status.keys()))


async def reconcile(
    name, spec, meta, body, patch, logger: Logger, trigger_source: str = "manual", **kwargs
):
    """Reconcile the CertManagerDeployment."""
    if not CertManagerDeployment.is_reserved_name(name):
        logger.info(
            f"{KIND} {name} is not named cluster and will not be reconciled. "
            "Only one instance named cluster is supported."
        )
        return

    sensor = get_sensor()
    generation = meta.get("generation", 0)
    sensor_state = None
    if sensor:
        sensor_state = sensor.on_reconcile_start(name, generation, trigger_source)

    success = True
    error = None
    try:
        spec_model: CertManagerDeploymentSpec = CertManagerDeploymentSpecSchema().load(
            spec
        )
        cmd = CertManagerDeployment.from_spec(name, spec_model, body=body, logger=logger)
        if not cmd.supported_version():
            logger.error(
                f"{KIND} {name} requests unsupported cert-manager version {cmd.version}. "
                "Nothing will be reconciled."
            )
            success = False
            return

        # status reflects the cluster as found, before this pass changes it
        await update_status(cmd, name, patch, logger)
        logger.debug(f"Reconciling {KIND}/{name} with cert-manager {cmd.version}.")
        await cmd.synchronize()
        logger.debug(f"Reconciled {KIND}/{name}.")
    except ApiException as e:
        success = False
        error = e
        logger.error(f"Kubernetes API error during reconciliation: {e}")
        convert_api_exception(e, permanent=False)
    except Exception as e:
        success = False
        error = e
        logger.error(f"Unexpected error during reconciliation: {e}")
        logger.exception(e)
        raise
    finally:
        if sensor:
            sensor.on_reconcile_complete(name, sensor_state, success, error)


@kopf.on.resume(kind=KIND)
@kopf.on.create(kind=KIND)
async def on_create(reason, **kwargs):
    """Install cert-manager for a new or resumed CertManagerDeployment."""
    await reconcile(trigger_source=getattr(reason, "value", reason) or "create", **kwargs)


@kopf.on.update(kind=KIND, field="spec")
async def on_update(**kwargs):
    """Converge cert-manager after the spec changed."""
    await reconcile(trigger_source="update", **kwargs)


@kopf.timer(
    KIND,
    initial_delay=5.0,
    interval=Settings().reconcile_interval_seconds,
    backoff=10.0,
)
async def periodic_reconciliation(**kwargs):
    """Repair drift of the managed objects."""
    await reconcile(trigger_source="timer", **kwargs)
