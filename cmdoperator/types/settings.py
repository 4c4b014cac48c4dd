import os
from typing import Any

_TRUE, _FALSE = {"True", "true", "yes", "1"}, {"False", "false", "no", "0"}


def _getenv(name: str, *default: Any) -> Any:
    try:
        v = os.environ[name]
        if v in _TRUE:
            return True
        elif v in _FALSE:
            return False
        else:
            return v
    except KeyError:
        pass
    if default:
        return default[0]
    raise KeyError(name)


def _getenv_bool(name: str, default: bool) -> bool:
    value = _getenv(name, default)
    if not isinstance(value, bool):
        raise ValueError(
            f"{name} must be one of {sorted(_TRUE | _FALSE)}, got {value!r}"
        )
    return value


# ------------------------------------------------
# ---- Defaults and environment variables ----
# ------------------------------------------------

#: Directory holding the CRD manifests, one subdirectory per cert-manager version
CRD_DIR = str(_getenv("CRD_DIR", os.getcwd()))

#: Seconds between periodic reconciliations of the CertManagerDeployment
RECONCILE_INTERVAL_SECONDS = float(_getenv("RECONCILE_INTERVAL_SECONDS", 60.0))

#: Maximum number of concurrent kopf workers
WORKER_LIMIT = int(_getenv("WORKER_LIMIT", 2))

#: Restart workloads that mount a cert-manager secret when the secret changes
POD_REFRESHER_ENABLED = _getenv_bool("POD_REFRESHER_ENABLED", True)

#: Port the Prometheus metrics server listens on
METRICS_PORT = int(_getenv("METRICS_PORT", 8000))


class Settings:
    """Operator settings"""

    crd_dir: str = CRD_DIR
    reconcile_interval_seconds: float = RECONCILE_INTERVAL_SECONDS
    worker_limit: int = WORKER_LIMIT
    pod_refresher_enabled: bool = POD_REFRESHER_ENABLED
    metrics_port: int = METRICS_PORT

    def __init__(
        self,
        *args,
        crd_dir: str = None,
        reconcile_interval_seconds: float = None,
        worker_limit: int = None,
        pod_refresher_enabled: bool = None,
        metrics_port: int = None,
        **kwargs,
    ):
        if crd_dir is not None:
            self.crd_dir = crd_dir

        if reconcile_interval_seconds is not None:
            self.reconcile_interval_seconds = reconcile_interval_seconds

        if worker_limit is not None:
            self.worker_limit = worker_limit

        if pod_refresher_enabled is not None:
            self.pod_refresher_enabled = pod_refresher_enabled

        if metrics_port is not None:
            self.metrics_port = metrics_port
