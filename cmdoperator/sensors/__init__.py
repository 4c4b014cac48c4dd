"""cert-manager operator sensor framework.

Hook based instrumentation of the operator lifecycle:

- OperatorSensor: base class defining lifecycle hooks
- SensorDelegate: fans events out to several sensor backends
- PrometheusMonitor: Prometheus metrics exporter

Usage:
    from cmdoperator.sensors import SensorDelegate, PrometheusMonitor

    delegate = SensorDelegate()
    delegate.add(PrometheusMonitor())
"""

from cmdoperator.sensors.base import OperatorSensor
from cmdoperator.sensors.delegate import SensorDelegate
from cmdoperator.sensors.prometheus import PrometheusMonitor
from cmdoperator.sensors.server import init_metrics_server

__all__ = [
    'OperatorSensor',
    'SensorDelegate',
    'PrometheusMonitor',
    'init_metrics_server',
]
