from marshmallow import fields, validate
from cmdoperator.types.base import BaseSchema, EXCLUDE
from cmdoperator.configs.models import (
    LoggingFlags,
    LeaderElectionFlags,
    ControllerFlags,
    CAInjectorFlags,
    WebhookFlags,
    ComponentConfig,
)


def _flag(field_cls, name, **kwargs):
    return field_cls(data_key=name, allow_none=True, **kwargs)


def _list_flag(name):
    return fields.List(fields.Str(), data_key=name, allow_none=True)


class LoggingFlagsSchema(BaseSchema):
    """klog flags shared by every cert-manager binary."""

    __model__ = LoggingFlags

    class Meta:
        unknown = EXCLUDE
        ordered = True

    add_dir_header = _flag(fields.Bool, "add_dir_header")
    alsologtostderr = _flag(fields.Bool, "alsologtostderr")
    log_flush_frequency = _flag(fields.Str, "log-flush-frequency")
    log_backtrace_at = _flag(fields.Str, "log_backtrace_at")
    log_dir = _flag(fields.Str, "log_dir")
    log_file = _flag(fields.Str, "log_file")
    log_file_max_size = _flag(
        fields.Int, "log_file_max_size", validate=validate.Range(min=0)
    )
    logtostderr = _flag(fields.Bool, "logtostderr")
    skip_headers = _flag(fields.Bool, "skip_headers")
    skip_log_headers = _flag(fields.Bool, "skip_log_headers")
    stderrthreshold = _flag(fields.Int, "stderrthreshold")
    v = _flag(fields.Int, "v")
    vmodule = _flag(fields.Str, "vmodule")


class LeaderElectionFlagsSchema(LoggingFlagsSchema):
    __model__ = LeaderElectionFlags

    kubeconfig = _flag(fields.Str, "kubeconfig")
    master = _flag(fields.Str, "master")
    namespace = _flag(fields.Str, "namespace")
    leader_elect = _flag(fields.Bool, "leader-elect")
    leader_election_lease_duration = _flag(fields.Str, "leader-election-lease-duration")
    leader_election_namespace = _flag(fields.Str, "leader-election-namespace")
    leader_election_renew_deadline = _flag(fields.Str, "leader-election-renew-deadline")
    leader_election_retry_period = _flag(fields.Str, "leader-election-retry-period")


class ControllerFlagsSchema(LeaderElectionFlagsSchema):
    __model__ = ControllerFlags

    acme_http01_solver_image = _flag(fields.Str, "acme-http01-solver-image")
    acme_http01_solver_resource_limits_cpu = _flag(
        fields.Str, "acme-http01-solver-resource-limits-cpu"
    )
    acme_http01_solver_resource_limits_memory = _flag(
        fields.Str, "acme-http01-solver-resource-limits-memory"
    )
    acme_http01_solver_resource_request_cpu = _flag(
        fields.Str, "acme-http01-solver-resource-request-cpu"
    )
    acme_http01_solver_resource_request_memory = _flag(
        fields.Str, "acme-http01-solver-resource-request-memory"
    )
    auto_certificate_annotations = _list_flag("auto-certificate-annotations")
    cluster_issuer_ambient_credentials = _flag(
        fields.Bool, "cluster-issuer-ambient-credentials"
    )
    cluster_resource_namespace = _flag(fields.Str, "cluster-resource-namespace")
    controllers = _list_flag("controllers")
    default_issuer_group = _flag(fields.Str, "default-issuer-group")
    default_issuer_kind = _flag(fields.Str, "default-issuer-kind")
    default_issuer_name = _flag(fields.Str, "default-issuer-name")
    dns01_check_retry_period = _flag(fields.Str, "dns01-check-retry-period")
    dns01_recursive_nameservers = _list_flag("dns01-recursive-nameservers")
    dns01_recursive_nameservers_only = _flag(
        fields.Bool, "dns01-recursive-nameservers-only"
    )
    enable_certificate_owner_ref = _flag(fields.Bool, "enable-certificate-owner-ref")
    enable_profiling = _flag(fields.Bool, "enable-profiling")
    # upstream declares this as a map of gate to bool, accepted here as a list
    feature_gates = _list_flag("feature-gates")
    issuer_ambient_credentials = _flag(fields.Bool, "issuer-ambient-credentials")
    kube_api_burst = _flag(fields.Float, "kube-api-burst")
    kube_api_qps = _flag(fields.Float, "kube-api-qps")
    max_concurrent_challenges = _flag(fields.Float, "max-concurrent-challenges")
    metrics_listen_address = _flag(fields.Str, "metrics-listen-address")


class CAInjectorFlagsSchema(LeaderElectionFlagsSchema):
    __model__ = CAInjectorFlags


class WebhookFlagsSchema(LoggingFlagsSchema):
    __model__ = WebhookFlags

    secure_port = _flag(fields.Int, "secure-port")
    healthz_port = _flag(fields.Int, "healthz-port")
    tls_cert_file = _flag(fields.Str, "tls-cert-file")
    tls_private_key_file = _flag(fields.Str, "tls-private-key-file")
    dynamic_serving_ca_secret_namespace = _flag(
        fields.Str, "dynamic-serving-ca-secret-namespace"
    )
    dynamic_serving_ca_secret_name = _flag(fields.Str, "dynamic-serving-ca-secret-name")
    dynamic_serving_dns_names = _list_flag("dynamic-serving-dns-names")
    kubeconfig = _flag(fields.Str, "kubeconfig")
    tls_cipher_suites = _list_flag("tls-cipher-suites")
    tls_min_version = _flag(fields.Str, "tls-min-version")


class ComponentConfigSchema(BaseSchema):
    """A configuration document for one component.

    Subclasses swap the nested flags schema for the component's own.
    """

    __model__ = ComponentConfig

    class Meta:
        unknown = EXCLUDE
        ordered = True

    api_version = fields.Str(data_key="apiVersion", allow_none=True, load_default=None)
    kind = fields.Str(data_key="kind", allow_none=True, load_default=None)
    flags = fields.Nested(
        LoggingFlagsSchema(), data_key="flags", allow_none=True, load_default=None
    )


class ControllerConfigSchema(ComponentConfigSchema):
    flags = fields.Nested(
        ControllerFlagsSchema(), data_key="flags", allow_none=True, load_default=None
    )


class CAInjectorConfigSchema(ComponentConfigSchema):
    flags = fields.Nested(
        CAInjectorFlagsSchema(), data_key="flags", allow_none=True, load_default=None
    )


class WebhookConfigSchema(ComponentConfigSchema):
    flags = fields.Nested(
        WebhookFlagsSchema(), data_key="flags", allow_none=True, load_default=None
    )
