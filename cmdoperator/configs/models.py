from typing import List, Optional
from cmdoperator.types.base import BaseModel


class LoggingFlags(BaseModel):
    add_dir_header: Optional[bool]
    alsologtostderr: Optional[bool]
    log_flush_frequency: Optional[str]
    log_backtrace_at: Optional[str]
    log_dir: Optional[str]
    log_file: Optional[str]
    log_file_max_size: Optional[int]
    logtostderr: Optional[bool]
    skip_headers: Optional[bool]
    skip_log_headers: Optional[bool]
    stderrthreshold: Optional[int]
    v: Optional[int]
    vmodule: Optional[str]


class LeaderElectionFlags(LoggingFlags):
    kubeconfig: Optional[str]
    master: Optional[str]
    namespace: Optional[str]
    leader_elect: Optional[bool]
    leader_election_lease_duration: Optional[str]
    leader_election_namespace: Optional[str]
    leader_election_renew_deadline: Optional[str]
    leader_election_retry_period: Optional[str]


class ControllerFlags(LeaderElectionFlags):
    acme_http01_solver_image: Optional[str]
    acme_http01_solver_resource_limits_cpu: Optional[str]
    acme_http01_solver_resource_limits_memory: Optional[str]
    acme_http01_solver_resource_request_cpu: Optional[str]
    acme_http01_solver_resource_request_memory: Optional[str]
    auto_certificate_annotations: Optional[List[str]]
    cluster_issuer_ambient_credentials: Optional[bool]
    cluster_resource_namespace: Optional[str]
    controllers: Optional[List[str]]
    default_issuer_group: Optional[str]
    default_issuer_kind: Optional[str]
    default_issuer_name: Optional[str]
    dns01_check_retry_period: Optional[str]
    dns01_recursive_nameservers: Optional[List[str]]
    dns01_recursive_nameservers_only: Optional[bool]
    enable_certificate_owner_ref: Optional[bool]
    enable_profiling: Optional[bool]
    feature_gates: Optional[List[str]]
    issuer_ambient_credentials: Optional[bool]
    kube_api_burst: Optional[float]
    kube_api_qps: Optional[float]
    max_concurrent_challenges: Optional[float]
    metrics_listen_address: Optional[str]


class CAInjectorFlags(LeaderElectionFlags):
    pass


class WebhookFlags(LoggingFlags):
    secure_port: Optional[int]
    healthz_port: Optional[int]
    tls_cert_file: Optional[str]
    tls_private_key_file: Optional[str]
    dynamic_serving_ca_secret_namespace: Optional[str]
    dynamic_serving_ca_secret_name: Optional[str]
    dynamic_serving_dns_names: Optional[List[str]]
    kubeconfig: Optional[str]
    tls_cipher_suites: Optional[List[str]]
    tls_min_version: Optional[str]


class ComponentConfig(BaseModel):
    """A component configuration document: type metadata plus its flags."""

    api_version: Optional[str]
    kind: Optional[str]
    flags: Optional[LoggingFlags]

    def merge(self, override: "ComponentConfig") -> "ComponentConfig":
        """Return a new config where flags set in `override` take precedence.

        Flags explicitly set to null in `override` do not clear the default.
        """
        flags = {}
        for config in (self, override):
            if getattr(config, "flags", None) is not None:
                flags.update(
                    (key, value)
                    for key, value in config.flags.__dict__.items()
                    if value is not None
                )
        flags_cls = type(self.flags) if self.flags is not None else LoggingFlags
        return ComponentConfig(
            api_version=getattr(override, "api_version", None) or self.api_version,
            kind=getattr(override, "kind", None) or self.kind,
            flags=flags_cls(**flags),
        )
