from cmdoperator.configs.defaults import (
    CONFIG_API_VERSION,
    default_config_for,
    schema_for,
)
from cmdoperator.configs.merge import merge_args, merge_configs, args_from_flags

__all__ = [
    "CONFIG_API_VERSION",
    "default_config_for",
    "schema_for",
    "merge_args",
    "merge_configs",
    "args_from_flags",
]
