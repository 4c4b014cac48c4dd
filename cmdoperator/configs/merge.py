import logging
from typing import Any, Dict, List, Mapping, Optional
from marshmallow import Schema, ValidationError

logger = logging.getLogger(__name__)


def merge_configs(schema: Schema, default: Mapping, override: Mapping) -> Dict:
    """Load both documents with `schema`, merge their flags and dump the result.

    Raises:
        ValidationError: Either document does not fit the schema.
    """
    base = schema.load(default)
    changes = schema.load(override)
    return schema.dump(base.merge(changes))


def merge_args(
    schema: Schema, default: Mapping, override: Optional[Any] = None
) -> List[str]:
    """Build the command line arguments for a component.

    `override` is the user supplied flags object. When it cannot be merged the
    default document is used as is.
    """
    document = default
    if override:
        try:
            document = merge_configs(schema, default, {"flags": override})
        except (ValidationError, TypeError, ValueError) as ex:
            logger.warning(
                f"Unable to apply argument overrides, using defaults instead: {ex}"
            )
    return args_from_flags(document.get("flags") or {})


def format_flag_value(value: Any) -> Optional[str]:
    """Render a flag value as it appears on the command line.

    Returns None for values that have no command line form.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, (list, tuple)):
        items = [format_flag_value(item) for item in value]
        if any(item is None for item in items):
            return None
        return ",".join(items)
    return None


def args_from_flags(flags: Mapping[str, Any]) -> List[str]:
    """Convert a flags mapping to `--key=value` arguments sorted by key."""
    args = []
    for key in sorted(flags):
        value = flags[key]
        if value is None:
            continue
        rendered = format_flag_value(value)
        if rendered is None:
            logger.warning(f"Skipping flag {key}: unsupported value {value!r}")
            continue
        args.append(f"--{key}={rendered}")
    return args
