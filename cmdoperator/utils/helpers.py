import copy
import jsonpickle
from benedict import benedict
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

#: Path into a JSON-like document, e.g. ``("metadata", "labels")``.
FieldPath = Tuple[str, ...]


def now() -> str:
    return datetime.now(timezone.utc).isoformat()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def sort_dict_keys(d):
    """Recursively sort dictionary keys and handle nested structures.

    Args:
        d: Data structure (dict, list, or primitive type)

    Returns:
        Sorted version of the data structure
    """
    if isinstance(d, dict):
        return {key: sort_dict_keys(value) for key, value in sorted(d.items())}
    elif isinstance(d, list):
        return [sort_dict_keys(item) for item in d]
    else:
        return d


def canonicalize_dict(data) -> str:
    """
    Returns a canonical JSON representation of a dictionary.

    The JSON string uses sorted keys, which ensures that the representation
    of the dictionary remains consistent even when key order varies.
    """
    return jsonpickle.dumps(sort_dict_keys(data), unpicklable=False)


def document(data: Optional[Mapping] = None) -> benedict:
    """Wrap a Kubernetes document for keylist access.

    Keypaths are disabled because label and annotation keys contain dots.
    """
    return benedict(data if data is not None else {}, keypath_separator=None)


def merge_documents(base: Mapping, override: Mapping) -> dict:
    """Recursively merge ``override`` into a copy of ``base``.

    Mappings are merged key by key, anything else in ``override`` replaces
    the value in ``base``. ``None`` values in ``override`` leave ``base``
    untouched.
    """
    merged = document(copy.deepcopy(dict(base)))
    changes = document(copy.deepcopy(dict(override)))
    changes.clean(strings=False, collections=False)
    merged.merge(changes, overwrite=True, concat=False)
    return merged.dict()


# ------------------------------------------------
# ---- Structural equality ----
# ------------------------------------------------

_SCALARS = (str, bool, int, float)


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, _SCALARS)


def _scalar_key(value: Any) -> Tuple[str, Any]:
    """Sort key that keeps booleans apart from numbers and compares ints with floats."""
    if value is None:
        return ("null", 0)
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, float)):
        return ("number", float(value))
    return ("string", value)


def _scalars_equal(mold: Any, candidate: Any) -> bool:
    if not _is_scalar(candidate):
        return False
    return _scalar_key(mold) == _scalar_key(candidate)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def matches(mold: Any, candidate: Any) -> bool:
    """Return True when every value declared in ``mold`` appears in ``candidate``.

    ``mold`` is the desired document and acts as a floor: ``candidate`` may
    carry extra keys, and keys whose mold value is ``None`` are not checked.
    An empty mold mapping or sequence also matches a missing value, as the
    API server omits empty collections. Sequences must have the same length.
    Sequences made only of scalars are compared as multisets, any other
    sequence is compared index by index.
    A mold of ``None`` matches anything; any other pairing of kinds does not.
    """
    if mold is None:
        return True
    if isinstance(mold, Mapping):
        if not isinstance(candidate, Mapping):
            return candidate is None and not mold
        for key, value in mold.items():
            if value is None:
                continue
            if not matches(value, candidate.get(key)):
                return False
        return True
    if _is_sequence(mold):
        if not _is_sequence(candidate):
            return candidate is None and not mold
        if len(mold) != len(candidate):
            return False
        if all(_is_scalar(v) for v in mold) and all(_is_scalar(v) for v in candidate):
            return sorted(map(_scalar_key, mold)) == sorted(map(_scalar_key, candidate))
        return all(matches(m, c) for m, c in zip(mold, candidate))
    if _is_scalar(mold):
        return _scalars_equal(mold, candidate)
    return False


def mismatched_fields(
    desired: Mapping, live: Mapping, paths: Iterable[FieldPath]
) -> Tuple[FieldPath, ...]:
    """Return the paths whose desired value is not matched by the live object."""
    desired, live = document(desired), document(live)
    return tuple(
        path
        for path in paths
        if not matches(desired.get(list(path)), live.get(list(path)))
    )


def format_path(path: FieldPath) -> str:
    return ".".join(path)


def time_restarted_value(when: Optional[datetime] = None) -> str:
    """Timestamp label value in the ``YYYY-M-D.HHMM`` format."""
    when = when or utc_now()
    return f"{when.year}-{when.month}-{when.day}.{when.hour:02d}{when.minute:02d}"
