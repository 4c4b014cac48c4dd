from typing import Dict, Mapping, Optional

from cmdoperator.componentry.constants import INSTANCE_LABEL_KEY, STANDARD_LABELS


class Labels:
    """Immutable set of labels.

    Every method that changes labels returns a new ``Labels`` instance and
    leaves the receiver untouched, so a label set can be shared between
    concurrent reconcile passes.
    """

    KUBERNETES_INSTANCE_LABEL = INSTANCE_LABEL_KEY

    _labels: Dict[str, str]

    def __init__(self, labels: Optional[Mapping[str, str]] = None) -> None:
        self._labels = dict(labels) if labels else dict()

    def update(self, labels: Optional[Mapping[str, str]]) -> "Labels":
        return Labels({**self._labels, **(labels or {})})

    def include(self, label: str, value: str) -> "Labels":
        return self.update({label: value})

    def include_kubernetes_instance(self, instance_name: str) -> "Labels":
        return self.include(self.KUBERNETES_INSTANCE_LABEL, instance_name)

    def as_dict(self) -> Dict[str, str]:
        """Return labels as dictionary."""
        return self._labels.copy()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Labels):
            return NotImplemented
        return self._labels == other._labels

    def __str__(self):
        return f"Labels<{self._labels}>"

    @classmethod
    def standard(cls) -> "Labels":
        """Labels carried by every object the operator manages."""
        return Labels(STANDARD_LABELS)
