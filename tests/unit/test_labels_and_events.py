"""Unit tests for label sets and posted events."""

from unittest.mock import patch
from cmdoperator import events
from cmdoperator.common.models.labels import Labels


class TestLabels:
    """Tests for the immutable Labels type."""

    def test_update_returns_new_instance(self):
        """Test that updating leaves the original untouched."""
        base = Labels({"a": "1"})
        updated = base.update({"b": "2"})
        assert base.as_dict() == {"a": "1"}
        assert updated.as_dict() == {"a": "1", "b": "2"}

    def test_instance_label(self):
        """Test adding the instance label."""
        labels = Labels().include_kubernetes_instance("cluster")
        assert labels.as_dict() == {"app.kubernetes.io/instance": "cluster"}

    def test_standard_labels(self):
        """Test the labels carried by every managed object."""
        standard = Labels.standard()
        assert standard.as_dict() == {
            "app": "cert-manager",
            "app.kubernetes.io/managed-by": "operator",
        }
        assert standard.update({"x": "y"}) == Labels({**standard.as_dict(), "x": "y"})


class TestEvents:
    """Tests for the event catalog and posting."""

    def test_catalog(self):
        """Test event reasons and messages."""
        assert events.DEPLOYMENT_EVENTS.creating.reason == "CreatingDeployment"
        assert events.CLUSTER_ROLE_BINDING_EVENTS.creating.message == (
            "Cluster rolebinding does not exist and needs to be created"
        )
        assert events.CLUSTER_ROLE_BINDING_EVENTS.updated.reason == "UpdatedClusterRoleBinding"
        assert events.NAMESPACE_EVENTS.updating is None
        assert events.POD_REFRESH_FAILURE.type == "Warning"

    def test_message_suffix(self):
        """Test the namespaced and cluster scoped message suffixes."""
        owner = {"metadata": {"name": "cluster"}}
        with patch("kopf.event") as event:
            events.post_event(owner, events.SERVICE_EVENTS.updated, "cert-manager-webhook", "cert-manager")
            events.post_event(owner, events.CRD_EVENTS.creating, "orders.acme.cert-manager.io")
        assert event.call_args_list[0].kwargs["message"] == (
            "Service has been successfully updated: cert-manager/cert-manager-webhook"
        )
        assert event.call_args_list[1].kwargs["message"] == (
            "CRD does not exist and needs to be created: orders.acme.cert-manager.io"
        )
        assert event.call_args_list[1].kwargs["reason"] == "CreatingCRD"

    def test_no_owner(self):
        """Test that nothing is posted without an owner."""
        with patch("kopf.event") as event:
            events.post_event(None, events.POD_REFRESH)
        event.assert_not_called()
