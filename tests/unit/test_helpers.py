"""Unit tests for structural equality and document helpers."""

import json
from datetime import datetime, timezone
from cmdoperator.utils.helpers import (
    canonicalize_dict,
    document,
    matches,
    merge_documents,
    mismatched_fields,
    time_restarted_value,
)


class TestMatches:
    """Tests for the matches structural comparison."""

    def test_identical_documents_match(self):
        """Test that a document matches itself."""
        doc = {"a": 1, "b": {"c": ["x", "y"]}, "d": True}
        assert matches(doc, doc)

    def test_candidate_may_carry_extra_keys(self):
        """Test that keys only present in the candidate are ignored."""
        mold = {"replicas": 1}
        candidate = {"replicas": 1, "revisionHistoryLimit": 10}
        assert matches(mold, candidate)

    def test_missing_key_does_not_match(self):
        """Test that a key declared in the mold must exist in the candidate."""
        assert not matches({"replicas": 1}, {})

    def test_none_in_mold_is_not_checked(self):
        """Test that None mold values match anything."""
        assert matches({"a": None}, {"a": "whatever"})
        assert matches({"a": None}, {})
        assert matches(None, {"a": 1})

    def test_scalar_values_compare_by_value(self):
        """Test scalar comparison including int/float equivalence."""
        assert matches({"a": 1}, {"a": 1.0})
        assert not matches({"a": 1}, {"a": 2})
        assert not matches({"a": "1"}, {"a": 1})

    def test_booleans_are_not_numbers(self):
        """Test that True does not match 1 and False does not match 0."""
        assert not matches({"a": True}, {"a": 1})
        assert not matches({"a": 0}, {"a": False})

    def test_scalar_sequences_ignore_order(self):
        """Test that sequences of scalars are compared as multisets."""
        assert matches({"verbs": ["get", "list"]}, {"verbs": ["list", "get"]})
        assert not matches({"verbs": ["get", "get"]}, {"verbs": ["get", "list"]})

    def test_sequence_length_must_agree(self):
        """Test that a candidate sequence with more entries does not match."""
        assert not matches(["a"], ["a", "b"])
        assert not matches([{"a": 1}], [{"a": 1}, {"b": 2}])

    def test_nested_sequences_compare_positionally(self):
        """Test that sequences of mappings are compared index by index."""
        mold = [{"name": "a"}, {"name": "b"}]
        assert matches(mold, [{"name": "a", "x": 1}, {"name": "b"}])
        assert not matches(mold, [{"name": "b"}, {"name": "a"}])

    def test_mixed_scalar_sequences(self):
        """Test mixed scalar kinds compare as sorted tagged values."""
        assert matches([1, "a", True], [True, "a", 1.0])
        assert not matches([1, "a"], [True, "a"])

    def test_kind_mismatch_does_not_match(self):
        """Test that a mapping never matches a sequence or a scalar."""
        assert not matches({"a": 1}, [1])
        assert not matches(["a"], "a")
        assert not matches("a", ["a"])

    def test_empty_collections_match_missing_values(self):
        """Test that empty molds match omitted fields."""
        assert matches({"labels": {}}, {})
        assert matches({"args": []}, {"args": None})
        assert not matches({"args": ["--v=2"]}, {})


class TestMismatchedFields:
    """Tests for mismatched_fields."""

    def test_reports_only_drifted_paths(self):
        """Test that only the paths that differ are reported, in order."""
        desired = {"metadata": {"labels": {"a": "1"}}, "spec": {"replicas": 1}}
        live = {"metadata": {"labels": {"a": "2"}}, "spec": {"replicas": 1}}
        paths = (("spec",), ("metadata", "labels"))
        assert mismatched_fields(desired, live, paths) == (("metadata", "labels"),)

    def test_no_drift(self):
        """Test that an empty tuple is returned when everything matches."""
        desired = {"rules": [{"verbs": ["get"]}]}
        assert mismatched_fields(desired, desired, (("rules",),)) == ()


class TestDocument:
    """Tests for keylist access to documents."""

    def test_dotted_label_keys_are_single_keys(self):
        """Test that a label key containing dots is not split into a path."""
        doc = document({"metadata": {"labels": {"app.kubernetes.io/name": "a"}}})
        assert doc.get(["metadata", "labels", "app.kubernetes.io/name"]) == "a"
        assert doc.get(["metadata", "annotations"]) is None

    def test_keylist_set_creates_intermediate_mappings(self):
        """Test that setting a nested key creates the missing parents."""
        doc = document()
        doc[["metadata", "labels"]] = {"cert-manager.io/x": "1"}
        assert doc.dict() == {"metadata": {"labels": {"cert-manager.io/x": "1"}}}

    def test_mismatched_fields_with_dotted_keys(self):
        """Test that drift under dotted annotation keys is reported."""
        desired = {"metadata": {"annotations": {"cert-manager.io/inject": "a"}}}
        live = {"metadata": {"annotations": {"cert-manager.io/inject": "b"}}}
        paths = (("metadata", "annotations"),)
        assert mismatched_fields(desired, live, paths) == paths


class TestMergeDocuments:
    """Tests for merge_documents."""

    def test_recursive_merge(self):
        """Test that nested mappings are merged and scalars replaced."""
        base = {"replicas": 2, "template": {"spec": {"a": 1, "b": 2}}}
        override = {"replicas": 1, "template": {"spec": {"b": 3}}}
        assert merge_documents(base, override) == {
            "replicas": 1,
            "template": {"spec": {"a": 1, "b": 3}},
        }

    def test_lists_are_replaced(self):
        """Test that a list in the override replaces the base list."""
        base = {"args": ["--v=2", "--old"]}
        assert merge_documents(base, {"args": ["--v=2"]}) == {"args": ["--v=2"]}

    def test_none_values_leave_base(self):
        """Test that None in the override keeps the base value."""
        assert merge_documents({"a": 1}, {"a": None}) == {"a": 1}
        assert merge_documents({"a": {"b": 1}}, {"a": {"b": None}}) == {"a": {"b": 1}}

    def test_inputs_are_not_modified(self):
        """Test that merging returns a new document."""
        base = {"a": {"b": 1}}
        override = {"a": {"b": 2, "c": None}}
        merge_documents(base, override)
        assert base == {"a": {"b": 1}}
        assert override == {"a": {"b": 2, "c": None}}



class TestCanonicalizeDict:
    """Tests for canonicalize_dict."""

    def test_key_order_does_not_matter(self):
        """Test that the encoding is independent of insertion order."""
        first = canonicalize_dict({"b": "2", "a": "1"})
        second = canonicalize_dict({"a": "1", "b": "2"})
        assert first == second
        assert json.loads(first) == {"a": "1", "b": "2"}


class TestTimeRestartedValue:
    """Tests for the restart timestamp label value."""

    def test_format_has_no_zero_padding_on_month_and_day(self):
        """Test the YYYY-M-D.HHMM format."""
        when = datetime(2021, 3, 7, 9, 5, tzinfo=timezone.utc)
        assert time_restarted_value(when) == "2021-3-7.0905"
