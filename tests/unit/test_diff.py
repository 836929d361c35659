# ABOUTME: Unit tests for the up-to-date check
# ABOUTME: Tests don't-care fields, zero-value equivalence, and nested comparisons

import pytest

from argocd_provider.apis.applicationsets import ApplicationSetParameters
from argocd_provider.apis.projects import ProjectParameters, ProjectRole
from argocd_provider.diff import changed_fields, is_up_to_date


@pytest.mark.unit
class TestChangedFields:
    """Tests for changed_fields and is_up_to_date."""

    def test_identical(self):
        params = ProjectParameters(description="d", source_repos=["*"])

        assert changed_fields(params, params.model_copy()) == []
        assert is_up_to_date(params, params.model_copy())

    def test_unset_desired_field_is_ignored(self):
        """Test fields left unset in the record do not cause drift."""
        desired = ProjectParameters(description="d")
        observed = ProjectParameters(description="d", source_repos=["https://example.com/repo.git"])

        assert is_up_to_date(desired, observed)

    def test_changed_scalar(self):
        desired = ProjectParameters(description="new")
        observed = ProjectParameters(description="old")

        assert changed_fields(desired, observed) == ["description"]

    def test_paths_use_json_names(self):
        """Test reported paths are the camelCase field names."""
        desired = ProjectParameters(source_repos=["a"])
        observed = ProjectParameters(source_repos=["b"])

        assert changed_fields(desired, observed) == ["sourceRepos"]

    def test_empty_collection_equals_absent(self):
        """Test [] in the record matches a field Argo CD omitted."""
        desired = ProjectParameters(source_namespaces=[], description="d")
        observed = ProjectParameters(description="d")

        assert is_up_to_date(desired, observed)

    def test_false_equals_absent(self):
        """Test False in the record matches an omitted boolean."""
        desired = ApplicationSetParameters(go_template=False)
        observed = ApplicationSetParameters()

        assert is_up_to_date(desired, observed)

    def test_list_order_matters(self):
        desired = ProjectParameters(source_repos=["a", "b"])
        observed = ProjectParameters(source_repos=["b", "a"])

        assert changed_fields(desired, observed) == ["sourceRepos"]

    def test_nested_model_paths(self):
        """Test nested models report dotted paths."""
        desired = ApplicationSetParameters.model_validate(
            {"syncPolicy": {"applicationsSync": "create-only"}}
        )
        observed = ApplicationSetParameters.model_validate(
            {"syncPolicy": {"applicationsSync": "sync", "preserveResourcesOnDeletion": True}}
        )

        assert changed_fields(desired, observed) == ["syncPolicy.applicationsSync"]

    def test_nested_none_in_dict_ignored(self):
        """Test null entries inside raw JSON do not count as differences."""
        desired = ApplicationSetParameters(template={"metadata": {"name": "x"}})
        observed = ApplicationSetParameters(
            template={"metadata": {"name": "x", "creationTimestamp": None}}
        )

        assert is_up_to_date(desired, observed)

    def test_observed_none(self):
        """Test every set field differs from a missing observation."""
        desired = ProjectParameters(description="d", source_repos=["a"])

        assert changed_fields(desired, None) == ["sourceRepos", "description"]

    def test_unset_field_in_list_element_ignored(self):
        """Test fields left unset on a list element do not cause drift."""
        desired = ProjectParameters(roles=[ProjectRole(name="ci", policies=["p"])])
        observed = ProjectParameters(
            roles=[ProjectRole(name="ci", description="set by an admin", policies=["p"])]
        )

        assert changed_fields(desired, observed) == []

    def test_list_element_paths(self):
        """Test drift inside a list element reports an indexed path."""
        desired = ProjectParameters(
            roles=[ProjectRole(name="ci"), ProjectRole(name="ops", policies=["new"])]
        )
        observed = ProjectParameters(
            roles=[ProjectRole(name="ci"), ProjectRole(name="ops", policies=["old"])]
        )

        assert changed_fields(desired, observed) == ["roles[1].policies"]

    def test_list_length_change(self):
        desired = ProjectParameters(roles=[ProjectRole(name="ci"), ProjectRole(name="ops")])
        observed = ProjectParameters(roles=[ProjectRole(name="ci")])

        assert changed_fields(desired, observed) == ["roles"]
