"""
Tests for the KubernetesResource base class.
"""

import pytest

from konverge.constructs.configmap import ConfigMap
from konverge.core.metadata import ObjectMeta
from konverge.core.resource import KubernetesResource
from konverge.core.types import CONSTRUCT_PATH_ANNOTATION, NAME_LABEL


class Widget(KubernetesResource):
    api_version = "example.com/v1"
    kind = "Widget"

    def to_manifest(self):
        manifest = self.create_base_manifest()
        manifest["spec"] = {"size": 1}
        return manifest


class TestResourceNaming:
    """Tests for names assigned at construction."""

    def test_generated_name_from_path(self, stack):
        widget = Widget(stack, "Widget")
        assert widget.metadata.name == "app-test-stack-widget"

    def test_explicit_name_is_kept(self, stack):
        widget = Widget(stack, "Widget", metadata={"name": "custom-name"})
        assert widget.metadata.name == "custom-name"

    def test_metadata_model_is_accepted(self, stack):
        widget = Widget(stack, "Widget", metadata=ObjectMeta(name="from-model"))
        assert widget.metadata.name == "from-model"

    def test_namespace_inherited_from_stack(self, stack):
        assert Widget(stack, "Widget").metadata.namespace == "test-ns"

    def test_cannot_instantiate_without_to_manifest(self, stack):
        class Incomplete(KubernetesResource):
            api_version = "v1"
            kind = "Incomplete"

        with pytest.raises(TypeError):
            Incomplete(stack, "incomplete")


class TestResourceValidation:
    """Tests for the base validate()."""

    def test_valid_resource_has_no_errors(self, stack):
        assert Widget(stack, "Widget").validate() == []

    def test_invalid_explicit_name_is_reported(self, stack):
        errors = Widget(stack, "Widget", metadata={"name": "Bad_Name"}).validate()
        assert any(error.startswith("Name: ") for error in errors)

    def test_missing_name_is_reported(self, stack):
        widget = Widget(stack, "Widget")
        widget.metadata.name = None
        assert "Resource name is required" in widget.validate()

    def test_label_changes_after_construction_are_validated(self, stack):
        widget = Widget(stack, "Widget")
        widget.metadata.labels["broken"] = "not valid!"
        assert any('Label value for "broken"' in error for error in widget.validate())


class TestResourceManifest:
    """Tests for manifest construction helpers."""

    def test_base_manifest(self, stack):
        widget = Widget(stack, "Widget")

        manifest = widget.create_base_manifest()

        assert manifest["apiVersion"] == "example.com/v1"
        assert manifest["kind"] == "Widget"
        assert manifest["metadata"]["name"] == "app-test-stack-widget"
        assert manifest["metadata"]["namespace"] == "test-ns"
        assert manifest["metadata"]["labels"][NAME_LABEL] == "Widget"
        assert manifest["metadata"]["annotations"][CONSTRUCT_PATH_ANNOTATION] == (
            "App/test-stack/Widget"
        )

    def test_produce_document_delegates_to_to_manifest(self, stack):
        widget = Widget(stack, "Widget")
        assert widget.produce_document() == widget.to_manifest()

    def test_explicit_labels_survive_complete_metadata(self, stack):
        config = ConfigMap(
            stack, "config", data={"a": "1"}, metadata={"labels": {"team": "core"}}
        )
        assert config.get_complete_metadata().labels["team"] == "core"
