"""
Unit tests for collection definitions and the collection registry.
"""

import pytest

from assetdock.components.collections import (
    CollectionDefinition,
    CollectionRegistry,
    definition_from_rules,
)
from assetdock.components.paths import DefaultPathGenerator
from assetdock.core.entities import Visibility
from assetdock.core.errors import InvalidArgumentError
from assetdock.rules.models import CollectionRules


def noop_transform(builder):
    return None


class TestCollectionDefinition:
    def test_defaults(self):
        definition = CollectionDefinition("docs")

        assert definition.get_visibility() == Visibility.PUBLIC
        assert definition.get_allowed_extensions() == frozenset()
        assert definition.get_allowed_mime_types() == frozenset()
        assert definition.get_max_file_size() == 0
        assert definition.get_max_items() is None
        assert not definition.is_single_file_collection()
        assert definition.get_variants() == []
        assert not definition.is_authorizable()

    def test_extensions_lowercased(self):
        definition = CollectionDefinition().allowed_extensions("PDF", "Txt")
        assert definition.get_allowed_extensions() == frozenset({"pdf", "txt"})

    @pytest.mark.parametrize("bad", [".pdf", "tar.gz", "", "p d f"])
    def test_invalid_extension(self, bad):
        with pytest.raises(InvalidArgumentError):
            CollectionDefinition().allowed_extensions(bad)

    def test_mime_types_lowercased(self):
        definition = CollectionDefinition().allowed_mime_types("Image/PNG", "application/vnd.ms-excel")
        assert definition.get_allowed_mime_types() == frozenset(
            {"image/png", "application/vnd.ms-excel"}
        )

    @pytest.mark.parametrize("bad", ["image", "image/", "/png", "image png"])
    def test_invalid_mime_type(self, bad):
        with pytest.raises(InvalidArgumentError):
            CollectionDefinition().allowed_mime_types(bad)

    def test_only_keep_latest(self):
        assert CollectionDefinition().only_keep_latest(5).get_max_items() == 5

    @pytest.mark.parametrize("bad", [0, -1, True, "3"])
    def test_only_keep_latest_requires_positive_int(self, bad):
        with pytest.raises(InvalidArgumentError):
            CollectionDefinition().only_keep_latest(bad)

    def test_single_file_wins_over_keep_latest(self):
        definition = CollectionDefinition().only_keep_latest(5).single_file_collection()
        assert definition.get_max_items() == 1
        assert definition.is_single_file_collection()

    def test_keep_latest_one_is_single_file(self):
        assert CollectionDefinition().only_keep_latest(1).is_single_file_collection()

    def test_negative_max_file_size(self):
        with pytest.raises(InvalidArgumentError):
            CollectionDefinition().set_max_file_size(-1)

    def test_set_visibility_from_string(self):
        assert CollectionDefinition().set_visibility("private").is_private()

    def test_unknown_visibility(self):
        with pytest.raises(InvalidArgumentError):
            CollectionDefinition().set_visibility("secret")

    def test_authorize_with_makes_private(self):
        definition = CollectionDefinition().authorize_with(lambda asset: False)

        assert definition.is_private()
        assert definition.is_authorizable()
        assert definition.check_authorization(None) is False

    def test_no_authorizer_allows(self):
        assert CollectionDefinition().check_authorization(None) is True

    def test_add_variant(self):
        definition = CollectionDefinition().add_variant("thumb", noop_transform, "JPG")

        registration = definition.get_variant("thumb")
        assert registration.name == "thumb"
        assert registration.extension == "jpg"
        assert [v.name for v in definition.get_variants()] == ["thumb"]

    def test_variants_keep_registration_order(self):
        definition = (
            CollectionDefinition()
            .add_variant("small", noop_transform)
            .add_variant("large", noop_transform)
        )
        assert [v.name for v in definition.get_variants()] == ["small", "large"]

    def test_duplicate_variant_name(self):
        definition = CollectionDefinition().add_variant("thumb", noop_transform)
        with pytest.raises(InvalidArgumentError):
            definition.add_variant("thumb", noop_transform)

    def test_variant_transform_must_be_callable(self):
        with pytest.raises(InvalidArgumentError):
            CollectionDefinition().add_variant("thumb", "not callable")

    @pytest.mark.parametrize("bad", ["", "a/b", "thumb nail"])
    def test_invalid_variant_name(self, bad):
        with pytest.raises(InvalidArgumentError):
            CollectionDefinition().add_variant(bad, noop_transform)

    def test_missing_path_generator(self):
        with pytest.raises(InvalidArgumentError):
            CollectionDefinition("docs").get_path_generator()

    def test_frozen_definition_refuses_setters(self):
        definition = CollectionDefinition("docs").freeze()

        assert definition.is_frozen
        with pytest.raises(InvalidArgumentError):
            definition.allowed_extensions("pdf")
        with pytest.raises(InvalidArgumentError):
            definition.only_keep_latest(2)


class TestCollectionRegistry:
    def test_resolve_names_freezes_and_sets_generator(self):
        registry = CollectionRegistry()
        registry.register("docs", lambda: CollectionDefinition())

        definition = registry.resolve("docs")

        assert definition.name == "docs"
        assert definition.is_frozen
        assert definition.get_path_generator() is registry.default_path_generator

    def test_custom_generator_kept(self):
        generator = DefaultPathGenerator("pub", "priv")
        registry = CollectionRegistry()
        registry.register("docs", lambda: CollectionDefinition().set_path_generator(generator))

        assert registry.resolve("docs").get_path_generator() is generator

    def test_resolve_cached_per_args(self):
        calls = []

        def factory(limit):
            calls.append(limit)
            return CollectionDefinition().only_keep_latest(limit)

        registry = CollectionRegistry()
        registry.register("recent", factory)

        assert registry.resolve("recent", 3) is registry.resolve("recent", 3)
        assert registry.resolve("recent", 5).get_max_items() == 5
        assert calls == [3, 5]

    def test_register_definition_instance(self):
        registry = CollectionRegistry()
        registry.register("docs", CollectionDefinition().allowed_extensions("pdf"))
        assert registry.resolve("docs").get_allowed_extensions() == frozenset({"pdf"})

    def test_duplicate_registration(self):
        registry = CollectionRegistry()
        registry.register("docs", CollectionDefinition)
        with pytest.raises(InvalidArgumentError):
            registry.register("docs", CollectionDefinition)

    def test_unknown_ref(self):
        with pytest.raises(InvalidArgumentError):
            CollectionRegistry().resolve("missing")

    def test_factory_must_return_definition(self):
        registry = CollectionRegistry()
        registry.register("bad", lambda: "nope")
        with pytest.raises(InvalidArgumentError):
            registry.resolve("bad")

    def test_has_and_refs(self):
        registry = CollectionRegistry()
        registry.register("b", CollectionDefinition)
        registry.register("a", CollectionDefinition)

        assert registry.has("a")
        assert not registry.has("c")
        assert registry.refs() == ["a", "b"]


class TestDefinitionFromRules:
    def test_maps_every_field(self):
        cfg = CollectionRules(
            visibility="private",
            allowed_extensions=["pdf"],
            allowed_mime_types=["application/pdf"],
            max_file_size=1024,
            keep_latest=3,
        )

        definition = definition_from_rules("contracts", cfg)

        assert definition.name == "contracts"
        assert definition.is_private()
        assert definition.get_allowed_extensions() == frozenset({"pdf"})
        assert definition.get_allowed_mime_types() == frozenset({"application/pdf"})
        assert definition.get_max_file_size() == 1024
        assert definition.get_max_items() == 3

    def test_single_file(self):
        definition = definition_from_rules("avatar", CollectionRules(single_file=True))
        assert definition.is_single_file_collection()

    def test_register_from_rules(self):
        registry = CollectionRegistry()
        registry.register_from_rules({"avatar": CollectionRules(single_file=True)})
        assert registry.resolve("avatar").get_max_items() == 1
