from __future__ import annotations

import pytest

from prefab_filter.errors import ParseError, UnsupportedVersionError
from prefab_filter.nodes import Mapping, Scalar, Sequence, UnityYAMLObject
from prefab_filter.parser import parse_value
from prefab_filter.rules import (
    DEFAULT_REGISTRY,
    DEFAULT_VERSION,
    MAX_VERSION,
    NORMALIZERS,
    FieldTest,
    Normalize,
    Registry,
    Remove,
    RewriteTo,
    Rule,
    ruleset_for,
)


def make_object(class_name: str, class_id: str = "114") -> UnityYAMLObject:
    return UnityYAMLObject(class_id, "1", Mapping([(Scalar.plain(class_name), Mapping())]))


class TestRegistry:
    def test_default_version_is_supported(self):
        assert 1 <= DEFAULT_VERSION <= MAX_VERSION
        assert DEFAULT_REGISTRY.max_version == MAX_VERSION

    @pytest.mark.parametrize("version", [0, -1, MAX_VERSION + 1, 99])
    def test_unknown_versions_are_rejected(self, version):
        with pytest.raises(UnsupportedVersionError) as excinfo:
            ruleset_for(version)
        assert excinfo.value.requested == version
        assert excinfo.value.max_supported == MAX_VERSION

    @pytest.mark.parametrize("version", range(1, MAX_VERSION + 1))
    def test_ruleset_contains_only_active_rules(self, version):
        ruleset = ruleset_for(version)
        assert ruleset.version == version
        assert all(rule.since <= version for rule in ruleset)
        expected = [rule for rule in DEFAULT_REGISTRY.table if rule.active_in(version)]
        assert list(ruleset) == expected

    def test_newer_versions_only_add_rules(self):
        older = ruleset_for(1)
        newer = ruleset_for(2)
        assert len(newer) > len(older)
        assert all(rule in newer.rules for rule in older.rules)

    def test_version_one_rules(self):
        paths = {(rule.object_type, rule.path) for rule in ruleset_for(1)}
        assert ("MonoBehaviour", "serializedUdonProgramAsset") in paths
        assert ("MonoBehaviour", "DynamicMaterials") in paths
        assert ("RenderSettings", "m_IndirectSpecularColor") in paths
        assert ("MonoBehaviour", "fallbackStatus") not in paths

    def test_retired_rules_drop_out(self):
        rule = Rule("MonoBehaviour", "m_Legacy", Remove(), since=1, retired=2)
        registry = Registry((rule,), max_version=3)
        assert list(registry.ruleset(1)) == [rule]
        assert list(registry.ruleset(2)) == []
        assert list(registry.ruleset(3)) == []

    def test_ruleset_selects_rules_by_object(self):
        ruleset = ruleset_for(2)
        mono = make_object("MonoBehaviour")
        assert ruleset.document_rules(mono)
        assert all(rule.object_type == "MonoBehaviour" for rule in ruleset.for_object(mono))
        assert all(not rule.is_document_rule for rule in ruleset.field_rules(mono))
        assert ruleset.for_object(make_object("Camera", "20")) == []


class TestRule:
    def test_applies_to_class_name_or_class_id(self):
        obj = make_object("MonoBehaviour", "114")
        assert Rule("MonoBehaviour", "a", Remove()).applies_to(obj)
        assert Rule("114", "a", Remove()).applies_to(obj)
        assert not Rule("GameObject", "a", Remove()).applies_to(obj)

    def test_active_window(self):
        rule = Rule("MonoBehaviour", "a", Remove(), since=2, retired=4)
        assert [v for v in range(1, 6) if rule.active_in(v)] == [2, 3]

    def test_segments(self):
        assert Rule("PrefabInstance", "m_Modification.m_Modifications", Remove()).segments == [
            "m_Modification",
            "m_Modifications",
        ]
        assert Rule("MonoBehaviour", "", Remove()).is_document_rule

    def test_describe(self):
        rule = Rule("MonoBehaviour", "fallbackStatus", RewriteTo("0"), since=2)
        assert rule.describe() == "MonoBehaviour.fallbackStatus: rewrite to 0"
        rule = Rule(
            "PrefabInstance",
            "m_Modification.m_Modifications",
            Remove(),
            where=(FieldTest("propertyPath", prefix="DynamicPrefabs.Array"),),
        )
        assert rule.describe() == (
            "PrefabInstance.m_Modification.m_Modifications: remove"
            " where propertyPath starts with 'DynamicPrefabs.Array'"
        )

    def test_long_rewrite_is_abbreviated(self):
        assert RewriteTo("0" * 2048).describe() == f"rewrite to {'0' * 37}..."


class TestActions:
    def test_rewrite_builds_fresh_nodes(self):
        action = RewriteTo("{fileID: 0}")
        first, second = action.build(), action.build()
        assert first == second
        assert first is not second
        assert first.flow

    def test_rewrite_rejects_malformed_text(self):
        with pytest.raises(ParseError):
            RewriteTo("{fileID: 0")

    def test_unknown_normalizer(self):
        with pytest.raises(ValueError):
            Normalize("round_floats")

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("-0", "0"),
            ("-0.0", "0.0"),
            ("-0.00", "0.00"),
            ("0", "0"),
            ("-0.5", "-0.5"),
            ("-1", "-1"),
            ("-0x", "-0x"),
        ],
    )
    def test_negative_zero(self, raw, expected):
        assert NORMALIZERS["negative_zero"](Scalar.plain(raw)).raw == expected

    def test_normalize_descends_into_collections(self):
        node = parse_value("{x: -0, y: [-0.0, 1], z: -2}")
        result = Normalize("negative_zero").apply(node)
        assert result.to_python() == {"x": 0, "y": [0.0, 1], "z": -2}
        assert result.get("x").raw == "0"

    def test_normalize_leaves_quoted_scalars(self):
        node = Scalar(["'-0'"], "single")
        assert Normalize("negative_zero").apply(node) is node


class TestFieldTest:
    def test_equals(self):
        entry = parse_value("{propertyPath: fallbackStatus, value: 3, objectReference: {fileID: 0}}")
        assert FieldTest("propertyPath", equals="fallbackStatus").matches(entry)
        assert FieldTest("objectReference.fileID", equals=0).matches(entry)
        assert not FieldTest("value", equals=None).matches(entry)
        assert not FieldTest("missing", equals=None).matches(entry)

    def test_equals_null(self):
        entry = parse_value("{propertyPath: serializedProgramAsset, value: }")
        assert FieldTest("value", equals=None).matches(entry)

    def test_equals_mapping(self):
        entry = parse_value("{m_Script: {fileID: 229740497, guid: 4ecd63eff847044b68db9453ce219299, type: 3}}")
        script = {"fileID": 229740497, "guid": "4ecd63eff847044b68db9453ce219299", "type": 3}
        assert FieldTest("m_Script", equals=script).matches(entry)
        assert not FieldTest("m_Script", equals={**script, "fileID": -1427037861}).matches(entry)

    def test_prefix_and_suffix(self):
        test = FieldTest("propertyPath", prefix="baseAnimationLayers.Array.data[", suffix="].mask")
        assert test.matches(parse_value("{propertyPath: 'baseAnimationLayers.Array.data[3].mask'}"))
        assert not test.matches(parse_value("{propertyPath: 'baseAnimationLayers.Array.data[3].isEnabled'}"))
        assert not test.matches(parse_value("{propertyPath: {a: 1}}"))

    def test_references_removed(self):
        test = FieldTest("component", references_removed=True)
        removed = frozenset({"500"})
        assert test.matches(parse_value("{component: {fileID: 500}}"), removed)
        assert not test.matches(parse_value("{component: {fileID: 400}}"), removed)
        assert not test.matches(parse_value("{component: {fileID: 500, guid: abc, type: 3}}"), removed)
        assert not test.matches(parse_value("{component: 500}"), removed)

    def test_non_mapping_node_never_matches(self):
        assert not FieldTest("a", equals=1).matches(Sequence())
        assert not FieldTest("a", equals=1).matches(Scalar.plain("1"))

    def test_describe(self):
        assert FieldTest("value", equals=None).describe() == "value == None"
        assert FieldTest("component", references_removed=True).describe() == "component references a removed object"
        assert FieldTest("value").describe() == "has value"
