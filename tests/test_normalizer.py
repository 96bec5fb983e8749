from __future__ import annotations

from textwrap import dedent

import pytest

from prefab_filter.config import FilterConfig
from prefab_filter.errors import NonNumericAnchorError, ParseError, UnsupportedVersionError
from prefab_filter.normalizer import UnityPrefabNormalizer, clean, smudge
from prefab_filter.rules import DEFAULT_VERSION, MAX_VERSION, Registry, Remove, Rule

HIDE_FLAGS_REGISTRY = Registry(
    (Rule("MonoBehaviour", "m_EditorHideFlags", Remove()),),
    max_version=1,
)


def two_behaviours(first: str, second: str) -> str:
    return (
        f"--- !u!114 &{first}\nMonoBehaviour:\n  m_Enabled: 1\n  m_EditorHideFlags: 3\n  m_Name: {first}\n"
        f"--- !u!114 &{second}\nMonoBehaviour:\n  m_Enabled: 1\n  m_EditorHideFlags: 3\n  m_Name: {second}\n"
    )


def expected_behaviours(*anchors: str) -> str:
    return "".join(f"--- !u!114 &{a}\nMonoBehaviour:\n  m_Enabled: 1\n  m_Name: {a}\n" for a in anchors)


class TestUnityPrefabNormalizer:
    def test_remove_rule_without_sorting(self):
        normalizer = UnityPrefabNormalizer(version=1, registry=HIDE_FLAGS_REGISTRY)
        result = normalizer.normalize_text(two_behaviours("100000", "200000"))
        assert result == expected_behaviours("100000", "200000")

    def test_sorting_keeps_ascending_order(self):
        normalizer = UnityPrefabNormalizer(version=1, sort_documents=True, registry=HIDE_FLAGS_REGISTRY)
        result = normalizer.normalize_text(two_behaviours("100000", "200000"))
        assert result == expected_behaviours("100000", "200000")

    def test_sorting_reorders_documents(self):
        normalizer = UnityPrefabNormalizer(version=1, sort_documents=True, registry=HIDE_FLAGS_REGISTRY)
        result = normalizer.normalize_text(two_behaviours("200000", "100000"))
        assert result == expected_behaviours("100000", "200000")

    def test_without_sorting_order_is_preserved(self):
        normalizer = UnityPrefabNormalizer(version=1, registry=HIDE_FLAGS_REGISTRY)
        result = normalizer.normalize_text(two_behaviours("200000", "100000"))
        assert result == expected_behaviours("200000", "100000")

    def test_unknown_version_is_rejected_up_front(self):
        with pytest.raises(UnsupportedVersionError) as excinfo:
            UnityPrefabNormalizer(version=99)
        assert (excinfo.value.requested, excinfo.value.max_supported) == (99, MAX_VERSION)

    def test_normalize_bytes_and_file(self, tmp_path, scene_text):
        path = tmp_path / "Player.prefab"
        path.write_bytes(scene_text.encode("utf-8"))
        normalizer = UnityPrefabNormalizer(version=MAX_VERSION)
        assert normalizer.normalize_file(path) == scene_text
        assert normalizer.normalize_bytes(scene_text.encode("utf-8")) == scene_text.encode("utf-8")

    def test_from_config(self):
        normalizer = UnityPrefabNormalizer.from_config(FilterConfig(version=2, sort=True))
        assert normalizer.version == 2
        assert normalizer.sort_documents


class TestClean:
    def test_defaults(self, scene_text):
        assert clean(scene_text.encode("utf-8")) == scene_text.encode("utf-8")

    def test_unsupported_version(self, scene_text):
        with pytest.raises(UnsupportedVersionError) as excinfo:
            clean(scene_text.encode("utf-8"), FilterConfig(version=99))
        assert excinfo.value.requested == 99
        assert excinfo.value.max_supported == MAX_VERSION

    def test_malformed_indentation(self):
        data = b"--- !u!1 &1\nGameObject:\n  m_Component:\n - component: {fileID: 4}\n"
        with pytest.raises(ParseError) as excinfo:
            clean(data)
        assert excinfo.value.line == 4

    def test_sort_with_non_numeric_anchor(self):
        data = b"--- !u!1 &1\nGameObject: {}\n--- !u!1 &stripped_a\nGameObject: {}\n"
        with pytest.raises(NonNumericAnchorError):
            clean(data, FilterConfig(sort=True))
        assert clean(data, FilterConfig(sort=False)) == data

    def test_formatting_variants_produce_identical_output(self):
        tidy = dedent(
            """\
            --- !u!114 &1
            MonoBehaviour:
              m_Script: {fileID: 11500000, guid: 45115577ef41a5b4ca741ed302693907, type: 3}
              m_Name:
              publicVariablesUnityEngineObjects:
              - {fileID: 0}
            """
        )
        messy = (
            "\ufeff--- !u!114 &1\r\n"
            "MonoBehaviour:\r\n"
            "  m_Script: {fileID: 11500000,\r\n"
            "      guid: 45115577ef41a5b4ca741ed302693907, type: 3}\r\n"
            "  m_Name: \r\n"
            "\r\n"
            "  publicVariablesUnityEngineObjects:\r\n"
            "    - {fileID: 0}\r\n"
        )
        assert clean(messy.encode("utf-8")) == clean(tidy.encode("utf-8")) == tidy.encode("utf-8")

    @pytest.mark.parametrize("version", range(1, MAX_VERSION + 1))
    def test_clean_is_idempotent(self, version):
        data = two_behaviours("5", "3").replace("m_Enabled: 1", "fallbackStatus: 3").encode("utf-8")
        config = FilterConfig(version=version, sort=True)
        once = clean(data, config)
        assert clean(once, config) == once

    def test_empty_input(self):
        assert clean(b"") == b""


class TestSmudge:
    def test_returns_input_unchanged(self):
        data = b"--- !u!1 &1\nGameObject:\n  m_Name: \n"
        assert smudge(data) is data
        assert smudge(data, FilterConfig(version=MAX_VERSION)) == data

    def test_does_not_parse(self):
        assert smudge(b"not: [yaml") == b"not: [yaml"

    def test_unsupported_version(self):
        with pytest.raises(UnsupportedVersionError):
            smudge(b"", FilterConfig(version=MAX_VERSION + 1))

    def test_default_version(self):
        assert FilterConfig().version == DEFAULT_VERSION
