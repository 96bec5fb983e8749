from __future__ import annotations

from textwrap import dedent

from prefab_filter.emitter import emit, emit_text
from prefab_filter.nodes import Mapping, Scalar, Sequence, UnityYAMLDocument
from prefab_filter.parser import parse


def roundtrip(text: str) -> str:
    return emit_text(parse(text))


class TestCanonicalOutput:
    def test_canonical_scene_is_unchanged(self, scene_text):
        assert roundtrip(scene_text) == scene_text

    def test_emit_returns_utf8_bytes(self):
        text = "--- !u!1 &1\nGameObject:\n  m_Name: Café\n"
        assert emit(parse(text)) == text.encode("utf-8")

    def test_empty_document(self):
        assert emit_text(UnityYAMLDocument()) == ""
        assert emit(parse("")) == b""

    def test_crlf_input_is_written_with_lf(self):
        assert roundtrip("--- !u!1 &1\r\nGameObject:\r\n  m_Layer: 0\r\n") == "--- !u!1 &1\nGameObject:\n  m_Layer: 0\n"

    def test_null_values_lose_trailing_space(self):
        assert roundtrip("--- !u!114 &1\nMonoBehaviour:\n  m_Name: \n  m_Text: \n") == (
            "--- !u!114 &1\nMonoBehaviour:\n  m_Name:\n  m_Text:\n"
        )

    def test_indented_sequence_becomes_indentless(self):
        text = "--- !u!1 &1\nGameObject:\n  m_Component:\n    - component: {fileID: 4}\n    - component: {fileID: 5}\n"
        assert roundtrip(text) == (
            "--- !u!1 &1\nGameObject:\n  m_Component:\n  - component: {fileID: 4}\n  - component: {fileID: 5}\n"
        )

    def test_continuation_lines_are_reindented(self):
        text = "--- !u!114 &1\nMonoBehaviour:\n  m_Text: first\n        second\n"
        assert roundtrip(text) == "--- !u!114 &1\nMonoBehaviour:\n  m_Text: first\n    second\n"

    def test_empty_block_collections_use_flow_form(self):
        document = parse("--- !u!1 &1\nGameObject:\n  m_Layer: 0\n")
        body = document.objects[0].body
        body.set("m_Extra", Mapping())
        body.set("m_List", Sequence())
        assert emit_text(document) == "--- !u!1 &1\nGameObject:\n  m_Layer: 0\n  m_Extra: {}\n  m_List: []\n"

    def test_replaced_scalar_is_written_in_place(self):
        document = parse("--- !u!1 &1\nGameObject:\n  a: 1\n  b: 2\n")
        document.objects[0].body.set("a", Scalar.plain("0"))
        assert emit_text(document) == "--- !u!1 &1\nGameObject:\n  a: 0\n  b: 2\n"


class TestFlowWrapping:
    def test_long_flow_mapping_is_wrapped(self):
        text = (
            "--- !u!114 &1\nMonoBehaviour:\n"
            "  serializedUdonProgramAsset: {fileID: 11400000, guid: aa8a5233c74e54f108dfb136df564958, type: 2}\n"
        )
        assert roundtrip(text) == dedent(
            """\
            --- !u!114 &1
            MonoBehaviour:
              serializedUdonProgramAsset: {fileID: 11400000, guid: aa8a5233c74e54f108dfb136df564958,
                type: 2}
            """
        )

    def test_wrongly_wrapped_flow_mapping_is_joined(self):
        text = "--- !u!114 &1\nMonoBehaviour:\n  m_Script: {fileID: 11500000,\n      guid: 4511, type: 3}\n"
        assert roundtrip(text) == "--- !u!114 &1\nMonoBehaviour:\n  m_Script: {fileID: 11500000, guid: 4511, type: 3}\n"

    def test_wrapped_flow_inside_sequence_item(self):
        text = dedent(
            """\
            --- !u!1001 &1
            PrefabInstance:
              m_Modification:
                m_Modifications:
                - target: {fileID: 690848371401817423, guid: 26db88bf250934ccca835bd9318c0eeb,
                    type: 3}
                  propertyPath: m_Name
                  value: GameObject
                  objectReference: {fileID: 0}
            """
        )
        assert roundtrip(text) == text

    def test_short_flow_stays_on_one_line(self):
        text = "--- !u!4 &1\nTransform:\n  m_LocalRotation: {x: -0.00000008146034, y: 0.7071068, z: 0, w: 0.7071068}\n"
        assert roundtrip(text) == text


class TestNesting:
    def test_nested_sequences_share_dash_line(self):
        text = "--- !u!1 &1\nGameObject:\n  m_Curve:\n  - - 1\n    - 2\n  - a: 1\n    b: 2\n"
        assert roundtrip(text) == text

    def test_dash_alone_is_joined_with_mapping(self):
        text = "--- !u!1 &1\nGameObject:\n  m_Curve:\n  -\n    a: 1\n"
        assert roundtrip(text) == "--- !u!1 &1\nGameObject:\n  m_Curve:\n  - a: 1\n"

    def test_null_sequence_item(self):
        text = "--- !u!1 &1\nGameObject:\n  m_Items:\n  -\n  - 1\n"
        assert roundtrip(text) == text

    def test_block_scalar_inside_sequence_item(self):
        text = "--- !u!114 &1\nMonoBehaviour:\n  m_Lines:\n  - |\n    line\n  - x\n"
        assert roundtrip(text) == text

    def test_stripped_header_and_directives(self):
        text = "%YAML 1.1\n%TAG !u! tag:unity3d.com,2011:\n--- !u!1001 &5 stripped\nPrefabInstance:\n  m_ObjectHideFlags: 0\n"
        assert roundtrip(text) == text
