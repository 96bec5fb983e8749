from __future__ import annotations

from textwrap import dedent

import pytest

from prefab_filter.nodes import UnityYAMLDocument
from prefab_filter.parser import parse


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    monkeypatch.delenv("PREFAB_FILTER_VERSION", raising=False)
    monkeypatch.delenv("PREFAB_FILTER_LOG_LEVEL", raising=False)


@pytest.fixture
def scene_text() -> str:
    return dedent(
        """\
        %YAML 1.1
        %TAG !u! tag:unity3d.com,2011:
        --- !u!1 &100000
        GameObject:
          m_ObjectHideFlags: 0
          serializedVersion: 6
          m_Component:
          - component: {fileID: 400000}
          - component: {fileID: 11400000}
          m_Layer: 0
          m_Name: Player
          m_IsActive: 1
        --- !u!4 &400000
        Transform:
          m_GameObject: {fileID: 100000}
          m_LocalRotation: {x: 0, y: 0, z: 0, w: 1}
          m_LocalPosition: {x: 0, y: 1.5, z: 0}
          m_Children: []
          m_Father: {fileID: 0}
        --- !u!114 &11400000
        MonoBehaviour:
          m_GameObject: {fileID: 100000}
          m_Enabled: 1
          m_Script: {fileID: 11500000, guid: 45115577ef41a5b4ca741ed302693907, type: 3}
          m_Name:
          serializedProgramAsset: {fileID: 0}
          publicVariablesUnityEngineObjects: []
        """
    )


@pytest.fixture
def scene(scene_text) -> UnityYAMLDocument:
    return parse(scene_text)
