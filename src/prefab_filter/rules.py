"""Versioned canonicalization rules.

Every rule names an object type (class name such as ``MonoBehaviour`` or a
numeric class ID), a dotted field path relative to the object's body and an
action. Rules carry the filter version that introduced them (``since``) and,
optionally, the first version that no longer applies them (``retired``).
A repository pins a version, so clean output for a given version never
changes once released; new behaviour only ever lands in a new version.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Union

from prefab_filter.errors import UnsupportedVersionError
from prefab_filter.nodes import Mapping, Node, Scalar, UnityYAMLObject, lookup
from prefab_filter.parser import parse_value

MAX_VERSION = 2
DEFAULT_VERSION = 1

_UNSET: Any = object()


def _negative_zero(scalar: Scalar) -> Scalar:
    """``-0`` and ``-0.0`` become ``0`` and ``0.0``."""
    if scalar.kind in ("int", "float") and scalar.lines[0].startswith("-") and scalar.value == 0:
        return Scalar.plain(scalar.lines[0][1:])
    return scalar


NORMALIZERS: dict[str, Callable[[Scalar], Scalar]] = {
    "negative_zero": _negative_zero,
}


# Actions


@dataclass(frozen=True)
class Remove:
    """Delete the target key, the matching sequence elements or the object."""

    def describe(self) -> str:
        return "remove"


@dataclass(frozen=True)
class RewriteTo:
    """Replace the target value with ``text``, read as an inline value."""

    text: str

    def __post_init__(self):
        parse_value(self.text)

    def build(self) -> Node:
        # a fresh node per application; nodes never have two parents
        return parse_value(self.text)

    def describe(self) -> str:
        shown = self.text if len(self.text) <= 40 else f"{self.text[:37]}..."
        return f"rewrite to {shown}"


@dataclass(frozen=True)
class Normalize:
    """Apply a named canonical form to every scalar below the target."""

    name: str

    def __post_init__(self):
        if self.name not in NORMALIZERS:
            raise ValueError(f"unknown normalizer: {self.name}")

    def apply(self, node: Node) -> Node:
        fn = NORMALIZERS[self.name]
        if isinstance(node, Scalar):
            return fn(node)
        if isinstance(node, Mapping):
            node.entries = [(key, self.apply(value)) for key, value in node.entries]
        else:
            node.items = [self.apply(item) for item in node.items]
        return node

    def describe(self) -> str:
        return f"normalize {self.name}"


Action = Union[Remove, RewriteTo, Normalize]


@dataclass(frozen=True)
class FieldTest:
    """Predicate on a dotted sub-field of a mapping.

    ``references_removed`` matches a local reference (``{fileID: N}`` with no
    ``guid``) pointing at an object removed earlier in the same stream.
    """

    field: str
    equals: Any = _UNSET
    prefix: str | None = None
    suffix: str | None = None
    references_removed: bool = False

    def matches(self, node: Node, removed: frozenset[str] = frozenset()) -> bool:
        target = lookup(node, self.field)
        if target is None:
            return False
        if self.equals is not _UNSET:
            actual = target.to_python()
            if actual != self.equals:
                return False
        if self.prefix is not None or self.suffix is not None:
            if not isinstance(target, Scalar):
                return False
            text = target.text
            if self.prefix is not None and not text.startswith(self.prefix):
                return False
            if self.suffix is not None and not text.endswith(self.suffix):
                return False
        if self.references_removed:
            if not isinstance(target, Mapping) or "guid" in target:
                return False
            file_id = target.get("fileID")
            if not isinstance(file_id, Scalar) or file_id.text not in removed:
                return False
        return True

    def describe(self) -> str:
        parts = []
        if self.equals is not _UNSET:
            parts.append(f"{self.field} == {self.equals!r}")
        if self.prefix is not None:
            parts.append(f"{self.field} starts with {self.prefix!r}")
        if self.suffix is not None:
            parts.append(f"{self.field} ends with {self.suffix!r}")
        if self.references_removed:
            parts.append(f"{self.field} references a removed object")
        return " and ".join(parts) or f"has {self.field}"


@dataclass(frozen=True)
class Rule:
    object_type: str
    path: str
    action: Action
    where: tuple[FieldTest, ...] = ()
    since: int = 1
    retired: int | None = None
    note: str = ""

    @property
    def is_document_rule(self) -> bool:
        return not self.path

    @property
    def segments(self) -> list[str]:
        return self.path.split(".") if self.path else []

    def active_in(self, version: int) -> bool:
        return self.since <= version and (self.retired is None or version < self.retired)

    def applies_to(self, obj: UnityYAMLObject) -> bool:
        return self.object_type in (obj.class_name, obj.class_id)

    def matches(self, node: Node, removed: frozenset[str] = frozenset()) -> bool:
        return all(test.matches(node, removed) for test in self.where)

    def describe(self) -> str:
        target = f"{self.object_type}.{self.path}" if self.path else self.object_type
        text = f"{target}: {self.action.describe()}"
        if self.where:
            text += " where " + " and ".join(test.describe() for test in self.where)
        return text


@dataclass(frozen=True)
class RuleSet:
    """The rules active in one filter version, in table order."""

    version: int
    rules: tuple[Rule, ...]

    def for_object(self, obj: UnityYAMLObject) -> list[Rule]:
        return [rule for rule in self.rules if rule.applies_to(obj)]

    def document_rules(self, obj: UnityYAMLObject) -> list[Rule]:
        return [rule for rule in self.for_object(obj) if rule.is_document_rule]

    def field_rules(self, obj: UnityYAMLObject) -> list[Rule]:
        return [rule for rule in self.for_object(obj) if not rule.is_document_rule]

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self):
        return iter(self.rules)


@dataclass(frozen=True)
class Registry:
    """An append-only rule table plus the newest version it describes."""

    table: tuple[Rule, ...]
    max_version: int = field(default=MAX_VERSION)

    def check_version(self, version: int) -> None:
        if version < 1 or version > self.max_version:
            raise UnsupportedVersionError(version, self.max_version)

    def ruleset(self, version: int) -> RuleSet:
        self.check_version(version)
        return RuleSet(version, tuple(rule for rule in self.table if rule.active_in(version)))


_ZERO_REF = "{fileID: 0}"
_PIPELINE_SAVER_SCRIPT = {"fileID": 229740497, "guid": "4ecd63eff847044b68db9453ce219299", "type": 3}


def _modification(*tests: FieldTest, since: int, note: str) -> Rule:
    return Rule(
        "PrefabInstance",
        "m_Modification.m_Modifications",
        Remove(),
        where=tests,
        since=since,
        note=note,
    )


def _path_is(name: str) -> FieldTest:
    return FieldTest("propertyPath", equals=name)


RULES: tuple[Rule, ...] = (
    # version 1
    Rule(
        "MonoBehaviour",
        "serializedUdonProgramAsset",
        RewriteTo(_ZERO_REF),
        note="compiled Udon program asset regenerated on every build",
    ),
    Rule(
        "MonoBehaviour",
        "serializedProgramAsset",
        RewriteTo(_ZERO_REF),
        note="compiled Udon program asset regenerated on every build",
    ),
    Rule("MonoBehaviour", "DynamicMaterials", RewriteTo("[]"), note="collected by the SDK at build time"),
    Rule("MonoBehaviour", "DynamicPrefabs", RewriteTo("[]"), note="collected by the SDK at build time"),
    Rule(
        "RenderSettings",
        "m_IndirectSpecularColor",
        RewriteTo("{r: 0, g: 0, b: 0, a: 1}"),
        note="recomputed by the editor when lighting is baked",
    ),
    _modification(
        _path_is("serializedProgramAsset"),
        FieldTest("value", equals=None),
        since=1,
        note="override of the compiled program asset",
    ),
    _modification(
        FieldTest("propertyPath", prefix="DynamicMaterials.Array"),
        since=1,
        note="override of build-time material list",
    ),
    _modification(
        FieldTest("propertyPath", prefix="DynamicPrefabs.Array"),
        since=1,
        note="override of build-time prefab list",
    ),
    # version 2
    Rule(
        "MonoBehaviour",
        "",
        Remove(),
        where=(FieldTest("m_Script", equals=_PIPELINE_SAVER_SCRIPT),),
        since=2,
        note="SDK PipelineSaver component added during uploads",
    ),
    Rule("MonoBehaviour", "fallbackStatus", RewriteTo("0"), since=2, note="avatar fallback state set by uploads"),
    Rule("MonoBehaviour", "completedSDKPipeline", RewriteTo("0"), since=2, note="set by the SDK build pipeline"),
    Rule("MonoBehaviour", "animationHashSet", RewriteTo("[]"), since=2, note="cache rebuilt by the avatar SDK"),
    Rule(
        "MonoBehaviour",
        "layerCollisionArr",
        RewriteTo("0" * 2048),
        since=2,
        note="collision matrix copied from project settings on build",
    ),
    Rule(
        "MonoBehaviour",
        "baseAnimationLayers.mask",
        RewriteTo(_ZERO_REF),
        since=2,
        note="avatar mask regenerated by the avatar SDK",
    ),
    _modification(
        _path_is("fallbackStatus"),
        FieldTest("objectReference.fileID", equals=0),
        since=2,
        note="override of avatar fallback state",
    ),
    _modification(
        _path_is("layerCollisionArr"),
        FieldTest("objectReference.fileID", equals=0),
        since=2,
        note="override of the collision matrix",
    ),
    _modification(
        _path_is("completedSDKPipeline"),
        FieldTest("objectReference.fileID", equals=0),
        since=2,
        note="override of the SDK pipeline flag",
    ),
    _modification(
        FieldTest("propertyPath", prefix="animationHashSet.Array"),
        since=2,
        note="override of the animation hash cache",
    ),
    _modification(
        FieldTest("propertyPath", prefix="baseAnimationLayers.Array.data[", suffix="].mask"),
        since=2,
        note="override of generated avatar masks",
    ),
    Rule(
        "GameObject",
        "m_Component",
        Remove(),
        where=(FieldTest("component", references_removed=True),),
        since=2,
        note="component entries of removed objects",
    ),
    Rule("Transform", "m_LocalPosition", Normalize("negative_zero"), since=2, note="-0 written by float math"),
    Rule("Transform", "m_LocalRotation", Normalize("negative_zero"), since=2, note="-0 written by float math"),
    Rule("Transform", "m_LocalScale", Normalize("negative_zero"), since=2, note="-0 written by float math"),
    Rule("RectTransform", "m_LocalPosition", Normalize("negative_zero"), since=2, note="-0 written by float math"),
    Rule("RectTransform", "m_LocalRotation", Normalize("negative_zero"), since=2, note="-0 written by float math"),
    Rule("RectTransform", "m_LocalScale", Normalize("negative_zero"), since=2, note="-0 written by float math"),
)

DEFAULT_REGISTRY = Registry(RULES, MAX_VERSION)


def ruleset_for(version: int, registry: Registry = DEFAULT_REGISTRY) -> RuleSet:
    """Return the rules active in ``version``.

    Raises:
        UnsupportedVersionError: If ``version`` is outside ``1..registry.max_version``.
    """
    return registry.ruleset(version)
