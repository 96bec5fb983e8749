"""Apply a versioned rule set to a parsed stream."""

from __future__ import annotations

import copy

from prefab_filter.errors import CanonicalizationError
from prefab_filter.nodes import Mapping, Node, Scalar, Sequence, UnityYAMLDocument, UnityYAMLObject
from prefab_filter.rules import DEFAULT_REGISTRY, Normalize, Registry, Remove, RewriteTo, Rule


def _describe(node: Node) -> str:
    if isinstance(node, Mapping):
        return "mapping"
    if isinstance(node, Sequence):
        return "sequence"
    return f"scalar {node.raw!r}"


class _RuleApplication:
    def __init__(self, rule: Rule, obj: UnityYAMLObject, removed: frozenset[str]):
        self.rule = rule
        self.obj = obj
        self.removed = removed

    def error(self, message: str) -> CanonicalizationError:
        return CanonicalizationError(message, self.obj.class_name or self.obj.class_id, self.rule.path)

    def run(self) -> None:
        body = self.obj.body
        if body is None:
            return
        self._walk(body, self.rule.segments)

    def _walk(self, node: Node, segments: list[str]) -> None:
        if isinstance(node, Sequence):
            for item in node.items:
                if isinstance(item, Scalar) and item.is_null:
                    continue
                if not isinstance(item, Mapping):
                    raise self.error(f"expected a sequence of mappings, found {_describe(item)}")
                self._walk(item, segments)
            return
        if isinstance(node, Scalar):
            if node.is_null:
                return
            raise self.error(f"cannot descend into {_describe(node)}")

        name, rest = segments[0], segments[1:]
        if name not in node:
            return
        if rest:
            self._walk(node.get(name), rest)
        else:
            self._act(node, name)

    def _act(self, parent: Mapping, name: str) -> None:
        rule = self.rule
        target = parent.get(name)
        if rule.where and isinstance(target, Sequence):
            kept = []
            for item in target.items:
                if not isinstance(item, Mapping):
                    raise self.error(f"element tests need mapping elements, found {_describe(item)}")
                if not rule.matches(item, self.removed):
                    kept.append(item)
                elif not isinstance(rule.action, Remove):
                    kept.append(self._transform(item))
            target.items = kept
            return
        if rule.where and not rule.matches(target, self.removed):
            return
        if isinstance(rule.action, Remove):
            parent.remove(name)
        else:
            parent.set(name, self._transform(target))

    def _transform(self, node: Node) -> Node:
        action = self.rule.action
        if isinstance(action, RewriteTo):
            return action.build()
        if isinstance(action, Normalize):
            return action.apply(node)
        raise self.error(f"unsupported action {action!r}")


def _removes_object(rule: Rule, obj: UnityYAMLObject, removed: frozenset[str]) -> bool:
    if not isinstance(rule.action, Remove):
        raise CanonicalizationError(
            f"only Remove can target a whole object, not {rule.action.describe()}",
            obj.class_name or obj.class_id,
        )
    body = obj.body
    if not isinstance(body, Mapping):
        return not rule.where
    return rule.matches(body, removed)


def canonicalize(
    document: UnityYAMLDocument,
    version: int,
    registry: Registry = DEFAULT_REGISTRY,
) -> UnityYAMLDocument:
    """Return a canonical copy of ``document`` under filter ``version``.

    Object-removal rules run first so that field rules can prune references
    to the removed objects; field rules then run in table order. The input
    document is not modified.

    Raises:
        UnsupportedVersionError: If ``version`` is not known to ``registry``.
        CanonicalizationError: If a rule path crosses a non-null scalar or a
            sequence of non-mappings.
    """
    ruleset = registry.ruleset(version)
    result = copy.deepcopy(document)

    removed: set[str] = set()
    kept = []
    for obj in result.objects:
        if any(_removes_object(rule, obj, frozenset()) for rule in ruleset.document_rules(obj)):
            if obj.file_id is not None:
                removed.add(obj.file_id)
            continue
        kept.append(obj)
    result.objects = kept

    frozen = frozenset(removed)
    for obj in result.objects:
        for rule in ruleset.field_rules(obj):
            _RuleApplication(rule, obj, frozen).run()
    return result
