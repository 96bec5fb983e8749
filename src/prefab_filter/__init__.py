"""Git content filter for Unity YAML files.

Canonicalizes scenes, prefabs and assets on ``git add`` so that editor and
SDK noise never reaches the repository. Rules are versioned; a repository
pins the version it was cleaned with.
"""

__version__ = "0.1.0"

from prefab_filter.canonicalizer import canonicalize
from prefab_filter.config import FilterConfig
from prefab_filter.emitter import emit, emit_text
from prefab_filter.errors import (
    CanonicalizationError,
    ConfigError,
    FilterError,
    NonNumericAnchorError,
    ParseError,
    UnsupportedVersionError,
)
from prefab_filter.git_utils import check_attr, is_git_repository
from prefab_filter.nodes import Mapping, Scalar, Sequence, UnityYAMLDocument, UnityYAMLObject
from prefab_filter.normalizer import UnityPrefabNormalizer, clean, smudge
from prefab_filter.parser import parse, parse_value
from prefab_filter.rules import (
    DEFAULT_REGISTRY,
    DEFAULT_VERSION,
    MAX_VERSION,
    FieldTest,
    Normalize,
    Registry,
    Remove,
    RewriteTo,
    Rule,
    RuleSet,
    ruleset_for,
)
from prefab_filter.sorter import sort_documents

__all__ = [
    # Classes
    "UnityPrefabNormalizer",
    "UnityYAMLDocument",
    "UnityYAMLObject",
    "Mapping",
    "Sequence",
    "Scalar",
    "FilterConfig",
    "Registry",
    "RuleSet",
    "Rule",
    "FieldTest",
    "Remove",
    "RewriteTo",
    "Normalize",
    # Functions
    "clean",
    "smudge",
    "parse",
    "parse_value",
    "canonicalize",
    "sort_documents",
    "emit",
    "emit_text",
    "ruleset_for",
    "check_attr",
    "is_git_repository",
    # Constants
    "DEFAULT_REGISTRY",
    "DEFAULT_VERSION",
    "MAX_VERSION",
    # Errors
    "FilterError",
    "ParseError",
    "UnsupportedVersionError",
    "NonNumericAnchorError",
    "CanonicalizationError",
    "ConfigError",
]
