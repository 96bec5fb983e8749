"""Clean and smudge transforms.

``clean`` runs on ``git add``: parse, canonicalize, optionally sort, emit.
``smudge`` runs on checkout and hands the stored content back unchanged;
Unity reads canonical files as they are.
"""

from __future__ import annotations

from pathlib import Path

from prefab_filter.canonicalizer import canonicalize
from prefab_filter.config import FilterConfig
from prefab_filter.emitter import emit, emit_text
from prefab_filter.nodes import UnityYAMLDocument
from prefab_filter.parser import parse
from prefab_filter.rules import DEFAULT_REGISTRY, DEFAULT_VERSION, Registry
from prefab_filter.sorter import sort_documents as sort_by_file_id


class UnityPrefabNormalizer:
    """Canonicalizes Unity YAML streams under one filter version.

    Example:
        normalizer = UnityPrefabNormalizer(version=2, sort_documents=True)
        text = normalizer.normalize_file(Path("Player.prefab"))
    """

    def __init__(
        self,
        version: int = DEFAULT_VERSION,
        sort_documents: bool = False,
        registry: Registry = DEFAULT_REGISTRY,
    ):
        registry.check_version(version)
        self.version = version
        self.sort_documents = sort_documents
        self.registry = registry

    @classmethod
    def from_config(cls, config: FilterConfig, registry: Registry = DEFAULT_REGISTRY) -> UnityPrefabNormalizer:
        return cls(version=config.version, sort_documents=config.sort, registry=registry)

    def normalize(self, document: UnityYAMLDocument) -> UnityYAMLDocument:
        result = canonicalize(document, self.version, self.registry)
        if self.sort_documents:
            result = sort_by_file_id(result)
        return result

    def normalize_bytes(self, data: bytes) -> bytes:
        return emit(self.normalize(parse(data)))

    def normalize_text(self, text: str) -> str:
        return emit_text(self.normalize(parse(text)))

    def normalize_file(self, path: Path) -> str:
        return emit_text(self.normalize(UnityYAMLDocument.load(path)))


def clean(data: bytes, config: FilterConfig | None = None) -> bytes:
    """Canonicalize a Unity YAML stream for storage.

    Raises:
        ParseError: If ``data`` is not well-formed.
        UnsupportedVersionError: If ``config.version`` is unknown.
        NonNumericAnchorError: If sorting is on and an anchor is not an integer.
        CanonicalizationError: If a rule cannot be applied to the input.
    """
    config = config or FilterConfig()
    return UnityPrefabNormalizer.from_config(config).normalize_bytes(data)


def smudge(data: bytes, config: FilterConfig | None = None) -> bytes:
    """Return stored content for the working tree, unchanged.

    Raises:
        UnsupportedVersionError: If ``config.version`` is unknown, so a
            repository pinned to a newer filter fails loudly on checkout too.
    """
    config = config or FilterConfig()
    DEFAULT_REGISTRY.check_version(config.version)
    return data
