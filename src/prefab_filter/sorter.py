"""Deterministic object ordering by fileID."""

from __future__ import annotations

import re

from prefab_filter.errors import NonNumericAnchorError
from prefab_filter.nodes import UnityYAMLDocument, UnityYAMLObject

_FILE_ID_RE = re.compile(r"^-?[0-9]+$")


def sort_key(obj: UnityYAMLObject) -> int:
    if obj.file_id is None or not _FILE_ID_RE.match(obj.file_id):
        raise NonNumericAnchorError(obj.file_id)
    return int(obj.file_id)


def sort_documents(document: UnityYAMLDocument) -> UnityYAMLDocument:
    """Return ``document`` with its objects stably ordered by numeric fileID.

    Objects themselves are shared with the input, not copied or modified.

    Raises:
        NonNumericAnchorError: If an object has no anchor or a non-integer one.
    """
    keys = [sort_key(obj) for obj in document.objects]
    order = sorted(range(len(keys)), key=keys.__getitem__)
    return UnityYAMLDocument(
        directives=list(document.directives),
        objects=[document.objects[i] for i in order],
    )
