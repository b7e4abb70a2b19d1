"""Build labels from marker files in a publish directory.

Each marker file holds, on its first line, the path of a published build
folder. The folder name embeds a version; the spec's search token and offset
say where that version starts. For the legacy `latest.txt` marker:

    /pub/latest.txt            -> "/pub/releases/1.0.0.42-rc1"
    label                      -> "1.0.0.42"

With several specs the fragments are tagged and joined:

    wms:1.0.0.7-ui:55
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from publabel.errors import (
    ConfigurationError,
    DanglingReferenceError,
    EmptyArtifactError,
    MissingArtifactError,
    TokenNotFoundError,
)
from publabel.specs import LabellerConfig, MarkerFileSpec

LOGGER = logging.getLogger(__name__)

SEPARATOR = "-"


def check_root_path(root_path: str) -> None:
    """Raise ConfigurationError unless `root_path` names an existing directory."""
    if not root_path or not os.path.isdir(root_path):
        raise ConfigurationError(
            f"root path not set or does not exist: '{root_path}'",
            publish_path=root_path,
        )


def read_marker(root_path: str, spec: MarkerFileSpec) -> str:
    """Return the first line of the spec's marker file, without its line terminator."""
    marker_path = os.path.join(root_path, spec.file_name)
    if not os.path.isfile(marker_path):
        raise MissingArtifactError(
            f"publish path does not contain '{spec.file_name}' (expected {marker_path})",
            marker=spec.file_name,
            path=marker_path,
        )

    with open(marker_path, "r", encoding="utf-8-sig", errors="replace") as fh:
        first_line = fh.readline().rstrip("\r\n")

    if not first_line.strip():
        raise EmptyArtifactError(
            f"'{spec.file_name}' does not contain any data",
            marker=spec.file_name,
            path=marker_path,
        )
    return first_line


def resolve_reference(root_path: str, spec: MarkerFileSpec, first_line: str) -> str:
    """Join the marker's first line onto the root path and require a directory there."""
    reference = os.path.join(root_path, first_line)
    if not os.path.isdir(reference):
        raise DanglingReferenceError(
            f"'{spec.file_name}' specifies a non-existent folder: '{reference}'",
            marker=spec.file_name,
            path=reference,
        )
    return reference


def extract_fragment(reference: str, spec: MarkerFileSpec, truncate_at_dash: bool = False) -> str:
    """Cut the version fragment out of `reference` using the spec's token and offset."""
    index = reference.find(spec.search_token)
    if index == -1:
        raise TokenNotFoundError(
            f"search token '{spec.search_token}' not found in '{reference}' "
            f"(from '{spec.file_name}')",
            marker=spec.file_name,
            path=reference,
            token=spec.search_token,
        )

    fragment = reference[index + spec.offset:]
    if truncate_at_dash:
        dash = fragment.find("-")
        if dash > 0:
            fragment = fragment[:dash]
    return fragment


def generate(config: LabellerConfig) -> str:
    """Return the label for the current build.

    Specs are processed in order and the first failure aborts the whole
    generation; no partial label is ever returned.

    Raises:
        ConfigurationError: root path unset or not a directory.
        MissingArtifactError: a marker file is absent.
        EmptyArtifactError: a marker file's first line is blank.
        DanglingReferenceError: a marker file names a missing folder.
        TokenNotFoundError: the search token is absent from a resolved path.
    """
    LOGGER.debug("Label generation running for %s", config.root_path)

    check_root_path(config.root_path)
    if not config.specs:
        raise ConfigurationError("no marker file specifications configured")

    parts: List[str] = []
    for spec in config.specs:
        first_line = read_marker(config.root_path, spec)
        reference = resolve_reference(config.root_path, spec, first_line)
        fragment = extract_fragment(reference, spec, truncate_at_dash=config.legacy)
        if config.legacy:
            parts.append(fragment)
        else:
            parts.append(f"{spec.tag}:{fragment}")

    label = SEPARATOR.join(parts)
    LOGGER.debug("Label = %s", label)
    return label


@dataclass
class IntegrationResult:
    """The CI host's per-build result; only the label is touched here."""

    label: Optional[str] = None


def run(result: IntegrationResult, config: LabellerConfig) -> None:
    """Stamp `result` with a freshly generated label. Errors leave it untouched."""
    result.label = generate(config)
