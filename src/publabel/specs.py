"""Marker file specifications and the JSON configuration that lists them.

A marker configuration file names, in order, every marker file the labeller
reads from the publish path:

    {
      "version": "v1",
      "publish_path": "/srv/publish",
      "markers": [
        {"file_name": "wms.txt", "search_token": "1.0.0", "offset": 0, "tag": "wms"},
        {"file_name": "ui.txt", "search_token": "build-", "offset": 6, "tag": "ui"}
      ]
    }

When no configuration file is given the labeller falls back to the single
implicit `latest.txt` spec (the legacy variant).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

from jsonschema import ValidationError
from jsonschema import validate as jsonschema_validate

from publabel.errors import ConfigurationError

# Marker configuration files are a handful of entries; anything larger is a mistake.
MAX_CONFIG_SIZE = 64 * 1024

MARKER_CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["version", "markers"],
    "properties": {
        "version": {"type": "string", "enum": ["v1"]},
        "publish_path": {"type": "string"},
        "markers": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["file_name", "search_token", "tag"],
                "properties": {
                    "file_name": {"type": "string", "minLength": 1},
                    "search_token": {"type": "string", "minLength": 1},
                    "offset": {"type": "integer", "minimum": 0},
                    "tag": {"type": "string", "minLength": 1},
                },
                "additionalProperties": False,
            },
        },
    },
    "additionalProperties": True,
}


@dataclass(frozen=True)
class MarkerFileSpec:
    """One marker file to read and how to cut a fragment out of its target path."""

    file_name: str
    search_token: str
    offset: int = 0
    tag: str = ""

    def __post_init__(self):
        if not isinstance(self.file_name, str) or not self.file_name:
            raise ConfigurationError("marker spec needs a non-empty file_name", marker=self.file_name)
        if not isinstance(self.search_token, str) or not self.search_token:
            raise ConfigurationError(
                f"marker spec for '{self.file_name}' needs a non-empty search_token",
                marker=self.file_name,
            )
        if isinstance(self.offset, bool) or not isinstance(self.offset, int) or self.offset < 0:
            raise ConfigurationError(
                f"marker spec for '{self.file_name}' has an invalid offset: {self.offset!r}",
                marker=self.file_name,
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_name": self.file_name,
            "search_token": self.search_token,
            "offset": self.offset,
            "tag": self.tag,
        }


LEGACY_SPEC = MarkerFileSpec(file_name="latest.txt", search_token="1.0.0", offset=0, tag="")


@dataclass(frozen=True)
class LabellerConfig:
    """Everything a single `generate` call needs.

    `legacy` selects the single-spec behaviour: the label is the bare fragment
    and the fragment is cut at its first dash.
    """

    root_path: str
    specs: Tuple[MarkerFileSpec, ...]
    legacy: bool = False

    def __post_init__(self):
        if self.legacy:
            return
        for spec in self.specs:
            if not spec.tag:
                raise ConfigurationError(
                    f"marker spec for '{spec.file_name}' needs a tag when several markers are used",
                    marker=spec.file_name,
                )

    @classmethod
    def for_legacy(cls, root_path: Optional[str]) -> "LabellerConfig":
        return cls(root_path=root_path or "", specs=(LEGACY_SPEC,), legacy=True)

    @classmethod
    def for_specs(cls, root_path: Optional[str], specs: Iterable[MarkerFileSpec]) -> "LabellerConfig":
        return cls(root_path=root_path or "", specs=tuple(specs), legacy=False)


@dataclass(frozen=True)
class MarkerConfigFile:
    """Parsed content of a marker configuration file."""

    source: str
    specs: Tuple[MarkerFileSpec, ...]
    publish_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "version": "v1",
            "markers": [spec.to_dict() for spec in self.specs],
        }
        if self.publish_path is not None:
            payload["publish_path"] = self.publish_path
        return payload


def _describe_validation_error(exc: ValidationError) -> str:
    location = "/".join(str(part) for part in exc.absolute_path)
    if location:
        return f"{location}: {exc.message}"
    return exc.message


def parse_marker_config(data: Any, source: str = "<memory>") -> MarkerConfigFile:
    """Validate decoded JSON against MARKER_CONFIG_SCHEMA and build the spec list.

    Raises:
        ConfigurationError: if the document does not match the schema or
            repeats a tag.
    """
    try:
        jsonschema_validate(data, MARKER_CONFIG_SCHEMA)
    except ValidationError as exc:
        raise ConfigurationError(
            f"invalid marker configuration in '{source}': {_describe_validation_error(exc)}",
            config=source,
        ) from exc

    specs = tuple(
        MarkerFileSpec(
            file_name=entry["file_name"],
            search_token=entry["search_token"],
            offset=entry.get("offset", 0),
            tag=entry["tag"],
        )
        for entry in data["markers"]
    )

    seen = set()
    for spec in specs:
        if spec.tag in seen:
            raise ConfigurationError(
                f"invalid marker configuration in '{source}': duplicate tag '{spec.tag}'",
                config=source,
            )
        seen.add(spec.tag)

    return MarkerConfigFile(
        source=source,
        specs=specs,
        publish_path=data.get("publish_path"),
    )


def load_marker_config(path: str | Path) -> MarkerConfigFile:
    """Read, decode and validate a marker configuration file."""
    config_path = Path(path)
    source = str(config_path)
    try:
        raw = config_path.read_bytes()
    except OSError as exc:
        raise ConfigurationError(
            f"cannot read marker configuration '{source}': {exc.strerror or exc}",
            config=source,
        ) from exc

    if len(raw) > MAX_CONFIG_SIZE:
        raise ConfigurationError(
            f"marker configuration '{source}' is too large: "
            f"{len(raw):,} bytes (max {MAX_CONFIG_SIZE:,} bytes)",
            config=source,
        )

    try:
        data = json.loads(raw.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as exc:
        raise ConfigurationError(
            f"marker configuration '{source}' is not valid JSON: {exc}",
            config=source,
        ) from exc

    return parse_marker_config(data, source)


def build_config(publish_path: Optional[str], marker_file: Optional[str | Path] = None) -> LabellerConfig:
    """Assemble a LabellerConfig from the command line or host settings.

    An explicit `publish_path` wins over the one stored in the marker file;
    a relative path in the file is taken relative to the file's directory.
    Without a marker file the legacy single-spec variant is used.
    """
    if marker_file is None:
        return LabellerConfig.for_legacy(publish_path)
    parsed = load_marker_config(marker_file)
    if not publish_path and parsed.publish_path:
        publish_path = str(Path(marker_file).parent / parsed.publish_path)
    return LabellerConfig.for_specs(publish_path, parsed.specs)
