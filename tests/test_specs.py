"""
Unit tests for marker configuration loading and validation.
"""
import json
from pathlib import Path

import pytest

from publabel.errors import ConfigurationError
from publabel.specs import (
    LEGACY_SPEC,
    MAX_CONFIG_SIZE,
    MarkerFileSpec,
    build_config,
    load_marker_config,
    parse_marker_config,
)


def marker_config(**overrides):
    data = {
        "version": "v1",
        "markers": [
            {"file_name": "wms.txt", "search_token": "1.0.0", "offset": 0, "tag": "wms"},
            {"file_name": "ui.txt", "search_token": "build-", "offset": 6, "tag": "ui"},
        ],
    }
    data.update(overrides)
    return data


def write_config(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestParseMarkerConfig:
    def test_valid_config(self):
        parsed = parse_marker_config(marker_config(publish_path="/srv/publish"))
        assert parsed.specs == (
            MarkerFileSpec("wms.txt", "1.0.0", 0, "wms"),
            MarkerFileSpec("ui.txt", "build-", 6, "ui"),
        )
        assert parsed.publish_path == "/srv/publish"

    def test_offset_defaults_to_zero(self):
        parsed = parse_marker_config(
            marker_config(markers=[{"file_name": "a.txt", "search_token": "x", "tag": "a"}])
        )
        assert parsed.specs[0].offset == 0

    @pytest.mark.parametrize(
        "data",
        [
            {"markers": []},
            {"version": "v2", "markers": [{"file_name": "a.txt", "search_token": "x", "tag": "a"}]},
            {"version": "v1"},
            {"version": "v1", "markers": []},
            {"version": "v1", "markers": [{"search_token": "x", "tag": "a"}]},
            {"version": "v1", "markers": [{"file_name": "a.txt", "search_token": "", "tag": "a"}]},
            {"version": "v1", "markers": [{"file_name": "a.txt", "search_token": "x", "tag": "a", "offset": -1}]},
            {"version": "v1", "markers": [{"file_name": "a.txt", "search_token": "x", "tag": "a", "offset": "2"}]},
            {"version": "v1", "markers": [{"file_name": "a.txt", "search_token": "x", "tag": "a", "colour": "red"}]},
            ["not", "an", "object"],
        ],
    )
    def test_schema_violations(self, data):
        with pytest.raises(ConfigurationError) as excinfo:
            parse_marker_config(data, "markers.json")
        assert "markers.json" in str(excinfo.value)

    def test_violation_names_the_field(self):
        data = marker_config()
        data["markers"][1]["offset"] = -3
        with pytest.raises(ConfigurationError) as excinfo:
            parse_marker_config(data)
        assert "markers/1/offset" in str(excinfo.value)

    def test_duplicate_tags_rejected(self):
        data = marker_config()
        data["markers"][1]["tag"] = "wms"
        with pytest.raises(ConfigurationError) as excinfo:
            parse_marker_config(data)
        assert "duplicate tag 'wms'" in str(excinfo.value)

    def test_round_trip_to_dict(self):
        data = marker_config(publish_path="/srv/publish")
        assert parse_marker_config(data).to_dict() == data


class TestLoadMarkerConfig:
    def test_load_from_file(self, tmp_path):
        path = write_config(tmp_path / "markers.json", marker_config())
        parsed = load_marker_config(path)
        assert [spec.tag for spec in parsed.specs] == ["wms", "ui"]
        assert parsed.source == str(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError) as excinfo:
            load_marker_config(tmp_path / "absent.json")
        assert "absent.json" in str(excinfo.value)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "markers.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError) as excinfo:
            load_marker_config(path)
        assert "not valid JSON" in str(excinfo.value)

    def test_oversized_file(self, tmp_path):
        path = tmp_path / "markers.json"
        path.write_text(" " * (MAX_CONFIG_SIZE + 1), encoding="utf-8")
        with pytest.raises(ConfigurationError) as excinfo:
            load_marker_config(path)
        assert "too large" in str(excinfo.value)

    def test_byte_order_mark_accepted(self, tmp_path):
        path = tmp_path / "markers.json"
        path.write_text(json.dumps(marker_config()), encoding="utf-8-sig")
        assert len(load_marker_config(path).specs) == 2


class TestBuildConfig:
    def test_without_marker_file_uses_legacy_spec(self):
        config = build_config("/srv/publish")
        assert config.legacy is True
        assert config.specs == (LEGACY_SPEC,)
        assert config.root_path == "/srv/publish"

    def test_publish_path_from_marker_file(self, tmp_path):
        path = write_config(tmp_path / "markers.json", marker_config(publish_path="/srv/publish"))
        config = build_config(None, path)
        assert config.legacy is False
        assert config.root_path == "/srv/publish"
        assert len(config.specs) == 2

    def test_explicit_publish_path_wins(self, tmp_path):
        path = write_config(tmp_path / "markers.json", marker_config(publish_path="/srv/publish"))
        assert build_config("/other", path).root_path == "/other"

    def test_config_is_immutable(self):
        config = build_config("/srv/publish")
        with pytest.raises(AttributeError):
            config.root_path = "/elsewhere"


class TestRelativePublishPath:
    def test_relative_publish_path_resolves_against_config_dir(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config_dir = tmp_path / "ci"
        config_dir.mkdir()
        path = write_config(config_dir / "markers.json", marker_config(publish_path="publish"))
        config = build_config(None, path)
        assert Path(config.root_path) == config_dir / "publish"

    def test_explicit_relative_publish_path_is_left_alone(self, tmp_path):
        path = write_config(tmp_path / "markers.json", marker_config(publish_path="publish"))
        assert build_config("other", path).root_path == "other"


def test_deeply_nested_json_rejected(tmp_path):
    path = tmp_path / "markers.json"
    path.write_text("[" * 60000, encoding="utf-8")
    with pytest.raises(ConfigurationError) as excinfo:
        load_marker_config(path)
    assert "not valid JSON" in str(excinfo.value)
