"""
Configuration Tests
===================

YAML loading, environment overrides and validation.
"""

import pytest
from pydantic import ValidationError

from topic_preview.config import Settings, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "PREVIEW_ENDPOINT",
        "PREVIEW_TOPIC",
        "PREVIEW_MESSAGE_TYPE",
        "PREVIEW_TARGET_WIDTH",
        "PREVIEW_DECODE_TIMEOUT",
        "PREVIEW_LOG_LEVEL",
        "PREVIEW_LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:

    def test_defaults(self):
        settings = Settings()
        assert settings.subscription.topic == "ssbu_c"
        assert settings.subscription.message_type == "CompressedImage"
        assert settings.node.namespace == "/rustdds"
        assert settings.node.name == "rustdds_listener"
        assert settings.display.target_width == 1280
        assert settings.display.preserve_aspect_ratio is True


class TestLoadConfig:

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "subscription:\n"
            "  topic: camera\n"
            "  message_type: Image\n"
            "display:\n"
            "  target_width: 800\n"
        )
        settings = load_config(str(path))
        assert settings.subscription.topic == "camera"
        assert settings.subscription.message_type == "Image"
        assert settings.display.target_width == 800
        assert settings.transport.endpoint == "tcp://127.0.0.1:7447"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(str(path)).subscription.topic == "ssbu_c"

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("subscription:\n  topic: camera\n")
        monkeypatch.setenv("PREVIEW_TOPIC", "front")
        monkeypatch.setenv("PREVIEW_ENDPOINT", "ipc:///tmp/bus")
        monkeypatch.setenv("PREVIEW_TARGET_WIDTH", "640")

        settings = load_config(str(path))
        assert settings.subscription.topic == "front"
        assert settings.transport.endpoint == "ipc:///tmp/bus"
        assert settings.display.target_width == 640

    def test_invalid_message_type(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PREVIEW_MESSAGE_TYPE", "PointCloud2")
        with pytest.raises(ValidationError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_invalid_width(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("display:\n  target_width: 0\n")
        with pytest.raises(ValidationError):
            load_config(str(path))
