"""
topic-preview Configuration
===========================

This module handles configuration loading for the preview client.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    PREVIEW_ENDPOINT       -> transport.endpoint
    PREVIEW_TOPIC          -> subscription.topic
    PREVIEW_MESSAGE_TYPE   -> subscription.message_type
    PREVIEW_TARGET_WIDTH   -> display.target_width
    PREVIEW_DECODE_TIMEOUT -> display.decode_timeout_seconds
    PREVIEW_LOG_LEVEL      -> logging.level
    PREVIEW_LOG_FORMAT     -> logging.format

Example:
    from topic_preview.config import load_config, setup_logging

    settings = load_config()
    setup_logging(settings)
    print(settings.subscription.topic)
"""

import os
import logging
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class TransportConfig(BaseModel):
    """Bus connection configuration."""

    endpoint: str = Field(
        default="tcp://127.0.0.1:7447",
        description="ZeroMQ endpoint the image publisher is bound to",
    )


class NodeConfig(BaseModel):
    """Identity of this client on the bus."""

    namespace: str = Field(default="/rustdds", description="Node namespace")
    name: str = Field(default="rustdds_listener", description="Node base name")


class SubscriptionConfig(BaseModel):
    """Topic selection."""

    topic: str = Field(default="ssbu_c", description="Topic base name")
    message_type: Literal["Image", "CompressedImage"] = Field(
        default="CompressedImage",
        description="Message variant carried by the topic",
    )


class DisplayConfig(BaseModel):
    """Preview window configuration."""

    target_width: int = Field(
        default=1280,
        ge=1,
        le=16384,
        description="Window width set on the first frame",
    )
    preserve_aspect_ratio: bool = Field(
        default=True,
        description="Keep image proportions when the window is resized",
    )
    decode_timeout_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Maximum time a single frame decode may take",
    )
    poll_interval_ms: int = Field(
        default=30,
        ge=1,
        le=1000,
        description="Interval between GUI event polls",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for topic-preview.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    transport: TransportConfig = Field(default_factory=TransportConfig)
    node: NodeConfig = Field(default_factory=NodeConfig)
    subscription: SubscriptionConfig = Field(default_factory=SubscriptionConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration

    Raises:
        pydantic.ValidationError: If a value is out of range
        yaml.YAMLError: If the config file is not valid YAML
    """
    # Find config file
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    # Load from YAML if exists
    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.info("No config file found, using defaults and environment variables")

    # Apply environment variable overrides
    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Transport settings
    if env_endpoint := os.environ.get("PREVIEW_ENDPOINT"):
        config_data.setdefault("transport", {})["endpoint"] = env_endpoint

    # Subscription settings
    if env_topic := os.environ.get("PREVIEW_TOPIC"):
        config_data.setdefault("subscription", {})["topic"] = env_topic
    if env_type := os.environ.get("PREVIEW_MESSAGE_TYPE"):
        config_data.setdefault("subscription", {})["message_type"] = env_type

    # Display settings
    if env_width := os.environ.get("PREVIEW_TARGET_WIDTH"):
        config_data.setdefault("display", {})["target_width"] = int(env_width)
    if env_timeout := os.environ.get("PREVIEW_DECODE_TIMEOUT"):
        config_data.setdefault("display", {})["decode_timeout_seconds"] = float(env_timeout)

    # Logging settings
    if env_log := os.environ.get("PREVIEW_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log
    if env_format := os.environ.get("PREVIEW_LOG_FORMAT"):
        config_data.setdefault("logging", {})["format"] = env_format


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
