"""
Configuration schema for the lasso search service.

This module defines the configuration structure for the search service:
listing dataset location, search timings, map styles and MQTT settings.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import yaml

from lasso_search.rendering import AnnotationStyle
from lasso_search.session import MapStyle


@dataclass(frozen=True)
class SearchConfig:
    """Search gesture and route reveal timings."""

    search_dismiss_delay: float = 1.0  # seconds before drawing mode is left
    route_display_delay: float = 2.0  # seconds before a route is revealed

    def __post_init__(self):
        """Validate search configuration."""
        for name in ("search_dismiss_delay", "route_display_delay"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")


@dataclass(frozen=True)
class StyleConfig:
    """
    Map themes and annotation paint.

    The two theme URLs are what the renderer loads; `initial_style` picks
    which one is active at startup.
    """

    streets_url: str = "mapbox://styles/mapbox/streets-v7"
    emerald_url: str = "mapbox://styles/mapbox/emerald-v7"
    initial_style: str = "streets"  # "streets" or "emerald"
    fill_alpha: float = 0.25
    key_line_width: float = 2.0
    route_width: float = 3.0

    def __post_init__(self):
        """Validate style configuration."""
        valid_styles = {s.value for s in MapStyle}
        if self.initial_style not in valid_styles:
            raise ValueError(
                f"Invalid initial_style: {self.initial_style}. "
                f"Must be one of {sorted(valid_styles)}"
            )

        if not self.streets_url or not self.emerald_url:
            raise ValueError("Style URLs cannot be empty")

        # AnnotationStyle validates alpha/width ranges
        self.annotation_style()

    @property
    def map_style(self) -> MapStyle:
        return MapStyle(self.initial_style)

    def url_for(self, style: MapStyle) -> str:
        return self.streets_url if style is MapStyle.STREETS else self.emerald_url

    def annotation_style(self) -> AnnotationStyle:
        return AnnotationStyle(
            fill_alpha=self.fill_alpha,
            key_line_width=self.key_line_width,
            route_width=self.route_width,
        )


@dataclass(frozen=True)
class MQTTConfig:
    """MQTT broker configuration."""

    broker: str = "localhost"
    port: int = 1883
    username: Optional[str] = None
    password: Optional[str] = None
    qos: int = 1  # Data plane QoS (one message per user action)

    command_topic: str = "lasso/control/{service_id}/commands"
    status_topic: str = "lasso/control/{service_id}/status"
    result_topic: str = "lasso/data/results/{service_id}"
    overlay_topic: str = "lasso/data/overlay/{service_id}"

    def __post_init__(self):
        """Validate MQTT configuration."""
        if not self.broker:
            raise ValueError("MQTT broker cannot be empty")

        if not 1 <= self.port <= 65535:
            raise ValueError(
                f"MQTT port must be in [1, 65535], got {self.port}"
            )

        if self.qos not in {0, 1, 2}:
            raise ValueError(
                f"MQTT QoS must be 0, 1, or 2, got {self.qos}"
            )

    def topics_for(self, service_id: str) -> dict:
        """Topic templates with {service_id} filled in."""
        return {
            "command": self.command_topic.format(service_id=service_id),
            "status": self.status_topic.format(service_id=service_id),
            "result": self.result_topic.format(service_id=service_id),
            "overlay": self.overlay_topic.format(service_id=service_id),
        }


@dataclass(frozen=True)
class ServiceConfig:
    """
    Main configuration for the search service.

    Loaded from YAML and validated at startup.
    Immutable after construction (frozen dataclass).
    """

    service_id: str
    listings_path: Path

    search_config: SearchConfig = field(default_factory=SearchConfig)
    style_config: StyleConfig = field(default_factory=StyleConfig)
    mqtt_config: MQTTConfig = field(default_factory=MQTTConfig)

    def __post_init__(self):
        """Validate service configuration."""
        if not self.service_id:
            raise ValueError("service_id cannot be empty")

        if any(c in self.service_id for c in "/+#"):
            raise ValueError(
                f"service_id cannot contain MQTT topic characters '/', '+' or '#', "
                f"got {self.service_id!r}"
            )

        if not self.listings_path.exists():
            raise FileNotFoundError(
                f"Listings file not found: {self.listings_path}\n"
                f"Create the file or update 'listings_path' in config"
            )

        if not self.listings_path.is_file():
            raise ValueError(
                f"listings_path must be a file, got directory: {self.listings_path}"
            )

    @property
    def topics(self) -> dict:
        return self.mqtt_config.topics_for(self.service_id)

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "ServiceConfig":
        """
        Load configuration from YAML file.

        Relative listings paths are resolved against the YAML file's
        directory.

        Example YAML:
            service_id: "denver"
            listings_path: "../data/denver.geojson"

            search_config:
              search_dismiss_delay: 1.0
              route_display_delay: 2.0

            style_config:
              initial_style: "streets"

            mqtt_config:
              broker: "localhost"
              port: 1883
              username: null
              password: null
        """
        yaml_path = Path(yaml_path)
        with open(yaml_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Config root must be a mapping: {yaml_path}")

        search_config = SearchConfig(**(data.get("search_config") or {}))
        style_config = StyleConfig(**(data.get("style_config") or {}))
        mqtt_config = MQTTConfig(**(data.get("mqtt_config") or {}))

        listings_path = Path(data["listings_path"])
        if not listings_path.is_absolute():
            listings_path = yaml_path.parent / listings_path

        return cls(
            service_id=str(data["service_id"]),
            listings_path=listings_path,
            search_config=search_config,
            style_config=style_config,
            mqtt_config=mqtt_config,
        )
