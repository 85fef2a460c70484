from __future__ import annotations

from pathlib import Path

import pytest

from lasso_search.session import MapStyle
from lasso_service import MQTTConfig, SearchConfig, ServiceConfig, StyleConfig

REPO_ROOT = Path(__file__).resolve().parent.parent


def write_config(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "service.yaml"
    path.write_text(body, encoding="utf-8")
    return path


def test_shipped_config_loads() -> None:
    config = ServiceConfig.from_yaml(REPO_ROOT / "config" / "search_service.yaml")

    assert config.service_id == "denver"
    assert config.listings_path.is_file()
    assert config.style_config.map_style is MapStyle.STREETS
    assert config.topics["command"] == "lasso/control/denver/commands"


def test_relative_listings_path_resolves_against_config_dir(tmp_path, listings_file) -> None:
    path = write_config(tmp_path, f"service_id: test\nlistings_path: {listings_file.name}\n")

    config = ServiceConfig.from_yaml(path)

    assert config.listings_path == listings_file
    assert config.search_config == SearchConfig()
    assert config.mqtt_config.qos == 1


def test_sections_override_defaults(tmp_path, listings_file) -> None:
    path = write_config(tmp_path, f"""
service_id: test
listings_path: {listings_file}
search_config:
  search_dismiss_delay: 0.5
style_config:
  initial_style: emerald
mqtt_config:
  broker: broker.local
  result_topic: "maps/{{service_id}}/results"
""")

    config = ServiceConfig.from_yaml(path)

    assert config.search_config.search_dismiss_delay == 0.5
    assert config.search_config.route_display_delay == 2.0
    assert config.style_config.map_style is MapStyle.EMERALD
    assert config.mqtt_config.broker == "broker.local"
    assert config.topics["result"] == "maps/test/results"
    assert config.topics["overlay"] == "lasso/data/overlay/test"


def test_missing_listings_file(tmp_path) -> None:
    path = write_config(tmp_path, "service_id: test\nlistings_path: nowhere.geojson\n")

    with pytest.raises(FileNotFoundError):
        ServiceConfig.from_yaml(path)


def test_listings_path_must_be_a_file(tmp_path) -> None:
    with pytest.raises(ValueError):
        ServiceConfig(service_id="test", listings_path=tmp_path)


@pytest.mark.parametrize("service_id", ["", "a/b", "a+", "#"])
def test_service_id_must_be_topic_safe(listings_file, service_id) -> None:
    with pytest.raises(ValueError):
        ServiceConfig(service_id=service_id, listings_path=listings_file)


def test_config_root_must_be_mapping(tmp_path) -> None:
    with pytest.raises(ValueError):
        ServiceConfig.from_yaml(write_config(tmp_path, "- just\n- a list\n"))


def test_section_validation() -> None:
    with pytest.raises(ValueError):
        SearchConfig(route_display_delay=-1)
    with pytest.raises(ValueError):
        StyleConfig(initial_style="satellite")
    with pytest.raises(ValueError):
        StyleConfig(fill_alpha=2.0)
    with pytest.raises(ValueError):
        StyleConfig(emerald_url="")
    with pytest.raises(ValueError):
        MQTTConfig(port=0)
    with pytest.raises(ValueError):
        MQTTConfig(qos=3)


def test_style_urls() -> None:
    style = StyleConfig()

    assert style.url_for(MapStyle.STREETS).endswith("streets-v7")
    assert style.url_for(MapStyle.EMERALD).endswith("emerald-v7")
    assert style.annotation_style().route_width == 3.0
