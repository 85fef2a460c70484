"""
Lasso CLI - Main entry point.

Offline searches over a GeoJSON listings file, and MQTT commands to a
running search service.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from lasso_search.features.store import FeatureStore, ParseError
from lasso_search.geometry.shapes import Coordinate
from lasso_search.query.engine import ContainmentQueryEngine
from lasso_search.session import SearchSession
from lasso_service.messages import SessionMessageBuilder

from .mqtt_client import MQTTCommandClient

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID_POLYGON = 2


def load_document(source: str) -> Any:
    """
    Load a JSON/YAML document from a file path or an inline JSON string.

    Raises:
        FileNotFoundError: If source looks like a path but doesn't exist
        ValueError: If the document cannot be parsed
    """
    stripped = source.lstrip()
    if stripped.startswith(("[", "{")):
        try:
            return json.loads(source)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid inline JSON: {e}") from e

    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {source}")

    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix in (".yaml", ".yml"):
            return yaml.safe_load(text)
        return json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ValueError(f"Invalid document in {source}: {e}") from e


def extract_positions(document: Any) -> List[List[float]]:
    """
    Pull [[lon, lat], ...] out of a bare position list, a GeoJSON
    Polygon/LineString geometry, or a Feature wrapping one.

    Raises:
        ValueError: Unsupported document shape
    """
    if isinstance(document, dict):
        if document.get("type") == "Feature":
            return extract_positions(document.get("geometry"))
        if document.get("type") == "Polygon":
            rings = document.get("coordinates") or []
            if not rings:
                raise ValueError("Polygon has no rings")
            return rings[0]
        if document.get("type") == "LineString":
            return document.get("coordinates") or []
        if "coordinates" in document and "type" not in document:
            return document["coordinates"]
        raise ValueError(f"Unsupported geometry type: {document.get('type')!r}")

    if isinstance(document, list):
        return document

    raise ValueError(f"Expected a list of [lon, lat] positions, got {type(document).__name__}")


def load_positions(source: str) -> List[List[float]]:
    """Positions as plain [lon, lat] lists (validated, JSON-ready)."""
    positions = extract_positions(load_document(source))
    try:
        return [list(Coordinate.from_lon_lat(p).to_lon_lat()) for p in positions]
    except TypeError as e:
        raise ValueError(f"Positions must be [lon, lat] number pairs: {e}") from e


def run_search(listings: str, polygon: str, include_annotations: bool = False) -> int:
    """
    Offline containment query; prints the result as JSON.

    Returns:
        EXIT_OK, or EXIT_INVALID_POLYGON if the ring encloses no area
    """
    store = FeatureStore.from_file(listings)
    coordinates = [Coordinate.from_lon_lat(p) for p in load_positions(polygon)]
    result = ContainmentQueryEngine.query(coordinates, store)

    builder = SessionMessageBuilder("cli", store)
    message = builder.search_result(SearchSession(last_result=result)).to_dict()
    if not include_annotations:
        message.pop("annotations", None)
    message["dropped_count"] = store.dropped_count

    print(json.dumps(message, indent=2))

    if not result.ok:
        print(f"❌ Invalid polygon: {result.error.reason}", file=sys.stderr)
        return EXIT_INVALID_POLYGON
    return EXIT_OK


def send_command(
    command: Dict[str, Any],
    service_id: str = "denver",
    broker: str = "localhost",
    port: int = 1883,
    wait: bool = False,
    timeout: float = 5.0,
) -> int:
    """
    Send command to the search service via MQTT.

    With `wait`, print the service's status reply; an "error" reply
    makes the exit status EXIT_ERROR.
    """
    topic = f"lasso/control/{service_id}/commands"
    reply_topic = f"lasso/control/{service_id}/status" if wait else None

    client = MQTTCommandClient(broker=broker, port=port, timeout=timeout)
    reply = client.send_command(topic, command, qos=1, reply_topic=reply_topic)
    print(f"✅ Command sent: {command['command']}")

    if reply is None:
        return EXIT_OK

    print(json.dumps(reply, indent=2))
    if reply.get("status") == "error":
        print(f"❌ Rejected: {reply.get('error', 'unknown error')}", file=sys.stderr)
        return EXIT_ERROR
    return EXIT_OK


def build_command(args: argparse.Namespace) -> Dict[str, Any]:
    """Translate parsed CLI arguments into a control-plane command payload."""
    name = args.command.replace("-", "_")

    if name == "draw":
        return {"command": "draw", "coordinates": load_positions(args.polygon)}
    if name == "attach_route":
        return {"command": "attach_route", "coordinates": load_positions(args.route)}
    if name == "set_start":
        return {"command": "set_start", "latitude": args.latitude, "longitude": args.longitude}
    if name == "select_listing":
        return {"command": "select_listing", "feature_id": args.feature_id}
    return {"command": name}


SIMPLE_COMMANDS = {
    "start-search": "Enter drawing mode",
    "cancel-search": "Leave drawing mode",
    "clear-start": "Remove the starting location",
    "clear-all": "Clear search, starting point and route",
    "swap-style": "Toggle the map theme",
    "status": "Query service status",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lasso-cli",
        description="Lasso CLI - Search listings inside a drawn polygon",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Offline search (exit status 2 if the polygon encloses no area)
  lasso-cli search data/denver.geojson '[[-105.0,39.7],[-104.9,39.7],[-104.9,39.8]]'

  # Drive a running service
  lasso-cli start-search
  lasso-cli draw config/commands/draw_downtown.yaml
  lasso-cli set-start 39.7392 -104.9903
  lasso-cli --wait select-listing 12   # exit status 1 if the id is unknown
  lasso-cli swap-style
  lasso-cli clear-all
  lasso-cli status
"""
    )

    parser.add_argument(
        "--service-id",
        default="denver",
        help="Target service ID (default: denver)"
    )
    parser.add_argument(
        "--broker",
        default="localhost",
        help="MQTT broker host (default: localhost)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=1883,
        help="MQTT broker port (default: 1883)"
    )
    parser.add_argument(
        "--wait",
        action="store_true",
        help="Wait for the service's status reply (always on for 'status')"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=5.0,
        help="Seconds to wait for the broker and the reply (default: 5.0)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    search = subparsers.add_parser("search", help="Offline search over a GeoJSON file")
    search.add_argument("listings", help="GeoJSON FeatureCollection of listings")
    search.add_argument("polygon", help="Polygon file (JSON/YAML) or inline JSON positions")
    search.add_argument(
        "--annotations",
        action="store_true",
        help="Include render annotations in the output"
    )

    draw = subparsers.add_parser("draw", help="Search inside a drawn ring")
    draw.add_argument("polygon", help="Polygon file (JSON/YAML) or inline JSON positions")

    set_start = subparsers.add_parser("set-start", help="Pin the starting location")
    set_start.add_argument("latitude", type=float)
    set_start.add_argument("longitude", type=float)

    select = subparsers.add_parser("select-listing", help="Select a listing by feature ID")
    select.add_argument("feature_id")

    route = subparsers.add_parser("attach-route", help="Show an externally computed route")
    route.add_argument("route", help="Route file (JSON/YAML) or inline JSON positions")

    for name, help_text in SIMPLE_COMMANDS.items():
        subparsers.add_parser(name, help=help_text)

    return parser


def run(argv: Optional[List[str]] = None) -> int:
    """Parse arguments and execute; returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_ERROR

    try:
        if args.command == "search":
            return run_search(args.listings, args.polygon, args.annotations)

        command = build_command(args)
        wait = args.wait or args.command == "status"
        return send_command(
            command, args.service_id, args.broker, args.port, wait=wait, timeout=args.timeout
        )

    except (FileNotFoundError, ParseError, ValueError, ConnectionError, TimeoutError) as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return EXIT_ERROR


def main():
    """Main CLI entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
