"""
Lasso CLI - Command-line interface for lasso search.

Runs offline searches over a GeoJSON listings file and sends MQTT commands
to a running search service without manually writing JSON.

Usage:
    lasso-cli search data/denver.geojson polygon.json
    lasso-cli start-search
    lasso-cli draw polygon.json
    lasso-cli set-start 39.7392 -104.9903
    lasso-cli clear-all
"""

__version__ = "1.0.0"
