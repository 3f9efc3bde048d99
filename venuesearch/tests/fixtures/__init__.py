from __future__ import annotations

from pathlib import Path

FIXTURES_DIR = Path(__file__).resolve().parent
BUSINESSES_JSON = FIXTURES_DIR / "businesses.json"

# San Francisco City Hall
SF_LOCATION = {"latitude": 37.7749, "longitude": -122.4194}
SF_VIEWPORT = {"southwest": [-122.52, 37.70], "northeast": [-122.35, 37.83]}
