"""Built-in reference dataset used when the real one cannot be obtained."""

import csv
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

ROUTES_HEADER = [
    "route_id", "agency_id", "route_short_name", "route_long_name",
    "route_type", "route_color", "route_text_color",
]

TRIPS_HEADER = [
    "route_id", "service_id", "trip_id", "trip_headsign", "trip_short_name",
    "direction_id", "block_id", "shape_id", "wheelchair_accessible", "bikes_allowed",
]

# (line, long name, color, text color, outbound headsign, has return trip)
SYNTHETIC_LINES = [
    ("1", "Centrum - Sjukhuset", "0000FF", "FFFFFF", "Sjukhuset", True),
    ("2", "Centrum - Bomhus", "00FF00", "FFFFFF", "Bomhus", True),
    ("3", "Centrum - Sätra", "FF0000", "FFFFFF", "Sätra", True),
    ("4", "Centrum - Andersberg", "FFFF00", "000000", "Andersberg", False),
    ("10", "Centrum - Valbo", "00FFFF", "000000", "Valbo", False),
    ("11", "Centrum - Brynäs", "FF00FF", "FFFFFF", "Brynäs", False),
    ("12", "Centrum - Stigslund", "772233", "FFFFFF", "Stigslund", False),
    ("15", "Centrum - Hamrånge", "334455", "FFFFFF", "Hamrånge", False),
    ("20", "Centrum - Kungsbäck", "998877", "000000", "Kungsbäck", False),
    ("30", "Centrum - Hagaström", "223311", "FFFFFF", "Hagaström", False),
    ("41", "Valbo - Forsbacka", "445511", "FFFFFF", "Forsbacka", False),
    ("42", "Centrum - Forsbacka", "667722", "FFFFFF", "Forsbacka", False),
    ("44", "Sandviken - Gävle", "546712", "FFFFFF", "Gävle", False),
    ("50", "Sandviken - Valbo", "993300", "FFFFFF", "Valbo", False),
    ("55", "Sandviken - Hofors", "234567", "FFFFFF", "Hofors", False),
]

AGENCY_ID = "xtrafik"
SERVICE_ID = "vardagar"
BUS_ROUTE_TYPE = "3"


def synthetic_route_rows():
    for line, long_name, color, text_color, _headsign, _return in SYNTHETIC_LINES:
        yield [line, AGENCY_ID, line, long_name, BUS_ROUTE_TYPE, color, text_color]


def synthetic_trip_rows():
    for line, _long_name, _color, _text_color, headsign, has_return in SYNTHETIC_LINES:
        yield [line, SERVICE_ID, f"trip_{line}_01", headsign, "", "0", f"block_{line}_01", line, "1", "1"]
        if has_return:
            yield [line, SERVICE_ID, f"trip_{line}_02", "Centrum", "", "1", f"block_{line}_02", line, "1", "1"]


def write_synthetic_dataset(extract_dir: Path) -> None:
    """Write routes.txt and trips.txt in the same shape the provider ships."""
    extract_dir = Path(extract_dir)
    extract_dir.mkdir(parents=True, exist_ok=True)

    with open(extract_dir / "routes.txt", "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(ROUTES_HEADER)
        writer.writerows(synthetic_route_rows())

    with open(extract_dir / "trips.txt", "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(TRIPS_HEADER)
        writer.writerows(synthetic_trip_rows())

    logger.warning(f"Synthetic GTFS dataset written to {extract_dir} ({len(SYNTHETIC_LINES)} lines)")
