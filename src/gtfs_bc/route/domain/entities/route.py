import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional


class RouteType(IntEnum):
    """GTFS Route types."""
    TRAM = 0
    SUBWAY = 1
    RAIL = 2
    BUS = 3
    FERRY = 4
    CABLE_TRAM = 5
    AERIAL_LIFT = 6
    FUNICULAR = 7
    TROLLEYBUS = 11
    MONORAIL = 12


DEFAULT_ROUTE_TYPE = RouteType.BUS
DEFAULT_ROUTE_COLOR = "000000"  # Black
DEFAULT_ROUTE_TEXT_COLOR = "FFFFFF"  # White

_HEX_COLOR = re.compile(r"^[0-9A-Fa-f]{6}$")


def _parse_route_type(value: Optional[str]) -> int:
    """Parse route_type, falling back to bus on anything unparseable."""
    try:
        parsed = int((value or "").strip())
    except ValueError:
        return int(DEFAULT_ROUTE_TYPE)
    # 0 is a valid GTFS value (tram) but the feed uses it for "unset"
    return parsed or int(DEFAULT_ROUTE_TYPE)


def _parse_color(value: Optional[str], default: str) -> str:
    color = (value or "").strip().lstrip("#")
    return color.upper() if _HEX_COLOR.match(color) else default


@dataclass(frozen=True)
class RouteRecord:
    """A route from routes.txt, reduced to what line resolution needs."""

    route_id: str
    line_number: str  # route_short_name, not necessarily a small integer
    long_name: str = ""
    agency_id: str = ""
    route_type: int = int(DEFAULT_ROUTE_TYPE)
    color: str = DEFAULT_ROUTE_COLOR
    text_color: str = DEFAULT_ROUTE_TEXT_COLOR

    @classmethod
    def from_gtfs(cls, row: dict) -> Optional["RouteRecord"]:
        """Create RouteRecord from GTFS CSV row.

        Returns None when route_id or route_short_name is missing.
        """
        route_id = (row.get("route_id") or "").strip()
        line_number = (row.get("route_short_name") or "").strip()
        if not route_id or not line_number:
            return None

        return cls(
            route_id=route_id,
            line_number=line_number,
            long_name=(row.get("route_long_name") or "").strip(),
            agency_id=(row.get("agency_id") or "").strip(),
            route_type=_parse_route_type(row.get("route_type")),
            color=_parse_color(row.get("route_color"), DEFAULT_ROUTE_COLOR),
            text_color=_parse_color(row.get("route_text_color"), DEFAULT_ROUTE_TEXT_COLOR),
        )

    @property
    def css_color(self) -> str:
        return f"#{self.color}"

    @property
    def css_text_color(self) -> str:
        return f"#{self.text_color}"

    def to_dict(self) -> dict:
        return {
            "shortName": self.line_number,
            "longName": self.long_name,
            "agency": self.agency_id,
            "type": self.route_type,
            "color": self.color,
            "textColor": self.text_color,
        }
