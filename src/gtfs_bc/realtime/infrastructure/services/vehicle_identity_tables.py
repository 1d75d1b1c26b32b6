"""Hand-maintained vehicle id tables used by the identity resolver.

The defaults can be replaced with a JSON file of the form
{"direct_overrides": {...}, "company_segments": {...}} via
VEHICLE_IDENTITY_TABLES_PATH.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# Vehicles the live feed is known to mislabel
DEFAULT_DIRECT_OVERRIDES: Dict[str, str] = {
    "9031021000557753": "55",  # company segment 1000 but runs line 55
}

# Characters 6..10 of 16-character X-trafik vehicle ids -> line number
DEFAULT_COMPANY_SEGMENTS: Dict[str, str] = {
    "1000": "44",
    "1001": "27",
    "0005": "55",
    "1002": "1",
    "1003": "2",
    "1004": "3",
    "1005": "4",
    "1010": "10",
    "1011": "11",
    "1012": "12",
    "1015": "15",
    "1020": "20",
    "1030": "30",
    "1041": "41",
    "1042": "42",
    "1050": "50",
    "0051": "51",
    "0052": "52",
    "0054": "54",
    **{f"00{n}": str(n) for n in range(56, 68)},
}


@dataclass(frozen=True)
class VehicleIdentityTables:
    direct_overrides: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_DIRECT_OVERRIDES))
    company_segments: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_COMPANY_SEGMENTS))

    @classmethod
    def from_dict(cls, data: dict) -> "VehicleIdentityTables":
        """Missing sections keep their defaults."""
        overrides = data.get("direct_overrides", DEFAULT_DIRECT_OVERRIDES)
        segments = data.get("company_segments", DEFAULT_COMPANY_SEGMENTS)
        if not isinstance(overrides, dict) or not isinstance(segments, dict):
            raise ValueError("direct_overrides and company_segments must be JSON objects")
        return cls(
            direct_overrides={str(k): str(v) for k, v in overrides.items()},
            company_segments={str(k): str(v) for k, v in segments.items()},
        )


def load_identity_tables(path: Optional[str] = None) -> VehicleIdentityTables:
    if not path:
        return VehicleIdentityTables()

    with open(Path(path), encoding="utf-8") as f:
        tables = VehicleIdentityTables.from_dict(json.load(f))
    logger.info(
        f"Loaded vehicle identity tables from {path}: "
        f"{len(tables.direct_overrides)} overrides, {len(tables.company_segments)} company segments"
    )
    return tables
