from dataclasses import dataclass
from enum import Enum
from typing import Optional

UNKNOWN_LINE_NUMBER = "unknown"


class ResolutionSource(str, Enum):
    """Which tier of the resolution chain produced the line number."""
    DIRECT_OVERRIDE = "direct-override"
    DATASET_ROUTE = "dataset-route"
    DATASET_TRIP = "dataset-trip"
    DATASET_BLOCK = "dataset-block"
    ROUTE_ID_LITERAL = "route-id-literal"
    HEURISTIC_COMPANY_SEGMENT = "heuristic-company-segment"
    HEURISTIC_DIGITS = "heuristic-digits"
    UNRESOLVED = "unresolved"

    @property
    def is_heuristic(self) -> bool:
        return self in (
            ResolutionSource.ROUTE_ID_LITERAL,
            ResolutionSource.HEURISTIC_COMPANY_SEGMENT,
            ResolutionSource.HEURISTIC_DIGITS,
        )


@dataclass(frozen=True)
class ResolutionResult:
    line_number: str
    source: ResolutionSource
    route_id: Optional[str] = None  # matched dataset route, if any
    route_color: Optional[str] = None
    route_text_color: Optional[str] = None
    route_long_name: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.source != ResolutionSource.UNRESOLVED

    @classmethod
    def unresolved(cls) -> "ResolutionResult":
        return cls(line_number=UNKNOWN_LINE_NUMBER, source=ResolutionSource.UNRESOLVED)
