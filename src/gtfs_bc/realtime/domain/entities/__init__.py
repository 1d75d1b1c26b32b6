from .vehicle_position import VehiclePositionEntity
from .resolution_result import ResolutionResult, ResolutionSource, UNKNOWN_LINE_NUMBER

__all__ = ["VehiclePositionEntity", "ResolutionResult", "ResolutionSource", "UNKNOWN_LINE_NUMBER"]
