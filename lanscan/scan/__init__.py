"""Scan lifecycle: configuration, state and the controller."""

from lanscan.scan.scan_config import ScanConfig
from lanscan.scan.scan_controller import ScanController
from lanscan.scan.scan_state import ScanState

__all__ = ["ScanConfig", "ScanController", "ScanState"]
