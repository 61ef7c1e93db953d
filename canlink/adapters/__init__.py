from .interface import PcanDriver, status_code
from .pcan import PcanGateway, PCAN_BAUDRATES
from .sim import SimDriver

__all__ = ["PcanDriver", "PcanGateway", "PCAN_BAUDRATES", "SimDriver", "status_code"]
