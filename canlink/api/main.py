from fastapi import FastAPI, HTTPException, Request
import logging
from contextlib import asynccontextmanager

from canlink import __version__
from canlink.config import ConfigManager
from canlink.constants import CAN_WORD_MAX
from canlink.exceptions import InvalidBitRateIndex, InvalidFrameLength
from canlink.models.bitrate import bitrate_rows, coerce_bitrate_index
from canlink.models.sdo import SdoDataType
from canlink.services.service_container import ServiceContainer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler: build the link services and start the supervisor thread."""
    container = ServiceContainer()
    container.initialize_services(ConfigManager())
    container.start()
    app.state.container = container
    try:
        yield
    finally:
        logger.info("Shutting down link supervisor...")
        container.clear()


app = FastAPI(title="CAN Link", lifespan=lifespan)


def _services(request: Request):
    container: ServiceContainer = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(status_code=503, detail="Link services not available")
    return container.get_link_supervisor(), container.get_command_bridge()


def _int_field(payload: dict, name: str, minimum: int = 0, maximum: int = None) -> int:
    value = payload.get(name)
    if value is None:
        raise HTTPException(status_code=400, detail=f"{name} is required")
    try:
        value = int(value, 0) if isinstance(value, str) else int(value)
    except (ValueError, TypeError):
        raise HTTPException(status_code=400, detail=f"Invalid {name}: {value}")
    if value < minimum or (maximum is not None and value > maximum):
        raise HTTPException(status_code=400, detail=f"{name} out of range: {value}")
    return value


@app.get("/api/health")
def health():
    return {"status": "ok", "service": "canlink", "version": __version__}


@app.get("/api/link")
def link_status(request: Request):
    """Current link state, cached driver status and active bit rate."""
    supervisor, _ = _services(request)
    bitrate = supervisor.bitrate
    return {
        "state": supervisor.state.value,
        "connected": supervisor.is_connected(),
        "status": supervisor.last_status,
        "bitrate_index": bitrate.index,
        "bitrate": bitrate.label,
    }


@app.get("/api/bitrates")
def list_bitrates(request: Request):
    """The 14 selectable bit rates with the active one flagged."""
    supervisor, _ = _services(request)
    return bitrate_rows(supervisor.bitrate_index)


@app.post("/api/bitrate")
def set_bitrate(request: Request, payload: dict):
    """Select a bit rate by index; out of range indices clamp to 13.

    Payload: { "index": int }
    """
    supervisor, _ = _services(request)
    if "index" not in payload:
        raise HTTPException(status_code=400, detail="index is required")
    try:
        index = coerce_bitrate_index(payload["index"])
    except InvalidBitRateIndex as e:
        raise HTTPException(status_code=400, detail=str(e))
    effective = supervisor.set_bitrate(index)
    return {"index": effective}


@app.post("/api/can-write")
def can_write(request: Request, payload: dict):
    """Write one standard frame built from two 32-bit words.

    Payload: { "can_id": int, "length": int, "high": int, "low": int }
    """
    _, bridge = _services(request)
    can_id = _int_field(payload, "can_id")
    length = _int_field(payload, "length")
    high = _int_field(payload, "high", maximum=CAN_WORD_MAX)
    low = _int_field(payload, "low", maximum=CAN_WORD_MAX)
    try:
        success = bridge.write(can_id, length, high, low)
    except (InvalidFrameLength, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": success}


@app.post("/api/sdo-write")
def sdo_write(request: Request, payload: dict):
    """Send an SDO write request frame.

    Payload: { "index": int, "subindex": int, "data_type": 1|2|4, "value": int, "node_id": int }
    """
    _, bridge = _services(request)
    index = _int_field(payload, "index")
    subindex = _int_field(payload, "subindex")
    data_type = _int_field(payload, "data_type")
    value = _int_field(payload, "value")
    node_id = _int_field(payload, "node_id")
    try:
        success = bridge.write_sdo(index, subindex, SdoDataType(data_type), value, node_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": success}


# metrics router (small and safe to include)
from canlink.api import metrics as _metrics_module  # noqa: E402

app.include_router(_metrics_module.router)
