"""
FastAPI Server for the Availability Zone Daemon
Main application entry point with SSE support
"""
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from typing import List
import uvicorn
import logging
from datetime import datetime
from contextlib import asynccontextmanager

# Import our custom modules
from config import AppConfig, ZoneConfig
from core.availability_zone_manager import AvailabilityZoneManager
from core.exceptions import AvailabilityZoneError, AvailabilityZoneManagerError
from core.zone_operations_handler import ERROR_STATUS_CODES, OPERATIONS, ZoneOperationsHandler
from operation_logger import OperationLogger
from utils.logger_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    data_dir = ZoneConfig.get_data_dir()
    logger.info(f"Starting application with data directory {data_dir}...")
    try:
        zone_manager = AvailabilityZoneManager(data_dir)
    except (AvailabilityZoneError, AvailabilityZoneManagerError) as e:
        logger.error(f"Failed to load availability zones: {e}")
        raise

    app.state.zone_manager = zone_manager
    app.state.zone_ops_handler = ZoneOperationsHandler(zone_manager, OperationLogger())

    status = zone_manager.get_status()
    logger.info(f"Zone manager initialized with {status['zones']} zones, automatic zone {status['automatic_zone']}")
    logger.info("Application startup complete")
    yield  # Server is running here

    # Shutdown
    logger.info("Application shutdown complete")


app = FastAPI(
    title=AppConfig.APP_NAME,
    description=AppConfig.APP_DESCRIPTION,
    version=AppConfig.APP_VERSION,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=AppConfig.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _handler(request: Request) -> ZoneOperationsHandler:
    return request.app.state.zone_ops_handler


@app.get("/zones")
def list_zones(request: Request):
    """List every zone with its subnet and availability"""
    return {"zones": _handler(request).list_zones()}


@app.get("/zones-action/")
async def handle_zones_operation(
    request: Request,
    zone: List[str] = Query(...),
    operation: str = "enable",
    format: str = "json"  # Parameter to control response format
):
    """
    Enable or disable zones with a JSON response or SSE updates

    Args:
        request: FastAPI request object
        zone: Zone names, repeat the parameter for several zones
        operation: "enable" or "disable"
        format: Response format - "json" (single response) or "sse" (streaming)
    """
    logger.info(f"Received request: {operation} for zones {zone}, format={format}")

    if operation not in OPERATIONS:
        logger.warning(f"Invalid operation requested: {operation}")
        raise HTTPException(
            status_code=400,
            detail=f"Invalid operation: {operation}. Valid operations are: {', '.join(OPERATIONS)}"
        )

    client_ip = request.client.host if request.client else None
    handler = _handler(request)

    if format.lower() == "sse":
        return await handler.stream_operation(zone_names=zone, operation=operation, client_ip=client_ip)
    # Zone writes block on the zone lock and disk, keep them off the event loop
    return await run_in_threadpool(
        handler.execute_operation_json, zone_names=zone, operation=operation, client_ip=client_ip
    )


@app.get("/zones/automatic")
def automatic_zone(request: Request):
    """Pick the next zone for automatic placement"""
    client_ip = request.client.host if request.client else None
    result = _handler(request).pick_automatic_zone(client_ip)
    if result["status"] != "success":
        raise HTTPException(status_code=ERROR_STATUS_CODES.get(result["error_type"], 500), detail=result["message"])
    return result


@app.get("/zones/default")
def default_zone(request: Request):
    """The stable fallback zone, independent of automatic placement"""
    return {"zone": request.app.state.zone_manager.get_default_zone_name()}


@app.get("/health")
def health_check(request: Request):
    """Health check endpoint"""
    return {
        "status": "healthy",
        "server_version": AppConfig.APP_VERSION,
        "zone_status": request.app.state.zone_manager.get_status(),
        "timestamp": datetime.now().isoformat()
    }


if __name__ == "__main__":
    uvicorn.run(
        "fastserver:app",
        host=AppConfig.HOST,
        port=AppConfig.PORT,
        log_level="info"
    )
