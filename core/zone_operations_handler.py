"""
Zone Operations Handler with SSE Support
Turns enable/disable zone requests into zone state changes and reports the
outcome as result dictionaries or real-time SSE updates
"""
from fastapi import HTTPException
from sse_starlette.sse import EventSourceResponse
import asyncio
from datetime import datetime
from typing import AsyncGenerator, Dict, List, Optional, Tuple
import logging

from core.availability_zone import AvailabilityZone
from core.availability_zone_manager import AvailabilityZoneManager
from core.exceptions import (
    AvailabilityZoneNotFound,
    AvailabilityZoneSerializationError,
    AvailabilityZoneManagerSerializationError,
    NoAvailabilityZoneAvailable,
)

# Operation name -> availability it sets
OPERATIONS = {
    "enable": True,
    "disable": False,
}

# Result error types and the HTTP status they map to
ERROR_STATUS_CODES = {
    "invalid_operation": 400,
    "not_found": 404,
    "serialization": 500,
    "unavailable": 503,
}


class ZoneOperationsHandler:
    def __init__(self, zone_manager: AvailabilityZoneManager, operation_logger):
        self.zone_manager = zone_manager
        self.operation_logger = operation_logger
        self.logger = logging.getLogger(__name__)

    def _resolve_zones(self, zone_names: List[str]) -> Tuple[bool, List[AvailabilityZone], str]:
        """
        Look up every requested zone before any of them is touched

        Returns:
            Tuple of (success, zones, error_message)
        """
        zones = []
        for name in zone_names:
            try:
                zones.append(self.zone_manager.get_zone(name))
            except AvailabilityZoneNotFound as e:
                return False, [], str(e)
        return True, zones, ""

    def _result(self, status: str, operation: str, zones: List[str], **extra) -> Dict:
        result = {
            "status": status,
            "operation": operation,
            "zones": list(zones),
            "timestamp": datetime.now().isoformat(),
        }
        result.update(extra)
        return result

    def _error(self, operation: str, zones: List[str], error_type: str, message: str,
               client_ip: Optional[str], **extra) -> Dict:
        self.logger.warning(f"{operation} on [{', '.join(zones)}] failed: {message}")
        self.operation_logger.log_operation(
            timestamp=datetime.now(),
            zones=zones,
            operation=operation,
            client_ip=client_ip,
            status=f"failed-{error_type}",
            detail=message
        )
        return self._result("error", operation, zones, error_type=error_type, message=message, **extra)

    def set_zones_available(self, zone_names: List[str], available: bool,
                            client_ip: Optional[str] = None) -> Dict:
        """
        Make the named zones available or unavailable

        Unknown names fail the whole request before any zone changes. A
        persistence failure stops at the failing zone; zones changed before it
        keep their new state and are listed under "changed".

        Returns:
            Result dict with "status" of "success" or "error"
        """
        operation = "enable" if available else "disable"

        if not zone_names:
            return self._error(operation, [], "invalid_operation", "no zones given", client_ip)

        ok, zones, error_msg = self._resolve_zones(zone_names)
        if not ok:
            return self._error(operation, zone_names, "not_found", error_msg, client_ip)

        self.logger.info(f"Starting {operation} operation on zones {', '.join(zone_names)}")
        changed = []
        for zone in zones:
            try:
                if zone.set_available(available):
                    changed.append(zone.name)
            except AvailabilityZoneSerializationError as e:
                return self._error(operation, zone_names, "serialization", str(e), client_ip, changed=changed)

        self.operation_logger.log_operation(
            timestamp=datetime.now(),
            zones=zone_names,
            operation=operation,
            client_ip=client_ip,
            status="completed",
            detail=f"changed: {' '.join(changed)}" if changed else "no change"
        )
        self.logger.info(f"Completed {operation} on zones {', '.join(zone_names)} (changed: {len(changed)})")
        return self._result("success", operation, zone_names, changed=changed)

    def enable(self, zone_names: List[str], client_ip: Optional[str] = None) -> Dict:
        return self.set_zones_available(zone_names, True, client_ip)

    def disable(self, zone_names: List[str], client_ip: Optional[str] = None) -> Dict:
        return self.set_zones_available(zone_names, False, client_ip)

    def list_zones(self) -> List[Dict]:
        return [zone.to_dict() for zone in self.zone_manager.get_zones()]

    def pick_automatic_zone(self, client_ip: Optional[str] = None) -> Dict:
        """Hand out the next zone for automatic placement"""
        operation = "automatic"
        try:
            zone_name = self.zone_manager.get_automatic_zone_name()
        except NoAvailabilityZoneAvailable as e:
            return self._error(operation, [], "unavailable", str(e), client_ip)
        except AvailabilityZoneManagerSerializationError as e:
            return self._error(operation, [], "serialization", str(e), client_ip)

        self.operation_logger.log_operation(
            timestamp=datetime.now(),
            zones=[zone_name],
            operation=operation,
            client_ip=client_ip,
            status="completed"
        )
        return self._result("success", operation, [zone_name], zone=zone_name)

    def execute_operation_json(self, zone_names: List[str], operation: str,
                               client_ip: Optional[str] = None) -> Dict:
        """
        Execute a zone operation and return a JSON response (no streaming)

        Raises:
            HTTPException: with the status code matching the result's error type
        """
        if operation not in OPERATIONS:
            raise HTTPException(
                status_code=ERROR_STATUS_CODES["invalid_operation"],
                detail=f"Invalid operation: {operation}. Valid operations are: {', '.join(OPERATIONS)}"
            )

        result = self.set_zones_available(zone_names, OPERATIONS[operation], client_ip)
        if result["status"] != "success":
            raise HTTPException(
                status_code=ERROR_STATUS_CODES.get(result["error_type"], 500),
                detail=result["message"]
            )
        return result

    async def execute_zones_state(self, zone_names: List[str], operation: str,
                                  client_ip: Optional[str] = None) -> AsyncGenerator:
        """
        Execute a zone operation with SSE updates, one progress event per zone

        Zone writes and the audit run in worker threads so a zone busy with
        another request never stalls the event loop.
        """
        if operation not in OPERATIONS:
            yield self._format_sse_message("error", f"Invalid operation: {operation}")
            return

        available = OPERATIONS[operation]
        verb = "Enabling" if available else "Disabling"
        yield self._format_sse_message("info", f"{verb} {', '.join(zone_names)}")

        ok, zones, error_msg = await asyncio.to_thread(self._resolve_zones, zone_names)
        if not ok:
            await asyncio.to_thread(self._error, operation, zone_names, "not_found", error_msg, client_ip)
            yield self._format_sse_message("error", error_msg)
            return

        for zone in zones:
            try:
                await asyncio.to_thread(zone.set_available, available)
            except AvailabilityZoneSerializationError as e:
                await asyncio.to_thread(self._error, operation, zone_names, "serialization", str(e), client_ip)
                yield self._format_sse_message("error", str(e))
                return
            yield self._format_sse_message(
                "progress", f"zone {zone.name} is {'available' if available else 'unavailable'}"
            )

        await asyncio.to_thread(
            self.operation_logger.log_operation,
            timestamp=datetime.now(),
            zones=zone_names,
            operation=operation,
            client_ip=client_ip,
            status="completed"
        )
        yield self._format_sse_message("success", f"Successfully completed {operation} on {', '.join(zone_names)}")

    def _format_sse_message(self, event_type: str, data: str) -> dict:
        """Format message for SSE"""
        return {
            "event": event_type,
            "data": data,
            "retry": 1000  # Retry timeout in milliseconds
        }

    async def stream_operation(self, zone_names: List[str], operation: str,
                               client_ip: Optional[str] = None) -> EventSourceResponse:
        """
        Create SSE response for a zone operation
        """
        return EventSourceResponse(
            self.execute_zones_state(zone_names, operation, client_ip),
            media_type="text/event-stream"
        )
