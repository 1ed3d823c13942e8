"""
Availability Zone Manager Module
Discovers the zones in a data directory and hands out zones for automatic
placement in round-robin order, skipping unavailable ones
"""
import os
import json
import logging
import threading
from typing import Dict, List, Optional

from core.availability_zone import AvailabilityZone
from core.exceptions import (
    AvailabilityZoneManagerDeserializationError,
    AvailabilityZoneManagerSerializationError,
    AvailabilityZoneNotFound,
    NoAvailabilityZoneAvailable,
)
from utils.file_ops import FileOps, NOT_FOUND, REGULAR

# Setup logger for this module
logger = logging.getLogger(__name__)

CATEGORY = "az-manager"
AUTOMATIC_ZONE_KEY = "automatic_zone"
MANAGER_FILE_NAME = "az_manager.json"
ZONES_DIRECTORY_NAME = "zones"
ZONE_FILE_EXTENSION = ".json"
DEFAULT_ZONES = ["zone1", "zone2", "zone3"]


class AvailabilityZoneManager:
    """Owns every zone of a daemon and the automatic placement cursor"""

    def __init__(self, data_dir: str, file_ops: Optional[FileOps] = None):
        """
        Initialize the zone manager

        The manager file is validated before any zone is built, so a failure
        there never leaves a half-populated zone set behind.

        Args:
            data_dir: Daemon data directory; zones live in <data_dir>/zones
            file_ops: Filesystem layer, defaults to the real one

        Raises:
            AvailabilityZoneManagerDeserializationError: zones directory or manager file unusable
            AvailabilityZoneManagerSerializationError: manager file could not be written
            AvailabilityZoneError: a zone failed to load
        """
        self.file_path = os.path.join(data_dir, MANAGER_FILE_NAME)
        self.zones_directory = os.path.join(data_dir, ZONES_DIRECTORY_NAME)
        self._file_ops = file_ops or FileOps()
        self._lock = threading.RLock()
        self._zones: Dict[str, AvailabilityZone] = {}

        logger.info(f"[{CATEGORY}] creating AZ manager")

        zone_names = self._discover_zone_names()
        self._automatic_zone = zone_names[0]
        self._load(zone_names)

        for name in zone_names:
            self._zones[name] = AvailabilityZone(name, self.zones_directory, self._file_ops)

        logger.info(f"[{CATEGORY}] managing {len(self._zones)} zones: {', '.join(self._zones)}")

    def _discover_zone_names(self) -> List[str]:
        directory = self.zones_directory
        try:
            entries = self._file_ops.list_dir(directory)
        except FileNotFoundError:
            logger.info(f"[{CATEGORY}] '{directory}' is missing, attempting to create it")
            try:
                self._file_ops.create_directory(directory)
            except OSError as e:
                raise AvailabilityZoneManagerDeserializationError(
                    f"failed to create '{directory}': {e.strerror or e}"
                ) from e
            logger.info(f"[{CATEGORY}] using default zones")
            return list(DEFAULT_ZONES)
        except OSError as e:
            raise AvailabilityZoneManagerDeserializationError(
                f"failed to access '{directory}': {e.strerror or e}"
            ) from e

        zone_names = set()
        for path, is_regular in entries:
            stem, extension = os.path.splitext(os.path.basename(path))
            if not is_regular or extension != ZONE_FILE_EXTENSION or not stem:
                continue
            logger.info(f"[{CATEGORY}] found AZ file '{path}'")
            zone_names.add(stem)

        if not zone_names:
            logger.info(f"[{CATEGORY}] no zones found, using defaults")
            return list(DEFAULT_ZONES)
        return sorted(zone_names)

    def _load(self, zone_names: List[str]):
        path = self.file_path
        try:
            file_type = self._file_ops.status(path)
        except OSError as e:
            raise AvailabilityZoneManagerDeserializationError(
                f"AZ manager file '{path}' is not accessible: {e.strerror or e}."
            ) from e

        if file_type == NOT_FOUND:
            logger.info(f"[{CATEGORY}] AZ manager file '{path}' not found, using defaults")
            self.serialize()
            return

        if file_type != REGULAR:
            raise AvailabilityZoneManagerDeserializationError(
                f"AZ manager file '{path}' is not a regular file."
            )

        logger.info(f"[{CATEGORY}] reading AZ manager from file '{path}'")
        try:
            with self._file_ops.open_read(path) as f:
                text = f.read()
        except OSError as e:
            raise AvailabilityZoneManagerDeserializationError(
                f"failed to open AZ manager file '{path}' for reading: {e.strerror or e}"
            ) from e

        try:
            data = json.loads(text)
        except ValueError:
            data = {}
        automatic_zone = data.get(AUTOMATIC_ZONE_KEY) if isinstance(data, dict) else None

        if automatic_zone not in zone_names:
            logger.warning(f"[{CATEGORY}] automatic zone '{automatic_zone}' not known, using default")
        else:
            self._automatic_zone = automatic_zone

    @property
    def automatic_zone(self) -> str:
        """Name of the zone the next round-robin scan starts from"""
        with self._lock:
            return self._automatic_zone

    def get_zone(self, name: str) -> AvailabilityZone:
        zone = self._zones.get(name)
        if zone is None:
            raise AvailabilityZoneNotFound(name)
        return zone

    def get_zones(self) -> List[AvailabilityZone]:
        return list(self._zones.values())

    def get_default_zone_name(self) -> str:
        return next(iter(self._zones))

    def get_automatic_zone_name(self) -> str:
        """
        Pick the next available zone, round robin from the cursor.

        Each zone is checked at most once. On success the cursor moves to the
        zone after the one picked and is persisted; when nothing is available
        the cursor stays where it was.

        Raises:
            NoAvailabilityZoneAvailable: every zone is unavailable
            AvailabilityZoneManagerSerializationError: the new cursor could not be saved
        """
        with self._lock:
            names = list(self._zones)
            start = names.index(self._automatic_zone)
            count = len(names)

            for offset in range(count):
                index = (start + offset) % count
                # Only the zone's public accessor, so the zone lock is never held with ours
                if self._zones[names[index]].is_available():
                    result = names[index]
                    next_zone = names[(index + 1) % count]
                    self._serialize(next_zone)
                    self._automatic_zone = next_zone
                    logger.debug(f"[{CATEGORY}] picked '{result}', next automatic zone is '{next_zone}'")
                    return result

            logger.warning(f"[{CATEGORY}] no zone is available for automatic placement")
            raise NoAvailabilityZoneAvailable()

    def serialize(self) -> None:
        """Write the automatic zone cursor to the manager file"""
        with self._lock:
            self._serialize(self._automatic_zone)

    def _serialize(self, automatic_zone: str) -> None:
        path = self.file_path
        with self._lock:
            logger.info(f"[{CATEGORY}] writing AZ manager to file '{path}'")
            payload = json.dumps({AUTOMATIC_ZONE_KEY: automatic_zone}, indent=4)

            try:
                f = self._file_ops.open_write(path)
            except OSError as e:
                raise AvailabilityZoneManagerSerializationError(
                    f"failed to open AZ manager file '{path}' for writing: {e.strerror or e}"
                ) from e

            try:
                with f:
                    f.write(payload)
            except OSError as e:
                raise AvailabilityZoneManagerSerializationError(
                    f"failed to write to AZ manager file '{path}': {e.strerror or e}"
                ) from e

    def get_status(self) -> dict:
        """Summary of the managed zones"""
        zones = [zone.to_dict() for zone in self.get_zones()]
        return {
            "zones": len(zones),
            "available_zones": sum(1 for zone in zones if zone["available"]),
            "automatic_zone": self.automatic_zone,
        }
