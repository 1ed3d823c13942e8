"""
Availability Zone Module
A single named zone: availability flag, subnet and the VMs placed in it,
persisted to <zones_dir>/<name>.json
"""
import os
import json
import logging
import threading
import weakref
from typing import Dict, List, Optional, Protocol

from core.exceptions import (
    AvailabilityZoneDeserializationError,
    AvailabilityZoneSerializationError,
)
from utils.file_ops import FileOps, NOT_FOUND, REGULAR

# Setup logger for this module
logger = logging.getLogger(__name__)

SUBNET_KEY = "subnet"
AVAILABLE_KEY = "available"


class VirtualMachine(Protocol):
    """What a zone needs from a VM: a unique name and an availability hook"""

    vm_name: str

    def make_available(self, available: bool) -> None:
        ...


class AvailabilityZone:
    """Thread-safe availability zone backed by a JSON file"""

    def __init__(self, name: str, zones_directory: str, file_ops: Optional[FileOps] = None):
        """
        Load the zone from disk, creating or repairing its file as needed

        Args:
            name: Zone name, also the file stem
            zones_directory: Directory holding the zone files
            file_ops: Filesystem layer, defaults to the real one

        Raises:
            AvailabilityZoneDeserializationError: file inaccessible, unreadable or not a regular file
            AvailabilityZoneSerializationError: file could not be (re)written
        """
        if not name:
            raise ValueError("zone name must not be empty")

        self._name = name
        self._file_path = os.path.join(zones_directory, f"{name}.json")
        self._file_ops = file_ops or FileOps()
        self._subnet = ""
        self._available = True
        self._lock = threading.RLock()
        # VM name -> weak reference; the zone never keeps a VM alive
        self._vms: Dict[str, weakref.ref] = {}

        logger.info(f"[{name}] creating zone")
        self._load()

    def _load(self):
        path = self._file_path
        try:
            file_type = self._file_ops.status(path)
        except OSError as e:
            raise AvailabilityZoneDeserializationError(
                f"AZ file '{path}' is not accessible: {e.strerror or e}."
            ) from e

        if file_type == NOT_FOUND:
            logger.info(f"[{self._name}] AZ file '{path}' not found, using defaults")
            # TODO: assign the real subnet once zones are wired to the network backend
            self._subnet = ""
            self._available = True
            self.serialize()
            return

        if file_type != REGULAR:
            raise AvailabilityZoneDeserializationError(f"AZ file '{path}' is not a regular file.")

        logger.info(f"[{self._name}] reading AZ from file '{path}'")
        try:
            with self._file_ops.open_read(path) as f:
                text = f.read()
        except OSError as e:
            raise AvailabilityZoneDeserializationError(
                f"failed to open AZ file '{path}' for reading: {e.strerror or e}"
            ) from e

        data = _parse_object(text)

        subnet = data.get(SUBNET_KEY)
        if not isinstance(subnet, str) or not subnet:
            logger.warning(f"[{self._name}] subnet missing from AZ file '{path}', using default")
            subnet = ""
        self._subnet = subnet

        available = data.get(AVAILABLE_KEY)
        if not isinstance(available, bool):
            logger.warning(f"[{self._name}] availability missing from AZ file '{path}', using default")
            available = True
        self._available = available

        self.serialize()

    @property
    def name(self) -> str:
        return self._name

    @property
    def subnet(self) -> str:
        return self._subnet

    def get_name(self) -> str:
        return self._name

    def get_subnet(self) -> str:
        return self._subnet

    def is_available(self) -> bool:
        with self._lock:
            return self._available

    def set_available(self, available: bool) -> bool:
        """
        Change availability and tell every member VM about it.

        Returns True if the value changed, False if the zone already had it.

        The new value is written to disk before it becomes visible; if the
        write fails the zone keeps its old value and no VM is notified.
        Member callbacks run with the zone lock held and must not call back
        into this zone.
        """
        with self._lock:
            if self._available == available:
                return False

            logger.info(f"[{self._name}] making AZ {'' if available else 'un'}available")
            self._serialize(available)
            self._available = available

            for vm in self._live_vms():
                vm.make_available(available)
            return True

    def add_vm(self, vm: VirtualMachine) -> None:
        with self._lock:
            if vm.vm_name in self._vms and self._vms[vm.vm_name]() is not None:
                return
            logger.info(f"[{self._name}] adding vm '{vm.vm_name}' to AZ")
            self._vms[vm.vm_name] = weakref.ref(vm)

    def remove_vm(self, vm: VirtualMachine) -> None:
        # VMs are identified by name, so a different handle to the same VM still matches
        with self._lock:
            logger.info(f"[{self._name}] removing vm '{vm.vm_name}' from AZ")
            self._vms.pop(vm.vm_name, None)

    def vm_names(self) -> List[str]:
        """Names of the member VMs that are still alive, in insertion order"""
        with self._lock:
            return [vm.vm_name for vm in self._live_vms()]

    def _live_vms(self) -> List[VirtualMachine]:
        live = []
        for vm_name, ref in list(self._vms.items()):
            vm = ref()
            if vm is None:
                logger.debug(f"[{self._name}] dropping collected vm '{vm_name}'")
                del self._vms[vm_name]
                continue
            live.append(vm)
        return live

    def serialize(self) -> None:
        """Write the current state to the zone file"""
        with self._lock:
            self._serialize(self._available)

    def _serialize(self, available: bool) -> None:
        path = self._file_path
        with self._lock:
            logger.info(f"[{self._name}] writing AZ to file '{path}'")
            payload = json.dumps({SUBNET_KEY: self._subnet, AVAILABLE_KEY: available}, indent=4)

            try:
                f = self._file_ops.open_write(path)
            except OSError as e:
                raise AvailabilityZoneSerializationError(
                    f"failed to open AZ file '{path}' for writing: {e.strerror or e}"
                ) from e

            try:
                with f:
                    f.write(payload)
            except OSError as e:
                raise AvailabilityZoneSerializationError(
                    f"failed to write to AZ file '{path}': {e.strerror or e}"
                ) from e

    def to_dict(self) -> dict:
        return {
            "name": self._name,
            "subnet": self._subnet,
            "available": self.is_available(),
        }

    def __repr__(self):
        return f"AvailabilityZone(name={self._name!r}, available={self.is_available()})"


def _parse_object(text: str) -> dict:
    """Decode a JSON object; anything else reads as an empty one"""
    try:
        data = json.loads(text)
    except ValueError:
        logger.warning("Ignoring unparseable state file content")
        return {}
    return data if isinstance(data, dict) else {}
