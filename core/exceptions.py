"""
Availability Zone Exceptions
Error kinds raised by zones and the zone manager
"""


class AvailabilityZoneError(RuntimeError):
    """Base class for errors raised by a single availability zone"""


class AvailabilityZoneSerializationError(AvailabilityZoneError):
    """A zone file could not be opened for writing or written to"""


class AvailabilityZoneDeserializationError(AvailabilityZoneError):
    """A zone file is inaccessible, unreadable or not a regular file"""


class AvailabilityZoneNotFound(AvailabilityZoneError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"no AZ with name '{name}' found")


class NoAvailabilityZoneAvailable(AvailabilityZoneError):
    def __init__(self):
        super().__init__("no AZ is available")


class AvailabilityZoneManagerError(RuntimeError):
    """Base class for errors raised by the zone manager's own bookkeeping"""


class AvailabilityZoneManagerSerializationError(AvailabilityZoneManagerError):
    """The manager file could not be opened for writing or written to"""


class AvailabilityZoneManagerDeserializationError(AvailabilityZoneManagerError):
    """The zones directory or manager file could not be created, listed or read"""
