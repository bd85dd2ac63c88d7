"""Exceptions raised by brood-flow"""


class BroodFlowError(Exception):
    """Base class for all brood-flow errors"""


class MalformedPayload(BroodFlowError, ValueError):
    """A Broodminder manufacturer payload is too short to decode"""

    def __init__(self, length: int, required: int):
        super().__init__(f"Broodminder payload has {length} bytes, at least {required} are required")
        self.length = length
        self.required = required


class TransportFailure(BroodFlowError):
    """A single publish request could not be handed to the MQTT transport"""


class TransportFatal(BroodFlowError):
    """The MQTT connection loop failed and cannot continue"""


class ConfigurationError(BroodFlowError):
    """The configuration file could not be read or is invalid"""
