"""Exception types shared across the engine."""


class TrafficgenError(Exception):
    """Base class for all trafficgen errors."""


class ScenarioFileError(TrafficgenError):
    """The scenario file could not be read or did not validate."""


class ScenarioConfigError(TrafficgenError, ValueError):
    """A single scenario cannot start. Sibling scenarios are unaffected."""

    def __init__(self, scenario: str, message: str) -> None:
        super().__init__(f"[{scenario}] {message}")
        self.scenario = scenario


class RequestFailedError(TrafficgenError):
    """One outbound request failed before a response was received."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"GET {url} failed: {reason}")
        self.url = url
        self.reason = reason
