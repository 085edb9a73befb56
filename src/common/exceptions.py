"""
Custom exceptions for the application link metrics exporter.
Hierarchical exception structure for better error handling and debugging.
"""


class BaseExporterException(Exception):
    """Base exception for the metrics exporter"""
    pass


class ProbeError(BaseExporterException):
    """Error reaching a domain data source (database, link registry, remote status)"""

    def __init__(self, probe: str, message: str):
        self.probe = probe
        super().__init__(f"[{probe}] {message}")


class SchedulingError(BaseExporterException):
    """Error scheduling or cancelling the periodic scrape task"""
    pass


class SettingsError(BaseExporterException):
    """Error reading or persisting scraper settings"""
    pass


class ConfigurationError(BaseExporterException):
    """Error in configuration loading or validation"""
    pass


class RedisConnectionError(BaseExporterException):
    """Error connecting to or communicating with Redis"""
    pass
