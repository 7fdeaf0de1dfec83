from .config import Config, ExtractionSettings, FetchConfig, MonitoringConfig, PdfConfig, get_settings, settings

__all__ = ["Config", "ExtractionSettings", "FetchConfig", "MonitoringConfig", "PdfConfig", "get_settings", "settings"]
