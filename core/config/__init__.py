from core.config.settings import LedgerSettings, load_settings

__all__ = ["LedgerSettings", "load_settings"]
