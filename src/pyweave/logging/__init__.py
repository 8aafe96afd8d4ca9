"""pyweave logging: the logging port and its structlog adapter."""

from pyweave.logging.port import LoggingPort
from pyweave.logging.structlog_adapter import StructlogAdapter, add_proxied_bean

__all__ = ["LoggingPort", "StructlogAdapter", "add_proxied_bean"]
