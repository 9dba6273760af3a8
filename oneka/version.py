"""
Version and run-time stamp providers.
"""

from datetime import datetime

__version__ = "1.0.0"


def engine_version() -> str:
    """Version string reported in every engine result."""
    return f"oneka {__version__}"


def now() -> str:
    """Current local date and time, e.g. 'Thu Aug 26 15:10:40 2010'."""
    return datetime.now().strftime("%a %b %d %H:%M:%S %Y")
