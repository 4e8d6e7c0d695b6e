"""Automated PPM checks with cluster recovery for a chat bot."""

__version__ = "1.1.0"

from .checker import PPMChecker  # noqa: E402
from .config import CheckerConfig, get_config, load_config  # noqa: E402

__all__ = ["PPMChecker", "CheckerConfig", "get_config", "load_config", "__version__"]
