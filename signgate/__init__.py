"""SignGate - URL signing gateway.

Produces time-limited, origin-restricted signed URLs that resource servers can
verify without a database lookup.
"""

__version__ = "0.1.0"
__author__ = "SignGate Contributors"

from signgate.config import ConfigurationError, Settings, get_settings

__all__ = ["ConfigurationError", "Settings", "get_settings", "__version__"]
