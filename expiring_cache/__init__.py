from expiring_cache.core import *  # noqa: F401,F403
from expiring_cache.core import __all__

__version__ = "1.0.0"
