"""elgato-light - Command-line control for Elgato lights on the local network.

This package resolves which lights an invocation should act on (explicit
addresses, a cached discovery result, or a fresh mDNS browse), then fans a
single operation out to all of them and reports the outcome per light.
"""

__version__ = "1.0.0"
__author__ = "mccartyp"

from .cli import main
from .targets import Target

__all__ = ["Target", "main", "__version__"]
