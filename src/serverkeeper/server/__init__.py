"""Server process management.

Key Components:
    - ServerProcess: Spawns, watches and stops the server executable
    - PreflightCheck: Startup cleanup of leftover processes and ports
"""

from ._preflight import PreflightCheck
from ._process import UNKNOWN_VERSION, ServerProcess

__all__ = [
    "UNKNOWN_VERSION",
    "PreflightCheck",
    "ServerProcess",
]
