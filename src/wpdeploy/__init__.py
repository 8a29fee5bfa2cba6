"""
wpdeploy - Docker, MySQL and WordPress provisioning for EC2 hosts
"""

__version__ = "0.3.0"

from .core import Deployer
from .errors import DeployError, HostUnreachableError

__all__ = ["Deployer", "DeployError", "HostUnreachableError"]
