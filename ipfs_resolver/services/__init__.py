"""
Network-bound services: gateway liveness probing and fallback resolution.
"""

from .probe import *
from .resolver import *
