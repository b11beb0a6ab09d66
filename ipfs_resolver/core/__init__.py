"""
Core CID extraction and gateway URL construction.
"""

from .cid import *
from .errors import *
from .gateways import *
