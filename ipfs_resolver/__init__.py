"""
Proof9 IPFS Content Locator

Resolves IPFS content references (bare CIDs, ipfs:// URIs, gateway URLs)
into retrievable HTTPS URLs with ordered gateway fallback.
"""

__version__ = "1.0.0"
__author__ = "Proof9 Team"
__description__ = "IPFS content locator resolver with gateway fallback"
