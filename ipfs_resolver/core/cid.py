"""
Content identifier (CID) extraction and validation.

Accepts the reference shapes stored across Proof9 (bare CIDs, ipfs:// URIs
and gateway URLs) and returns the canonical CID, or None when the reference
does not carry one. Nothing in here raises on malformed input.
"""

import re
from enum import Enum
from typing import Optional

import structlog

logger = structlog.get_logger()

IPFS_SCHEME = "ipfs://"
IPFS_PATH_SEGMENT = "/ipfs/"

# Qm + 44 base58 chars (no 0, I, O, l) or bafy + 55 lowercase alphanumerics
_CID_PATTERN = r"(?:Qm[1-9A-HJ-NP-Za-km-z]{44}|bafy[a-z0-9]{55})"

BARE_CID_RE = re.compile(rf"^{_CID_PATTERN}$")
LEADING_CID_RE = re.compile(rf"^({_CID_PATTERN})")
GATEWAY_PATH_CID_RE = re.compile(rf"{re.escape(IPFS_PATH_SEGMENT)}({_CID_PATTERN})")


class CIDVersion(str, Enum):
    """Enumeration of recognised CID shapes."""
    V0 = "v0"
    V1 = "v1"


def is_valid_identifier(value) -> bool:
    """Return True if value is exactly a bare CID."""
    if not isinstance(value, str):
        return False
    return BARE_CID_RE.match(value) is not None


def identifier_version(value) -> Optional[CIDVersion]:
    """Return the CID version of a bare identifier, or None if it is not one."""
    if not is_valid_identifier(value):
        return None
    return CIDVersion.V0 if value.startswith("Qm") else CIDVersion.V1


def extract_identifier(reference) -> Optional[str]:
    """
    Extract the CID from a content reference.

    Checked in order, first match wins:
    1. the whole reference is a bare CID
    2. ipfs://<cid>, trailing content after the CID run is ignored
    3. any string containing /ipfs/<cid>, trailing path is ignored

    Args:
        reference: Bare CID, ipfs:// URI or gateway URL. None, empty and
            whitespace-only values are accepted.

    Returns:
        The CID, or None if the reference does not contain one
    """
    if not isinstance(reference, str) or not reference.strip():
        return None

    if BARE_CID_RE.match(reference):
        return reference

    if reference.startswith(IPFS_SCHEME):
        match = LEADING_CID_RE.match(reference[len(IPFS_SCHEME):])
        if match is None:
            logger.debug("ipfs:// reference without a valid CID", reference=reference)
            return None
        return match.group(1)

    match = GATEWAY_PATH_CID_RE.search(reference)
    if match is None:
        return None
    return match.group(1)
