"""
Pydantic models for resolver settings and API response data structures.
"""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ipfs_resolver import config
from ipfs_resolver.core.cid import CIDVersion
from ipfs_resolver.core.errors import ConfigurationError
from ipfs_resolver.core.gateways import validate_gateway_prefixes


class ResolverSettings(BaseModel):
    """Effective gateway and timeout configuration."""
    gateways: List[str] = Field(default_factory=lambda: list(config.IPFS_GATEWAYS),
                                description="Gateway prefixes in priority order")
    probe_timeout_ms: int = Field(default=config.DEFAULT_PROBE_TIMEOUT_MS, gt=0,
                                  description="Default timeout for a single probe")
    resolve_timeout_ms: int = Field(default=config.DEFAULT_RESOLVE_TIMEOUT_MS, gt=0,
                                    description="Default per-gateway timeout during fallback resolution")

    @field_validator("gateways")
    @classmethod
    def validate_gateways(cls, v):
        try:
            validate_gateway_prefixes(v)
        except ConfigurationError as e:
            raise ValueError(str(e)) from e
        return v


class NormalizeResponse(BaseModel):
    """Response model for reference normalization."""
    reference: str = Field(..., description="Reference as supplied")
    url: str = Field(..., description="Loadable URL, or the original reference if unresolvable")


class GatewayUrlsResponse(BaseModel):
    """Response model for candidate gateway URLs."""
    reference: str = Field(..., description="Reference as supplied")
    cid: str = Field(..., description="Extracted content identifier")
    version: CIDVersion = Field(..., description="CID version")
    urls: List[str] = Field(..., description="Candidate URLs in gateway priority order")

    model_config = ConfigDict(use_enum_values=True)


class ResolveResponse(BaseModel):
    """Response model for fallback resolution."""
    reference: str = Field(..., description="Reference as supplied")
    url: str = Field(..., description="First reachable gateway URL")


class ProbeResponse(BaseModel):
    """Response model for a single liveness probe."""
    url: str = Field(..., description="Probed URL")
    available: bool = Field(..., description="Whether the URL answered with 2xx")


class ErrorResponse(BaseModel):
    """Error response model."""
    success: bool = Field(default=False)
    error: str = Field(..., description="Error message")
    details: Optional[List[Dict[str, Any]]] = Field(None, description="Additional error details")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Overall service status")
    version: str = Field(..., description="API version")
    components: Dict[str, Any] = Field(..., description="Component health status")
