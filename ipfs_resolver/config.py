import os

from dotenv import load_dotenv

load_dotenv()

# Gateways in fallback priority order (first = most preferred)
DEFAULT_IPFS_GATEWAYS = (
    "https://ipfs.io/ipfs/",
    "https://gateway.pinata.cloud/ipfs/",
    "https://cloudflare-ipfs.com/ipfs/",
    "https://dweb.link/ipfs/",
    "https://ipfs.infura.io/ipfs/",
)

_gateways_env = os.getenv("IPFS_GATEWAYS", "")
IPFS_GATEWAYS = tuple(g.strip() for g in _gateways_env.split(",") if g.strip()) or DEFAULT_IPFS_GATEWAYS

# Single probe vs. per-gateway timeout during fallback resolution
DEFAULT_PROBE_TIMEOUT_MS = int(os.getenv("PROBE_TIMEOUT_MS", 5000))
DEFAULT_RESOLVE_TIMEOUT_MS = int(os.getenv("RESOLVE_TIMEOUT_MS", 3000))

# Worker threads reserved for probes; sized for several concurrent resolutions
PROBE_MAX_WORKERS = int(os.getenv("PROBE_MAX_WORKERS", 64))

# API
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", 3001))
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
