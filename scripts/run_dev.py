#!/usr/bin/env python3
"""
Development server runner for the Proof9 IPFS resolver API
Checks gateway settings and dependencies before starting uvicorn
"""

import os
import sys
import uvicorn
from pathlib import Path

# Add the parent directory to Python path
sys.path.append(str(Path(__file__).parent.parent))

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

def check_environment():
    """Validate gateway and timeout settings."""
    from pydantic import ValidationError
    from ipfs_resolver.models.content import ResolverSettings

    optional_vars = [
        "API_HOST",
        "API_PORT",
        "DEBUG",
        "IPFS_GATEWAYS",
        "PROBE_TIMEOUT_MS",
        "RESOLVE_TIMEOUT_MS",
        "PROBE_MAX_WORKERS",
        "CORS_ORIGINS",
        "LOG_LEVEL",
    ]

    try:
        settings = ResolverSettings()
    except ValidationError as e:
        print(f"❌ Invalid resolver settings:\n{e}")
        return False

    print(f"✅ {len(settings.gateways)} IPFS gateways configured")
    for index, gateway in enumerate(settings.gateways):
        print(f"  {index}: {gateway}")

    print("\n📋 Optional configurations:")
    for var in optional_vars:
        print(f"  {var}: {os.getenv(var, 'Not set')}")

    return True

def check_dependencies():
    """Check if all required dependencies are available."""
    required_modules = [
        "fastapi",
        "uvicorn",
        "requests",
        "pydantic",
        "structlog",
        "dotenv",
    ]

    missing_modules = []
    for module in required_modules:
        try:
            __import__(module)
        except ImportError:
            missing_modules.append(module)

    if missing_modules:
        print(f"❌ Missing required Python modules: {', '.join(missing_modules)}")
        print("Please run: pip install -e .")
        return False

    print("✅ All required dependencies found")
    return True

def main():
    """Main entry point for development server."""
    print("🔗 Proof9 IPFS Resolver - Development Server")
    print("=" * 50)

    if not check_dependencies():
        sys.exit(1)

    if not check_environment():
        sys.exit(1)

    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", 3001))
    debug = os.getenv("DEBUG", "true").lower() == "true"

    print(f"\n🚀 Starting development server...")
    print(f"   Host: {host}")
    print(f"   Port: {port}")
    print(f"   Debug: {debug}")
    print(f"   Docs: http://{host}:{port}/docs")
    print("\n⏹️  Press Ctrl+C to stop the server")
    print("=" * 50)

    try:
        uvicorn.run(
            "ipfs_resolver.main:app",
            host=host,
            port=port,
            reload=debug,
            log_level="debug" if debug else "info",
            access_log=True,
        )
    except KeyboardInterrupt:
        print("\n🛑 Server stopped by user")
    except Exception as e:
        print(f"\n❌ Server error: {str(e)}")
        sys.exit(1)

if __name__ == "__main__":
    main()
