#!/usr/bin/env python3
"""
Development server runner for the table browser API.

Starts uvicorn with hot reloading after loading .env from the project root.
"""

import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

from dotenv import load_dotenv

env_file = project_root / ".env"
if env_file.exists():
    load_dotenv(env_file)
    print(f"✓ Loaded environment variables from {env_file}")
else:
    print(f"⚠ No .env file found at {env_file}")
    print("  DATABASE__DATABASE_URL must be set in the environment")


if __name__ == "__main__":
    import uvicorn
    from tablebrowser.config import get_settings

    server_config = get_settings().server
    base_url = f"http://{server_config.host}:{server_config.port}"

    print("🚀 Starting table browser development server...")
    print(f"📊 API Documentation: {base_url}/docs")
    print(f"🔍 Health Check: {base_url}/health")
    print(f"🗂  Schemas: {base_url}/schemas")
    print()

    uvicorn.run(
        server_config.app_module,
        host=server_config.host,
        port=server_config.port,
        reload=server_config.reload,
        workers=server_config.workers,
        reload_dirs=[str(src_path)],
        log_config=None,  # structlog handles formatting
        access_log=False  # Request logging lives in middleware
    )
