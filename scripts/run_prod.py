#!/usr/bin/env python3
"""
Production server runner for the table browser API.

Never reloads, runs at least two workers and hides server headers.
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
    print("  Ensure environment variables are set via your deployment system")


if __name__ == "__main__":
    import uvicorn
    from tablebrowser.config import get_settings

    server_config = get_settings().server

    production_config = {
        "app": server_config.app_module,
        "host": server_config.host,
        "port": server_config.port,
        "workers": max(server_config.workers, 2),
        "reload": False,
        "log_config": None,
        "access_log": False,
        "server_header": False,
        "date_header": False,
    }

    print("🚀 Starting table browser production server...")
    print(f"🌐 Listening: {server_config.host}:{server_config.port}")
    print(f"👥 Workers: {production_config['workers']}")
    print()

    uvicorn.run(**production_config)
