#!/usr/bin/env python3
"""
Local development server runner.

Runs the gateway with uvicorn instead of deploying to Lambda. Requests
still need a real Cognito token: verification is never skipped locally.

Usage:
    python run_local.py
    python run_local.py --port 8000
    python run_local.py --reload  # Auto-reload on code changes
"""

import argparse
import sys
from pathlib import Path

project_root = Path(__file__).parent

try:
    import uvicorn
except ImportError:
    print("ERROR: uvicorn is not installed.")
    print("Please install dependencies: pip install -e '.[dev]'")
    sys.exit(1)


def main():
    parser = argparse.ArgumentParser(
        description="Run the gallery gateway locally with uvicorn"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the server on (default: 8000)"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload on code changes"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["critical", "error", "warning", "info", "debug", "trace"],
        help="Log level for uvicorn (default: info)"
    )

    args = parser.parse_args()

    env_file = project_root / ".env"
    if not env_file.exists():
        print("ERROR: .env file not found. Copy .env.example to .env and fill it in.")
        print("Required environment variables:")
        print("  - COGNITO_USER_POOL_ID")
        print("  - COGNITO_APP_CLIENT_ID")
        print("  - RECORDS_TABLE_NAME")
        sys.exit(1)

    print("=" * 60)
    print("Starting Dog Gallery Gateway (Local Development)")
    print("=" * 60)
    print(f"Server: http://{args.host}:{args.port}")
    print(f"API Docs: http://{args.host}:{args.port}/docs")
    print(f"Health: http://{args.host}:{args.port}/health")
    print("=" * 60)

    # Stay in project root so the .env file loads
    uvicorn.run(
        "gallery_gateway.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
        app_dir=str(project_root / "src"),
        reload_dirs=[str(project_root / "src")] if args.reload else None
    )


if __name__ == "__main__":
    main()
