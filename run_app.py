#!/usr/bin/env python3
"""
Audience Insights API runner

Usage:
    python run_app.py                    # Development server with auto-reload
    python run_app.py --mode prod        # Production mode, several workers
    python run_app.py --port 8001        # Custom port
    python run_app.py --host 127.0.0.1   # Custom host
"""

import argparse
import os
import sys

REQUIRED_ENV = ("DATABASE_URL", "SHOPIFY_API_KEY", "SHOPIFY_API_SECRET")

def check_environment() -> bool:
    """Required settings must come from the environment or a .env file"""
    if os.path.exists(".env"):
        print(".env file found")
        return True

    missing = [name for name in REQUIRED_ENV if not os.environ.get(name)]
    if missing:
        print(f"Missing settings and no .env file: {', '.join(missing)}")
        return False
    return True

def run_app(host: str, port: int, reload: bool, workers: int):
    import uvicorn

    print(f"Starting Audience Insights API on {host}:{port}")
    print(f"API docs: http://{host}:{port}/api/docs")
    uvicorn.run(
        "app.main:app",
        host=host,
        port=port,
        reload=reload,
        workers=1 if reload else workers,
        log_level="info"
    )

def main() -> int:
    parser = argparse.ArgumentParser(description="Audience Insights API runner")
    parser.add_argument("--mode", choices=["dev", "prod"], default="dev", help="Server mode (default: dev)")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to (default: 8000)")
    parser.add_argument("--workers", type=int, default=4, help="Workers in prod mode (default: 4)")
    args = parser.parse_args()

    if not check_environment():
        return 1

    run_app(args.host, args.port, reload=args.mode == "dev", workers=args.workers)
    return 0

if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nServer stopped")
        sys.exit(0)
