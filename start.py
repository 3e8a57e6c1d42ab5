#!/usr/bin/env python3
"""
Miss Belle Backend Server Starter
Simple script to start the FastAPI backend server
"""

import os
import sys


def main():
    """Start the Uvicorn server"""
    import uvicorn

    # Get port from environment variable (for production) or default to 8000
    port = int(os.environ.get("PORT", 8000))
    is_production = os.environ.get("APP_ENV", "development") == "production"

    print("\n" + "=" * 60)
    print("  Starting Miss Belle Backend Server")
    print("=" * 60 + "\n")
    print(f"Environment: {'Production' if is_production else 'Development'}")
    print(f"Server will run on: http://0.0.0.0:{port}")
    print(f"Health Check: http://0.0.0.0:{port}/health")
    if not is_production:
        print(f"API Documentation: http://localhost:{port}/docs")
    print("\n" + "=" * 60 + "\n")

    try:
        uvicorn.run(
            "belle.main:app",
            host="0.0.0.0",
            port=port,
            reload=not is_production,
            log_level="info",
            access_log=True
        )
    except KeyboardInterrupt:
        print("\n  Server stopped by user\n")
        sys.exit(0)


if __name__ == "__main__":
    main()
