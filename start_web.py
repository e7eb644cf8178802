#!/usr/bin/env python3
"""Launch the Asset Studio API server.

Usage:
    ./start_web.py              # Start server and open the API docs
    ./start_web.py --no-browser # Start server only
    ./start_web.py --port 8080  # Use custom port
"""

import argparse
import webbrowser

import uvicorn

from assetstudio import env_config
from assetstudio.server import configure_logging


def main():
    parser = argparse.ArgumentParser(description="Launch Asset Studio API server")
    parser.add_argument("--no-browser", action="store_true", help="Don't auto-open browser")
    parser.add_argument("--port", type=int, default=5000, help="Server port (default: 5000)")
    parser.add_argument("--host", default="127.0.0.1", help="Server host (default: 127.0.0.1)")
    parser.add_argument("--log-level", default=env_config.LOG_LEVEL, help="Logging level (default: INFO)")
    args = parser.parse_args()

    configure_logging(args.log_level.upper())

    url = f"http://{args.host}:{args.port}"

    print(f"""
╔════════════════════════════════════════════════════════╗
║              Asset Studio API                          ║
╠════════════════════════════════════════════════════════╣
║                                                        ║
║   Server running at: {url:<29} ║
║   Data directory:    {str(env_config.DATA_DIR)[-29:]:<29} ║
║                                                        ║
║   Press Ctrl+C to stop                                 ║
║                                                        ║
╚════════════════════════════════════════════════════════╝
""")

    if not args.no_browser:
        webbrowser.open(f"{url}/api/docs")

    uvicorn.run("assetstudio.server:app", host=args.host, port=args.port, reload=False)


if __name__ == "__main__":
    main()
