"""
Start the ControlStock API server.

Usage:
    python -m controlstock.scripts.serve --port 8000 --reload
"""
import argparse
import socket
import sys

import uvicorn

from controlstock.config import settings


def port_in_use(host: str, port: int) -> bool:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        return sock.connect_ex((host, port)) == 0
    finally:
        sock.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run the ControlStock backend")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development)")
    args = parser.parse_args(argv)

    if port_in_use(args.host, args.port):
        print(f"Port {args.port} is already in use on {args.host}", file=sys.stderr)
        return 1
    print(f"Starting {settings.APP_NAME} {settings.APP_VERSION} on http://{args.host}:{args.port}")
    uvicorn.run(
        "controlstock.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.LOG_LEVEL.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
