#!/usr/bin/env python
"""
Run the Quote Tool API with uvicorn.

Usage:
    python scripts/run_api.py [--host 0.0.0.0] [--port 8000] [--no-reload] [--log-level INFO]
"""
import argparse
import logging
import os
import sys
from pathlib import Path

# Add src to path (the reloader child process reads PYTHONPATH)
project_root = Path(__file__).resolve().parent.parent
src_path = str(project_root / "src")
sys.path.insert(0, src_path)
os.environ["PYTHONPATH"] = os.pathsep.join(filter(None, [src_path, os.environ.get("PYTHONPATH")]))


def main():
    parser = argparse.ArgumentParser(description="Serve the quote engine over HTTP")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--no-reload", action="store_true", help="Disable auto-reload on code changes")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s | %(message)s")
    logger = logging.getLogger("quote_tool")

    import uvicorn

    logger.info("Starting Quote Tool API on %s:%d", args.host, args.port)
    try:
        uvicorn.run(
            "quote_tool.api.main:app",
            host=args.host,
            port=args.port,
            reload=not args.no_reload,
            reload_dirs=[src_path],
            log_level=args.log_level.lower(),
        )
    except KeyboardInterrupt:
        print("\nAPI stopped.")


if __name__ == "__main__":
    main()
