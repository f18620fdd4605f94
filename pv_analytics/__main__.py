"""
Run the PV analytics API with uvicorn.

``python -m pv_analytics`` or the ``pv-analytics`` console script. Uvicorn's
own log config is disabled so its records reach the JSON handler installed
by the app lifespan.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-115)

TODO:
- None
"""

import argparse
from collections.abc import Sequence

import uvicorn

APP_PATH = "pv_analytics.api.main:app"


def main(argv: Sequence[str] | None = None) -> None:
    """Parse command-line options and serve the app until interrupted."""
    parser = argparse.ArgumentParser(prog="pv-analytics", description=__doc__)
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--workers", type=int, default=1)
    parser.add_argument("--reload", action="store_true", help="Development only.")
    args = parser.parse_args(argv)

    uvicorn.run(
        APP_PATH,
        host=args.host,
        port=args.port,
        workers=args.workers,
        reload=args.reload,
        log_config=None,
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
