"""Survey Gateway main entry point."""

from __future__ import annotations

import argparse
import os
import sys


def main() -> int:
    """Main entry point for the Survey Gateway service."""
    parser = argparse.ArgumentParser(
        prog="survey-gateway",
        description="Survey Gateway - persistence API for a survey schema and its results",
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on (default: $SURVEY_PORT or 8080)",
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Directory for survey documents (default: $SURVEY_DATA_DIR or ./data)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Force JSON log output (default: auto-detect)",
    )

    args = parser.parse_args()

    # Configure structured logging before anything else
    from survey_gateway.service.logging import configure_logging

    configure_logging(
        level=args.log_level.upper(),
        json_output=args.json_logs if args.json_logs else None,
    )

    # The app factory reads its configuration from the environment
    if args.data_dir is not None:
        os.environ["SURVEY_DATA_DIR"] = args.data_dir
    if args.port is not None:
        os.environ["SURVEY_PORT"] = str(args.port)
    port = int(os.environ.get("SURVEY_PORT", "8080"))

    import uvicorn

    try:
        # Single worker: ledger appends are serialized by an in-process lock
        uvicorn.run(
            "survey_gateway.service.app:create_app_from_env",
            host=args.host,
            port=port,
            reload=args.reload,
            log_level=args.log_level,
            factory=True,
            workers=1,
        )
        return 0
    except KeyboardInterrupt:
        print("\nShutting down...")
        return 0


if __name__ == "__main__":
    sys.exit(main())
