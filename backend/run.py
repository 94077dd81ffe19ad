"""
Start the Workflow Gate API with uvicorn.

Usage:
    python run.py                 # 127.0.0.1:8000
    python run.py --reload        # auto-reload while developing
    python run.py --workers 4     # multiple worker processes
"""
import argparse
import uvicorn

from workflow_gate.config.settings import settings


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the Workflow Gate API server")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Worker processes (default: 1); forced to 1 with --reload"
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level.lower(),
        choices=["critical", "error", "warning", "info", "debug"],
        help="Uvicorn log level (default: LOG_LEVEL setting)"
    )
    return parser.parse_args()


def main():
    args = parse_args()
    workers = 1 if args.reload else args.workers

    print(f"Workflow Gate ({settings.environment}) on http://{args.host}:{args.port}")
    print(f"  MongoDB database: {settings.mongo_db}")
    print(f"  Reload: {args.reload}, workers: {workers}")

    uvicorn.run(
        "workflow_gate.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=workers,
        log_level=args.log_level
    )


if __name__ == "__main__":
    main()
