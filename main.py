"""John Chat — dev launcher. Starts the API server."""

import argparse
import logging
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = os.getenv("PORT", "13013")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def main():
    parser = argparse.ArgumentParser(description="John Chat dev launcher")
    parser.add_argument("--config", type=Path, default=None,
                        help="JSON config file (default: CONFIG_FILE env var or built-in defaults)")
    parser.add_argument("--provider-url", default=None,
                        help="Base URL of the generation backend")
    parser.add_argument("--provider-format", choices=["koboldcpp", "openai", "echo"], default=None,
                        help="Wire format of the generation backend")
    parser.add_argument("--reload", action="store_true",
                        help="Restart on code changes")
    args = parser.parse_args()

    logging.basicConfig(
        level=LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Settings reach the app factory through the environment so that
    # --reload workers see them too
    if args.config:
        os.environ["CONFIG_FILE"] = str(args.config.resolve())
    if args.provider_url:
        os.environ["PROVIDER_URL"] = args.provider_url
    if args.provider_format:
        os.environ["PROVIDER_FORMAT"] = args.provider_format

    print(f"Starting backend on http://localhost:{PORT} ...")
    uvicorn.run(
        "john_chat.app:create_app",
        factory=True,
        host=HOST,
        port=int(PORT),
        reload=args.reload,
        log_level=LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
