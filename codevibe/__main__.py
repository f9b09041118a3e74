"""Serve the HTTP boundary: ``python -m codevibe [--host H] [--port P]``."""

from __future__ import annotations

import argparse

import uvicorn

from .api import create_app
from .config import Settings


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="codevibe")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--env-file", default=None)
    args = parser.parse_args(argv)

    settings = Settings.from_env(args.env_file)
    uvicorn.run(create_app(settings=settings), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
