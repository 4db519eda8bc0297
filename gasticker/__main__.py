from __future__ import annotations

import argparse

import uvicorn

from .config import get_settings


def main() -> None:
    settings = get_settings()
    p = argparse.ArgumentParser(prog="gasticker", description="gasticker: gas price Discord tickers")
    p.add_argument("--host", default=settings.host)
    p.add_argument("--port", type=int, default=settings.port)
    args = p.parse_args()

    uvicorn.run("gasticker.main:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
