from __future__ import annotations

"""Post a local audio file to a running relay and print the transcript.

Usage:
  python -m scripts.transcribe_file recording.webm
  python -m scripts.transcribe_file recording.webm --url http://localhost:8080

RELAY_URL is read from the environment (or `.env`, found with python-dotenv)
when --url is not given.
"""

import argparse
import os
import sys
from pathlib import Path

import httpx
from dotenv import find_dotenv, load_dotenv


DEFAULT_URL = "http://localhost:8080"


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Transcribe an audio file through the relay")
    p.add_argument("path", type=Path, help="Audio file to send")
    p.add_argument("--url", type=str, default=None, help="Relay base URL")
    p.add_argument("--timeout", type=float, default=300.0, help="Seconds to wait for the relay")
    return p


def main(argv: list[str] | None = None) -> int:
    load_dotenv(find_dotenv(usecwd=True), override=False)
    args = build_parser().parse_args(argv)

    if not args.path.is_file():
        print(f"No such file: {args.path}", file=sys.stderr)
        return 2

    base = args.url or os.environ.get("RELAY_URL") or DEFAULT_URL
    url = f"{base.rstrip('/')}/api/transcribe"
    try:
        resp = httpx.post(
            url,
            content=args.path.read_bytes(),
            headers={"content-type": "application/octet-stream"},
            timeout=args.timeout,
        )
        body = resp.json()
    except httpx.HTTPError as exc:
        print(f"Relay unreachable at {url}: {exc}", file=sys.stderr)
        return 1
    except ValueError:
        print(f"{resp.status_code} non-JSON reply from relay: {resp.text[:200]!r}", file=sys.stderr)
        return 1
    if resp.status_code != 200:
        print(f"{resp.status_code} {body.get('error')}", file=sys.stderr)
        return 1
    print(body["transcript"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
