"""
Container health check: the API must answer /health with {"status": "ok"}.
"""

from __future__ import annotations

import json
import os
import sys
from urllib.error import URLError
from urllib.request import urlopen


def main() -> int:
    base_url = os.getenv("HEALTHCHECK_URL") or f"http://127.0.0.1:{os.getenv('PORT', '8000')}"
    url = base_url.rstrip("/") + "/health"

    try:
        with urlopen(url, timeout=float(os.getenv("HEALTHCHECK_TIMEOUT", "2"))) as response:
            if response.status != 200:
                return 1
            payload = json.loads(response.read().decode("utf-8"))
    except (URLError, TimeoutError, ValueError) as exc:
        print(f"healthcheck failed: {exc}", file=sys.stderr)
        return 1
    return 0 if payload.get("status") == "ok" else 1


if __name__ == "__main__":
    raise SystemExit(main())
