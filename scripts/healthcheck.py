from __future__ import annotations

import json
import os
import sys
import urllib.error
import urllib.request


def main() -> int:
    port = os.getenv("API_PORT", "8010")
    prefix = os.getenv("API_PREFIX", "").rstrip("/")
    url = f"http://localhost:{port}{prefix}/health"
    try:
        req = urllib.request.Request(url, headers={"Accept": "application/json"})
        with urllib.request.urlopen(req, timeout=3) as resp:
            if resp.status != 200:
                return 1
            body = json.loads(resp.read().decode("utf-8") or "{}")
            return 0 if body.get("status") == "healthy" else 1
    except (urllib.error.URLError, OSError, ValueError) as e:
        print(f"healthcheck failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
