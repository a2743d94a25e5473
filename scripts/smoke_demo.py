from __future__ import annotations

import argparse
import json
import time
import urllib.error
import urllib.request
from typing import Any

SAMPLE_OUTPUT = """Here is the drill:
```json
{"graphic": {"courtWidth": 20, "courtHeight": 15,
  "players": [{"id": "p1", "x": 30, "y": 70, "team": "attack", "hasBall": true}],
  "arrows": [{"id": "a1", "fromX": 30, "fromY": 70, "toX": 60, "toY": 30, "type": "pass"}],
  "markers": [{"id": "m1", "x": 50, "y": 50, "type": "cone"}]}}
```"""


def fetch(url: str, method: str = "GET", payload: Any = None) -> tuple[int, bytes]:
    data = None
    headers = {}
    if payload is not None:
        data = json.dumps(payload).encode("utf-8")
        headers["Content-Type"] = "application/json"
    req = urllib.request.Request(url, data=data, method=method, headers=headers)
    with urllib.request.urlopen(req, timeout=10) as resp:
        return resp.status, resp.read()


def fetch_json(url: str, method: str = "GET", payload: Any = None) -> dict[str, Any]:
    _, body = fetch(url, method, payload)
    return json.loads(body.decode("utf-8"))


def wait_for(url: str, timeout: int) -> bytes:
    deadline = time.time() + timeout
    last_error: Exception | None = None
    while time.time() < deadline:
        try:
            status, body = fetch(url)
            if status == 200:
                return body
        except (urllib.error.URLError, ConnectionError) as exc:
            last_error = exc
        time.sleep(1)
    raise RuntimeError(f"Timed out waiting for {url}: {last_error}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Smoke test for a running diagram server.")
    parser.add_argument("--server", default="http://localhost:8080")
    parser.add_argument("--timeout", type=int, default=60)
    args = parser.parse_args()

    base = args.server.rstrip("/")
    wait_for(f"{base}/api/health", args.timeout)

    session_id = fetch_json(f"{base}/api/sessions", "POST")["session_id"]
    session_base = f"{base}/api/sessions/{session_id}"

    ticket = fetch_json(f"{session_base}/generations", "POST")["ticket"]
    result = fetch_json(f"{session_base}/generations/{ticket}", "PUT", {"output": SAMPLE_OUTPUT})
    if not result.get("applied"):
        raise RuntimeError("Generation was not applied")
    if len(result["scene"].get("players", [])) != 1:
        raise RuntimeError("Scene payload missing players")

    removed = fetch_json(f"{session_base}/double-activate", "POST", {"kind": "marker", "id": "m1"})
    if not removed.get("changed") or removed["scene"].get("markers"):
        raise RuntimeError("Marker was not deleted")

    status, svg = fetch(f"{session_base}/scene.svg")
    if status != 200 or not svg.startswith(b"<svg"):
        raise RuntimeError("SVG rendering not reachable")

    print("Smoke test passed.")


if __name__ == "__main__":
    main()
