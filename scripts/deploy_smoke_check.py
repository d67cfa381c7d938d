"""Post-deploy smoke checks: health, docs, metrics and anonymous rejections."""

from __future__ import annotations

import argparse
import sys
from typing import Any
from uuid import uuid4

import httpx

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_API_PREFIX = "/api"


class SmokeCheckFailed(RuntimeError):
    pass


def _expect(response: httpx.Response, status: int) -> httpx.Response:
    if response.status_code != status:
        raise SmokeCheckFailed(
            f"{response.request.method} {response.request.url.path} -> "
            f"{response.status_code}, expected {status}: {response.text[:300]}"
        )
    return response


def _anonymous_probes(api: str) -> list[tuple[str, str, dict[str, Any] | None, int]]:
    stranger = str(uuid4())
    return [
        ("POST", f"{api}/orders/create", {}, 400),
        ("GET", f"{api}/orders", None, 400),
        ("GET", f"{api}/orders?userId={stranger}", None, 401),
        ("GET", f"{api}/orders/{stranger}", None, 401),
        ("GET", f"{api}/cart", None, 401),
        ("GET", f"{api}/notifications", None, 401),
        ("GET", f"{api}/admin/overview", None, 401),
        (
            "POST",
            f"{api}/certificates/issue",
            {"enrollmentId": stranger, "userId": stranger, "courseId": stranger},
            401,
        ),
    ]


def run_checks(client: httpx.Client, api_prefix: str) -> int:
    """Run every probe against ``client`` and return how many passed."""
    health = _expect(client.get(f"{api_prefix}/health"), 200).json()
    if health.get("status") != "healthy":
        raise SmokeCheckFailed(f"Unexpected health report: {health}")

    _expect(client.get("/docs"), 200)
    metrics = _expect(client.get(f"{api_prefix}/metrics"), 200)
    if "http_requests_total" not in metrics.text:
        raise SmokeCheckFailed("Metrics exposition is missing http_requests_total")

    probes = _anonymous_probes(api_prefix)
    for method, path, body, status in probes:
        _expect(client.request(method, path, json=body), status)
    return len(probes) + 3


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Smoke-check a freshly deployed LVUP EDU API.")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL)
    parser.add_argument("--api-prefix", default=DEFAULT_API_PREFIX)
    parser.add_argument("--timeout", type=float, default=30.0)
    return parser


def main() -> int:
    args = _build_parser().parse_args()
    with httpx.Client(
        base_url=args.base_url,
        timeout=args.timeout,
        headers={"Accept": "application/json"},
    ) as client:
        try:
            passed = run_checks(client, args.api_prefix.rstrip("/"))
        except (SmokeCheckFailed, httpx.HTTPError) as exc:
            print(f"Smoke check failed: {exc}", file=sys.stderr)
            return 1
    print(f"Smoke checks passed ({passed} probes).")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
