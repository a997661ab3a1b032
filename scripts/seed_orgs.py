"""Create many organizations concurrently through the CF API.

Used by operators seeding a foundation and by the e2e tests to set up
fixtures. Every creation is an independent task; ``run_batch`` waits for
all of them before reporting failures.

Usage:
    python scripts/seed_orgs.py --api https://cf.example.org --token "$TOKEN" org-a org-b org-c
"""
from __future__ import annotations
import argparse
import os
import queue
import sys
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Sequence

import requests

REQUEST_TIMEOUT = 30


class BatchError(Exception):
    """One or more batch tasks failed; ``errors`` holds every failure."""

    def __init__(self, errors: list[BaseException]):
        self.errors = errors
        super().__init__(f"{len(errors)} task(s) failed: " + "; ".join(str(e) for e in errors))


def run_batch(tasks: Sequence[Callable[[], object]], max_workers: int = 8) -> list:
    """Run independent tasks concurrently and join on all of them.

    Failures go to a queue sized to the task count, so no task ever blocks
    reporting its error; the queue is drained only after every task ended.

    Returns:
        Task results, in task order

    Raises:
        BatchError: At least one task raised
    """
    errors: "queue.Queue[BaseException]" = queue.Queue(maxsize=max(len(tasks), 1))
    results: list = [None] * len(tasks)

    def _run(index: int, task: Callable[[], object]) -> None:
        try:
            results[index] = task()
        except Exception as exc:
            errors.put_nowait(exc)

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [pool.submit(_run, index, task) for index, task in enumerate(tasks)]
        wait(futures)

    failures = []
    while not errors.empty():
        failures.append(errors.get_nowait())
    if failures:
        raise BatchError(failures)
    return results


def create_org(api: str, token: str, name: str, session: requests.Session | None = None) -> dict:
    """POST /v3/organizations and return the created org.

    Raises:
        requests.HTTPError: API rejected the request
    """
    http = session or requests
    resp = http.post(
        f"{api.rstrip('/')}/v3/organizations",
        json={"name": name},
        headers={"Authorization": f"Bearer {token}"},
        timeout=REQUEST_TIMEOUT,
    )
    resp.raise_for_status()
    return resp.json()


def main(argv: Sequence[str] | None = None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="Create CF organizations concurrently")
    parser.add_argument("--api", default=os.environ.get("API_SERVER_ROOT", "http://localhost:9000"))
    parser.add_argument("--token", default=os.environ.get("CF_TOKEN"), help="Bearer token (default: $CF_TOKEN)")
    parser.add_argument("--workers", type=int, default=8)
    parser.add_argument("names", nargs="+", help="Organization names")
    args = parser.parse_args(argv)

    if not args.token:
        parser.error("a bearer token is required (--token or CF_TOKEN)")

    tasks = [lambda name=name: create_org(args.api, args.token, name) for name in args.names]
    try:
        created = run_batch(tasks, max_workers=args.workers)
    except BatchError as exc:
        for error in exc.errors:
            print(f"[seed_orgs] ✗ {error}", file=sys.stderr)
        return 1

    for org in created:
        print(f"[seed_orgs] ✓ {org['name']} ({org['guid']})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
