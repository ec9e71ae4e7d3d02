"""Fetch and print a switch's status and notification history JSON."""

import argparse
import json

import httpx


def main() -> None:
    """CLI entrypoint for operator status checks."""

    parser = argparse.ArgumentParser(description="Show status and recent notifications for one switch.")
    parser.add_argument("switch_id")
    parser.add_argument("--switch-url", default="http://localhost:8000")
    parser.add_argument("--limit", type=int, default=20)
    args = parser.parse_args()

    with httpx.Client(base_url=args.switch_url, timeout=10.0) as client:
        status = client.get(f"/switches/{args.switch_id}/status")
        status.raise_for_status()
        history = client.get(f"/switches/{args.switch_id}/notifications", params={"limit": args.limit})
        if history.status_code == 404:
            notifications = []
        else:
            history.raise_for_status()
            notifications = history.json()

    print(json.dumps({"status": status.json(), "notifications": notifications}, indent=2))


if __name__ == "__main__":
    main()
