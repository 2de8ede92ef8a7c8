"""Fetch and print the notifier's session state and current feed."""

import argparse
import json

import httpx


def main() -> None:
    """CLI entrypoint for a quick look at what the founder currently sees."""

    parser = argparse.ArgumentParser(description="Print notifier session state and notifications.")
    parser.add_argument("--notifier-url", default="http://localhost:8010")
    args = parser.parse_args()

    with httpx.Client(base_url=args.notifier_url, timeout=10.0) as client:
        session = client.get("/session")
        session.raise_for_status()
        feed = client.get("/notifications")
        feed.raise_for_status()
    print(json.dumps({"session": session.json(), "notifications": feed.json()}, indent=2))


if __name__ == "__main__":
    main()
