"""Publish one funding event onto the live ledger topic.

Useful for exercising live delivery and backfill/live duplicate collapsing:
publishing the same transaction id and log index twice must still yield a
single notification.
"""

import argparse
import asyncio
import json

from aiokafka import AIOKafkaProducer


async def publish(bootstrap_servers: str, topic: str, payload: dict) -> None:
    """Open producer, publish one message, close producer."""

    producer = AIOKafkaProducer(bootstrap_servers=bootstrap_servers)
    await producer.start()
    try:
        await producer.send_and_wait(topic, json.dumps(payload).encode("utf-8"))
    finally:
        await producer.stop()


def main() -> None:
    """Parse CLI args and publish one funding event."""

    parser = argparse.ArgumentParser(description="Publish a funding event to the live ledger topic.")
    parser.add_argument("--bootstrap-servers", default="localhost:9092")
    parser.add_argument("--topic", default="ledger.funding")
    parser.add_argument("--project-id", type=int, required=True)
    parser.add_argument("--investor", required=True)
    parser.add_argument("--amount", type=int, required=True, help="Amount in the smallest unit")
    parser.add_argument("--transaction-id", required=True)
    parser.add_argument("--log-index", type=int, default=0)
    args = parser.parse_args()

    payload = {
        "event_kind": "funding",
        "project_id": args.project_id,
        "investor": args.investor,
        "amount": args.amount,
        "transaction_id": args.transaction_id,
        "log_index": args.log_index,
    }
    asyncio.run(publish(args.bootstrap_servers, args.topic, payload))
    print(f"Published to topic={args.topic} event_key={args.transaction_id}:{args.log_index}")


if __name__ == "__main__":
    main()
