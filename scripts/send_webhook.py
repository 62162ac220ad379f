"""Sign and POST one payment webhook by hand.

Useful for manual fault injection: skew the timestamp to trigger
`Stale timestamp`, or sign with the wrong secret to trigger
`Signature mismatch`.
"""

import argparse
import json
import time
from pathlib import Path

import httpx

from orderpay.common.signing import WebhookSigner
from orderpay.services.payments.payloads import PAYMENT_SUCCEEDED, WEBHOOK_PATH, serialize_payload


def main() -> None:
    """Parse CLI args, sign the payload and send it."""

    parser = argparse.ArgumentParser(description="Send a signed payment webhook.")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--secret", default="dev-webhook-secret")
    parser.add_argument("--header", default="X-Signature")
    parser.add_argument("--order-number", default=None)
    parser.add_argument("--type", dest="event_type", default=PAYMENT_SUCCEEDED)
    parser.add_argument("--amount", default="0.00")
    parser.add_argument("--currency", default="USD")
    parser.add_argument("--file", dest="json_file", default=None, help="Path to a raw JSON body to sign instead")
    parser.add_argument("--skew-seconds", type=int, default=0, help="Shift the signing timestamp")
    args = parser.parse_args()

    if bool(args.order_number) == bool(args.json_file):
        raise SystemExit("Provide exactly one of --order-number or --file")

    if args.json_file:
        body = Path(args.json_file).read_bytes()
    else:
        body = serialize_payload(
            {
                "type": args.event_type,
                "data": {"orderNumber": args.order_number, "amount": args.amount, "currency": args.currency},
            }
        )

    signer = WebhookSigner(args.secret, header_name=args.header)
    signature = signer.sign(body, int(time.time()) + args.skew_seconds)
    resp = httpx.post(
        f"{args.base_url.rstrip('/')}{WEBHOOK_PATH}",
        content=body,
        headers={args.header: signature, "Content-Type": "application/json"},
        timeout=10.0,
    )
    print(f"status={resp.status_code}")
    print(json.dumps(resp.json(), indent=2) if resp.content else "")


if __name__ == "__main__":
    main()
