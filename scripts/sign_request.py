"""
Print a signed query string for calling the upload endpoint by hand.

Usage:
    SHOPIFY_API_SECRET=... python scripts/sign_request.py my-shop.myshopify.com

Then:
    curl -F pdf=@card.pdf "https://<api>/upload?<output>"
"""

import argparse
import os
import time
from urllib.parse import urlencode

from upload_card.signature import sign_query


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("shop", help="Shop domain, e.g. my-shop.myshopify.com")
    parser.add_argument("--secret", default=os.environ.get("SHOPIFY_API_SECRET"))
    parser.add_argument("--timestamp", type=int, default=int(time.time()))
    args = parser.parse_args()

    if not args.secret:
        parser.error("--secret or SHOPIFY_API_SECRET is required")

    params = {"shop": args.shop, "timestamp": str(args.timestamp)}
    params["hmac"] = sign_query(params, args.secret)
    print(urlencode(params))


if __name__ == "__main__":
    main()
