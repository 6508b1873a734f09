#!/usr/bin/env python3
"""
Tubely • Simple Uploader
========================

CLI helper to push a local video or thumbnail to an asset via the upload
endpoints, printing the resolved asset on success.

Examples
--------
1) Upload a video (token from env):
    TUBELY_TOKEN=... python scripts/uploader.py \
      --api http://localhost:8091/api/v1 \
      --asset-id 11111111-1111-1111-1111-111111111111 \
      ./boots.mp4

2) Upload a thumbnail:
    python scripts/uploader.py --api http://localhost:8091/api/v1 \
      --asset-id 11111111-1111-1111-1111-111111111111 --token "$JWT" \
      --thumbnail ./boots.png
"""

import argparse
import json
import mimetypes
import os
import sys

import requests


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("file", help="Path to file to upload")
    ap.add_argument("--api", default="http://localhost:8091/api/v1", help="API base")
    ap.add_argument("--asset-id", required=True, help="Asset UUID")
    ap.add_argument("--token", default=os.getenv("TUBELY_TOKEN"), help="Bearer token (or TUBELY_TOKEN)")
    ap.add_argument("--thumbnail", action="store_true", help="Upload as the asset's thumbnail")
    ap.add_argument("--content-type", help="Override the guessed media type")
    args = ap.parse_args()

    if not os.path.isfile(args.file):
        print(f"Not a file: {args.file}", file=sys.stderr)
        sys.exit(2)
    if not args.token:
        print("Provide --token or set TUBELY_TOKEN", file=sys.stderr)
        sys.exit(2)

    field = "thumbnail" if args.thumbnail else "video"
    url = args.api.rstrip("/") + f"/{field}_upload/{args.asset_id}"
    ctype = args.content_type or mimetypes.guess_type(args.file)[0] or "application/octet-stream"
    size = os.path.getsize(args.file)

    print(f"Uploading {args.file} ({size} bytes, {ctype}) as {field}...")
    with open(args.file, "rb") as fh:
        resp = requests.post(
            url,
            files={field: (os.path.basename(args.file), fh, ctype)},
            headers={"Authorization": f"Bearer {args.token}"},
            timeout=600,
        )
    if resp.status_code != 200:
        print(f"Upload failed: {resp.status_code} {resp.text}", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(resp.json(), indent=2))


if __name__ == "__main__":
    main()
