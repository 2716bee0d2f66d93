#!/usr/bin/env python3
"""Upload a local file to UFile, or delete an object.

Usage:
  .venv/bin/python scripts/ufile_upload.py my-bucket path/in/bucket ./local.bin
  .venv/bin/python scripts/ufile_upload.py my-bucket path/in/bucket ./big.iso --multipart
  .venv/bin/python scripts/ufile_upload.py my-bucket path/in/bucket --delete

Credentials and endpoints come from UFILE_* environment variables or .env.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from ufile_tier.common.logging import setup_logging
from ufile_tier.infra.storage.client import StorageError
from ufile_tier.services.cloud_service import build_cloud_service

READ_CHUNK_SIZE = 1024 * 1024

logger = logging.getLogger("ufile_tier.cli")


def read_chunks(path: Path, chunk_size: int = READ_CHUNK_SIZE) -> list[bytes]:
    chunks: list[bytes] = []
    with path.open("rb") as handle:
        while True:
            chunk = handle.read(chunk_size)
            if not chunk:
                break
            chunks.append(chunk)
    return chunks


def main() -> int:
    parser = argparse.ArgumentParser(description="Upload or delete a UFile object")
    parser.add_argument("bucket", help="Gateway bucket name (prefix/override applied)")
    parser.add_argument("key", help="Object key")
    parser.add_argument("path", nargs="?", type=Path, help="Local file to upload")
    parser.add_argument(
        "--multipart",
        action="store_true",
        help="Upload in parts of the block size reported by UFile",
    )
    parser.add_argument(
        "--delete",
        action="store_true",
        help="Delete the object instead of uploading",
    )
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    setup_logging(args.log_level.upper())
    service = build_cloud_service()

    if args.delete:
        try:
            service.remove_object(args.bucket, args.key)
        except StorageError as exc:
            logger.error("delete failed: %s", exc)
            return 1
        logger.info("deleted %s/%s", args.bucket, args.key)
        return 0

    if args.path is None:
        parser.error("path is required unless --delete is given")

    chunks = read_chunks(args.path)
    size = sum(len(chunk) for chunk in chunks)
    try:
        if args.multipart:
            session = service.upload_multipart(args.bucket, args.key, chunks, size)
            logger.info(
                "uploaded %s bytes in %s parts upload_id=%s",
                size,
                len(session.parts),
                session.upload_id,
            )
        else:
            service.put_object(args.bucket, args.key, chunks, size)
            logger.info("uploaded %s bytes", size)
    except StorageError as exc:
        logger.error("upload failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
