# =============================================================================
# src/cli/ingest.py: Batch ingestion of a local image folder over HTTP
# =============================================================================
#
# Walks one directory (not recursive), and for every image file calls the
# running API in order:
#
#   POST /api/describe   (multipart "image")
#   POST /api/embed      ({"description": ...})
#   POST /api/ingest     ({"name": <stem>, "imageUrl": null, ...})
#
# A file that fails at any step is reported and skipped; the loop always
# continues.  A fixed delay separates consecutive files to stay polite to
# the upstream model APIs.  The process exits 1 only when the run itself
# cannot start (e.g. the directory is missing).
#
# Usage examples:
#   python -m src.cli.ingest
#   python -m src.cli.ingest ./photos/chairs --api-base http://localhost:8000
#   python -m src.cli.ingest ./photos --delay 1.0 --with-preview
# =============================================================================

"""Command-line batch ingestion of a folder of furniture images.

Usage::

    python -m src.cli.ingest [DIRECTORY] [--api-base URL] [--delay SECONDS]
                             [--with-preview]

``DIRECTORY`` defaults to ``../dataset/chairs`` relative to the working
directory; ``--api-base`` defaults to ``API_BASE`` from the environment.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from src.config.loader import load_config
from src.config.settings import Settings
from src.utils.image_normalizer import ImageNormalizer
from src.utils.preview_store import PreviewStore

_MIME_BY_EXTENSION = {
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
}


@dataclass
class IngestSummary:
    """What happened to each file of one CLI run."""

    ingested: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.ingested) + len(self.failed)


class IngestRequestError(Exception):
    """One HTTP step for one file answered with a non-2xx status."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def detect_mime(filename: str) -> str:
    """MIME type from the extension; anything unknown is sent as JPEG."""
    return _MIME_BY_EXTENSION.get(Path(filename).suffix.lower(), "image/jpeg")


def list_images(directory: Path, extensions: list[str]) -> list[Path]:
    """Image files directly inside *directory*, sorted by name.

    Raises
    ------
    FileNotFoundError, NotADirectoryError, PermissionError
        When the directory cannot be listed.
    """
    allowed = {ext.lower() for ext in extensions}
    return sorted(
        (entry for entry in directory.iterdir() if entry.is_file() and entry.suffix.lower() in allowed),
        key=lambda entry: entry.name,
    )


async def _post(client: httpx.AsyncClient, step: str, filename: str, url: str, **kwargs) -> dict:
    response = await client.post(url, **kwargs)
    if response.is_error:
        raise IngestRequestError(
            f"{step} failed for {filename}: {response.status_code} {response.text}"
        )
    return response.json()


async def ingest_file(
    client: httpx.AsyncClient,
    api_base: str,
    path: Path,
    normalizer: ImageNormalizer | None = None,
) -> None:
    """Describe, embed and ingest one file through the HTTP API."""
    data = path.read_bytes()
    filename = path.name

    described = await _post(
        client,
        "Describe",
        filename,
        f"{api_base}/api/describe",
        files={"image": (filename, data, detect_mime(filename))},
    )
    description = described["description"]

    embedded = await _post(
        client,
        "Embed",
        filename,
        f"{api_base}/api/embed",
        json={"description": description},
    )
    embedding = embedded["embedding"]

    payload: dict = {
        "name": path.stem,
        "imageUrl": None,
        "description": description,
        "embedding": embedding,
    }
    if normalizer is not None:
        normalized = normalizer.normalize(data, filename)
        payload["imageBase64"] = normalized.base64
        payload["imageName"] = normalized.filename
        normalizer.release(normalized)

    await _post(client, "Catalog ingest", filename, f"{api_base}/api/ingest", json=payload)


async def ingest_directory(
    directory: Path,
    api_base: str,
    *,
    delay: float = 0.5,
    extensions: list[str] | None = None,
    with_preview: bool = False,
    client: httpx.AsyncClient | None = None,
) -> IngestSummary:
    """Ingest every image in *directory*, one at a time.

    Per-file failures are printed and recorded; they never stop the run.
    """
    extensions = extensions or [".png", ".jpg", ".jpeg", ".webp", ".gif"]
    images = list_images(directory, extensions)
    summary = IngestSummary()

    if not images:
        print(f"Warning: No images found in {directory}", file=sys.stderr)
        return summary

    normalizer = ImageNormalizer(PreviewStore()) if with_preview else None
    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=httpx.Timeout(120.0))
    api_base = api_base.rstrip("/")

    try:
        for index, path in enumerate(images):
            if index > 0 and delay > 0:
                await asyncio.sleep(delay)
            try:
                await ingest_file(client, api_base, path, normalizer)
            except Exception as exc:
                summary.failed[path.name] = str(exc)
                print(f"Failed: {exc}", file=sys.stderr)
                continue
            summary.ingested.append(path.name)
            print(f"Ingested {path.name}")
    finally:
        if owns_client:
            await client.aclose()

    print()
    print(f"Done: {len(summary.ingested)} ingested, {len(summary.failed)} failed.")
    return summary


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser(defaults: dict, api_base: str) -> argparse.ArgumentParser:
    """Build the argparse parser for the ingestion CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.ingest",
        description="Describe, embed and ingest every image in a folder via the HTTP API.",
    )
    parser.add_argument(
        "directory",
        nargs="?",
        default=None,
        help=f"Folder of images (default: {defaults['dataset_dir']} from the working directory)",
    )
    parser.add_argument(
        "--api-base",
        dest="api_base",
        default=api_base,
        help=f"Base URL of the running API (default: {api_base})",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=defaults["pacing_seconds"],
        help=f"Seconds to wait between files (default: {defaults['pacing_seconds']})",
    )
    parser.add_argument(
        "--with-preview",
        action="store_true",
        dest="with_preview",
        help="Also upload a 200x200 JPEG preview of each image",
    )
    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Exits 0 when the loop completes, 1 on a top-level failure."""
    app_settings = Settings()
    cli_config = load_config(settings=app_settings)["cli"]

    parser = _build_parser(cli_config, app_settings.api_base)
    args = parser.parse_args(argv)

    directory = (
        Path(args.directory) if args.directory else Path.cwd() / cli_config["dataset_dir"]
    ).resolve()

    print(f"Ingesting images from {directory} via {args.api_base}")
    try:
        asyncio.run(
            ingest_directory(
                directory,
                args.api_base,
                delay=args.delay,
                extensions=cli_config["image_extensions"],
                with_preview=args.with_preview,
            )
        )
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
