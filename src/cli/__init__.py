# =============================================================================
# src/cli/__init__.py: CLI Module Overview
# =============================================================================
#
# Standalone command-line tools for Furniture Vectors, run with
# `python -m src.cli.<module>`.
#
#   INGESTION (ingest.py)
#      Sends every image of a local folder through the running API
#      (describe -> embed -> ingest), one file at a time with pacing.
#
# The CLI talks to the API over HTTP instead of calling the services
# directly, so the same credentials and logging apply as for the page.
# =============================================================================

"""CLI tools for Furniture Vectors.

- ``python -m src.cli.ingest``: ingest a folder of furniture images
  through the HTTP API.
"""
