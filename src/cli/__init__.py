# =============================================================================
# src/cli/__init__.py — CLI Module Overview
# =============================================================================
#
# Command-line tools for operators who run the knowledge base outside of
# the HTTP API. There is a single tool today:
#
#   INGESTION (ingest.py)
#      Ingests webpages, manual text and social posts, runs the crawl
#      sweep, shows index statistics, prunes stale URLs and mints API
#      tokens.
#
# Architecture Notes:
#   - argparse for argument parsing (not Click/Typer).
#   - Heavy imports (providers, the chunk store) are deferred inside
#     functions to keep startup fast for simple commands.
# =============================================================================

"""CLI tools for the knowledge-base ingestion engine.

- ``python -m src.cli.ingest`` — ingest sources and maintain the index.
"""
