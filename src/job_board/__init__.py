"""Job board ingestion service."""
