"""revsnap - diff ingestion and review snapshots for local code review."""

__version__ = "0.1.0"
