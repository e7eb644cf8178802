"""Asset Studio backend.

File-backed projects and assets with:
- Crash-tolerant JSON document storage with backups
- Simulated asset generation jobs tracked by polling
- Prompt enhancement, scoring, breakdown and suggestions

Usage:
    ./start_web.py  # From repo root
"""

from .server import app

__all__ = ['app']
