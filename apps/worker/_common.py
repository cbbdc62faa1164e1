"""Shared plumbing for the batch entrypoints."""

from __future__ import annotations

import os
import uuid

from infra.config import Settings, get_settings
from infra.logging_config import set_request_context, setup_logging


def prepare_run(*, trigger: str, db_url: str | None = None) -> Settings:
    """Apply a ``--db-url`` override, set up logging and tag the run context."""
    if db_url:
        os.environ["DB_URL"] = db_url
    settings = get_settings(reload=True)
    if not settings.db.url:
        raise SystemExit("Missing --db-url (or DB_URL env var).")
    setup_logging()
    set_request_context(trigger=trigger, run_id=uuid.uuid4().hex)
    return settings
