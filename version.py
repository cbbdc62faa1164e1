"""Project version constants.

These constants are logged with each pipeline run and returned by the
``/api/version`` endpoint so persisted snapshots can be traced back to the
engine build that produced them.
"""

ENGINE_NAME: str = "testnet-insights"
ENGINE_VERSION: str = "0.1.0"

KEYWORD_TABLE_VERSION: str = "0.1.0"
SCHEMA_VERSION: int = 1
