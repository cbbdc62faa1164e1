"""Pipeline components.

- ``insights``: correlation engine producing insight snapshots
- ``discovery``: acquisition adapters, deduplication and classification
- ``concurrency``: bounded fan-out shared by both
"""
