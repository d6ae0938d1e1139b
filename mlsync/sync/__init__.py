"""Synchronization — the update, validate and roll back loop plus its history.

This package provides:
- The synchronizer: picks a backend and drives the rollback loop
- Sync history: an auditable record of which revisions were accepted
"""
