"""
AI queue for background generation jobs.

This package provides:
- Durable queue rows with conditional claims and terminal writes
- Registry-based pluggable handlers
- A polling processor limited to an allow-list of models
- Manual triggering and startup recovery of orphaned jobs
"""
