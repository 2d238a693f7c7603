"""
bbb_activity

Top-level package for the BigBlueButton activity module service.

Responsibilities:
- Expose package version metadata.
"""

__all__ = ["__version__"]

__version__ = "0.3.0"


# --- Module Notes -----------------------------------------------------------
# The version is also reported to the conferencing server in the session origin tag.
