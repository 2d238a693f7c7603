"""
bbb_activity.api

API package for the activity service.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring, error translation and page templates.
"""
