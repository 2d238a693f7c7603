"""
bbb_activity.api.__main__

Entrypoint for `python -m bbb_activity.api` and the `bbb-activity` script.

Responsibilities:
- Build the app from env settings (`BBB_*`).
- Serve it with uvicorn behind the host site's reverse proxy.
"""

from __future__ import annotations

import uvicorn

from bbb_activity.api.app import create_app
from bbb_activity.observability.logging import get_logger
from bbb_activity.settings import get_settings

log = get_logger(__name__)


def main() -> None:
    settings = get_settings()
    app = create_app(settings=settings)
    log.info("serving", host=settings.api_host, port=settings.api_port, wwwroot=settings.wwwroot)

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        # Redirect targets and callback URLs are built from `wwwroot`, but client
        # addresses in access logs come from the proxy headers.
        proxy_headers=True,
        forwarded_allow_ips="*",
        log_config=None,  # structlog
    )


if __name__ == "__main__":
    main()
