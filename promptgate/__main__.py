"""promptgate entry point: start aiohttp server."""

import logging
import sys

from promptgate.config import SERVICE_NAME, SERVICE_VERSION, Settings, load_config
from promptgate.server import create_app

log = logging.getLogger("promptgate")


def main() -> None:
    from aiohttp import web

    settings = Settings.from_config(load_config())

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    log.info("%s v%s starting on port %d", SERVICE_NAME, SERVICE_VERSION, settings.port)
    if settings.auth_enabled:
        log.info("Master key configured: /v1 requires a bearer token")
    else:
        log.warning("No master key configured: /v1 is open to anyone")

    app = create_app(settings)
    web.run_app(app, port=settings.port, print=None)


if __name__ == "__main__":
    main()
