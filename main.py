# hostca/main.py

import logging

import uvicorn

from hostca.config import DEBUG, UVICORN_HOST, UVICORN_PORT, UVICORN_UDS


logger = logging.getLogger("hostca.main")
if not logging.getLogger().hasHandlers():
    logging.basicConfig(level=logging.DEBUG if DEBUG else logging.INFO, force=True, format='%(levelname)s:%(name)s:%(message)s')


if __name__ == "__main__":
    # TLS and client certificate verification happen in the terminating proxy
    bind_args = {}
    if UVICORN_UDS:
        bind_args['uds'] = UVICORN_UDS
    else:
        bind_args['host'] = UVICORN_HOST
        bind_args['port'] = UVICORN_PORT

    try:
        uvicorn.run(
            "hostca:create_app",
            factory=True,
            reload=DEBUG,
            log_level="debug" if DEBUG else "info",
            workers=1,
            proxy_headers=True,
            **bind_args
        )
    except Exception as e:
        logger.critical(f"Failed to start Uvicorn: {e}", exc_info=True)
