"""Run the proxy: ``python -m f1_proxy``."""
import uvicorn

from f1_proxy.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "f1_proxy.main:app",
        host=settings.host,
        port=settings.port,
        proxy_headers=True,
        timeout_graceful_shutdown=settings.shutdown_timeout,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
