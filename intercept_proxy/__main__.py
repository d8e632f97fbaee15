"""
Main entry point for running the intercept proxy server.
"""

import uvicorn

from intercept_proxy.settings import Settings


def main():
    """Run the proxy server on the configured listen address."""
    settings = Settings()
    uvicorn.run(
        "intercept_proxy.main:app",
        host=settings.get_proxy_host(),
        port=settings.get_proxy_port(),
        reload=settings.get_proxy_reload(),
        reload_dirs=["intercept_proxy"] if settings.get_proxy_reload() else None,
        log_level=settings.get_log_level().lower(),
    )


if __name__ == "__main__":
    main()
