"""
Script to run the intercept proxy with hot reload.
"""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from intercept_proxy.settings import Settings


def main():
    """Run the server with hot reload enabled."""
    env_path = Path(__file__).parent / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    settings = Settings()
    uvicorn.run(
        "intercept_proxy.main:app",
        host=settings.get_proxy_host(),
        port=settings.get_proxy_port(),
        reload=True,
        reload_dirs=["intercept_proxy"],  # Only watch our package directory
        log_level="debug",
    )


if __name__ == "__main__":
    main()
