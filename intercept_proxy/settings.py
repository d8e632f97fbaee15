import os
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

# Load .env file variables into environment
load_dotenv(verbose=True)


class Settings:
    """Application configuration settings loaded from environment variables."""

    # --- Listener Settings ---
    PROXY_HOST: str = "127.0.0.1"
    PROXY_PORT: int = 3000

    # --- Backend Settings ---
    BACKEND_URL: str = "http://127.0.0.1:3030"

    # --- Interception Settings ---
    FILTERED_STRING: str = "bad_message"
    DUPLICATE_DELAY_SECONDS: float = 2.0

    # --- Event Log Settings ---
    REQUEST_LOG_PATH: str = "requests.log"
    ERROR_LOG_PATH: str = "errors.log"

    # --- Listener Getters ---
    def get_proxy_host(self) -> str:
        """Returns the address the proxy listens on."""
        return os.getenv("PROXY_HOST", self.PROXY_HOST)

    def get_proxy_port(self) -> int:
        """Returns the port the proxy listens on."""
        port_str = os.getenv("PROXY_PORT")
        if port_str is None:
            return self.PROXY_PORT
        try:
            return int(port_str)
        except ValueError:
            raise ValueError("PROXY_PORT environment variable must be an integer.")

    def get_proxy_reload(self) -> bool:
        """Returns True if uvicorn should run with hot reload."""
        return os.getenv("PROXY_RELOAD", "false").lower() == "true"

    # --- Backend Getters ---
    def get_backend_url(self) -> str:
        """Returns the backend URL every request is forwarded to."""
        url = os.getenv("BACKEND_URL", self.BACKEND_URL)
        parsed = urlparse(url)
        if not all([parsed.scheme, parsed.netloc]):
            raise ValueError(f"Invalid BACKEND_URL format: {url}")
        return url

    def get_backend_timeout(self) -> Optional[float]:
        """Returns the backend timeout in seconds, or None for no deadline."""
        timeout_str = os.getenv("BACKEND_TIMEOUT_SECONDS")
        if not timeout_str:
            return None
        try:
            return float(timeout_str)
        except ValueError:
            raise ValueError("BACKEND_TIMEOUT_SECONDS environment variable must be a number.")

    # --- Interception Getters ---
    def get_filtered_string(self) -> str:
        """Returns the substring whose presence in a request body triggers rejection."""
        # An empty value would match every body
        return os.getenv("FILTERED_STRING") or self.FILTERED_STRING

    def get_duplicate_delay_seconds(self) -> float:
        """Returns how long a duplicate request's response is held back."""
        delay_str = os.getenv("DUPLICATE_DELAY_SECONDS")
        if delay_str is None:
            return self.DUPLICATE_DELAY_SECONDS
        try:
            delay = float(delay_str)
        except ValueError:
            raise ValueError("DUPLICATE_DELAY_SECONDS environment variable must be a number.")
        if delay < 0:
            raise ValueError("DUPLICATE_DELAY_SECONDS environment variable must not be negative.")
        return delay

    def get_policy_filepath(self) -> Optional[str]:
        """Returns the path to the policy file, if set."""
        return os.getenv("POLICY_FILEPATH") or None

    # --- Logging Settings ---
    def get_log_level(self, default: str = "INFO") -> str:
        """Gets the configured log level, defaulting if not set."""
        return os.getenv("LOG_LEVEL", default).upper()

    def get_request_log_path(self) -> Optional[str]:
        """Returns the file receiving info-level events. Empty disables it."""
        return os.getenv("REQUEST_LOG_PATH", self.REQUEST_LOG_PATH) or None

    def get_error_log_path(self) -> Optional[str]:
        """Returns the file receiving error-level events. Empty disables it."""
        return os.getenv("ERROR_LOG_PATH", self.ERROR_LOG_PATH) or None

    def get_run_mode(self) -> str:
        """Returns the run mode, defaulting to 'prod' if not set."""
        return os.getenv("RUN_MODE", "prod")

    def dev_mode(self) -> bool:
        """Returns True if the run mode is 'dev', False otherwise."""
        return self.get_run_mode() == "dev"
