"""HTTP reachability probe for a deployed site."""

import time

import requests

from wpdeploy.constants import HTTP_CHECK_INTERVAL_SECONDS, HTTP_CHECK_RETRIES
from wpdeploy.errors import DeployError


class HttpCheckService:
    def __init__(self, logger, requests_module=requests):
        self.logger = logger
        self.requests = requests_module

    def wait_until_ready(
        self,
        url: str,
        retries: int = HTTP_CHECK_RETRIES,
        interval: float = HTTP_CHECK_INTERVAL_SECONDS,
        timeout: float = 10.0,
    ) -> int:
        """Polls `url` until it answers below 500. WordPress first redirects to its installer."""
        last_error = None
        for attempt in range(1, retries + 1):
            try:
                response = self.requests.get(url, allow_redirects=False, timeout=timeout)
                status = response.status_code
                response.close()
                if status < 500:
                    return status
                last_error = f"HTTP {status}"
            except self.requests.RequestException as exc:
                last_error = str(exc)

            self.logger.debug("Probe %s/%s of %s failed: %s", attempt, retries, url, last_error)
            if attempt < retries:
                time.sleep(interval)

        raise DeployError(f"{url} did not become ready: {last_error}")
