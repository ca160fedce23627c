import json
import logging
import os
import subprocess
from urllib.parse import urljoin

import requests

from usage_report.errors import TransportError


def cf_results_handler(path: str, payload: str) -> dict:
    """Decode a CF API reply and reject anything that is not a resource document."""
    try:
        results = json.loads(payload)
    except ValueError as err:
        raise TransportError(f"Unable to decode response from {path}: {err}") from err

    if not isinstance(results, dict):
        raise TransportError(f"Unexpected response from {path}: {payload[:200]}")

    if "error_code" in results:
        description = results.get("description", results["error_code"])
        raise TransportError(f"Error calling CF API {path}: {description}")
    if "errors" in results:
        raise TransportError(f"Error calling CF API {path}: {results['errors']}")

    return results


class CFCurl:
    """Issue GETs through the logged-in cf CLI."""

    def __init__(self, cf_binary: str = "cf"):
        self.cf_binary = cf_binary

    def get(self, path: str) -> dict:
        logging.debug("cf curl {0}".format(path))
        command = [self.cf_binary, "curl", path]
        try:
            output = subprocess.run(
                command, capture_output=True, check=True, encoding="utf-8"
            )
        except FileNotFoundError as err:
            raise TransportError(
                f"Unable to run `{self.cf_binary}`, is the cf CLI installed?"
            ) from err
        except subprocess.CalledProcessError as err:
            detail = (err.stderr or err.stdout or "").strip()
            raise TransportError(f"Error calling cf curl {path}: {detail}") from err

        return cf_results_handler(path, output.stdout)


def oauth(cf_binary: str = "cf") -> str:
    token = os.getenv("CF_TOKEN")
    if token:
        token = token.strip()
    else:
        try:
            token = subprocess.check_output(
                [cf_binary, "oauth-token"], text=True
            ).strip()
        except (OSError, subprocess.CalledProcessError) as err:
            raise TransportError("Need CF_TOKEN or a logged-in `cf` CLI") from err
    return token if token.lower().startswith("bearer ") else f"bearer {token}"


class CFClient:
    """Issue GETs straight against the API endpoint with a bearer token."""

    def __init__(self, api: str, token: str, verify: bool = True, timeout: int = 30):
        self._base_url = api.rstrip("/") + "/"
        self.headers = {"Authorization": token, "Accept": "application/json"}
        self.verify = verify
        self.timeout = timeout

    def url_for(self, path: str) -> str:
        """Resolve API paths and absolute next-page links alike."""
        return urljoin(self._base_url, path.lstrip("/"))

    def get(self, path: str) -> dict:
        url = self.url_for(path)
        logging.debug("GET {0}".format(url))
        try:
            r = requests.get(
                url, headers=self.headers, verify=self.verify, timeout=self.timeout
            )
            r.raise_for_status()
        except requests.RequestException as err:
            raise TransportError(f"Error calling CF API {path}: {err}") from err

        return cf_results_handler(path, r.text)


def get_client():
    """Talk to CF_API directly when it is exported, otherwise go through `cf curl`."""
    api = os.getenv("CF_API")
    if api:
        verify = os.getenv("CF_SKIP_SSL_VALIDATION", "").lower() != "true"
        return CFClient(api, oauth(), verify=verify)
    return CFCurl()
