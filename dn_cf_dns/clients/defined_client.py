import requests
import structlog
from pydantic import ValidationError

from ..errors import UpstreamError
from ..models import HostPage

log = structlog.get_logger()

DEFINED_API_URL = "https://api.defined.net"
PAGE_SIZE = 500


class DefinedClient:
    """Reads Managed Nebula hosts from the Defined Networking API."""

    def __init__(self, api_token, api_url=DEFINED_API_URL, timeout=30):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = self._get_requests_session(api_token)

    def _get_requests_session(self, api_token):
        session = requests.Session()
        session.headers.update({
            "Accept": "application/json",
            "Authorization": f"Bearer {api_token}",
        })
        return session

    def list_hosts(self, cursor=""):
        """
        Fetches one page of hosts.

        Args:
            cursor (str): The cursor returned by the previous page, or an
                empty string for the first page.

        Returns:
            HostPage: The hosts on this page and the cursor of the next one.

        Raises:
            UpstreamError: On transport failure, a non-200 status or a body
                that cannot be decoded.
        """
        url = f"{self.api_url}/v1/hosts"
        params = {"cursor": cursor, "pageSize": PAGE_SIZE}
        try:
            log.debug("Defined.net API Request", url=url, cursor=cursor)
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise UpstreamError(f"failed to list hosts: {e}") from e

        if response.status_code != 200:
            raise UpstreamError(
                f"failed to list hosts: unexpected status code {response.status_code}, body: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
            metadata = body.get("metadata") or {}
            page = HostPage(
                hosts=body.get("data") or [],
                has_next_page=metadata.get("hasNextPage", False),
                next_cursor=metadata.get("cursor") or "",
            )
        except (ValueError, AttributeError, ValidationError) as e:
            raise UpstreamError(f"failed to decode hosts response: {e}") from e

        log.debug("Defined.net API Response", hosts=len(page.hosts), has_next_page=page.has_next_page)
        return page
