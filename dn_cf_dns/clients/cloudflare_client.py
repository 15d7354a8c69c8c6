import requests
import structlog
from pydantic import ValidationError

from ..errors import NotFoundError, UpstreamError
from ..models import ExistingRecord

log = structlog.get_logger()

CLOUDFLARE_API_URL = "https://api.cloudflare.com/client/v4"
RECORDS_PER_PAGE = 100


class CloudflareClient:
    def __init__(self, api_token, api_url=CLOUDFLARE_API_URL, timeout=30):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = self._get_requests_session(api_token)

    def _get_requests_session(self, api_token):
        session = requests.Session()
        session.headers.update({
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
        })
        return session

    def _api_request(self, method, path, action, params=None, data=None):
        """
        Sends one request and unwraps the Cloudflare response envelope.

        Returns the whole envelope so callers can read both ``result`` and
        ``result_info``. Raises UpstreamError, prefixed with ``action``, on
        any failure.
        """
        url = f"{self.api_url}{path}"
        try:
            log.debug("Cloudflare API Request", url=url, method=method, params=params, data=data)
            response = self.session.request(method, url, params=params, json=data, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise UpstreamError(f"failed to {action}: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamError(
                f"failed to {action}: undecodable response (status {response.status_code})",
                status_code=response.status_code,
            ) from e

        if not response.ok or not isinstance(body, dict) or not body.get("success"):
            errors = body.get("errors") if isinstance(body, dict) else None
            raise UpstreamError(
                f"failed to {action}: status {response.status_code}, errors: {errors or response.text[:200]}",
                status_code=response.status_code,
            )
        log.debug("Cloudflare API Response", url=url, status_code=response.status_code)
        return body

    def find_zone_id_by_name(self, zone_name):
        body = self._api_request("GET", "/zones", "list zones", params={"name": zone_name})
        try:
            for zone in body.get("result") or []:
                if zone.get("name") == zone_name:
                    return zone["id"]
        except (KeyError, TypeError, AttributeError) as e:
            raise UpstreamError(f"failed to decode zones response: malformed zone entry for {zone_name}") from e
        raise NotFoundError(f"zone {zone_name} not found")

    def get_zone_name(self, zone_id):
        body = self._api_request("GET", f"/zones/{zone_id}", "get zone")
        try:
            return body["result"]["name"]
        except (KeyError, TypeError) as e:
            raise UpstreamError(f"failed to get zone: malformed result for zone {zone_id}") from e

    def list_records(self, zone_id, name=None):
        """
        Lists DNS records in a zone, following every result page.

        Args:
            zone_id (str): The zone identifier.
            name (str, optional): Only return records with exactly this name.

        Returns:
            list[ExistingRecord]: The records, in provider order.
        """
        records = []
        page = 1
        while True:
            params = {"page": page, "per_page": RECORDS_PER_PAGE}
            if name is not None:
                params["name"] = name
            body = self._api_request("GET", f"/zones/{zone_id}/dns_records", "list DNS records", params=params)
            try:
                records.extend(ExistingRecord(**item) for item in body.get("result") or [])
            except (TypeError, ValidationError) as e:
                raise UpstreamError(f"failed to decode DNS records: {e}") from e

            result_info = body.get("result_info") or {}
            total_pages = result_info.get("total_pages") if isinstance(result_info, dict) else None
            if not isinstance(result_info, dict) or not isinstance(total_pages, (int, type(None))):
                raise UpstreamError(f"failed to decode DNS records: malformed result_info {result_info!r}")
            total_pages = total_pages or 1
            if page >= total_pages:
                break
            page += 1
        return records

    def create_record(self, zone_id, name, address, ttl, proxied):
        data = {"type": "A", "name": name, "content": address, "ttl": ttl, "proxied": proxied}
        body = self._api_request("POST", f"/zones/{zone_id}/dns_records", "create DNS record", data=data)
        try:
            record_id = body["result"]["id"]
        except (KeyError, TypeError) as e:
            raise UpstreamError(f"failed to decode created DNS record {name}: missing record id") from e
        log.debug("Created DNS record", record_id=record_id, name=name, address=address)
        return record_id

    def update_record(self, zone_id, record_id, name, address, ttl, proxied):
        data = {"type": "A", "name": name, "content": address, "ttl": ttl, "proxied": proxied}
        self._api_request("PUT", f"/zones/{zone_id}/dns_records/{record_id}", "update DNS record", data=data)

    def delete_record(self, zone_id, record_id):
        self._api_request("DELETE", f"/zones/{zone_id}/dns_records/{record_id}", "delete DNS record")
