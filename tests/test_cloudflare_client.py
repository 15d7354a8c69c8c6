import unittest
from unittest.mock import MagicMock, patch

import requests

from dn_cf_dns.clients.cloudflare_client import CloudflareClient
from dn_cf_dns.errors import NotFoundError, UpstreamError


def make_response(body, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = body
    response.text = str(body)
    return response


class TestCloudflareClient(unittest.TestCase):

    def setUp(self):
        patcher = patch('dn_cf_dns.clients.cloudflare_client.requests.Session')
        self.mock_session = patcher.start()
        self.addCleanup(patcher.stop)
        self.session = self.mock_session.return_value
        self.client = CloudflareClient("token")

    def test_session_uses_bearer_token(self):
        self.session.headers.update.assert_called_once()
        headers = self.session.headers.update.call_args[0][0]
        self.assertEqual(headers["Authorization"], "Bearer token")

    def test_find_zone_id_by_name_exact_match(self):
        # Arrange
        self.session.request.return_value = make_response({
            "success": True,
            "result": [{"id": "z0", "name": "sub.example.com"}, {"id": "z1", "name": "example.com"}],
        })

        # Act
        zone_id = self.client.find_zone_id_by_name("example.com")

        # Assert
        self.assertEqual(zone_id, "z1")
        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ("GET", "https://api.cloudflare.com/client/v4/zones"))
        self.assertEqual(kwargs["params"], {"name": "example.com"})

    def test_find_zone_id_by_name_not_found(self):
        self.session.request.return_value = make_response({"success": True, "result": []})

        with self.assertRaises(NotFoundError):
            self.client.find_zone_id_by_name("example.com")

    def test_get_zone_name(self):
        self.session.request.return_value = make_response({"success": True, "result": {"id": "z1", "name": "example.com"}})

        self.assertEqual(self.client.get_zone_name("z1"), "example.com")

    def test_list_records_follows_pages(self):
        # Arrange
        self.session.request.side_effect = [
            make_response({
                "success": True,
                "result": [{"id": "r1", "name": "a.example.com", "type": "A", "content": "10.0.0.1", "ttl": 1}],
                "result_info": {"page": 1, "total_pages": 2},
            }),
            make_response({
                "success": True,
                "result": [{"id": "r2", "name": "b.example.com", "type": "TXT", "content": "hello"}],
                "result_info": {"page": 2, "total_pages": 2},
            }),
        ]

        # Act
        records = self.client.list_records("z1")

        # Assert
        self.assertEqual([(r.id, r.name, r.type) for r in records], [("r1", "a.example.com", "A"), ("r2", "b.example.com", "TXT")])
        pages = [c.kwargs["params"]["page"] for c in self.session.request.call_args_list]
        self.assertEqual(pages, [1, 2])

    def test_list_records_by_name(self):
        self.session.request.return_value = make_response({"success": True, "result": [], "result_info": {"total_pages": 0}})

        self.assertEqual(self.client.list_records("z1", name="a.example.com"), [])
        self.assertEqual(self.session.request.call_args.kwargs["params"]["name"], "a.example.com")

    def test_create_record_returns_id(self):
        # Arrange
        self.session.request.return_value = make_response({"success": True, "result": {"id": "new"}})

        # Act
        record_id = self.client.create_record("z1", "a.example.com", "10.0.0.1", 1, False)

        # Assert
        self.assertEqual(record_id, "new")
        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ("POST", "https://api.cloudflare.com/client/v4/zones/z1/dns_records"))
        self.assertEqual(
            kwargs["json"],
            {"type": "A", "name": "a.example.com", "content": "10.0.0.1", "ttl": 1, "proxied": False},
        )

    def test_update_record(self):
        self.session.request.return_value = make_response({"success": True, "result": {"id": "r1"}})

        self.client.update_record("z1", "r1", "a.example.com", "10.0.0.2", 1, False)

        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ("PUT", "https://api.cloudflare.com/client/v4/zones/z1/dns_records/r1"))
        self.assertEqual(kwargs["json"]["content"], "10.0.0.2")

    def test_delete_record(self):
        self.session.request.return_value = make_response({"success": True, "result": {"id": "r1"}})

        self.client.delete_record("z1", "r1")

        args, _ = self.session.request.call_args
        self.assertEqual(args, ("DELETE", "https://api.cloudflare.com/client/v4/zones/z1/dns_records/r1"))

    def test_http_error_raises_upstream_error(self):
        self.session.request.return_value = make_response(
            {"success": False, "errors": [{"code": 10000, "message": "Authentication error"}]},
            status_code=403,
        )

        with self.assertRaises(UpstreamError) as ctx:
            self.client.delete_record("z1", "r1")

        self.assertEqual(ctx.exception.status_code, 403)
        self.assertIn("Authentication error", str(ctx.exception))

    def test_unsuccessful_envelope_raises_upstream_error(self):
        self.session.request.return_value = make_response({"success": False, "errors": [{"message": "bad"}]})

        with self.assertRaises(UpstreamError):
            self.client.create_record("z1", "a.example.com", "10.0.0.1", 1, False)

    def test_undecodable_body_raises_upstream_error(self):
        response = make_response(None, status_code=502)
        response.json.side_effect = ValueError("not json")
        self.session.request.return_value = response

        with self.assertRaises(UpstreamError) as ctx:
            self.client.list_records("z1")

        self.assertEqual(ctx.exception.status_code, 502)

    def test_transport_error_raises_upstream_error(self):
        self.session.request.side_effect = requests.exceptions.ConnectionError("connection refused")

        with self.assertRaises(UpstreamError):
            self.client.find_zone_id_by_name("example.com")

    def test_zone_entry_without_id_raises_upstream_error(self):
        self.session.request.return_value = make_response({"success": True, "result": [{"name": "example.com"}]})

        with self.assertRaises(UpstreamError):
            self.client.find_zone_id_by_name("example.com")

    def test_zones_result_not_a_list_of_objects_raises_upstream_error(self):
        self.session.request.return_value = make_response({"success": True, "result": ["example.com"]})

        with self.assertRaises(UpstreamError):
            self.client.find_zone_id_by_name("example.com")

    def test_create_record_malformed_result_raises_upstream_error(self):
        self.session.request.return_value = make_response({"success": True, "result": ["x"]})

        with self.assertRaises(UpstreamError):
            self.client.create_record("z1", "a.example.com", "10.0.0.1", 1, False)

    def test_create_record_missing_id_raises_upstream_error(self):
        self.session.request.return_value = make_response({"success": True, "result": {}})

        with self.assertRaises(UpstreamError):
            self.client.create_record("z1", "a.example.com", "10.0.0.1", 1, False)

    def test_list_records_malformed_result_info_raises_upstream_error(self):
        self.session.request.return_value = make_response({"success": True, "result": [], "result_info": ["x"]})

        with self.assertRaises(UpstreamError):
            self.client.list_records("z1")

    def test_list_records_non_integer_total_pages_raises_upstream_error(self):
        self.session.request.return_value = make_response(
            {"success": True, "result": [], "result_info": {"total_pages": "2"}}
        )

        with self.assertRaises(UpstreamError):
            self.client.list_records("z1")


if __name__ == '__main__':
    unittest.main()
