import unittest
import sys
import os
from unittest import mock
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

import requests
from google.auth.exceptions import RefreshError

from assistant_client.auth import CredentialsTokenProvider, OAuthTokenProvider
from assistant_client.callback_server import OAuthCallbackListener
from assistant_client.errors import AuthError


def make_flow(url="https://accounts.example/o/oauth2/auth?client_id=abc"):
    flow = mock.Mock()
    flow.authorization_url.return_value = (url, "state-123")
    flow.credentials = mock.Mock(valid=True, refresh_token="refresh-me")
    return flow


class TestOAuthCallbackListener(unittest.TestCase):
    def setUp(self):
        self.codes = []
        self.failure = None
        self.listener = OAuthCallbackListener(self.on_code, host="127.0.0.1", port=0)
        self.listener.start()

    def tearDown(self):
        self.listener.shutdown()

    def on_code(self, code):
        if self.failure is not None:
            raise self.failure
        self.codes.append(code)

    def test_code_received(self):
        response = requests.get(self.listener.redirect_uri, params={"code": "4/abc"}, timeout=5)
        self.assertEqual(response.status_code, 200)
        self.assertIn("Authentication Successful", response.text)
        self.assertEqual(self.codes, ["4/abc"])

    def test_missing_code(self):
        response = requests.get(self.listener.redirect_uri, timeout=5)
        self.assertEqual(response.status_code, 400)
        self.assertIn("No authorization code received", response.text)
        self.assertEqual(self.codes, [])

    def test_access_denied(self):
        response = requests.get(self.listener.redirect_uri, params={"error": "<access_denied>"}, timeout=5)
        self.assertEqual(response.status_code, 400)
        self.assertIn("&lt;access_denied&gt;", response.text)

    def test_exchange_failure(self):
        self.failure = AuthError("invalid_grant")
        response = requests.get(self.listener.redirect_uri, params={"code": "stale"}, timeout=5)
        self.assertEqual(response.status_code, 500)
        self.assertIn("invalid_grant", response.text)

    def test_shutdown(self):
        self.assertTrue(self.listener.running)
        self.assertNotEqual(self.listener.port, 0)
        self.listener.shutdown()
        self.listener.shutdown()
        self.assertFalse(self.listener.running)

    def test_two_listeners_side_by_side(self):
        other_codes = []
        other = OAuthCallbackListener(other_codes.append, host="127.0.0.1", port=0)
        other.start()
        try:
            requests.get(other.redirect_uri, params={"code": "second"}, timeout=5)
            requests.get(self.listener.redirect_uri, params={"code": "first"}, timeout=5)
        finally:
            other.shutdown()
        self.assertEqual(other_codes, ["second"])
        self.assertEqual(self.codes, ["first"])


class TestOAuthTokenProvider(unittest.TestCase):
    def test_auth_url(self):
        flow = make_flow()
        provider = OAuthTokenProvider(flow, callback_port=8765, start_listener=False)
        self.assertEqual(provider.auth_url(), "https://accounts.example/o/oauth2/auth?client_id=abc")
        self.assertEqual(flow.redirect_uri, "http://localhost:8765/")
        flow.authorization_url.assert_called_once_with(access_type="offline", prompt="consent")
        with self.assertRaises(AuthError):
            provider.current_token()

    def test_exchange(self):
        flow = make_flow()
        received = []
        provider = OAuthTokenProvider(flow, on_token=received.append, start_listener=False)

        credentials = provider.exchange("4/abc")
        flow.fetch_token.assert_called_once_with(code="4/abc")
        self.assertIs(credentials, flow.credentials)
        self.assertEqual(received, [flow.credentials])
        self.assertEqual(provider.auth_url(), "")
        self.assertTrue(provider.wait_for_token(0))
        self.assertIs(provider.current_token(), flow.credentials)
        self.assertIsNone(provider.last_error())

    def test_exchange_failure(self):
        flow = make_flow()
        flow.fetch_token.side_effect = ValueError("invalid_grant")
        provider = OAuthTokenProvider(flow, start_listener=False)

        with self.assertRaises(AuthError):
            provider.exchange("stale")
        self.assertIsInstance(provider.last_error(), AuthError)
        self.assertFalse(provider.wait_for_token(0))
        self.assertNotEqual(provider.auth_url(), "")

    def test_empty_code(self):
        provider = OAuthTokenProvider(make_flow(), start_listener=False)
        with self.assertRaises(AuthError):
            provider.exchange("")

    def test_token_callback_failure_is_logged(self):
        def broken(_):
            raise IOError("disk full")

        flow = make_flow()
        provider = OAuthTokenProvider(flow, on_token=broken, start_listener=False)
        self.assertIs(provider.exchange("code"), flow.credentials)

    def test_usable_credentials_skip_the_flow(self):
        flow = make_flow()
        credentials = mock.Mock(valid=True)
        provider = OAuthTokenProvider(flow, credentials=credentials)
        self.assertIsNone(provider.listener)
        self.assertEqual(provider.auth_url(), "")
        flow.authorization_url.assert_not_called()
        self.assertIs(provider.current_token(), credentials)

    def test_browser_round_trip(self):
        flow = make_flow()
        provider = OAuthTokenProvider(flow, callback_host="127.0.0.1", callback_port=0)
        try:
            self.assertTrue(flow.redirect_uri.startswith("http://127.0.0.1:"))
            response = requests.get(flow.redirect_uri, params={"code": "4/xyz"}, timeout=5)
            self.assertEqual(response.status_code, 200)
            self.assertTrue(provider.wait_for_token(5))
            flow.fetch_token.assert_called_once_with(code="4/xyz")
        finally:
            provider.close()
        self.assertIsNone(provider.listener)

    def test_port_in_use(self):
        busy = OAuthCallbackListener(lambda code: None, host="127.0.0.1", port=0)
        busy.start()
        try:
            provider = OAuthTokenProvider(make_flow(), callback_host="127.0.0.1", callback_port=busy.port)
            self.assertIsInstance(provider.last_error(), AuthError)
            self.assertIsNone(provider.listener)
        finally:
            busy.shutdown()


class TestCredentialsTokenProvider(unittest.TestCase):
    def test_valid(self):
        credentials = mock.Mock(valid=True)
        provider = CredentialsTokenProvider(credentials)
        self.assertEqual(provider.auth_url(), "")
        self.assertIs(provider.current_token(), credentials)
        credentials.refresh.assert_not_called()
        with self.assertRaises(AuthError):
            provider.exchange("code")

    def test_expired_is_refreshed(self):
        credentials = mock.Mock(valid=False, refresh_token="r")
        provider = CredentialsTokenProvider(credentials)
        self.assertIs(provider.current_token(), credentials)
        credentials.refresh.assert_called_once()

    def test_refresh_failure(self):
        credentials = mock.Mock(valid=False, refresh_token="r")
        credentials.refresh.side_effect = RefreshError("invalid_grant")
        provider = CredentialsTokenProvider(credentials)
        with self.assertRaises(AuthError):
            provider.current_token()
        self.assertIsInstance(provider.last_error(), AuthError)

    def test_no_refresh_token(self):
        provider = CredentialsTokenProvider(mock.Mock(valid=False, refresh_token=None))
        with self.assertRaises(AuthError):
            provider.current_token()


if __name__ == "__main__":
    unittest.main()
