import pytest
import requests

from storefront.services.backend import BackendClient, BackendError


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self.content = b"" if payload is None and not text else b"x"

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class RecordingSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        if self.error:
            raise self.error
        return self.response

    def close(self):
        pass


def make_client(session, token=None):
    client = BackendClient("https://shop.supabase.co/rest/v1/", "anon-key", http_session=session, timeout=5)
    return client.with_token(token) if token else client


def test_rpc_posts_params_with_api_key():
    session = RecordingSession(FakeResponse(payload=[{"id": "o1", "order_number": "ORD-1"}]))

    rows = make_client(session).rpc("create_order", {"p_total": 97.0})

    method, url, kwargs = session.requests[0]
    assert (method, url) == ("POST", "https://shop.supabase.co/rest/v1/rpc/create_order")
    assert kwargs["json"] == {"p_total": 97.0}
    assert kwargs["headers"]["apikey"] == "anon-key"
    assert kwargs["headers"]["Authorization"] == "Bearer anon-key"
    assert kwargs["timeout"] == 5
    assert rows == [{"id": "o1", "order_number": "ORD-1"}]


def test_void_rpc_returns_none():
    session = RecordingSession(FakeResponse(status_code=204))
    assert make_client(session).rpc("increment_coupon_usage", {"p_coupon_code": "PROMO10"}) is None


def test_user_token_replaces_anon_bearer():
    session = RecordingSession(FakeResponse(payload=[]))

    make_client(session, token="user-jwt").select("orders", filters={"status": "eq.pending"}, order="created_at.desc")

    method, url, kwargs = session.requests[0]
    assert method == "GET"
    assert url == "https://shop.supabase.co/rest/v1/orders"
    assert kwargs["params"] == {"select": "*", "status": "eq.pending", "order": "created_at.desc"}
    assert kwargs["headers"]["Authorization"] == "Bearer user-jwt"


def test_update_asks_for_changed_rows():
    session = RecordingSession(FakeResponse(payload=[{"id": "p1", "stock": 4}]))

    rows = make_client(session).update("products", {"stock": 4}, {"id": "eq.p1", "stock": "eq.5"})

    method, _, kwargs = session.requests[0]
    assert method == "PATCH"
    assert kwargs["headers"]["Prefer"] == "return=representation"
    assert rows == [{"id": "p1", "stock": 4}]


def test_update_without_filters_is_refused():
    session = RecordingSession(FakeResponse(payload=[]))
    with pytest.raises(ValueError):
        make_client(session).update("products", {"stock": 0}, {})
    assert session.requests == []


def test_error_status_carries_server_message():
    session = RecordingSession(FakeResponse(status_code=400, payload={"message": "Stock insuffisant"}))

    with pytest.raises(BackendError) as exc:
        make_client(session).rpc("create_order_item", {})

    assert exc.value.message == "Stock insuffisant"
    assert exc.value.status_code == 400


def test_transport_error_becomes_backend_error():
    session = RecordingSession(error=requests.ConnectionError("connection refused"))

    with pytest.raises(BackendError) as exc:
        make_client(session).rpc("validate_coupon", {})

    assert exc.value.status_code is None


def test_unreadable_body_is_an_error():
    session = RecordingSession(FakeResponse(text="<html>gateway</html>"))

    with pytest.raises(BackendError):
        make_client(session).select("products")
