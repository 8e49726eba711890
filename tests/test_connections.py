import asyncio

import pytest

from conftest import auth
from app.services.connection_manager import ConnectionManager, parse_user_id
from app.services.stores import STATUS_ACCEPTED, STATUS_PENDING, pair_key
from app.utils.exceptions import BusinessLogicError, NotFoundError, ValidationError


class TestParseUserId:
    def test_valid(self):
        """Test numeric strings and ints are accepted as user ids"""
        assert parse_user_id("42", "addresseeId") == 42
        assert parse_user_id(7, "addresseeId") == 7

    @pytest.mark.parametrize("value,message", [
        (None, "addresseeId is required."),
        ("", "addresseeId is required."),
        ("abc", "addresseeId must be a number."),
        ("-3", "addresseeId must be a positive number."),
        (0, "addresseeId must be a positive number."),
    ])
    def test_invalid(self, value, message):
        """Test malformed ids are rejected with a message naming the field"""
        with pytest.raises(ValidationError) as exc_info:
            parse_user_id(value, "addresseeId")
        assert exc_info.value.message == message

    def test_pair_key_is_unordered(self):
        """Test both orderings of a pair share one key"""
        assert pair_key(9, 3) == pair_key(3, 9) == "3:9"


class TestConnectionManager:
    def test_self_connection_rejected(self, connection_store):
        """Test a user cannot send a request to themselves"""
        manager = ConnectionManager(connection_store)
        with pytest.raises(BusinessLogicError):
            asyncio.run(manager.send_request(1, 1))

    def test_reverse_duplicate_rejected(self, connection_store):
        """Test a request in the opposite direction counts as a duplicate"""
        manager = ConnectionManager(connection_store)
        asyncio.run(manager.send_request(1, 2))
        with pytest.raises(BusinessLogicError) as exc_info:
            asyncio.run(manager.send_request(2, 1))
        assert "status: pending" in exc_info.value.message

    def test_only_addressee_can_accept(self, connection_store):
        """Test only the addressee can accept a pending request"""
        manager = ConnectionManager(connection_store)
        asyncio.run(manager.send_request(1, 2))
        with pytest.raises(NotFoundError):
            asyncio.run(manager.accept_request(2, 1))
        connection = asyncio.run(manager.accept_request(1, 2))
        assert connection["status"] == STATUS_ACCEPTED

    def test_remove_accepted_connection(self, connection_store):
        """An accepted connection is removed by either party, not by outsiders"""
        manager = ConnectionManager(connection_store)
        row = connection_store.add(1, 2, status=STATUS_ACCEPTED)

        with pytest.raises(NotFoundError):
            asyncio.run(manager.decline_or_cancel(row["connection_id"], 3))

        asyncio.run(manager.decline_or_cancel(row["connection_id"], 1))
        assert asyncio.run(connection_store.get_active_connections(2)) == []

    def test_blank_connection_id(self, connection_store):
        """A blank connection id is rejected before the store is touched"""
        with pytest.raises(ValidationError):
            asyncio.run(ConnectionManager(connection_store).decline_or_cancel("  ", 1))


class TestConnectionsRoute:
    def test_send_request(self, client, connection_store):
        """Test sending a connection request creates a pending row"""
        response = client.post("/api/connections/request", json={"addresseeId": 2}, headers=auth(1))

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Connection request sent."
        assert body["connection"]["status"] == STATUS_PENDING
        assert body["connection"]["requester_id"] == 1
        assert len(connection_store.rows) == 1

    def test_send_request_to_self(self, client):
        """Test a self request returns 400"""
        response = client.post("/api/connections/request", json={"addresseeId": "1"}, headers=auth(1))
        assert response.status_code == 400
        assert response.json()["message"] == "Cannot connect with yourself."

    def test_duplicate_request(self, client):
        """Test a second request for the same pair returns 400"""
        client.post("/api/connections/request", json={"addresseeId": 2}, headers=auth(1))
        response = client.post("/api/connections/request", json={"addresseeId": 1}, headers=auth(2))
        assert response.status_code == 400
        assert "already exists" in response.json()["message"]

    def test_invalid_addressee(self, client):
        """Test a non-numeric addressee id returns 400"""
        response = client.post("/api/connections/request", json={"addresseeId": "abc"}, headers=auth(1))
        assert response.status_code == 400
        assert response.json()["message"] == "addresseeId must be a number."

        response = client.post("/api/connections/request", json={}, headers=auth(1))
        assert response.status_code == 400

    def test_requires_user_header(self, client):
        """Test requests without a caller id are rejected"""
        response = client.post("/api/connections/request", json={"addresseeId": 2})
        assert response.status_code == 401

    def test_pending_sent_and_accept_flow(self, client):
        """Test the full request, list and accept flow"""
        client.post("/api/connections/request", json={"addresseeId": 2}, headers=auth(1))

        pending = client.get("/api/connections/pending", headers=auth(2)).json()["pendingRequests"]
        assert [r["requester_id"] for r in pending] == [1]
        sent = client.get("/api/connections/sent", headers=auth(1)).json()["sentRequests"]
        assert [r["addressee_id"] for r in sent] == [2]

        response = client.post("/api/connections/accept", json={"requesterId": 1}, headers=auth(2))
        assert response.status_code == 200
        assert response.json()["connection"]["status"] == STATUS_ACCEPTED

        assert client.get("/api/connections/active", headers=auth(1)).json()["activeConnections"] == [2]
        assert client.get("/api/connections/active", headers=auth(2)).json()["activeConnections"] == [1]
        assert client.get("/api/connections/pending", headers=auth(2)).json()["pendingRequests"] == []

    def test_accept_missing_request(self, client):
        """Test accepting a request that does not exist"""
        response = client.post("/api/connections/accept", json={"requesterId": 5}, headers=auth(2))
        assert response.status_code == 404

    def test_requester_cannot_accept_own_request(self, client):
        """Test the requester cannot accept their own request"""
        client.post("/api/connections/request", json={"addresseeId": 2}, headers=auth(1))
        response = client.post("/api/connections/accept", json={"requesterId": 2}, headers=auth(1))
        assert response.status_code == 404

    def test_decline_and_cancel(self, client, connection_store):
        """Test declining an incoming request and cancelling a sent one"""
        declined = connection_store.add(3, 1)
        cancelled = connection_store.add(1, 4)

        response = client.delete(f"/api/connections/{declined['connection_id']}", headers=auth(1))
        assert response.status_code == 200
        assert response.json()["message"] == "Connection request declined/cancelled successfully."

        assert client.delete(f"/api/connections/{cancelled['connection_id']}", headers=auth(1)).status_code == 200
        assert connection_store.rows == []

    def test_decline_by_outsider_or_twice(self, client, connection_store):
        """Test outsiders and repeat deletes get 404"""
        row = connection_store.add(3, 1)
        assert client.delete(f"/api/connections/{row['connection_id']}", headers=auth(9)).status_code == 404

        assert client.delete(f"/api/connections/{row['connection_id']}", headers=auth(3)).status_code == 200
        assert client.delete(f"/api/connections/{row['connection_id']}", headers=auth(3)).status_code == 404

    def test_leave_accepted_connection(self, client, connection_store):
        """Either side can remove an accepted connection"""
        row = connection_store.add(1, 2, status=STATUS_ACCEPTED)

        response = client.delete(f"/api/connections/{row['connection_id']}", headers=auth(2))

        assert response.status_code == 200
        assert connection_store.rows == []
        assert client.get("/api/connections/active", headers=auth(1)).json()["activeConnections"] == []
