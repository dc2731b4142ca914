import pytest
from starlette.websockets import WebSocketDisconnect

WS_URL = "/api/v1/ws/activity"


def test_saved_activity_is_pushed_to_the_owner(client, token, auth_headers):
    with client.websocket_connect(f"{WS_URL}?token={token}") as websocket:
        response = client.post(
            "/api/v1/activities",
            json={"type": "website", "domain": "github.com", "startTime": "2025-03-10T09:00:00Z", "duration": 20},
            headers=auth_headers,
        )
        message = websocket.receive_json()

    assert message["event"] == "activityUpdate"
    assert message["data"]["id"] == response.json()["id"]
    assert message["data"]["duration"] == 20


def test_connection_without_valid_token_is_refused(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"{WS_URL}?token=bogus") as websocket:
            websocket.receive_text()
