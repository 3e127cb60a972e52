"""Tests for notifier module."""

import json
from unittest.mock import Mock, patch

import httpx
import pytest

from crashfeishu.errors import NotifyError
from crashfeishu.notifier import FeishuNotifier

WEBHOOK = "https://open.feishu.cn/open-apis/bot/v2/hook/abc123"


class TestFeishuNotifierCreation:
    """Test FeishuNotifier creation."""

    def test_create_notifier(self):
        """Can create FeishuNotifier."""
        notifier = FeishuNotifier(WEBHOOK)
        assert notifier.webhook == WEBHOOK
        assert notifier.timeout is None
        assert notifier.http_client is None

    def test_custom_timeout(self):
        """Can configure a request timeout."""
        notifier = FeishuNotifier(WEBHOOK, timeout=5.0)
        assert notifier.timeout == 5.0


class TestContextManager:
    """Test http client lifecycle."""

    def test_creates_and_closes_client(self):
        """Owned client is created on enter and closed on exit."""
        with patch("crashfeishu.notifier.httpx.Client") as client_class:
            with FeishuNotifier(WEBHOOK, timeout=3.0) as notifier:
                assert notifier.http_client is client_class.return_value
            client_class.assert_called_once_with(timeout=3.0)
            client_class.return_value.close.assert_called_once()
        assert notifier.http_client is None

    def test_injected_client_not_closed(self):
        """Injected client is left open."""
        http_client = Mock()
        with FeishuNotifier(WEBHOOK, http_client=http_client) as notifier:
            assert notifier.http_client is http_client
        http_client.close.assert_not_called()


class TestNotify:
    """Test sending alerts."""

    def test_notify_posts_text_message(self):
        """Posts a Feishu text message to the webhook."""
        http_client = Mock()
        http_client.post.return_value = httpx.Response(
            200, json={"code": 0, "msg": "success", "data": {}}
        )
        notifier = FeishuNotifier(WEBHOOK, http_client=http_client)

        notifier.notify("Process p in group g exited unexpectedly")

        http_client.post.assert_called_once_with(
            WEBHOOK,
            json={
                "msg_type": "text",
                "content": {"text": "Process p in group g exited unexpectedly"},
            },
            headers={"Content-Type": "application/json"},
        )

    def test_notify_escapes_message(self):
        """Quotes and newlines reach the webhook as valid JSON."""
        requests = []

        def handler(request):
            requests.append(json.loads(request.content))
            return httpx.Response(200, json={"code": 0})

        http_client = httpx.Client(transport=httpx.MockTransport(handler))
        notifier = FeishuNotifier(WEBHOOK, http_client=http_client)

        notifier.notify('say "hi"\nbye')

        assert requests == [{"msg_type": "text", "content": {"text": 'say "hi"\nbye'}}]

    def test_notify_http_error_status(self):
        """Non 2xx status raises NotifyError with status and body."""
        http_client = Mock()
        http_client.post.return_value = httpx.Response(500, text="internal error")
        notifier = FeishuNotifier(WEBHOOK, http_client=http_client)

        with pytest.raises(NotifyError, match="500 internal error"):
            notifier.notify("msg")

    def test_notify_feishu_error_code(self):
        """Feishu error code in a 200 body raises NotifyError."""
        http_client = Mock()
        http_client.post.return_value = httpx.Response(
            200, json={"code": 19021, "msg": "sign match fail"}
        )
        notifier = FeishuNotifier(WEBHOOK, http_client=http_client)

        with pytest.raises(NotifyError, match="19021"):
            notifier.notify("msg")

    def test_notify_legacy_status_code(self):
        """Legacy StatusCode field is checked too."""
        http_client = Mock()
        http_client.post.return_value = httpx.Response(
            200, json={"StatusCode": 9499, "StatusMessage": "Bad Request"}
        )
        notifier = FeishuNotifier(WEBHOOK, http_client=http_client)

        with pytest.raises(NotifyError, match="9499"):
            notifier.notify("msg")

    def test_notify_non_json_success(self):
        """Plain text 2xx body counts as success."""
        http_client = Mock()
        http_client.post.return_value = httpx.Response(200, text="ok")
        notifier = FeishuNotifier(WEBHOOK, http_client=http_client)

        notifier.notify("msg")

    def test_notify_transport_error(self):
        """Transport failure is wrapped in NotifyError."""
        http_client = Mock()
        http_client.post.side_effect = httpx.ConnectError("connection refused")
        notifier = FeishuNotifier(WEBHOOK, http_client=http_client)

        with pytest.raises(NotifyError, match="Failed to send") as exc_info:
            notifier.notify("msg")
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_notify_without_client(self):
        """Notifying outside the context manager raises NotifyError."""
        notifier = FeishuNotifier(WEBHOOK)

        with pytest.raises(NotifyError, match="not initialized"):
            notifier.notify("msg")
