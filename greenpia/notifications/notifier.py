"""
Owner Notification Client

Posts short alerts (new inquiry, new reply, form answers, reminders) to the
owner-notification webhook. Delivery is best effort: failures are logged
and reported as False, never raised to the caller.
"""

from typing import Optional

import requests

from greenpia.utils import get_logger

logger = get_logger(__name__)


class Notifier:
    """
    Client for the owner-notification webhook

    Payload: {"title": str, "content": str}
    """

    def __init__(
        self,
        webhook_url: Optional[str],
        api_key: Optional[str] = None,
        timeout: float = 10,
        max_title_length: int = 1200,
        max_body_length: int = 20000,
    ):
        """
        Initialize notifier

        Args:
            webhook_url: Endpoint receiving POSTed JSON (empty = disabled)
            api_key: Bearer token sent with every request (optional)
            timeout: Request timeout in seconds
            max_title_length: Titles are truncated to this length
            max_body_length: Bodies are truncated to this length
        """
        self.webhook_url = (webhook_url or '').rstrip('/')
        self.api_key = api_key or None
        self.timeout = timeout
        self.max_title_length = max_title_length
        self.max_body_length = max_body_length

        if not self.webhook_url:
            logger.info("Notification webhook not configured; notifications disabled")

    @classmethod
    def from_config(cls, config) -> 'Notifier':
        """Build from the `notifications` section of a loaded Config."""
        return cls(
            webhook_url=config.get('notifications.webhook_url'),
            api_key=config.get('notifications.api_key'),
            timeout=config.get('notifications.timeout_seconds', 10),
            max_title_length=config.get('notifications.max_title_length', 1200),
            max_body_length=config.get('notifications.max_body_length', 20000),
        )

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def notify(self, title: str, body: str) -> bool:
        """
        Send one notification

        Args:
            title: Short headline (required)
            body: Message text (required)

        Returns:
            True if the webhook accepted the notification
        """
        title = (title or '').strip()
        body = (body or '').strip()
        if not title or not body:
            logger.warning("Notification skipped: title and body are required")
            return False

        if not self.enabled:
            logger.debug(f"Notification not sent (webhook disabled): {title}")
            return False

        headers = {'accept': 'application/json'}
        if self.api_key:
            headers['authorization'] = f"Bearer {self.api_key}"

        try:
            response = requests.post(
                self.webhook_url,
                json={
                    'title': title[:self.max_title_length],
                    'content': body[:self.max_body_length],
                },
                headers=headers,
                timeout=self.timeout
            )

            if not response.ok:
                logger.warning(
                    f"Failed to notify owner ({response.status_code}): {response.text[:200]}"
                )
                return False

            logger.debug(f"Notification delivered: {title}")
            return True

        except requests.exceptions.RequestException as e:
            logger.warning(f"Error calling notification service: {e}")
            return False


_notifier: Optional[Notifier] = None


def get_notifier() -> Notifier:
    """Notifier singleton built from the loaded config (FastAPI dependency)."""
    global _notifier

    if _notifier is None:
        from greenpia.config import load_config
        _notifier = Notifier.from_config(load_config())

    return _notifier
