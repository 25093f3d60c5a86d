#!/usr/bin/env python3
"""Token-based push notifications through an HTTP push gateway"""

import logging
import requests
from typing import Optional, Dict
from collections import Counter
from apps.core.config import settings

logger = logging.getLogger(__name__)

INVALID_TOKEN_STATUSES = {404, 410}


class PushNotificationError(Exception):
    """Push gateway rejected or failed a message"""
    pass


class PushNotifier:
    """Sends one notification per device token.

    Without a configured gateway URL the notifier is disabled and every call
    is skipped with a warning.
    """

    def __init__(self, gateway_url: Optional[str] = None, api_key: Optional[str] = None, timeout: Optional[int] = None):
        self.gateway_url = gateway_url if gateway_url is not None else settings.push_gateway_url
        self.api_key = api_key if api_key is not None else settings.push_gateway_key
        self.timeout = timeout or settings.push_timeout_s
        self.stats = Counter()

    @property
    def enabled(self) -> bool:
        return bool(self.gateway_url)

    def notify(self, token: str, title: str, body: str, data: Optional[Dict[str, str]] = None) -> bool:
        """Send a notification; returns False when skipped, raises on gateway failure"""
        if not self.enabled:
            logger.warning("Push gateway not configured, skipping notification")
            self.stats["skipped"] += 1
            return False

        message = {
            "token": token,
            "notification": {"title": title, "body": body},
            "data": data or {},
            "android": {"priority": "high", "notification": {"channel_id": "feed_updates"}},
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = requests.post(self.gateway_url, json=message, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            self.stats["error"] += 1
            raise PushNotificationError(f"Push request failed: {e}") from e

        if response.status_code in INVALID_TOKEN_STATUSES:
            self.stats["invalid_token"] += 1
            raise PushNotificationError(f"Invalid push token (HTTP {response.status_code})")
        if response.status_code >= 400:
            self.stats["error"] += 1
            raise PushNotificationError(f"Push gateway error: HTTP {response.status_code}")

        self.stats["sent"] += 1
        return True

    def send_feed_notification(self, token: str, friend_name: str, movie_title: str, activity_id: int) -> bool:
        """Notification shown when a friend ranks a movie"""
        return self.notify(
            token,
            title=f"{friend_name} ranked a new movie",
            body=f'{friend_name} just ranked "{movie_title}"',
            data={
                "type": "feed_activity",
                "activityId": str(activity_id),
                "friendName": friend_name,
                "movieTitle": movie_title,
            },
        )


# Global instance
_notifier = None


def get_push_notifier() -> PushNotifier:
    """Get global push notifier"""
    global _notifier
    if _notifier is None:
        _notifier = PushNotifier()
    return _notifier
