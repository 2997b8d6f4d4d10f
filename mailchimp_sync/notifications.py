#!/usr/bin/env python3
"""
notifications.py

Teams notifications for list sync runs. Warnings and errors raised during a
run are collected into a session and posted as one MessageCard at the end;
without a webhook the summary is printed to the console instead.
"""

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

import requests

logger = logging.getLogger(__name__)


class NotificationLevel(Enum):
    """Notification severity levels"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class TeamsNotifier:
    """Collects sync events and posts them to a Teams webhook"""

    def __init__(self, webhook_url: str, fallback_to_console: bool = True):
        self.webhook_url = webhook_url
        self.fallback_to_console = fallback_to_console
        self.session_warnings = []
        self.session_errors = []
        self.session_info = []

    def _entry(self, message: str, details: Optional[Dict]) -> Dict:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "message": message,
            "details": details or {}
        }

    def add_warning(self, message: str, details: Optional[Dict] = None):
        self.session_warnings.append(self._entry(message, details))

    def add_error(self, message: str, details: Optional[Dict] = None):
        self.session_errors.append(self._entry(message, details))

    def add_info(self, message: str, details: Optional[Dict] = None):
        self.session_info.append(self._entry(message, details))

    def should_send_notification(self) -> bool:
        """Only runs with warnings or errors are worth a message"""
        return len(self.session_warnings) > 0 or len(self.session_errors) > 0

    def get_notification_level(self) -> NotificationLevel:
        if self.session_errors:
            return NotificationLevel.ERROR
        elif self.session_warnings:
            return NotificationLevel.WARNING
        return NotificationLevel.INFO

    def build_card(self, title: str) -> Dict:
        """Teams MessageCard for the current session"""
        level = self.get_notification_level()
        sections = []

        for heading, entries in (("❌ Errors", self.session_errors), ("⚠️ Warnings", self.session_warnings)):
            if not entries:
                continue
            text = ""
            for i, entry in enumerate(entries[-5:], 1):  # last 5 only
                text += f"**{i}.** {entry['message']}\n"
                if entry['details']:
                    text += f"   *Details:* {json.dumps(entry['details'], default=str)}\n"
                text += f"   *Time:* {entry['timestamp']}\n\n"
            sections.append({
                "activityTitle": heading,
                "text": text[:1000] + ("..." if len(text) > 1000 else "")
            })

        if not self.session_errors and not self.session_warnings and self.session_info:
            sections.append({
                "activityTitle": "✅ Operations",
                "text": "\n".join(f"✅ {info['message']}" for info in self.session_info[-3:])
            })

        return {
            "@type": "MessageCard",
            "@context": "http://schema.org/extensions",
            "themeColor": self._get_theme_color(level),
            "summary": title,
            "sections": [
                {
                    "activityTitle": title,
                    "facts": [
                        {"name": "Timestamp", "value": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")},
                        {"name": "Severity", "value": level.value.upper()},
                        {"name": "Errors", "value": str(len(self.session_errors))},
                        {"name": "Warnings", "value": str(len(self.session_warnings))}
                    ]
                }
            ] + sections
        }

    def send_notification(self, title: str = "Mailchimp List Sync", force_send: bool = False) -> bool:
        """Post the session to Teams; returns False when delivery failed"""
        if not force_send and not self.should_send_notification():
            logger.info("No issues to report - skipping notification")
            return True

        level = self.get_notification_level()
        if not self.webhook_url:
            if self.fallback_to_console:
                self._fallback_to_console(title, level)
            return False

        try:
            response = requests.post(
                self.webhook_url,
                headers={"Content-Type": "application/json"},
                json=self.build_card(title),
                timeout=30
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"❌ Error sending Teams notification: {e}")
            if self.fallback_to_console:
                self._fallback_to_console(title, level)
            return False

        if response.status_code in [200, 202]:  # Teams often returns 202
            logger.info(f"✅ Teams notification sent ({level.value.upper()})")
            return True

        logger.error(f"❌ Teams notification failed: {response.status_code} - {response.text}")
        if self.fallback_to_console:
            self._fallback_to_console(title, level)
        return False

    def _fallback_to_console(self, title: str, level: NotificationLevel):
        print(f"\n{'='*60}")
        print(f"📨 NOTIFICATION - {level.value.upper()}")
        print(f"📋 {title}")
        print(f"{'='*60}")
        for label, entries in (("❌ ERRORS", self.session_errors), ("⚠️ WARNINGS", self.session_warnings)):
            if entries:
                print(f"\n{label} ({len(entries)}):")
                for entry in entries:
                    print(f"  • {entry['message']}")
        print(f"{'='*60}\n")

    def _get_theme_color(self, level: NotificationLevel) -> str:
        return {
            NotificationLevel.INFO: "0078D4",
            NotificationLevel.WARNING: "FF8C00",
            NotificationLevel.ERROR: "D13438",
        }[level]

    def clear_session(self):
        self.session_warnings = []
        self.session_errors = []
        self.session_info = []


# Module-level notifier used by the convenience helpers below
_notifier: Optional[TeamsNotifier] = None


def initialize_notifier(webhook_url: str) -> TeamsNotifier:
    global _notifier
    _notifier = TeamsNotifier(webhook_url)
    return _notifier


def notify_warning(message: str, details: Optional[Dict] = None):
    logger.warning(message)  # always log locally
    if _notifier:
        _notifier.add_warning(message, details)


def notify_error(message: str, details: Optional[Dict] = None):
    logger.error(message)
    if _notifier:
        _notifier.add_error(message, details)


def notify_info(message: str, details: Optional[Dict] = None):
    logger.info(message)
    if _notifier:
        _notifier.add_info(message, details)


def send_final_notification(title: str = "Mailchimp List Sync") -> bool:
    """Send the collected session if anything worth reporting happened"""
    if _notifier:
        return _notifier.send_notification(title)
    return False


def reset_session():
    if _notifier:
        _notifier.clear_session()
