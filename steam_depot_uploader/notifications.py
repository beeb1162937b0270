"""Notification service for sending upload results to Slack and Discord.

Webhooks are configured via environment variables (SLACK_WEBHOOK_URL and
DISCORD_WEBHOOK_URL). When neither is set, notifications are skipped.
"""

import os
import requests
from typing import Any, Dict, List, Optional
from datetime import datetime

from .models import UploadResult


class NotificationService:
    """Send upload results to Slack and Discord webhooks."""

    def __init__(self, slack_webhook: Optional[str] = None, discord_webhook: Optional[str] = None):
        """Initialize notification service.

        Args:
            slack_webhook: Slack webhook URL, defaults to SLACK_WEBHOOK_URL
            discord_webhook: Discord webhook URL, defaults to DISCORD_WEBHOOK_URL
        """
        # Load webhook URLs from environment, default to empty string and strip whitespace
        self.slack_webhook = (slack_webhook or os.environ.get("SLACK_WEBHOOK_URL", "") or "").strip()
        self.discord_webhook = (discord_webhook or os.environ.get("DISCORD_WEBHOOK_URL", "") or "").strip()

    @property
    def enabled(self) -> bool:
        return bool(self.slack_webhook or self.discord_webhook)

    def send_upload_notification(self, result: UploadResult, project: Optional[str] = None) -> None:
        """Send the upload result to every configured service.

        Webhook failures are printed and never raised.

        Args:
            result: The finished upload attempt
            project: Optional project name for the message title
        """
        if not self.enabled:
            return

        print(f"Sending upload notification for app {result.app_id}")

        if self.discord_webhook:
            self._post(self.discord_webhook, self._discord_message(result, project), "Discord")

        if self.slack_webhook:
            self._post(self.slack_webhook, self._slack_message(result, project), "Slack")

    def _title(self, result: UploadResult, project: Optional[str]) -> str:
        status = "Succeeded" if result.success else "Failed"
        return f"Steam Upload {status}: {project or 'App ' + result.app_id}"

    def _fields(self, result: UploadResult) -> List[Dict[str, Any]]:
        """Result details as (name, value, short) field dicts."""
        fields = [
            {'name': 'App ID', 'value': result.app_id or 'N/A', 'short': True},
            {'name': 'Depot ID', 'value': result.depot_id or 'N/A', 'short': True},
            {'name': 'Exit Code', 'value': str(result.exit_code), 'short': True},
            {'name': 'Build ID', 'value': result.build_id or 'Not found', 'short': True},
        ]
        if result.upload_id:
            fields.append({'name': 'Upload ID', 'value': result.upload_id, 'short': True})
        if result.partner_url:
            fields.append({'name': 'Build Details', 'value': result.partner_url, 'short': False})
        if result.auth_code_rejected:
            fields.append({
                'name': 'Error',
                'value': 'Invalid or missing two-factor authentication code',
                'short': False
            })
        return fields

    def _discord_message(self, result: UploadResult, project: Optional[str]) -> Dict[str, Any]:
        """Build a Discord rich embed; green for success, red for failure."""
        title = self._title(result, project)
        return {
            'content': title,
            'embeds': [
                {
                    'title': title,
                    'color': 3381519 if result.success else 13632211,  # 0x33A64F : 0xD32F2F
                    'fields': [
                        {'name': f['name'], 'value': f['value'], 'inline': f['short']}
                        for f in self._fields(result)
                    ],
                    'timestamp': result.timestamp.isoformat()
                }
            ]
        }

    def _slack_message(self, result: UploadResult, project: Optional[str]) -> Dict[str, Any]:
        """Build a Slack attachment; green for success, red for failure."""
        return {
            'attachments': [
                {
                    'color': '#36a64f' if result.success else '#d32f2f',
                    'title': self._title(result, project),
                    'fields': [
                        {'title': f['name'], 'value': f['value'], 'short': f['short']}
                        for f in self._fields(result)
                    ],
                    'ts': int(datetime.now().timestamp())
                }
            ]
        }

    def _post(self, url: str, message: Dict[str, Any], service: str) -> None:
        try:
            # Send webhook request with 10 second timeout
            response = requests.post(url, json=message, timeout=10)
            if response.status_code >= 400:
                print(f"{service} webhook error: {response.status_code} - {response.text}")
            else:
                print(f"{service} notification sent successfully")
        except requests.exceptions.RequestException as e:
            print(f"Error sending {service} notification: {str(e)}")
