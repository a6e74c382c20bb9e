"""
Alerting for sync runs: connectivity failures, stalled runs and runs that
finish with errors. Supports Slack incoming webhooks and a generic webhook.
"""
import logging
import traceback
from typing import Dict, Any, Optional, List
from datetime import datetime, timezone

import requests

from app.core.config import settings

logger = logging.getLogger(__name__)


class AlertLevel:
    """Alert severity levels"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


SLACK_COLORS = {
    AlertLevel.INFO: "#36a64f",
    AlertLevel.WARNING: "#ff9800",
    AlertLevel.ERROR: "#f44336",
    AlertLevel.CRITICAL: "#d32f2f",
}


class AlertManager:
    """Sends alerts to the configured channels"""

    def __init__(self, config=None, http=None):
        self.config = config or settings
        self.http = http or requests
        self.enabled = self.config.alerts_enabled
        self.channels = self._load_channels()

    def _load_channels(self) -> Dict[str, bool]:
        return {
            'slack': self.config.alert_slack_enabled,
            'webhook': self.config.alert_webhook_enabled,
        }

    def send_alert(
        self,
        title: str,
        message: str,
        level: str = AlertLevel.ERROR,
        context: Optional[Dict[str, Any]] = None,
        channels: Optional[List[str]] = None
    ) -> List[str]:
        """
        Send an alert to every enabled channel.

        Args:
            title: Alert title
            message: Alert body
            level: Severity (info, warning, error, critical)
            context: Extra key/value pairs (shop_id, run_id, ...)
            channels: Restrict delivery to these channels (None = all enabled)

        Returns:
            Names of the channels the alert was delivered to
        """
        if not self.enabled:
            logger.debug(f"Alerts disabled, dropping alert: {title}")
            return []

        if channels is None:
            channels = [ch for ch, enabled in self.channels.items() if enabled]

        alert_data = {
            'title': title,
            'message': message,
            'level': level,
            'context': context or {},
            'timestamp': datetime.now(timezone.utc).isoformat()
        }

        delivered = []
        for channel in channels:
            if not self.channels.get(channel):
                continue
            try:
                if channel == 'slack':
                    self._send_slack(alert_data)
                elif channel == 'webhook':
                    self._send_webhook(alert_data)
                delivered.append(channel)
            except requests.RequestException as e:
                logger.error(
                    f"Error sending alert to {channel}: {e}",
                    exc_info=True
                )
        return delivered

    def _send_slack(self, alert_data: Dict[str, Any]):
        webhook_url = self.config.alert_slack_webhook_url
        if not webhook_url:
            logger.warning("Slack webhook URL not configured")
            return

        shown = {"Level": alert_data["level"].upper(), "Time": alert_data["timestamp"]}
        for key, value in alert_data["context"].items():
            shown[key.replace("_", " ").title()] = str(value)
        fields = [{"title": name, "value": value, "short": True} for name, value in shown.items()]

        payload = {
            "attachments": [{
                "color": SLACK_COLORS.get(alert_data["level"], SLACK_COLORS[AlertLevel.ERROR]),
                "title": alert_data['title'],
                "text": alert_data['message'],
                "fields": fields,
                "footer": "Printify-SureCart Sync",
            }]
        }

        response = self.http.post(webhook_url, json=payload, timeout=10)
        response.raise_for_status()
        logger.info("Slack alert sent successfully")

    def _send_webhook(self, alert_data: Dict[str, Any]):
        webhook_url = self.config.alert_webhook_url
        if not webhook_url:
            logger.warning("Alert webhook URL not configured")
            return

        response = self.http.post(webhook_url, json=alert_data, timeout=10)
        response.raise_for_status()
        logger.info("Webhook alert sent successfully")


alert_manager = AlertManager()


def send_task_error_alert(
    task_name: str,
    error: Exception,
    task_id: Optional[str] = None,
    shop_id: Optional[str] = None,
    retries: int = 0,
    max_retries: int = 3
):
    """Alert about a Celery task failure, critical once retries are exhausted."""
    level = AlertLevel.CRITICAL if retries >= max_retries else AlertLevel.ERROR

    message = (
        f"Error: {type(error).__name__}: {error}\n\n"
        f"Traceback:\n{traceback.format_exc()}"
    )
    context = {
        'task_name': task_name,
        'task_id': task_id,
        'shop_id': shop_id,
        'retries': f"{retries}/{max_retries}",
        'error_type': type(error).__name__
    }
    return alert_manager.send_alert(
        title=f"Task Failed: {task_name}",
        message=message,
        level=level,
        context=context
    )


def send_stalled_sync_alert(shop_id: str, run_id: str, processed: int, total: int, idle_seconds: float):
    """Alert about a sync run whose heartbeat stopped advancing."""
    return alert_manager.send_alert(
        title=f"Product sync stalled: shop {shop_id}",
        message=(
            f"No batch has completed for {idle_seconds:.0f}s "
            f"({processed}/{total} products processed)."
        ),
        level=AlertLevel.WARNING,
        context={'shop_id': shop_id, 'run_id': run_id}
    )


def send_sync_completion_alert(
    shop_id: str,
    total: int,
    created: int,
    updated: int,
    errors: int,
    duration_seconds: float
):
    """Summary of a finished sync run, sent only to the webhook channel when clean."""
    level = AlertLevel.WARNING if errors > 0 else AlertLevel.INFO
    message = (
        f"Product sync completed for shop {shop_id}\n\n"
        f"Total: {total}\nCreated: {created}\nUpdated: {updated}\n"
        f"Errors: {errors}\nDuration: {duration_seconds:.2f}s"
    )
    context = {
        'shop_id': shop_id,
        'total': total,
        'created': created,
        'updated': updated,
        'errors': errors,
        'duration_seconds': round(duration_seconds, 2)
    }
    return alert_manager.send_alert(
        title=f"Product sync completed: shop {shop_id}",
        message=message,
        level=level,
        context=context,
        channels=['webhook'] if level == AlertLevel.INFO else None
    )
