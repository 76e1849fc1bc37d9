import requests
from typing import Optional
from app.config.settings import settings
from app.config.logging import logger

class DiscordWebhookClient:
    """推播判斷結果到 Discord Webhook"""

    USERNAME = "Trade Journal Bot"
    MAX_LENGTH = 2000  # Discord 單則訊息上限

    def __init__(self, webhook_url: Optional[str] = None):
        self.webhook_url = webhook_url or (settings.DISCORD_WEBHOOK_URL if settings else None)

    def send_message(self, message: str) -> bool:
        if not self.webhook_url:
            logger.warning("DISCORD_WEBHOOK_URL is not set. Skipping message.")
            return False

        payload = {"content": message[:self.MAX_LENGTH], "username": self.USERNAME}

        # Retry logic: Try once, if fail, try again.
        max_retries = 2
        for attempt in range(1, max_retries + 1):
            try:
                response = requests.post(self.webhook_url, json=payload, timeout=10)
                response.raise_for_status()
                logger.info("Discord message sent successfully.")
                return True
            except requests.exceptions.RequestException as e:
                error_msg = str(e)
                if isinstance(e, requests.exceptions.HTTPError):
                    error_msg = f"{e} Response: {e.response.text}"

                logger.warning(f"Failed to send Discord message (Attempt {attempt}/{max_retries}): {error_msg}")
                if attempt == max_retries:
                    logger.error("All retry attempts failed for Discord webhook.")
        return False
