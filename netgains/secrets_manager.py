import json
import logging
import os
from typing import Any, Dict, Optional

import boto3
from cachetools import TTLCache

logger = logging.getLogger(__name__)


class SecretsManager:
    """
    Reads credentials from AWS Secrets Manager.

    Values are cached for five minutes so rotated secrets are eventually
    picked up without hitting the API on every settings access. When a fresh
    fetch fails the last known value is served instead.
    """

    def __init__(self, region_name: Optional[str] = None, ttl: int = 300):
        self.region_name = region_name or os.environ.get("AWS_REGION", "us-east-1")
        self._client = None
        self._cache: TTLCache = TTLCache(maxsize=64, ttl=ttl)
        self._last_known: Dict[str, str] = {}

    @property
    def client(self):
        """Lazy-loaded Secrets Manager client"""
        if self._client is None:
            session = boto3.session.Session()
            self._client = session.client(
                service_name="secretsmanager",
                region_name=self.region_name
            )
        return self._client

    def clear_cache(self):
        logger.info("Clearing secrets cache")
        self._cache.clear()

    def get_secret(self, secret_id: str) -> str:
        if secret_id in self._cache:
            logger.debug(f"Returning cached secret for {secret_id}")
            return self._cache[secret_id]

        logger.info(f"Fetching fresh secret for {secret_id}")
        try:
            response = self.client.get_secret_value(SecretId=secret_id)
        except Exception as e:
            if secret_id in self._last_known:
                logger.warning(f"Fresh secret fetch failed for {secret_id}, using stale value: {e}")
                return self._last_known[secret_id]
            logger.error(f"Failed to get secret {secret_id}: {e}")
            raise

        value = response.get("SecretString") or response.get("SecretBinary")
        self._cache[secret_id] = value
        self._last_known[secret_id] = value
        return value

    def get_json_secret(self, secret_id: str) -> Dict[str, Any]:
        return json.loads(self.get_secret(secret_id))

    def get_db_credentials(self) -> Dict[str, str]:
        """
        RDS-managed secret holding username, password, host, port and dbname.
        """
        return self.get_json_secret(os.environ.get("DATABASE_SECRETS_NAME", "netgains/rds"))
