"""
Redis-backed campaign state store.

Holds one JSON record per campaign under ``campaign:<key>`` and a list used
as the analytics work queue. No business logic lives here.

Writes are unconditional SETs: two concurrent requests for the same key can
both load the same snapshot and the later save wins, dropping the other
request's quota increment. Quotas are advisory traffic shaping, so this is
accepted in exchange for lock-free request handling. A stronger guarantee
would need a WATCH/MULTI conditional write with retry-on-conflict here,
leaving the dispatch engine untouched.
"""

import ssl
from typing import Optional

import redis.asyncio as redis
import structlog
from pydantic import ValidationError
from redis.exceptions import RedisError

from ..config import RedirectorSettings
from ..errors import PersistenceFailure
from .schemas import AnalyticsEvent, Campaign

logger = structlog.get_logger()


class CampaignStore:
    """
    Campaign record and analytics queue access over a pooled Redis client.

    Usage:
        async with CampaignStore.from_settings(settings) as store:
            campaign = await store.load("spring-sale")
    """

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        key_prefix: str = "campaign:",
        analytics_queue: str = "tasks",
    ):
        """
        Initialize the store.

        Args:
            client: An existing Redis client (connect() builds one otherwise)
            key_prefix: Prefix prepended to campaign keys
            analytics_queue: List key used as the analytics work queue
        """
        self.key_prefix = key_prefix
        self.analytics_queue = analytics_queue
        self._client = client
        self._client_options: dict = {}
        self._url_for_logs = ""

    @classmethod
    def from_settings(cls, settings: RedirectorSettings) -> "CampaignStore":
        """Create an unconnected store configured from settings."""
        store = cls(
            key_prefix=settings.campaign_key_prefix,
            analytics_queue=settings.analytics_queue,
        )
        options = {
            "host": settings.redis_host,
            "port": settings.redis_port,
            "db": settings.redis_db,
            "password": settings.redis_password or None,
            "decode_responses": True,
        }
        if settings.redis_tls:
            options["ssl"] = True
            options["ssl_min_version"] = ssl.TLSVersion.TLSv1_2
        store._client_options = options
        store._url_for_logs = settings.redis_url
        return store

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        if self._client is None:
            raise RuntimeError("CampaignStore not connected. Call connect() first.")
        return self._client

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> "CampaignStore":
        """
        Open the connection pool and check the server answers.

        Returns:
            Self for chaining
        """
        if self._client is None:
            self._client = redis.Redis(**self._client_options)

        await self._client.ping()
        logger.info("campaign_store.connected", url=self._url_for_logs)

        return self

    async def disconnect(self) -> None:
        """Close the client and release pooled connections."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("campaign_store.disconnected")

    async def __aenter__(self) -> "CampaignStore":
        return await self.connect()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    def record_key(self, campaign_key: str) -> str:
        return f"{self.key_prefix}{campaign_key}"

    # -------------------------------------------------------------------------
    # Campaign records
    # -------------------------------------------------------------------------

    async def load(self, key: str) -> Optional[Campaign]:
        """
        Fetch and decode a campaign record.

        Args:
            key: Campaign lookup key (without prefix)

        Returns:
            The campaign, or None when the key is absent. Store errors and
            undecodable records are logged and also reported as None; the
            request is not retried.
        """
        record_key = self.record_key(key)
        try:
            raw = await self.client.get(record_key)
        except RedisError as e:
            logger.error("campaign_store.load_failed", key=record_key, error=str(e))
            return None

        if raw is None:
            logger.debug("campaign_store.missing", key=record_key)
            return None

        try:
            return Campaign.from_record(raw)
        except ValidationError as e:
            logger.error(
                "campaign_store.invalid_record",
                key=record_key,
                errors=e.error_count(),
            )
            return None

    async def save(self, campaign: Campaign) -> None:
        """
        Overwrite the campaign record unconditionally.

        Args:
            campaign: Full campaign snapshot to persist

        Raises:
            PersistenceFailure: The write did not reach the store
        """
        record_key = self.record_key(campaign.key)
        try:
            await self.client.set(record_key, campaign.to_record())
        except RedisError as e:
            logger.error("campaign_store.save_failed", key=record_key, error=str(e))
            raise PersistenceFailure(campaign.key, str(e)) from e

        logger.debug(
            "campaign_store.saved",
            key=record_key,
            cycles_done=campaign.cycles_done,
        )

    # -------------------------------------------------------------------------
    # Analytics queue
    # -------------------------------------------------------------------------

    async def enqueue_analytics(self, event: AnalyticsEvent) -> bool:
        """
        Push an analytics event onto the work queue.

        Delivery is best-effort: failures are logged and swallowed so they
        never block a redirect.

        Returns:
            True when the event was pushed
        """
        payload = event.to_queue_data()
        try:
            await self.client.lpush(self.analytics_queue, payload)
        except RedisError as e:
            logger.warning(
                "campaign_store.enqueue_failed",
                queue=self.analytics_queue,
                payload=payload,
                error=str(e),
            )
            return False

        logger.debug(
            "campaign_store.enqueued",
            queue=self.analytics_queue,
            event_type=event.type.value,
            page_id=event.page_id,
        )
        return True


# -------------------------------------------------------------------------
# Convenience factory
# -------------------------------------------------------------------------

async def create_campaign_store(settings: RedirectorSettings) -> CampaignStore:
    """
    Create and connect a campaign store.

    Args:
        settings: Service settings holding the Redis connection parameters

    Returns:
        Connected CampaignStore instance
    """
    store = CampaignStore.from_settings(settings)
    await store.connect()
    return store
