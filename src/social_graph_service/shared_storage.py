#!/usr/bin/env python3
"""
Shared storage manager for the Social Graph Service.

This module provides singleton store instances shared between the HTTP and
MCP servers: one FalkorDB connection pool, one notification log, one hook
registry and one RelationshipService per process.
"""

import asyncio
import logging
from threading import Lock
from typing import Optional

from .cache.redis_cache import RedisCache
from .graph.client import GraphClient
from .graph.factory import create_graph_client
from .hooks import HookRegistry
from .services.notification_emitter import NotificationEmitter
from .services.relationship_service import RelationshipService
from .storage.factory import create_notification_log, create_notification_sink
from .storage.notification_client import NotificationServiceClient
from .storage.notification_log import NotificationLog

logger = logging.getLogger(__name__)


class StorageManager:
    """Manages the singleton store and service instances for shared access."""

    _instance: Optional["StorageManager"] = None
    _lock: Lock = Lock()

    def __init__(self):
        """Initialize storage manager."""
        self._graph_client: GraphClient | None = None
        self._notification_log: NotificationLog | None = None
        self._remote_sink: NotificationServiceClient | None = None
        self._cache: RedisCache | None = None
        self._hooks: HookRegistry | None = None
        self._service: RelationshipService | None = None
        self._initialization_lock: asyncio.Lock = asyncio.Lock()
        self._initialized: bool = False

    @classmethod
    def get_instance(cls) -> "StorageManager":
        """Get singleton instance of StorageManager.

        Thread-safe singleton pattern ensures only one instance exists.
        """
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
                    logger.info("Created new StorageManager singleton instance")
        return cls._instance

    async def initialize(self) -> None:
        """Create every shared instance once.

        Idempotent; concurrent callers wait for the first initialization.
        A graph failure leaves the relationship service unset (callers answer
        503); notification log and cache failures are non-fatal.
        """
        if self._initialized:
            return

        async with self._initialization_lock:
            if self._initialized:
                return

            from .config import settings

            logger.info("Initializing shared storage instances...")

            # Local notification log (also serves the notification HTTP routes)
            try:
                self._notification_log = await create_notification_log()
                logger.info(f"Notification log initialized at {self._notification_log.db_path}")
            except Exception as e:
                logger.warning(f"Notification log initialization failed (non-fatal): {e}")
                self._notification_log = None

            # Sink for the emitter: remote service when configured, else the local log
            self._hooks = HookRegistry()
            if settings.notifications.service_url or self._notification_log is not None:
                try:
                    sink = await create_notification_sink(local_log=self._notification_log)
                    if isinstance(sink, NotificationServiceClient):
                        self._remote_sink = sink
                    NotificationEmitter(sink).register(self._hooks)
                except Exception as e:
                    logger.warning(f"Notification sink initialization failed (non-fatal): {e}")
            else:
                logger.warning("No notification sink available; follow events will not be recorded")

            # Optional profile cache
            if settings.cache.enabled:
                cache = RedisCache(
                    url=settings.cache.url,
                    ttl_seconds=settings.cache.ttl_seconds,
                    key_prefix=settings.cache.key_prefix,
                    max_connections=settings.cache.max_connections,
                )
                try:
                    await cache.initialize()
                    self._cache = cache
                except Exception as e:
                    logger.warning(f"Profile cache unavailable, continuing without it: {e}")
                    self._cache = None

            # Graph store and the service on top of it
            try:
                self._graph_client = await create_graph_client()
                self._service = RelationshipService(
                    self._graph_client,
                    hooks=self._hooks,
                    cache=self._cache,
                    detach_hooks=settings.notifications.detached_dispatch,
                )
            except Exception as e:
                logger.error(f"Graph store initialization failed: {e}")
                self._graph_client = None
                self._service = None

            self._initialized = True
            logger.info("Shared storage initialized")

    @property
    def graph_client(self) -> GraphClient | None:
        """Get the graph client if the graph store is reachable."""
        return self._graph_client

    @property
    def relationship_service(self) -> RelationshipService | None:
        """Get the relationship service if the graph store is reachable."""
        return self._service

    @property
    def notification_log(self) -> NotificationLog | None:
        """Get the local notification log if initialized."""
        return self._notification_log

    async def close(self) -> None:
        """Close all managed instances.

        Pending notification hooks are drained first. Safe to call even if
        storage was never initialized.
        """
        if self._service is not None:
            try:
                await self._service.drain()
            except Exception as e:
                logger.warning(f"Error draining pending hooks: {e}")
            self._service = None

        if self._graph_client is not None:
            try:
                await self._graph_client.close()
            except Exception as e:
                logger.warning(f"Error closing graph client: {e}")
            self._graph_client = None

        if self._remote_sink is not None:
            try:
                await self._remote_sink.close()
            except Exception as e:
                logger.warning(f"Error closing notification service client: {e}")
            self._remote_sink = None

        if self._notification_log is not None:
            try:
                await self._notification_log.close()
            except Exception as e:
                logger.warning(f"Error closing notification log: {e}")
            self._notification_log = None

        if self._cache is not None:
            try:
                await self._cache.close()
            except Exception as e:
                logger.warning(f"Error closing profile cache: {e}")
            self._cache = None

        self._hooks = None
        self._initialized = False
        logger.info("Shared storage closed")

    def is_initialized(self) -> bool:
        """Check if storage has been initialized."""
        return self._initialized


# Module-level convenience functions
_manager = StorageManager.get_instance()


async def initialize_shared_storage() -> None:
    """Initialize the shared instances via the singleton StorageManager."""
    await _manager.initialize()


async def close_shared_storage() -> None:
    """Close the shared instances via the singleton StorageManager."""
    await _manager.close()


def is_storage_initialized() -> bool:
    """Check if shared storage has been initialized."""
    return _manager.is_initialized()


def get_graph_client() -> GraphClient | None:
    """Get the shared graph client, if available."""
    return _manager.graph_client


def get_shared_relationship_service() -> RelationshipService | None:
    """Get the shared relationship service, if available."""
    return _manager.relationship_service


def get_shared_notification_log() -> NotificationLog | None:
    """Get the shared notification log, if available."""
    return _manager.notification_log
