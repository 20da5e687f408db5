"""Infrastructure factory for creating service instances from configuration."""

from typing import Any, cast

from src.application.services.cleanup import RenditionCleanup
from src.application.services.domain_events import VideoEventRouter
from src.application.services.monitoring import WorkflowMonitoringService
from src.application.services.observer import WorkflowTransitionObserver
from src.application.services.processing_adapter import VideoProcessingAdapter
from src.application.services.recovery import RecoveryScanner
from src.application.services.workflow_engine import WorkflowEngine
from src.commons.infrastructure.blob import BlobStorageBase, MinioBlobStorage
from src.commons.infrastructure.documentdb import (
    DocumentDBBase,
    InMemoryDocumentDB,
    MongoDBDocumentDB,
)
from src.commons.settings.models import Settings
from src.commons.telemetry import get_logger
from src.infrastructure.notifications import (
    EventPublisherBase,
    LoggingEventPublisher,
    WebhookEventPublisher,
)
from src.infrastructure.persistence import (
    DocumentDBStateRecordStore,
    InMemoryStateRecordStore,
    StateRecordStoreBase,
)
from src.infrastructure.videos import DocumentDBVideoRepository, VideoRepositoryBase


class InfrastructureFactory:
    """Factory for creating infrastructure and workflow service instances.

    Creates concrete implementations based on configuration settings and
    caches them, so every consumer shares one engine and one set of clients.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize factory with settings.

        Args:
            settings: Application settings.
        """
        self._settings = settings
        self._instances: dict[str, Any] = {}
        self._logger = get_logger(__name__)

    @property
    def settings(self) -> Settings:
        return self._settings

    def get_blob_storage(self) -> BlobStorageBase:
        """Get blob storage instance.

        Returns:
            Configured blob storage provider.
        """
        if "blob_storage" not in self._instances:
            blob_settings = self._settings.blob_storage
            self._instances["blob_storage"] = MinioBlobStorage(
                endpoint=blob_settings.endpoint,
                access_key=blob_settings.access_key,
                secret_key=blob_settings.secret_key,
                secure=blob_settings.use_ssl,
                region=blob_settings.region,
            )
        return cast("BlobStorageBase", self._instances["blob_storage"])

    def get_document_db(self) -> DocumentDBBase:
        """Get document database instance.

        Returns:
            Configured document database provider.
        """
        if "document_db" not in self._instances:
            doc_settings = self._settings.document_db
            if doc_settings.provider == "memory":
                self._instances["document_db"] = InMemoryDocumentDB()
            else:
                # Build connection string from settings
                if doc_settings.username and doc_settings.password:
                    connection_string = (
                        f"mongodb://{doc_settings.username}:{doc_settings.password}"
                        f"@{doc_settings.host}:{doc_settings.port}"
                        f"/?authSource={doc_settings.auth_source}"
                    )
                else:
                    connection_string = (
                        f"mongodb://{doc_settings.host}:{doc_settings.port}"
                    )
                self._instances["document_db"] = MongoDBDocumentDB(
                    connection_string=connection_string,
                    database_name=doc_settings.database,
                    timeout_ms=doc_settings.timeout_ms,
                )
        return cast("DocumentDBBase", self._instances["document_db"])

    def get_state_store(self) -> StateRecordStoreBase:
        """Get the workflow state record store.

        Returns:
            In-memory store for the ``memory`` provider, document store
            otherwise.
        """
        if "state_store" not in self._instances:
            doc_settings = self._settings.document_db
            if doc_settings.provider == "memory":
                self._instances["state_store"] = InMemoryStateRecordStore()
            else:
                self._instances["state_store"] = DocumentDBStateRecordStore(
                    self.get_document_db(),
                    doc_settings.collections.processing_states,
                )
        return cast("StateRecordStoreBase", self._instances["state_store"])

    def get_video_repository(self) -> VideoRepositoryBase:
        """Get the domain video catalogue."""
        if "video_repository" not in self._instances:
            self._instances["video_repository"] = DocumentDBVideoRepository(
                self.get_document_db(),
                self._settings.document_db.collections.videos,
            )
        return cast("VideoRepositoryBase", self._instances["video_repository"])

    def get_event_publisher(self) -> EventPublisherBase:
        """Get the terminal-state notification publisher.

        Raises:
            ValueError: If the webhook provider is selected without a URL.
        """
        if "event_publisher" not in self._instances:
            notify_settings = self._settings.notifications
            if notify_settings.provider == "webhook":
                if not notify_settings.webhook_url:
                    raise ValueError("webhook_url is required for webhook provider")
                self._instances["event_publisher"] = WebhookEventPublisher(
                    url=notify_settings.webhook_url,
                    timeout=notify_settings.timeout_seconds,
                )
            else:
                self._instances["event_publisher"] = LoggingEventPublisher()
        return cast("EventPublisherBase", self._instances["event_publisher"])

    def get_observer(self) -> WorkflowTransitionObserver:
        if "observer" not in self._instances:
            self._instances["observer"] = WorkflowTransitionObserver(
                self.get_state_store(),
                publisher=self.get_event_publisher(),
                store_timeout_seconds=self._settings.workflow.store_timeout_seconds,
            )
        return cast("WorkflowTransitionObserver", self._instances["observer"])

    def get_workflow_engine(self) -> WorkflowEngine:
        """Get the workflow engine shared by every consumer."""
        if "workflow_engine" not in self._instances:
            workflow = self._settings.workflow
            self._instances["workflow_engine"] = WorkflowEngine(
                self.get_state_store(),
                self.get_observer(),
                max_conflict_retries=workflow.max_conflict_retries,
                store_timeout_seconds=workflow.store_timeout_seconds,
            )
        return cast("WorkflowEngine", self._instances["workflow_engine"])

    def get_processing_adapter(self) -> VideoProcessingAdapter:
        if "processing_adapter" not in self._instances:
            self._instances["processing_adapter"] = VideoProcessingAdapter(
                self.get_workflow_engine(),
                self.get_video_repository(),
            )
        return cast("VideoProcessingAdapter", self._instances["processing_adapter"])

    def get_event_router(self) -> VideoEventRouter:
        if "event_router" not in self._instances:
            self._instances["event_router"] = VideoEventRouter(
                self.get_processing_adapter()
            )
        return cast("VideoEventRouter", self._instances["event_router"])

    def get_recovery_scanner(self) -> RecoveryScanner:
        if "recovery_scanner" not in self._instances:
            self._instances["recovery_scanner"] = RecoveryScanner(
                self.get_state_store(),
                store_timeout_seconds=self._settings.workflow.store_timeout_seconds,
            )
        return cast("RecoveryScanner", self._instances["recovery_scanner"])

    def get_rendition_cleanup(self) -> RenditionCleanup:
        if "rendition_cleanup" not in self._instances:
            self._instances["rendition_cleanup"] = RenditionCleanup(
                self.get_blob_storage(),
                self._settings.blob_storage.buckets,
            )
        return cast("RenditionCleanup", self._instances["rendition_cleanup"])

    def get_monitoring_service(self) -> WorkflowMonitoringService:
        """Get the recovery and rollback service."""
        if "monitoring_service" not in self._instances:
            self._instances["monitoring_service"] = WorkflowMonitoringService(
                store=self.get_state_store(),
                scanner=self.get_recovery_scanner(),
                adapter=self.get_processing_adapter(),
                settings=self._settings.workflow,
                cleanup=self.get_rendition_cleanup(),
            )
        return cast("WorkflowMonitoringService", self._instances["monitoring_service"])

    async def close_all(self) -> None:
        """Wait for scheduled events, then close all service connections."""
        engine = self._instances.get("workflow_engine")
        if engine is not None:
            await engine.drain()

        # Close services that have close methods
        for name, instance in self._instances.items():
            if hasattr(instance, "close"):
                try:
                    close_result = instance.close()
                    if hasattr(close_result, "__await__"):
                        await close_result
                except Exception:
                    self._logger.warning(
                        "Error closing %s",
                        name,
                        exc_info=True,
                    )

        self._instances.clear()


class _FactoryHolder:
    """Holder for the factory singleton to avoid global statements."""

    instance: InfrastructureFactory | None = None


def get_factory(settings: Settings | None = None) -> InfrastructureFactory:
    """Get or create the infrastructure factory singleton.

    Args:
        settings: Settings to use. Required on first call.

    Returns:
        Infrastructure factory instance.

    Raises:
        ValueError: If settings not provided on first call.
    """
    if _FactoryHolder.instance is None:
        if settings is None:
            raise ValueError("Settings required to initialize factory")
        _FactoryHolder.instance = InfrastructureFactory(settings)

    return _FactoryHolder.instance


def reset_factory() -> None:
    """Reset the factory singleton (for testing)."""
    _FactoryHolder.instance = None
