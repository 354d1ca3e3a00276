"""
Composition orchestration: fetch -> compose -> publish -> cleanup.

Personalization is best-effort. Any failure before the result is published
(engine missing, download, ffmpeg, upload, remote call) converts into a
successful result pointing at the uncomposited base video, so a prospect
always receives a video and the campaign never blocks on infrastructure.
"""
import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from vidreach.background import background_suffix, detect_background_kind
from vidreach.compositor import CircularMaskCompositor, engine_available
from vidreach.config import Settings, get_settings
from vidreach.exceptions import CompositionCancelledError, EngineUnavailableError
from vidreach.fetcher import AssetFetcher
from vidreach.geometry import resolve_position
from vidreach.models import CompositionRequest, CompositionResult, LocalAsset
from vidreach.storage import build_storage_key, get_publisher
from vidreach.utils.temp_files import create_workspace, remove_workspace

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    CHECKING_ENGINE = "checking_engine"
    FETCHING = "fetching"
    COMPOSING = "composing"
    PUBLISHING = "publishing"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FALLBACK = "fallback"


class CompositionAttempt:
    """Mutable state of a single orchestrator invocation."""

    def __init__(self, request: CompositionRequest):
        self.request = request
        self.stage = Stage.CHECKING_ENGINE
        self.workspace: Optional[Path] = None
        self.assets: List[LocalAsset] = []
        self.output_path: Optional[Path] = None

    def advance(self, stage: Stage):
        logger.info(f"[ORCHESTRATOR] {self.request.request_id}: {self.stage.value} -> {stage.value}")
        self.stage = stage


class CompositionOrchestrator:
    """
    Runs one composition request through the pipeline stages.

    Local and remote execution share this class; they differ only in the
    injected engine check and whether a remote client does the work.
    """

    def __init__(self, engine_available: Callable[[], bool],
                 fetcher: Optional[AssetFetcher] = None,
                 compositor: Optional[CircularMaskCompositor] = None,
                 publisher=None,
                 settings: Optional[Settings] = None,
                 remote_client=None,
                 temp_root=None):
        self.settings = settings or Settings()
        self.engine_available = engine_available
        self.fetcher = fetcher
        self.compositor = compositor
        self.publisher = publisher
        self.remote_client = remote_client
        self.temp_root = Path(temp_root or self.settings.temp_dir)

        if remote_client is None and not (fetcher and compositor and publisher):
            raise ValueError("Local orchestration needs a fetcher, compositor and publisher")

    def compose(self, request: CompositionRequest,
                cancel_event: Optional[threading.Event] = None) -> CompositionResult:
        """Run the pipeline under the fallback policy. Never raises for pipeline errors."""
        attempt = CompositionAttempt(request)
        try:
            result = self._run(attempt, cancel_event)
        except Exception as e:
            result = self._fallback(attempt, e)
        finally:
            self._cleanup(attempt)
        if not result.fallback:
            attempt.advance(Stage.DONE)
        return result

    def execute(self, request: CompositionRequest,
                cancel_event: Optional[threading.Event] = None) -> CompositionResult:
        """Run the pipeline and raise stage errors; cleanup still always happens."""
        attempt = CompositionAttempt(request)
        try:
            result = self._run(attempt, cancel_event)
        finally:
            self._cleanup(attempt)
        attempt.advance(Stage.DONE)
        return result

    def _run(self, attempt: CompositionAttempt,
             cancel_event: Optional[threading.Event]) -> CompositionResult:
        request = attempt.request

        if not self.engine_available():
            raise EngineUnavailableError("Compositing engine unavailable in this environment")
        _check_cancelled(cancel_event, attempt)

        if self.remote_client is not None:
            attempt.advance(Stage.COMPOSING)
            return self.remote_client.compose(request)

        attempt.advance(Stage.FETCHING)
        attempt.workspace = create_workspace(self.temp_root, request.request_id)
        background_kind = detect_background_kind(request.background_url, request.background_is_video)
        base_asset, background_asset = self.fetcher.fetch_pair(
            request.base_video_url,
            attempt.workspace / "base-video.mp4",
            request.background_url,
            attempt.workspace / f"background{background_suffix(request.background_url, background_kind)}",
            background_kind,
        )
        attempt.assets = [base_asset, background_asset]
        _check_cancelled(cancel_event, attempt)

        attempt.advance(Stage.COMPOSING)
        position = resolve_position(request.position, self.settings.overlay_margin)
        attempt.output_path = self.compositor.compose_assets(
            background_asset,
            base_asset,
            position,
            attempt.workspace / f"final-{request.request_id}.mp4",
            background_is_video=background_asset.is_video,
            size=request.size,
            duration=request.duration_seconds,
        )
        _check_cancelled(cancel_event, attempt)

        attempt.advance(Stage.PUBLISHING)
        storage_key = build_storage_key(request.owner_scope_id)
        output_url = self.publisher.publish(attempt.output_path, storage_key)

        return CompositionResult(
            success=True,
            output_url=output_url,
            duration_seconds=request.duration_seconds,
            storage_key=storage_key,
        )

    def _fallback(self, attempt: CompositionAttempt, error: Exception) -> CompositionResult:
        failed_stage = attempt.stage
        attempt.advance(Stage.FALLBACK)
        message = getattr(error, 'message', None) or str(error) or error.__class__.__name__

        if isinstance(error, EngineUnavailableError):
            logger.info(f"[ORCHESTRATOR] {message} - using base video")
        elif hasattr(error, 'error_code'):
            stderr = getattr(error, 'stderr', '')
            logger.warning(f"[ORCHESTRATOR] {error.error_code} during {failed_stage.value}: {message}"
                           + (f"\n{stderr}" if stderr else ""))
        else:
            logger.error(f"[ORCHESTRATOR] Unexpected error during {failed_stage.value}: {message}",
                         exc_info=True)

        return CompositionResult(
            success=True,
            output_url=attempt.request.base_video_url,
            duration_seconds=attempt.request.duration_seconds,
            error=f"{failed_stage.value}: {message}",
            fallback=True,
        )

    def _cleanup(self, attempt: CompositionAttempt):
        attempt.advance(Stage.CLEANING_UP)
        for asset in attempt.assets:
            try:
                asset.local_path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"[CLEANUP] Failed to remove {asset.local_path}: {e}")
        if attempt.output_path is not None and attempt.output_path.exists():
            logger.warning(f"[CLEANUP] Discarding unpublished output {attempt.output_path}")
        if attempt.workspace is not None:
            remove_workspace(attempt.workspace)


def _check_cancelled(cancel_event: Optional[threading.Event], attempt: CompositionAttempt):
    if cancel_event is not None and cancel_event.is_set():
        raise CompositionCancelledError(f"Cancelled after {attempt.stage.value}")


def build_orchestrator(settings: Optional[Settings] = None) -> CompositionOrchestrator:
    """Wire the orchestrator for the configured execution mode."""
    settings = settings or get_settings()

    if settings.is_remote:
        from vidreach.remote import RemoteCompositionClient

        client = RemoteCompositionClient(settings.remote_compose_url, timeout=settings.remote_timeout)
        return CompositionOrchestrator(
            engine_available=client.is_configured,
            remote_client=client,
            settings=settings,
        )

    return CompositionOrchestrator(
        engine_available=engine_available,
        fetcher=AssetFetcher(timeout=settings.download_timeout),
        compositor=CircularMaskCompositor(settings),
        publisher=get_publisher(settings),
        settings=settings,
    )


def compose_personalized_video(request: CompositionRequest,
                               orchestrator: Optional[CompositionOrchestrator] = None,
                               cancel_event: Optional[threading.Event] = None) -> CompositionResult:
    """
    Public entry point for the per-prospect processing loop.

    Always returns a successful result: the composited video URL, or the
    base video URL with a diagnostic in `error` when personalization failed.
    """
    orchestrator = orchestrator or build_orchestrator()
    return orchestrator.compose(request, cancel_event=cancel_event)
