"""
Occupancy Analysis Service - orchestrates analysis runs for managed places.

This module provides the OccupancyAnalysisService class which turns "media
uploaded" events into committed occupancy snapshots:

    media ref → MediaSource → OccupancyEstimator / VideoSampler
              → SeatSynthesizer → commit (snapshot, history, MQTT broadcast)

Threading Model:
- Control Plane Thread (paho-mqtt internal): command handlers, which only
  validate and submit work
- Analysis Worker Threads (ThreadPoolExecutor, max_workers): one run each
- Frame Extractor Threads (VideoSampler, short-lived): video seeks

Run semantics:
- A run holds its place's run lock from start to commit, so runs for one
  place are serialized and each commit replaces the snapshot wholesale
- Capacity, snapshot and history sit behind a separate short-held state
  lock, so command handlers never wait for a run in flight
- A failed run commits nothing and publishes nothing; the failure is
  reported as one structured log record and the service keeps running
"""

import logging
import random
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from occupancy_vision.errors import (
    DecodeError,
    InvalidCapacityError,
    MediaNotFoundError,
    NoFramesAvailable,
    OccupancyError,
    RemoteFetchFailure,
)
from occupancy_vision.estimator import build_image_estimator, build_video_estimator
from occupancy_vision.seating import OccupancySnapshot, SeatSynthesizer
from occupancy_vision.signals import EdgePrecision, FrameSignals
from occupancy_vision.video import VideoFrameExtractor, VideoSampler
from occupancy_control import CommandValidationError
from occupancy_mqtt.logging import LogEvent, StructuredLogger
from occupancy_mqtt.schemas import HistoryUpdateMessage, LiveDataMessage

from occupancy_processor.config import AnalyzerConfig
from occupancy_processor.media import MediaSource
from occupancy_processor.registry import ManagedPlace, PlaceRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisResult:
    """
    Outcome of one successful run.

    Attributes:
        place_id: Place the snapshot was committed for
        source: "image" or "video"
        snapshot: Committed snapshot
        signals: Image signals (image runs only)
        samples: Per-frame percentages (video runs only)
    """
    place_id: str
    source: str
    snapshot: OccupancySnapshot
    signals: Optional[FrameSignals] = None
    samples: Tuple[int, ...] = ()

    @property
    def occupancy_percent(self) -> int:
        return self.snapshot.occupancy_percent

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'placeId': self.place_id,
            'source': self.source,
            'occupancyPercent': self.snapshot.occupancy_percent,
            'occupiedSeats': self.snapshot.occupied_count,
            'totalSeats': self.snapshot.capacity,
            'lastUpdate': self.snapshot.last_update.isoformat(),
        }
        if self.signals is not None:
            data['signals'] = self.signals.to_dict()
        if self.samples:
            data['samples'] = list(self.samples)
        return data


class OccupancyAnalysisService:
    """
    Main analysis service.

    Thread Safety:
    - registry: per-place run locks plus a registry lock
    - rng: child generators derived under _rng_lock, one per run
    - publishers: paho-mqtt clients are safe to publish from any thread

    Usage:
        config = AnalyzerConfig.from_yaml("config/analyzer_config.yaml")
        service = OccupancyAnalysisService(
            config=config,
            control_plane=control_plane,
            live_data_publisher=live_data_publisher,
            history_publisher=history_publisher,
            structured_logger=create_logger("analyzer"),
        )
        service.setup()
        service.start()
        service.wait()  # Blocks until stopped
    """

    def __init__(
        self,
        config: AnalyzerConfig,
        control_plane,  # MQTTControlPlane
        live_data_publisher,  # LiveDataPublisher
        history_publisher,  # HistoryUpdatePublisher
        structured_logger: StructuredLogger,
        media_source: Optional[MediaSource] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.control_plane = control_plane
        self.live_data_publisher = live_data_publisher
        self.history_publisher = history_publisher
        self.slog = structured_logger

        self.registry = PlaceRegistry()
        self.media = media_source or MediaSource(
            uploads_dir=config.uploads_dir,
            fetch_timeout_s=config.fetch_timeout_s,
        )
        self.video_sampler = VideoSampler(
            max_frames=config.video_config.max_frames,
            timeout_floor_s=config.video_config.timeout_floor_s,
            per_frame_timeout_s=config.video_config.per_frame_timeout_s,
        )

        seed = config.analysis_config.seed
        self._rng = rng or random.Random(seed)
        self._rng_lock = threading.Lock()

        self._executor = ThreadPoolExecutor(
            max_workers=config.max_workers,
            thread_name_prefix="AnalysisWorker",
        )

        self._running = False
        self._stop_event = threading.Event()

        logger.info(
            f"OccupancyAnalysisService initialized for service_id={config.service_id}"
        )

    # ─────────────────────────────────────────────────────────────────────
    # Setup / lifecycle
    # ─────────────────────────────────────────────────────────────────────

    def _initialize_places(self):
        for place_config in self.config.places:
            self.registry.add_place(place_config)
            logger.info(
                f"Initialized place: {place_config.place_id} "
                f"(name={place_config.name}, capacity={place_config.capacity})"
            )

    def setup(self):
        """
        Load places and register command handlers. Must be called before start().
        """
        self._initialize_places()
        self._setup_control_handlers()
        logger.info("Analyzer setup complete")

    def _setup_control_handlers(self):
        registry = self.control_plane.command_registry

        registry.register(
            "analyze_image",
            self._handle_analyze_image,
            "Analyze an uploaded or remote image for a place",
            required_fields=("place_id",),
        )
        registry.register(
            "analyze_video",
            self._handle_analyze_video,
            "Analyze an uploaded video for a place",
            required_fields=("place_id", "video_path"),
        )
        registry.register(
            "set_capacity",
            self._handle_set_capacity,
            "Change a place's seat capacity",
            required_fields=("place_id", "capacity"),
        )
        registry.register(
            "list_places",
            self._handle_list_places,
            "List managed places",
        )
        registry.register(
            "get_history",
            self._handle_get_history,
            "Get hourly occupancy history for a place",
            required_fields=("place_id",),
        )
        registry.register(
            "get_live_data",
            self._handle_get_live_data,
            "Get the latest snapshot for a place",
            required_fields=("place_id",),
        )

        logger.info("Control handlers registered")

    def start(self):
        """
        Start the service (non-blocking).

        Lifecycle:
        1. Connect control plane
        2. Connect publishers
        3. Submit initial analysis for places with a configured image_url
        """
        if self._running:
            logger.warning("Service already running")
            return

        logger.info("Starting occupancy analysis service")

        if not self.control_plane.connect(timeout=5.0):
            raise RuntimeError("Failed to connect to MQTT broker (control plane)")

        self.live_data_publisher.connect()
        self.history_publisher.connect()

        self._running = True
        self._stop_event.clear()
        self.analyze_configured_images()

        self.control_plane.publish_status("running")
        logger.info("✅ Occupancy analysis service started")

    def wait(self):
        """Block until stop() is called."""
        if not self._running:
            logger.warning("Service not running")
            return

        try:
            while not self._stop_event.wait(timeout=1.0):
                pass
        except KeyboardInterrupt:
            logger.info("Received KeyboardInterrupt, stopping...")
            self.stop()

    def stop(self):
        """
        Stop the service gracefully.

        Lifecycle:
        1. Wait for in-flight runs (queued runs are cancelled)
        2. Disconnect publishers
        3. Disconnect control plane
        """
        self.shutdown_workers()

        if not self._running:
            return

        logger.info("Stopping occupancy analysis service")

        self.live_data_publisher.disconnect()
        self.history_publisher.disconnect()

        self.control_plane.publish_status("stopped")
        self.control_plane.disconnect()
        self.media.close()

        self._running = False
        self._stop_event.set()
        logger.info("✅ Occupancy analysis service stopped")

    def shutdown_workers(self, wait: bool = True):
        self._executor.shutdown(wait=wait, cancel_futures=True)

    # ─────────────────────────────────────────────────────────────────────
    # Submission (non-blocking, returns Future)
    # ─────────────────────────────────────────────────────────────────────

    def submit_image(self, place_id: str, image_ref: str) -> Future:
        """Queue an image run. Future resolves to AnalysisResult or None."""
        return self._executor.submit(self.analyze_image_ref, place_id, image_ref)

    def submit_image_bytes(self, place_id: str, buffer: bytes) -> Future:
        return self._executor.submit(self.analyze_image, place_id, buffer)

    def submit_video(self, place_id: str, video_ref: str) -> Future:
        """Queue a video run. Future resolves to AnalysisResult or None."""
        return self._executor.submit(self.analyze_video, place_id, video_ref)

    def analyze_configured_images(self) -> Dict[str, Future]:
        """Submit one image run per place that has a configured image_url."""
        futures = {}
        for place_config in self.config.places:
            if place_config.image_url:
                futures[place_config.place_id] = self.submit_image(
                    place_config.place_id, place_config.image_url
                )
        return futures

    # ─────────────────────────────────────────────────────────────────────
    # Runs (blocking, called on worker threads or directly)
    # ─────────────────────────────────────────────────────────────────────

    def analyze_image(self, place_id: str, buffer: bytes) -> Optional[AnalysisResult]:
        """
        Full image run on an in-memory buffer.

        Returns:
            AnalysisResult, or None when the run failed (nothing committed)
        """
        return self._run(
            place_id,
            "image",
            {'bytes': len(buffer)},
            lambda place: self._image_work(place, lambda: buffer),
        )

    def analyze_image_ref(self, place_id: str, image_ref: str) -> Optional[AnalysisResult]:
        """Full image run on an "/uploads/..." path or a remote URL."""
        return self._run(
            place_id,
            "image",
            {'image_ref': image_ref},
            lambda place: self._image_work(place, lambda: self.media.load_image(image_ref)),
        )

    def analyze_video(self, place_id: str, video_ref: str) -> Optional[AnalysisResult]:
        """
        Full video run.

        Returns:
            AnalysisResult, or None when no frame could be extracted or
            scored (nothing committed)
        """
        return self._run(
            place_id,
            "video",
            {'video_path': video_ref},
            lambda place: self._video_work(place, video_ref),
        )

    def _next_rng(self) -> random.Random:
        with self._rng_lock:
            return random.Random(self._rng.getrandbits(64))

    def _image_work(
        self,
        place: ManagedPlace,
        load: Callable[[], bytes],
    ) -> AnalysisResult:
        analysis = self.config.analysis_config
        rng = self._next_rng()
        capacity = self.registry.get_capacity(place.place_id)

        buffer = load()
        estimator = build_image_estimator(
            rng=rng,
            max_width=analysis.max_width,
            edge_precision=EdgePrecision(analysis.image_edge_precision),
            skin_sample_budget=analysis.image_skin_samples,
            edge_threshold=analysis.edge_threshold,
            jitter_amplitude=analysis.jitter_amplitude,
        )
        estimate = estimator.estimate_image(buffer)
        snapshot = SeatSynthesizer(rng).synthesize(capacity, estimate.occupancy_percent)

        return AnalysisResult(
            place_id=place.place_id,
            source="image",
            snapshot=snapshot,
            signals=estimate.signals,
        )

    def _video_work(self, place: ManagedPlace, video_ref: str) -> Optional[AnalysisResult]:
        analysis = self.config.analysis_config
        rng = self._next_rng()
        capacity = self.registry.get_capacity(place.place_id)

        extractor = VideoFrameExtractor(self.media.resolve_video(video_ref))
        estimator = build_video_estimator(
            rng=rng,
            max_width=analysis.max_width,
            edge_precision=EdgePrecision(analysis.video_edge_precision),
            skin_sample_budget=analysis.video_skin_samples,
            edge_threshold=analysis.edge_threshold,
            jitter_amplitude=analysis.jitter_amplitude,
        )
        sampling = self.video_sampler.sample_and_score(
            extractor.probe_duration(),
            frame_extractor=extractor.extract_at,
            frame_scorer=estimator.score_frame,
            fallback_extractor=extractor.extract_first,
        )

        if sampling.occupancy_percent is None:
            self.slog.warning(
                event=LogEvent.ANALYSIS_VIDEO_NO_DATA,
                message="No frame could be scored; live data left unchanged",
                metadata={
                    'place_id': place.place_id,
                    'video_path': video_ref,
                    'timestamps': list(sampling.timestamps),
                    'skipped': list(sampling.skipped),
                },
            )
            return None

        snapshot = SeatSynthesizer(rng).synthesize(capacity, sampling.occupancy_percent)
        return AnalysisResult(
            place_id=place.place_id,
            source="video",
            snapshot=snapshot,
            samples=sampling.samples,
        )

    def _run(
        self,
        place_id: str,
        source: str,
        metadata: Dict[str, Any],
        work: Callable[[ManagedPlace], Optional[AnalysisResult]],
    ) -> Optional[AnalysisResult]:
        """
        Run boundary: executes work under the place lock, commits on success,
        logs exactly one outcome record.
        """
        metadata = dict(metadata, place_id=place_id)
        started = (
            LogEvent.ANALYSIS_IMAGE_STARTED if source == "image"
            else LogEvent.ANALYSIS_VIDEO_STARTED
        )
        completed = (
            LogEvent.ANALYSIS_IMAGE_COMPLETED if source == "image"
            else LogEvent.ANALYSIS_VIDEO_COMPLETED
        )

        if place_id not in self.registry:
            self.slog.warning(event=LogEvent.ANALYSIS_ERROR, message="Unknown place", metadata=metadata)
            return None

        try:
            with self.registry.acquire(place_id) as place:
                self.slog.info(event=started, message=f"{source.capitalize()} analysis started", metadata=metadata)

                result = work(place)
                if result is None:
                    return None

                self._commit(place, result.snapshot)

        except DecodeError as e:
            self.slog.warning(event=LogEvent.DECODE_ERROR, message="Media is not a decodable image", metadata=metadata, exc_info=e)
            return None
        except InvalidCapacityError as e:
            self.slog.error(event=LogEvent.INVALID_CAPACITY, message="Place has invalid capacity", metadata=metadata, exc_info=e)
            return None
        except NoFramesAvailable as e:
            self.slog.warning(event=LogEvent.NO_FRAMES_AVAILABLE, message="No video frame could be extracted", metadata=metadata, exc_info=e)
            return None
        except RemoteFetchFailure as e:
            self.slog.warning(event=LogEvent.REMOTE_FETCH_ERROR, message="Remote image fetch failed", metadata=metadata, exc_info=e)
            return None
        except MediaNotFoundError as e:
            self.slog.warning(event=LogEvent.MEDIA_NOT_FOUND, message="Media file not found", metadata=metadata, exc_info=e)
            return None
        except OccupancyError as e:
            self.slog.warning(event=LogEvent.ANALYSIS_ERROR, message="Analysis failed", metadata=metadata, exc_info=e)
            return None
        except Exception as e:
            self.slog.error(event=LogEvent.ANALYSIS_ERROR, message="Unexpected analysis failure", metadata=metadata, exc_info=e)
            return None

        self.slog.info(
            event=completed,
            message=f"{source.capitalize()} analyzed",
            metadata=dict(metadata, **{
                'occupancy_percent': result.occupancy_percent,
                'occupied_seats': result.snapshot.occupied_count,
                'total_seats': result.snapshot.capacity,
            }),
        )
        return result

    def _commit(self, place: ManagedPlace, snapshot: OccupancySnapshot) -> None:
        """
        Replace the place's snapshot, fold it into history and broadcast.

        Caller holds place.run_lock, so broadcasts go out in commit order.
        """
        with place.state_lock:
            place.snapshot = snapshot
            bucket = place.history.record(snapshot.occupied_count, snapshot.capacity)

        self.slog.info(
            event=LogEvent.SNAPSHOT_COMMITTED,
            message="Live data replaced",
            metadata={'place_id': place.place_id, 'occupancy_percent': snapshot.occupancy_percent},
        )

        self.slog.info(
            event=LogEvent.HISTORY_UPDATED,
            message="Hourly bucket updated",
            metadata={'place_id': place.place_id, **bucket.to_dict()},
        )

        self.live_data_publisher.publish_live_data(
            LiveDataMessage.from_snapshot(place.place_id, place.name, snapshot)
        )
        self.history_publisher.publish_update(
            HistoryUpdateMessage(
                place_id=place.place_id,
                place_name=place.name,
                occupied_seats=snapshot.occupied_count,
                total_seats=snapshot.capacity,
            )
        )

    # ─────────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────────

    def get_live_data(self, place_id: str) -> Optional[LiveDataMessage]:
        """
        Latest snapshot as a live-data message, or None when not initialized.

        Raises:
            KeyError: If place_id is unknown
        """
        with self.registry.state(place_id) as place:
            snapshot = place.snapshot
        if snapshot is None:
            return None
        return LiveDataMessage.from_snapshot(place.place_id, place.name, snapshot)

    # ─────────────────────────────────────────────────────────────────────
    # Command Handlers (called by Control Plane Thread)
    # ─────────────────────────────────────────────────────────────────────

    def _require_place(self, command: Dict) -> ManagedPlace:
        place_id = str(command["place_id"])
        try:
            return self.registry.get(place_id)
        except KeyError:
            raise CommandValidationError(f"Unknown place '{place_id}'") from None

    def _report_when_done(self, future: Future, place_id: str, source: str) -> None:
        def report(done: Future):
            if done.cancelled():
                return
            result = done.result()
            if result is None:
                self.control_plane.publish_status(
                    "analysis_failed", {"place_id": place_id, "source": source}
                )
            else:
                self.control_plane.publish_status("analysis_completed", result.to_dict())

        future.add_done_callback(report)

    def _handle_analyze_image(self, command: Dict) -> Future:
        """Handle analyze_image command (Control Plane Thread)."""
        place = self._require_place(command)
        image_ref = command.get("image_ref") or place.image_url
        if not image_ref:
            raise CommandValidationError(
                f"Place '{place.place_id}' has no image_url; image_ref is required"
            )

        future = self.submit_image(place.place_id, image_ref)
        self._report_when_done(future, place.place_id, "image")
        self.control_plane.publish_status(
            "analysis_queued", {"place_id": place.place_id, "image_ref": image_ref}
        )
        logger.info(f"Image analysis queued: {place.place_id} ({image_ref})")
        return future

    def _handle_analyze_video(self, command: Dict) -> Future:
        """Handle analyze_video command (Control Plane Thread)."""
        place = self._require_place(command)
        video_path = str(command["video_path"])

        future = self.submit_video(place.place_id, video_path)
        self._report_when_done(future, place.place_id, "video")
        self.control_plane.publish_status(
            "analysis_queued", {"place_id": place.place_id, "video_path": video_path}
        )
        logger.info(f"Video analysis queued: {place.place_id} ({video_path})")
        return future

    def _handle_set_capacity(self, command: Dict):
        """Handle set_capacity command (Control Plane Thread)."""
        place = self._require_place(command)
        try:
            capacity = int(command["capacity"])
            self.registry.set_capacity(place.place_id, capacity)
        except (TypeError, ValueError) as e:
            raise CommandValidationError(f"Invalid capacity {command['capacity']!r}: {e}") from e

        self.control_plane.publish_status(
            "capacity_changed", {"place_id": place.place_id, "capacity": capacity}
        )
        logger.info(f"Capacity changed: {place.place_id} -> {capacity}")

    def _handle_list_places(self, command: Dict):
        """Handle list_places command (Control Plane Thread)."""
        places = self.registry.list_places()
        self.control_plane.publish_status("places_list", {"places": places})
        logger.info(f"Listed places: {[p['placeId'] for p in places]}")

    def _handle_get_history(self, command: Dict):
        """Handle get_history command (Control Plane Thread)."""
        place = self._require_place(command)
        history = self.registry.get_history(place.place_id)
        self.control_plane.publish_status("history", history)

    def _handle_get_live_data(self, command: Dict):
        """Handle get_live_data command (Control Plane Thread)."""
        place = self._require_place(command)
        live = self.get_live_data(place.place_id)
        if live is None:
            self.control_plane.publish_status(
                "live_data_not_initialized",
                {"placeId": place.place_id, "placeName": place.name},
            )
        else:
            self.control_plane.publish_status("live_data", live.to_dict())
