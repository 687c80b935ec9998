"""
Cloud Firestore client implementation.

Provides single and batched uploads of readings, a one-shot ordered fetch and
a real-time listener over the readings collection.
"""

import logging
import threading
from collections.abc import Callable, Sequence
from typing import Any

from google.api_core.exceptions import GoogleAPIError
from google.cloud import firestore

from smartwatch_health_monitor.domain.reading import Reading
from smartwatch_health_monitor.utils.exceptions import (
    FirestoreClientError,
    MalformedRecordError,
)
from smartwatch_health_monitor.utils.parameters import FirestoreConfig

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[list[Reading], list[Reading], list[Reading]], None]
ErrorCallback = Callable[[Exception], None]


def _decode_document(doc: Any) -> Reading | None:
    data = doc.to_dict()
    if data is None:
        return None

    try:
        return Reading.from_map(data)
    except MalformedRecordError as e:
        logger.warning(f"Skipping malformed doc {doc.id}: {e}")
        return None


class RealtimeSubscription:
    """
    Handle of an active snapshot listener.

    Closing is idempotent. Usable as a context manager.
    """

    def __init__(self, watch: Any) -> None:
        self._watch = watch
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._watch is not None

    def close(self) -> None:
        with self._lock:
            if self._watch is None:
                return
            watch, self._watch = self._watch, None

        watch.unsubscribe()
        logger.info("Realtime listener removed")

    def __enter__(self) -> "RealtimeSubscription":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class FirestoreManager:
    """
    Firestore access for the readings collection.

    At most one real-time listener is active per manager; starting a new one
    closes the previous one.
    """

    def __init__(self, client: Any, config: FirestoreConfig) -> None:
        """
        Initialize Firestore manager.

        Args:
            client: ``google.cloud.firestore.Client`` (usually from the
                project registry).
            config: Firestore configuration.
        """
        self.client = client
        self.config = config
        self._subscription: RealtimeSubscription | None = None
        self._lock = threading.Lock()

    @property
    def collection(self) -> Any:
        return self.client.collection(self.config.collection)

    def upload_reading(self, reading: Reading | None) -> str:
        """
        Upload one reading as a new document.

        Args:
            reading: Reading to upload.

        Returns:
            Generated document ID.

        Raises:
            FirestoreClientError: If the reading is None or the write fails.
        """
        if reading is None:
            raise FirestoreClientError("Cannot upload empty reading")

        try:
            _, doc_ref = self.collection.add(reading.to_map())
        except GoogleAPIError as e:
            raise FirestoreClientError(f"Upload failed: {e}") from e

        logger.info(f"Uploaded to Firestore: {doc_ref.id}")
        return str(doc_ref.id)

    def upload_batch(self, readings: Sequence[Reading] | None) -> int:
        """
        Upload readings as new documents using write batches.

        Args:
            readings: Readings to upload.

        Returns:
            Number of documents written.

        Raises:
            FirestoreClientError: If a batch commit fails. Batches committed
                before the failure stay written.
        """
        if not readings:
            logger.warning("upload_batch called with no readings")
            return 0

        size = self.config.batch_size
        collection = self.collection
        written = 0

        for start in range(0, len(readings), size):
            chunk = readings[start : start + size]
            batch = self.client.batch()
            for reading in chunk:
                batch.set(collection.document(), reading.to_map())

            try:
                batch.commit()
            except GoogleAPIError as e:
                raise FirestoreClientError(
                    f"Batch upload failed after {written} documents: {e}"
                ) from e

            written += len(chunk)

        logger.info(f"Batch upload successful ({written} items)")
        return written

    def fetch_all(self) -> list[Reading]:
        """
        Fetch every reading ordered by timestamp.

        Returns:
            Decoded readings; malformed documents are skipped.

        Raises:
            FirestoreClientError: If the query fails.
        """
        query = self.collection.order_by("timestamp", direction=firestore.Query.ASCENDING)

        try:
            readings = [r for r in map(_decode_document, query.stream()) if r is not None]
        except GoogleAPIError as e:
            raise FirestoreClientError(f"Firestore fetch failed: {e}") from e

        logger.info(f"Retrieved {len(readings)} Firestore records")
        return readings

    def start_realtime_listener(
        self,
        on_update: UpdateCallback,
        on_error: ErrorCallback | None = None,
    ) -> RealtimeSubscription:
        """
        Start listening to changes of the readings collection.

        Any listener previously started by this manager is closed first, and
        the stored listener is swapped under the lock so that overlapping
        starts leave exactly one active.
        Callbacks run on the Firestore client's background thread.

        Args:
            on_update: Called with added, modified and removed readings.
            on_error: Called with exceptions raised while handling a snapshot.

        Returns:
            Subscription handle; close it when the consumer goes away.
        """
        self.stop_realtime_listener()

        def handle_snapshot(_docs: Any, changes: list[Any], _read_time: Any) -> None:
            added: list[Reading] = []
            modified: list[Reading] = []
            removed: list[Reading] = []
            buckets = {"ADDED": added, "MODIFIED": modified, "REMOVED": removed}

            try:
                for change in changes:
                    reading = _decode_document(change.document)
                    if reading is not None:
                        buckets[change.type.name].append(reading)

                on_update(added, modified, removed)
            except Exception as e:
                logger.error(f"Realtime listener error: {e}")
                if on_error is not None:
                    on_error(e)

        query = self.collection.order_by("timestamp", direction=firestore.Query.ASCENDING)

        try:
            watch = query.on_snapshot(handle_snapshot)
        except GoogleAPIError as e:
            raise FirestoreClientError(f"Failed to start realtime listener: {e}") from e

        subscription = RealtimeSubscription(watch)
        with self._lock:
            previous, self._subscription = self._subscription, subscription

        # a concurrent start may have registered a listener after ours was stopped
        if previous is not None:
            previous.close()

        logger.info(f"Realtime listener registered on {self.config.collection}")
        return subscription

    def stop_realtime_listener(self) -> None:
        """Close the active listener, if any."""
        with self._lock:
            subscription, self._subscription = self._subscription, None

        if subscription is not None:
            subscription.close()
