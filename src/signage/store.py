"""Realtime document store interface and a JSON-directory adapter.

The engine only needs two subscriptions: one on the display_settings
document and one on the daily_data collection from a start date on. Each
returns an unsubscribe callable. ``on_data`` receives the whole document or
the whole matching collection every time anything in it changes; the
settings subscription passes None when the document does not exist.

JsonDirectoryStore mirrors the hosted store's layout on disk:

    <root>/<school_id>/config/display_settings.json
    <root>/<school_id>/daily_data/<YYYY-MM-DD>.json

and polls it, delivering a fresh snapshot whenever a file appears,
disappears or changes. The dashboard (or a sync job) writes those files.
"""

import asyncio
import json
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from src.signage.errors import FeedError, SignageError, StoreReadError
from src.signage.logging import get_logger
from src.signage.models import DailyDocument, DisplaySettings, Feed

log = get_logger(__name__)

Unsubscribe = Callable[[], None]
ErrorCallback = Callable[[Exception], None]
SettingsCallback = Callable[[DisplaySettings | None], None]
DailyCallback = Callable[[list[DailyDocument]], None]

# (file name, mtime_ns, size) for every file a snapshot depends on
Signature = tuple[tuple[str, int, int], ...]


class DocumentStore(Protocol):
    def subscribe_settings(
        self, on_data: SettingsCallback, on_error: ErrorCallback
    ) -> Unsubscribe: ...

    def subscribe_daily_data(
        self, range_start: str, on_data: DailyCallback, on_error: ErrorCallback
    ) -> Unsubscribe:
        """Documents with date >= range_start, ascending, capped at the store's limit."""
        ...


@retry(
    stop=stop_after_attempt(3),
    wait=wait_fixed(0.2),
    retry=retry_if_exception_type(StoreReadError),
    reraise=True,
)
async def _read_json(path: Path) -> dict:
    """Read one JSON document, retrying a file caught mid-write.

    Raises:
        StoreReadError: If the file still cannot be read after the retries.
    """
    try:
        data = json.loads(await asyncio.to_thread(path.read_text, encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise StoreReadError(f"{path.name}: invalid JSON ({e})") from e
    except OSError as e:
        raise StoreReadError(f"{path.name}: {e}") from e
    if not isinstance(data, dict):
        raise StoreReadError(f"{path.name}: expected an object, got {type(data).__name__}")
    return data


def _signature(paths: list[Path]) -> Signature:
    entries = []
    for path in paths:
        try:
            stat = path.stat()
        except OSError:
            continue
        entries.append((path.name, stat.st_mtime_ns, stat.st_size))
    return tuple(entries)


class JsonDirectoryStore:
    """DocumentStore over a directory of JSON files, polled on the event loop."""

    def __init__(
        self,
        root: str | Path,
        school_id: str,
        poll_interval: float = 2.0,
        document_limit: int = 10,
    ) -> None:
        self.school_dir = Path(root) / school_id
        self.settings_file = self.school_dir / "config" / "display_settings.json"
        self.daily_dir = self.school_dir / "daily_data"
        self.poll_interval = poll_interval
        self.document_limit = document_limit

        log.info(
            "json_store_initialized",
            school_dir=str(self.school_dir),
            poll_interval=poll_interval,
        )

    def subscribe_settings(
        self, on_data: SettingsCallback, on_error: ErrorCallback
    ) -> Unsubscribe:
        return self._watch(
            Feed.SETTINGS,
            lambda: [self.settings_file],
            self._load_settings,
            on_data,
            on_error,
        )

    def subscribe_daily_data(
        self, range_start: str, on_data: DailyCallback, on_error: ErrorCallback
    ) -> Unsubscribe:
        return self._watch(
            Feed.DAILY,
            self._daily_files,
            lambda: self._load_daily(range_start),
            on_data,
            on_error,
        )

    def _watch(self, feed, list_files, load, on_data, on_error) -> Unsubscribe:
        async def poll() -> None:
            last: Signature | None = None
            while True:
                signature = _signature(list_files())
                if signature != last:
                    # Report each file-set state once, good or bad
                    last = signature
                    try:
                        payload = await load()
                    except SignageError as e:
                        callback, args = on_error, (e,)
                    else:
                        callback, args = on_data, (payload,)
                    try:
                        callback(*args)
                    except Exception:
                        log.exception("store_callback_failed", feed=feed.value)
                await asyncio.sleep(self.poll_interval)

        task = asyncio.get_running_loop().create_task(poll(), name=f"store-{feed.value}")
        log.info("store_subscribed", feed=feed.value)

        def unsubscribe() -> None:
            task.cancel()
            log.info("store_unsubscribed", feed=feed.value)

        return unsubscribe

    def _daily_files(self) -> list[Path]:
        if not self.daily_dir.is_dir():
            return []
        return sorted(self.daily_dir.glob("*.json"))

    async def _load_settings(self) -> DisplaySettings | None:
        if not self.settings_file.exists():
            return None
        data = await _read_json(self.settings_file)
        try:
            return DisplaySettings.model_validate(data)
        except ValidationError as e:
            raise FeedError(Feed.SETTINGS.value, f"invalid settings document: {e}") from e

    async def _load_daily(self, range_start: str) -> list[DailyDocument]:
        documents = []
        for path in self._daily_files():
            data = await _read_json(path)
            data.setdefault("date", path.stem)
            try:
                document = DailyDocument.model_validate(data)
            except ValidationError as e:
                log.warning("daily_document_skipped", file=path.name, error=str(e))
                continue
            if document.date >= range_start:
                documents.append(document)
        documents.sort(key=lambda d: d.date)
        return documents[: self.document_limit]
