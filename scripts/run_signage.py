"""Run the signage display headless against a JSON document directory.

Reads display settings and daily data from the JSON store layout, keeps the
in-memory display surface up to date, and logs what is on screen. Useful for
checking a data directory before pointing a kiosk at it.

Run with: python scripts/run_signage.py
Data dir: python scripts/run_signage.py --data-dir data/store --school-id gn_tech
Kiosk:    python scripts/run_signage.py --kiosk
Dump:     python scripts/run_signage.py --dump

Store layout:
    <data-dir>/<school-id>/config/display_settings.json
    <data-dir>/<school-id>/daily_data/YYYY-MM-DD.json

Exit codes:
  0 = stopped cleanly (Ctrl-C)
  1 = error (message on stderr)
"""

import argparse
import asyncio
import os
import sys

from dotenv import load_dotenv

load_dotenv()

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.signage.config import get_config  # noqa: E402
from src.signage.engine import SignageEngine  # noqa: E402
from src.signage.errors import AudioUnavailableError  # noqa: E402
from src.signage.logging import get_logger, setup_logging  # noqa: E402
from src.signage.notify import SilentBackend, SoundDeviceBackend  # noqa: E402
from src.signage.render import RenderedView  # noqa: E402
from src.signage.scheduling import LoopScheduler  # noqa: E402
from src.signage.store import JsonDirectoryStore  # noqa: E402
from src.signage.surface import MemorySurface  # noqa: E402

log = get_logger("run_signage")

# Rough headless layout so panels with many rows overflow and scroll
ROW_HEIGHT = 40
PANEL_HEIGHT = 240
_ROW_MARKERS = ("<li", "<tr", 'class="schedule-list-item"')


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    config = get_config()
    parser = argparse.ArgumentParser(
        description="Run the school signage display against a JSON document store.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default=config.data_dir,
        help=f"Store root directory (default: {config.data_dir}).",
    )
    parser.add_argument(
        "--school-id",
        type=str,
        default=config.school_id,
        help=f"School id under the store root (default: {config.school_id}).",
    )
    parser.add_argument(
        "--kiosk",
        action="store_true",
        default=config.kiosk,
        help="Unattended start: unlock audio immediately, auto-hide the audio badge.",
    )
    parser.add_argument(
        "--no-audio",
        action="store_true",
        help="Visual notifications only.",
    )
    parser.add_argument(
        "--dump",
        action="store_true",
        help="Log every rendered view as JSON.",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        default=config.log_json,
        help="Output logs as JSON lines.",
    )
    return parser.parse_args()


def _measure(element_id: str, html: str) -> tuple[int, int]:
    rows = sum(html.count(marker) for marker in _ROW_MARKERS)
    return rows * ROW_HEIGHT, PANEL_HEIGHT


def _audio_backend(enabled: bool):
    if not enabled:
        return SilentBackend()
    try:
        return SoundDeviceBackend()
    except AudioUnavailableError as e:
        log.warning("audio_backend_unavailable", error=str(e))
        return SilentBackend()


async def _run(args: argparse.Namespace) -> None:
    config = get_config().model_copy(
        update={
            "data_dir": args.data_dir,
            "school_id": args.school_id,
            "kiosk": args.kiosk,
        }
    )
    store = JsonDirectoryStore(
        config.data_dir,
        config.school_id,
        poll_interval=config.store_poll_interval,
        document_limit=config.daily_document_limit,
    )
    surface = MemorySurface(measure=_measure)
    scheduler = LoopScheduler(frame_interval=config.frame_interval)
    audio = _audio_backend(config.audio_enabled and not args.no_audio)

    engine = SignageEngine(store, surface, scheduler, config=config, audio=audio)
    if args.dump:

        def dump(rendered: RenderedView) -> None:
            log.info("rendered_view", view=rendered.model_dump(mode="json"))

        engine.on_render(dump)

    engine.start()
    try:
        await asyncio.Event().wait()
    finally:
        engine.stop()


def main() -> int:
    args = _parse_args()
    config = get_config()
    setup_logging(
        json_output=args.log_json, log_level=config.log_level, school_id=args.school_id
    )

    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        log.info("signage_stopped", reason="keyboard_interrupt")
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
