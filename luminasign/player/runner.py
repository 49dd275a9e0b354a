"""Headless player: heartbeats, pulls the resolved playlist and rotates items.

Usage:
    luminasign-player --server http://localhost:8000
    python -m luminasign.player --server http://localhost:8000 --pairing-file ./pairing_code
"""
import argparse
import logging
import os
import random
import time
from typing import Callable

import requests

from luminasign.player.session import PlayerSession
from luminasign.services.playback import HEARTBEAT_INTERVAL_SEC

DEFAULT_PAIRING_FILE = os.path.join(os.path.expanduser("~"), ".luminasign", "pairing_code")
REQUEST_TIMEOUT_SEC = int(os.getenv("SIGNAGE_PLAYER_REQUEST_TIMEOUT_SEC", "10"))
MIN_SLEEP_SEC = 0.05

logger = logging.getLogger(__name__)


def load_or_create_pairing_code(path: str) -> str:
    try:
        with open(path, "r") as f:
            saved = f.read().strip()
        if len(saved) == 6 and saved.isdigit():
            return saved
    except FileNotFoundError:
        pass
    code = str(random.randint(100000, 999999))
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w") as f:
        f.write(code)
    logger.info("Generated new pairing code %s (%s)", code, path)
    return code


class PlayerClient:
    def __init__(self, base_url: str, api_key: str | None = None, http: requests.Session | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()
        if api_key:
            self.http.headers["X-API-Key"] = api_key

    def heartbeat(self, pairing_code: str) -> dict:
        response = self.http.post(f"{self.base_url}/player/{pairing_code}/heartbeat", timeout=REQUEST_TIMEOUT_SEC)
        response.raise_for_status()
        return response.json()

    def state(self, pairing_code: str) -> dict:
        response = self.http.get(f"{self.base_url}/player/{pairing_code}/state", timeout=REQUEST_TIMEOUT_SEC)
        response.raise_for_status()
        return response.json()


class PlayerRunner:
    def __init__(
        self,
        client: PlayerClient,
        session: PlayerSession,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.session = session
        self.clock = clock
        self.sleep = sleep
        self.heartbeat_interval = float(HEARTBEAT_INTERVAL_SEC)
        self.online = True
        self._last_shown: tuple | None = None

    def refresh(self, now: float) -> None:
        code = self.session.pairing_code
        try:
            self.client.heartbeat(code)
            snapshot = self.client.state(code)
        except requests.exceptions.RequestException as exc:
            if self.online:
                logger.warning("Server unreachable, continuing in offline mode: %s", exc)
            self.online = False
            return
        if not self.online:
            logger.info("Server reachable again")
        self.online = True
        interval = snapshot.get("heartbeat_interval_sec")
        if isinstance(interval, (int, float)) and interval > 0:
            self.heartbeat_interval = float(interval)
        self.session.sync(snapshot, now)

    def _show(self) -> None:
        item = self.session.current_item()
        key = (self.session.state, self.session.playlist_id, self.session.index, item.get("id") if item else None)
        if key != self._last_shown:
            self._last_shown = key
            logger.info(self.session.describe())

    def run(self, max_cycles: int | None = None) -> None:
        next_heartbeat = self.clock()
        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            cycles += 1
            now = self.clock()
            if now >= next_heartbeat:
                self.refresh(now)
                next_heartbeat = now + self.heartbeat_interval
            self.session.tick(now)
            self._show()

            wait = next_heartbeat - now
            until_advance = self.session.seconds_until_advance(now)
            if until_advance is not None:
                wait = min(wait, until_advance)
            self.sleep(max(wait, MIN_SLEEP_SEC))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="LuminaSign headless player")
    parser.add_argument("--server", default=os.getenv("SIGNAGE_SERVER_URL", "http://127.0.0.1:8000"))
    parser.add_argument("--pairing-file", default=os.getenv("SIGNAGE_PAIRING_FILE", DEFAULT_PAIRING_FILE))
    parser.add_argument("--api-key", default=os.getenv("SIGNAGE_API_KEY", ""))
    parser.add_argument("--log-level", default=os.getenv("SIGNAGE_LOG_LEVEL", "INFO"))
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    code = load_or_create_pairing_code(args.pairing_file)
    logger.info("Player starting against %s with pairing code %s", args.server, code)
    runner = PlayerRunner(PlayerClient(args.server, api_key=args.api_key or None), PlayerSession(code))
    try:
        runner.run()
    except KeyboardInterrupt:
        logger.info("Player stopped")


if __name__ == "__main__":
    main()
