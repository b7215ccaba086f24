"""Outbox delivery to the spreadsheet backend and remote menu fetch."""

from __future__ import annotations

import asyncio
import json
import logging
import socket
from typing import Any, Callable
from urllib.parse import urlparse

import requests

from grillstand.config import BACKEND_URL, HTTP_TIMEOUT_SECONDS, ONLINE_PROBE_TIMEOUT_SECONDS
from grillstand.data import parse_menu_config
from grillstand.errors import SyncError, ValidationError
from grillstand.ledger import LedgerStore
from grillstand.models import MenuItem, SyncTask

logger = logging.getLogger(__name__)

_POST_HEADERS = {"Content-Type": "text/plain;charset=utf-8"}


def probe_online(url: str = BACKEND_URL, timeout: float = ONLINE_PROBE_TIMEOUT_SECONDS) -> bool:
    """Cheap reachability check: can we open a TCP connection to the backend host?"""
    parsed = urlparse(url)
    host = parsed.hostname
    if not host:
        return False
    port = parsed.port or (443 if parsed.scheme == "https" else 80)
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


class Outbox:
    """Delivers queued backend events in order, one at a time.

    The blocking HTTP call runs in a worker thread; the queue itself is only
    touched from the caller's event loop.
    """

    def __init__(
        self,
        store: LedgerStore,
        session: requests.Session | None = None,
        url: str = BACKEND_URL,
        online_check: Callable[[], bool] | None = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self.store = store
        self.session = session or requests.Session()
        self.url = url
        self.online_check = online_check or (lambda: probe_online(url))
        self.timeout = timeout
        self.syncing = False

    @property
    def pending(self) -> int:
        return len(self.store.sync_queue)

    def _post(self, task: SyncTask) -> None:
        response = self.session.post(
            self.url,
            data=json.dumps(task.payload, ensure_ascii=False).encode("utf-8"),
            headers=_POST_HEADERS,
            timeout=self.timeout,
        )
        response.raise_for_status()

    async def drain(self) -> int:
        """Send queued tasks until the queue is empty or a send fails.

        Returns how many tasks were delivered in this run.
        """
        if self.syncing or not self.store.sync_queue:
            return 0
        # claimed before the first await so overlapping triggers back off
        self.syncing = True
        delivered = 0
        try:
            online = await asyncio.to_thread(self.online_check)
            if not online:
                logger.info("sync_skipped offline queued=%d", self.pending)
                return 0
            self.store.sync_error = False
            while self.store.sync_queue:
                task = self.store.sync_queue[0]
                try:
                    await asyncio.to_thread(self._post, task)
                except requests.exceptions.RequestException as exc:
                    logger.warning("sync_failed id=%s error=%r queued=%d", task.task_id, exc, self.pending)
                    self.store.sync_error = True
                    self.store.save()
                    break
                # the head may only leave the queue once the backend took it
                if self.store.sync_queue and self.store.sync_queue[0].task_id == task.task_id:
                    self.store.sync_queue.pop(0)
                delivered += 1
                logger.info("sync_sent id=%s action=%s", task.task_id, task.payload.get("action"))
                self.store.save()
        finally:
            self.syncing = False
        if delivered and not self.store.sync_queue:
            logger.info("sync_queue_empty delivered=%d", delivered)
        return delivered

    async def refresh_menu(self, strict: bool = False) -> list[MenuItem] | None:
        """Download the menu off the loop, then install it on the loop."""
        try:
            body = await asyncio.to_thread(request_menu, self.session, self.url, self.timeout)
        except (requests.exceptions.RequestException, ValueError) as exc:
            logger.warning("menu_fetch_failed error=%r", exc)
            if strict:
                raise SyncError(f"Menu download failed: {exc}") from exc
            return None
        return apply_menu_response(self.store, body, strict)

    def status(self) -> str:
        """One of syncing, error, pending or synced."""
        if self.syncing:
            return "syncing"
        if self.store.sync_error:
            return "error"
        if self.store.sync_queue:
            return "pending"
        return "synced"


def request_menu(session: requests.Session, url: str = BACKEND_URL, timeout: float = HTTP_TIMEOUT_SECONDS) -> Any:
    response = session.get(url, params={"action": "getMenu"}, timeout=timeout)
    response.raise_for_status()
    return response.json()


def apply_menu_response(store: LedgerStore, body: Any, strict: bool = False) -> list[MenuItem] | None:
    """Install the menu from a `getMenu` response body.

    Returns the new menu, or None when the catalog was left untouched. With
    `strict`, a rejected or invalid response raises `SyncError` instead.
    """
    if not isinstance(body, dict) or body.get("status") != "success":
        message = body.get("message") if isinstance(body, dict) else None
        logger.warning("menu_fetch_rejected message=%r", message)
        if strict:
            raise SyncError(f"Backend did not return a menu: {message or 'unknown error'}")
        return None

    try:
        menu = parse_menu_config(body.get("menuConfig"))
    except ValidationError as exc:
        logger.warning("menu_fetch_invalid error=%r", exc)
        if strict:
            raise SyncError(f"Backend menu is invalid: {exc}") from exc
        return None

    store.replace_menu(menu)
    return menu


def fetch_menu(
    store: LedgerStore,
    session: requests.Session | None = None,
    url: str = BACKEND_URL,
    strict: bool = False,
) -> list[MenuItem] | None:
    """Replace the local catalog with the backend's menu, blocking."""
    session = session or requests.Session()
    try:
        body = request_menu(session, url)
    except (requests.exceptions.RequestException, ValueError) as exc:
        logger.warning("menu_fetch_failed error=%r", exc)
        if strict:
            raise SyncError(f"Menu download failed: {exc}") from exc
        return None
    return apply_menu_response(store, body, strict)
