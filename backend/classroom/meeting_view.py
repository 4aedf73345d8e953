"""Client-side view of a class meeting.

The view mirrors the shared meeting state of one class by polling the API
every ``poll_seconds`` while mounted, so it can lag the server by up to one
interval. A ``MEETING_ENDED`` message from the embedded meeting UI closes the
view immediately, exactly as a local end does.
"""
from __future__ import annotations
import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol

import httpx

from .meetings import MEETING_ENDED, build_embed_url, build_meeting_url
from .settings import settings

logger = logging.getLogger(__name__)


class ViewState(str, Enum):
	NO_MEETING = "no_meeting"
	IN_PROGRESS = "in_progress"


class MeetingBackend(Protocol):
	async def get_active(self, class_id: int) -> Optional[Dict[str, Any]]: ...

	async def start(self, class_id: int) -> Dict[str, Any]: ...

	async def end(self, meeting_id: int) -> None: ...


class HttpMeetingBackend:
	"""Meeting backend reached through the classroom HTTP API."""

	def __init__(self, client: httpx.AsyncClient) -> None:
		self._client = client

	async def get_active(self, class_id: int) -> Optional[Dict[str, Any]]:
		r = await self._client.get(f"/meetings/{class_id}/active")
		r.raise_for_status()
		return r.json().get("meeting")

	async def start(self, class_id: int) -> Dict[str, Any]:
		r = await self._client.post(f"/meetings/{class_id}/start")
		r.raise_for_status()
		return r.json()["meeting"]

	async def end(self, meeting_id: int) -> None:
		r = await self._client.post(f"/meetings/{meeting_id}/end")
		r.raise_for_status()


class MeetingView:
	def __init__(
		self,
		backend: MeetingBackend,
		*,
		class_id: int,
		username: str,
		is_teacher: bool,
		poll_seconds: Optional[float] = None,
		on_close: Optional[Callable[[], None]] = None,
		meeting_url: Optional[str] = None,
	) -> None:
		self.backend = backend
		self.class_id = class_id
		self.username = username
		self.is_teacher = is_teacher
		self.poll_seconds = settings.meeting_poll_seconds if poll_seconds is None else poll_seconds
		self.on_close = on_close
		self.meeting_url = meeting_url
		self.active_meeting: Optional[Dict[str, Any]] = None
		self.showing = False
		self._poller: Optional[asyncio.Task] = None
		# Bumped by local start/end; polls begun under an older generation are dropped
		self._generation = 0

	@property
	def state(self) -> ViewState:
		return ViewState.IN_PROGRESS if self.active_meeting else ViewState.NO_MEETING

	@property
	def is_host(self) -> bool:
		return bool(self.active_meeting) and self.active_meeting.get("host_id") == self.username

	@property
	def embed_url(self) -> Optional[str]:
		if not self.active_meeting:
			return None
		return build_embed_url(
			self.active_meeting["code"],
			is_host=self.is_host,
			name=self.username,
			class_id=self.class_id,
			base_url=self.meeting_url,
		)

	@property
	def open_url(self) -> Optional[str]:
		"""URL for opening the meeting outside the embed, in a new tab."""
		if not self.active_meeting:
			return None
		return build_meeting_url(self.active_meeting["code"], is_host=self.is_host, name=self.username, base_url=self.meeting_url)

	async def refresh(self) -> ViewState:
		generation = self._generation
		try:
			meeting = await self.backend.get_active(self.class_id)
		except Exception as e:
			# Keep the last known state until the next tick
			logger.warning("Active meeting check failed for class %s: %s", self.class_id, e)
			return self.state
		if generation != self._generation:
			logger.debug("Dropping stale meeting poll for class %s", self.class_id)
			return self.state
		self.active_meeting = meeting
		if not meeting:
			self.showing = False
		return self.state

	async def _poll(self) -> None:
		while True:
			await asyncio.sleep(self.poll_seconds)
			await self.refresh()

	async def mount(self) -> None:
		await self.refresh()
		if self._poller is None:
			self._poller = asyncio.create_task(self._poll())

	async def unmount(self) -> None:
		if self._poller is None:
			return
		self._poller.cancel()
		try:
			await self._poller
		except asyncio.CancelledError:
			pass
		self._poller = None

	async def start(self) -> str:
		if not self.is_teacher:
			raise PermissionError("Only teachers can start a class meeting")
		meeting = await self.backend.start(self.class_id)
		self._generation += 1
		self.active_meeting = meeting
		self.showing = True
		return self.embed_url

	def join(self) -> Optional[str]:
		if not self.active_meeting:
			return None
		self.showing = True
		return self.embed_url

	def leave(self) -> None:
		self.showing = False

	async def end(self) -> None:
		if not self.is_teacher:
			raise PermissionError("Only teachers can end a class meeting")
		if not self.active_meeting:
			return
		await self.backend.end(self.active_meeting["id"])
		self._mark_ended()

	def handle_message(self, message: Any) -> bool:
		"""Handle a message posted by the embedded meeting UI; True if it ended the meeting."""
		if isinstance(message, dict) and message.get("type") == MEETING_ENDED:
			self._mark_ended()
			return True
		return False

	def _mark_ended(self) -> None:
		self._generation += 1
		self.showing = False
		self.active_meeting = None
		logger.info("Meeting ended for class %s", self.class_id)
		if self.on_close:
			self.on_close()
