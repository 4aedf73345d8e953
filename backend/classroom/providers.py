from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, Optional
from .errors import ErrorKind, ProviderFailure
from .settings import settings

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
	try:
		data = response.json()
	except Exception:
		return response.reason_phrase or response.text
	err = data.get("error") if isinstance(data, dict) else None
	if isinstance(err, dict) and err.get("message"):
		return str(err["message"])
	if isinstance(err, str) and err:
		return err
	return response.reason_phrase or response.text


def classify_status(status_code: int, message: str) -> ErrorKind:
	"""Map an HTTP failure to an error kind at the client boundary."""
	# Markers are matched case-sensitively, same as untagged errors in the fallback
	exhausted = "quota" in message or "Resource has been exhausted" in message
	if status_code == 429:
		return ErrorKind.QUOTA if exhausted else ErrorKind.RATE_LIMIT
	if "not supported" in message or "not found" in message:
		return ErrorKind.NOT_FOUND
	if exhausted:
		return ErrorKind.QUOTA
	if "rate" in message:
		return ErrorKind.RATE_LIMIT
	return ErrorKind.UNKNOWN


class GeminiClient:
	name = "Gemini"

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		model: Optional[str] = None,
		provider: Optional[str] = None,
		base_url: Optional[str] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key if api_key is not None else settings.gemini_api_key
		self.model = model or settings.gemini_model
		self.provider = provider or settings.gemini_provider
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			self.base_url = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{self.model}:generateContent"
			)
			self._auth_in_query = False
		else:
			# Google AI Studio (Generative Language API)
			self.base_url = base_url or f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
			self._auth_in_query = True
		self._client = httpx.AsyncClient(timeout=timeout or settings.provider_timeout_seconds, transport=transport)

	@property
	def configured(self) -> bool:
		return bool(self.api_key)

	async def generate(self, prompt: str) -> str:
		if not self.api_key:
			raise ProviderFailure("GEMINI_API_KEY is not configured", provider=self.name)
		payload: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		try:
			r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
		except httpx.RequestError as net_err:
			raise ProviderFailure(f"Gemini request failed: {net_err}", provider=self.name) from net_err
		if r.is_error:
			message = _error_message(r)
			raise ProviderFailure(
				f"Gemini API error: {r.status_code} - {message}",
				kind=classify_status(r.status_code, message),
				provider=self.name,
			)
		try:
			data = r.json()
			return data["candidates"][0]["content"]["parts"][0]["text"]
		except Exception:
			raise ProviderFailure(f"Unexpected Gemini response: {r.text}", provider=self.name)

	async def aclose(self) -> None:
		await self._client.aclose()


class GroqClient:
	name = "Groq"

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		model: Optional[str] = None,
		base_url: Optional[str] = None,
		temperature: Optional[float] = None,
		max_tokens: Optional[int] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key if api_key is not None else settings.groq_api_key
		self.model = model or settings.groq_model
		self.base_url = base_url or settings.groq_base_url
		self.temperature = settings.groq_temperature if temperature is None else temperature
		self.max_tokens = max_tokens or settings.groq_max_tokens
		self._client = httpx.AsyncClient(timeout=timeout or settings.provider_timeout_seconds, transport=transport)

	@property
	def configured(self) -> bool:
		return bool(self.api_key)

	async def generate(self, prompt: str) -> str:
		logger.info("Falling back to Groq API...")
		headers = {
			"Authorization": f"Bearer {self.api_key or ''}",
			"Content-Type": "application/json",
		}
		payload: Dict[str, Any] = {
			"model": self.model,
			"messages": [{"role": "user", "content": prompt}],
			"temperature": self.temperature,
			"max_tokens": self.max_tokens,
		}
		try:
			r = await self._client.post(self.base_url, headers=headers, json=payload)
		except httpx.RequestError as net_err:
			raise ProviderFailure(f"Groq request failed: {net_err}", provider=self.name) from net_err
		if r.is_error:
			message = _error_message(r)
			raise ProviderFailure(
				f"Groq API error: {r.status_code} - {message}",
				kind=classify_status(r.status_code, message),
				provider=self.name,
			)
		try:
			data = r.json()
			choices = data.get("choices") or [{}]
			return (choices[0].get("message") or {}).get("content") or ""
		except Exception:
			raise ProviderFailure(f"Unexpected Groq response: {r.text}", provider=self.name)

	async def aclose(self) -> None:
		await self._client.aclose()
