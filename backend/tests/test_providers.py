import json

import httpx
import pytest

from classroom.errors import ErrorKind, ProviderFailure
from classroom.fallback import FallbackGenerator
from classroom.providers import GeminiClient, GroqClient, classify_status

from conftest import FakeProvider


def gemini_reply(text):
	return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


async def test_gemini_generate_returns_first_candidate_text():
	seen = {}

	def handler(request: httpx.Request) -> httpx.Response:
		seen["key"] = request.url.params.get("key")
		seen["body"] = json.loads(request.content)
		return httpx.Response(200, json=gemini_reply("Hello there"))

	client = GeminiClient("k-123", model="gemini-2.5-flash", provider="ai_studio", transport=httpx.MockTransport(handler))
	try:
		assert await client.generate("Hi") == "Hello there"
	finally:
		await client.aclose()

	assert seen["key"] == "k-123"
	assert seen["body"] == {"contents": [{"parts": [{"text": "Hi"}]}]}


async def test_gemini_vertex_sends_key_in_header():
	seen = {}

	def handler(request: httpx.Request) -> httpx.Response:
		seen["header"] = request.headers.get("x-goog-api-key")
		seen["params"] = dict(request.url.params)
		return httpx.Response(200, json=gemini_reply("ok"))

	client = GeminiClient("k-vertex", provider="vertex", transport=httpx.MockTransport(handler))
	try:
		await client.generate("Hi")
	finally:
		await client.aclose()

	assert seen["header"] == "k-vertex"
	assert "key" not in seen["params"]


async def test_gemini_quota_error_is_tagged():
	def handler(request: httpx.Request) -> httpx.Response:
		return httpx.Response(429, json={"error": {"message": "Resource has been exhausted (e.g. check quota)."}})

	client = GeminiClient("k", provider="ai_studio", transport=httpx.MockTransport(handler))
	try:
		with pytest.raises(ProviderFailure) as exc_info:
			await client.generate("Hi")
	finally:
		await client.aclose()

	assert exc_info.value.kind is ErrorKind.QUOTA
	assert "429" in str(exc_info.value)
	assert "Resource has been exhausted" in str(exc_info.value)


async def test_gemini_without_key_fails_without_network():
	def handler(request: httpx.Request) -> httpx.Response:
		raise AssertionError("no request expected")

	client = GeminiClient("", transport=httpx.MockTransport(handler))
	try:
		with pytest.raises(ProviderFailure, match="GEMINI_API_KEY is not configured"):
			await client.generate("Hi")
	finally:
		await client.aclose()


async def test_gemini_unexpected_payload():
	client = GeminiClient("k", provider="ai_studio", transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"candidates": []})))
	try:
		with pytest.raises(ProviderFailure, match="Unexpected Gemini response"):
			await client.generate("Hi")
	finally:
		await client.aclose()


async def test_groq_payload_and_reply():
	seen = {}

	def handler(request: httpx.Request) -> httpx.Response:
		seen["auth"] = request.headers.get("authorization")
		seen["body"] = json.loads(request.content)
		return httpx.Response(200, json={"choices": [{"message": {"content": "from groq"}}]})

	client = GroqClient("g-1", transport=httpx.MockTransport(handler))
	try:
		assert await client.generate("Hi") == "from groq"
	finally:
		await client.aclose()

	assert seen["auth"] == "Bearer g-1"
	assert seen["body"]["model"] == "moonshotai/kimi-k2-instruct-0905"
	assert seen["body"]["messages"] == [{"role": "user", "content": "Hi"}]
	assert seen["body"]["temperature"] == 0.7
	assert seen["body"]["max_tokens"] == 4096


async def test_groq_error_message_format():
	def handler(request: httpx.Request) -> httpx.Response:
		return httpx.Response(401, json={"error": {"message": "Invalid API Key"}})

	client = GroqClient("bad", transport=httpx.MockTransport(handler))
	try:
		with pytest.raises(ProviderFailure) as exc_info:
			await client.generate("Hi")
	finally:
		await client.aclose()

	assert str(exc_info.value) == "Groq API error: 401 - Invalid API Key"
	assert exc_info.value.kind is ErrorKind.UNKNOWN


async def test_groq_empty_choices_returns_empty_text():
	client = GroqClient("g", transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"choices": []})))
	try:
		assert await client.generate("Hi") == ""
	finally:
		await client.aclose()


@pytest.mark.parametrize(
	"status, message, kind",
	[
		(429, "Too many requests", ErrorKind.RATE_LIMIT),
		(429, "quota exceeded", ErrorKind.QUOTA),
		(404, "models/foo is not found for API version v1beta", ErrorKind.NOT_FOUND),
		(404, "Not Found", ErrorKind.UNKNOWN),
		(400, "Model Not Supported", ErrorKind.UNKNOWN),
		(403, "Quota project not set", ErrorKind.UNKNOWN),
		(400, "quota exceeded for this project", ErrorKind.QUOTA),
		(400, "model is not supported for generateContent", ErrorKind.NOT_FOUND),
		(500, "internal", ErrorKind.UNKNOWN),
	],
)
def test_classify_status(status, message, kind):
	assert classify_status(status, message) is kind


async def test_capitalised_gemini_error_surfaces_original_when_groq_fails():
	def handler(request: httpx.Request) -> httpx.Response:
		return httpx.Response(400, json={"error": {"message": "Model Not Supported"}})

	gemini = GeminiClient("k", provider="ai_studio", transport=httpx.MockTransport(handler))
	groq = FakeProvider("Groq", RuntimeError("groq down"))
	try:
		with pytest.raises(ProviderFailure) as exc_info:
			await FallbackGenerator(gemini, groq).generate("Hi")
	finally:
		await gemini.aclose()

	assert str(exc_info.value) == "Gemini API error: 400 - Model Not Supported"
	assert exc_info.value.kind is ErrorKind.UNKNOWN
	assert groq.prompts == ["Hi"]
