from __future__ import annotations
import logging
from typing import Optional, Protocol

from .errors import ErrorKind, ProviderFailure
from .providers import GeminiClient, GroqClient

logger = logging.getLogger(__name__)

# Matched case-sensitively against messages of errors the provider client could not tag
QUOTA_MARKERS = (
	"quota",
	"429",
	"rate",
	"Resource has been exhausted",
	"not found",
	"not supported",
)


class TextProvider(Protocol):
	name: str

	async def generate(self, prompt: str) -> str: ...

	async def aclose(self) -> None: ...


def is_quota_error(error: BaseException) -> bool:
	"""True for quota exhaustion, rate limiting or an unavailable model."""
	if isinstance(error, ProviderFailure) and error.kind is not ErrorKind.UNKNOWN:
		return True
	message = str(error)
	return any(marker in message for marker in QUOTA_MARKERS)


class FallbackGenerator:
	"""Primary provider first, secondary on any failure. Keeps no state between calls."""

	def __init__(self, primary: TextProvider, secondary: TextProvider) -> None:
		self.primary = primary
		self.secondary = secondary

	async def generate(self, prompt: str) -> str:
		try:
			logger.info("Attempting %s API...", self.primary.name)
			text = await self.primary.generate(prompt)
			logger.info("%s API succeeded", self.primary.name)
			return text
		except Exception as primary_err:
			logger.warning("%s API failed: %s", self.primary.name, primary_err)
			primary_error = primary_err

		if is_quota_error(primary_error):
			logger.info("Quota/rate limit exceeded or model unavailable, falling back to %s...", self.secondary.name)
			try:
				text = await self.secondary.generate(prompt)
			except Exception as secondary_err:
				logger.error("%s API also failed: %s", self.secondary.name, secondary_err)
				raise ProviderFailure(
					f"Both AI providers failed. {self.primary.name}: {primary_error}, {self.secondary.name}: {secondary_err}"
				) from secondary_err
			logger.info("%s API succeeded", self.secondary.name)
			return text

		# Unclassified primary failure: the secondary still gets a try, but its error is not surfaced
		try:
			text = await self.secondary.generate(prompt)
		except Exception as secondary_err:
			logger.error("%s API also failed: %s", self.secondary.name, secondary_err)
			raise primary_error
		logger.info("%s API succeeded (fallback)", self.secondary.name)
		return text

	async def aclose(self) -> None:
		await self.primary.aclose()
		await self.secondary.aclose()


def build_generator(
	primary: Optional[TextProvider] = None,
	secondary: Optional[TextProvider] = None,
) -> FallbackGenerator:
	return FallbackGenerator(primary or GeminiClient(), secondary or GroqClient())
