"""Assignment generation, model answers and submission grading.

Each operation renders a prompt template, sends it through the fallback
generator and post-processes the text. Generation results are passed through
untouched; grading results are parsed from JSON with a text-only fallback.
"""
from __future__ import annotations
import json
import math
import logging
from typing import Any, Dict, Optional, Protocol

from pydantic import BaseModel

from .errors import ProviderFailure

logger = logging.getLogger(__name__)


class Generator(Protocol):
	async def generate(self, prompt: str) -> str: ...


class GeneratedDocument(BaseModel):
	success: bool = True
	generated_content: str
	max_marks: float
	days_until_due: int
	message: str = "Assignment generated successfully"


class GeneratedAnswers(BaseModel):
	success: bool = True
	generated_answers: str
	max_marks: float
	message: str = "Model answers generated successfully"


class GradingResult(BaseModel):
	success: bool = True
	grade: float
	feedback: str
	strengths: str = ""
	improvements: str = ""
	final_marks: float
	review: str
	message: str = "Submission graded successfully"


def _build_document_prompt(topic: str, max_marks: float, days_until_due: int) -> str:
	return (
		"Generate an educational assignment based on the following requirements:\n\n"
		f"Topic/Subject: {topic}\n"
		f"Maximum Marks: {max_marks}\n"
		f"Days Until Due: {days_until_due}\n\n"
		"Please create a comprehensive assignment that includes:\n"
		"1. Clear instructions for students\n"
		"2. Specific questions or tasks\n"
		"3. Grading criteria\n"
		"4. Expected learning outcomes\n\n"
		"Format the response as a well-structured assignment document."
	)


def _build_answers_prompt(assignment_content: str, max_marks: float) -> str:
	return (
		"Based on the following assignment, generate comprehensive model answers:\n\n"
		f"Assignment Content:\n{assignment_content}\n\n"
		f"Maximum Marks: {max_marks}\n\n"
		"Please provide:\n"
		"1. Complete model answers for all questions/tasks\n"
		"2. Key points that should be covered\n"
		"3. Marking scheme breakdown\n"
		"4. Alternative acceptable answers where applicable\n\n"
		"Format the response clearly with proper headings and structure."
	)


def _build_grading_prompt(
	ocr_text: Optional[str],
	assignment_content: Any,
	criteria: Optional[str],
	instructions: Optional[str],
) -> str:
	prompt = "Please grade the following student submission based on the provided criteria:\n\n"
	if assignment_content:
		content = assignment_content if isinstance(assignment_content, str) else json.dumps(assignment_content)
		prompt += f"Assignment Content:\n{content}\n\n"
	if ocr_text:
		prompt += f"Student Submission (OCR Text):\n{ocr_text}\n\n"
	if criteria:
		prompt += f"Grading Criteria:\n{criteria}\n\n"
	if instructions:
		prompt += f"Additional Instructions:\n{instructions}\n\n"
	prompt += (
		"Please provide:\n"
		"1. A numerical grade (0-100)\n"
		"2. Detailed feedback explaining the grade\n"
		"3. Areas for improvement\n"
		"4. Strengths in the submission\n\n"
		"Format your response as JSON with the following structure:\n"
		"{\n"
		'  "grade": <numerical_grade>,\n'
		'  "feedback": "<detailed_feedback>",\n'
		'  "strengths": "<identified_strengths>",\n'
		'  "improvements": "<areas_for_improvement>"\n'
		"}"
	)
	return prompt


def strip_code_fence(text: str) -> str:
	cleaned = text.strip()
	if cleaned.startswith("```json"):
		cleaned = cleaned[7:]
	elif cleaned.startswith("```"):
		cleaned = cleaned[3:]
	if cleaned.endswith("```"):
		cleaned = cleaned[:-3]
	return cleaned.strip()


def _first_truthy(data: Dict[str, Any], *keys: str) -> Any:
	for key in keys:
		value = data.get(key)
		if value:
			return value
	return None


def _to_number(value: Any) -> float:
	if value is None or isinstance(value, bool):
		return 0
	try:
		number = float(value)
	except (TypeError, ValueError):
		return 0
	if not math.isfinite(number):
		return 0
	return int(number) if number.is_integer() else number


def _reject_constant(token: str) -> Any:
	raise ValueError(f"invalid JSON token {token}")


def parse_grading_response(text: str) -> GradingResult:
	"""Normalize a provider's grading reply. Never raises on malformed output."""
	try:
		parsed = json.loads(strip_code_fence(text), parse_constant=_reject_constant)
		if not isinstance(parsed, dict):
			raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
	except ValueError as parse_err:
		logger.info("JSON parse failed, using text format. Parse error: %s", parse_err)
		return GradingResult(
			grade=0,
			feedback=text,
			final_marks=0,
			review=text,
			message="Submission graded successfully (text format)",
		)
	grade = _to_number(_first_truthy(parsed, "grade", "marks", "final_marks", "score"))
	feedback = _first_truthy(parsed, "feedback", "review", "comments") or "No feedback provided"
	if not isinstance(feedback, str):
		feedback = json.dumps(feedback)
	strengths = parsed.get("strengths") or ""
	improvements = _first_truthy(parsed, "improvements", "areas_for_improvement") or ""
	logger.debug("Extracted grade: %s feedback length: %d", grade, len(feedback))
	return GradingResult(
		grade=grade,
		feedback=feedback,
		strengths=strengths if isinstance(strengths, str) else json.dumps(strengths),
		improvements=improvements if isinstance(improvements, str) else json.dumps(improvements),
		final_marks=grade,
		review=feedback,
	)


async def generate_document(generator: Generator, topic: str, max_marks: float = 100, days_until_due: int = 7) -> GeneratedDocument:
	try:
		content = await generator.generate(_build_document_prompt(topic, max_marks, days_until_due))
	except Exception as e:
		logger.error("generate_document failed: %s", e)
		raise ProviderFailure(f"Failed to generate document: {e}") from e
	logger.info("Generated content length: %d", len(content or ""))
	return GeneratedDocument(generated_content=content, max_marks=max_marks, days_until_due=days_until_due)


async def generate_answers(generator: Generator, assignment_content: str, max_marks: float = 100) -> GeneratedAnswers:
	try:
		answers = await generator.generate(_build_answers_prompt(assignment_content, max_marks))
	except Exception as e:
		logger.error("generate_answers failed: %s", e)
		raise ProviderFailure(f"Failed to generate answers: {e}") from e
	logger.info("Generated answers length: %d", len(answers or ""))
	return GeneratedAnswers(generated_answers=answers, max_marks=max_marks)


async def grade_submission(
	generator: Generator,
	grading_mode: str,
	ocr_text: Optional[str] = None,
	assignment_content: Any = None,
	grading_criteria: Optional[str] = None,
	custom_instructions: Optional[str] = None,
) -> GradingResult:
	logger.info("Grading submission (mode=%s, ocr_text_length=%d)", grading_mode, len(ocr_text or ""))
	prompt = _build_grading_prompt(ocr_text, assignment_content, grading_criteria, custom_instructions)
	try:
		reply = await generator.generate(prompt)
	except Exception as e:
		logger.error("grade_submission failed: %s", e)
		raise ProviderFailure(f"Failed to grade submission: {e}") from e
	return parse_grading_response(reply)


async def check_health(generator: Generator) -> Dict[str, str]:
	try:
		await generator.generate("Hello")
	except Exception as e:
		logger.error("Health check failed: %s", e)
		return {"status": "unhealthy", "message": "AI API is not accessible"}
	return {"status": "healthy", "message": "AI API is accessible"}


async def run_connection_test(generator: Generator, *, gemini_configured: bool, groq_configured: bool) -> Dict[str, Any]:
	logger.info("AI connection test: gemini key set=%s, groq key set=%s", gemini_configured, groq_configured)
	try:
		text = await generator.generate('Generate a simple test response with the word "SUCCESS" in it.')
	except Exception as e:
		return {
			"success": False,
			"error": str(e),
			"gemini_configured": gemini_configured,
			"groq_configured": groq_configured,
			"message": "AI API test failed",
		}
	return {
		"success": True,
		"test_content": text,
		"gemini_configured": gemini_configured,
		"groq_configured": groq_configured,
		"message": "AI API test successful",
	}
