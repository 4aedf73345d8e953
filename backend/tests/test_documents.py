import pytest

from classroom.documents import (
	check_health,
	generate_answers,
	generate_document,
	grade_submission,
	parse_grading_response,
	run_connection_test,
	strip_code_fence,
)
from classroom.errors import ProviderFailure

from conftest import FakeProvider


def test_fenced_json_grading_reply():
	result = parse_grading_response('```json\n{"grade":85,"feedback":"Good"}\n```')

	assert result.grade == 85
	assert result.feedback == "Good"
	assert result.final_marks == 85
	assert result.review == "Good"
	assert result.message == "Submission graded successfully"


def test_plain_text_grading_reply_degrades():
	result = parse_grading_response("Great job, 90/100")

	assert result.grade == 0
	assert result.feedback == "Great job, 90/100"
	assert result.strengths == ""
	assert result.message == "Submission graded successfully (text format)"


@pytest.mark.parametrize("reply", ['{"grade": NaN, "feedback": "ok"}', '{"grade": Infinity}', '{"score": -Infinity}'])
def test_non_json_number_tokens_degrade_to_text(reply):
	result = parse_grading_response(reply)

	assert result.grade == 0
	assert result.final_marks == 0
	assert result.feedback == reply
	assert result.message == "Submission graded successfully (text format)"


def test_non_finite_grade_string_counts_as_zero():
	assert parse_grading_response('{"grade": "NaN", "feedback": "ok"}').grade == 0
	assert parse_grading_response('{"marks": "inf"}').grade == 0


def test_grade_synonyms_and_feedback_fallbacks():
	result = parse_grading_response('{"marks": "72.5", "review": "Solid", "areas_for_improvement": "Show working"}')

	assert result.grade == 72.5
	assert result.feedback == "Solid"
	assert result.improvements == "Show working"

	result = parse_grading_response('{"score": 40}')
	assert result.grade == 40
	assert result.feedback == "No feedback provided"


def test_missing_grade_defaults_to_zero():
	result = parse_grading_response('```\n{"feedback": "Incomplete", "strengths": "Neat"}\n```')

	assert result.grade == 0
	assert result.strengths == "Neat"


def test_non_object_json_degrades_to_text():
	result = parse_grading_response("90")

	assert result.grade == 0
	assert result.feedback == "90"


def test_strip_code_fence():
	assert strip_code_fence("  ```json\n{}\n```  ") == "{}"
	assert strip_code_fence("```\n[1]\n```") == "[1]"
	assert strip_code_fence("no fence") == "no fence"


async def test_generate_document_echoes_parameters():
	generator = FakeProvider("fake", "# Fractions assignment")

	result = await generate_document(generator, "Fractions", max_marks=50, days_until_due=3)

	assert result.generated_content == "# Fractions assignment"
	assert result.max_marks == 50
	assert result.days_until_due == 3
	prompt = generator.prompts[0]
	assert "Topic/Subject: Fractions" in prompt
	assert "Maximum Marks: 50" in prompt
	assert "Days Until Due: 3" in prompt


async def test_generate_document_wraps_provider_failure():
	generator = FakeProvider("fake", RuntimeError("both down"))

	with pytest.raises(ProviderFailure, match="Failed to generate document: both down"):
		await generate_document(generator, "Fractions")


async def test_generate_answers_uses_assignment_content():
	generator = FakeProvider("fake", "Model answers")

	result = await generate_answers(generator, "Q1. Solve x + 2 = 4", max_marks=20)

	assert result.generated_answers == "Model answers"
	assert result.max_marks == 20
	assert "Q1. Solve x + 2 = 4" in generator.prompts[0]


async def test_grading_prompt_includes_only_present_inputs():
	generator = FakeProvider("fake", '{"grade": 70, "feedback": "ok"}')

	result = await grade_submission(generator, "auto", ocr_text="x = 2", assignment_content={"q": "Solve"})

	prompt = generator.prompts[0]
	assert 'Assignment Content:\n{"q": "Solve"}' in prompt
	assert "Student Submission (OCR Text):\nx = 2" in prompt
	assert "Grading Criteria" not in prompt
	assert "Additional Instructions" not in prompt
	assert result.grade == 70


async def test_grading_provider_failure_is_raised():
	generator = FakeProvider("fake", RuntimeError("offline"))

	with pytest.raises(ProviderFailure, match="Failed to grade submission: offline"):
		await grade_submission(generator, "auto", ocr_text="x")


async def test_health_and_connection_test_never_raise():
	down = FakeProvider("fake", RuntimeError("offline"))
	up = FakeProvider("fake", "SUCCESS")

	assert (await check_health(down))["status"] == "unhealthy"
	assert (await check_health(up))["status"] == "healthy"

	report = await run_connection_test(down, gemini_configured=True, groq_configured=False)
	assert report["success"] is False
	assert report["error"] == "offline"
	report = await run_connection_test(up, gemini_configured=True, groq_configured=True)
	assert report["success"] is True
	assert report["test_content"] == "SUCCESS"
