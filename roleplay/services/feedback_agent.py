"""
Feedback agent for interview answers.

Given the interviewer's question and the candidate's transcribed answer, the
agent asks a chat model for a structured evaluation through the relay and
turns the reply into a ``FeedbackRecord``. It never raises: any failure
yields a ``FallbackFeedback`` so the voice loop never has to handle errors
from scoring.
"""

import json
import logging
from typing import Any, Dict

from roleplay.config.constants import (
    DEFAULT_FEEDBACK_MODEL,
    FEEDBACK_MAX_TOKENS,
    FEEDBACK_TEMPERATURE,
    LOGGER_NAME,
    NO_SUMMARY_TEXT,
    PLACEHOLDER_TEXT,
)
from roleplay.errors import FeedbackParseError
from roleplay.models.feedback import FallbackFeedback, FeedbackRecord, GeneratedFeedback

logger = logging.getLogger(LOGGER_NAME)

REQUIRED_KEYS = ("strengths", "weaknesses", "ideal_answer", "technical_assessment", "improvement_suggestions")
LIST_KEYS = ("strengths", "weaknesses", "improvement_suggestions")

SYSTEM_PROMPT = """You are an expert technical interviewer and career coach with deep knowledge across multiple technical domains including software engineering, data science, AI/ML, cybersecurity, cloud computing, and system design.

Your role is to provide comprehensive, constructive feedback on interview Q&A pairs. For each question and answer, you must analyze:

1. **Technical Accuracy**: Is the answer technically correct?
2. **Completeness**: Does the answer address all parts of the question?
3. **Clarity**: Is the answer clear and well-structured?
4. **Depth**: Does the answer show appropriate depth of knowledge?
5. **Practical Experience**: Does the answer demonstrate real-world experience?
6. **Communication Skills**: How well is the answer communicated?

For each analysis, provide:
- **Strengths**: What the candidate did well
- **Weaknesses**: Areas that need improvement
- **Ideal Answer**: What a strong answer would look like
- **Technical Assessment**: Professional evaluation of technical knowledge
- **Improvement Suggestions**: Specific actionable advice

Be constructive, professional, and specific. Focus on helping the candidate improve while being honest about gaps in knowledge or communication.

Format your response as JSON with these exact keys:
{
    "strengths": ["strength1", "strength2", ...],
    "weaknesses": ["weakness1", "weakness2", ...],
    "ideal_answer": "Detailed ideal answer that addresses the question comprehensively",
    "technical_assessment": "Professional technical evaluation",
    "improvement_suggestions": ["suggestion1", "suggestion2", ...],
    "overall_score": 0.85,
    "summary": "Brief overall assessment"
}"""


def build_user_message(question: str, answer: str, question_number: int) -> str:
    return f"""Please analyze this interview Q&A pair and provide comprehensive feedback:

**Question {question_number}:**
{question}

**Answer:**
{answer}

Please provide detailed technical feedback including strengths, weaknesses, ideal answer, and improvement suggestions. Be specific and constructive in your analysis."""


def extract_feedback_json(text: str) -> Dict[str, Any]:
    """
    Decode the JSON object embedded in a model reply.

    The substring between the first ``{`` and the last ``}`` is decoded, so
    commentary around the payload is tolerated. Missing required keys are
    back-filled with a placeholder.

    Raises:
        FeedbackParseError: If no object can be decoded
    """
    if not text:
        raise FeedbackParseError("Empty feedback response")

    start = text.find("{")
    end = text.rfind("}") + 1
    if start == -1 or end <= start:
        raise FeedbackParseError("No JSON found in response")

    try:
        feedback = json.loads(text[start:end])
    except json.JSONDecodeError as e:
        raise FeedbackParseError(f"Failed to parse JSON response: {e}") from e
    if not isinstance(feedback, dict):
        raise FeedbackParseError("Feedback JSON is not an object")

    for key in REQUIRED_KEYS:
        if key not in feedback:
            feedback[key] = [PLACEHOLDER_TEXT] if key in LIST_KEYS else PLACEHOLDER_TEXT
    feedback.setdefault("summary", NO_SUMMARY_TEXT)
    # overall_score is normalised by the model validator; absent means default
    return feedback


def fallback_feedback(question: str, answer: str, question_number: int, reason: str = "") -> FallbackFeedback:
    return FallbackFeedback(
        strengths=["Attempted to answer the question", "Showed engagement"],
        weaknesses=["Answer could be more detailed", "Consider providing specific examples"],
        ideal_answer=(
            "A comprehensive answer that directly addresses the question with specific "
            "examples and technical details."
        ),
        technical_assessment="Unable to assess due to technical issues. Please try again.",
        improvement_suggestions=[
            "Provide more specific examples",
            "Structure your answer clearly",
            "Include technical details when relevant",
        ],
        overall_score=0.5,
        summary="Feedback generation encountered technical issues. Please try again.",
        question_number=question_number,
        question=question,
        answer=answer,
        fallback_reason=reason or None,
    )


class FeedbackAgent:
    """Scores interview answers through the relay's chat-completion endpoint."""

    def __init__(self, relay, model: str = DEFAULT_FEEDBACK_MODEL):
        self.relay = relay
        self.model = model

    def build_request(self, question: str, answer: str, question_number: int) -> Dict[str, Any]:
        return {
            "system_prompt": SYSTEM_PROMPT,
            "user_message": build_user_message(question, answer, question_number),
            "model": self.model,
            "max_tokens": FEEDBACK_MAX_TOKENS,
            "temperature": FEEDBACK_TEMPERATURE,
        }

    async def generate_feedback(self, question: str, answer: str, question_number: int = 1) -> FeedbackRecord:
        """
        Evaluate one answer.

        Returns:
            GeneratedFeedback on success, FallbackFeedback on any failure
        """
        logger.info(f"Generating feedback for question {question_number}")
        try:
            content = await self.relay.generate_feedback(self.build_request(question, answer, question_number))
            data = extract_feedback_json(content or "")
            data.update(
                question_number=question_number,
                question=question,
                answer=answer,
            )
            data.pop("is_fallback", None)
            data.pop("timestamp", None)
            record = GeneratedFeedback.model_validate(data)
        except Exception as e:
            logger.warning(f"Using fallback feedback for question {question_number}: {e}")
            return fallback_feedback(question, answer, question_number, reason=str(e))

        logger.info(f"Feedback generated successfully for question {question_number}")
        return record


def _bullets(items) -> str:
    return "\n".join(f"• {item}" for item in items)


def format_feedback_for_display(feedback: FeedbackRecord) -> str:
    """Render a feedback record as a plain-text block."""
    return f"""**FEEDBACK FOR QUESTION {feedback.question_number or 'N/A'}:**

**Strengths:**
{_bullets(feedback.strengths)}

**Weaknesses:**
{_bullets(feedback.weaknesses)}

**Ideal Answer:**
{feedback.ideal_answer or PLACEHOLDER_TEXT}

**Technical Assessment:**
{feedback.technical_assessment or PLACEHOLDER_TEXT}

**Improvement Suggestions:**
{_bullets(feedback.improvement_suggestions)}

**Overall Score:** {feedback.overall_score:.2f}/1.0
**Summary:** {feedback.summary or NO_SUMMARY_TEXT}""".strip()
