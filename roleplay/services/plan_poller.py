"""
Interview plan generation and status polling.

A resume and a job description are uploaded to the external plan service,
which answers with a session id and works in the background. The poller checks
the status endpoint until the plan is completed or failed, then the questions
are pulled out of the nested plan and folded into the interviewer
instructions used by the realtime session.

Polling is bounded: transient network failures back off exponentially and the
number of status checks is capped, so an unreachable service cannot keep a
poller alive forever.
"""

import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import httpx
from pydantic import ValidationError

from roleplay.config.constants import (
    DEFAULT_PLAN_URL,
    HTTP_TIMEOUT_SECONDS,
    LOGGER_NAME,
    PLAN_MAX_ATTEMPTS,
    PLAN_MAX_BACKOFF_SECONDS,
    PLAN_POLL_INTERVAL_SECONDS,
)
from roleplay.errors import PlanGenerationError, PlanPollingTimeout
from roleplay.models.plan import PlanSection, PlanStatus, PlanSubmission

logger = logging.getLogger(LOGGER_NAME)

ProgressCallback = Callable[[PlanStatus], None]

INSTRUCTIONS_TEMPLATE = """You are conducting a natural interview conversation.
When the conversation starts, immediately greet the user by saying exactly: "Hello! Welcome to your interview. I'm excited to learn more about your background. Could you please introduce yourself and tell me a bit about your experience?"

After greeting, wait for the user to speak and when the user is finished, you need to ask these questions in this exact order, but make it sound like a normal conversation:

{numbered_questions}

CRITICAL INSTRUCTIONS:

- The agent will say the initial message and asks that the interviewee introduces himself.
- After the interviewee introduces himself, the agent will respond in one or 2 sentence and then asks the first question.
- Ask these questions in the exact order listed above
- Make it sound like a natural conversation - don't say question numbers or "first question", "second question", etc.
- After each answer, provide brief constructive feedback (1-2 sentences) when the answer could be improved or when clarification would be helpful
- If the answer is good and complete, simply acknowledge it briefly and move to the next question without excessive praise
- Be encouraging and supportive, but focus on helping the interviewee improve rather than just praising
- If an answer from the user is not relevant to the question asked at all, ask the same question one more time to guide them back on track
- If you think a follow-up question would be valuable, you can ask ONLY ONE follow-up question. After the follow-up response, you must proceed to the next question
- Do NOT skip questions or ask them out of order
- Do NOT create your own questions
- Keep the conversation flowing naturally
- Start with the first question from the questions list and if no question is available, ask this: 'Tell me about your experience and background.'
You are a friendly, professional interviewer conducting a comprehensive interview to assess the candidate's technical skills, experience, and cultural fit for the role."""


def extract_questions(status: Union[PlanStatus, Dict[str, Any]]) -> List[str]:
    """
    Flatten the plan into numbered question strings ("1. ...", "2. ...").

    Sections or questions that are malformed or have no text are skipped.
    Returns an empty list when the payload carries no sections.
    """
    sections = _plan_sections(status)
    if sections is None:
        return []

    questions = []
    for raw_section in sections:
        try:
            section = PlanSection.model_validate(raw_section)
        except ValidationError:
            logger.debug(f"Skipping malformed interview section: {raw_section!r}")
            continue
        for question in section.questions:
            if question.question_text:
                questions.append(f"{len(questions) + 1}. {question.question_text}")
    return questions


def _plan_sections(status: Union[PlanStatus, Dict[str, Any]]) -> Optional[List[Any]]:
    payload = status.model_dump() if isinstance(status, PlanStatus) else status
    result = payload.get("result")
    plan = result.get("interview_plan") if isinstance(result, dict) else None
    sections = plan.get("interview_sections") if isinstance(plan, dict) else None
    return sections if isinstance(sections, list) else None


def build_interview_instructions(questions: List[str]) -> str:
    """Embed the numbered questions verbatim in the interviewer template."""
    return INSTRUCTIONS_TEMPLATE.format(numbered_questions="\n".join(questions))


def apply_plan_to_settings(status: PlanStatus, settings_store) -> Optional[str]:
    """
    Replace the stored interviewer instructions with ones built from the plan.

    Returns:
        The new instructions, or None when the plan has no sections
    """
    if _plan_sections(status) is None:
        logger.warning("No interview sections found in response")
        return None

    questions = extract_questions(status)
    instructions = build_interview_instructions(questions)
    settings = settings_store.load()
    settings_store.save(settings.model_copy(update={"instructions": instructions}))
    logger.info(f"System instructions updated with {len(questions)} questions")
    return instructions


class InterviewPlanPoller:
    """
    Client for the interview plan service.

    Args:
        base_url: Root URL of the plan service
        http_client: Optional ``httpx.AsyncClient``
        interval: Seconds between status checks
        max_attempts: Maximum number of status checks before giving up
        max_backoff: Upper bound for the delay after network failures
        sleep: Awaitable sleep function
    """

    def __init__(
        self,
        base_url: str = DEFAULT_PLAN_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        interval: float = PLAN_POLL_INTERVAL_SECONDS,
        max_attempts: int = PLAN_MAX_ATTEMPTS,
        max_backoff: float = PLAN_MAX_BACKOFF_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)
        self.interval = interval
        self.max_attempts = max_attempts
        self.max_backoff = max_backoff
        self._sleep = sleep
        self.session_id: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    async def submit(self, resume_path: Union[str, Path], job_description_path: Union[str, Path]) -> str:
        """
        Upload both documents and return the plan session id.

        Raises:
            PlanGenerationError: If the upload fails or no session id is returned
        """
        resume_path = Path(resume_path)
        job_description_path = Path(job_description_path)

        try:
            with resume_path.open("rb") as resume, job_description_path.open("rb") as job_description:
                files = {
                    "resume": (resume_path.name, resume, _content_type(resume_path)),
                    "job_description": (
                        job_description_path.name,
                        job_description,
                        _content_type(job_description_path),
                    ),
                }
                response = await self.http.post(f"{self.base_url}/create-interview-plan", files=files)
            submission = PlanSubmission.model_validate(response.json())
        except (OSError, httpx.HTTPError, ValueError) as e:
            raise PlanGenerationError(f"Failed to generate interview plan: {e}") from e

        if not submission.session_id:
            raise PlanGenerationError("No session_id received from server")

        self.session_id = submission.session_id
        logger.info(f"Interview plan requested, session: {self.session_id}")
        return self.session_id

    async def check_status(self, session_id: str) -> PlanStatus:
        """Fetch the current status once. Network and decode errors propagate."""
        response = await self.http.get(f"{self.base_url}/status/{session_id}")
        if response.is_server_error:
            response.raise_for_status()
        return PlanStatus.model_validate(response.json())

    async def poll(self, session_id: Optional[str] = None, on_progress: Optional[ProgressCallback] = None) -> PlanStatus:
        """
        Check immediately, then every ``interval`` seconds, until terminal.

        Returns:
            The completed status

        Raises:
            PlanGenerationError: If the service reports an error
            PlanPollingTimeout: If ``max_attempts`` checks pass without a terminal status
        """
        session_id = session_id or self.session_id
        if not session_id:
            raise PlanGenerationError("No plan session to poll")

        failures = 0
        for attempt in range(1, self.max_attempts + 1):
            try:
                status = await self.check_status(session_id)
            except (httpx.HTTPError, ValueError) as e:
                failures += 1
                delay = min(self.interval * (2 ** failures), self.max_backoff)
                logger.warning(f"Error checking plan status (attempt {attempt}): {e}; retrying in {delay:.0f}s")
                if attempt < self.max_attempts:
                    await self._sleep(delay)
                continue

            failures = 0
            if status.is_completed:
                logger.info(f"Interview plan {session_id} completed")
                return status
            if status.is_failed:
                raise PlanGenerationError(
                    f"Error during processing: {status.error or status.overall_status}",
                    session_id=session_id,
                )

            logger.debug(f"Interview plan {session_id} status: {status.overall_status}")
            if on_progress:
                on_progress(status)
            if attempt < self.max_attempts:
                await self._sleep(self.interval)

        raise PlanPollingTimeout(
            f"Interview plan {session_id} not ready after {self.max_attempts} checks",
            session_id=session_id,
        )

    def start(self, session_id: Optional[str] = None, on_progress: Optional[ProgressCallback] = None) -> asyncio.Task:
        """Run :meth:`poll` in the background, replacing any running poll."""
        session_id = session_id or self.session_id
        self.stop()
        self.session_id = session_id
        self._task = asyncio.create_task(self.poll(self.session_id, on_progress))
        return self._task

    def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None
        self.session_id = None

    async def close(self) -> None:
        self.stop()
        if self._owns_client:
            await self.http.aclose()


def _content_type(path: Path) -> str:
    return mimetypes.guess_type(path.name)[0] or "application/octet-stream"
