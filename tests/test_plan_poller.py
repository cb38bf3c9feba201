"""
Unit tests for interview plan submission, polling and question extraction.
"""

import json

import httpx
import pytest

from roleplay.config.settings import SettingsStore
from roleplay.errors import PlanGenerationError, PlanPollingTimeout
from roleplay.models.plan import PlanStatus
from roleplay.services.plan_poller import (
    InterviewPlanPoller,
    apply_plan_to_settings,
    build_interview_instructions,
    extract_questions,
)

BASE = "https://plans.test"

COMPLETED = {
    "overall_status": "completed",
    "result": {
        "interview_plan": {
            "interview_sections": [
                {"questions": [{"question_text": "Why this role?"}, {"question_text": "Describe a hard bug."}]},
                {"questions": [{"question_text": ""}, {"notes": "missing text"}]},
                "not a section",
                {"questions": [{"question_text": "Where do you see yourself?"}]},
            ]
        }
    },
}


class Recorder:
    """Sleep replacement that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def scripted_transport(responses, requests):
    responses = list(responses)

    def handler(request):
        requests.append(request)
        response = responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    return httpx.MockTransport(handler)


def make_poller(responses, requests, **kwargs):
    sleep = Recorder()
    client = httpx.AsyncClient(transport=scripted_transport(responses, requests))
    return InterviewPlanPoller(BASE, http_client=client, sleep=sleep, **kwargs), sleep


@pytest.mark.asyncio
async def test_polling_stops_at_first_completed():
    requests = []
    poller, sleep = make_poller(
        [
            httpx.Response(200, json={"overall_status": "processing"}),
            httpx.Response(200, json={"overall_status": "processing"}),
            httpx.Response(200, json=COMPLETED),
        ],
        requests,
    )
    progress = []

    status = await poller.poll("abc", on_progress=progress.append)

    assert status.is_completed
    assert len(requests) == 3
    assert all(str(r.url) == f"{BASE}/status/abc" for r in requests)
    assert sleep.delays == [5.0, 5.0]
    assert [s.overall_status for s in progress] == ["processing", "processing"]


@pytest.mark.asyncio
async def test_completed_with_unstructured_result_stops_polling(isolated_settings_path):
    requests = []
    poller, sleep = make_poller(
        [httpx.Response(200, json={"overall_status": "completed", "result": "done"})] * 5,
        requests,
        max_attempts=5,
    )

    status = await poller.poll("abc")

    assert status.is_completed
    assert len(requests) == 1
    assert sleep.delays == []
    assert extract_questions(status) == []
    assert apply_plan_to_settings(status, SettingsStore()) is None
    assert not isolated_settings_path.exists()


@pytest.mark.asyncio
async def test_error_status_raises():
    poller, _ = make_poller([httpx.Response(200, json={"overall_status": "error", "error": "bad resume"})], [])

    with pytest.raises(PlanGenerationError) as exc_info:
        await poller.poll("abc")

    assert "bad resume" in exc_info.value.message
    assert exc_info.value.payload == {"session_id": "abc"}


@pytest.mark.asyncio
async def test_error_field_raises_even_while_processing():
    poller, _ = make_poller([httpx.Response(200, json={"overall_status": "processing", "error": "boom"})], [])

    with pytest.raises(PlanGenerationError):
        await poller.poll("abc")


@pytest.mark.asyncio
async def test_network_errors_back_off_exponentially():
    requests = []
    poller, sleep = make_poller(
        [
            httpx.ConnectError("down"),
            httpx.ConnectError("down"),
            httpx.Response(503, text="unavailable"),
            httpx.Response(200, text="<html>not json</html>"),
            httpx.ConnectError("down"),
            httpx.Response(200, json={"overall_status": "processing"}),
            httpx.Response(200, json=COMPLETED),
        ],
        requests,
        max_backoff=60.0,
    )

    status = await poller.poll("abc")

    assert status.is_completed
    assert sleep.delays == [10.0, 20.0, 40.0, 60.0, 60.0, 5.0]


@pytest.mark.asyncio
async def test_attempts_are_bounded():
    requests = []
    poller, sleep = make_poller(
        [httpx.Response(200, json={"overall_status": "processing"})] * 3,
        requests,
        max_attempts=3,
    )

    with pytest.raises(PlanPollingTimeout):
        await poller.poll("abc")

    assert len(requests) == 3
    assert len(sleep.delays) == 2


@pytest.mark.asyncio
async def test_poll_without_session_raises():
    poller, _ = make_poller([], [])
    with pytest.raises(PlanGenerationError):
        await poller.poll()


@pytest.mark.asyncio
async def test_submit_uploads_both_files(tmp_path):
    resume = tmp_path / "resume.pdf"
    resume.write_bytes(b"%PDF resume")
    job = tmp_path / "job.txt"
    job.write_text("Backend engineer")
    requests = []
    poller, _ = make_poller([httpx.Response(200, json={"session_id": "sess-1"})], requests)

    session_id = await poller.submit(resume, job)

    assert session_id == "sess-1"
    assert poller.session_id == "sess-1"
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == f"{BASE}/create-interview-plan"
    body = request.read()
    assert b'name="resume"; filename="resume.pdf"' in body
    assert b'name="job_description"; filename="job.txt"' in body
    assert b"Backend engineer" in body


@pytest.mark.asyncio
async def test_submit_without_session_id_raises(tmp_path):
    resume = tmp_path / "r.txt"
    resume.write_text("r")
    job = tmp_path / "j.txt"
    job.write_text("j")
    poller, _ = make_poller([httpx.Response(200, json={"message": "queued"})], [])

    with pytest.raises(PlanGenerationError, match="No session_id"):
        await poller.submit(resume, job)


@pytest.mark.asyncio
async def test_submit_missing_file_raises(tmp_path):
    poller, _ = make_poller([], [])
    with pytest.raises(PlanGenerationError):
        await poller.submit(tmp_path / "missing.pdf", tmp_path / "missing.txt")


@pytest.mark.asyncio
async def test_start_and_stop():
    poller, _ = make_poller([httpx.Response(200, json=COMPLETED)], [])

    task = poller.start("abc")
    status = await task

    assert status.is_completed
    poller.stop()
    assert poller.session_id is None


def test_extract_questions_skips_malformed_entries():
    assert extract_questions(PlanStatus.model_validate(COMPLETED)) == [
        "1. Why this role?",
        "2. Describe a hard bug.",
        "3. Where do you see yourself?",
    ]


def test_extract_questions_without_plan():
    assert extract_questions({"overall_status": "completed"}) == []
    assert extract_questions({"result": {"interview_plan": {"interview_sections": "oops"}}}) == []


def test_build_interview_instructions_embeds_questions():
    text = build_interview_instructions(["1. Why this role?", "2. Describe a hard bug."])

    assert "1. Why this role?\n2. Describe a hard bug." in text
    assert text.startswith("You are conducting a natural interview conversation.")
    assert "Do NOT create your own questions" in text


def test_apply_plan_to_settings(isolated_settings_path):
    store = SettingsStore()

    instructions = apply_plan_to_settings(PlanStatus.model_validate(COMPLETED), store)

    saved = json.loads(isolated_settings_path.read_text())
    assert saved["system_instructions"] == instructions
    assert "3. Where do you see yourself?" in instructions
    assert store.load().instructions == instructions


def test_apply_plan_without_sections_keeps_settings(isolated_settings_path):
    store = SettingsStore()

    result = apply_plan_to_settings(PlanStatus(overall_status="completed", result={}), store)

    assert result is None
    assert not isolated_settings_path.exists()
