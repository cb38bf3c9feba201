import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from roleplay.cli import main, parse_args, run_plan
from roleplay.config.settings import SettingsStore
from roleplay.errors import PlanGenerationError
from roleplay.models.plan import PlanStatus


def test_parse_serve_defaults(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("HOST", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    args = parse_args(["serve"])

    assert args.command == "serve"
    assert args.port == 3000
    assert args.host == "0.0.0.0"
    assert args.log_level == "INFO"


def test_parse_interview_options():
    args = parse_args(["interview", "--voice", "sage", "--no-greeting", "--save"])
    assert args.voice == "sage"
    assert args.no_greeting
    assert args.save
    assert args.instructions is None


def test_parse_interview_rejects_unknown_voice():
    with pytest.raises(SystemExit):
        parse_args(["interview", "--voice", "robot"])


def test_parse_plan_and_avatar():
    plan = parse_args(["plan", "cv.pdf", "jd.txt", "--apply"])
    assert (plan.resume, plan.job_description, plan.apply) == ("cv.pdf", "jd.txt", True)

    avatar = parse_args(["avatar", "--text", "--rate", "0.9"])
    assert avatar.text
    assert avatar.rate == "0.9"


def test_command_is_required():
    with pytest.raises(SystemExit):
        parse_args([])


@pytest.fixture
def poller():
    instance = MagicMock()
    instance.submit = AsyncMock(return_value="abc")
    instance.poll = AsyncMock(return_value=PlanStatus(
        overall_status="completed",
        result={"interview_plan": {"interview_sections": [
            {"questions": [{"question_text": "Why this role?"}]},
        ]}},
    ))
    instance.close = AsyncMock()
    with patch("roleplay.cli.InterviewPlanPoller", return_value=instance):
        yield instance


@pytest.mark.asyncio
async def test_run_plan_prints_questions_and_applies(poller, isolated_settings_path, capsys):
    code = await run_plan(parse_args(["plan", "cv.pdf", "jd.txt", "--apply"]))

    assert code == 0
    out = capsys.readouterr().out
    assert "1. Why this role?" in out
    assert "Interviewer instructions updated." in out
    stored = json.loads(isolated_settings_path.read_text())
    assert "1. Why this role?" in stored["system_instructions"]
    poller.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_plan_failure(poller, capsys):
    poller.poll.side_effect = PlanGenerationError("Interview plan generation failed", session_id="abc")

    code = await run_plan(parse_args(["plan", "cv.pdf", "jd.txt", "--apply"]))

    assert code == 1
    assert "Interview plan generation failed" in capsys.readouterr().err
    assert SettingsStore().load().instructions != ""
    poller.close.assert_awaited_once()


def test_main_dispatches_async_command():
    with patch("roleplay.cli.run_plan", new=AsyncMock(return_value=0)) as run:
        assert main(["plan", "cv.pdf", "jd.txt"]) == 0
    run.assert_awaited_once()


def test_main_serve_runs_uvicorn():
    with patch("roleplay.cli.uvicorn.run") as run:
        assert main(["serve", "--port", "8080", "--log-level", "DEBUG"]) == 0
    run.assert_called_once()
    assert run.call_args.args == ("roleplay.main:app",)
    assert run.call_args.kwargs["port"] == 8080
    assert run.call_args.kwargs["log_level"] == "debug"
