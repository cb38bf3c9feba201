"""
Command-line entry points for the interview roleplay application.

Usage:
    roleplay serve [--host HOST] [--port PORT] [--log-level LEVEL]
    roleplay interview [--voice VOICE] [--instructions TEXT] [--no-greeting] [--save]
    roleplay plan RESUME JOB_DESCRIPTION [--apply]
    roleplay avatar [--text] [--avatar NAME] [--language LANG] [--rate RATE]
                    [--prompt TEXT] [--greeting TEXT]
"""

import argparse
import asyncio
import os
import sys

import uvicorn

from roleplay.bot.avatar_session import AvatarConfig, AvatarObserver, AvatarSession
from roleplay.bot.heygen_client import TaskType
from roleplay.bot.realtime_session import RealtimeSession, SessionObserver
from roleplay.bot.session_state import ConnectionStatus
from roleplay.config.constants import AVAILABLE_VOICES
from roleplay.config.logging_config import configure_logging
from roleplay.config.settings import ServerSettings, SettingsStore, load_environment
from roleplay.errors import PlanGenerationError
from roleplay.services.feedback_agent import FeedbackAgent, format_feedback_for_display
from roleplay.services.plan_poller import InterviewPlanPoller, apply_plan_to_settings, extract_questions
from roleplay.services.relay_client import RelayClient

STATUS_LABELS = {
    ConnectionStatus.IDLE: "Idle",
    ConnectionStatus.CONNECTING: "Connecting...",
    ConnectionStatus.CONNECTED: "Connected",
    ConnectionStatus.LISTENING: "Listening...",
    ConnectionStatus.USER_SPEAKING: "You are speaking...",
    ConnectionStatus.AGENT_SPEAKING: "Agent is speaking...",
    ConnectionStatus.PROCESSING: "Processing...",
    ConnectionStatus.ERROR: "Error",
    ConnectionStatus.DISCONNECTED: "Disconnected",
}


class ConsoleObserver(SessionObserver):
    """Prints session updates to the terminal."""

    def on_status(self, status):
        print(f"[{STATUS_LABELS[status]}]")

    def on_message(self, role, content):
        print(f"{role}: {content}")

    def on_feedback(self, record):
        print(format_feedback_for_display(record))
        print()

    def on_error(self, message):
        print(f"Error: {message}", file=sys.stderr)


class ConsoleAvatarObserver(AvatarObserver):
    def on_connection(self, connected):
        print("[Connected]" if connected else "[Disconnected]")

    def on_transcript(self, entry):
        if entry.final:
            print(f"{entry.role}: {entry.text}")

    def on_error(self, message):
        print(message, file=sys.stderr)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(prog="roleplay", description="Interview roleplay practice")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Start the relay server")
    serve.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "3000")),
        help="Port to run the server on (default: 3000 or PORT env var)",
    )
    serve.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Host to bind the server to (default: 0.0.0.0 or HOST env var)",
    )
    serve.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )

    interview = subparsers.add_parser("interview", help="Start a voice interview")
    interview.add_argument("--voice", choices=AVAILABLE_VOICES, help="Agent voice")
    interview.add_argument("--instructions", help="System instructions for the interviewer")
    interview.add_argument("--no-greeting", action="store_true", help="Wait for the candidate to speak first")
    interview.add_argument("--save", action="store_true", help="Persist the given options as the new defaults")
    interview.add_argument("--relay-url", default=None, help="Relay URL (default: RELAY_URL env var)")

    plan = subparsers.add_parser("plan", help="Generate interview questions from a resume and job description")
    plan.add_argument("resume", help="Path to the resume file")
    plan.add_argument("job_description", help="Path to the job description file")
    plan.add_argument("--apply", action="store_true", help="Store the generated instructions in the settings")

    avatar = subparsers.add_parser("avatar", help="Start an avatar interview")
    avatar.add_argument("--text", action="store_true", help="Text chat instead of voice chat")
    avatar.add_argument("--avatar", default="", help="Avatar name")
    avatar.add_argument("--language", default="", help="Avatar language")
    avatar.add_argument("--rate", default=None, help="Voice rate between 0.5 and 1.5")
    avatar.add_argument("--prompt", default="", help="System prompt used as knowledge base")
    avatar.add_argument("--greeting", default="", help="Text the avatar says first")
    avatar.add_argument("--relay-url", default=None, help="Relay URL (default: RELAY_URL env var)")

    return parser.parse_args(argv)


def serve(args) -> int:
    logger = configure_logging(args.log_level)
    settings = ServerSettings.from_env()
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY environment variable not set")

    logger.info(f"Starting server on http://{args.host}:{args.port}")
    uvicorn.run(
        "roleplay.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        access_log=False,
    )
    return 0


async def run_interview(args) -> int:
    # PyAudio is only needed for live sessions
    from roleplay.audio.devices import Microphone, Speaker

    store = SettingsStore()
    settings = store.load()
    overrides = {}
    if args.voice:
        overrides["voice"] = args.voice
    if args.instructions:
        overrides["instructions"] = args.instructions
    if args.no_greeting:
        overrides["agent_starts_conversation"] = False
    if overrides:
        settings = settings.model_copy(update=overrides)
        if args.save:
            store.save(settings)

    server_settings = ServerSettings.from_env()
    async with RelayClient(args.relay_url or server_settings.relay_url) as relay:
        session = RealtimeSession(
            relay,
            settings,
            microphone=Microphone(),
            output=Speaker(),
            feedback_agent=FeedbackAgent(relay),
            observer=ConsoleObserver(),
            model=server_settings.realtime_model,
        )
        if not await session.connect():
            return 1

        print("Interview started. Press Ctrl+C to end.")
        try:
            await session.wait_closed()
        except asyncio.CancelledError:
            pass
        finally:
            await session.disconnect()
            await session.wait_for_feedback()

    return 0 if session.status != ConnectionStatus.ERROR else 1


async def run_plan(args) -> int:
    server_settings = ServerSettings.from_env()
    poller = InterviewPlanPoller(server_settings.plan_url)
    try:
        session_id = await poller.submit(args.resume, args.job_description)
        print(f"Plan requested (session {session_id}); waiting for questions...")
        status = await poller.poll(session_id, on_progress=lambda s: print(f"Status: {s.overall_status}"))
    except PlanGenerationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    finally:
        await poller.close()

    for question in extract_questions(status):
        print(question)

    if args.apply and apply_plan_to_settings(status, SettingsStore()) is not None:
        print("Interviewer instructions updated.")
    return 0


async def run_avatar(args) -> int:
    microphone = None
    if not args.text:
        from roleplay.audio.devices import Microphone
        microphone = Microphone()

    config = AvatarConfig(
        avatar_name=args.avatar,
        language=args.language,
        voice_rate=args.rate,
        system_prompt=args.prompt,
        greeting=args.greeting,
    )
    server_settings = ServerSettings.from_env()
    async with RelayClient(args.relay_url or server_settings.relay_url) as relay:
        session = AvatarSession(relay, config, ConsoleAvatarObserver(), microphone=microphone)
        if not await session.start(is_voice_chat=not args.text):
            return 1

        print("Type a message, /mute, /unmute or /quit.")
        loop = asyncio.get_running_loop()
        try:
            while session.connected:
                line = (await loop.run_in_executor(None, sys.stdin.readline)).strip()
                if not line or line == "/quit":
                    break
                if line == "/mute":
                    session.mute()
                elif line == "/unmute":
                    session.unmute()
                elif session.client is not None:
                    await session.client.speak(line, TaskType.TALK)
        finally:
            await session.stop()
    return 0


def main(argv=None) -> int:
    """Main entry point."""
    load_environment()
    args = parse_args(argv)

    if args.command == "serve":
        return serve(args)

    configure_logging()
    commands = {"interview": run_interview, "plan": run_plan, "avatar": run_avatar}
    try:
        return asyncio.run(commands[args.command](args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
