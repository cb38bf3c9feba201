"""
Interview Roleplay - practice interviews against OpenAI Realtime and HeyGen avatars

This package lets a candidate rehearse a job interview by voice. It combines a
thin HTTP relay that keeps vendor secrets on the server with an asyncio client
that drives the live conversation and scores every answer.

Architecture Overview:
- FastAPI relay exposing configuration, feedback and avatar-token endpoints
- OpenAI Realtime API session streaming microphone audio and playing replies
- Background feedback scoring through OpenAI Chat Completions
- Interview-plan polling that turns a resume and job description into questions
- HeyGen streaming avatar as an alternate interviewer

Key Components:
- audio: PCM16 codec, audio devices and the playback queue
- bot: realtime and avatar session controllers and the session state machine
- config: constants, logging setup and settings
- models: pydantic models for realtime events, feedback, plans and transcripts
- services: relay client, feedback agent, interview plan poller, HeyGen REST API
- main: the FastAPI relay application
- cli: command-line entry points

Getting Started:
1. Set up environment variables (or a .env file):
   - OPENAI_API_KEY: Your OpenAI API key
   - HEYGEN_API_KEY: HeyGen API key (avatar mode only)
   - SUPABASE_URL_ROLEPLAY_PROJECT / SUPABASE_ANON_KEY_ROLEPLAY_PROJECT
   - PORT: Port to run the relay on (default 3000)
   - LOG_LEVEL: Logging level (default INFO)

2. Start the relay:
   ```bash
   roleplay serve
   ```

3. Start an interview in another terminal:
   ```bash
   roleplay interview
   ```
"""

__version__ = "1.0.0"
